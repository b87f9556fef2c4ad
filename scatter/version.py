"""
scatter version utilities.

- __version__: base semantic version, overridable via SCATTER_VERSION.
- MANIFEST_FORMAT_VERSION: schema version written into manifests.
"""

from __future__ import annotations

import os

# Bump this when making a release of the package.
_BASE_SEMVER = "0.1.0"

# Bump when the manifest layout changes in a way readers must know about.
MANIFEST_FORMAT_VERSION = 1

__version__ = os.environ.get("SCATTER_VERSION") or _BASE_SEMVER


__all__ = ["__version__", "MANIFEST_FORMAT_VERSION"]
