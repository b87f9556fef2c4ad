"""
scatter.cli — command-line entry points.

    scatter encode FILE      stripe, erasure-code and scatter a file
    scatter inspect MANIFEST show a manifest and its distribution ledger
    scatter verify MANIFEST  check shard files against a manifest
    scatter config           print the effective configuration
    scatter version          print the version
"""

from __future__ import annotations

from .main import app, main

__all__ = ["app", "main"]
