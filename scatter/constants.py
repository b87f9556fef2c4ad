"""
scatter constants.

Bounds and canonical defaults for striping and shard distribution. These
values are intentionally lightweight (no heavy imports) and safe to import
from anywhere.

Note: runtime configuration lives in `scatter.config`. These constants
define *upper/lower bounds* and *defaults* that other modules use for
validation and reasonable fallbacks.
"""

from __future__ import annotations

# ------------------------------ shards & erasure -----------------------------

#: Default number of data shards per stripe (k).
DATA_SHARDS_DEFAULT: int = 4
#: Default number of parity shards per stripe (m).
PARITY_SHARDS_DEFAULT: int = 2
#: Default bytes per shard.
BLOCK_SIZE_DEFAULT: int = 1024

#: GF(2^8) has 256 elements; a Cauchy code needs k + m distinct of them.
MAX_TOTAL_SHARDS: int = 256
#: Guard rail for a single shard buffer.
BLOCK_SIZE_MAX: int = 64 * 1024 * 1024  # 64 MiB


# ------------------------------- placement -----------------------------------

SHUFFLE_RANDOM: str = "random"
SHUFFLE_KEYED: str = "keyed"
SHUFFLE_MODES = (SHUFFLE_RANDOM, SHUFFLE_KEYED)


# ------------------------------- outputs --------------------------------------

OVERWRITE_FAIL: str = "fail"
OVERWRITE_TRUNCATE: str = "truncate"
OVERWRITE_MODES = (OVERWRITE_FAIL, OVERWRITE_TRUNCATE)

#: Suffix for staged shard files until the run commits.
PART_SUFFIX: str = ".part"
#: Suffix appended to the input's base name for the metadata artifact.
MANIFEST_SUFFIX: str = ".manifest.json"
#: Suffix of the per-block digest file written beside the shards.
BLOCK_DIGESTS_SUFFIX: str = ".blocks.sha256"
#: Raw SHA-256 digest width; one per (stripe, logical shard) in that file.
BLOCK_DIGEST_SIZE: int = 32

#: Read size for the whole-file digest pass.
HASH_CHUNK_SIZE: int = 1024 * 1024


__all__ = [
    "DATA_SHARDS_DEFAULT",
    "PARITY_SHARDS_DEFAULT",
    "BLOCK_SIZE_DEFAULT",
    "MAX_TOTAL_SHARDS",
    "BLOCK_SIZE_MAX",
    "SHUFFLE_RANDOM",
    "SHUFFLE_KEYED",
    "SHUFFLE_MODES",
    "OVERWRITE_FAIL",
    "OVERWRITE_TRUNCATE",
    "OVERWRITE_MODES",
    "PART_SUFFIX",
    "MANIFEST_SUFFIX",
    "BLOCK_DIGESTS_SUFFIX",
    "BLOCK_DIGEST_SIZE",
    "HASH_CHUNK_SIZE",
]
