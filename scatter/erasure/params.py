"""
scatter • Erasure Coding — Parameters

Defines the striping profile used by the encoder:
  • (k, m) Reed–Solomon settings (data shards, parity shards)
  • block size: bytes per shard
  • padding & sizing helpers for deterministic stripes

Design notes
------------
• Encoding happens in fixed-width *stripes*. Each stripe consists of:
    - k data shards (direct slices of the input), each `block_size` bytes
    - m parity shards produced by RS over the data shards
  Total shards per stripe = k + m, one per output destination.

• The input is partitioned across ceil(size / (k * block_size)) stripes. The
  final stripe is right-padded with zeros up to `k * block_size`. The exact
  file size is carried separately in the manifest; the padding bytes have no
  semantic meaning.

• GF(2^8) limits the code to 256 distinct evaluation points, hence
  k + m <= 256.

This module is pure; math & validation only.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..constants import (
    BLOCK_SIZE_DEFAULT,
    BLOCK_SIZE_MAX,
    DATA_SHARDS_DEFAULT,
    MAX_TOTAL_SHARDS,
    PARITY_SHARDS_DEFAULT,
)
from ..errors import ConfigError

# Utility --------------------------------------------------------------------


def _ceil_div(a: int, b: int) -> int:
    if b <= 0:
        raise ValueError("b must be positive")
    if a < 0:
        raise ValueError("a must be non-negative")
    return (a + b - 1) // b


# Model ----------------------------------------------------------------------


@dataclass(frozen=True)
class StripeParams:
    """
    Striping profile, fixed for the lifetime of one encoding run.

    Args:
        data_shards:   k — number of data shards per stripe (k >= 1)
        parity_shards: m — number of parity shards per stripe (m >= 0)
        block_size:    bytes per shard (>= 1)

    Derived:
        total_shards = k + m
        stripe_bytes = k * block_size
    """

    data_shards: int = DATA_SHARDS_DEFAULT
    parity_shards: int = PARITY_SHARDS_DEFAULT
    block_size: int = BLOCK_SIZE_DEFAULT

    # ---- Validation --------------------------------------------------------

    def __post_init__(self) -> None:
        data = {
            "data_shards": self.data_shards,
            "parity_shards": self.parity_shards,
            "block_size": self.block_size,
        }
        for name, value in data.items():
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"{name} must be an integer", data=data)
        if self.data_shards < 1:
            raise ConfigError("data_shards (k) must be >= 1", data=data)
        if self.parity_shards < 0:
            raise ConfigError("parity_shards (m) must be >= 0", data=data)
        if self.data_shards + self.parity_shards > MAX_TOTAL_SHARDS:
            raise ConfigError(
                f"sum of data and parity shards cannot exceed {MAX_TOTAL_SHARDS}",
                data=data,
            )
        if not (1 <= self.block_size <= BLOCK_SIZE_MAX):
            raise ConfigError(f"block_size must be in 1..{BLOCK_SIZE_MAX}", data=data)

    # ---- Derived properties ------------------------------------------------

    @property
    def total_shards(self) -> int:
        return self.data_shards + self.parity_shards

    @property
    def stripe_bytes(self) -> int:
        """Input bytes consumed per stripe before RS parity is added."""
        return self.data_shards * self.block_size

    # ---- Sizing helpers ----------------------------------------------------

    def stripes_for_size(self, file_size: int) -> int:
        """
        Number of stripes required to carry `file_size` bytes.
        Returns 0 for an empty input.
        """
        if file_size < 0:
            raise ValueError("file_size must be non-negative")
        if file_size == 0:
            return 0
        return _ceil_div(file_size, self.stripe_bytes)

    def padded_size(self, file_size: int) -> int:
        """Input size after right-padding to a whole number of stripes."""
        return self.stripes_for_size(file_size) * self.stripe_bytes

    def padding_for_size(self, file_size: int) -> int:
        """Zero bytes appended to the final stripe."""
        return self.padded_size(file_size) - file_size

    def destination_bytes(self, file_size: int) -> int:
        """Bytes each destination file holds once every stripe is written."""
        return self.stripes_for_size(file_size) * self.block_size


__all__ = [
    "StripeParams",
]
