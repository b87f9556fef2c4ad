"""
scatter • Placement

Per-stripe shard-to-destination permutations and the ledger that records them.
"""

from __future__ import annotations

from .ledger import DistributionLedger
from .shuffler import KeyedShuffler, PlacementShuffler, invert, is_permutation, make_shuffler

__all__ = [
    "DistributionLedger",
    "KeyedShuffler",
    "PlacementShuffler",
    "invert",
    "is_permutation",
    "make_shuffler",
]
