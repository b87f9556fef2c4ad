"""
scatter • Placement — Distribution Ledger

The ordered record of every stripe's placement permutation. It is the single
piece of state that makes randomized placement reversible: without it the
shard files stay byte-valid, but nobody knows which logical slot each stripe
put in which file.

Invariants
----------
• Entries are recorded in strictly increasing stripe order with no gaps:
  `record(i, perm)` requires `i == len(ledger)`.
• Every recorded entry is a full permutation of range(total_shards).
• A ledger loaded from disk is tolerant: missing (None) or corrupted entries
  are kept as-is and only fail when that stripe is looked up. Damage to one
  entry never affects any other stripe, and a placement is never guessed.
"""

from __future__ import annotations

from typing import Iterator, List, Optional, Sequence

from ..errors import LedgerError
from .shuffler import is_permutation

Entry = Optional[List[int]]


class DistributionLedger:
    def __init__(self, total_shards: int) -> None:
        if total_shards < 0:
            raise ValueError("total_shards must be non-negative")
        self.total_shards = int(total_shards)
        self._entries: List[object] = []

    # ---- recording ---------------------------------------------------------

    def record(self, stripe_index: int, permutation: Sequence[int]) -> None:
        expected = len(self._entries)
        if stripe_index != expected:
            raise LedgerError(
                "ledger entries must be recorded in stripe order without gaps",
                data={"expected": expected, "got": stripe_index},
            )
        if not is_permutation(permutation, self.total_shards):
            raise LedgerError(
                "placement is not a permutation of the shard destinations",
                data={"stripe": stripe_index, "total_shards": self.total_shards},
            )
        self._entries.append([int(x) for x in permutation])

    # ---- lookup ------------------------------------------------------------

    def _raw(self, stripe_index: int) -> object:
        if not (0 <= stripe_index < len(self._entries)):
            raise LedgerError(
                "no ledger entry for stripe",
                data={"stripe": stripe_index, "entries": len(self._entries)},
            )
        return self._entries[stripe_index]

    def is_intact(self, stripe_index: int) -> bool:
        if not (0 <= stripe_index < len(self._entries)):
            return False
        entry = self._entries[stripe_index]
        return isinstance(entry, list) and is_permutation(entry, self.total_shards)

    def permutation_for(self, stripe_index: int) -> List[int]:
        """Return a copy of the stripe's permutation (logical -> physical)."""
        entry = self._raw(stripe_index)
        if not self.is_intact(stripe_index):
            raise LedgerError(
                "ledger entry is missing or corrupted; placement unknown",
                data={"stripe": stripe_index},
            )
        return list(entry)  # type: ignore[arg-type]

    def physical_for(self, stripe_index: int, logical: int) -> int:
        """Destination index holding logical shard `logical` of a stripe."""
        perm = self.permutation_for(stripe_index)
        if not (0 <= logical < self.total_shards):
            raise IndexError("logical shard index out of range")
        return perm[logical]

    def logical_for(self, stripe_index: int, physical: int) -> int:
        """Logical shard slot stored in destination `physical` for a stripe."""
        perm = self.permutation_for(stripe_index)
        if not (0 <= physical < self.total_shards):
            raise IndexError("physical destination index out of range")
        return perm.index(physical)

    def damaged_stripes(self) -> List[int]:
        return [i for i in range(len(self._entries)) if not self.is_intact(i)]

    # ---- container protocol ------------------------------------------------

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[object]:
        return iter(list(self._entries))

    # ---- (de)serialization -------------------------------------------------

    def to_list(self) -> List[object]:
        return [list(e) if isinstance(e, list) else e for e in self._entries]

    @classmethod
    def from_list(cls, entries: Sequence[object], total_shards: int) -> "DistributionLedger":
        """
        Rebuild a ledger from persisted entries without validating them;
        validation happens per stripe on lookup.
        """
        ledger = cls(total_shards)
        ledger._entries = [list(e) if isinstance(e, (list, tuple)) else e for e in entries]
        return ledger


__all__ = ["DistributionLedger", "Entry"]
