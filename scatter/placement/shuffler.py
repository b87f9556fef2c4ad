"""
scatter • Placement — Shufflers

A placement permutation maps logical shard index i (data 0..k-1, then parity
k..k+m-1) to the physical destination file `perm[i]`. A fresh permutation is
drawn for every stripe so that the physical file no longer tells which
logical slot it carries.

Two generators share the `permute(n, stripe_index)` surface:

  • PlacementShuffler — uniform Fisher–Yates shuffle driven by an owned
    `random.Random` instance. Seeded from the wall clock unless a seed or an
    RNG is injected. The permutation is only reversible through the
    Distribution Ledger (or the recorded seed, replayed in stripe order).

  • KeyedShuffler — the permutation is a pure function of (run key,
    stripe index): a keyed BLAKE2b stream feeds the same Fisher–Yates loop.
    Any stripe's placement can be recomputed from the persisted key alone.

Both always return a full permutation of range(n); n == 0 gives [] and
n == 1 gives [0].
"""

from __future__ import annotations

import hashlib
import random
import secrets
import time
from typing import Any, Dict, List, Optional, Sequence

from ..constants import SHUFFLE_KEYED, SHUFFLE_RANDOM

_KEY_BYTES = 32
_U64 = 1 << 64


# ------------------------------ helpers --------------------------------------


def is_permutation(seq: Sequence[int], n: Optional[int] = None) -> bool:
    """True iff `seq` contains every integer of range(n) exactly once."""
    if n is None:
        n = len(seq)
    if len(seq) != n:
        return False
    try:
        return sorted(int(x) for x in seq) == list(range(n)) and all(
            isinstance(x, int) and not isinstance(x, bool) for x in seq
        )
    except (TypeError, ValueError):
        return False


def invert(perm: Sequence[int]) -> List[int]:
    """Return inv such that inv[perm[i]] == i."""
    if not is_permutation(perm):
        raise ValueError("not a permutation")
    inv = [0] * len(perm)
    for logical, physical in enumerate(perm):
        inv[physical] = logical
    return inv


def _check_n(n: int) -> None:
    if isinstance(n, bool) or not isinstance(n, int):
        raise TypeError("n must be an int")
    if n < 0:
        raise ValueError("n must be non-negative")


# ------------------------------ random mode ----------------------------------


class PlacementShuffler:
    """
    Per-stripe uniform shuffle with an owned RNG (no global random state).

    Args:
        seed: integer seed; defaults to `time.time_ns()` at construction.
        rng:  pre-built `random.Random`; wins over `seed` when both are given.
    """

    mode = SHUFFLE_RANDOM

    def __init__(self, seed: Optional[int] = None, *, rng: Optional[random.Random] = None) -> None:
        if rng is not None:
            self.seed = seed
            self._rng = rng
        else:
            self.seed = time.time_ns() if seed is None else int(seed)
            self._rng = random.Random(self.seed)

    def permute(self, n: int, stripe_index: Optional[int] = None) -> List[int]:
        _check_n(n)
        perm = list(range(n))
        # Fisher–Yates, explicit so the draw order is stable across Python versions.
        for i in range(n - 1, 0, -1):
            j = self._rng.randrange(i + 1)
            perm[i], perm[j] = perm[j], perm[i]
        return perm

    def describe(self) -> Dict[str, Any]:
        return {"mode": self.mode, "seed": self.seed}


# ------------------------------ keyed mode -----------------------------------


class _KeyedStream:
    """Deterministic 64-bit draws from BLAKE2b(key, stripe || counter)."""

    def __init__(self, key: bytes, stripe_index: int) -> None:
        self._key = key
        self._stripe = stripe_index.to_bytes(8, "big")
        self._counter = 0
        self._buf = b""

    def _u64(self) -> int:
        if len(self._buf) < 8:
            h = hashlib.blake2b(
                self._stripe + self._counter.to_bytes(8, "big"),
                key=self._key,
                digest_size=64,
                person=b"scatter/place",
            )
            self._counter += 1
            self._buf += h.digest()
        v, self._buf = int.from_bytes(self._buf[:8], "big"), self._buf[8:]
        return v

    def randbelow(self, bound: int) -> int:
        # Rejection sampling keeps the draw uniform.
        limit = _U64 - (_U64 % bound)
        while True:
            v = self._u64()
            if v < limit:
                return v % bound


class KeyedShuffler:
    """
    Permutation derived from a run key and the stripe index.

    Args:
        key: up to 64 bytes; a random 32-byte key is generated when omitted.
    """

    mode = SHUFFLE_KEYED

    def __init__(self, key: Optional[bytes] = None) -> None:
        if key is None:
            key = secrets.token_bytes(_KEY_BYTES)
        if not isinstance(key, (bytes, bytearray)) or not (1 <= len(key) <= 64):
            raise ValueError("key must be 1..64 bytes")
        self.key = bytes(key)

    @classmethod
    def from_seed(cls, seed: int) -> "KeyedShuffler":
        if seed < 0 or seed >= 1 << (8 * _KEY_BYTES):
            raise ValueError("seed out of range for a 256-bit key")
        return cls(int(seed).to_bytes(_KEY_BYTES, "big"))

    def permute(self, n: int, stripe_index: Optional[int] = None) -> List[int]:
        _check_n(n)
        if stripe_index is None or stripe_index < 0:
            raise ValueError("keyed placement needs a non-negative stripe_index")
        perm = list(range(n))
        stream = _KeyedStream(self.key, stripe_index)
        for i in range(n - 1, 0, -1):
            j = stream.randbelow(i + 1)
            perm[i], perm[j] = perm[j], perm[i]
        return perm

    def describe(self) -> Dict[str, Any]:
        return {"mode": self.mode, "key": self.key.hex()}


def make_shuffler(mode: str, seed: Optional[int] = None):
    """Build the shuffler for a configured mode."""
    if mode == SHUFFLE_RANDOM:
        return PlacementShuffler(seed)
    if mode == SHUFFLE_KEYED:
        return KeyedShuffler() if seed is None else KeyedShuffler.from_seed(seed)
    raise ValueError(f"unknown shuffle mode {mode!r}")


__all__ = [
    "is_permutation",
    "invert",
    "PlacementShuffler",
    "KeyedShuffler",
    "make_shuffler",
]
