"""
scatter • Erasure — Reed–Solomon (GF(2^8)) encoder/decoder.

This module provides a *systematic* RS(k, k+m) code over GF(256) used to
protect each stripe. It is dependency-free and focuses on correctness and
clarity, while being reasonably fast via lookup tables and `bytes.translate`.

Design
------
• Field: GF(2^8) with primitive polynomial 0x11D and generator α = 0x02.
• Code is systematic:
    - Data shard rows are the identity I_k.
    - Parity rows are a Cauchy matrix C of shape m×k with
          C[r][j] = 1 / (x_r + y_j),   x_r = k + r,  y_j = j
      All x_r, y_j are distinct field elements, which is only possible while
      k + m <= 256.
  So the full generator matrix G is:
        G = [ I_k ]
            [  C  ]      (shape (k+m)×k)
  Every square submatrix of a Cauchy matrix is invertible, so *any* k rows of
  G form an invertible matrix: any k surviving shards recover the stripe.

• Encoding (data → parity): P = C · D, where D is k×B (B = bytes per shard).
• Decoding (any k shards → data): given a selection S of k distinct rows of G
  and the corresponding k shards C_sel (k×B), reconstruct D via:
        D = (S · G)^{-1} · C_sel
  We invert a k×k matrix once, then apply it to all B columns.

API
---
- rs_encode(data_shards, params) -> List[bytes]          # parity shards
- rs_decode(shards_map, params) -> List[bytes]            # data shards 0..k-1
- reconstruct(shards_with_none, params) -> List[bytes]    # all k+m shards
- verify(shards, params) -> bool
- RSCodec(params).encode(...) / .decode(...) / .reconstruct(...)

All shards must be exactly `params.block_size` long. Shard index i ∈ [0, k+m):
indices 0..k-1 are data rows; k..k+m-1 are parity.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .params import StripeParams

# =============================================================================
# GF(256) arithmetic (poly 0x11D, generator 0x02)
# =============================================================================

_PRIMITIVE_POLY = 0x11D
_GF_EXP: List[int] = [0] * 512  # exp table (repeat to avoid mod 255 on lookups)
_GF_LOG: List[int] = [0] * 256  # log table (log(0) unused)


def _gf_init() -> None:
    x = 1
    for i in range(255):
        _GF_EXP[i] = x
        _GF_LOG[x] = i
        x <<= 1
        if x & 0x100:
            x ^= _PRIMITIVE_POLY
    # duplicate the first 255 entries to avoid mod 255 in hot paths
    for i in range(255, 512):
        _GF_EXP[i] = _GF_EXP[i - 255]


# 256 rows, each a 256-byte translation table: row[a][b] == a*b
_gf_mul_table: List[bytes] = []


def _gf_build_mul_table() -> None:
    global _gf_mul_table
    rows: List[bytes] = []
    for a in range(256):
        rows.append(bytes(gf_mul(a, b) for b in range(256)))
    _gf_mul_table = rows


def gf_add(a: int, b: int) -> int:
    return a ^ b


def gf_mul(a: int, b: int) -> int:
    if a == 0 or b == 0:
        return 0
    return _GF_EXP[_GF_LOG[a] + _GF_LOG[b]]


def gf_inv(a: int) -> int:
    if a == 0:
        raise ZeroDivisionError("inverse of zero")
    return _GF_EXP[255 - _GF_LOG[a]]


def _vec_mul_scalar(buf: bytes, coeff: int) -> bytes:
    if coeff == 0:
        return bytes(len(buf))
    if coeff == 1:
        return bytes(buf)
    return bytes(buf).translate(_gf_mul_table[coeff])


def _xor_accumulate(acc: int, buf: bytes) -> int:
    # Big-int XOR is far faster than a per-byte loop in CPython.
    return acc ^ int.from_bytes(buf, "little")


# Initialize tables at module import
_gf_init()
_gf_build_mul_table()


# =============================================================================
# Generator matrix helpers
# =============================================================================


def _parity_row(r: int, k: int) -> List[int]:
    """Cauchy row r: [1/(x_r ^ y_0), ..., 1/(x_r ^ y_{k-1})]."""
    x = k + r
    return [gf_inv(x ^ j) for j in range(k)]


def _generator_row(row_index: int, k: int) -> List[int]:
    """
    Return the `row_index`-th row of the generator matrix G (length k).
    • 0..k-1  -> identity rows
    • k..     -> Cauchy rows
    """
    if row_index < k:
        row = [0] * k
        row[row_index] = 1
        return row
    return _parity_row(row_index - k, k)


def _select_rows(indices: Sequence[int], k: int) -> List[List[int]]:
    return [_generator_row(i, k) for i in indices]


# =============================================================================
# Matrix ops over GF(256)
# =============================================================================


def _mat_identity(k: int) -> List[List[int]]:
    m = [[0] * k for _ in range(k)]
    for i in range(k):
        m[i][i] = 1
    return m


def _mat_inv(a: List[List[int]]) -> List[List[int]]:
    """
    Invert a k×k matrix over GF(256) using Gauss–Jordan elimination.
    Mutates a copy; leaves input `a` untouched.
    """
    k = len(a)
    A = [row[:] for row in a]
    I = _mat_identity(k)

    for col in range(k):
        pivot = col
        while pivot < k and A[pivot][col] == 0:
            pivot += 1
        if pivot == k:
            raise ValueError("singular matrix in RS decode (bad shard selection)")
        if pivot != col:
            A[col], A[pivot] = A[pivot], A[col]
            I[col], I[pivot] = I[pivot], I[col]
        inv_piv = gf_inv(A[col][col])
        for j in range(k):
            A[col][j] = gf_mul(A[col][j], inv_piv)
            I[col][j] = gf_mul(I[col][j], inv_piv)
        for r in range(k):
            if r == col:
                continue
            factor = A[r][col]
            if factor == 0:
                continue
            for j in range(k):
                A[r][j] = gf_add(A[r][j], gf_mul(factor, A[col][j]))
                I[r][j] = gf_add(I[r][j], gf_mul(factor, I[col][j]))
    return I


def _mat_mul_bytes(mat: Sequence[Sequence[int]], rows: Sequence[bytes]) -> List[bytes]:
    """
    Multiply an (r×k) matrix by a (k×B) "byte matrix" where each row is a
    bytes object of length B. Returns a list of r byte rows.
    """
    k = len(rows)
    if k == 0:
        return [b"" for _ in mat]
    B = len(rows[0])
    for r in rows:
        if len(r) != B:
            raise ValueError("inconsistent row lengths")

    out: List[bytes] = []
    for mrow in mat:
        if len(mrow) != k:
            raise ValueError("row count mismatch in mat×bytes multiply")
        acc = 0
        for coeff, row in zip(mrow, rows):
            if coeff == 0:
                continue
            acc = _xor_accumulate(acc, _vec_mul_scalar(row, coeff))
        out.append(acc.to_bytes(B, "little"))
    return out


# =============================================================================
# Public API
# =============================================================================


def _check_lengths(shards: Sequence[bytes], B: int) -> None:
    for s in shards:
        if len(s) != B:
            raise ValueError(f"shard has wrong length {len(s)} (expected {B})")


def rs_encode(data_shards: Sequence[bytes], params: StripeParams) -> List[bytes]:
    """
    Compute the m parity shards for exactly k data shards of `block_size` bytes.
    """
    k = params.data_shards
    if len(data_shards) != k:
        raise ValueError(f"expected {k} data shards, got {len(data_shards)}")
    _check_lengths(data_shards, params.block_size)
    if params.parity_shards == 0:
        return []
    rows = [_parity_row(r, k) for r in range(params.parity_shards)]
    return _mat_mul_bytes(rows, data_shards)


def rs_decode(shards: Dict[int, bytes], params: StripeParams) -> List[bytes]:
    """
    Reconstruct the original `k` data shards given a mapping
    {shard_index: bytes} with at least k entries. Returns data shards in
    canonical order 0..k-1.

    Example:
        data = rs_decode({0: d0, 2: d2, 4: p0, 5: p1}, params)  # k=4, m=2
    """
    k = params.data_shards
    n = params.total_shards

    if len(shards) < k:
        raise ValueError(f"need at least k={k} shards to decode, got {len(shards)}")
    for idx in shards:
        if not (0 <= idx < n):
            raise ValueError(f"shard index out of range: {idx}")
    _check_lengths(list(shards.values()), params.block_size)

    # Prefer data rows: when all k data shards survive this is the identity.
    sel = sorted(shards.keys())[:k]
    if sel == list(range(k)):
        return [bytes(shards[i]) for i in sel]
    A_inv = _mat_inv(_select_rows(sel, k))
    return _mat_mul_bytes(A_inv, [shards[i] for i in sel])


def reconstruct(shards: Sequence[Optional[bytes]], params: StripeParams) -> List[bytes]:
    """
    Fill in missing (None) entries of a full k+m shard list. Any k present
    shards suffice.
    """
    n = params.total_shards
    if len(shards) != n:
        raise ValueError(f"expected {n} shard slots, got {len(shards)}")
    provided: Dict[int, bytes] = {i: s for i, s in enumerate(shards) if s is not None}
    if len(provided) < params.data_shards:
        raise ValueError("insufficient shards to reconstruct")
    if len(provided) == n:
        return [bytes(s) for s in shards]  # type: ignore[arg-type]
    data = rs_decode(provided, params)
    parity = rs_encode(data, params)
    return data + parity


def verify(shards: Sequence[bytes], params: StripeParams) -> bool:
    """True iff `shards` is a complete, parity-consistent k+m shard list."""
    if len(shards) != params.total_shards:
        return False
    for s in shards:
        if not isinstance(s, (bytes, bytearray)) or len(s) != params.block_size:
            return False
    k = params.data_shards
    return list(shards[k:]) == rs_encode(list(shards[:k]), params)


# -----------------------------------------------------------------------------
# Convenience OO wrapper
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class RSCodec:
    params: StripeParams

    @property
    def k(self) -> int:
        return self.params.data_shards

    @property
    def n(self) -> int:
        return self.params.total_shards

    @property
    def parity(self) -> int:
        return self.params.parity_shards

    def encode(self, data_shards: Sequence[bytes]) -> List[bytes]:
        return rs_encode(data_shards, self.params)

    def decode(self, shards: Dict[int, bytes]) -> List[bytes]:
        return rs_decode(shards, self.params)

    def reconstruct(self, shards: Sequence[Optional[bytes]]) -> List[bytes]:
        return reconstruct(shards, self.params)

    def verify(self, shards: Sequence[bytes]) -> bool:
        return verify(shards, self.params)


__all__ = [
    "gf_add",
    "gf_mul",
    "gf_inv",
    "rs_encode",
    "rs_decode",
    "reconstruct",
    "verify",
    "RSCodec",
]
