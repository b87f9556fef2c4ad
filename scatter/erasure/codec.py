"""
scatter • Erasure — Codec adapter

The narrow surface the striping pipeline consumes:

    split(buffer)        -> [d_0 .. d_{k-1}, None * m]   (parity slots empty)
    encode(shards)       -> [d_0 .. d_{k-1}, p_0 .. p_{m-1}]
    reconstruct(shards)  -> all k+m shards from any k present ones

Every call is deterministic and side-effect free. Precondition violations and
internal RS failures surface as `CodecError`, which the orchestrator treats as
fatal for the run.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from ..errors import CodecError
from .params import StripeParams
from .reedsolomon import RSCodec

ShardSlots = List[Optional[bytes]]


class CodecAdapter:
    def __init__(self, params: StripeParams) -> None:
        self.params = params
        self._rs = RSCodec(params)

    def split(self, buffer: bytes) -> ShardSlots:
        """
        Partition one stripe buffer into k equal data shards and append m
        empty parity slots.
        """
        p = self.params
        if not isinstance(buffer, (bytes, bytearray, memoryview)):
            raise CodecError("stripe buffer must be bytes-like")
        if len(buffer) != p.stripe_bytes:
            raise CodecError(
                "stripe buffer must be exactly k * block_size bytes",
                data={"expected": p.stripe_bytes, "got": len(buffer)},
            )
        mv = memoryview(buffer)
        B = p.block_size
        shards: ShardSlots = [mv[i * B : (i + 1) * B].tobytes() for i in range(p.data_shards)]
        shards.extend([None] * p.parity_shards)
        return shards

    def encode(self, shards: Sequence[Optional[bytes]]) -> List[bytes]:
        """Fill the parity slots of a split shard set."""
        p = self.params
        if len(shards) != p.total_shards:
            raise CodecError(
                "shard set has wrong length",
                data={"expected": p.total_shards, "got": len(shards)},
            )
        data = list(shards[: p.data_shards])
        if any(s is None for s in data):
            raise CodecError("data shard slot is empty")
        try:
            parity = self._rs.encode(data)  # type: ignore[arg-type]
        except ValueError as exc:
            raise CodecError.from_exc(exc) from exc
        return list(data) + parity  # type: ignore[operator]

    def reconstruct(self, shards: Sequence[Optional[bytes]]) -> List[bytes]:
        """Rebuild every shard of a stripe; missing shards are None."""
        try:
            return self._rs.reconstruct(shards)
        except ValueError as exc:
            raise CodecError.from_exc(
                exc, data={"present": sum(s is not None for s in shards)}
            ) from exc

    def verify(self, shards: Sequence[bytes]) -> bool:
        return self._rs.verify(shards)


__all__ = ["CodecAdapter", "ShardSlots"]
