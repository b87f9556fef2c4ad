"""
scatter utilities — Hashing helpers (SHA-256)

  • `file_digest` — whole-file digest in one streaming pass, independent of
    stripe boundaries. It opens its own handle, so the striping pass never
    depends on rewinding a shared stream.
  • `block_digest` — raw 32-byte digest of a single shard buffer, the record
    unit of the per-block digest file.
  • `RunningDigest` — incremental digest + byte count of one destination file.

Except for `block_digest`, digests are lowercase hex strings without a prefix.
"""

from __future__ import annotations

import hashlib
import os
from typing import Union

from ..constants import HASH_CHUNK_SIZE
from ..errors import ScatterIOError

BytesLike = Union[bytes, bytearray, memoryview]
PathLike = Union[str, "os.PathLike[str]"]


def block_digest(data: BytesLike) -> bytes:
    """Return SHA-256(bytes(data)) as raw bytes."""
    return hashlib.sha256(data).digest()


def file_digest(path: PathLike, *, chunk_size: int = HASH_CHUNK_SIZE) -> str:
    """
    Stream `path` once and return its SHA-256 hex digest.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    h = hashlib.sha256()
    try:
        with open(path, "rb") as fp:
            while True:
                chunk = fp.read(chunk_size)
                if not chunk:
                    break
                h.update(chunk)
    except OSError as exc:
        raise ScatterIOError.from_exc(exc, data={"path": os.fspath(path)}) from exc
    return h.hexdigest()


class RunningDigest:
    """SHA-256 over everything appended to one destination, plus its size."""

    __slots__ = ("_h", "size")

    def __init__(self) -> None:
        self._h = hashlib.sha256()
        self.size = 0

    def update(self, data: BytesLike) -> None:
        self._h.update(data)
        self.size += len(data)

    def hexdigest(self) -> str:
        return self._h.hexdigest()


__all__ = ["block_digest", "file_digest", "RunningDigest"]
