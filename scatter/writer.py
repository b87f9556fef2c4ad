"""
scatter • Shard Writer

Appends each stripe's shards to per-destination files according to the
stripe's placement permutation: logical shard i goes to destination
`perm[i]`, file `<base_name>.<perm[i]>` in the output directory.

Block digests
-------------
Alongside the shards the writer appends one raw SHA-256 per logical shard to
`<base_name>.blocks.sha256`, in stripe order and logical order within a
stripe, so the record for (stripe s, logical l) sits at byte offset
`(s * (k+m) + l) * 32`. The file grows with the input and is never held in
memory.

Staging
-------
Bytes are written to `<name>.part` files. A stripe counts as committed only
once every one of its shards and its digest row have landed. `close()`
flushes, fsyncs and atomically renames each part file to its final name.
`abort()` never leaves one destination ahead of another by a partial stripe:
part files are either deleted (default) or truncated back to the last
committed stripe boundary.

Ordering
--------
Stripes must arrive in strictly increasing index order starting at 0;
within each destination file, stripe order equals logical stripe order.
"""

from __future__ import annotations

import contextlib
import os
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, List, Optional, Sequence, Union

from .constants import (
    BLOCK_DIGEST_SIZE,
    BLOCK_DIGESTS_SUFFIX,
    OVERWRITE_FAIL,
    OVERWRITE_MODES,
    PART_SUFFIX,
)
from .errors import ConfigError, LedgerError, OutputExistsError, ScatterIOError
from .logging import get_logger
from .placement.shuffler import is_permutation
from .utils.fs import ensure_dir, fsync_dir
from .utils.hash import RunningDigest, block_digest

log = get_logger("scatter.writer")

_OPEN, _CLOSED, _ABORTED, _FAILED = "open", "closed", "aborted", "failed"


@dataclass(frozen=True)
class ShardFile:
    """Final state of one physical destination."""

    index: int
    path: Path
    size: int
    sha256: str


@dataclass(frozen=True)
class BlockDigestFile:
    path: Path
    size: int
    sha256: str


def shard_path(out_dir: Union[str, Path], base_name: str, index: int) -> Path:
    return Path(out_dir) / f"{base_name}.{index}"


def block_digests_path(out_dir: Union[str, Path], base_name: str) -> Path:
    return Path(out_dir) / f"{base_name}{BLOCK_DIGESTS_SUFFIX}"


class ShardWriter:
    def __init__(
        self,
        out_dir: Union[str, Path],
        base_name: str,
        total_shards: int,
        *,
        block_size: int,
        overwrite: str = OVERWRITE_FAIL,
        fsync: bool = True,
    ) -> None:
        if overwrite not in OVERWRITE_MODES:
            raise ConfigError(f"overwrite must be one of {OVERWRITE_MODES}", data={"overwrite": overwrite})
        if total_shards < 1:
            raise ConfigError("total_shards must be >= 1")
        self.out_dir = Path(out_dir)
        self.base_name = base_name
        self.total_shards = total_shards
        self.block_size = block_size
        self.overwrite = overwrite
        self._fsync = fsync

        self.paths: List[Path] = [shard_path(self.out_dir, base_name, i) for i in range(total_shards)]
        self.digests_path = block_digests_path(self.out_dir, base_name)
        self._parts: List[Path] = [Path(str(p) + PART_SUFFIX) for p in self.paths]
        self._digests_part = Path(str(self.digests_path) + PART_SUFFIX)
        self._handles: List[Optional[BinaryIO]] = [None] * total_shards
        self._digests: List[RunningDigest] = [RunningDigest() for _ in range(total_shards)]
        self._log: Optional[BinaryIO] = None
        self._log_digest = RunningDigest()
        self._committed = 0
        self._state = _OPEN

        self._prepare()

    # ---- setup -------------------------------------------------------------

    def _prepare(self) -> None:
        existing = [str(p) for p in self.paths + [self.digests_path] if p.exists()]
        if existing and self.overwrite == OVERWRITE_FAIL:
            raise OutputExistsError(
                "shard files already exist; refusing to append to stale data",
                data={"paths": existing},
            )
        try:
            ensure_dir(self.out_dir)
        except OSError as exc:
            raise ScatterIOError.from_exc(exc, data={"out_dir": str(self.out_dir)}) from exc

    def _handle(self, index: int) -> BinaryIO:
        fh = self._handles[index]
        if fh is None:
            # Part files are private to this run: create or truncate.
            fh = open(self._parts[index], "wb")
            self._handles[index] = fh
        return fh

    def _log_handle(self) -> BinaryIO:
        if self._log is None:
            self._log = open(self._digests_part, "wb")
        return self._log

    # ---- state -------------------------------------------------------------

    @property
    def committed_stripes(self) -> int:
        return self._committed

    @property
    def closed(self) -> bool:
        return self._state != _OPEN

    def _require_open(self) -> None:
        if self._state != _OPEN:
            raise ScatterIOError(f"writer is {self._state}", data={"base_name": self.base_name})

    # ---- writing -----------------------------------------------------------

    def write(self, stripe_index: int, shards: Sequence[bytes], permutation: Sequence[int]) -> None:
        """Write one stripe's k+m shards to their permuted destinations."""
        self._require_open()
        if stripe_index != self._committed:
            raise ScatterIOError(
                "stripes must be written in increasing order without gaps",
                data={"expected": self._committed, "got": stripe_index},
            )
        if len(shards) != self.total_shards:
            raise ScatterIOError(
                "shard set has wrong length",
                data={"expected": self.total_shards, "got": len(shards)},
            )
        for shard in shards:
            if not isinstance(shard, (bytes, bytearray, memoryview)) or len(shard) != self.block_size:
                raise ScatterIOError("shard has wrong type or length", data={"stripe": stripe_index})
        if not is_permutation(permutation, self.total_shards):
            raise LedgerError("placement is not a permutation", data={"stripe": stripe_index})

        row = b"".join(block_digest(s) for s in shards)
        dest: Optional[int] = None
        try:
            for logical, shard in enumerate(shards):
                dest = permutation[logical]
                self._handle(dest).write(shard)
                self._digests[dest].update(shard)
            dest = None
            self._log_handle().write(row)
            self._log_digest.update(row)
        except OSError as exc:
            self._state = _FAILED
            raise ScatterIOError.from_exc(
                exc, data={"stripe": stripe_index, "destination": dest}
            ) from exc
        self._committed += 1

    # ---- finishing ---------------------------------------------------------

    def _finish(self, fh: BinaryIO) -> None:
        fh.flush()
        if self._fsync:
            os.fsync(fh.fileno())
        fh.close()

    def close(self) -> List[ShardFile]:
        """Flush, fsync and publish every destination under its final name."""
        self._require_open()
        try:
            for i in range(self.total_shards):
                self._finish(self._handle(i))  # creates empty destinations for empty inputs
                self._handles[i] = None
            self._finish(self._log_handle())
            self._log = None
            for part, final in zip(self._parts + [self._digests_part], self.paths + [self.digests_path]):
                os.replace(part, final)
            fsync_dir(self.out_dir)
        except OSError as exc:
            self._state = _FAILED
            raise ScatterIOError.from_exc(exc, data={"out_dir": str(self.out_dir)}) from exc
        self._state = _CLOSED
        log.debug(
            "shard files published",
            extra={"destinations": self.total_shards, "stripes": self._committed},
        )
        return self.shard_files()

    def abort(self, *, keep_partial: bool = False) -> None:
        """
        Discard staged output. With keep_partial, part files are kept but cut
        back to the last committed stripe so all destinations stay aligned.
        """
        if self._state in (_CLOSED, _ABORTED):
            return
        for fh in self._handles + [self._log]:
            if fh is not None:
                with contextlib.suppress(OSError):
                    fh.close()
        self._handles = [None] * self.total_shards
        self._log = None
        staged = [(part, self._committed * self.block_size) for part in self._parts]
        staged.append((self._digests_part, self._committed * self.total_shards * BLOCK_DIGEST_SIZE))
        for part, boundary in staged:
            if not part.exists():
                continue
            with contextlib.suppress(OSError):
                if keep_partial:
                    os.truncate(part, boundary)
                else:
                    part.unlink()
        self._state = _ABORTED
        log.warning(
            "shard output aborted",
            extra={"committed_stripes": self._committed, "kept_partial": keep_partial},
        )

    def shard_files(self) -> List[ShardFile]:
        return [
            ShardFile(index=i, path=self.paths[i], size=d.size, sha256=d.hexdigest())
            for i, d in enumerate(self._digests)
        ]

    def block_digest_file(self) -> BlockDigestFile:
        return BlockDigestFile(
            path=self.digests_path,
            size=self._log_digest.size,
            sha256=self._log_digest.hexdigest(),
        )

    # ---- context manager ---------------------------------------------------

    def __enter__(self) -> "ShardWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.abort()
        elif self._state == _OPEN:
            self.close()


__all__ = ["BlockDigestFile", "ShardFile", "ShardWriter", "block_digests_path", "shard_path"]
