"""
scatter utilities — filesystem helpers

Durable writes follow write → fsync → atomic rename → fsync(dir), so a crash
leaves either the old file or the complete new one, never a torn file.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from typing import Union

BytesLike = Union[bytes, bytearray, memoryview]


def ensure_dir(path: Union[str, "os.PathLike[str]"]) -> None:
    os.makedirs(path, exist_ok=True)


def fsync_dir(path: Union[str, "os.PathLike[str]"]) -> None:
    """Make directory entries (renames, creates) durable. No-op where unsupported."""
    try:
        dir_fd = os.open(path, os.O_RDONLY)
    except OSError:
        return
    try:
        with contextlib.suppress(OSError):
            os.fsync(dir_fd)
    finally:
        os.close(dir_fd)


def atomic_write_bytes(dst_path: Union[str, "os.PathLike[str]"], data: BytesLike) -> None:
    dst = os.fspath(dst_path)
    parent = os.path.dirname(dst) or "."
    ensure_dir(parent)
    fd, tmp_path = tempfile.mkstemp(prefix=".tmp_", dir=parent)
    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_path, dst)
    finally:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp_path)  # if replace failed
    fsync_dir(parent)


__all__ = ["ensure_dir", "fsync_dir", "atomic_write_bytes"]
