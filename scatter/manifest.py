"""
scatter • Manifest

The metadata artifact written beside the shard files once a run commits:

    <out_dir>/<base_name>.manifest.json

It carries everything a later reader needs to undo the scatter: the exact
input size and digest, the striping profile, the placement mode (with the
seed or key), per-destination sizes and digests, and the Distribution Ledger
itself. Per-block digests live in the `<base_name>.blocks.sha256` file beside
the shards; the manifest pins that file by name, size and digest, so its own
size grows only with the ledger.

Encoding is compact `msgspec.json` over typed Structs. Loading validates the
structure strictly, except for ledger entries, which are kept as-is so that a
corrupted placement only disables its own stripe.
"""

from __future__ import annotations

import datetime as _dt
import os
from pathlib import Path
from typing import Any, List, Optional, Union

import msgspec

from .constants import (
    BLOCK_DIGEST_SIZE,
    BLOCK_DIGESTS_SUFFIX,
    MANIFEST_SUFFIX,
    OVERWRITE_FAIL,
    SHUFFLE_KEYED,
    SHUFFLE_MODES,
)
from .erasure.params import StripeParams
from .errors import ConfigError, ManifestError, OutputExistsError, ScatterIOError
from .placement.ledger import DistributionLedger
from .utils.fs import atomic_write_bytes
from .version import MANIFEST_FORMAT_VERSION, __version__

MANIFEST_FORMAT = "scatter-manifest"

PathLike = Union[str, "os.PathLike[str]"]


# --------------------------------------------------------------------------- #
# Model
# --------------------------------------------------------------------------- #


class ShuffleInfo(msgspec.Struct, kw_only=True, omit_defaults=True):
    mode: str
    seed: Optional[int] = None
    key: Optional[str] = None


class ShardEntry(msgspec.Struct, kw_only=True):
    index: int
    name: str
    size: int
    sha256: str


class BlockDigestsEntry(msgspec.Struct, kw_only=True):
    name: str
    size: int
    sha256: str


class Manifest(msgspec.Struct, kw_only=True):
    file_name: str
    file_size: int
    file_sha256: str
    data_shards: int
    parity_shards: int
    block_size: int
    stripe_count: int
    padding: int
    shuffle: ShuffleInfo
    shards: List[ShardEntry]
    block_digests: BlockDigestsEntry
    # Entries stay untyped: damaged ones must survive decoding.
    ledger: List[Any]
    created_at: str
    tool_version: str = __version__
    format: str = MANIFEST_FORMAT
    version: int = MANIFEST_FORMAT_VERSION

    @property
    def params(self) -> StripeParams:
        return StripeParams(self.data_shards, self.parity_shards, self.block_size)

    @property
    def total_shards(self) -> int:
        return self.data_shards + self.parity_shards

    @property
    def destination_size(self) -> int:
        return self.stripe_count * self.block_size

    def distribution_ledger(self) -> DistributionLedger:
        return DistributionLedger.from_list(self.ledger, self.total_shards)

    def to_dict(self) -> dict:
        return msgspec.to_builtins(self)


# --------------------------------------------------------------------------- #
# Construction
# --------------------------------------------------------------------------- #


def _utcnow_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat(timespec="seconds")


def manifest_path_for(out_dir: PathLike, base_name: str) -> Path:
    return Path(out_dir) / f"{base_name}{MANIFEST_SUFFIX}"


def build_manifest(
    *,
    file_name: str,
    file_size: int,
    file_sha256: str,
    params: StripeParams,
    shuffle: dict,
    shards: List[ShardEntry],
    block_digests: BlockDigestsEntry,
    ledger: DistributionLedger,
) -> Manifest:
    """Assemble a manifest for a committed run."""
    return Manifest(
        file_name=file_name,
        file_size=file_size,
        file_sha256=file_sha256,
        data_shards=params.data_shards,
        parity_shards=params.parity_shards,
        block_size=params.block_size,
        stripe_count=params.stripes_for_size(file_size),
        padding=params.padding_for_size(file_size),
        shuffle=ShuffleInfo(**shuffle),
        shards=list(shards),
        block_digests=block_digests,
        ledger=ledger.to_list(),
        created_at=_utcnow_iso(),
    )


# --------------------------------------------------------------------------- #
# Validation
# --------------------------------------------------------------------------- #


def validate_manifest(m: Manifest) -> None:
    """
    Structural checks beyond msgspec's type validation. Ledger entries are
    deliberately not checked here; see DistributionLedger.permutation_for.
    """
    if m.format != MANIFEST_FORMAT:
        raise ManifestError("not a scatter manifest", data={"format": m.format})
    if m.version > MANIFEST_FORMAT_VERSION:
        raise ManifestError(
            "manifest was written by a newer scatter",
            data={"version": m.version, "supported": MANIFEST_FORMAT_VERSION},
        )
    try:
        params = m.params
    except ConfigError as exc:
        raise ManifestError(exc.message, data=exc.data) from exc
    if m.file_size < 0:
        raise ManifestError("file_size must be non-negative", data={"file_size": m.file_size})
    if m.stripe_count != params.stripes_for_size(m.file_size):
        raise ManifestError(
            "stripe_count does not match file_size and striping profile",
            data={"stripe_count": m.stripe_count, "expected": params.stripes_for_size(m.file_size)},
        )
    if m.padding != params.padding_for_size(m.file_size):
        raise ManifestError("padding does not match file_size", data={"padding": m.padding})
    if m.shuffle.mode not in SHUFFLE_MODES:
        raise ManifestError("unknown shuffle mode", data={"mode": m.shuffle.mode})
    if m.shuffle.mode == SHUFFLE_KEYED and not m.shuffle.key:
        raise ManifestError("keyed placement without a key")
    if sorted(s.index for s in m.shards) != list(range(params.total_shards)):
        raise ManifestError(
            "shard list must name every destination exactly once",
            data={"total_shards": params.total_shards},
        )
    if not m.file_name or "/" in m.file_name or "\\" in m.file_name or m.file_name in (".", ".."):
        raise ManifestError("file_name must be a bare file name", data={"file_name": m.file_name})
    for s in m.shards:
        if s.name != f"{m.file_name}.{s.index}":
            raise ManifestError("unexpected shard file name", data={"index": s.index, "name": s.name})
    if m.block_digests.name != f"{m.file_name}{BLOCK_DIGESTS_SUFFIX}":
        raise ManifestError("unexpected block digest file name", data={"name": m.block_digests.name})
    expected = m.stripe_count * params.total_shards * BLOCK_DIGEST_SIZE
    if m.block_digests.size != expected:
        raise ManifestError(
            "block digest file size does not match stripe_count",
            data={"size": m.block_digests.size, "expected": expected},
        )


# --------------------------------------------------------------------------- #
# I/O
# --------------------------------------------------------------------------- #


def encode_manifest(m: Manifest) -> bytes:
    return msgspec.json.encode(m) + b"\n"


def decode_manifest(payload: bytes) -> Manifest:
    try:
        m = msgspec.json.decode(payload, type=Manifest)
    except (msgspec.DecodeError, msgspec.ValidationError) as exc:
        raise ManifestError.from_exc(exc) from exc
    validate_manifest(m)
    return m


def write_manifest(m: Manifest, path: PathLike, *, overwrite: str = OVERWRITE_FAIL) -> Path:
    """Durably write the manifest (temp file, fsync, rename)."""
    dst = Path(path)
    if overwrite == OVERWRITE_FAIL and dst.exists():
        raise OutputExistsError("manifest already exists", data={"path": str(dst)})
    try:
        atomic_write_bytes(dst, encode_manifest(m))
    except OSError as exc:
        raise ScatterIOError.from_exc(exc, data={"path": str(dst)}) from exc
    return dst


def load_manifest(path: PathLike) -> Manifest:
    try:
        payload = Path(path).read_bytes()
    except OSError as exc:
        raise ScatterIOError.from_exc(exc, data={"path": os.fspath(path)}) from exc
    return decode_manifest(payload)


__all__ = [
    "MANIFEST_FORMAT",
    "BlockDigestsEntry",
    "Manifest",
    "ShardEntry",
    "ShuffleInfo",
    "build_manifest",
    "decode_manifest",
    "encode_manifest",
    "load_manifest",
    "manifest_path_for",
    "validate_manifest",
    "write_manifest",
]
