"""
scatter • Encoder (orchestrator)

Drives one encoding run end to end:

  1) validate configuration (nothing is opened before this passes)
  2) stat the input and derive the stripe count
  3) whole-file SHA-256 in its own pass
  4) stripe pass: read → split → encode → permute → write → record
  5) drop any previous manifest, commit shard and block digest files,
     then durably write the new manifest
  6) report duration (log, result, metrics)

Any failure aborts the shard writer, so staged part files never survive a
failed run, and propagates as a `ScatterError` subclass. Nothing is retried.

Example
-------
    from scatter.config import ScatterConfig
    from scatter.encoder import encode_file

    res = encode_file("movie.mkv", ScatterConfig())
    print(res.stripe_count, res.file_sha256, res.manifest_path)
"""

from __future__ import annotations

import contextlib
import stat
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union

from .config import ScatterConfig, get_config
from .constants import OVERWRITE_FAIL
from .erasure.codec import CodecAdapter
from .errors import (
    ConfigError,
    EncodeCancelled,
    OutputExistsError,
    ScatterError,
    ScatterIOError,
)
from .logging import bind, get_logger, trace_scope
from .manifest import (
    BlockDigestsEntry,
    Manifest,
    ShardEntry,
    build_manifest,
    manifest_path_for,
    write_manifest,
)
from .metrics import ScatterMetrics, get_metrics
from .placement.ledger import DistributionLedger
from .placement.shuffler import make_shuffler
from .stripe.reader import StripeReader
from .utils.hash import file_digest
from .writer import ShardWriter

log = get_logger("scatter.encoder")


class CancelSignal(Protocol):
    def is_set(self) -> bool: ...


@dataclass(frozen=True)
class EncodeResult:
    input_path: Path
    file_size: int
    file_sha256: str
    stripe_count: int
    padding: int
    shard_paths: List[Path]
    manifest_path: Path
    duration_seconds: float
    manifest: Manifest

    def to_dict(self) -> Dict[str, Any]:
        return {
            "input": str(self.input_path),
            "file_size": self.file_size,
            "file_sha256": self.file_sha256,
            "stripe_count": self.stripe_count,
            "padding": self.padding,
            "shards": [str(p) for p in self.shard_paths],
            "manifest": str(self.manifest_path),
            "duration_seconds": round(self.duration_seconds, 6),
        }


def encode_file(
    input_path: Union[str, Path],
    config: Optional[ScatterConfig] = None,
    *,
    shuffler: Any = None,
    cancel: Optional[CancelSignal] = None,
    metrics: Optional[ScatterMetrics] = None,
) -> EncodeResult:
    """
    Stripe, erasure-code and scatter `input_path` into k+m shard files.

    Args:
        input_path: file to encode; its name becomes the shard base name.
        config:     run configuration (default: `get_config()`).
        shuffler:   placement generator exposing `permute(n, stripe_index)`
                    and `describe()`; built from `config.placement` if None.
        cancel:     object with `is_set()`, polled at every stripe boundary.
        metrics:    ScatterMetrics sink (default: process singleton).
    """
    cfg = config if config is not None else get_config()
    cfg.validate()
    if shuffler is None:
        try:
            shuffler = make_shuffler(cfg.placement.mode, cfg.placement.seed)
        except ValueError as exc:
            raise ConfigError.from_exc(exc, data={"mode": cfg.placement.mode}) from exc
    sink = metrics if metrics is not None else get_metrics()
    src = Path(input_path)

    with trace_scope(), sink.time_run() as run:
        bind(component="encoder", file=src.name)
        try:
            result = _encode(src, cfg, shuffler, cancel, sink)
        except ScatterError as err:
            run.fail(err.code)
            log.error("encode failed", extra={"code": err.code, "detail": err.message})
            raise
        run.ok()
        log.info(
            "encode finished",
            extra={
                "file_size": result.file_size,
                "stripes": result.stripe_count,
                "sha256": result.file_sha256,
                "duration_s": round(result.duration_seconds, 6),
            },
        )
        return result


def _remove_stale_manifest(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        return
    except OSError as exc:
        raise ScatterIOError.from_exc(exc, data={"path": str(path)}) from exc
    log.info("removed previous manifest", extra={"path": path})


def _encode(
    src: Path,
    cfg: ScatterConfig,
    shuffler: Any,
    cancel: Optional[CancelSignal],
    sink: ScatterMetrics,
) -> EncodeResult:
    started = time.perf_counter()
    params = cfg.stripe.params()
    total = params.total_shards

    try:
        st = src.stat()
    except OSError as exc:
        raise ScatterIOError.from_exc(exc, data={"path": str(src)}) from exc
    if not stat.S_ISREG(st.st_mode):
        raise ScatterIOError("input is not a regular file", data={"path": str(src)})
    file_size = st.st_size
    stripe_count = params.stripes_for_size(file_size)

    out_dir = Path(cfg.output.out_dir) if cfg.output.out_dir is not None else src.parent
    base_name = src.name
    manifest_path = manifest_path_for(out_dir, base_name)
    if cfg.output.overwrite == OVERWRITE_FAIL and manifest_path.exists():
        raise OutputExistsError("manifest already exists", data={"path": str(manifest_path)})

    log.info(
        "encode started",
        extra={
            "file_size": file_size,
            "stripes": stripe_count,
            "k": params.data_shards,
            "m": params.parity_shards,
            "block_size": params.block_size,
            "out_dir": out_dir,
            "shuffle": shuffler.describe().get("mode"),
        },
    )

    digest = file_digest(src)

    codec = CodecAdapter(params)
    ledger = DistributionLedger(total)
    consumed = 0

    writer = ShardWriter(
        out_dir,
        base_name,
        total,
        block_size=params.block_size,
        overwrite=cfg.output.overwrite,
        fsync=cfg.output.fsync,
    )
    try:
        try:
            fp = open(src, "rb")
        except OSError as exc:
            raise ScatterIOError.from_exc(exc, data={"path": str(src)}) from exc
        with fp:
            reader = StripeReader(fp, params)
            for stripe in reader:
                if cancel is not None and cancel.is_set():
                    raise EncodeCancelled(
                        "encoding cancelled",
                        data={"stripe": stripe.index, "committed": writer.committed_stripes},
                    )
                with sink.time_stripe():
                    shards = codec.encode(codec.split(stripe.data))
                    perm = shuffler.permute(total, stripe.index)
                    writer.write(stripe.index, shards, perm)
                    ledger.record(stripe.index, perm)
                consumed += stripe.data_len
                sink.note_stripe(input_bytes=stripe.data_len, shard_bytes=total * params.block_size)
                log.debug(
                    "stripe written",
                    extra={"stripe": stripe.index, "data_len": stripe.data_len, "final": stripe.is_final},
                )

        if consumed != file_size or reader.stripes_read != stripe_count:
            raise ScatterIOError(
                "input changed size while encoding",
                data={"expected": file_size, "read": consumed},
            )

        # A replaced run must not leave its manifest describing the new shards.
        _remove_stale_manifest(manifest_path)
        shard_files = writer.close()
        digests = writer.block_digest_file()
    except BaseException:
        writer.abort()
        raise

    manifest = build_manifest(
        file_name=base_name,
        file_size=file_size,
        file_sha256=digest,
        params=params,
        shuffle=shuffler.describe(),
        shards=[ShardEntry(index=f.index, name=f.path.name, size=f.size, sha256=f.sha256) for f in shard_files],
        block_digests=BlockDigestsEntry(name=digests.path.name, size=digests.size, sha256=digests.sha256),
        ledger=ledger,
    )
    try:
        write_manifest(manifest, manifest_path, overwrite=cfg.output.overwrite)
    except BaseException:
        # Shards without their manifest cannot be unshuffled.
        for path in [f.path for f in shard_files] + [digests.path]:
            with contextlib.suppress(OSError):
                path.unlink()
        raise

    duration = time.perf_counter() - started
    return EncodeResult(
        input_path=src,
        file_size=file_size,
        file_sha256=digest,
        stripe_count=stripe_count,
        padding=manifest.padding,
        shard_paths=[f.path for f in shard_files],
        manifest_path=manifest_path,
        duration_seconds=duration,
        manifest=manifest,
    )


__all__ = ["CancelSignal", "EncodeResult", "encode_file"]
