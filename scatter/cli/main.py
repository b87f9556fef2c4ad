"""
scatter — striped erasure-coded file distribution CLI.

Global options:
  --log-level TEXT      DEBUG | INFO | WARNING | ERROR (env SCATTER_LOG_LEVEL)
  --log-format TEXT     json | text (env SCATTER_LOG_FORMAT; default auto by TTY)

Examples:
  scatter encode movie.mkv
  scatter encode movie.mkv -k 10 -m 4 --block-size 64KiB --out /srv/shards
  scatter encode movie.mkv --shuffle keyed --seed 0x2a --json
  scatter inspect /srv/shards/movie.mkv.manifest.json
  scatter verify /srv/shards/movie.mkv.manifest.json

Configuration is resolved in this order (highest to lowest priority):
  1. Command-line flags
  2. Environment variables (SCATTER_DATA_SHARDS, SCATTER_BLOCK_SIZE, ...)
  3. Built-in defaults (k=4, m=2, block size 1024)

Exit codes: 0 ok, 1 verification failed, 2 invalid configuration,
3 I/O error, 4 codec failure, 5 ledger/manifest error, 130 cancelled.
"""

from __future__ import annotations

import json
import signal
import sys
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, NoReturn, Optional

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from ..config import ScatterConfig, format_config, load_from_env, parse_int, parse_size
from ..constants import OVERWRITE_TRUNCATE
from ..encoder import encode_file
from ..errors import ScatterError
from ..logging import configure
from ..manifest import Manifest, load_manifest
from ..metrics import ScatterMetrics
from ..verify import verify_outputs
from ..version import MANIFEST_FORMAT_VERSION, __version__

app = typer.Typer(
    name="scatter",
    help="Stripe a file, Reed–Solomon encode each stripe and scatter the shards",
    no_args_is_help=True,
    add_completion=False,
)


class GlobalContext:
    def __init__(self) -> None:
        self.log_level: Optional[str] = None
        self.log_format: Optional[str] = None


_ctx = GlobalContext()


@app.callback()
def main_callback(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Log level (DEBUG, INFO, WARNING, ERROR)",
        envvar="SCATTER_LOG_LEVEL",
    ),
    log_format: Optional[str] = typer.Option(
        None,
        "--log-format",
        help="Log format: json or text (default: auto by TTY)",
        envvar="SCATTER_LOG_FORMAT",
    ),
) -> None:
    """
    scatter — erasure-coded shard distribution for a single file.
    """
    fmt = log_format.lower() if log_format else None
    if fmt not in (None, "json", "text"):
        raise typer.BadParameter("--log-format must be 'json' or 'text'")
    _ctx.log_level = (log_level or "INFO").upper()
    _ctx.log_format = fmt
    configure(
        json=None if fmt is None else fmt == "json",
        level=_ctx.log_level,
        stream=sys.stderr,
    )


# ---------------- util helpers ----------------


def _console() -> Console:
    return Console(highlight=False)


def _fail(err: ScatterError, json_out: bool) -> NoReturn:
    if json_out:
        typer.echo(json.dumps({"ok": False, "error": err.to_dict()}, indent=2))
    else:
        typer.echo(f"Error: {err.message or err.code}", err=True)
        if err.data:
            typer.echo(f"  {json.dumps(err.data, default=str)}", err=True)
    raise typer.Exit(err.exit_code)


def _base_config(*, validate: bool = True) -> ScatterConfig:
    # Environment is re-read per invocation; get_config() caches.
    cfg = load_from_env(validate=False).with_overrides(
        logging={"level": _ctx.log_level, "format": _ctx.log_format},
    )
    if validate:
        cfg.validate()
    return cfg


@contextmanager
def _cancel_on_signals() -> Iterator[threading.Event]:
    """Turn SIGINT/SIGTERM into a cancellation observed at the next stripe."""
    event = threading.Event()
    if threading.current_thread() is not threading.main_thread():
        yield event
        return

    def _handler(signum: int, frame: Any) -> None:
        event.set()

    previous = {s: signal.signal(s, _handler) for s in (signal.SIGINT, signal.SIGTERM)}
    try:
        yield event
    finally:
        for s, h in previous.items():
            signal.signal(s, h)


def _kv_table(title: str, rows: Dict[str, Any]) -> Table:
    t = Table(title=title, box=box.SIMPLE)
    t.add_column("Field")
    t.add_column("Value", overflow="fold")
    for k, v in rows.items():
        t.add_row(k, str(v))
    return t


# ---------------- commands ----------------


@app.command()
def encode(
    file: Path = typer.Argument(..., help="Input file to scatter"),
    data_shards: Optional[int] = typer.Option(None, "--data", "-k", help="Data shards per stripe (k)"),
    parity_shards: Optional[int] = typer.Option(None, "--parity", "-m", help="Parity shards per stripe (m)"),
    block_size: Optional[str] = typer.Option(None, "--block-size", "-b", help="Bytes per shard (e.g. 1024, 64KiB)"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Output directory (default: beside the input)"),
    shuffle: Optional[str] = typer.Option(None, "--shuffle", help="Placement mode: random or keyed"),
    seed: Optional[str] = typer.Option(None, "--seed", help="RNG seed (random) or key seed (keyed); int or 0x hex"),
    force: bool = typer.Option(False, "--force", "-f", help="Replace existing shard files and manifest"),
    metrics_file: Optional[Path] = typer.Option(
        None, "--metrics-file", help="Write Prometheus textfile metrics here after the run"
    ),
    json_out: bool = typer.Option(False, "--json", help="Output JSON instead of human-readable text"),
) -> None:
    """
    Stripe FILE, Reed–Solomon encode every stripe and scatter its shards over
    k+m files named FILE.0 … FILE.{k+m-1}, then write FILE.manifest.json.

    Examples:
      scatter encode blob.bin
      scatter encode blob.bin -k 6 -m 3 --block-size 4KiB --shuffle keyed
    """
    metrics = ScatterMetrics()
    try:
        cfg = _base_config(validate=False).with_overrides(
            stripe={
                "data_shards": data_shards,
                "parity_shards": parity_shards,
                "block_size": parse_size(block_size) if block_size is not None else None,
            },
            output={
                "out_dir": out,
                "overwrite": OVERWRITE_TRUNCATE if force else None,
            },
            placement={
                "mode": shuffle.strip().lower() if shuffle else None,
                "seed": parse_int(seed, name="--seed") if seed is not None else None,
            },
        )
        with _cancel_on_signals() as cancel:
            result = encode_file(file, cfg, cancel=cancel, metrics=metrics)
    except ScatterError as err:
        _fail(err, json_out)
    finally:
        if metrics_file is not None:
            metrics.write_textfile(str(metrics_file))

    if json_out:
        payload = {"ok": True, **result.to_dict(), "shuffle": result.manifest.shuffle.mode}
        typer.echo(json.dumps(payload, indent=2))
        return

    m = result.manifest
    console = _console()
    console.print(
        _kv_table(
            "Encoded",
            {
                "file": result.input_path,
                "size": f"{result.file_size} bytes",
                "sha256": result.file_sha256,
                "profile": f"k={m.data_shards} m={m.parity_shards} block={m.block_size}",
                "stripes": result.stripe_count,
                "padding": f"{result.padding} bytes",
                "placement": m.shuffle.mode,
                "manifest": result.manifest_path,
                "duration": f"{result.duration_seconds:.3f}s",
            },
        )
    )
    console.print(f"sha256 {result.file_sha256}", soft_wrap=True)


def _ledger_rows(manifest: Manifest, limit: int) -> Table:
    ledger = manifest.distribution_ledger()
    t = Table(title=f"Distribution ledger ({len(ledger)} stripes)", box=box.SIMPLE)
    t.add_column("Stripe", justify="right")
    t.add_column("Placement (logical → file)", overflow="fold")
    for idx in range(min(len(ledger), limit)):
        if ledger.is_intact(idx):
            t.add_row(str(idx), " ".join(str(p) for p in ledger.permutation_for(idx)))
        else:
            t.add_row(str(idx), "[red]damaged[/red]")
    return t


@app.command()
def inspect(
    manifest_path: Path = typer.Argument(..., help="Path to a FILE.manifest.json"),
    limit: int = typer.Option(20, "--limit", help="Ledger rows to show"),
    json_out: bool = typer.Option(False, "--json", help="Output the manifest as JSON"),
) -> None:
    """Show a manifest summary, its shard files and the distribution ledger."""
    try:
        manifest = load_manifest(manifest_path)
    except ScatterError as err:
        _fail(err, json_out)

    if json_out:
        typer.echo(json.dumps(manifest.to_dict(), indent=2))
        return

    console = _console()
    shuffle = manifest.shuffle
    console.print(
        _kv_table(
            "Manifest",
            {
                "file": manifest.file_name,
                "size": f"{manifest.file_size} bytes",
                "sha256": manifest.file_sha256,
                "profile": f"k={manifest.data_shards} m={manifest.parity_shards} block={manifest.block_size}",
                "stripes": manifest.stripe_count,
                "padding": f"{manifest.padding} bytes",
                "placement": shuffle.mode,
                "seed/key": shuffle.key if shuffle.key else shuffle.seed,
                "block digests": f"{manifest.block_digests.name} ({manifest.block_digests.size} bytes)",
                "created": manifest.created_at,
                "written by": f"scatter {manifest.tool_version}",
            },
        )
    )
    shards = Table(title="Shard files", box=box.SIMPLE)
    shards.add_column("#", justify="right")
    shards.add_column("Name")
    shards.add_column("Bytes", justify="right")
    shards.add_column("SHA-256", overflow="fold")
    for s in sorted(manifest.shards, key=lambda e: e.index):
        shards.add_row(str(s.index), s.name, str(s.size), s.sha256)
    console.print(shards)
    console.print(_ledger_rows(manifest, limit))


@app.command()
def verify(
    manifest_path: Path = typer.Argument(..., help="Path to a FILE.manifest.json"),
    directory: Optional[Path] = typer.Option(
        None, "--dir", "-d", help="Directory holding the shard files (default: the manifest's)"
    ),
    json_out: bool = typer.Option(False, "--json", help="Output JSON instead of human-readable text"),
) -> None:
    """Check shard sizes, digests and ledger consistency. Exit 1 on any issue."""
    try:
        manifest = load_manifest(manifest_path)
    except ScatterError as err:
        _fail(err, json_out)

    report = verify_outputs(manifest, directory if directory is not None else manifest_path.parent)
    if json_out:
        typer.echo(json.dumps(report.to_dict(), indent=2))
    else:
        console = _console()
        if report.ok:
            console.print(
                f"[green]✓[/green] {report.shards_checked} shard files, "
                f"{report.stripes_checked} stripes verified"
            )
        else:
            t = Table(title="Verification issues", box=box.SIMPLE)
            t.add_column("Kind")
            t.add_column("Shard", justify="right")
            t.add_column("Stripe", justify="right")
            t.add_column("Detail", overflow="fold")
            for issue in report.issues:
                t.add_row(
                    issue.kind,
                    "" if issue.shard is None else str(issue.shard),
                    "" if issue.stripe is None else str(issue.stripe),
                    issue.detail,
                )
            console.print(t)
            console.print(f"[red]✗[/red] {len(report.issues)} issue(s)")
    if not report.ok:
        raise typer.Exit(1)


@app.command("config")
def show_config(
    json_out: bool = typer.Option(False, "--json", help="Output JSON instead of text"),
) -> None:
    """Print the effective configuration (defaults + environment + global log flags)."""
    try:
        cfg = _base_config()
    except ScatterError as err:
        _fail(err, json_out)
    if json_out:
        typer.echo(json.dumps(cfg.to_dict(), indent=2, default=str))
    else:
        typer.echo(format_config(cfg))


@app.command()
def version() -> None:
    """Print the scatter version."""
    typer.echo(f"scatter {__version__} (manifest format v{MANIFEST_FORMAT_VERSION})")


def main() -> None:
    """Entry point for the scatter CLI."""
    app()


if __name__ == "__main__":
    main()
