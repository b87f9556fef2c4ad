"""
Prometheus metrics for scatter encoding runs.

This module centralizes counters and histograms for:
- Runs by outcome (ok / config_invalid / io_error / codec_error / cancelled ...)
- Stripes encoded, input bytes consumed, shard bytes written
- Run duration and per-stripe latency

Typical usage (inside the encoder):

    from scatter.metrics import get_metrics

    METRICS = get_metrics()

    with METRICS.time_run() as run:
        for stripe in reader:
            with METRICS.time_stripe():
                ...
            METRICS.note_stripe(input_bytes=stripe.data_len, shard_bytes=n * B)
        run.ok()  # or run.fail(err.code)

For batch/cron use, `write_textfile(path)` dumps the registry in the format
the node-exporter textfile collector reads.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, write_to_textfile


class ScatterMetrics:
    """
    Concrete metrics backed by prometheus_client.

    Each instance owns a fresh `CollectorRegistry` unless one is injected,
    so repeated construction (tests, embedded use) never collides on names.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        reg = self.registry

        self.runs_total = Counter(
            "scatter_encode_runs_total",
            "Encoding runs grouped by outcome",
            ["outcome"],
            registry=reg,
        )
        self.stripes_total = Counter(
            "scatter_stripes_total",
            "Stripes split, encoded and written",
            registry=reg,
        )
        self.input_bytes_total = Counter(
            "scatter_input_bytes_total",
            "Meaningful input bytes consumed by the stripe pass",
            registry=reg,
        )
        self.shard_bytes_total = Counter(
            "scatter_shard_bytes_written_total",
            "Shard bytes (data + parity, including padding) written to destinations",
            registry=reg,
        )
        self.run_duration = Histogram(
            "scatter_encode_duration_seconds",
            "Wall-clock duration of an encoding run (seconds)",
            registry=reg,
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 300.0),
        )
        self.stripe_duration = Histogram(
            "scatter_stripe_duration_seconds",
            "Per-stripe read → encode → write latency (seconds)",
            registry=reg,
            buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
        )

    # ------------------------------- timers ----------------------------------

    @contextmanager
    def time_run(self):
        """
        Record run duration and outcome.

            with METRICS.time_run() as run:
                ...
                run.ok()
        An exception escaping the block counts as outcome "error" unless
        `run.fail(code)` named it first.
        """
        start = time.perf_counter()
        outcome_ref = {"v": None}

        class _Mark:
            def ok(self) -> None:
                outcome_ref["v"] = "ok"

            def fail(self, outcome: str = "error") -> None:
                outcome_ref["v"] = outcome

        try:
            yield _Mark()
        except BaseException:
            if outcome_ref["v"] in (None, "ok"):
                outcome_ref["v"] = "error"
            raise
        finally:
            self.run_duration.observe(max(0.0, time.perf_counter() - start))
            self.runs_total.labels(outcome_ref["v"] or "ok").inc()

    @contextmanager
    def time_stripe(self):
        start = time.perf_counter()
        try:
            yield
        finally:
            self.stripe_duration.observe(max(0.0, time.perf_counter() - start))

    # ------------------------------- notes -----------------------------------

    def note_stripe(self, *, input_bytes: int, shard_bytes: int) -> None:
        self.stripes_total.inc()
        if input_bytes > 0:
            self.input_bytes_total.inc(input_bytes)
        if shard_bytes > 0:
            self.shard_bytes_total.inc(shard_bytes)

    # ------------------------------- export ----------------------------------

    def write_textfile(self, path: str) -> None:
        """Atomically write the registry in Prometheus text format."""
        write_to_textfile(str(path), self.registry)


# ------------------------------- public API ----------------------------------

_METRICS_SINGLETON: Optional[ScatterMetrics] = None


def get_metrics(registry: Optional[CollectorRegistry] = None) -> ScatterMetrics:
    """
    Return a process-wide ScatterMetrics singleton. The first call can inject a
    custom registry; subsequent calls ignore the registry parameter.
    """
    global _METRICS_SINGLETON
    if _METRICS_SINGLETON is None:
        _METRICS_SINGLETON = ScatterMetrics(registry=registry)
    return _METRICS_SINGLETON


__all__ = [
    "ScatterMetrics",
    "get_metrics",
]
