from __future__ import annotations

import logging
import random
from pathlib import Path
from typing import Callable

import pytest
from prometheus_client import CollectorRegistry

from scatter import logging as slog
from scatter.config import ScatterConfig, get_config
from scatter.metrics import ScatterMetrics


def det_bytes(n: int, seed: int = 1337) -> bytes:
    rng = random.Random(seed + n)
    return bytes(rng.getrandbits(8) for _ in range(n))


@pytest.fixture(autouse=True)
def _isolate(monkeypatch: pytest.MonkeyPatch):
    for key in (
        "SCATTER_DATA_SHARDS",
        "SCATTER_PARITY_SHARDS",
        "SCATTER_BLOCK_SIZE",
        "SCATTER_OUT_DIR",
        "SCATTER_SHUFFLE",
        "SCATTER_SEED",
        "SCATTER_OVERWRITE",
        "SCATTER_LOG_LEVEL",
        "SCATTER_LOG_FORMAT",
    ):
        monkeypatch.delenv(key, raising=False)
    get_config.cache_clear()
    slog.clear_context()
    yield
    get_config.cache_clear()
    slog.clear_context()
    # CLI runs attach handlers to streams that are closed afterwards.
    root = logging.getLogger("scatter")
    for h in list(root.handlers):
        root.removeHandler(h)
    root.propagate = True


@pytest.fixture
def metrics() -> ScatterMetrics:
    return ScatterMetrics(CollectorRegistry())


@pytest.fixture
def make_input(tmp_path: Path) -> Callable[..., Path]:
    """Write a deterministic input file under tmp_path/in and return its path."""

    def _make(size: int, name: str = "blob.bin", seed: int = 1337) -> Path:
        src_dir = tmp_path / "in"
        src_dir.mkdir(exist_ok=True)
        p = src_dir / name
        p.write_bytes(det_bytes(size, seed))
        return p

    return _make


@pytest.fixture
def out_dir(tmp_path: Path) -> Path:
    return tmp_path / "out"


@pytest.fixture
def config_for(out_dir: Path) -> Callable[..., ScatterConfig]:
    """Build a validated config writing into out_dir, with fsync off for speed."""

    def _cfg(k: int = 4, m: int = 2, block_size: int = 1024, mode: str = "random", seed=7, **output) -> ScatterConfig:
        return ScatterConfig().with_overrides(
            stripe={"data_shards": k, "parity_shards": m, "block_size": block_size},
            output={"out_dir": out_dir, "fsync": False, **output},
            placement={"mode": mode, "seed": seed},
        )

    return _cfg
