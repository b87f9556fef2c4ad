"""
scatter configuration.

This module defines the configuration surface for an encoding run:
- Striping parameters (data shards k, parity shards m, block size)
- Output location and overwrite policy
- Placement mode (time-seeded random shuffle or keyed derivation) and seed
- Logging level/format

All fields have sensible defaults and can be overridden via environment
variables; CLI flags override the environment. Nothing here imports heavy
dependencies.

Environment variables (all optional):

  # Striping
  SCATTER_DATA_SHARDS=4
  SCATTER_PARITY_SHARDS=2
  SCATTER_BLOCK_SIZE=1024               # bytes (supports KiB/MiB suffixes and 0x hex)

  # Outputs
  SCATTER_OUT_DIR=/var/spool/shards     # default: the input file's directory
  SCATTER_OVERWRITE=fail                # fail | truncate

  # Placement
  SCATTER_SHUFFLE=random                # random | keyed
  SCATTER_SEED=0x2a                     # random: RNG seed, keyed: run key

  # Logging
  SCATTER_LOG_LEVEL=INFO
  SCATTER_LOG_FORMAT=text               # json | text (default: auto by TTY)
"""

from __future__ import annotations

import os
import re
from dataclasses import asdict, dataclass, field, replace
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

from .constants import (
    BLOCK_SIZE_DEFAULT,
    DATA_SHARDS_DEFAULT,
    OVERWRITE_FAIL,
    OVERWRITE_MODES,
    PARITY_SHARDS_DEFAULT,
    SHUFFLE_MODES,
    SHUFFLE_RANDOM,
)
from .erasure.params import StripeParams
from .errors import ConfigError

# ------------------------------- helpers ------------------------------------


_SIZE_RE = re.compile(
    r"^\s*(?P<num>\d+)\s*(?P<unit>bytes?|b|k|kb|kib|m|mb|mib)?\s*$",
    re.IGNORECASE,
)

_UNITS = {
    "b": 1,
    "byte": 1,
    "bytes": 1,
    "kb": 1000,
    "k": 1024,
    "kib": 1024,
    "mb": 1000**2,
    "m": 1024**2,
    "mib": 1024**2,
}


def parse_size(value: str) -> int:
    """Parse human sizes like '1024', '4KiB', '4k', '1MB', '0x400' → bytes."""
    v = value.strip().lower()
    if v.startswith("0x"):
        try:
            return int(v, 16)
        except ValueError as e:
            raise ConfigError(f"Invalid size: {value!r}") from e
    m = _SIZE_RE.match(v)
    if not m:
        raise ConfigError(f"Invalid size: {value!r}")
    unit = (m.group("unit") or "b").lower()
    return int(m.group("num")) * _UNITS[unit]


def parse_int(value: str, *, name: str = "value") -> int:
    v = value.strip().lower()
    try:
        return int(v, 16) if v.startswith("0x") else int(v, 10)
    except ValueError as e:
        raise ConfigError(f"Invalid int for {name}: {value!r}") from e


def _getenv(key: str, default: Optional[str] = None) -> Optional[str]:
    v = os.environ.get(key)
    if v is None or v.strip() == "":
        return default
    return v.strip()


def _getenv_int(key: str, default: int) -> int:
    v = _getenv(key)
    return default if v is None else parse_int(v, name=key)


# ------------------------------- config -------------------------------------


@dataclass(frozen=True)
class StripeConfig:
    """
    Reed–Solomon striping parameters.

    - data_shards: k, shards carrying input bytes
    - parity_shards: m, redundancy shards per stripe
    - block_size: bytes per shard
    """
    data_shards: int = DATA_SHARDS_DEFAULT
    parity_shards: int = PARITY_SHARDS_DEFAULT
    block_size: int = BLOCK_SIZE_DEFAULT

    def validate(self) -> None:
        self.params()

    def params(self) -> StripeParams:
        return StripeParams(self.data_shards, self.parity_shards, self.block_size)


@dataclass(frozen=True)
class OutputConfig:
    """
    Where shard files land and what to do with existing ones.

    - out_dir: directory override (None → the input file's directory)
    - overwrite: 'fail' refuses existing outputs; 'truncate' replaces them
    - fsync: flush shard files and the manifest to stable storage on commit
    """
    out_dir: Optional[Path] = None
    overwrite: str = OVERWRITE_FAIL
    fsync: bool = True

    def validate(self) -> None:
        if self.overwrite not in OVERWRITE_MODES:
            raise ConfigError(
                f"overwrite must be one of {', '.join(OVERWRITE_MODES)}",
                data={"overwrite": self.overwrite},
            )


@dataclass(frozen=True)
class PlacementConfig:
    """
    Placement permutation source.

    - mode: 'random' (owned RNG, time-seeded by default) or 'keyed'
      (permutation derived from run key + stripe index)
    - seed: RNG seed (random) or integer key (keyed); None → generated
    """
    mode: str = SHUFFLE_RANDOM
    seed: Optional[int] = None

    def validate(self) -> None:
        if self.mode not in SHUFFLE_MODES:
            raise ConfigError(
                f"shuffle mode must be one of {', '.join(SHUFFLE_MODES)}",
                data={"mode": self.mode},
            )
        if self.seed is not None and not (0 <= self.seed < 1 << 64):
            raise ConfigError("seed must be an unsigned 64-bit integer", data={"seed": self.seed})


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    format: Optional[str] = None  # json | text | None (auto)

    def validate(self) -> None:
        if self.format not in (None, "json", "text"):
            raise ConfigError("log format must be 'json' or 'text'", data={"format": self.format})


@dataclass(frozen=True)
class ScatterConfig:
    """
    Top-level configuration for one encoding run.
    """
    stripe: StripeConfig = field(default_factory=StripeConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    placement: PlacementConfig = field(default_factory=PlacementConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        self.stripe.validate()
        self.output.validate()
        self.placement.validate()
        self.logging.validate()

    def with_overrides(self, **sections: Dict[str, Any]) -> "ScatterConfig":
        """
        Return a copy with per-section overrides; None values are ignored.

            cfg.with_overrides(stripe={"data_shards": 6}, output={"out_dir": p})
        """
        updated: Dict[str, Any] = {}
        for name, values in sections.items():
            current = getattr(self, name)
            clean = {k: v for k, v in (values or {}).items() if v is not None}
            updated[name] = replace(current, **clean) if clean else current
        return replace(self, **updated)

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


# ------------------------------- loader -------------------------------------


def load_from_env(*, validate: bool = True) -> ScatterConfig:
    """
    Build a config from defaults and SCATTER_* variables. Pass validate=False
    when further overrides (CLI flags) are applied before validating.
    """
    stripe_cfg = StripeConfig(
        data_shards=_getenv_int("SCATTER_DATA_SHARDS", DATA_SHARDS_DEFAULT),
        parity_shards=_getenv_int("SCATTER_PARITY_SHARDS", PARITY_SHARDS_DEFAULT),
        block_size=parse_size(_getenv("SCATTER_BLOCK_SIZE", str(BLOCK_SIZE_DEFAULT)) or ""),
    )

    out_dir = _getenv("SCATTER_OUT_DIR")
    output_cfg = OutputConfig(
        out_dir=Path(out_dir).expanduser() if out_dir else None,
        overwrite=(_getenv("SCATTER_OVERWRITE", OVERWRITE_FAIL) or OVERWRITE_FAIL).lower(),
    )

    seed = _getenv("SCATTER_SEED")
    placement_cfg = PlacementConfig(
        mode=(_getenv("SCATTER_SHUFFLE", SHUFFLE_RANDOM) or SHUFFLE_RANDOM).lower(),
        seed=parse_int(seed, name="SCATTER_SEED") if seed is not None else None,
    )

    fmt = _getenv("SCATTER_LOG_FORMAT")
    logging_cfg = LoggingConfig(
        level=(_getenv("SCATTER_LOG_LEVEL", "INFO") or "INFO").upper(),
        format=fmt.lower() if fmt else None,
    )

    cfg = ScatterConfig(
        stripe=stripe_cfg,
        output=output_cfg,
        placement=placement_cfg,
        logging=logging_cfg,
    )
    if validate:
        cfg.validate()
    return cfg


@lru_cache(maxsize=1)
def get_config() -> ScatterConfig:
    """
    Load and validate configuration (cached). Clear the cache in tests
    via `get_config.cache_clear()` to observe env changes.
    """
    return load_from_env()


def format_config(cfg: Optional[ScatterConfig] = None) -> str:
    """Flat `section.key: value` listing, handy in CLIs."""
    cfg = cfg or get_config()
    lines: List[str] = []
    for section, values in cfg.to_dict().items():
        for k, v in values.items():  # type: ignore[union-attr]
            lines.append(f"{section}.{k}: {v}")
    return "\n".join(lines)


__all__ = [
    "StripeConfig",
    "OutputConfig",
    "PlacementConfig",
    "LoggingConfig",
    "ScatterConfig",
    "parse_size",
    "parse_int",
    "load_from_env",
    "get_config",
    "format_config",
]
