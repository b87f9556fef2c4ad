"""
scatter errors.

Lightweight, typed exception hierarchy with structured metadata suitable for
the CLI layer or internal callers.

Usage:

    from scatter.errors import ConfigError, ScatterIOError

    raise ConfigError("sum of data and parity shards cannot exceed 256",
                      data={"data_shards": 200, "parity_shards": 57})

All errors expose:
- .code      : stable machine-readable code (snake_case)
- .exit_code : suggested process exit status (int, non-zero)
- .data      : optional structured payload (dict-like)
- .to_dict() : JSON-friendly dict for logs and `--json` output
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional


class ScatterError(Exception):
    """
    Base class for scatter errors.

    Subclasses should set `default_code` and `default_exit_code`.
    """
    default_code = "scatter_error"
    default_exit_code = 1

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        exit_code: Optional[int] = None,
        data: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.exit_code = int(exit_code if exit_code is not None else self.default_exit_code)
        # Store a shallow copy to prevent accidental external mutation
        self.data: Dict[str, Any] = dict(data) if data else {}

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.message:
            return f"{self.code}: {self.message}"
        return self.code

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": f"urn:scatter:{self.code}",
            "title": self.code.replace("_", " ").title(),
            "exit_code": self.exit_code,
            "detail": self.message or None,
            "data": self.data or None,
        }

    @classmethod
    def from_exc(
        cls,
        exc: BaseException,
        *,
        code: Optional[str] = None,
        exit_code: Optional[int] = None,
        data: Optional[Mapping[str, Any]] = None,
    ) -> "ScatterError":
        """
        Wrap an arbitrary exception into a ScatterError with a best-effort message.
        """
        msg = f"{exc.__class__.__name__}: {exc}"
        return cls(msg, code=code, exit_code=exit_code, data=data)


class ConfigError(ScatterError):
    """
    Invalid striping configuration (shard counts, block size, modes).
    Always raised before any file is opened.
    """
    default_code = "config_invalid"
    default_exit_code = 2


class ScatterIOError(ScatterError):
    """
    Open/read/write failure on the input or on any shard destination.
    """
    default_code = "io_error"
    default_exit_code = 3


class OutputExistsError(ScatterIOError):
    """
    A shard file or manifest already exists and overwriting was not requested.
    """
    default_code = "output_exists"


class CodecError(ScatterError):
    """
    Split/encode precondition violation or internal Reed–Solomon failure.
    """
    default_code = "codec_error"
    default_exit_code = 4


class LedgerError(ScatterError):
    """
    Distribution ledger entry missing, out of order, or not a permutation.
    """
    default_code = "ledger_error"
    default_exit_code = 5


class ManifestError(ScatterError):
    """
    Manifest file unreadable or structurally invalid.
    """
    default_code = "manifest_invalid"
    default_exit_code = 5


class EncodeCancelled(ScatterError):
    """
    The run observed a cancellation signal at a stripe boundary.
    """
    default_code = "cancelled"
    default_exit_code = 130


__all__ = [
    "ScatterError",
    "ConfigError",
    "ScatterIOError",
    "OutputExistsError",
    "CodecError",
    "LedgerError",
    "ManifestError",
    "EncodeCancelled",
]
