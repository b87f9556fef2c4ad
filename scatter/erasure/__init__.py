"""
scatter • Erasure Coding

Stripe parameters, the GF(2^8) Reed–Solomon primitives and the codec adapter
consumed by the striping pipeline.

Submodules (lazy-imported)
--------------------------
params       — (k, m) profile, block size, padding rules
reedsolomon  — RS encode/decode primitives
codec        — split/encode/reconstruct adapter used by the encoder

This __init__ exposes a stable surface via lazy attribute loading, so
importing `scatter.erasure` stays cheap until a symbol is used.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Tuple

# Public API surface (attribute name -> (module_path, attr_name))
_EXPORTS: Dict[str, Tuple[str, str]] = {
    "StripeParams": ("scatter.erasure.params", "StripeParams"),
    "rs_encode": ("scatter.erasure.reedsolomon", "rs_encode"),
    "rs_decode": ("scatter.erasure.reedsolomon", "rs_decode"),
    "RSCodec": ("scatter.erasure.reedsolomon", "RSCodec"),
    "CodecAdapter": ("scatter.erasure.codec", "CodecAdapter"),
}

__all__ = tuple(_EXPORTS)


def __getattr__(name: str) -> Any:
    """
    Lazy attribute loader for the public API. Imports the target symbol from
    the corresponding submodule on first access.
    """
    target = _EXPORTS.get(name)
    if target is None:
        raise AttributeError(f"module 'scatter.erasure' has no attribute {name!r}")
    mod_path, attr_name = target
    module = __import__(mod_path, fromlist=[attr_name])
    value = getattr(module, attr_name)
    globals()[name] = value  # cache
    return value


if TYPE_CHECKING:
    from .codec import CodecAdapter
    from .params import StripeParams
    from .reedsolomon import RSCodec, rs_decode, rs_encode
