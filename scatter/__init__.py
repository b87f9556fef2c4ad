"""
scatter — striped, erasure-coded file distribution.

A single input file is cut into fixed-size stripes; each stripe is split into
k data shards plus m Reed–Solomon parity shards, and the k+m shards are
scattered over k+m numbered files using a per-stripe placement permutation.
The permutations (the distribution ledger), sizes and digests are persisted
in a manifest beside the shard files.

Quick start
-----------
    from scatter import ScatterConfig, encode_file

    res = encode_file("blob.bin", ScatterConfig())
    print(res.stripe_count, res.manifest_path)

Submodules are imported lazily on first attribute access.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Tuple

from .version import __version__

_EXPORTS: Dict[str, Tuple[str, str]] = {
    "ScatterConfig": ("scatter.config", "ScatterConfig"),
    "get_config": ("scatter.config", "get_config"),
    "StripeParams": ("scatter.erasure.params", "StripeParams"),
    "CodecAdapter": ("scatter.erasure.codec", "CodecAdapter"),
    "StripeReader": ("scatter.stripe.reader", "StripeReader"),
    "PlacementShuffler": ("scatter.placement.shuffler", "PlacementShuffler"),
    "KeyedShuffler": ("scatter.placement.shuffler", "KeyedShuffler"),
    "DistributionLedger": ("scatter.placement.ledger", "DistributionLedger"),
    "ShardWriter": ("scatter.writer", "ShardWriter"),
    "encode_file": ("scatter.encoder", "encode_file"),
    "EncodeResult": ("scatter.encoder", "EncodeResult"),
    "load_manifest": ("scatter.manifest", "load_manifest"),
    "verify_outputs": ("scatter.verify", "verify_outputs"),
    "file_digest": ("scatter.utils.hash", "file_digest"),
}

__all__ = ("__version__",) + tuple(_EXPORTS)


def __getattr__(name: str) -> Any:
    target = _EXPORTS.get(name)
    if target is None:
        raise AttributeError(f"module 'scatter' has no attribute {name!r}")
    mod_path, attr_name = target
    module = __import__(mod_path, fromlist=[attr_name])
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


if TYPE_CHECKING:
    from .config import ScatterConfig, get_config
    from .encoder import EncodeResult, encode_file
    from .erasure.codec import CodecAdapter
    from .erasure.params import StripeParams
    from .manifest import load_manifest
    from .placement.ledger import DistributionLedger
    from .placement.shuffler import KeyedShuffler, PlacementShuffler
    from .stripe.reader import StripeReader
    from .utils.hash import file_digest
    from .verify import verify_outputs
    from .writer import ShardWriter
