"""
scatter • Verify

Read-only integrity check of a committed run against its manifest:

  • every destination file exists with `stripe_count * block_size` bytes
  • every destination's SHA-256 matches the manifest
  • the block digest file matches the size and SHA-256 pinned by the manifest
  • every block of every destination matches the recorded digest of the
    logical shard the ledger says it holds (pinpoints damaged stripes)
  • ledger entries are intact permutations and, for keyed placement, agree
    with the permutation recomputed from the persisted key

This never decodes or reassembles the original file.
"""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, Union

from .constants import BLOCK_DIGEST_SIZE, HASH_CHUNK_SIZE, SHUFFLE_KEYED
from .errors import LedgerError
from .logging import get_logger
from .manifest import Manifest
from .placement.ledger import DistributionLedger
from .placement.shuffler import KeyedShuffler
from .utils.hash import RunningDigest, block_digest

log = get_logger("scatter.verify")

# Issue kinds
MISSING = "missing"
SIZE_MISMATCH = "size_mismatch"
DIGEST_MISMATCH = "digest_mismatch"
BLOCK_MISMATCH = "block_mismatch"
LEDGER_DAMAGED = "ledger_damaged"
LEDGER_KEY_MISMATCH = "ledger_key_mismatch"
LEDGER_LENGTH = "ledger_length"
UNREADABLE = "unreadable"
BLOCK_DIGESTS = "block_digests"


@dataclass(frozen=True)
class VerifyIssue:
    kind: str
    detail: str
    shard: Optional[int] = None
    stripe: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "detail": self.detail, "shard": self.shard, "stripe": self.stripe}


@dataclass
class VerifyReport:
    manifest_name: str
    directory: Path
    shards_checked: int = 0
    stripes_checked: int = 0
    issues: List[VerifyIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues

    def damaged_stripes(self) -> List[int]:
        return sorted({i.stripe for i in self.issues if i.stripe is not None})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "file_name": self.manifest_name,
            "directory": str(self.directory),
            "shards_checked": self.shards_checked,
            "stripes_checked": self.stripes_checked,
            "damaged_stripes": self.damaged_stripes(),
            "issues": [i.to_dict() for i in self.issues],
        }


def _check_ledger(m: Manifest, ledger: DistributionLedger, report: VerifyReport) -> None:
    if len(ledger) != m.stripe_count:
        report.issues.append(
            VerifyIssue(LEDGER_LENGTH, f"ledger has {len(ledger)} entries for {m.stripe_count} stripes")
        )
    for idx in ledger.damaged_stripes():
        report.issues.append(VerifyIssue(LEDGER_DAMAGED, "placement entry missing or corrupted", stripe=idx))

    if m.shuffle.mode != SHUFFLE_KEYED or not m.shuffle.key:
        return
    try:
        keyed = KeyedShuffler(bytes.fromhex(m.shuffle.key))
    except ValueError as exc:
        report.issues.append(VerifyIssue(LEDGER_KEY_MISMATCH, f"unusable placement key: {exc}"))
        return
    for idx in range(len(ledger)):
        if not ledger.is_intact(idx):
            continue
        if ledger.permutation_for(idx) != keyed.permute(m.total_shards, idx):
            report.issues.append(
                VerifyIssue(LEDGER_KEY_MISMATCH, "ledger entry disagrees with keyed placement", stripe=idx)
            )


def _open_block_digests(m: Manifest, root: Path, report: VerifyReport) -> Optional[BinaryIO]:
    """Open the block digest file if it matches the manifest; else record why not."""
    entry = m.block_digests
    try:
        fp = open(root / entry.name, "rb")
    except FileNotFoundError:
        report.issues.append(VerifyIssue(BLOCK_DIGESTS, f"{entry.name} not found; block checks skipped"))
        return None
    except OSError as exc:
        report.issues.append(VerifyIssue(BLOCK_DIGESTS, f"{entry.name}: {exc}"))
        return None

    rd = RunningDigest()
    try:
        while True:
            chunk = fp.read(HASH_CHUNK_SIZE)
            if not chunk:
                break
            rd.update(chunk)
    except OSError as exc:
        fp.close()
        report.issues.append(VerifyIssue(BLOCK_DIGESTS, f"{entry.name}: {exc}"))
        return None
    if rd.size != entry.size or rd.hexdigest() != entry.sha256:
        fp.close()
        report.issues.append(
            VerifyIssue(BLOCK_DIGESTS, f"{entry.name} does not match the manifest; block checks skipped")
        )
        return None
    return fp


def _check_shard(
    m: Manifest,
    ledger: DistributionLedger,
    physical: int,
    path: Path,
    expected_sha: str,
    digests: Optional[BinaryIO],
    report: VerifyReport,
) -> None:
    try:
        size = path.stat().st_size
    except FileNotFoundError:
        report.issues.append(VerifyIssue(MISSING, f"{path.name} not found", shard=physical))
        return
    except OSError as exc:
        report.issues.append(VerifyIssue(UNREADABLE, str(exc), shard=physical))
        return

    if size != m.destination_size:
        report.issues.append(
            VerifyIssue(SIZE_MISMATCH, f"{path.name} has {size} bytes, expected {m.destination_size}", shard=physical)
        )

    whole = hashlib.sha256()
    B = m.block_size
    n = m.total_shards
    try:
        with open(path, "rb") as fp:
            stripe = 0
            while True:
                block = fp.read(B)
                if not block:
                    break
                whole.update(block)
                if digests is not None and stripe < m.stripe_count and len(block) == B and ledger.is_intact(stripe):
                    logical = ledger.logical_for(stripe, physical)
                    digests.seek((stripe * n + logical) * BLOCK_DIGEST_SIZE)
                    if block_digest(block) != digests.read(BLOCK_DIGEST_SIZE):
                        report.issues.append(
                            VerifyIssue(
                                BLOCK_MISMATCH,
                                f"{path.name} block does not match logical shard {logical}",
                                shard=physical,
                                stripe=stripe,
                            )
                        )
                stripe += 1
    except OSError as exc:
        report.issues.append(VerifyIssue(UNREADABLE, str(exc), shard=physical))
        return

    if whole.hexdigest() != expected_sha:
        report.issues.append(VerifyIssue(DIGEST_MISMATCH, f"{path.name} digest differs", shard=physical))
    report.shards_checked += 1


def verify_outputs(manifest: Manifest, directory: Union[str, "os.PathLike[str]"]) -> VerifyReport:
    """Check the shard files in `directory` against `manifest`."""
    root = Path(directory)
    report = VerifyReport(manifest_name=manifest.file_name, directory=root)
    ledger = manifest.distribution_ledger()

    _check_ledger(manifest, ledger, report)
    digests = _open_block_digests(manifest, root, report)
    try:
        for entry in sorted(manifest.shards, key=lambda s: s.index):
            try:
                _check_shard(manifest, ledger, entry.index, root / entry.name, entry.sha256, digests, report)
            except LedgerError as exc:  # pragma: no cover - is_intact guards lookups
                report.issues.append(VerifyIssue(LEDGER_DAMAGED, exc.message, shard=entry.index))
    finally:
        if digests is not None:
            digests.close()
    report.stripes_checked = manifest.stripe_count

    if report.ok:
        log.info("verify ok", extra={"shards": report.shards_checked, "stripes": report.stripes_checked})
    else:
        log.warning(
            "verify found issues",
            extra={"issues": len(report.issues), "damaged_stripes": report.damaged_stripes()},
        )
    return report


__all__ = ["VerifyIssue", "VerifyReport", "verify_outputs"]
