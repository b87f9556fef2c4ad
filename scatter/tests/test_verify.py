import msgspec
import pytest

from scatter.encoder import encode_file
from scatter.verify import (
    BLOCK_DIGESTS,
    BLOCK_MISMATCH,
    DIGEST_MISMATCH,
    LEDGER_DAMAGED,
    LEDGER_KEY_MISMATCH,
    MISSING,
    SIZE_MISMATCH,
    verify_outputs,
)


@pytest.fixture
def encoded(make_input, config_for, metrics):
    return encode_file(make_input(5000), config_for(block_size=256), metrics=metrics)


def _kinds(report):
    return {i.kind for i in report.issues}


def test_clean_run_verifies(encoded, out_dir):
    report = verify_outputs(encoded.manifest, out_dir)
    assert report.ok, report.to_dict()
    assert report.shards_checked == 6
    assert report.stripes_checked == encoded.stripe_count
    assert report.to_dict()["damaged_stripes"] == []


def test_missing_shard_file(encoded, out_dir):
    (out_dir / "blob.bin.3").unlink()
    report = verify_outputs(encoded.manifest, out_dir)
    assert not report.ok
    assert [(i.kind, i.shard) for i in report.issues] == [(MISSING, 3)]


def test_flipped_byte_pinpoints_stripe(encoded, out_dir):
    p = out_dir / "blob.bin.1"
    raw = bytearray(p.read_bytes())
    raw[256 + 5] ^= 0x01  # stripe 1
    p.write_bytes(bytes(raw))
    report = verify_outputs(encoded.manifest, out_dir)
    assert _kinds(report) == {BLOCK_MISMATCH, DIGEST_MISMATCH}
    assert report.damaged_stripes() == [1]


def test_truncated_shard_file(encoded, out_dir):
    p = out_dir / "blob.bin.0"
    p.write_bytes(p.read_bytes()[:-10])
    report = verify_outputs(encoded.manifest, out_dir)
    assert SIZE_MISMATCH in _kinds(report)
    assert DIGEST_MISMATCH in _kinds(report)


def test_damaged_ledger_entry_reported(encoded, out_dir):
    m = msgspec.structs.replace(encoded.manifest, ledger=[None] + encoded.manifest.ledger[1:])
    report = verify_outputs(m, out_dir)
    assert [(i.kind, i.stripe) for i in report.issues] == [(LEDGER_DAMAGED, 0)]


def test_keyed_ledger_disagreement(make_input, config_for, metrics, out_dir):
    res = encode_file(make_input(2000), config_for(block_size=64, mode="keyed", seed=3), metrics=metrics)
    assert verify_outputs(res.manifest, out_dir).ok
    ledger = [list(e) for e in res.manifest.ledger]
    ledger[2] = ledger[2][::-1]
    m = msgspec.structs.replace(res.manifest, ledger=ledger)
    report = verify_outputs(m, out_dir)
    assert (LEDGER_KEY_MISMATCH, 2) in [(i.kind, i.stripe) for i in report.issues]


def test_missing_block_digest_file_skips_block_checks(encoded, out_dir):
    (out_dir / "blob.bin.blocks.sha256").unlink()
    p = out_dir / "blob.bin.2"
    raw = bytearray(p.read_bytes())
    raw[0] ^= 0xFF
    p.write_bytes(bytes(raw))
    report = verify_outputs(encoded.manifest, out_dir)
    assert [(i.kind, i.shard) for i in report.issues] == [(BLOCK_DIGESTS, None), (DIGEST_MISMATCH, 2)]
    assert report.damaged_stripes() == []


def test_tampered_block_digest_file_is_not_trusted(encoded, out_dir):
    p = out_dir / "blob.bin.blocks.sha256"
    raw = bytearray(p.read_bytes())
    raw[40] ^= 0x01
    p.write_bytes(bytes(raw))
    report = verify_outputs(encoded.manifest, out_dir)
    assert _kinds(report) == {BLOCK_DIGESTS}
