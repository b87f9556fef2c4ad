import json

import msgspec
import pytest

from scatter.encoder import encode_file
from scatter.errors import ManifestError, OutputExistsError, ScatterIOError
from scatter.manifest import (
    MANIFEST_FORMAT,
    decode_manifest,
    encode_manifest,
    load_manifest,
    manifest_path_for,
    write_manifest,
)


@pytest.fixture
def encoded(make_input, config_for, metrics):
    return encode_file(make_input(10000), config_for(), metrics=metrics)


def _mutate(path, fn):
    doc = json.loads(path.read_text())
    fn(doc)
    return json.dumps(doc).encode()


def test_manifest_fields(encoded):
    doc = json.loads(encoded.manifest_path.read_text())
    assert doc["format"] == MANIFEST_FORMAT and doc["version"] == 1
    assert doc["file_name"] == "blob.bin"
    assert doc["file_size"] == 10000
    assert (doc["data_shards"], doc["parity_shards"], doc["block_size"]) == (4, 2, 1024)
    assert doc["stripe_count"] == 3 and doc["padding"] == 2288
    assert doc["shuffle"] == {"mode": "random", "seed": 7}
    assert [s["name"] for s in doc["shards"]] == [f"blob.bin.{i}" for i in range(6)]
    assert all(s["size"] == 3072 for s in doc["shards"])
    assert doc["block_digests"]["name"] == "blob.bin.blocks.sha256"
    assert doc["block_digests"]["size"] == 3 * 6 * 32
    assert "stripe_shard_sha256" not in doc
    assert len(doc["ledger"]) == 3
    assert doc["tool_version"] and doc["created_at"]


def test_manifest_path_for(tmp_path):
    assert manifest_path_for(tmp_path, "a.tar") == tmp_path / "a.tar.manifest.json"


def test_encode_decode_is_lossless(encoded):
    assert decode_manifest(encode_manifest(encoded.manifest)) == encoded.manifest


def test_write_refuses_existing_unless_truncate(encoded, tmp_path):
    dst = tmp_path / "m.json"
    write_manifest(encoded.manifest, dst)
    with pytest.raises(OutputExistsError):
        write_manifest(encoded.manifest, dst)
    write_manifest(encoded.manifest, dst, overwrite="truncate")
    assert load_manifest(dst) == encoded.manifest


def test_load_missing_is_io_error(tmp_path):
    with pytest.raises(ScatterIOError):
        load_manifest(tmp_path / "nope.json")


def test_not_json_is_manifest_error(tmp_path):
    with pytest.raises(ManifestError):
        decode_manifest(b"{not json")


@pytest.mark.parametrize(
    "mutation",
    [
        lambda d: d.update(format="other"),
        lambda d: d.update(version=99),
        lambda d: d.pop("file_size"),
        lambda d: d.update(file_size="big"),
        lambda d: d.update(stripe_count=4),
        lambda d: d.update(padding=0),
        lambda d: d.update(data_shards=200, parity_shards=57),
        lambda d: d["shuffle"].update(mode="fancy"),
        lambda d: d["shards"].pop(),
        lambda d: d["shards"][0].update(name="../../etc/passwd"),
        lambda d: d.update(file_name="../x"),
        lambda d: d.pop("block_digests"),
        lambda d: d["block_digests"].update(size=3 * 6 * 32 - 1),
        lambda d: d["block_digests"].update(name="../blob.bin.blocks.sha256"),
    ],
)
def test_structural_damage_is_rejected(encoded, mutation):
    with pytest.raises(ManifestError) as ei:
        decode_manifest(_mutate(encoded.manifest_path, mutation))
    assert ei.value.exit_code == 5


def test_damaged_ledger_entries_are_tolerated(encoded):
    def damage(d):
        d["ledger"][1] = [0, 0, 0, 0, 0, 0]
        d["ledger"][2] = None

    m = decode_manifest(_mutate(encoded.manifest_path, damage))
    ledger = m.distribution_ledger()
    assert ledger.permutation_for(0) == encoded.manifest.ledger[0]
    assert ledger.damaged_stripes() == [1, 2]


def test_to_dict_is_plain_builtins(encoded):
    d = encoded.manifest.to_dict()
    assert isinstance(d["shuffle"], dict)
    assert msgspec.json.decode(msgspec.json.encode(d))["file_sha256"] == encoded.file_sha256


def test_manifest_stays_small_relative_to_input(make_input, config_for, metrics):
    size = 2 * 1024 * 1024
    res = encode_file(make_input(size, name="big.bin"), config_for(), metrics=metrics)
    assert res.stripe_count == 512
    manifest_bytes = res.manifest_path.stat().st_size
    assert manifest_bytes < size // 100
    # Per-block digests are on disk, not in the manifest.
    sidecar = res.manifest_path.parent / "big.bin.blocks.sha256"
    assert sidecar.stat().st_size == 512 * 6 * 32
