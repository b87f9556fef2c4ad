import hashlib

import pytest

from scatter.errors import ScatterIOError
from scatter.utils.hash import RunningDigest, block_digest, file_digest

from .conftest import det_bytes

EMPTY_SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


def test_empty_file_digest(tmp_path):
    p = tmp_path / "empty"
    p.write_bytes(b"")
    assert file_digest(p) == EMPTY_SHA256


@pytest.mark.parametrize("chunk_size", [1, 7, 4096, 1 << 20])
def test_file_digest_independent_of_chunking(tmp_path, chunk_size: int):
    data = det_bytes(10000)
    p = tmp_path / "blob"
    p.write_bytes(data)
    assert file_digest(p, chunk_size=chunk_size) == hashlib.sha256(data).hexdigest()


def test_file_digest_is_lowercase_hex(tmp_path):
    p = tmp_path / "x"
    p.write_bytes(b"abc")
    d = file_digest(p)
    assert d == d.lower() and len(d) == 64
    assert d == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


def test_missing_file_is_io_error(tmp_path):
    with pytest.raises(ScatterIOError) as ei:
        file_digest(tmp_path / "nope")
    assert ei.value.exit_code == 3


def test_bad_chunk_size_rejected(tmp_path):
    with pytest.raises(ValueError):
        file_digest(tmp_path / "nope", chunk_size=0)


def test_block_and_running_digest():
    parts = [det_bytes(n) for n in (5, 0, 17)]
    rd = RunningDigest()
    for part in parts:
        rd.update(part)
    joined = b"".join(parts)
    assert rd.size == len(joined)
    assert rd.hexdigest() == hashlib.sha256(joined).hexdigest()
    assert block_digest(joined) == hashlib.sha256(joined).digest()
    assert len(block_digest(b"")) == 32
