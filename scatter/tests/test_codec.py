import pytest

from scatter.erasure.codec import CodecAdapter
from scatter.erasure.params import StripeParams
from scatter.errors import CodecError

from .conftest import det_bytes


def test_split_yields_k_data_shards_and_empty_parity_slots():
    params = StripeParams(4, 2, 8)
    buf = det_bytes(params.stripe_bytes)
    slots = CodecAdapter(params).split(buf)
    assert len(slots) == 6
    assert slots[4:] == [None, None]
    assert b"".join(slots[:4]) == buf
    assert all(len(s) == 8 for s in slots[:4])


@pytest.mark.parametrize("size", [0, 31, 33])
def test_split_rejects_wrong_buffer_length(size: int):
    codec = CodecAdapter(StripeParams(4, 2, 8))
    with pytest.raises(CodecError) as ei:
        codec.split(bytes(size))
    assert ei.value.data["expected"] == 32


def test_split_rejects_non_bytes():
    with pytest.raises(CodecError):
        CodecAdapter(StripeParams(1, 1, 2)).split("ab")  # type: ignore[arg-type]


def test_encode_fills_parity_and_keeps_data():
    params = StripeParams(4, 2, 16)
    codec = CodecAdapter(params)
    buf = det_bytes(params.stripe_bytes, seed=2)
    shards = codec.encode(codec.split(buf))
    assert len(shards) == 6
    assert all(isinstance(s, bytes) and len(s) == 16 for s in shards)
    assert b"".join(shards[:4]) == buf
    assert codec.verify(shards)


def test_encode_is_deterministic():
    params = StripeParams(5, 3, 10)
    codec = CodecAdapter(params)
    buf = det_bytes(params.stripe_bytes, seed=9)
    assert codec.encode(codec.split(buf)) == CodecAdapter(params).encode(codec.split(buf))


def test_encode_rejects_wrong_slot_count_and_empty_data_slot():
    params = StripeParams(2, 1, 4)
    codec = CodecAdapter(params)
    with pytest.raises(CodecError):
        codec.encode([b"aaaa", b"bbbb"])
    with pytest.raises(CodecError):
        codec.encode([b"aaaa", None, None])


def test_all_zero_stripe_encodes_to_zero_parity():
    params = StripeParams(3, 2, 4)
    codec = CodecAdapter(params)
    shards = codec.encode(codec.split(bytes(12)))
    assert shards == [bytes(4)] * 5


def test_reconstruct_wraps_failures_as_codec_error():
    params = StripeParams(3, 2, 4)
    codec = CodecAdapter(params)
    shards = codec.encode(codec.split(det_bytes(12)))
    restored = codec.reconstruct([None, shards[1], None, shards[3], shards[4]])
    assert restored == shards
    with pytest.raises(CodecError) as ei:
        codec.reconstruct([None, None, None, shards[3], shards[4]])
    assert ei.value.data["present"] == 2
