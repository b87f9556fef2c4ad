import random
from collections import Counter

import pytest

from scatter.placement.shuffler import (
    KeyedShuffler,
    PlacementShuffler,
    invert,
    is_permutation,
    make_shuffler,
)


def test_degenerate_sizes():
    sh = PlacementShuffler(seed=1)
    assert sh.permute(0) == []
    assert sh.permute(1) == [0]
    with pytest.raises(ValueError):
        sh.permute(-1)
    with pytest.raises(TypeError):
        sh.permute(2.0)  # type: ignore[arg-type]


@pytest.mark.parametrize("n", [2, 3, 6, 17, 256])
def test_always_a_full_permutation(n: int):
    sh = PlacementShuffler(seed=n)
    for i in range(50):
        assert is_permutation(sh.permute(n, i), n)


def test_seed_makes_sequence_reproducible():
    a = PlacementShuffler(seed=42)
    b = PlacementShuffler(seed=42)
    assert [a.permute(6) for _ in range(10)] == [b.permute(6) for _ in range(10)]
    assert a.describe() == {"mode": "random", "seed": 42}


def test_injected_rng_is_used():
    sh = PlacementShuffler(rng=random.Random(3))
    ref = PlacementShuffler(seed=3)
    assert sh.permute(8) == ref.permute(8)


def test_default_seed_is_recorded():
    sh = PlacementShuffler()
    assert isinstance(sh.seed, int) and sh.seed > 0


def test_does_not_touch_global_random_state():
    random.seed(1234)
    expected = random.random()
    random.seed(1234)
    PlacementShuffler(seed=5).permute(50)
    assert random.random() == expected


def test_random_placement_is_roughly_uniform():
    sh = PlacementShuffler(seed=2024)
    counts = Counter(tuple(sh.permute(3)) for _ in range(6000))
    assert len(counts) == 6
    assert all(800 < c < 1200 for c in counts.values())


def test_keyed_placement_is_a_pure_function_of_key_and_stripe():
    key = bytes(range(32))
    a, b = KeyedShuffler(key), KeyedShuffler(key)
    assert a.permute(6, 0) == b.permute(6, 0)
    assert a.permute(6, 9) == b.permute(6, 9)
    # Order of calls does not matter.
    later = a.permute(6, 9)
    a.permute(6, 3)
    assert a.permute(6, 9) == later
    assert any(a.permute(10, i) != a.permute(10, 0) for i in range(1, 20))


def test_keyed_requires_stripe_index_and_valid_key():
    sh = KeyedShuffler(b"k")
    with pytest.raises(ValueError):
        sh.permute(4)
    with pytest.raises(ValueError):
        KeyedShuffler(b"")
    with pytest.raises(ValueError):
        KeyedShuffler(bytes(65))


def test_keyed_from_seed_and_describe():
    sh = KeyedShuffler.from_seed(0x2A)
    assert sh.key == (0x2A).to_bytes(32, "big")
    assert sh.describe() == {"mode": "keyed", "key": sh.key.hex()}
    assert KeyedShuffler(bytes.fromhex(sh.describe()["key"])).permute(6, 4) == sh.permute(6, 4)


def test_make_shuffler():
    assert isinstance(make_shuffler("random", 1), PlacementShuffler)
    assert isinstance(make_shuffler("keyed", 1), KeyedShuffler)
    assert isinstance(make_shuffler("keyed"), KeyedShuffler)
    with pytest.raises(ValueError):
        make_shuffler("round-robin")


def test_is_permutation_and_invert():
    assert is_permutation([2, 0, 1])
    assert is_permutation([], 0)
    assert not is_permutation([0, 0, 1])
    assert not is_permutation([0, 1, 3])
    assert not is_permutation([0, 1], 3)
    assert not is_permutation(["0", 1])  # type: ignore[list-item]
    assert not is_permutation([True, 0])  # type: ignore[list-item]
    perm = [3, 0, 2, 1]
    inv = invert(perm)
    assert [inv[p] for p in perm] == [0, 1, 2, 3]
    with pytest.raises(ValueError):
        invert([1, 1])
