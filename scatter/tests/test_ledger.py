import pytest

from scatter.errors import LedgerError
from scatter.placement.ledger import DistributionLedger


def _ledger(*perms):
    led = DistributionLedger(len(perms[0]) if perms else 3)
    for i, p in enumerate(perms):
        led.record(i, p)
    return led


def test_record_and_lookup_returns_copies():
    led = _ledger([2, 0, 1], [0, 1, 2])
    assert len(led) == 2
    got = led.permutation_for(0)
    assert got == [2, 0, 1]
    got.append(99)
    assert led.permutation_for(0) == [2, 0, 1]


def test_record_enforces_order_without_gaps():
    led = DistributionLedger(3)
    with pytest.raises(LedgerError):
        led.record(1, [0, 1, 2])
    led.record(0, [0, 1, 2])
    with pytest.raises(LedgerError):
        led.record(0, [0, 1, 2])
    with pytest.raises(LedgerError):
        led.record(2, [0, 1, 2])
    assert len(led) == 1


@pytest.mark.parametrize("perm", [[0, 1], [0, 1, 1], [0, 1, 3], [1, 2, 3, 0]])
def test_record_rejects_non_permutations(perm):
    led = DistributionLedger(3)
    with pytest.raises(LedgerError):
        led.record(0, perm)
    assert len(led) == 0


def test_missing_entry_lookup_fails():
    led = _ledger([1, 0, 2])
    with pytest.raises(LedgerError):
        led.permutation_for(1)
    with pytest.raises(LedgerError):
        led.permutation_for(-1)


def test_physical_and_logical_are_inverse():
    led = _ledger([3, 0, 2, 1])
    for logical in range(4):
        physical = led.physical_for(0, logical)
        assert led.logical_for(0, physical) == logical
    assert led.physical_for(0, 0) == 3
    assert led.logical_for(0, 3) == 0
    with pytest.raises(IndexError):
        led.physical_for(0, 4)


def test_corrupted_entry_affects_only_its_stripe():
    led = DistributionLedger.from_list([[1, 0, 2], [0, 0, 2], None, "garbage", [2, 1, 0]], 3)
    assert len(led) == 5
    assert led.permutation_for(0) == [1, 0, 2]
    assert led.permutation_for(4) == [2, 1, 0]
    for bad in (1, 2, 3):
        assert not led.is_intact(bad)
        with pytest.raises(LedgerError) as ei:
            led.permutation_for(bad)
        assert ei.value.data == {"stripe": bad}
    assert led.damaged_stripes() == [1, 2, 3]


def test_round_trip_through_list():
    led = _ledger([1, 2, 0], [0, 2, 1])
    again = DistributionLedger.from_list(led.to_list(), 3)
    assert again.to_list() == [[1, 2, 0], [0, 2, 1]]
    assert list(again) == led.to_list()
    assert again.damaged_stripes() == []


def test_empty_ledger():
    led = DistributionLedger(6)
    assert len(led) == 0 and led.to_list() == [] and led.damaged_stripes() == []
