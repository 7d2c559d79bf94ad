import pytest

import schemas
from utils.errors import ConservationViolationError
from utils.splits import calculate_equal_splits, calculate_splits, check_conservation


def _owed(splits):
    return [s.amount_owed for s in splits]


def test_equal_split_residual_goes_to_first_participants():
    splits = calculate_equal_splits(1001, [1, 2, 3])
    assert _owed(splits) == [334, 334, 333]
    assert sum(_owed(splits)) == 1001


def test_equal_split_even_amount():
    splits = calculate_equal_splits(3000, [1, 2])
    assert _owed(splits) == [1500, 1500]


def test_equal_split_amount_smaller_than_participants():
    splits = calculate_equal_splits(2, [1, 2, 3])
    assert _owed(splits) == [1, 1, 0]


def test_equal_split_requires_participants():
    with pytest.raises(ConservationViolationError):
        calculate_equal_splits(100, [])


def test_exact_split_must_sum_to_amount():
    splits = [
        schemas.ExpenseSplitBase(user_id=1, amount_owed=2000),
        schemas.ExpenseSplitBase(user_id=2, amount_owed=999),
    ]
    with pytest.raises(ConservationViolationError) as exc:
        calculate_splits("EXACT", 3000, splits)
    assert "Sum: 2999" in str(exc.value)


def test_exact_split_accepted():
    splits = [
        schemas.ExpenseSplitBase(user_id=1, amount_owed=2000),
        schemas.ExpenseSplitBase(user_id=2, amount_owed=1000),
    ]
    assert _owed(calculate_splits("EXACT", 3000, splits)) == [2000, 1000]


def test_percent_split():
    splits = [
        schemas.ExpenseSplitBase(user_id=1, percentage=50),
        schemas.ExpenseSplitBase(user_id=2, percentage=25),
        schemas.ExpenseSplitBase(user_id=3, percentage=25),
    ]
    result = calculate_splits("PERCENT", 1001, splits)
    # floor shares 500, 250, 250 -> one residual cent to the first participant
    assert _owed(result) == [501, 250, 250]
    assert result[0].percentage == 50


def test_percent_split_must_total_100():
    splits = [
        schemas.ExpenseSplitBase(user_id=1, percentage=60),
        schemas.ExpenseSplitBase(user_id=2, percentage=30),
    ]
    with pytest.raises(ConservationViolationError):
        calculate_splits("PERCENT", 1000, splits)


def test_shares_split():
    splits = [
        schemas.ExpenseSplitBase(user_id=1, shares=1),
        schemas.ExpenseSplitBase(user_id=2, shares=2),
    ]
    result = calculate_splits("SHARES", 1000, splits)
    # floor shares 333, 666 -> residual cent to the first participant
    assert _owed(result) == [334, 666]


def test_shares_split_rejects_zero_total():
    splits = [schemas.ExpenseSplitBase(user_id=1, shares=0)]
    with pytest.raises(ConservationViolationError):
        calculate_splits("SHARES", 1000, splits)


def test_negative_share_rejected():
    with pytest.raises(ConservationViolationError):
        check_conservation(100, [150, -50])
