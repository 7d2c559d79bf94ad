"""Split calculation utilities.

Every calculator works in integer minor units and hands any residual cents to
participants in list order, starting with the first, so that the shares
always sum exactly to the expense amount.
"""

import schemas
from utils.errors import ConservationViolationError


def _distribute(amount: int, weights: list[int]) -> list[int]:
    """
    Split amount proportionally to weights.

    Each share is floor(amount * weight / total); the leftover minor units are
    handed out one at a time from the first participant onward.
    """
    total_weight = sum(weights)
    if total_weight <= 0:
        raise ConservationViolationError("Split weights must sum to a positive number")

    shares = [amount * w // total_weight for w in weights]
    remainder = amount - sum(shares)

    idx = 0
    while remainder > 0:
        shares[idx % len(shares)] += 1
        remainder -= 1
        idx += 1

    return shares


def calculate_equal_splits(amount: int, user_ids: list[int]) -> list[schemas.ExpenseSplitBase]:
    """
    Split amount equally.

    1001 across three participants gives 334, 334, 333.
    """
    if not user_ids:
        raise ConservationViolationError("An expense needs at least one participant")

    share_per_person = amount // len(user_ids)
    remainder = amount % len(user_ids)

    splits = []
    for idx, user_id in enumerate(user_ids):
        # First participants absorb the remainder cents
        owed = share_per_person + (1 if idx < remainder else 0)
        splits.append(schemas.ExpenseSplitBase(user_id=user_id, amount_owed=owed))
    return splits


def calculate_splits(
    split_type: str,
    amount: int,
    splits: list[schemas.ExpenseSplitBase]
) -> list[schemas.ExpenseSplitBase]:
    """Derive amount_owed for each split from the split type and validate conservation."""
    if not splits:
        raise ConservationViolationError("An expense needs at least one participant")

    if split_type == "EQUAL":
        result = calculate_equal_splits(amount, [s.user_id for s in splits])

    elif split_type == "EXACT":
        result = [
            schemas.ExpenseSplitBase(user_id=s.user_id, amount_owed=s.amount_owed or 0)
            for s in splits
        ]

    elif split_type == "PERCENT":
        percentages = [s.percentage or 0 for s in splits]
        if sum(percentages) != 100:
            raise ConservationViolationError(
                f"Percentages must total 100, got {sum(percentages)}"
            )
        owed = _distribute(amount, percentages)
        result = [
            schemas.ExpenseSplitBase(user_id=s.user_id, amount_owed=o, percentage=s.percentage)
            for s, o in zip(splits, owed)
        ]

    elif split_type == "SHARES":
        owed = _distribute(amount, [s.shares or 0 for s in splits])
        result = [
            schemas.ExpenseSplitBase(user_id=s.user_id, amount_owed=o, shares=s.shares)
            for s, o in zip(splits, owed)
        ]

    else:
        raise ValueError(f"Unknown split type: {split_type}")

    check_conservation(amount, [s.amount_owed for s in result])
    return result


def check_conservation(amount: int, owed_amounts: list[int], record_id: int = None) -> None:
    """Raise ConservationViolationError unless the shares sum exactly to amount."""
    if any(o < 0 for o in owed_amounts):
        raise ConservationViolationError("Split amounts cannot be negative", record_id=record_id)

    total_split = sum(owed_amounts)
    if total_split != amount:
        raise ConservationViolationError(
            f"Split amounts do not sum to total expense amount. Total: {amount}, Sum: {total_split}",
            record_id=record_id
        )
