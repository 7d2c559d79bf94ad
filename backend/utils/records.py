"""Immutable snapshots of ledger records.

The aggregators fold over these plain values rather than ORM rows, so a
computation never touches the session and never sees a half-written record.
"""

from dataclasses import dataclass, field
from typing import Optional

import models


@dataclass(frozen=True)
class SplitShare:
    user_id: int
    amount_owed: int


@dataclass(frozen=True)
class SplitRecord:
    id: int
    payer_id: int
    amount: int
    currency: str
    shares: tuple[SplitShare, ...] = field(default_factory=tuple)
    group_id: Optional[int] = None

    @property
    def participant_ids(self) -> set[int]:
        return {s.user_id for s in self.shares}

    def owed_by(self, user_id: int) -> int:
        """Total owed by user_id on this record (0 if not a participant)."""
        return sum(s.amount_owed for s in self.shares if s.user_id == user_id)

    def involves(self, user_id: int) -> bool:
        return self.payer_id == user_id or user_id in self.participant_ids


@dataclass(frozen=True)
class SettlementRecord:
    id: int
    payer_id: int
    payee_id: int
    amount: int
    currency: str
    group_id: Optional[int] = None

    def involves(self, user_id: int) -> bool:
        return user_id in (self.payer_id, self.payee_id)


def split_record_from_model(expense: models.Expense, splits: list[models.ExpenseSplit]) -> SplitRecord:
    ordered = sorted(splits, key=lambda s: (s.position or 0, s.id or 0))
    return SplitRecord(
        id=expense.id,
        payer_id=expense.payer_id,
        amount=expense.amount,
        currency=expense.currency,
        shares=tuple(SplitShare(user_id=s.user_id, amount_owed=s.amount_owed) for s in ordered),
        group_id=expense.group_id
    )


def settlement_record_from_model(settlement: models.Settlement) -> SettlementRecord:
    return SettlementRecord(
        id=settlement.id,
        payer_id=settlement.payer_id,
        payee_id=settlement.payee_id,
        amount=settlement.amount,
        currency=settlement.currency,
        group_id=settlement.group_id
    )
