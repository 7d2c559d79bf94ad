"""Balance aggregation: pure folds over expense and settlement snapshots.

Sign convention: a positive balance means the counterparty owes the user, a
negative balance means the user owes the counterparty. All amounts are in
integer minor units of a single currency.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from utils.currency import ensure_same_currency
from utils.errors import MalformedRecordError
from utils.records import SplitRecord, SettlementRecord


@dataclass(frozen=True)
class Transfer:
    from_user_id: int
    to_user_id: int
    amount: int


def validate_split_record(record: SplitRecord) -> None:
    """Reject records that would break conservation if folded."""
    if record.amount is None or record.amount < 0:
        raise MalformedRecordError("Expense amount must be a non-negative integer", record_id=record.id)
    if not record.shares:
        raise MalformedRecordError("Expense has no participants", record_id=record.id)
    if any(s.amount_owed < 0 for s in record.shares):
        raise MalformedRecordError("Split amounts cannot be negative", record_id=record.id)

    total_split = sum(s.amount_owed for s in record.shares)
    if total_split != record.amount:
        raise MalformedRecordError(
            f"Split amounts sum to {total_split}, expense amount is {record.amount}",
            record_id=record.id
        )


def validate_settlement_record(record: SettlementRecord) -> None:
    if record.amount is None or record.amount <= 0:
        raise MalformedRecordError("Settlement amount must be positive", record_id=record.id)
    if record.payer_id == record.payee_id:
        raise MalformedRecordError("Settlement payer and payee must differ", record_id=record.id)


def compute_balances(
    user_id: int,
    counterparty_ids: Iterable[int],
    expenses: Iterable[SplitRecord],
    settlements: Iterable[SettlementRecord],
    currency: str
) -> dict[int, int]:
    """
    Fold expenses and settlements into the user's net balance with each counterparty.

    Args:
        user_id: The user whose view is computed
        counterparty_ids: Counterparties to resolve (callers pass linked friends only)
        expenses: Expense snapshots; records not involving the pair are skipped
        settlements: Settlement snapshots; records not between the pair are skipped
        currency: Unit of account; a relevant record in any other currency raises
            CurrencyMismatchError

    Returns:
        Mapping counterparty_id -> signed balance. Every requested counterparty is
        present, zero when there is no shared history.
    """
    counterparties = set(counterparty_ids)
    counterparties.discard(user_id)
    balances = {cp: 0 for cp in counterparties}

    for record in expenses:
        if not record.involves(user_id):
            continue
        involved = (record.participant_ids | {record.payer_id}) & counterparties
        if not involved:
            continue

        validate_split_record(record)
        ensure_same_currency(currency, record.currency, record.id)

        if record.payer_id == user_id:
            # Each counterparty owes the user their share
            for cp in involved:
                balances[cp] += record.owed_by(cp)
        elif record.payer_id in counterparties:
            # The user owes the payer their own share
            balances[record.payer_id] -= record.owed_by(user_id)

    for record in settlements:
        if record.payer_id == user_id and record.payee_id in counterparties:
            cp = record.payee_id
            sign = 1
        elif record.payee_id == user_id and record.payer_id in counterparties:
            cp = record.payer_id
            sign = -1
        else:
            continue

        validate_settlement_record(record)
        ensure_same_currency(currency, record.currency, record.id)
        balances[cp] += sign * record.amount

    return balances


def compute_group_balances(
    group_id: int,
    member_ids: Iterable[int],
    expenses: Iterable[SplitRecord],
    settlements: Iterable[SettlementRecord],
    currency: str
) -> dict[int, int]:
    """
    Calculate each member's net position within a group.

    Only records tagged with group_id are folded. Every current member appears
    in the result. A former member who still carries a non-zero position is
    kept too, so the positions always sum to zero.
    """
    members = set(member_ids)
    net_balances = {uid: 0 for uid in members}

    for record in expenses:
        if record.group_id != group_id:
            continue
        validate_split_record(record)
        ensure_same_currency(currency, record.currency, record.id)

        # Creditor (payer) increases balance, debtors decrease
        net_balances[record.payer_id] = net_balances.get(record.payer_id, 0) + record.amount
        for share in record.shares:
            net_balances[share.user_id] = net_balances.get(share.user_id, 0) - share.amount_owed

    for record in settlements:
        if record.group_id != group_id:
            continue
        validate_settlement_record(record)
        ensure_same_currency(currency, record.currency, record.id)

        net_balances[record.payer_id] = net_balances.get(record.payer_id, 0) + record.amount
        net_balances[record.payee_id] = net_balances.get(record.payee_id, 0) - record.amount

    return {
        uid: amount for uid, amount in net_balances.items()
        if uid in members or amount != 0
    }


def total_balance(balances: dict[int, int], counterparty_ids: Optional[Iterable[int]] = None) -> int:
    """Sum a pairwise balance mapping, optionally restricted to some counterparties."""
    if counterparty_ids is None:
        return sum(balances.values())
    return sum(balances.get(cp, 0) for cp in counterparty_ids)


def simplify_debts(net_balances: dict[int, int]) -> list[Transfer]:
    """
    Reduce a group's net positions to a short list of transfers.

    Greedy: the largest debtor pays the largest creditor until one of them is
    settled. Ties are broken by user id so the output is deterministic.
    """
    debtors = sorted(
        ([uid, -amount] for uid, amount in net_balances.items() if amount < 0),
        key=lambda d: (-d[1], d[0])
    )
    creditors = sorted(
        ([uid, amount] for uid, amount in net_balances.items() if amount > 0),
        key=lambda c: (-c[1], c[0])
    )

    transactions = []
    i = 0
    j = 0

    while i < len(debtors) and j < len(creditors):
        debtor = debtors[i]
        creditor = creditors[j]

        amount = min(debtor[1], creditor[1])
        transactions.append(Transfer(from_user_id=debtor[0], to_user_id=creditor[0], amount=amount))

        debtor[1] -= amount
        creditor[1] -= amount

        if debtor[1] == 0:
            i += 1
        if creditor[1] == 0:
            j += 1

    return transactions
