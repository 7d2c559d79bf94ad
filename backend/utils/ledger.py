"""Ledger mutations.

Every mutation is two-phase: the record is committed to the store first, then
the cached balances of everyone it touches are refreshed. A failed refresh
never undoes the write; it is reported back as a stale balance status.
"""

import logging
from typing import Optional

import models
import schemas
from utils.currency import DEFAULT_CURRENCY, format_currency
from utils.materializer import BalanceMaterializer, RefreshResult, overall_status
from utils.splits import calculate_splits
from utils.store import SqlRecordStore

logger = logging.getLogger(__name__)


def normalize_date(date_str: str) -> str:
    """Normalize date string to YYYY-MM-DD format for consistent sorting."""
    if not date_str:
        return date_str
    # If it's already YYYY-MM-DD format, return as-is
    if len(date_str) == 10 and date_str[4] == '-' and date_str[7] == '-':
        return date_str
    # Handle ISO format with time component (e.g., 2025-12-27T00:00:00.000Z)
    if 'T' in date_str:
        return date_str.split('T')[0]
    return date_str


def record_currency(store: SqlRecordStore, currency: Optional[str], group_id: Optional[int], user_id: int) -> str:
    """An explicit currency wins; otherwise the group's, else the acting user's default."""
    if currency:
        return currency
    if group_id is not None:
        return store.get_group(group_id).default_currency or DEFAULT_CURRENCY
    return store.get_user(user_id).default_currency


def _affected_users(payer_id: int, splits) -> set[int]:
    return {payer_id} | {s.user_id for s in splits}


def write_result(results: list[RefreshResult]) -> dict:
    return {
        "balance_status": overall_status(results),
        "stale_user_ids": [r.user_id for r in results if not r.is_fresh]
    }


def add_expense(
    store: SqlRecordStore,
    expense: schemas.ExpenseCreate,
    created_by_id: int
) -> tuple[models.Expense, list[RefreshResult]]:
    splits = calculate_splits(expense.split_type, expense.amount, expense.splits)
    currency = record_currency(store, expense.currency, expense.group_id, created_by_id)

    db_expense = store.put_expense(
        {
            "description": expense.description,
            "amount": expense.amount,
            "currency": currency,
            "date": normalize_date(expense.date),
            "payer_id": expense.payer_id,
            "group_id": expense.group_id,
            "created_by_id": created_by_id,
            "split_type": expense.split_type,
            "notes": expense.notes
        },
        splits
    )
    affected = _affected_users(expense.payer_id, splits)
    store.add_activity(
        affected,
        type="expense_added",
        description=f'added "{expense.description}" ({format_currency(expense.amount, currency)})',
        amount=expense.amount,
        currency=currency,
        group_id=expense.group_id,
        expense_id=db_expense.id,
        created_by_id=created_by_id
    )

    results = BalanceMaterializer(store).refresh_many(affected)
    return db_expense, results


def edit_expense(
    store: SqlRecordStore,
    expense_id: int,
    expense: schemas.ExpenseUpdate,
    edited_by_id: int
) -> tuple[models.Expense, list[RefreshResult]]:
    """Replace an expense; users on both the old and the new version are refreshed."""
    stored = store.get_expense(expense_id)
    old_payer_id = stored.payer_id
    currency = expense.currency or stored.currency
    old_splits = store.get_splits(expense_id)
    splits = calculate_splits(expense.split_type, expense.amount, expense.splits)

    db_expense = store.put_expense(
        {
            "description": expense.description,
            "amount": expense.amount,
            "currency": currency,
            "date": normalize_date(expense.date),
            "payer_id": expense.payer_id,
            "group_id": expense.group_id,
            "split_type": expense.split_type,
            "notes": expense.notes
        },
        splits,
        expense_id=expense_id,
        expected_version=expense.version
    )
    affected = _affected_users(old_payer_id, old_splits) | _affected_users(expense.payer_id, splits)
    store.add_activity(
        affected,
        type="expense_updated",
        description=f'updated "{expense.description}"',
        amount=expense.amount,
        currency=currency,
        group_id=expense.group_id,
        expense_id=expense_id,
        created_by_id=edited_by_id
    )

    results = BalanceMaterializer(store).refresh_many(affected)
    return db_expense, results


def delete_expense(store: SqlRecordStore, expense_id: int, deleted_by_id: int) -> list[RefreshResult]:
    expense = store.get_expense(expense_id)
    affected = _affected_users(expense.payer_id, store.get_splits(expense_id))
    description, amount, currency, group_id = expense.description, expense.amount, expense.currency, expense.group_id

    store.delete_expense(expense_id)
    store.add_activity(
        affected,
        type="expense_deleted",
        description=f'deleted "{description}"',
        amount=amount,
        currency=currency,
        group_id=group_id,
        expense_id=expense_id,
        created_by_id=deleted_by_id
    )

    return BalanceMaterializer(store).refresh_many(affected)


def record_settlement(
    store: SqlRecordStore,
    settlement: schemas.SettlementCreate,
    payer_id: int,
    created_by_id: Optional[int] = None
) -> tuple[models.Settlement, list[RefreshResult]]:
    currency = record_currency(store, settlement.currency, settlement.group_id, created_by_id or payer_id)
    db_settlement = store.put_settlement({
        "payer_id": payer_id,
        "payee_id": settlement.payee_id,
        "amount": settlement.amount,
        "currency": currency,
        "group_id": settlement.group_id,
        "date": normalize_date(settlement.date),
        "notes": settlement.notes,
        "created_by_id": created_by_id if created_by_id is not None else payer_id
    })
    affected = {payer_id, settlement.payee_id}
    payee = store.get_user(settlement.payee_id)
    store.add_activity(
        affected,
        type="settlement",
        description=f"settled up with {payee.full_name or payee.email}",
        amount=settlement.amount,
        currency=currency,
        group_id=settlement.group_id,
        settlement_id=db_settlement.id,
        created_by_id=db_settlement.created_by_id
    )

    results = BalanceMaterializer(store).refresh_many(affected)
    return db_settlement, results


def change_relationship(store: SqlRecordStore, transition, user_id: int, friend_id: int, activity_type: str):
    """Apply a relationship transition, then refresh both owners' caches."""
    row = transition(store, user_id, friend_id)
    friend = store.get_user(friend_id)
    store.add_activity(
        {user_id, friend_id},
        type=activity_type,
        description=f"{activity_type.replace('_', ' ')}: {friend.full_name or friend.email}",
        created_by_id=user_id
    )
    results = BalanceMaterializer(store).refresh_many({user_id, friend_id})
    return row, results
