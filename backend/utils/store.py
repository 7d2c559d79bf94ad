"""SQLAlchemy adapter for the split record store and the relationship directory.

All reads return immutable snapshots (see utils/records.py). All writes commit
one record per transaction. Driver-level failures (locked database, lost
connection, busy timeout) surface as StoreUnavailableError after the session
has been rolled back.
"""

import functools
import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import or_, update
from sqlalchemy.exc import OperationalError, InterfaceError
from sqlalchemy.orm import Session

import models
import schemas
from utils.errors import StoreUnavailableError, RecordNotFoundError, VersionConflictError
from utils.records import (
    SplitRecord,
    SettlementRecord,
    split_record_from_model,
    settlement_record_from_model
)
from utils.splits import check_conservation

logger = logging.getLogger(__name__)


def store_call(func):
    """Translate driver failures into StoreUnavailableError and roll back."""
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except (OperationalError, InterfaceError) as e:
            logger.warning(f"Store call {func.__name__} failed: {e}")
            self.db.rollback()
            raise StoreUnavailableError(f"Record store unavailable during {func.__name__}") from e
    return wrapper


class SqlRecordStore:
    def __init__(self, db: Session):
        self.db = db

    # ---- Split records ----

    def _expense_query(self, participant_ids: Optional[Iterable[int]], group_id: Optional[int]):
        query = self.db.query(models.Expense)
        if participant_ids is not None:
            ids = list(participant_ids)
            split_subquery = self.db.query(models.ExpenseSplit.expense_id).filter(
                models.ExpenseSplit.user_id.in_(ids)
            )
            query = query.filter(
                or_(models.Expense.payer_id.in_(ids), models.Expense.id.in_(split_subquery))
            )
        if group_id is not None:
            query = query.filter(models.Expense.group_id == group_id)
        return query

    @store_call
    def list_expenses(
        self,
        participant_ids: Optional[Iterable[int]] = None,
        group_id: Optional[int] = None
    ) -> list[SplitRecord]:
        """List expense snapshots involving any of participant_ids and/or tagged with group_id."""
        expenses = self._expense_query(participant_ids, group_id).order_by(models.Expense.id).all()
        if not expenses:
            return []

        # Batch-load splits to avoid one query per expense
        splits_by_expense = {e.id: [] for e in expenses}
        splits = self.db.query(models.ExpenseSplit).filter(
            models.ExpenseSplit.expense_id.in_(list(splits_by_expense.keys()))
        ).all()
        for split in splits:
            splits_by_expense[split.expense_id].append(split)

        return [split_record_from_model(e, splits_by_expense[e.id]) for e in expenses]

    @store_call
    def list_expense_models(self, participant_ids: Optional[Iterable[int]] = None, group_id: Optional[int] = None):
        return self._expense_query(participant_ids, group_id).order_by(models.Expense.date.desc(), models.Expense.id.desc()).all()

    @store_call
    def get_expense(self, expense_id: int) -> models.Expense:
        expense = self.db.query(models.Expense).filter(models.Expense.id == expense_id).first()
        if not expense:
            raise RecordNotFoundError("Expense not found", record_id=expense_id)
        return expense

    @store_call
    def get_splits(self, expense_id: int) -> list[models.ExpenseSplit]:
        return self.db.query(models.ExpenseSplit).filter(
            models.ExpenseSplit.expense_id == expense_id
        ).order_by(models.ExpenseSplit.position, models.ExpenseSplit.id).all()

    def _write_splits(self, expense_id: int, splits: list[schemas.ExpenseSplitBase]) -> None:
        for position, split in enumerate(splits):
            self.db.add(models.ExpenseSplit(
                expense_id=expense_id,
                position=position,
                user_id=split.user_id,
                amount_owed=split.amount_owed,
                percentage=split.percentage,
                shares=split.shares
            ))

    @store_call
    def put_expense(
        self,
        fields: dict,
        splits: list[schemas.ExpenseSplitBase],
        expense_id: Optional[int] = None,
        expected_version: Optional[int] = None
    ) -> models.Expense:
        """
        Create (expense_id is None) or replace an expense and its splits in one transaction.

        Conservation is checked before anything is written. When expected_version
        is given, the update only applies if the stored version still matches.
        """
        check_conservation(fields["amount"], [s.amount_owed for s in splits], record_id=expense_id)

        if expense_id is None:
            db_expense = models.Expense(**fields, version=1)
            self.db.add(db_expense)
            self.db.flush()
        else:
            stmt = update(models.Expense).where(models.Expense.id == expense_id)
            if expected_version is not None:
                stmt = stmt.where(models.Expense.version == expected_version)
            result = self.db.execute(
                stmt.values(version=models.Expense.version + 1, **fields)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                self.db.rollback()
                if self.db.query(models.Expense.id).filter(models.Expense.id == expense_id).first():
                    raise VersionConflictError("Expense was modified by another writer", record_id=expense_id)
                raise RecordNotFoundError("Expense not found", record_id=expense_id)

            self.db.query(models.ExpenseSplit).filter(
                models.ExpenseSplit.expense_id == expense_id
            ).delete(synchronize_session=False)
            db_expense = self.db.query(models.Expense).filter(models.Expense.id == expense_id).first()

        self._write_splits(db_expense.id, splits)
        self.db.commit()
        self.db.refresh(db_expense)
        return db_expense

    @store_call
    def delete_expense(self, expense_id: int) -> None:
        expense = self.db.query(models.Expense).filter(models.Expense.id == expense_id).first()
        if not expense:
            raise RecordNotFoundError("Expense not found", record_id=expense_id)

        self.db.query(models.ExpenseSplit).filter(
            models.ExpenseSplit.expense_id == expense_id
        ).delete(synchronize_session=False)
        self.db.delete(expense)
        self.db.commit()

    # ---- Settlement records ----

    @store_call
    def list_settlements(
        self,
        participant_ids: Optional[Iterable[int]] = None,
        group_id: Optional[int] = None
    ) -> list[SettlementRecord]:
        return [settlement_record_from_model(s) for s in self.list_settlement_models(participant_ids, group_id)]

    @store_call
    def list_settlement_models(self, participant_ids: Optional[Iterable[int]] = None, group_id: Optional[int] = None):
        query = self.db.query(models.Settlement)
        if participant_ids is not None:
            ids = list(participant_ids)
            query = query.filter(
                or_(models.Settlement.payer_id.in_(ids), models.Settlement.payee_id.in_(ids))
            )
        if group_id is not None:
            query = query.filter(models.Settlement.group_id == group_id)
        return query.order_by(models.Settlement.id).all()

    @store_call
    def put_settlement(self, fields: dict) -> models.Settlement:
        """Settlements are append-only; corrections are new compensating settlements."""
        db_settlement = models.Settlement(**fields)
        self.db.add(db_settlement)
        self.db.commit()
        self.db.refresh(db_settlement)
        return db_settlement

    # ---- Relationship directory ----

    @store_call
    def get_relationship(self, owner_id: int, friend_id: int) -> Optional[models.Friendship]:
        """Most recent relationship row for the directed pair, whatever its status."""
        return self.db.query(models.Friendship).filter(
            models.Friendship.owner_id == owner_id,
            models.Friendship.friend_id == friend_id
        ).order_by(models.Friendship.id.desc()).first()

    @store_call
    def list_relationships(
        self,
        owner_id: int,
        statuses: Optional[Iterable[models.FriendStatus]] = None
    ) -> list[models.Friendship]:
        """Current (most recent) relationship row per friend for owner_id."""
        rows = self.db.query(models.Friendship).filter(
            models.Friendship.owner_id == owner_id
        ).order_by(models.Friendship.id).all()

        latest = {}
        for row in rows:
            latest[row.friend_id] = row

        result = list(latest.values())
        if statuses is not None:
            allowed = set(statuses)
            result = [r for r in result if r.status in allowed]
        return result

    @store_call
    def list_owners_with_linked(self) -> list[int]:
        rows = self.db.query(models.Friendship.owner_id).filter(
            models.Friendship.status == models.FriendStatus.LINKED
        ).distinct().all()
        return sorted(r[0] for r in rows)

    @store_call
    def add_relationships(self, rows: list[models.Friendship]) -> list[models.Friendship]:
        for row in rows:
            self.db.add(row)
        self.db.commit()
        for row in rows:
            self.db.refresh(row)
        return rows

    @store_call
    def set_status(self, rows: list[models.Friendship], status: models.FriendStatus) -> None:
        """Transition rows together; a non-linked row always caches a zero balance."""
        for row in rows:
            row.status = status
            row.version = row.version + 1
            if status != models.FriendStatus.LINKED:
                row.balance = 0
        self.db.commit()

    @store_call
    def write_cached_balances(self, updates: list[tuple[int, int, int, str]]) -> None:
        """
        Overwrite cached balances as one unit.

        Each update is (friendship_id, expected_version, balance, currency). If any
        row changed since it was read, nothing is written and VersionConflictError
        is raised.
        """
        now = datetime.utcnow()
        for friendship_id, expected_version, balance, currency in updates:
            result = self.db.execute(
                update(models.Friendship)
                .where(
                    models.Friendship.id == friendship_id,
                    models.Friendship.version == expected_version
                )
                .values(
                    balance=balance,
                    currency=currency,
                    version=expected_version + 1,
                    balance_refreshed_at=now
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                self.db.rollback()
                raise VersionConflictError(
                    "Cached balance changed during refresh", record_id=friendship_id
                )
        self.db.commit()
        self.db.expire_all()

    # ---- Users, groups, activity ----

    @store_call
    def get_user(self, user_id: int) -> models.User:
        user = self.db.query(models.User).filter(models.User.id == user_id).first()
        if not user:
            raise RecordNotFoundError("User not found", record_id=user_id)
        return user

    @store_call
    def get_group(self, group_id: int) -> models.Group:
        group = self.db.query(models.Group).filter(models.Group.id == group_id).first()
        if not group:
            raise RecordNotFoundError("Group not found", record_id=group_id)
        return group

    @store_call
    def get_group_member_ids(self, group_id: int) -> list[int]:
        rows = self.db.query(models.GroupMember.user_id).filter(
            models.GroupMember.group_id == group_id
        ).all()
        return [r[0] for r in rows]

    @store_call
    def add_activity(self, user_ids: Iterable[int], **fields) -> None:
        """Append one feed entry per affected user."""
        for uid in sorted(set(user_ids)):
            self.db.add(models.Activity(user_id=uid, **fields))
        self.db.commit()
