"""Balance materializer: keeps Friendship.balance in step with the records.

refresh() recomputes every linked counterparty of one user from a fresh store
snapshot and overwrites the cached balances in a single transaction. It never
writes a partial result. Refreshes for the same user are serialized in-process;
writes across processes are guarded by per-row version checks.
"""

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Optional

import models
from utils.balances import compute_balances
from utils.errors import LedgerError, InvalidStateError, VersionConflictError
from utils.store import SqlRecordStore

logger = logging.getLogger(__name__)

FRESH = "fresh"
STALE = "stale"

# Attempts before a refresh that keeps losing version races gives up
MAX_REFRESH_ATTEMPTS = 3


class UserLocks:
    """One lock per user id, created on first use."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = defaultdict(threading.Lock)

    def get(self, user_id: int) -> threading.Lock:
        with self._guard:
            return self._locks[user_id]


refresh_locks = UserLocks()


@dataclass
class RefreshResult:
    user_id: int
    status: str
    balances: dict[int, int] = field(default_factory=dict)
    error: Optional[str] = None
    record_id: Optional[int] = None

    @property
    def is_fresh(self) -> bool:
        return self.status == FRESH


class BalanceMaterializer:
    def __init__(self, store: SqlRecordStore, locks: UserLocks = refresh_locks):
        self.store = store
        self.locks = locks

    def compute(self, user_id: int) -> tuple[list[models.Friendship], dict[int, int], str]:
        """Read a snapshot and fold it, without writing anything."""
        user = self.store.get_user(user_id)
        linked = self.store.list_relationships(user_id, statuses=[models.FriendStatus.LINKED])
        counterparty_ids = [r.friend_id for r in linked]
        if not counterparty_ids:
            return linked, {}, user.default_currency

        participants = [user_id]
        expenses = self.store.list_expenses(participant_ids=participants)
        settlements = self.store.list_settlements(participant_ids=participants)
        balances = compute_balances(
            user_id, counterparty_ids, expenses, settlements, user.default_currency
        )
        return linked, balances, user.default_currency

    def refresh(self, user_id: int) -> RefreshResult:
        """
        Recompute and overwrite all of user_id's linked balances.

        Raises LedgerError subclasses on failure; the cached values are left
        untouched in that case.
        """
        with self.locks.get(user_id):
            for attempt in range(1, MAX_REFRESH_ATTEMPTS + 1):
                linked, balances, currency = self.compute(user_id)
                updates = [
                    (row.id, row.version, balances.get(row.friend_id, 0), currency)
                    for row in linked
                ]
                try:
                    self.store.write_cached_balances(updates)
                except VersionConflictError:
                    if attempt == MAX_REFRESH_ATTEMPTS:
                        raise
                    logger.info(f"Balance refresh for user {user_id} lost a version race, retrying")
                    continue

                logger.info(f"Refreshed {len(updates)} cached balances for user {user_id}")
                return RefreshResult(user_id=user_id, status=FRESH, balances=balances)

    def refresh_many(self, user_ids: Iterable[int]) -> list[RefreshResult]:
        """
        Refresh several users after a committed write.

        Failures degrade to a stale cache instead of propagating: the write that
        triggered the refresh already succeeded.
        """
        results = []
        for user_id in sorted(set(user_ids)):
            try:
                results.append(self.refresh(user_id))
            except LedgerError as e:
                logger.warning(f"Balance refresh for user {user_id} failed, keeping stale cache: {e}")
                results.append(RefreshResult(
                    user_id=user_id,
                    status=STALE,
                    error=e.message,
                    record_id=e.record_id
                ))
        return results


def overall_status(results: list[RefreshResult]) -> str:
    return FRESH if all(r.is_fresh for r in results) else STALE


def force_balance(store: SqlRecordStore, row: models.Friendship, balance: int) -> models.Friendship:
    """
    Overwrite one cached balance directly, for migration or reconciliation.

    The value is not ground truth: the next refresh recomputes it from records.
    """
    if row.status != models.FriendStatus.LINKED:
        raise InvalidStateError(f"Cannot set a balance on a relationship that is {row.status.value}")

    with refresh_locks.get(row.owner_id):
        store.write_cached_balances([(row.id, row.version, balance, row.currency)])
    logger.info(f"Cached balance of friendship {row.id} forced to {balance}")
    return store.get_relationship(row.owner_id, row.friend_id)
