"""Relationship directory: the pending -> linked / removed state machine.

Each link is held as two directed rows, one owned by each user. A removed link
is terminal; linking again creates fresh rows so the old ones stay as history.
"""

import logging

import models
from utils.errors import InvalidStateError
from utils.store import SqlRecordStore

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (models.FriendStatus.PENDING, models.FriendStatus.LINKED)


def _active_pair(store: SqlRecordStore, user_id: int, friend_id: int):
    """Return (own_row, mirrored_row) for the pair, either may be None."""
    return store.get_relationship(user_id, friend_id), store.get_relationship(friend_id, user_id)


def _is_active(row) -> bool:
    return row is not None and row.status in ACTIVE_STATUSES


def request_link(store: SqlRecordStore, user_id: int, friend_id: int) -> models.Friendship:
    """Create a pending relationship from user_id to friend_id (and its mirror)."""
    if user_id == friend_id:
        raise InvalidStateError("Cannot add yourself as friend")

    own, mirror = _active_pair(store, user_id, friend_id)
    if _is_active(own) or _is_active(mirror):
        status = own.status if _is_active(own) else mirror.status
        raise InvalidStateError(f"Relationship already {status.value}")

    owner = store.get_user(user_id)
    friend = store.get_user(friend_id)
    own_row = models.Friendship(
        owner_id=user_id,
        friend_id=friend_id,
        requested_by_id=user_id,
        status=models.FriendStatus.PENDING,
        balance=0,
        currency=owner.default_currency,
        version=0
    )
    mirror_row = models.Friendship(
        owner_id=friend_id,
        friend_id=user_id,
        requested_by_id=user_id,
        status=models.FriendStatus.PENDING,
        balance=0,
        currency=friend.default_currency,
        version=0
    )
    store.add_relationships([own_row, mirror_row])
    logger.info(f"User {user_id} requested link with {friend_id}")
    return own_row


def accept_link(store: SqlRecordStore, user_id: int, friend_id: int) -> models.Friendship:
    """Accept a pending request that friend_id sent to user_id."""
    own, mirror = _active_pair(store, user_id, friend_id)
    if own is None or mirror is None:
        raise InvalidStateError("No relationship to accept")
    if own.status != models.FriendStatus.PENDING:
        raise InvalidStateError(f"Cannot accept a relationship that is {own.status.value}")
    if own.requested_by_id == user_id:
        raise InvalidStateError("Only the invited user can accept a link request")

    store.set_status([own, mirror], models.FriendStatus.LINKED)
    logger.info(f"User {user_id} accepted link with {friend_id}")
    return own


def remove_link(store: SqlRecordStore, user_id: int, friend_id: int) -> models.Friendship:
    """Reject a pending request or unlink a linked relationship, from either side."""
    own, mirror = _active_pair(store, user_id, friend_id)
    if not _is_active(own):
        state = own.status.value if own is not None else "missing"
        raise InvalidStateError(f"Cannot remove a relationship that is {state}")

    rows = [own] + ([mirror] if _is_active(mirror) else [])
    store.set_status(rows, models.FriendStatus.REMOVED)
    logger.info(f"User {user_id} removed link with {friend_id}")
    return own


def visible_balance(row: models.Friendship) -> int:
    """Only linked relationships surface a balance; everything else reads as zero."""
    if row.status != models.FriendStatus.LINKED:
        return 0
    return row.balance
