"""Friends router: link requests, relationship state, and cached balances."""

from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException

import models
import schemas
from dependencies import get_current_user, get_store
from utils.currency import format_currency
from utils.ledger import change_relationship, write_result
from utils.materializer import BalanceMaterializer, force_balance
from utils.relationships import request_link, accept_link, remove_link, visible_balance
from utils.store import SqlRecordStore
from utils.validation import get_user_by_email


router = APIRouter(prefix="/friends", tags=["friends"])


def _friend_response(store: SqlRecordStore, row: models.Friendship) -> schemas.Friend:
    friend = store.get_user(row.friend_id)
    balance = visible_balance(row)
    return schemas.Friend(
        id=row.id,
        friend_id=row.friend_id,
        full_name=friend.full_name,
        email=friend.email,
        status=row.status.value,
        balance=balance,
        currency=row.currency,
        formatted_balance=format_currency(balance, row.currency),
        balance_refreshed_at=row.balance_refreshed_at
    )


@router.post("", response_model=schemas.Friend)
def add_friend(
    friend_request: schemas.FriendRequest, 
    current_user: Annotated[models.User, Depends(get_current_user)], 
    store: SqlRecordStore = Depends(get_store)
):
    friend_user = get_user_by_email(store.db, friend_request.email)
    if not friend_user:
        raise HTTPException(status_code=404, detail="User not found")

    row, _ = change_relationship(store, request_link, current_user.id, friend_user.id, "friend_requested")
    return _friend_response(store, row)


@router.post("/{friend_id}/accept", response_model=schemas.Friend)
def accept_friend(
    friend_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    store: SqlRecordStore = Depends(get_store)
):
    change_relationship(store, accept_link, current_user.id, friend_id, "friend_linked")
    return _friend_response(store, store.get_relationship(current_user.id, friend_id))


@router.delete("/{friend_id}", response_model=schemas.Friend)
def remove_friend(
    friend_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    store: SqlRecordStore = Depends(get_store)
):
    change_relationship(store, remove_link, current_user.id, friend_id, "friend_removed")
    return _friend_response(store, store.get_relationship(current_user.id, friend_id))


@router.get("", response_model=list[schemas.Friend])
def read_friends(
    current_user: Annotated[models.User, Depends(get_current_user)], 
    store: SqlRecordStore = Depends(get_store)
):
    """
    List the caller's relationships with their cached balances.

    Reads never block on recomputation: a linked friend shows the last
    materialized balance (see balance_refreshed_at); every other status shows 0.
    """
    rows = store.list_relationships(current_user.id)
    return [_friend_response(store, row) for row in rows]


@router.put("/{friend_id}/balance", response_model=schemas.Friend)
def update_balance(
    friend_id: int,
    update: schemas.BalanceUpdate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    store: SqlRecordStore = Depends(get_store)
):
    """Force-set a cached balance. The next refresh overwrites it from records."""
    row = store.get_relationship(current_user.id, friend_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Friend not found")

    row = force_balance(store, row, update.balance)
    return _friend_response(store, row)


@router.post("/refresh", response_model=schemas.LedgerWriteResult)
def refresh_balances(
    current_user: Annotated[models.User, Depends(get_current_user)],
    store: SqlRecordStore = Depends(get_store)
):
    """Recompute the caller's cached balances now; errors propagate to the caller."""
    result = BalanceMaterializer(store).refresh(current_user.id)
    return write_result([result])
