"""Balances router: live balance computation and debt simplification."""

from typing import Annotated
from fastapi import APIRouter, Depends

import models
import schemas
from dependencies import get_current_user, get_store
from utils.balances import compute_balances, compute_group_balances, simplify_debts, total_balance
from utils.currency import DEFAULT_CURRENCY
from utils.display import get_participant_display_names
from utils.store import SqlRecordStore
from utils.validation import get_group_or_404, verify_group_membership


router = APIRouter(tags=["balances"])


def _group_currency(group: models.Group) -> str:
    return group.default_currency or DEFAULT_CURRENCY


def _group_net_balances(store: SqlRecordStore, group: models.Group) -> dict[int, int]:
    currency = _group_currency(group)
    return compute_group_balances(
        group.id,
        store.get_group_member_ids(group.id),
        store.list_expenses(group_id=group.id),
        store.list_settlements(group_id=group.id),
        currency
    )


@router.get("/groups/{group_id}/balances", response_model=list[schemas.GroupBalance])
def get_group_balances(
    group_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    store: SqlRecordStore = Depends(get_store)
):
    group = get_group_or_404(store.db, group_id)
    verify_group_membership(store.db, group_id, current_user.id)

    net_balances = _group_net_balances(store, group)
    member_ids = set(store.get_group_member_ids(group_id))
    names = get_participant_display_names(store.db, list(net_balances.keys()))

    return [
        schemas.GroupBalance(
            user_id=uid,
            full_name=names[uid],
            amount=amount,
            currency=_group_currency(group),
            is_member=uid in member_ids
        )
        for uid, amount in sorted(net_balances.items())
    ]


@router.get("/balances", response_model=schemas.BalanceSummary)
def get_balances(
    current_user: Annotated[models.User, Depends(get_current_user)], 
    store: SqlRecordStore = Depends(get_store)
):
    """Live pairwise balances against every linked friend, computed from records."""
    linked = store.list_relationships(current_user.id, statuses=[models.FriendStatus.LINKED])
    counterparty_ids = [r.friend_id for r in linked]
    currency = current_user.default_currency

    balances = compute_balances(
        current_user.id,
        counterparty_ids,
        store.list_expenses(participant_ids=[current_user.id]),
        store.list_settlements(participant_ids=[current_user.id]),
        currency
    )
    names = get_participant_display_names(store.db, counterparty_ids)

    return schemas.BalanceSummary(
        balances=[
            schemas.Balance(user_id=uid, full_name=names[uid], amount=amount, currency=currency)
            for uid, amount in sorted(balances.items())
            if amount != 0
        ],
        total=total_balance(balances),
        currency=currency
    )


@router.get("/simplify_debts/{group_id}", response_model=dict[str, list[schemas.Transaction]])
def get_simplified_debts(
    group_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    store: SqlRecordStore = Depends(get_store)
):
    """Simplify debts in a group using a greedy matching. Returns transactions in group's default currency."""
    group = get_group_or_404(store.db, group_id)
    verify_group_membership(store.db, group_id, current_user.id)

    target_currency = _group_currency(group)
    transfers = simplify_debts(_group_net_balances(store, group))

    return {
        "transactions": [
            schemas.Transaction(
                from_id=t.from_user_id,
                to_id=t.to_user_id,
                amount=t.amount,
                currency=target_currency
            )
            for t in transfers
        ]
    }
