"""Settlements router: record and list direct payments between users."""

from typing import Annotated, Optional
from fastapi import APIRouter, Depends, HTTPException

import models
import schemas
from dependencies import get_current_user, get_store
from utils.ledger import record_settlement, write_result
from utils.store import SqlRecordStore
from utils.validation import get_group_or_404, verify_group_membership


router = APIRouter(prefix="/settlements", tags=["settlements"])


@router.post("", response_model=schemas.SettlementWriteResult)
def create_settlement(
    settlement: schemas.SettlementCreate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    store: SqlRecordStore = Depends(get_store)
):
    payer_id = settlement.payer_id if settlement.payer_id is not None else current_user.id
    if current_user.id not in (payer_id, settlement.payee_id):
        raise HTTPException(status_code=403, detail="You can only record settlements you are part of")
    if payer_id == settlement.payee_id:
        raise HTTPException(status_code=400, detail="Cannot settle with yourself")

    # Raises RecordNotFoundError (404) for unknown users
    store.get_user(payer_id)
    store.get_user(settlement.payee_id)

    if settlement.group_id is not None:
        get_group_or_404(store.db, settlement.group_id)
        verify_group_membership(store.db, settlement.group_id, payer_id)
        verify_group_membership(store.db, settlement.group_id, settlement.payee_id)

    db_settlement, results = record_settlement(store, settlement, payer_id, current_user.id)
    return {"settlement": db_settlement, **write_result(results)}


@router.get("", response_model=list[schemas.Settlement])
def read_settlements(
    current_user: Annotated[models.User, Depends(get_current_user)],
    group_id: Optional[int] = None,
    store: SqlRecordStore = Depends(get_store)
):
    if group_id is not None:
        verify_group_membership(store.db, group_id, current_user.id)
        return store.list_settlement_models(group_id=group_id)
    return store.list_settlement_models(participant_ids=[current_user.id])
