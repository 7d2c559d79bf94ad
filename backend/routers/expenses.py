"""Expenses router: create, read, update, delete expenses."""

from typing import Annotated
from fastapi import APIRouter, Depends

import models
import schemas
from dependencies import get_current_user, get_store
from utils.display import get_participant_display_names
from utils.ledger import add_expense, edit_expense, delete_expense, write_result
from utils.store import SqlRecordStore
from utils.validation import get_group_or_404, verify_group_membership, validate_expense_participants, verify_expense_access


router = APIRouter(tags=["expenses"])


def _validate(store: SqlRecordStore, expense: schemas.ExpenseCreate, user_id: int) -> None:
    if expense.group_id is not None:
        get_group_or_404(store.db, expense.group_id)
        verify_group_membership(store.db, expense.group_id, user_id)

    validate_expense_participants(
        db=store.db,
        payer_id=expense.payer_id,
        splits=expense.splits,
        group_id=expense.group_id,
        current_user_id=user_id
    )


@router.post("/expenses", response_model=schemas.ExpenseWriteResult)
def create_expense(
    expense: schemas.ExpenseCreate, 
    current_user: Annotated[models.User, Depends(get_current_user)], 
    store: SqlRecordStore = Depends(get_store)
):
    _validate(store, expense, current_user.id)
    db_expense, results = add_expense(store, expense, current_user.id)
    return {"expense": db_expense, **write_result(results)}


@router.get("/expenses", response_model=list[schemas.Expense])
def read_expenses(
    current_user: Annotated[models.User, Depends(get_current_user)], 
    store: SqlRecordStore = Depends(get_store)
):
    # Return expenses where user is involved (payer or splitter)
    return store.list_expense_models(participant_ids=[current_user.id])


@router.get("/expenses/{expense_id}", response_model=schemas.ExpenseWithSplits)
def get_expense(
    expense_id: int, 
    current_user: Annotated[models.User, Depends(get_current_user)], 
    store: SqlRecordStore = Depends(get_store)
):
    expense = store.get_expense(expense_id)
    verify_expense_access(store.db, expense, current_user.id)

    splits = store.get_splits(expense_id)
    names = get_participant_display_names(store.db, [s.user_id for s in splits])

    splits_with_names = [
        schemas.ExpenseSplitDetail(
            id=split.id,
            expense_id=split.expense_id,
            user_id=split.user_id,
            amount_owed=split.amount_owed,
            percentage=split.percentage,
            shares=split.shares,
            user_name=names[split.user_id]
        )
        for split in splits
    ]

    return schemas.ExpenseWithSplits(
        **schemas.Expense.model_validate(expense).model_dump(),
        splits=splits_with_names
    )


@router.put("/expenses/{expense_id}", response_model=schemas.ExpenseWriteResult)
def update_expense(
    expense_id: int,
    expense: schemas.ExpenseUpdate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    store: SqlRecordStore = Depends(get_store)
):
    db_expense = store.get_expense(expense_id)
    verify_expense_access(store.db, db_expense, current_user.id)
    _validate(store, expense, current_user.id)

    db_expense, results = edit_expense(store, expense_id, expense, current_user.id)
    return {"expense": db_expense, **write_result(results)}


@router.delete("/expenses/{expense_id}", response_model=schemas.LedgerWriteResult)
def remove_expense(
    expense_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    store: SqlRecordStore = Depends(get_store)
):
    expense = store.get_expense(expense_id)
    verify_expense_access(store.db, expense, current_user.id)

    results = delete_expense(store, expense_id, current_user.id)
    return write_result(results)
