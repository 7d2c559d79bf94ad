"""Authentication router: register, login, and the caller's own account."""

import logging
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

import models
import schemas
import auth
from database import get_db
from dependencies import get_current_user, get_store
from utils.materializer import BalanceMaterializer
from utils.store import SqlRecordStore
from utils.validation import get_user_by_email

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.post("/register", response_model=schemas.Token)
def register_user(user: schemas.UserCreate, db: Session = Depends(get_db)):
    if get_user_by_email(db, email=user.email):
        raise HTTPException(status_code=400, detail="Email already registered")

    db_user = models.User(
        email=user.email,
        hashed_password=auth.get_password_hash(user.password),
        full_name=user.full_name,
        default_currency=user.default_currency
    )
    db.add(db_user)
    db.commit()
    logger.info(f"Registered user {db_user.id} ({db_user.default_currency})")

    return auth.issue_token(db_user.email)


@router.post("/token", response_model=schemas.Token)
def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    db: Session = Depends(get_db)
):
    user = get_user_by_email(db, form_data.username)
    if user is None or not auth.verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return auth.issue_token(user.email)


@router.get("/users/me", response_model=schemas.User)
def read_users_me(current_user: Annotated[models.User, Depends(get_current_user)]):
    return current_user


@router.put("/users/me/currency", response_model=schemas.User)
def update_default_currency(
    update: schemas.CurrencyUpdate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    store: SqlRecordStore = Depends(get_store)
):
    """
    Change the caller's unit of account.

    Balances are not converted. Existing records in the old currency make the
    next refresh fail with a currency mismatch, which leaves the cache stale.
    """
    current_user.default_currency = update.default_currency
    store.db.commit()
    store.db.refresh(current_user)

    BalanceMaterializer(store).refresh_many([current_user.id])
    return current_user
