"""Request-scoped dependencies: the calling user and the record store."""

from typing import Annotated
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

import auth
from database import get_db
from utils.store import SqlRecordStore
from utils.validation import get_user_by_email


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")


def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Session = Depends(get_db)
):
    """Resolve the active user named by the bearer token, else 401."""
    email = auth.decode_access_token(token)
    user = get_user_by_email(db, email=email) if email else None
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_store(db: Session = Depends(get_db)) -> SqlRecordStore:
    """Record store bound to the request's session."""
    return SqlRecordStore(db)
