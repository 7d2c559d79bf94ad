"""Password hashing and bearer tokens for resolving the calling user."""

import logging
import os
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from jose import JWTError, jwt

logger = logging.getLogger(__name__)

SECRET_KEY = os.environ.get("SECRET_KEY", "change-me-ledger-secret")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.environ.get("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))
TOKEN_TYPE = "access"


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a JWT for data["sub"] (the user's email)."""
    claims = dict(data)
    lifetime = expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    claims.update({"exp": datetime.utcnow() + lifetime, "type": TOKEN_TYPE})
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


def issue_token(email: str) -> dict:
    return {"access_token": create_access_token({"sub": email}), "token_type": "bearer"}


def decode_access_token(token: str) -> Optional[str]:
    """Return the token's subject, or None if it is invalid, expired, or not an access token."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.debug(f"Rejected bearer token: {e}")
        return None
    if payload.get("type") != TOKEN_TYPE:
        return None
    return payload.get("sub")
