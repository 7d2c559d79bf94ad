"""Activity router: the caller's feed of ledger changes."""

from typing import Annotated
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user


router = APIRouter(prefix="/activity", tags=["activity"])


@router.get("", response_model=list[schemas.Activity])
def read_activity(
    current_user: Annotated[models.User, Depends(get_current_user)],
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db)
):
    return db.query(models.Activity).filter(
        models.Activity.user_id == current_user.id
    ).order_by(models.Activity.id.desc()).limit(limit).all()
