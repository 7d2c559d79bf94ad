"""Validation utilities for group membership, access control, and expense participants."""

from typing import Optional

from sqlalchemy.orm import Session
from fastapi import HTTPException

import models
import schemas


def get_user_by_email(db: Session, email: str):
    """Get a user by their email address."""
    return db.query(models.User).filter(models.User.email == email).first()


def get_group_or_404(db: Session, group_id: int):
    """Get a group by ID or raise 404 if not found."""
    group = db.query(models.Group).filter(models.Group.id == group_id).first()
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")
    return group


def verify_group_membership(db: Session, group_id: int, user_id: int):
    """Verify that a user is a member of a group, raise 403 if not."""
    member = db.query(models.GroupMember).filter(
        models.GroupMember.group_id == group_id,
        models.GroupMember.user_id == user_id
    ).first()
    if not member:
        raise HTTPException(status_code=403, detail="You are not a member of this group")
    return member


def verify_group_ownership(db: Session, group_id: int, user_id: int):
    """Verify that a user owns a group, raise 403 if not."""
    group = get_group_or_404(db, group_id)
    if group.created_by_id != user_id:
        raise HTTPException(status_code=403, detail="Only the group owner can perform this action")
    return group


def validate_expense_participants(
    db: Session,
    payer_id: int,
    splits: list[schemas.ExpenseSplitBase],
    group_id: Optional[int] = None,
    current_user_id: Optional[int] = None
) -> None:
    """
    Validate who an expense may involve.

    The payer and every participant must exist and appear once. A group expense
    may only involve group members. Outside a group, the caller must take part
    and every other participant must be the caller's friend (pending or linked).
    """
    user_ids = {payer_id} | {s.user_id for s in splits}
    found = {
        r[0] for r in db.query(models.User.id).filter(models.User.id.in_(list(user_ids))).all()
    }
    missing = sorted(user_ids - found)
    if missing:
        raise HTTPException(status_code=400, detail=f"Users with IDs {missing} not found")

    if len({s.user_id for s in splits}) != len(splits):
        raise HTTPException(status_code=400, detail="Each participant may appear only once in splits")

    if group_id is not None:
        member_ids = {
            r[0] for r in db.query(models.GroupMember.user_id).filter(
                models.GroupMember.group_id == group_id
            ).all()
        }
        outsiders = sorted(user_ids - member_ids)
        if outsiders:
            raise HTTPException(status_code=400, detail=f"Users {outsiders} are not a member of the group")
        return

    if current_user_id is None:
        return
    if current_user_id not in user_ids:
        raise HTTPException(status_code=403, detail="You can only record expenses you are part of")

    others = user_ids - {current_user_id}
    friend_ids = {
        r[0] for r in db.query(models.Friendship.friend_id).filter(
            models.Friendship.owner_id == current_user_id,
            models.Friendship.friend_id.in_(list(others)),
            models.Friendship.status.in_([models.FriendStatus.PENDING, models.FriendStatus.LINKED])
        ).all()
    }
    strangers = sorted(others - friend_ids)
    if strangers:
        raise HTTPException(status_code=400, detail=f"Users {strangers} are not a friend of yours")


def verify_expense_access(db: Session, expense: models.Expense, user_id: int) -> None:
    """Allow the payer, any participant, or a member of the expense's group."""
    if expense.payer_id == user_id:
        return
    in_splits = db.query(models.ExpenseSplit).filter(
        models.ExpenseSplit.expense_id == expense.id,
        models.ExpenseSplit.user_id == user_id
    ).first()
    if in_splits:
        return
    if expense.group_id and db.query(models.GroupMember).filter(
        models.GroupMember.group_id == expense.group_id,
        models.GroupMember.user_id == user_id
    ).first():
        return
    raise HTTPException(status_code=403, detail="You don't have access to this expense")
