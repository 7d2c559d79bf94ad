"""Groups router: a group is a named member set whose expenses are a filtered view of the ledger."""

import logging
from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import update
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user
from utils.display import get_user_display_name
from utils.validation import get_group_or_404, get_user_by_email, verify_group_membership, verify_group_ownership

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/groups", tags=["groups"])


def _member_view(member: models.GroupMember, user: models.User) -> schemas.GroupMember:
    return schemas.GroupMember(
        id=member.id,
        user_id=user.id,
        full_name=get_user_display_name(user),
        email=user.email
    )


@router.post("", response_model=schemas.Group)
def create_group(
    group: schemas.GroupCreate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    db_group = models.Group(
        name=group.name,
        created_by_id=current_user.id,
        default_currency=group.default_currency
    )
    db.add(db_group)
    db.flush()
    # Creator is always the first member
    db.add(models.GroupMember(group_id=db_group.id, user_id=current_user.id))
    db.commit()
    db.refresh(db_group)

    logger.info(f"User {current_user.id} created group {db_group.id} in {db_group.default_currency}")
    return db_group


@router.get("", response_model=list[schemas.Group])
def read_groups(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    member_of = db.query(models.GroupMember.group_id).filter(
        models.GroupMember.user_id == current_user.id
    )
    return db.query(models.Group).filter(
        models.Group.id.in_(member_of)
    ).order_by(models.Group.id).all()


@router.get("/{group_id}", response_model=schemas.GroupWithMembers)
def get_group(
    group_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    group = get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, current_user.id)

    rows = db.query(models.GroupMember, models.User).join(
        models.User, models.GroupMember.user_id == models.User.id
    ).filter(
        models.GroupMember.group_id == group_id
    ).order_by(models.GroupMember.id).all()

    return schemas.GroupWithMembers(
        **schemas.Group.model_validate(group).model_dump(),
        members=[_member_view(member, user) for member, user in rows]
    )


@router.post("/{group_id}/members", response_model=schemas.GroupMember)
def add_member(
    group_id: int,
    member_add: schemas.GroupMemberAdd,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    """Add a registered user by email. Only existing members may add others."""
    get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, current_user.id)

    user = get_user_by_email(db, member_add.email)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    already = db.query(models.GroupMember.id).filter(
        models.GroupMember.group_id == group_id,
        models.GroupMember.user_id == user.id
    ).first()
    if already:
        raise HTTPException(status_code=400, detail="User already in group")

    member = models.GroupMember(group_id=group_id, user_id=user.id)
    db.add(member)
    db.commit()
    db.refresh(member)

    logger.info(f"User {current_user.id} added user {user.id} to group {group_id}")
    return _member_view(member, user)


@router.delete("/{group_id}/members/{user_id}")
def remove_member(
    group_id: int,
    user_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    """
    Remove a member. The owner can remove anyone else; others can only leave.

    Records stay tagged with the group, so a former member with an open
    position still shows up in the group's balances.
    """
    group = get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, current_user.id)

    if current_user.id != group.created_by_id and current_user.id != user_id:
        raise HTTPException(status_code=403, detail="You can only remove yourself from the group")
    if user_id == group.created_by_id:
        raise HTTPException(status_code=400, detail="Group owner cannot be removed. Delete the group instead.")

    member = db.query(models.GroupMember).filter(
        models.GroupMember.group_id == group_id,
        models.GroupMember.user_id == user_id
    ).first()
    if member is None:
        raise HTTPException(status_code=404, detail="Member not found in this group")

    db.delete(member)
    db.commit()

    logger.info(f"User {current_user.id} removed user {user_id} from group {group_id}")
    return {"message": "Member removed successfully"}


@router.put("/{group_id}", response_model=schemas.Group)
def update_group(
    group_id: int,
    group_update: schemas.GroupUpdate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    """Rename a group or change its currency. Existing records are not converted."""
    group = verify_group_ownership(db, group_id, current_user.id)
    group.name = group_update.name
    group.default_currency = group_update.default_currency
    db.commit()
    db.refresh(group)
    return group


@router.delete("/{group_id}")
def delete_group(
    group_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    """
    Delete a group. Its expenses and settlements are kept as plain records, so
    pairwise balances between the former members do not change.
    """
    group = verify_group_ownership(db, group_id, current_user.id)

    db.execute(
        update(models.Expense)
        .where(models.Expense.group_id == group_id)
        .values(group_id=None, version=models.Expense.version + 1)
        .execution_options(synchronize_session=False)
    )
    db.query(models.Settlement).filter(
        models.Settlement.group_id == group_id
    ).update({"group_id": None}, synchronize_session=False)
    db.query(models.GroupMember).filter(models.GroupMember.group_id == group_id).delete()
    db.delete(group)
    db.commit()

    logger.info(f"User {current_user.id} deleted group {group_id}")
    return {"message": "Group deleted successfully"}
