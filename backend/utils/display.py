"""
Display utilities for user names
"""
from sqlalchemy.orm import Session
import models


def get_user_display_name(user: models.User) -> str:
    """Full name if set, otherwise the email address."""
    if not user:
        return "Unknown User"
    return user.full_name or user.email


def get_participant_display_names(db: Session, user_ids: list[int]) -> dict[int, str]:
    """
    Resolve display names for many users in one query.

    Args:
        db: Database session
        user_ids: User IDs to resolve

    Returns:
        Mapping user_id -> display name; unknown IDs map to "Unknown User"
    """
    names = {uid: "Unknown User" for uid in user_ids}
    if not user_ids:
        return names

    users = db.query(models.User).filter(models.User.id.in_(list(set(user_ids)))).all()
    for user in users:
        names[user.id] = get_user_display_name(user)
    return names
