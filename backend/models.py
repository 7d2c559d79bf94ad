import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum
from database import Base


class FriendStatus(str, enum.Enum):
    PENDING = "pending"
    LINKED = "linked"
    REMOVED = "removed"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    hashed_password = Column(String)
    full_name = Column(String)
    is_active = Column(Boolean, default=True)
    default_currency = Column(String, default="USD", nullable=False)

class Group(Base):
    __tablename__ = "groups"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String)
    created_by_id = Column(Integer)
    default_currency = Column(String, default="USD")

class GroupMember(Base):
    __tablename__ = "group_members"

    id = Column(Integer, primary_key=True, index=True)
    group_id = Column(Integer, index=True)
    user_id = Column(Integer, index=True)

class Friendship(Base):
    """One directed row per (owner, friend); the counterpart owns a mirrored row."""
    __tablename__ = "friendships"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, index=True, nullable=False)
    friend_id = Column(Integer, index=True, nullable=False)
    requested_by_id = Column(Integer, nullable=False)
    # No default: rows without a status are fixed once by migrations/migrate_friend_status.py
    status = Column(Enum(FriendStatus, values_callable=lambda e: [m.value for m in e]), nullable=False)
    balance = Column(Integer, default=0, nullable=False) # Cached, in owner's currency minor units
    currency = Column(String, default="USD", nullable=False)
    version = Column(Integer, default=0, nullable=False)
    balance_refreshed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    description = Column(String)
    amount = Column(Integer) # Stored in cents/smallest unit
    currency = Column(String, default="USD")
    date = Column(String) # ISO date string
    payer_id = Column(Integer, index=True)
    group_id = Column(Integer, nullable=True, index=True)
    created_by_id = Column(Integer)
    split_type = Column(String, default="EXACT")
    notes = Column(String, nullable=True)
    version = Column(Integer, default=1, nullable=False)

class ExpenseSplit(Base):
    __tablename__ = "expense_splits"

    id = Column(Integer, primary_key=True, index=True)
    expense_id = Column(Integer, index=True)
    position = Column(Integer, default=0) # Order within the expense; residual cents go to position 0
    user_id = Column(Integer, index=True)
    amount_owed = Column(Integer) # The amount this user owes
    percentage = Column(Integer, nullable=True) # For percentage splits
    shares = Column(Integer, nullable=True) # For share splits

class Settlement(Base):
    __tablename__ = "settlements"

    id = Column(Integer, primary_key=True, index=True)
    payer_id = Column(Integer, index=True)
    payee_id = Column(Integer, index=True)
    amount = Column(Integer) # Stored in cents/smallest unit
    currency = Column(String, default="USD")
    group_id = Column(Integer, nullable=True, index=True)
    date = Column(String)
    notes = Column(String, nullable=True)
    created_by_id = Column(Integer)
    created_at = Column(DateTime, default=datetime.utcnow)

class Activity(Base):
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String) # expense_added, expense_updated, expense_deleted, settlement, friend_requested, friend_linked, friend_removed
    description = Column(String)
    amount = Column(Integer, nullable=True)
    currency = Column(String, nullable=True)
    group_id = Column(Integer, nullable=True)
    expense_id = Column(Integer, nullable=True)
    settlement_id = Column(Integer, nullable=True)
    user_id = Column(Integer, index=True) # Whose feed this entry belongs to
    created_by_id = Column(Integer)
    created_at = Column(DateTime, default=datetime.utcnow)
