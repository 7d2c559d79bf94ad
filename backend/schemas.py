from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, field_validator
from typing import Optional

from utils.currency import DEFAULT_CURRENCY, SUPPORTED_CURRENCIES


SPLIT_TYPES = ("EQUAL", "EXACT", "PERCENT", "SHARES")


def _validate_currency(v):
    if v not in SUPPORTED_CURRENCIES:
        raise ValueError(f'Currency must be one of {SUPPORTED_CURRENCIES}')
    return v


class UserBase(BaseModel):
    email: EmailStr
    full_name: Optional[str] = None

class UserCreate(UserBase):
    password: str
    default_currency: str = DEFAULT_CURRENCY

    @field_validator('default_currency')
    @classmethod
    def validate_currency(cls, v):
        return _validate_currency(v)

class User(UserBase):
    id: int
    is_active: bool
    default_currency: str

    model_config = ConfigDict(from_attributes=True)

class CurrencyUpdate(BaseModel):
    default_currency: str

    @field_validator('default_currency')
    @classmethod
    def validate_currency(cls, v):
        return _validate_currency(v)

class Token(BaseModel):
    access_token: str
    token_type: str

class ExpenseSplitBase(BaseModel):
    user_id: int
    amount_owed: int = 0
    percentage: Optional[int] = None
    shares: Optional[int] = None

class ExpenseCreate(BaseModel):
    description: str
    amount: int  # In minor units
    currency: Optional[str] = None  # Defaults to the group's, else the caller's currency
    date: str
    payer_id: int
    group_id: Optional[int] = None
    splits: list[ExpenseSplitBase]
    split_type: str = "EXACT"  # EQUAL, EXACT, PERCENT, SHARES
    notes: Optional[str] = None

    @field_validator('split_type')
    @classmethod
    def validate_split_type(cls, v):
        if v not in SPLIT_TYPES:
            raise ValueError(f'Split type must be one of {list(SPLIT_TYPES)}')
        return v

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v):
        if v <= 0:
            raise ValueError('Amount must be positive')
        return v

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v):
        return v if v is None else _validate_currency(v)

class ExpenseUpdate(ExpenseCreate):
    version: Optional[int] = None  # Version the caller read; mismatch is rejected
    # currency left out keeps the stored record's currency

class ExpenseSplitDetail(BaseModel):
    id: int
    expense_id: int
    user_id: int
    amount_owed: int
    percentage: Optional[int] = None
    shares: Optional[int] = None
    user_name: str

    model_config = ConfigDict(from_attributes=True)

class Expense(BaseModel):
    id: int
    description: str
    amount: int
    currency: str
    date: str
    payer_id: int
    group_id: Optional[int]
    created_by_id: Optional[int] = None
    split_type: Optional[str] = None
    notes: Optional[str] = None
    version: int

    model_config = ConfigDict(from_attributes=True)

class ExpenseWithSplits(Expense):
    splits: list[ExpenseSplitDetail]

class SettlementCreate(BaseModel):
    payee_id: int
    payer_id: Optional[int] = None  # Defaults to the current user
    amount: int
    currency: Optional[str] = None  # Defaults to the group's, else the caller's currency
    group_id: Optional[int] = None
    date: str
    notes: Optional[str] = None

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v):
        if v <= 0:
            raise ValueError('Settlement amount must be positive')
        return v

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v):
        return v if v is None else _validate_currency(v)

class Settlement(BaseModel):
    id: int
    payer_id: int
    payee_id: int
    amount: int
    currency: str
    group_id: Optional[int] = None
    date: str
    notes: Optional[str] = None
    created_by_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)

class LedgerWriteResult(BaseModel):
    """A committed write plus whether the cached balances caught up with it."""
    balance_status: str  # "fresh" or "stale"
    stale_user_ids: list[int] = []

class ExpenseWriteResult(LedgerWriteResult):
    expense: Expense

class SettlementWriteResult(LedgerWriteResult):
    settlement: Settlement

class FriendRequest(BaseModel):
    email: str

class Friend(BaseModel):
    id: int
    friend_id: int
    full_name: Optional[str] = None
    email: str
    status: str
    balance: int  # Positive means the friend owes you, negative means you owe
    currency: str
    formatted_balance: str
    balance_refreshed_at: Optional[datetime] = None

class BalanceUpdate(BaseModel):
    balance: int

class GroupBase(BaseModel):
    name: str
    default_currency: str = DEFAULT_CURRENCY

    @field_validator('default_currency')
    @classmethod
    def validate_currency(cls, v):
        return _validate_currency(v)

class GroupCreate(GroupBase):
    pass

class GroupUpdate(GroupBase):
    pass

class Group(GroupBase):
    id: int
    created_by_id: int

    model_config = ConfigDict(from_attributes=True)

class GroupMemberAdd(BaseModel):
    email: str

class GroupMember(BaseModel):
    id: int
    user_id: int
    full_name: Optional[str] = None
    email: str

    model_config = ConfigDict(from_attributes=True)

class GroupWithMembers(Group):
    members: list[GroupMember]

class GroupBalance(BaseModel):
    user_id: int
    full_name: str
    amount: int
    currency: str
    is_member: bool = True

class Balance(BaseModel):
    """Balance representing what a user owes or is owed."""
    user_id: int
    full_name: str
    amount: int  # Positive means you are owed, negative means you owe
    currency: str

class BalanceSummary(BaseModel):
    balances: list[Balance]
    total: int
    currency: str

class Transaction(BaseModel):
    from_id: int
    to_id: int
    amount: int
    currency: str

class Activity(BaseModel):
    id: int
    type: str
    description: str
    amount: Optional[int] = None
    currency: Optional[str] = None
    group_id: Optional[int] = None
    expense_id: Optional[int] = None
    settlement_id: Optional[int] = None
    created_by_id: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
