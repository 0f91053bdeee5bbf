"""
Pydantic schemas for users, roles and ad accounts.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from topup_desk.models.enums import UserRole


# --- User Schemas ---

class UserCreate(BaseModel):
    email: str = Field(min_length=5, max_length=255)
    username: str | None = Field(default=None, max_length=100)
    telegram_username: str | None = Field(default=None, max_length=100)
    role: UserRole = UserRole.CUSTOMER


class UserResponse(BaseModel):
    id: int
    email: str
    username: str | None
    telegram_username: str | None
    role: UserRole
    created_at: datetime

    model_config = {"from_attributes": True}


class RoleUpdate(BaseModel):
    role: UserRole


class UserWithBalance(BaseModel):
    """One row of the users management table."""
    id: int
    email: str
    username: str | None
    role: UserRole
    balance: Decimal
    pending_topups: Decimal


# --- Ad Account Schemas ---

class AdAccountCreate(BaseModel):
    user_id: int
    account_id: str = Field(min_length=1, max_length=100)
    account_name: str = Field(min_length=1, max_length=255)
    access_email: str = Field(min_length=5, max_length=255)
    budget: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    currency: str | None = Field(default="USD", min_length=3, max_length=3)
    timezone: str | None = Field(default=None, max_length=64)
    country: str | None = Field(default=None, max_length=64)


class AdAccountResponse(BaseModel):
    id: int
    user_id: int
    account_id: str
    account_name: str
    access_email: str
    budget: Decimal
    currency: str | None
    timezone: str | None
    country: str | None
    status: str
    total_topup_amount: Decimal
    created_at: datetime

    model_config = {"from_attributes": True}
