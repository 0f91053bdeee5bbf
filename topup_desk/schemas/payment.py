"""
Pydantic schemas for ledger submissions and reviews.

These define the API contract. They are kept apart from the
database models because what a customer submits (a hash, an
amount) is not what gets stored (reference, kind, snapshot).
"""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from topup_desk.models.enums import EntryKind, ReviewStatus


# --- Request Schemas ---

class TopUpCreate(BaseModel):
    """A request to move spendable balance into an ad account."""
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    ad_account_id: int | None = None
    note: str | None = Field(default=None, max_length=1000)


class DepositCreate(BaseModel):
    """Notification that the user sent crypto to the deposit wallet."""
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    transaction_hash: str = Field(min_length=1, max_length=255)
    note: str | None = Field(default=None, max_length=1000)

    @field_validator("transaction_hash")
    @classmethod
    def strip_hash(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("transaction hash is required")
        return v


class ReviewDecision(BaseModel):
    """
    Admin input when approving a payment.

    fee: charged on a deposit, or recorded for information on a top-up.
    amount: optional corrected face value for a deposit.
    """
    fee: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    amount: Decimal | None = Field(default=None, gt=0, max_digits=12, decimal_places=2)


# --- Response Schemas ---

class PaymentResponse(BaseModel):
    id: int
    external_id: uuid.UUID
    user_id: int
    reference: str
    kind: EntryKind
    amount: Decimal
    fee: Decimal | None
    status: ReviewStatus
    balance_at_submission: Decimal | None
    note: str | None
    ad_account_id: int | None
    reviewed_by: int | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class SubmissionResponse(BaseModel):
    """
    A stored payment plus whether the admins were told about it.

    A failed notification never fails the submission; the client
    shows notification_sent=False as a warning only.
    """
    payment: PaymentResponse
    notification_sent: bool
