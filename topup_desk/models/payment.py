"""
Payment model — one row of a user's ledger.

A payment is either a deposit notification (a crypto transfer
the user says they sent) or a top-up request (balance the user
wants moved to an ad account). Both start PENDING and are
reviewed exactly once.

The spendable balance is never stored on the payment. It is
derived from the whole ledger by the balance calculator.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, DateTime, Numeric, ForeignKey, Text,
    Enum as SAEnum, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from topup_desk.models.base import Base
from topup_desk.models.enums import EntryKind, ReviewStatus


# Review state machine. Both outcomes are terminal.
REVIEW_TRANSITIONS: dict[ReviewStatus, set[ReviewStatus]] = {
    ReviewStatus.PENDING: {ReviewStatus.APPROVED, ReviewStatus.REJECTED},
    ReviewStatus.APPROVED: set(),
    ReviewStatus.REJECTED: set(),
}


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(primary_key=True)
    external_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, unique=True, nullable=False, default=uuid.uuid4
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True
    )
    # TOPUP-<ms>-<suffix> for top-ups, the transaction hash for deposits
    reference: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    kind: Mapped[EntryKind] = mapped_column(
        SAEnum(EntryKind, name="entry_kind_enum", create_constraint=True),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False
    )
    fee: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    status: Mapped[ReviewStatus] = mapped_column(
        SAEnum(
            ReviewStatus,
            name="payment_status_enum",
            create_constraint=True,
        ),
        nullable=False,
        default=ReviewStatus.PENDING,
    )
    balance_at_submission: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    ad_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("ad_accounts.id"), nullable=True, index=True
    )
    telegram_message_id: Mapped[int | None] = mapped_column(nullable=True)
    reviewed_by: Mapped[int | None] = mapped_column(
        ForeignKey("users.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    user: Mapped["User"] = relationship(foreign_keys=[user_id])
    ad_account: Mapped["AdAccount | None"] = relationship()

    def can_transition_to(self, new_status: ReviewStatus) -> bool:
        return new_status in REVIEW_TRANSITIONS.get(self.status, set())

    def __repr__(self) -> str:
        return (
            f"<Payment {self.reference} {self.kind.value} "
            f"{self.amount} ({self.status.value})>"
        )
