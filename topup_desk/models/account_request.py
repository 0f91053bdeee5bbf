"""
Account request model.

Non-financial requests about an ad account: replace a banned
account, or change who has access to it. They never touch the
ledger but follow the same one-shot review lifecycle.
"""

from datetime import datetime

from sqlalchemy import String, DateTime, ForeignKey, Text, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from topup_desk.models.base import Base
from topup_desk.models.enums import RequestType, ReviewStatus
from topup_desk.models.payment import REVIEW_TRANSITIONS


class AccountRequest(Base):
    __tablename__ = "requests"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True
    )
    ad_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("ad_accounts.id"), nullable=True
    )
    request_type: Mapped[RequestType] = mapped_column(
        SAEnum(RequestType, name="request_type_enum", create_constraint=True),
        nullable=False,
    )
    # New access email for CHANGE_ACCESS requests
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[ReviewStatus] = mapped_column(
        SAEnum(
            ReviewStatus,
            name="request_status_enum",
            create_constraint=True,
        ),
        nullable=False,
        default=ReviewStatus.PENDING,
    )
    telegram_message_id: Mapped[int | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    user: Mapped["User"] = relationship()
    ad_account: Mapped["AdAccount | None"] = relationship()

    @property
    def reference(self) -> str:
        """Stable text identifier used in chat messages."""
        return f"REQ-{self.id}"

    def can_transition_to(self, new_status: ReviewStatus) -> bool:
        return new_status in REVIEW_TRANSITIONS.get(self.status, set())

    def __repr__(self) -> str:
        return (
            f"<AccountRequest {self.id} {self.request_type.value} "
            f"({self.status.value})>"
        )
