"""
Audit log model.

Records review decisions and balance-cache repairs so an admin
can trace who approved what and when.
"""

from datetime import datetime

from sqlalchemy import ForeignKey, String, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from topup_desk.models.base import Base


class AuditLog(Base):
    """
    Append-only. Audit records are never updated or deleted.

    subject is the reference of what changed (a payment reference,
    REQ-<id>, or user:<id> for cache repairs). actor_id is the
    reviewing admin, or NULL for Telegram buttons and system repairs.
    """

    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(primary_key=True)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    actor_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    details: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<AuditLog {self.event_type} {self.subject}>"
