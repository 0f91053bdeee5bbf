"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from topup_desk.models.base import Base
from topup_desk.models.enums import (
    EntryKind,
    ReviewStatus,
    UserRole,
    RequestType,
    NotificationEvent,
)
from topup_desk.models.audit_log import AuditLog
from topup_desk.models.user import User, UserRoleAssignment
from topup_desk.models.ad_account import AdAccount
from topup_desk.models.payment import Payment
from topup_desk.models.user_balance import UserBalance
from topup_desk.models.account_request import AccountRequest

__all__ = [
    "Base",
    "EntryKind",
    "ReviewStatus",
    "UserRole",
    "RequestType",
    "NotificationEvent",
    "AuditLog",
    "User",
    "UserRoleAssignment",
    "AdAccount",
    "Payment",
    "UserBalance",
    "AccountRequest",
]
