"""
Shared enumerations for database models.

Mapping Python enums to database enums means an unknown
status or entry kind is caught at the database level, not
just in Python validation.
"""

import enum


class EntryKind(str, enum.Enum):
    """Which way a ledger entry moves spendable balance."""
    DEPOSIT = "DEPOSIT"  # crypto transfer in
    TOPUP = "TOPUP"      # balance out, toward an ad account


class ReviewStatus(str, enum.Enum):
    """Lifecycle of anything an admin reviews."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    CUSTOMER = "CUSTOMER"


class RequestType(str, enum.Enum):
    """Non-financial requests about an ad account."""
    REPLACEMENT = "REPLACEMENT"
    CHANGE_ACCESS = "CHANGE_ACCESS"


class NotificationEvent(str, enum.Enum):
    """Events announced to the admin chat."""
    TOP_UP = "top-up"
    DEPOSIT = "deposit"
    REPLACEMENT = "replacement"
    CHANGE_ACCESS = "change-access"
