"""
Pydantic schemas for balance queries.
"""

from decimal import Decimal

from pydantic import BaseModel


class BalanceSummary(BaseModel):
    """
    A user's spendable balance and the totals it was built from.

    balance = approved_deposits - deposit_fees
              - pending_topups - approved_topups
    """
    approved_deposits: Decimal = Decimal("0")
    deposit_fees: Decimal = Decimal("0")
    pending_topups: Decimal = Decimal("0")
    approved_topups: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")


class UserBalanceResponse(BaseModel):
    user_id: int
    email: str
    summary: BalanceSummary
    cached_balance: Decimal | None


class ReconcileResponse(BaseModel):
    """Result of comparing the cached balance row with the ledger."""
    user_id: int
    cached_balance: Decimal | None
    ledger_balance: Decimal
    repaired: bool
