"""
Balance calculator — the single definition of spendable balance.

Every screen that shows a balance (user dashboard, top-up dialog,
top-up history, users management) goes through this module.
Nothing else is allowed to sum payments.

Rules per entry:

    deposit  APPROVED  ->  +(amount - fee)
    deposit  other     ->   0
    top-up   PENDING   ->  -amount
    top-up   APPROVED  ->  -amount      (fee is never subtracted again)
    top-up   REJECTED  ->   0

The functions are pure: same entries in, same number out, in any
order. A missing fee counts as zero. The result can be negative
when the ledger itself is inconsistent.
"""

from decimal import Decimal
from typing import Any, Iterable

from topup_desk.config import get_settings
from topup_desk.models.enums import EntryKind, ReviewStatus
from topup_desk.schemas.balance import BalanceSummary

ZERO = Decimal("0")


def _to_decimal(value: Any) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _status_of(entry: Any) -> ReviewStatus:
    status = entry.status
    if isinstance(status, ReviewStatus):
        return status
    return ReviewStatus(str(status).upper())


def classify_entry(entry: Any) -> EntryKind:
    """
    Decide whether an entry is a deposit or a top-up.

    Rows written by this service carry an explicit kind. Snapshots
    without one fall back to the reference prefix convention.
    """
    kind = getattr(entry, "kind", None)
    if kind is not None:
        return kind if isinstance(kind, EntryKind) else EntryKind(str(kind).upper())

    prefix = get_settings().TOPUP_REFERENCE_PREFIX
    if str(entry.reference).startswith(prefix):
        return EntryKind.TOPUP
    return EntryKind.DEPOSIT


def entry_contribution(entry: Any) -> Decimal:
    """Signed effect of one entry on spendable balance."""
    kind = classify_entry(entry)
    status = _status_of(entry)
    amount = _to_decimal(entry.amount)

    if kind == EntryKind.DEPOSIT:
        if status == ReviewStatus.APPROVED:
            return amount - _to_decimal(getattr(entry, "fee", None))
        return ZERO

    if status in (ReviewStatus.PENDING, ReviewStatus.APPROVED):
        return -amount
    return ZERO


def summarize(entries: Iterable[Any]) -> BalanceSummary:
    """Fold a user's ledger into a BalanceSummary."""
    approved_deposits = ZERO
    deposit_fees = ZERO
    pending_topups = ZERO
    approved_topups = ZERO

    for entry in entries:
        kind = classify_entry(entry)
        status = _status_of(entry)
        amount = _to_decimal(entry.amount)

        if kind == EntryKind.DEPOSIT:
            if status == ReviewStatus.APPROVED:
                approved_deposits += amount
                deposit_fees += _to_decimal(getattr(entry, "fee", None))
        elif status == ReviewStatus.PENDING:
            pending_topups += amount
        elif status == ReviewStatus.APPROVED:
            approved_topups += amount

    return BalanceSummary(
        approved_deposits=approved_deposits,
        deposit_fees=deposit_fees,
        pending_topups=pending_topups,
        approved_topups=approved_topups,
        balance=(
            approved_deposits - deposit_fees
            - pending_topups - approved_topups
        ),
    )


def compute_balance(entries: Iterable[Any]) -> Decimal:
    """Spendable balance of a user's ledger."""
    return sum((entry_contribution(e) for e in entries), ZERO)
