"""
Ledger service — reads the payments ledger and keeps the balance cache.

Rules enforced here:
1. The spendable balance always comes from the balance calculator
   over the full ledger, never from the cache.
2. The user_balances row is only ever rebuilt from the ledger.
   Nothing increments or decrements it directly.

The service takes a session and only flushes. The caller controls
the commit.
"""

import logging
from collections import defaultdict
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from topup_desk.models.audit_log import AuditLog
from topup_desk.models.enums import EntryKind, ReviewStatus
from topup_desk.models.payment import Payment
from topup_desk.models.user_balance import UserBalance
from topup_desk.schemas.balance import BalanceSummary, ReconcileResponse
from topup_desk.services import balance_calculator

logger = logging.getLogger(__name__)


class LedgerService:

    def __init__(self, db: Session):
        self.db = db

    # --- Reading the ledger ---

    def get_entries_for_user(self, user_id: int) -> list[Payment]:
        """Return all ledger entries for a user, newest first."""
        entries = self.db.execute(
            select(Payment)
            .where(Payment.user_id == user_id)
            .order_by(Payment.created_at.desc(), Payment.id.desc())
        ).scalars().all()
        return list(entries)

    def list_payments(
        self,
        status: ReviewStatus | None = None,
        kind: EntryKind | None = None,
        user_id: int | None = None,
    ) -> list[Payment]:
        """Admin listing with optional filters, newest first."""
        query = select(Payment)
        if status is not None:
            query = query.where(Payment.status == status)
        if kind is not None:
            query = query.where(Payment.kind == kind)
        if user_id is not None:
            query = query.where(Payment.user_id == user_id)
        query = query.order_by(Payment.created_at.desc(), Payment.id.desc())
        return list(self.db.execute(query).scalars().all())

    def get_payment(self, payment_id: int) -> Payment:
        payment = self.db.get(Payment, payment_id)
        if not payment:
            raise ValueError(f"Payment {payment_id} not found")
        return payment

    def get_payment_by_reference(self, reference: str) -> Payment | None:
        return self.db.execute(
            select(Payment).where(Payment.reference == reference)
        ).scalar_one_or_none()

    # --- Balances ---

    def get_summary(self, user_id: int) -> BalanceSummary:
        # Pending inserts are invisible to the query until flushed
        self.db.flush()
        return balance_calculator.summarize(self.get_entries_for_user(user_id))

    def get_balance(self, user_id: int) -> Decimal:
        """Spendable balance derived from the ledger."""
        self.db.flush()
        return balance_calculator.compute_balance(
            self.get_entries_for_user(user_id)
        )

    def summaries_by_user(self) -> dict[int, BalanceSummary]:
        """
        Balance summaries for every user that has ledger entries.

        One query over the whole ledger, grouped in memory, for the
        users management table.
        """
        self.db.flush()
        grouped: dict[int, list[Payment]] = defaultdict(list)
        for payment in self.db.execute(select(Payment)).scalars():
            grouped[payment.user_id].append(payment)
        return {
            user_id: balance_calculator.summarize(entries)
            for user_id, entries in grouped.items()
        }

    # --- Cache ---

    def _get_cache_row(self, user_id: int) -> UserBalance | None:
        return self.db.execute(
            select(UserBalance).where(UserBalance.user_id == user_id)
        ).scalar_one_or_none()

    def get_cached_balance(self, user_id: int) -> Decimal | None:
        row = self._get_cache_row(user_id)
        return row.balance if row else None

    def refresh_cached_balance(self, user_id: int) -> UserBalance:
        """Rebuild the user's cached balance from the ledger."""
        balance = self.get_balance(user_id)
        row = self._get_cache_row(user_id)
        if row is None:
            row = UserBalance(user_id=user_id, balance=balance)
            self.db.add(row)
        else:
            row.balance = balance
        self.db.flush()
        return row

    def reconcile(self, user_id: int) -> ReconcileResponse:
        """
        Compare the cached balance with the ledger and repair drift.

        A repair is written to the audit log with both values.
        """
        cached = self.get_cached_balance(user_id)
        ledger_balance = self.get_balance(user_id)
        repaired = cached is None or Decimal(cached) != ledger_balance

        if repaired:
            self.refresh_cached_balance(user_id)
            self.db.add(AuditLog(
                event_type="BALANCE_CACHE_REPAIRED",
                subject=f"user:{user_id}",
                user_id=user_id,
                details=f"cached={cached} ledger={ledger_balance}",
            ))
            self.db.flush()
            logger.warning(
                "Balance cache for user %s drifted: cached=%s ledger=%s",
                user_id, cached, ledger_balance,
            )

        return ReconcileResponse(
            user_id=user_id,
            cached_balance=cached,
            ledger_balance=ledger_balance,
            repaired=repaired,
        )
