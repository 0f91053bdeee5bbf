"""
Review service — admins approving or rejecting payments.

A payment is reviewed exactly once. The status change is a single
conditional UPDATE that only matches a PENDING row, so when two
admins (or an admin and the Telegram button) act on the same
payment, whoever commits second gets a ReviewConflictError instead
of applying the decision twice.

After the status change the balance cache is rebuilt from the
ledger; approvals never add to it directly.
"""

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.orm import Session

from topup_desk.models.audit_log import AuditLog
from topup_desk.models.enums import EntryKind, NotificationEvent, ReviewStatus
from topup_desk.models.payment import Payment
from topup_desk.schemas.payment import ReviewDecision
from topup_desk.services.ledger_service import LedgerService
from topup_desk.services.notifier import NotifierError, TelegramNotifier

logger = logging.getLogger(__name__)


class ReviewConflictError(ValueError):
    """The payment is no longer pending."""


class ReviewService:

    def __init__(self, db: Session, notifier: TelegramNotifier | None = None):
        self.db = db
        self.notifier = notifier
        self.ledger_service = LedgerService(db)

    def _transition(
        self,
        payment: Payment,
        new_status: ReviewStatus,
        reviewer_id: int | None,
        values: dict,
    ) -> Payment:
        if not payment.can_transition_to(new_status):
            raise ReviewConflictError(
                f"Payment {payment.reference} is already "
                f"{payment.status.value.lower()}"
            )

        result = self.db.execute(
            update(Payment)
            .where(
                Payment.id == payment.id,
                Payment.status == ReviewStatus.PENDING,
            )
            .values(
                status=new_status,
                reviewed_by=reviewer_id,
                updated_at=datetime.utcnow(),
                **values,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ReviewConflictError(
                f"Payment {payment.reference} was reviewed by someone else"
            )

        self.db.refresh(payment)
        return payment

    def approve(
        self,
        payment_id: int,
        decision: ReviewDecision | None = None,
        reviewer_id: int | None = None,
    ) -> Payment:
        """
        Approve a pending payment.

        Deposit: the fee is deducted from the credited amount, and
        the admin may correct the face value.
        Top-up: the amount already left the balance when it was
        requested; a fee is recorded for reference only. The amount
        is added to the target ad account's top-up total.
        """
        decision = decision or ReviewDecision()
        payment = self.ledger_service.get_payment(payment_id)

        values: dict = {"fee": decision.fee}
        if decision.amount is not None:
            if payment.kind != EntryKind.DEPOSIT:
                raise ValueError("Only deposit amounts can be corrected on approval")
            values["amount"] = decision.amount

        if payment.kind == EntryKind.DEPOSIT and decision.fee is not None:
            credited = decision.amount if decision.amount is not None else payment.amount
            if decision.fee > credited:
                raise ValueError(
                    f"Fee {decision.fee} exceeds deposit amount {credited}"
                )

        payment = self._transition(
            payment, ReviewStatus.APPROVED, reviewer_id, values
        )

        if payment.kind == EntryKind.TOPUP and payment.ad_account is not None:
            account = payment.ad_account
            account.total_topup_amount = (
                Decimal(account.total_topup_amount or 0) + payment.amount
            )

        self._after_review(payment, reviewer_id)
        return payment

    def reject(self, payment_id: int, reviewer_id: int | None = None) -> Payment:
        """Reject a pending payment. Rejected entries never affect balance."""
        payment = self.ledger_service.get_payment(payment_id)
        payment = self._transition(
            payment, ReviewStatus.REJECTED, reviewer_id, {}
        )
        self._after_review(payment, reviewer_id)
        return payment

    def review(
        self,
        payment_id: int,
        status: ReviewStatus,
        reviewer_id: int | None = None,
    ) -> Payment:
        """Approve or reject with default values (Telegram buttons)."""
        if status == ReviewStatus.APPROVED:
            return self.approve(payment_id, reviewer_id=reviewer_id)
        if status == ReviewStatus.REJECTED:
            return self.reject(payment_id, reviewer_id=reviewer_id)
        raise ValueError(f"Cannot review a payment to {status.value}")

    def _after_review(self, payment: Payment, reviewer_id: int | None) -> None:
        self.ledger_service.refresh_cached_balance(payment.user_id)
        self.db.add(AuditLog(
            event_type=f"PAYMENT_{payment.status.value}",
            subject=payment.reference,
            user_id=payment.user_id,
            actor_id=reviewer_id,
            details=(
                f"payment={payment.id} kind={payment.kind.value} "
                f"amount={payment.amount} fee={payment.fee}"
            ),
        ))
        self.db.flush()
        logger.info(
            "Payment %s %s by %s",
            payment.reference, payment.status.value.lower(), reviewer_id,
        )

    def notify_review(self, payment: Payment) -> bool:
        """
        Mark the payment's admin-chat message with the outcome.

        Best-effort; returns False when nothing was edited.
        """
        if self.notifier is None:
            return False

        event = (
            NotificationEvent.TOP_UP
            if payment.kind == EntryKind.TOPUP
            else NotificationEvent.DEPOSIT
        )
        try:
            message_id = self.notifier.notify_status(
                event,
                payment.status,
                user_email=payment.user.email,
                reference=payment.reference,
                amount=payment.amount,
                note=payment.note,
                account_name=(
                    payment.ad_account.account_name if payment.ad_account else None
                ),
                message_id=payment.telegram_message_id,
            )
        except NotifierError:
            logger.exception(
                "Could not update admin message for %s", payment.reference
            )
            return False

        if message_id is None:
            return False
        if payment.telegram_message_id != message_id:
            payment.telegram_message_id = message_id
            self.db.flush()
        return True
