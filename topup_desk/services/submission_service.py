"""
Submission service — customers adding entries to their ledger.

Each submission:
1. Validates the input against the user's current state
2. Inserts a PENDING payment
3. Rebuilds the user's balance cache from the ledger

The caller commits, then calls announce() to tell the admin chat.
Announcing is best-effort: it logs and returns False on failure
and never raises, so a stored submission is never lost because
the chat API was down.
"""

import logging
import secrets
import string
import time

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from topup_desk.config import get_settings
from topup_desk.models.ad_account import AdAccount
from topup_desk.models.enums import EntryKind, NotificationEvent, ReviewStatus
from topup_desk.models.payment import Payment
from topup_desk.models.user import User
from topup_desk.schemas.payment import DepositCreate, TopUpCreate
from topup_desk.services.ledger_service import LedgerService
from topup_desk.services.notifier import NotifierError, TelegramNotifier

logger = logging.getLogger(__name__)

REFERENCE_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
REFERENCE_SUFFIX_LENGTH = 9


def generate_topup_reference(now_ms: int | None = None) -> str:
    """TOPUP-<epoch milliseconds>-<9 lowercase base36 chars>."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(
        secrets.choice(REFERENCE_SUFFIX_ALPHABET)
        for _ in range(REFERENCE_SUFFIX_LENGTH)
    )
    return f"{get_settings().TOPUP_REFERENCE_PREFIX}{now_ms}-{suffix}"


def user_lock_query(user_id: int) -> Select:
    """SELECT ... FOR UPDATE on the user row. SQLite drops the clause."""
    return select(User).where(User.id == user_id).with_for_update()


def default_topup_note(account_name: str | None, account_id: str | None) -> str:
    note = f"Top-up request for {account_name or 'account'}"
    if account_id:
        note += f" (ID: {account_id})"
    return note


class SubmissionService:

    def __init__(self, db: Session, notifier: TelegramNotifier | None = None):
        self.db = db
        self.notifier = notifier
        self.ledger_service = LedgerService(db)

    def _get_user(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if not user:
            raise ValueError(f"User {user_id} not found")
        return user

    def submit_topup(self, user_id: int, request: TopUpCreate) -> Payment:
        """
        Request a move of spendable balance into an ad account.

        The balance shown to the user right before submitting is
        stored on the entry as balance_at_submission.

        The user row stays locked until the caller commits, so two
        concurrent top-ups for one user run the balance check one
        after the other and cannot both spend the same money.
        """
        user = self.db.execute(user_lock_query(user_id)).scalar_one_or_none()
        if not user:
            raise ValueError(f"User {user_id} not found")

        ad_account = None
        if request.ad_account_id is not None:
            ad_account = self.db.get(AdAccount, request.ad_account_id)
            if not ad_account or ad_account.user_id != user.id:
                raise ValueError(
                    f"Ad account {request.ad_account_id} not found"
                )

        balance = self.ledger_service.get_balance(user.id)
        if request.amount > balance:
            raise ValueError(
                f"Insufficient balance: available={balance}, "
                f"requested={request.amount}"
            )

        payment = Payment(
            user_id=user.id,
            reference=generate_topup_reference(),
            kind=EntryKind.TOPUP,
            amount=request.amount,
            status=ReviewStatus.PENDING,
            balance_at_submission=balance,
            note=request.note or default_topup_note(
                ad_account.account_name if ad_account else None,
                ad_account.account_id if ad_account else None,
            ),
            ad_account_id=ad_account.id if ad_account else None,
        )
        self.db.add(payment)
        self.db.flush()

        self.ledger_service.refresh_cached_balance(user.id)
        logger.info(
            "User %s requested top-up %s of %s",
            user.id, payment.reference, payment.amount,
        )
        return payment

    def submit_deposit(self, user_id: int, request: DepositCreate) -> Payment:
        """
        Record a crypto deposit the user says they made.

        The transaction hash becomes the reference. It may not use the
        top-up prefix, and the same hash cannot be submitted twice.
        """
        user = self._get_user(user_id)
        prefix = get_settings().TOPUP_REFERENCE_PREFIX

        if request.transaction_hash.upper().startswith(prefix):
            raise ValueError(
                f"Transaction hash may not start with '{prefix}'"
            )
        if self.ledger_service.get_payment_by_reference(request.transaction_hash):
            raise ValueError(
                f"Transaction {request.transaction_hash} was already submitted"
            )

        payment = Payment(
            user_id=user.id,
            reference=request.transaction_hash,
            kind=EntryKind.DEPOSIT,
            amount=request.amount,
            status=ReviewStatus.PENDING,
            balance_at_submission=self.ledger_service.get_balance(user.id),
            note=request.note,
        )
        self.db.add(payment)
        self.db.flush()

        self.ledger_service.refresh_cached_balance(user.id)
        logger.info(
            "User %s reported deposit %s of %s",
            user.id, payment.reference, payment.amount,
        )
        return payment

    def announce(self, payment: Payment) -> bool:
        """
        Tell the admin chat about a new payment.

        Stores the returned message id on the payment (flush only).
        Returns False when nothing was sent.
        """
        if self.notifier is None:
            return False

        event = (
            NotificationEvent.TOP_UP
            if payment.kind == EntryKind.TOPUP
            else NotificationEvent.DEPOSIT
        )
        try:
            message_id = self.notifier.notify_event(
                event,
                user_email=payment.user.email,
                reference=payment.reference,
                amount=payment.amount,
                note=payment.note,
                account_name=(
                    payment.ad_account.account_name if payment.ad_account else None
                ),
                review_key=f"p{payment.id}",
            )
        except NotifierError:
            logger.exception(
                "Could not notify admins about %s", payment.reference
            )
            return False

        if message_id is None:
            return False
        payment.telegram_message_id = message_id
        self.db.flush()
        return True
