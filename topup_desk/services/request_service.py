"""
Request service — replacement and change-access tickets.

These requests never touch the ledger. They share the payments'
review rule: PENDING moves once to APPROVED or REJECTED, guarded by
a conditional UPDATE.
"""

import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from topup_desk.models.account_request import AccountRequest
from topup_desk.models.ad_account import AdAccount
from topup_desk.models.audit_log import AuditLog
from topup_desk.models.enums import NotificationEvent, RequestType, ReviewStatus
from topup_desk.schemas.request import AccountRequestCreate
from topup_desk.services.notifier import NotifierError, TelegramNotifier
from topup_desk.services.review_service import ReviewConflictError

logger = logging.getLogger(__name__)


REQUEST_EVENTS = {
    RequestType.REPLACEMENT: NotificationEvent.REPLACEMENT,
    RequestType.CHANGE_ACCESS: NotificationEvent.CHANGE_ACCESS,
}


class RequestService:

    def __init__(self, db: Session, notifier: TelegramNotifier | None = None):
        self.db = db
        self.notifier = notifier

    def create_request(
        self, user_id: int, request: AccountRequestCreate
    ) -> AccountRequest:
        account = self.db.get(AdAccount, request.ad_account_id)
        if not account or account.user_id != user_id:
            raise ValueError(f"Ad account {request.ad_account_id} not found")

        ticket = AccountRequest(
            user_id=user_id,
            ad_account_id=account.id,
            request_type=request.request_type,
            email=request.email,
            description=request.description,
        )
        self.db.add(ticket)
        self.db.flush()
        logger.info(
            "User %s opened %s request %s",
            user_id, request.request_type.value, ticket.id,
        )
        return ticket

    def get_request(self, request_id: int) -> AccountRequest:
        ticket = self.db.get(AccountRequest, request_id)
        if not ticket:
            raise ValueError(f"Request {request_id} not found")
        return ticket

    def list_requests(
        self,
        request_type: RequestType | None = None,
        status: ReviewStatus | None = None,
        user_id: int | None = None,
    ) -> list[AccountRequest]:
        query = select(AccountRequest)
        if request_type is not None:
            query = query.where(AccountRequest.request_type == request_type)
        if status is not None:
            query = query.where(AccountRequest.status == status)
        if user_id is not None:
            query = query.where(AccountRequest.user_id == user_id)
        query = query.order_by(
            AccountRequest.created_at.desc(), AccountRequest.id.desc()
        )
        return list(self.db.execute(query).scalars().all())

    def review(
        self,
        request_id: int,
        new_status: ReviewStatus,
        reviewer_id: int | None = None,
    ) -> AccountRequest:
        ticket = self.get_request(request_id)
        if not ticket.can_transition_to(new_status):
            raise ReviewConflictError(
                f"Request {ticket.id} is already {ticket.status.value.lower()}"
            )

        result = self.db.execute(
            update(AccountRequest)
            .where(
                AccountRequest.id == ticket.id,
                AccountRequest.status == ReviewStatus.PENDING,
            )
            .values(status=new_status, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ReviewConflictError(
                f"Request {ticket.id} was reviewed by someone else"
            )
        self.db.refresh(ticket)

        self.db.add(AuditLog(
            event_type=f"REQUEST_{new_status.value}",
            subject=ticket.reference,
            user_id=ticket.user_id,
            actor_id=reviewer_id,
            details=f"type={ticket.request_type.value}",
        ))
        self.db.flush()
        return ticket

    # --- Notifications ---

    def _account_name(self, ticket: AccountRequest) -> str | None:
        return ticket.ad_account.account_name if ticket.ad_account else None

    def _note(self, ticket: AccountRequest) -> str | None:
        if ticket.request_type == RequestType.CHANGE_ACCESS and ticket.email:
            access = f"New access email: {ticket.email}"
            return f"{access}. {ticket.description}" if ticket.description else access
        return ticket.description

    def announce(self, ticket: AccountRequest) -> bool:
        """Best-effort admin chat message for a new request."""
        if self.notifier is None:
            return False
        try:
            message_id = self.notifier.notify_event(
                REQUEST_EVENTS[ticket.request_type],
                user_email=ticket.user.email,
                reference=ticket.reference,
                note=self._note(ticket),
                account_name=self._account_name(ticket),
                review_key=f"r{ticket.id}",
            )
        except NotifierError:
            logger.exception("Could not notify admins about %s", ticket.reference)
            return False

        if message_id is None:
            return False
        ticket.telegram_message_id = message_id
        self.db.flush()
        return True

    def notify_review(self, ticket: AccountRequest) -> bool:
        if self.notifier is None:
            return False
        try:
            message_id = self.notifier.notify_status(
                REQUEST_EVENTS[ticket.request_type],
                ticket.status,
                user_email=ticket.user.email,
                reference=ticket.reference,
                note=self._note(ticket),
                account_name=self._account_name(ticket),
                message_id=ticket.telegram_message_id,
            )
        except NotifierError:
            logger.exception(
                "Could not update admin message for %s", ticket.reference
            )
            return False
        return message_id is not None
