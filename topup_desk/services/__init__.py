"""Business logic services."""

from topup_desk.services.ledger_service import LedgerService
from topup_desk.services.notifier import NotifierError, TelegramNotifier
from topup_desk.services.request_service import RequestService
from topup_desk.services.review_service import ReviewConflictError, ReviewService
from topup_desk.services.submission_service import SubmissionService
from topup_desk.services.user_service import UserService

__all__ = [
    "LedgerService",
    "NotifierError",
    "TelegramNotifier",
    "RequestService",
    "ReviewConflictError",
    "ReviewService",
    "SubmissionService",
    "UserService",
]
