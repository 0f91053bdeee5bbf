"""
Replacement and change-access request endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from topup_desk.api.deps import get_current_user, get_notifier, require_admin
from topup_desk.models.base import get_db
from topup_desk.models.enums import RequestType, ReviewStatus
from topup_desk.models.user import User
from topup_desk.schemas.request import (
    AccountRequestCreate,
    AccountRequestResponse,
    RequestSubmissionResponse,
)
from topup_desk.services.notifier import TelegramNotifier
from topup_desk.services.request_service import RequestService
from topup_desk.services.review_service import ReviewConflictError

router = APIRouter(prefix="/requests", tags=["Requests"])


@router.post("", response_model=RequestSubmissionResponse, status_code=201)
def create_request(
    request: AccountRequestCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier: TelegramNotifier = Depends(get_notifier),
):
    service = RequestService(db, notifier)
    try:
        ticket = service.create_request(user.id, request)
        db.commit()
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    sent = service.announce(ticket)
    db.commit()
    return RequestSubmissionResponse(
        request=AccountRequestResponse.model_validate(ticket),
        notification_sent=sent,
    )


@router.get("", response_model=list[AccountRequestResponse])
def list_requests(
    type: RequestType | None = None,
    status: ReviewStatus | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Admins see every request; customers only their own."""
    return RequestService(db).list_requests(
        request_type=type,
        status=status,
        user_id=None if user.is_admin else user.id,
    )


def _review(
    request_id: int,
    new_status: ReviewStatus,
    admin: User,
    db: Session,
    notifier: TelegramNotifier,
):
    service = RequestService(db, notifier)
    try:
        ticket = service.review(request_id, new_status, reviewer_id=admin.id)
        db.commit()
    except ReviewConflictError as e:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    service.notify_review(ticket)
    return ticket


@router.post("/{request_id}/approve", response_model=AccountRequestResponse)
def approve_request(
    request_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    notifier: TelegramNotifier = Depends(get_notifier),
):
    return _review(request_id, ReviewStatus.APPROVED, admin, db, notifier)


@router.post("/{request_id}/reject", response_model=AccountRequestResponse)
def reject_request(
    request_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    notifier: TelegramNotifier = Depends(get_notifier),
):
    return _review(request_id, ReviewStatus.REJECTED, admin, db, notifier)
