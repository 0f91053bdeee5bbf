"""
Payment API endpoints — submissions, admin review, balances.

The API layer is thin: it handles HTTP concerns (status codes,
commits, response shapes) and delegates business logic to the
services. Notifications run after the commit so a chat failure
can never roll back a stored payment or review.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from topup_desk.api.deps import get_current_user, get_notifier, require_admin
from topup_desk.models.base import get_db
from topup_desk.models.enums import EntryKind, ReviewStatus
from topup_desk.models.user import User
from topup_desk.schemas.balance import BalanceSummary
from topup_desk.schemas.payment import (
    DepositCreate,
    PaymentResponse,
    ReviewDecision,
    SubmissionResponse,
    TopUpCreate,
)
from topup_desk.services.ledger_service import LedgerService
from topup_desk.services.notifier import TelegramNotifier
from topup_desk.services.review_service import ReviewConflictError, ReviewService
from topup_desk.services.submission_service import SubmissionService

router = APIRouter(tags=["Payments"])


# --- Customer Endpoints ---

@router.post("/payments/topups", response_model=SubmissionResponse, status_code=201)
def submit_topup(
    request: TopUpCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier: TelegramNotifier = Depends(get_notifier),
):
    """
    Request a top-up of an ad account from spendable balance.

    The amount leaves the spendable balance immediately and stays
    out unless the request is rejected.
    """
    service = SubmissionService(db, notifier)
    try:
        payment = service.submit_topup(user.id, request)
        db.commit()
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    sent = service.announce(payment)
    db.commit()
    return SubmissionResponse(
        payment=PaymentResponse.model_validate(payment),
        notification_sent=sent,
    )


@router.post("/payments/deposits", response_model=SubmissionResponse, status_code=201)
def submit_deposit(
    request: DepositCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier: TelegramNotifier = Depends(get_notifier),
):
    """Report a crypto deposit for admin confirmation."""
    service = SubmissionService(db, notifier)
    try:
        payment = service.submit_deposit(user.id, request)
        db.commit()
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    sent = service.announce(payment)
    db.commit()
    return SubmissionResponse(
        payment=PaymentResponse.model_validate(payment),
        notification_sent=sent,
    )


@router.get("/payments/mine", response_model=list[PaymentResponse])
def my_payments(
    kind: EntryKind | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """The current user's ledger, newest first (top-up history)."""
    return LedgerService(db).list_payments(kind=kind, user_id=user.id)


@router.get("/balance", response_model=BalanceSummary)
def my_balance(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Spendable balance for the current user, with its breakdown."""
    return LedgerService(db).get_summary(user.id)


# --- Admin Endpoints ---

@router.get("/payments", response_model=list[PaymentResponse])
def list_payments(
    status: ReviewStatus | None = None,
    kind: EntryKind | None = None,
    user_id: int | None = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """All payments, filterable by status, kind and user."""
    return LedgerService(db).list_payments(status=status, kind=kind, user_id=user_id)


@router.get("/payments/{payment_id}", response_model=PaymentResponse)
def get_payment(
    payment_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """One payment. Customers only see their own."""
    try:
        payment = LedgerService(db).get_payment(payment_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    if payment.user_id != user.id and not user.is_admin:
        raise HTTPException(status_code=404, detail=f"Payment {payment_id} not found")
    return payment


@router.post("/payments/{payment_id}/approve", response_model=PaymentResponse)
def approve_payment(
    payment_id: int,
    decision: ReviewDecision | None = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    notifier: TelegramNotifier = Depends(get_notifier),
):
    """
    Approve a pending payment.

    Returns 409 if it was already reviewed, including by a
    concurrent reviewer who committed first.
    """
    service = ReviewService(db, notifier)
    try:
        payment = service.approve(payment_id, decision, reviewer_id=admin.id)
        db.commit()
    except ReviewConflictError as e:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    service.notify_review(payment)
    db.commit()
    return payment


@router.post("/payments/{payment_id}/reject", response_model=PaymentResponse)
def reject_payment(
    payment_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    notifier: TelegramNotifier = Depends(get_notifier),
):
    """Reject a pending payment."""
    service = ReviewService(db, notifier)
    try:
        payment = service.reject(payment_id, reviewer_id=admin.id)
        db.commit()
    except ReviewConflictError as e:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    service.notify_review(payment)
    db.commit()
    return payment
