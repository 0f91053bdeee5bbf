"""
User management and ad account endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from topup_desk.api.deps import get_current_user, require_admin
from topup_desk.models.base import get_db
from topup_desk.models.user import User
from topup_desk.schemas.balance import ReconcileResponse, UserBalanceResponse
from topup_desk.schemas.user import (
    AdAccountCreate,
    AdAccountResponse,
    RoleUpdate,
    UserCreate,
    UserResponse,
    UserWithBalance,
)
from topup_desk.services.ledger_service import LedgerService
from topup_desk.services.user_service import UserService

router = APIRouter(tags=["Users"])


# --- User Endpoints ---

@router.get("/me", response_model=UserResponse)
def who_am_i(user: User = Depends(get_current_user)):
    return user


@router.post("/users", response_model=UserResponse, status_code=201)
def create_user(
    request: UserCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Create a dashboard user and assign their role."""
    service = UserService(db)
    try:
        user = service.create_user(request)
        db.commit()
        return user
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/users", response_model=list[UserWithBalance])
def list_users(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Users management table: every user with their spendable balance."""
    return UserService(db).list_users_with_balances()


@router.put("/users/{user_id}/role", response_model=UserResponse)
def change_role(
    user_id: int,
    request: RoleUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    service = UserService(db)
    try:
        user = service.set_role(user_id, request.role)
        db.commit()
        return user
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/users/{user_id}/balance", response_model=UserBalanceResponse)
def get_user_balance(
    user_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """A user's ledger-derived balance next to the cached value."""
    try:
        user = UserService(db).get_user(user_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

    ledger = LedgerService(db)
    return UserBalanceResponse(
        user_id=user.id,
        email=user.email,
        summary=ledger.get_summary(user.id),
        cached_balance=ledger.get_cached_balance(user.id),
    )


@router.post(
    "/users/{user_id}/balance/reconcile",
    response_model=ReconcileResponse,
)
def reconcile_user_balance(
    user_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Rebuild the cached balance from the ledger if it drifted."""
    try:
        UserService(db).get_user(user_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

    result = LedgerService(db).reconcile(user_id)
    db.commit()
    return result


# --- Ad Account Endpoints ---

@router.post("/ad-accounts", response_model=AdAccountResponse, status_code=201)
def assign_ad_account(
    request: AdAccountCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Assign an ad platform account to a user."""
    service = UserService(db)
    try:
        account = service.assign_ad_account(request)
        db.commit()
        return account
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/ad-accounts", response_model=list[AdAccountResponse])
def list_ad_accounts(
    user_id: int | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Admins see every account (or one user's); customers see their own."""
    if not user.is_admin:
        user_id = user.id
    return UserService(db).list_ad_accounts(user_id=user_id)
