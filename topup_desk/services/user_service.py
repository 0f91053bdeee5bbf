"""
User service — users, roles and ad account assignment.

Authentication happens upstream; this service only knows the
user rows the dashboard needs and which of them are admins.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from topup_desk.models.ad_account import AdAccount
from topup_desk.models.enums import UserRole
from topup_desk.models.user import User, UserRoleAssignment
from topup_desk.schemas.balance import BalanceSummary
from topup_desk.schemas.user import (
    AdAccountCreate,
    UserCreate,
    UserWithBalance,
)
from topup_desk.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)


class UserService:

    def __init__(self, db: Session):
        self.db = db
        self.ledger_service = LedgerService(db)

    def create_user(self, request: UserCreate) -> User:
        """Create a user with a role and an empty balance cache row."""
        email = request.email.strip().lower()
        existing = self.db.execute(
            select(User).where(User.email == email)
        ).scalar_one_or_none()
        if existing:
            raise ValueError(f"User with email '{email}' already exists")

        user = User(
            email=email,
            username=request.username,
            telegram_username=request.telegram_username,
        )
        self.db.add(user)
        self.db.flush()

        self.db.add(UserRoleAssignment(user_id=user.id, role=request.role))
        self.ledger_service.refresh_cached_balance(user.id)
        self.db.flush()
        self.db.refresh(user)
        logger.info("Created %s user %s", request.role.value, email)
        return user

    def get_user(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if not user:
            raise ValueError(f"User {user_id} not found")
        return user

    def find_admin_by_telegram_username(self, username: str | None) -> User | None:
        """
        Match a Telegram sender to an admin user.

        Case-insensitive; a stored leading '@' is tolerated.
        """
        if not username:
            return None
        name = username.lstrip("@").lower()
        candidates = self.db.execute(
            select(User).where(
                func.lower(User.telegram_username).in_([name, f"@{name}"])
            )
        ).scalars().all()
        for user in candidates:
            if user.is_admin:
                return user
        return None

    def get_role(self, user_id: int) -> UserRole:
        """Role lookup, separate from identity. No row means customer."""
        role = self.db.execute(
            select(UserRoleAssignment.role).where(
                UserRoleAssignment.user_id == user_id
            )
        ).scalar_one_or_none()
        return role or UserRole.CUSTOMER

    def set_role(self, user_id: int, role: UserRole) -> User:
        user = self.get_user(user_id)
        assignment = user.role_assignment
        if assignment is None:
            assignment = UserRoleAssignment(user_id=user.id, role=role)
            self.db.add(assignment)
        else:
            assignment.role = role
        self.db.flush()
        self.db.refresh(user)
        return user

    def list_users_with_balances(self) -> list[UserWithBalance]:
        """Rows for the users management table."""
        users = self.db.execute(
            select(User).order_by(User.created_at.desc(), User.id.desc())
        ).scalars().all()
        summaries = self.ledger_service.summaries_by_user()

        rows = []
        for user in users:
            summary = summaries.get(user.id, BalanceSummary())
            rows.append(UserWithBalance(
                id=user.id,
                email=user.email,
                username=user.username,
                role=user.role,
                balance=summary.balance,
                pending_topups=summary.pending_topups,
            ))
        return rows

    # --- Ad accounts ---

    def assign_ad_account(self, request: AdAccountCreate) -> AdAccount:
        self.get_user(request.user_id)
        account = AdAccount(
            user_id=request.user_id,
            account_id=request.account_id,
            account_name=request.account_name,
            access_email=request.access_email,
            budget=request.budget,
            currency=request.currency,
            timezone=request.timezone,
            country=request.country,
        )
        self.db.add(account)
        self.db.flush()
        return account

    def get_ad_account(self, ad_account_id: int, user_id: int | None = None) -> AdAccount:
        """Fetch an ad account, optionally checking who owns it."""
        account = self.db.get(AdAccount, ad_account_id)
        if not account or (user_id is not None and account.user_id != user_id):
            raise ValueError(f"Ad account {ad_account_id} not found")
        return account

    def list_ad_accounts(self, user_id: int | None = None) -> list[AdAccount]:
        query = select(AdAccount).order_by(AdAccount.id)
        if user_id is not None:
            query = query.where(AdAccount.user_id == user_id)
        return list(self.db.execute(query).scalars().all())
