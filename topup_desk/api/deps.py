"""
Shared FastAPI dependencies.

Identity is established upstream by the session provider, which
forwards the authenticated user id in the X-User-Id header. The
role is looked up per request from user_roles.
"""

from functools import lru_cache

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from topup_desk.models.base import get_db
from topup_desk.models.user import User
from topup_desk.services.notifier import TelegramNotifier


def get_current_user(
    x_user_id: int | None = Header(default=None),
    db: Session = Depends(get_db),
) -> User:
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    user = db.get(User, x_user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Unknown user")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


@lru_cache()
def get_notifier() -> TelegramNotifier:
    """One notifier (and one HTTP connection pool) per process."""
    return TelegramNotifier.from_settings()
