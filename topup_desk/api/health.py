"""
Health check endpoint.

Used by load balancers and monitoring to verify the service is
up and can reach its database.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from topup_desk.api.deps import get_notifier
from topup_desk.models.base import get_db
from topup_desk.services.notifier import TelegramNotifier

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(
    db: Session = Depends(get_db),
    notifier: TelegramNotifier = Depends(get_notifier),
):
    """
    Return service health including database connectivity.

    Telegram is reported as configured or not; it is never called
    from here, since an outage there does not make this instance
    unhealthy.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except Exception:
        db_status = "unhealthy"

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "service": "topup-desk",
        "database": db_status,
        "telegram": "configured" if notifier.enabled else "disabled",
    }
