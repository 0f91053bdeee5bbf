"""
Telegram bot endpoints.

The webhook receives button presses from the admin chat
(approve_p12, reject_r3, ...) and applies them through the same
review services the admin UI uses. It always answers 200 once the
update is understood, so Telegram does not redeliver it.
"""

import logging

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from topup_desk.api.deps import get_notifier, require_admin
from topup_desk.config import Settings, get_settings
from topup_desk.models.base import get_db
from topup_desk.models.enums import EntryKind, ReviewStatus
from topup_desk.models.user import User
from topup_desk.schemas.telegram import PingMessage, TelegramUpdate, WebhookSetup
from topup_desk.services.notifier import (
    NotifierError,
    TelegramNotifier,
    parse_callback_data,
)
from topup_desk.services.request_service import RequestService
from topup_desk.services.review_service import ReviewConflictError, ReviewService
from topup_desk.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/telegram", tags=["Telegram"])


def _answer(notifier: TelegramNotifier, callback_query_id: str, text: str) -> None:
    try:
        notifier.answer_callback_query(callback_query_id, text)
    except NotifierError:
        logger.exception("Could not answer callback query %s", callback_query_id)


def _apply_review(
    db: Session,
    notifier: TelegramNotifier,
    status: ReviewStatus,
    key: str,
    reviewer_id: int | None = None,
) -> str:
    """Apply a button press. Returns the text shown to the admin."""
    verb = "approved" if status == ReviewStatus.APPROVED else "rejected"
    emoji = "✅" if status == ReviewStatus.APPROVED else "❌"
    target, raw_id = key[:1], key[1:]
    if not raw_id.isdigit() or target not in ("p", "r"):
        raise ValueError(f"Unknown review key '{key}'")

    if target == "p":
        service = ReviewService(db, notifier)
        payment = service.review(int(raw_id), status, reviewer_id)
        db.commit()
        service.notify_review(payment)
        db.commit()
        label = "Top-up" if payment.kind == EntryKind.TOPUP else "Deposit"
        return f"{emoji} {label} {payment.reference} {verb}"

    requests = RequestService(db, notifier)
    ticket = requests.review(int(raw_id), status, reviewer_id)
    db.commit()
    requests.notify_review(ticket)
    return f"{emoji} Request {ticket.id} {verb}"


@router.post("/webhook")
def telegram_webhook(
    update: TelegramUpdate,
    x_telegram_bot_api_secret_token: str | None = Header(default=None),
    db: Session = Depends(get_db),
    notifier: TelegramNotifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
):
    """Handle approve/reject button presses from the admin chat."""
    if (
        settings.TELEGRAM_WEBHOOK_SECRET
        and x_telegram_bot_api_secret_token != settings.TELEGRAM_WEBHOOK_SECRET
    ):
        raise HTTPException(status_code=403, detail="Invalid webhook secret")

    query = update.callback_query
    if query is None or not query.data:
        return {"ok": True}

    parsed = parse_callback_data(query.data)
    if parsed is None:
        logger.info("Ignoring callback data %r", query.data)
        return {"ok": True}

    # Only presses inside the configured admin chat count
    if query.message is None or str(query.message.chat.id) != str(notifier.chat_id):
        logger.warning("Callback %s from unexpected chat ignored", query.id)
        _answer(notifier, query.id, "❌ Not allowed from this chat")
        return {"ok": True}

    status, key = parsed
    # Credit the review to the admin whose telegram_username pressed the button
    reviewer = UserService(db).find_admin_by_telegram_username(
        query.from_user.username if query.from_user else None
    )
    try:
        text = _apply_review(
            db, notifier, status, key, reviewer.id if reviewer else None
        )
    except ReviewConflictError as e:
        db.rollback()
        text = f"⚠️ {e}"
    except ValueError as e:
        db.rollback()
        logger.warning("Callback %s failed: %s", query.data, e)
        text = f"❌ {e}"

    _answer(notifier, query.id, text)
    return {"ok": True}


@router.post("/webhook/setup")
def setup_webhook(
    request: WebhookSetup | None = None,
    admin: User = Depends(require_admin),
    notifier: TelegramNotifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
):
    """Point the bot's webhook at this service."""
    url = (request.url if request else None) or settings.TELEGRAM_WEBHOOK_URL
    if not url:
        raise HTTPException(status_code=400, detail="No webhook URL configured")
    if not notifier.enabled:
        raise HTTPException(status_code=503, detail="Telegram is not configured")
    try:
        notifier.set_webhook(url, settings.TELEGRAM_WEBHOOK_SECRET or None)
    except NotifierError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"success": True, "url": url}


@router.delete("/webhook")
def delete_webhook(
    admin: User = Depends(require_admin),
    notifier: TelegramNotifier = Depends(get_notifier),
):
    """Remove the webhook so getUpdates works again."""
    if not notifier.enabled:
        raise HTTPException(status_code=503, detail="Telegram is not configured")
    try:
        notifier.delete_webhook()
    except NotifierError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"success": True}


@router.post("/test")
def send_test_message(
    request: PingMessage | None = None,
    admin: User = Depends(require_admin),
    notifier: TelegramNotifier = Depends(get_notifier),
):
    """Send a test message to the admin chat."""
    if not notifier.enabled:
        raise HTTPException(status_code=503, detail="Telegram is not configured")
    request = request or PingMessage()
    try:
        message_id = notifier.send_message(request.text)
    except NotifierError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"success": True, "message_id": message_id}
