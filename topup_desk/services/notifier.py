"""
Telegram notifier — tells the admin chat about new requests.

The client talks to the Telegram Bot API over HTTPS with httpx.
Every call is attempted once. Transport problems and API errors
surface as NotifierError; the services that call the notifier
catch it, log it and carry on, because a missed chat message must
never undo a stored payment or review.

Message ids returned by sendMessage are stored on the payment so
that a later status change can edit the same message. Rows created
before that was stored fall back to scanning getUpdates, which only
sees what the bot has recently received and may find nothing.
"""

import html
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any
from urllib.parse import quote

import httpx

from topup_desk.config import Settings, get_settings
from topup_desk.models.enums import NotificationEvent, ReviewStatus

logger = logging.getLogger(__name__)


EVENT_TITLES = {
    NotificationEvent.TOP_UP: "New Top-Up Request",
    NotificationEvent.DEPOSIT: "New Deposit Notification",
    NotificationEvent.REPLACEMENT: "New Account Replacement Request",
    NotificationEvent.CHANGE_ACCESS: "New Change Access Request",
}

# Admin UI page where each event is reviewed
EVENT_ROUTES = {
    NotificationEvent.TOP_UP: "/top-up-requests",
    NotificationEvent.DEPOSIT: "/payments",
    NotificationEvent.REPLACEMENT: "/tickets",
    NotificationEvent.CHANGE_ACCESS: "/tickets",
}

STATUS_BADGES = {
    ReviewStatus.APPROVED: "✅ <b>Status: APPROVED</b>",
    ReviewStatus.REJECTED: "❌ <b>Status: REJECTED</b>",
}

APPROVE_PREFIX = "approve_"
REJECT_PREFIX = "reject_"


class NotifierError(Exception):
    """The chat API could not be reached or refused the call."""


def admin_link(admin_panel_url: str, event: NotificationEvent, reference: str) -> str:
    return (
        f"{admin_panel_url}{EVENT_ROUTES[event]}"
        f"?reference={quote(reference, safe='')}"
    )


def format_event_message(
    event: NotificationEvent,
    *,
    user_email: str,
    reference: str,
    amount: Decimal | None = None,
    note: str | None = None,
    account_name: str | None = None,
    sent_at: datetime | None = None,
) -> str:
    """Build the HTML text announcing a new request."""
    sent_at = sent_at or datetime.utcnow()
    lines = [
        f"🔔 <b>{EVENT_TITLES[event]}</b>",
        "",
        f"👤 <b>User:</b> {html.escape(user_email)}",
    ]
    if amount is not None:
        lines.append(f"💰 <b>Amount:</b> ${amount:,.2f}")
    if account_name:
        lines.append(f"📣 <b>Ad account:</b> {html.escape(account_name)}")
    lines.append(f"🔗 <b>Reference:</b> {html.escape(reference)}")
    if note:
        lines.append(f"📝 <b>Note:</b> {html.escape(note)}")
    lines += [
        "",
        f"⏰ <b>Time:</b> {sent_at.strftime('%Y-%m-%d %H:%M')} UTC",
    ]
    return "\n".join(lines)


def with_status(text: str, status: ReviewStatus) -> str:
    """Append the review outcome to a previously sent message."""
    return f"{text}\n\n{STATUS_BADGES[status]}"


def review_keyboard(
    review_key: str | None = None, link: str | None = None
) -> dict[str, Any] | None:
    """Approve/reject buttons and an admin panel button, either optional."""
    rows = []
    if review_key:
        # callback_data is limited to 64 bytes, so the key is our row id,
        # never the user-supplied transaction hash.
        rows.append([
            {"text": "✅ Approve", "callback_data": f"{APPROVE_PREFIX}{review_key}"},
            {"text": "❌ Reject", "callback_data": f"{REJECT_PREFIX}{review_key}"},
        ])
    if link:
        rows.append([{"text": "Open in admin panel", "url": link}])
    return {"inline_keyboard": rows} if rows else None


def parse_callback_data(data: str) -> tuple[ReviewStatus, str] | None:
    """Split 'approve_p12' into (APPROVED, 'p12'). None if not ours."""
    if data.startswith(APPROVE_PREFIX):
        return ReviewStatus.APPROVED, data[len(APPROVE_PREFIX):]
    if data.startswith(REJECT_PREFIX):
        return ReviewStatus.REJECTED, data[len(REJECT_PREFIX):]
    return None


class TelegramNotifier:
    """
    Thin client over the Bot API methods the dashboard uses.

    Pass a prepared httpx.Client to control transport (tests use
    httpx.MockTransport).
    """

    def __init__(
        self,
        token: str,
        chat_id: str,
        *,
        api_base: str = "https://api.telegram.org",
        admin_panel_url: str = "",
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ):
        self.token = token
        self.chat_id = chat_id
        self.api_base = api_base.rstrip("/")
        self.admin_panel_url = admin_panel_url.rstrip("/")
        self.client = client or httpx.Client(timeout=timeout)

    @classmethod
    def from_settings(
        cls, settings: Settings | None = None, client: httpx.Client | None = None
    ) -> "TelegramNotifier":
        settings = settings or get_settings()
        return cls(
            settings.TELEGRAM_BOT_TOKEN,
            settings.TELEGRAM_ADMIN_CHAT_ID,
            api_base=settings.TELEGRAM_API_BASE,
            admin_panel_url=settings.ADMIN_PANEL_URL,
            timeout=settings.TELEGRAM_TIMEOUT_SECONDS,
            client=client,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.token and self.chat_id)

    # --- Bot API calls ---

    def _call(self, method: str, payload: dict[str, Any] | None = None) -> Any:
        url = f"{self.api_base}/bot{self.token}/{method}"
        try:
            response = self.client.post(url, json=payload or {})
        except httpx.HTTPError as e:
            raise NotifierError(f"{method} failed: {e.__class__.__name__}") from e

        try:
            data = response.json()
        except ValueError:
            raise NotifierError(
                f"{method} returned non-JSON response ({response.status_code})"
            )

        if not response.is_success or not data.get("ok"):
            raise NotifierError(
                f"{method} rejected ({response.status_code}): "
                f"{data.get('description', 'no description')}"
            )
        return data.get("result")

    def send_message(
        self, text: str, reply_markup: dict[str, Any] | None = None
    ) -> int:
        """Send an HTML message to the admin chat and return its id."""
        payload: dict[str, Any] = {
            "chat_id": self.chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup
        result = self._call("sendMessage", payload)
        return int(result["message_id"])

    def edit_message(self, message_id: int, text: str) -> None:
        """Replace a message's text. Dropping reply_markup removes the buttons."""
        self._call("editMessageText", {
            "chat_id": self.chat_id,
            "message_id": message_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        })

    def find_message_id(self, reference: str) -> int | None:
        """
        Look for a recent admin-chat message mentioning reference.

        Best-effort: getUpdates only returns what the bot received
        recently, and is unavailable while a webhook is set.
        """
        updates = self._call("getUpdates") or []
        for update in reversed(updates):
            message = update.get("message") or (
                update.get("callback_query") or {}
            ).get("message")
            if not message:
                continue
            if str(message.get("chat", {}).get("id")) != str(self.chat_id):
                continue
            if reference in (message.get("text") or ""):
                return int(message["message_id"])
        return None

    def answer_callback_query(
        self, callback_query_id: str, text: str, show_alert: bool = True
    ) -> None:
        self._call("answerCallbackQuery", {
            "callback_query_id": callback_query_id,
            "text": text,
            "show_alert": show_alert,
        })

    def set_webhook(self, url: str, secret_token: str | None = None) -> None:
        payload: dict[str, Any] = {
            "url": url,
            "allowed_updates": ["callback_query"],
        }
        if secret_token:
            payload["secret_token"] = secret_token
        self._call("setWebhook", payload)

    def delete_webhook(self) -> None:
        self._call("deleteWebhook")

    # --- Dashboard events ---

    def notify_event(
        self,
        event: NotificationEvent,
        *,
        user_email: str,
        reference: str,
        amount: Decimal | None = None,
        note: str | None = None,
        account_name: str | None = None,
        review_key: str | None = None,
    ) -> int | None:
        """
        Announce a new request. Returns the message id, or None when
        the bot is not configured.
        """
        if not self.enabled:
            logger.warning(
                "Telegram is not configured, skipping %s notification for %s",
                event.value, reference,
            )
            return None

        text = format_event_message(
            event,
            user_email=user_email,
            reference=reference,
            amount=amount,
            note=note,
            account_name=account_name,
        )
        link = (
            admin_link(self.admin_panel_url, event, reference)
            if self.admin_panel_url else None
        )
        message_id = self.send_message(text, review_keyboard(review_key, link))
        logger.info(
            "Sent %s notification for %s (message %s)",
            event.value, reference, message_id,
        )
        return message_id

    def notify_status(
        self,
        event: NotificationEvent,
        status: ReviewStatus,
        *,
        user_email: str,
        reference: str,
        amount: Decimal | None = None,
        note: str | None = None,
        account_name: str | None = None,
        message_id: int | None = None,
    ) -> int | None:
        """
        Mark the original announcement as approved or rejected.

        Returns the id of the edited message, or None when no
        message could be located.
        """
        if not self.enabled:
            logger.warning(
                "Telegram is not configured, skipping status update for %s",
                reference,
            )
            return None

        if message_id is None:
            message_id = self.find_message_id(reference)
        if message_id is None:
            logger.info("No admin message found for %s, status not edited", reference)
            return None

        text = with_status(
            format_event_message(
                event,
                user_email=user_email,
                reference=reference,
                amount=amount,
                note=note,
                account_name=account_name,
            ),
            status,
        )
        self.edit_message(message_id, text)
        logger.info("Marked %s as %s in admin chat", reference, status.value)
        return message_id
