"""
Tests for the Telegram notifier, against httpx.MockTransport.
"""

from datetime import datetime
from decimal import Decimal

import httpx
import pytest

from topup_desk.models.enums import NotificationEvent, ReviewStatus
from topup_desk.services.notifier import (
    NotifierError,
    TelegramNotifier,
    admin_link,
    format_event_message,
    parse_callback_data,
    review_keyboard,
    with_status,
)


def notifier_with(handler, chat_id="1001"):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return TelegramNotifier("tok", chat_id, client=client)


class TestFormatting:

    def test_event_message(self):
        text = format_event_message(
            NotificationEvent.TOP_UP,
            user_email="jane@test.com",
            reference="TOPUP-1-abc",
            amount=Decimal("1234.5"),
            note="for <spring> sale",
            account_name="Store",
            sent_at=datetime(2026, 1, 2, 3, 4),
        )

        assert text.startswith("🔔 <b>New Top-Up Request</b>")
        assert "jane@test.com" in text
        assert "$1,234.50" in text
        assert "for &lt;spring&gt; sale" in text
        assert "2026-01-02 03:04 UTC" in text

    def test_amount_optional(self):
        text = format_event_message(
            NotificationEvent.REPLACEMENT, user_email="a@b.co", reference="REQ-1",
        )
        assert "Amount" not in text
        assert "New Account Replacement Request" in text

    def test_with_status(self):
        assert with_status("hello", ReviewStatus.REJECTED).endswith(
            "❌ <b>Status: REJECTED</b>"
        )

    def test_admin_link_routes_and_quotes(self):
        assert admin_link("https://x.io", NotificationEvent.DEPOSIT, "0xab/cd") == (
            "https://x.io/payments?reference=0xab%2Fcd"
        )
        assert admin_link(
            "https://x.io", NotificationEvent.CHANGE_ACCESS, "REQ-3",
        ).startswith("https://x.io/tickets")


class TestCallbackData:

    def test_keyboard_and_parse(self):
        buttons = review_keyboard("p12")["inline_keyboard"][0]
        assert parse_callback_data(buttons[0]["callback_data"]) == (
            ReviewStatus.APPROVED, "p12",
        )
        assert parse_callback_data(buttons[1]["callback_data"]) == (
            ReviewStatus.REJECTED, "p12",
        )

    def test_foreign_data_ignored(self):
        assert parse_callback_data("something_else") is None

    def test_link_button(self):
        rows = review_keyboard("r3", "https://x.io/tickets?reference=REQ-3")["inline_keyboard"]
        assert len(rows) == 2
        assert rows[1] == [
            {"text": "Open in admin panel", "url": "https://x.io/tickets?reference=REQ-3"},
        ]

    def test_empty_keyboard(self):
        assert review_keyboard() is None


class TestBotApiCalls:

    def test_send_message(self, notifier, telegram_api):
        message_id = notifier.send_message("hi", review_keyboard("p1"))

        assert message_id == telegram_api.last_message_id
        payload = telegram_api.payloads("sendMessage")[0]
        assert payload["chat_id"] == "1001"
        assert payload["parse_mode"] == "HTML"
        assert "reply_markup" in payload

    def test_api_refusal_raises(self):
        notifier = notifier_with(lambda request: httpx.Response(
            400, json={"ok": False, "description": "Bad Request: chat not found"},
        ))
        with pytest.raises(NotifierError, match="chat not found"):
            notifier.send_message("hi")

    def test_ok_false_raises(self):
        notifier = notifier_with(lambda request: httpx.Response(
            200, json={"ok": False, "description": "nope"},
        ))
        with pytest.raises(NotifierError):
            notifier.delete_webhook()

    def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(NotifierError, match="ConnectError"):
            notifier_with(handler).send_message("hi")

    def test_non_json_raises(self):
        notifier = notifier_with(lambda request: httpx.Response(502, text="Bad Gateway"))
        with pytest.raises(NotifierError, match="non-JSON"):
            notifier.send_message("hi")

    def test_token_in_url(self):
        seen = []

        def handler(request):
            seen.append(str(request.url))
            return httpx.Response(200, json={"ok": True, "result": True})

        notifier_with(handler).set_webhook("https://app.example.com/telegram/webhook", "s")
        assert seen == ["https://api.telegram.org/bottok/setWebhook"]

    def test_set_webhook_payload(self, notifier, telegram_api):
        notifier.set_webhook("https://app.example.com/telegram/webhook", "secret")
        payload = telegram_api.payloads("setWebhook")[0]
        assert payload["allowed_updates"] == ["callback_query"]
        assert payload["secret_token"] == "secret"


class TestFindMessageId:

    def test_newest_match_in_admin_chat(self, notifier, telegram_api):
        telegram_api.updates = [
            {"update_id": 1, "message": {
                "message_id": 10, "chat": {"id": 1001}, "text": "ref 0xaa",
            }},
            {"update_id": 2, "message": {
                "message_id": 11, "chat": {"id": 999}, "text": "ref 0xaa",
            }},
            {"update_id": 3, "callback_query": {"id": "q", "message": {
                "message_id": 12, "chat": {"id": 1001}, "text": "ref 0xaa",
            }}},
            {"update_id": 4, "message": {
                "message_id": 13, "chat": {"id": 1001}, "text": "ref 0xbb",
            }},
        ]
        assert notifier.find_message_id("0xaa") == 12

    def test_no_match(self, notifier, telegram_api):
        assert notifier.find_message_id("0xzz") is None


class TestEvents:

    def test_disabled_notifier_skips(self, caplog):
        notifier = TelegramNotifier("", "")
        with caplog.at_level("WARNING", logger="topup_desk"):
            result = notifier.notify_event(
                NotificationEvent.DEPOSIT, user_email="a@b.co", reference="0x1",
            )
        assert result is None
        assert "not configured" in caplog.text

    def test_notify_event_links_admin_panel(self, notifier, telegram_api):
        notifier.notify_event(
            NotificationEvent.DEPOSIT,
            user_email="a@b.co", reference="0x1", amount=Decimal("5"),
            review_key="p1",
        )
        rows = telegram_api.payloads("sendMessage")[0]["reply_markup"]["inline_keyboard"]
        assert rows[-1][0]["url"] == "https://admin.example.com/payments?reference=0x1"

    def test_notify_status_with_known_message(self, notifier, telegram_api):
        result = notifier.notify_status(
            NotificationEvent.DEPOSIT, ReviewStatus.APPROVED,
            user_email="a@b.co", reference="0x1", message_id=55,
        )
        assert result == 55
        assert telegram_api.methods() == ["editMessageText"]
        edit = telegram_api.payloads("editMessageText")[0]
        assert "reply_markup" not in edit
