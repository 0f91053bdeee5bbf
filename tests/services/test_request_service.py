"""
Tests for the RequestService (replacement and change-access tickets).
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from topup_desk.models.enums import RequestType, ReviewStatus
from topup_desk.schemas.request import AccountRequestCreate
from topup_desk.schemas.user import AdAccountCreate, UserCreate
from topup_desk.services.ledger_service import LedgerService
from topup_desk.services.request_service import RequestService
from topup_desk.services.review_service import ReviewConflictError
from topup_desk.services.user_service import UserService


def make_ad_account(db_session, user):
    account = UserService(db_session).assign_ad_account(AdAccountCreate(
        user_id=user.id, account_id="act_77", account_name="Brand Page",
        access_email="ads@test.com", budget=Decimal("500"),
    ))
    db_session.commit()
    return account


def open_request(db_session, user, request_type=RequestType.REPLACEMENT, **kwargs):
    account = make_ad_account(db_session, user)
    ticket = RequestService(db_session).create_request(user.id, AccountRequestCreate(
        request_type=request_type, ad_account_id=account.id, **kwargs,
    ))
    db_session.commit()
    return ticket


class TestCreateRequest:

    def test_replacement_request(self, db_session, customer):
        ticket = open_request(db_session, customer, description="Account banned")

        assert ticket.status == ReviewStatus.PENDING
        assert ticket.reference == f"REQ-{ticket.id}"
        assert ticket.description == "Account banned"

    def test_change_access_needs_email(self):
        with pytest.raises(ValidationError):
            AccountRequestCreate(
                request_type=RequestType.CHANGE_ACCESS, ad_account_id=1,
            )

    def test_someone_elses_account_rejected(self, db_session, customer):
        other = UserService(db_session).create_user(UserCreate(email="other@test.com"))
        db_session.commit()
        account = make_ad_account(db_session, other)

        with pytest.raises(ValueError, match="not found"):
            RequestService(db_session).create_request(customer.id, AccountRequestCreate(
                request_type=RequestType.REPLACEMENT, ad_account_id=account.id,
            ))

    def test_requests_do_not_touch_balance(self, db_session, customer):
        open_request(db_session, customer)
        assert LedgerService(db_session).get_balance(customer.id) == 0


class TestListRequests:

    def test_filter_by_type_and_status(self, db_session, customer):
        first = open_request(db_session, customer)
        open_request(
            db_session, customer, RequestType.CHANGE_ACCESS, email="new@test.com",
        )
        service = RequestService(db_session)
        service.review(first.id, ReviewStatus.APPROVED)
        db_session.commit()

        assert len(service.list_requests()) == 2
        assert len(service.list_requests(request_type=RequestType.CHANGE_ACCESS)) == 1
        assert len(service.list_requests(status=ReviewStatus.APPROVED)) == 1
        assert service.list_requests(user_id=customer.id + 100) == []


class TestReviewRequest:

    def test_approve(self, db_session, customer, admin):
        ticket = open_request(db_session, customer)
        RequestService(db_session).review(ticket.id, ReviewStatus.APPROVED, admin.id)
        db_session.commit()
        assert ticket.status == ReviewStatus.APPROVED

    def test_second_review_conflicts(self, db_session, customer):
        ticket = open_request(db_session, customer)
        service = RequestService(db_session)
        service.review(ticket.id, ReviewStatus.REJECTED)
        db_session.commit()

        with pytest.raises(ReviewConflictError):
            service.review(ticket.id, ReviewStatus.APPROVED)

    def test_unknown_request(self, db_session):
        with pytest.raises(ValueError, match="not found"):
            RequestService(db_session).review(5, ReviewStatus.APPROVED)


class TestRequestNotifications:

    def test_announce_change_access(self, db_session, customer, notifier, telegram_api):
        ticket = open_request(
            db_session, customer, RequestType.CHANGE_ACCESS,
            email="new@test.com", description="Agency handover",
        )
        service = RequestService(db_session, notifier)

        assert service.announce(ticket) is True
        assert ticket.telegram_message_id == telegram_api.last_message_id

        sent = telegram_api.payloads("sendMessage")[0]
        assert "New Change Access Request" in sent["text"]
        assert "New access email: new@test.com. Agency handover" in sent["text"]
        assert "Brand Page" in sent["text"]
        rows = sent["reply_markup"]["inline_keyboard"]
        assert rows[0][0]["callback_data"] == f"approve_r{ticket.id}"
        assert rows[1][0]["url"] == (
            f"https://admin.example.com/tickets?reference=REQ-{ticket.id}"
        )

    def test_notify_review_edits_message(self, db_session, customer, notifier, telegram_api):
        ticket = open_request(db_session, customer)
        service = RequestService(db_session, notifier)
        service.announce(ticket)
        service.review(ticket.id, ReviewStatus.REJECTED)

        assert service.notify_review(ticket) is True
        assert "Status: REJECTED" in telegram_api.payloads("editMessageText")[0]["text"]
