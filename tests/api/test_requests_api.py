"""
Tests for replacement and change-access request endpoints.
"""

import pytest


def auth(user):
    return {"X-User-Id": str(user.id)}


@pytest.fixture
def ad_account_id(client, admin, customer):
    return client.post("/ad-accounts", headers=auth(admin), json={
        "user_id": customer.id,
        "account_id": "act_9",
        "account_name": "Store",
        "access_email": "ads@test.com",
    }).json()["id"]


class TestCreateRequest:

    def test_replacement_returns_201(self, client, customer, ad_account_id, telegram_api):
        response = client.post("/requests", headers=auth(customer), json={
            "request_type": "REPLACEMENT",
            "ad_account_id": ad_account_id,
            "description": "Disabled by platform",
        })
        assert response.status_code == 201
        data = response.json()
        assert data["request"]["status"] == "PENDING"
        assert data["notification_sent"] is True
        assert "New Account Replacement Request" in (
            telegram_api.payloads("sendMessage")[0]["text"]
        )

    def test_change_access_without_email_returns_422(self, client, customer, ad_account_id):
        response = client.post("/requests", headers=auth(customer), json={
            "request_type": "CHANGE_ACCESS", "ad_account_id": ad_account_id,
        })
        assert response.status_code == 422

    def test_unknown_ad_account_returns_400(self, client, customer):
        response = client.post("/requests", headers=auth(customer), json={
            "request_type": "REPLACEMENT", "ad_account_id": 999,
        })
        assert response.status_code == 400


class TestReviewRequest:

    def _open(self, client, customer, ad_account_id):
        return client.post("/requests", headers=auth(customer), json={
            "request_type": "CHANGE_ACCESS",
            "ad_account_id": ad_account_id,
            "email": "agency@test.com",
        }).json()["request"]["id"]

    def test_approve_then_conflict(self, client, admin, customer, ad_account_id):
        request_id = self._open(client, customer, ad_account_id)

        first = client.post(f"/requests/{request_id}/approve", headers=auth(admin))
        assert first.status_code == 200
        assert first.json()["status"] == "APPROVED"

        second = client.post(f"/requests/{request_id}/reject", headers=auth(admin))
        assert second.status_code == 409

    def test_unknown_request_returns_404(self, client, admin):
        assert client.post("/requests/999/approve", headers=auth(admin)).status_code == 404

    def test_customer_cannot_review(self, client, customer, ad_account_id):
        request_id = self._open(client, customer, ad_account_id)
        response = client.post(f"/requests/{request_id}/approve", headers=auth(customer))
        assert response.status_code == 403

    def test_listing(self, client, admin, customer, ad_account_id):
        self._open(client, customer, ad_account_id)

        assert len(client.get("/requests", headers=auth(customer)).json()) == 1
        assert client.get(
            "/requests", headers=auth(admin), params={"type": "REPLACEMENT"},
        ).json() == []
        assert len(client.get(
            "/requests", headers=auth(admin), params={"status": "PENDING"},
        ).json()) == 1
