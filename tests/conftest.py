"""
Shared test fixtures.

Sets up an isolated SQLite database so tests never touch the real
database, and a fake Telegram Bot API behind httpx.MockTransport so
no test ever reaches api.telegram.org.
"""

import json
import os

# Must be set before the application reads its settings
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["TELEGRAM_BOT_TOKEN"] = ""
os.environ["TELEGRAM_ADMIN_CHAT_ID"] = ""
os.environ["TELEGRAM_WEBHOOK_SECRET"] = ""

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from topup_desk.api.deps import get_notifier
from topup_desk.main import app
from topup_desk.models import Base
from topup_desk.models.base import get_db
from topup_desk.models.enums import UserRole
from topup_desk.schemas.user import UserCreate
from topup_desk.services.notifier import TelegramNotifier
from topup_desk.services.user_service import UserService


TEST_DATABASE_URL = "sqlite:///./test.db"
ADMIN_CHAT_ID = "1001"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


class FakeTelegramAPI:
    """
    Records Bot API calls and answers them like Telegram would.

    Set fail=True to make every call return a 500 error.
    """

    def __init__(self):
        self.calls: list[tuple[str, dict]] = []
        self.updates: list[dict] = []
        self.fail = False
        self.last_message_id = 100

    def handler(self, request: httpx.Request) -> httpx.Response:
        method = request.url.path.rsplit("/", 1)[-1]
        payload = json.loads(request.content or b"{}")
        self.calls.append((method, payload))

        if self.fail:
            return httpx.Response(
                500, json={"ok": False, "description": "Internal Server Error"}
            )
        if method == "sendMessage":
            self.last_message_id += 1
            return httpx.Response(200, json={"ok": True, "result": {
                "message_id": self.last_message_id,
                "chat": {"id": int(payload["chat_id"])},
                "text": payload["text"],
            }})
        if method == "getUpdates":
            return httpx.Response(200, json={"ok": True, "result": self.updates})
        return httpx.Response(200, json={"ok": True, "result": True})

    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]

    def payloads(self, method: str) -> list[dict]:
        return [payload for m, payload in self.calls if m == method]


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop them after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Provide a database session for direct service testing."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def second_session():
    """An independent session, to act as a concurrent admin."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def telegram_api():
    return FakeTelegramAPI()


@pytest.fixture
def notifier(telegram_api):
    client = httpx.Client(transport=httpx.MockTransport(telegram_api.handler))
    yield TelegramNotifier(
        "test-token",
        ADMIN_CHAT_ID,
        admin_panel_url="https://admin.example.com",
        client=client,
    )
    client.close()


@pytest.fixture
def customer(db_session):
    user = UserService(db_session).create_user(UserCreate(
        email="customer@test.com", username="customer",
    ))
    db_session.commit()
    return user


@pytest.fixture
def admin(db_session):
    user = UserService(db_session).create_user(UserCreate(
        email="admin@test.com", username="admin", role=UserRole.ADMIN,
    ))
    db_session.commit()
    return user


@pytest.fixture
def client(db_session, notifier):
    """
    Provide a test client with the test database and fake Telegram.

    We override get_db and get_notifier so the app uses our test
    session and notifier instead of the real ones.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()
