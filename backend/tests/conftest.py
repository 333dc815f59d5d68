import base64
import os
from datetime import datetime, timedelta, timezone

# Settings are read at import time; pin them before importing the app.
TEST_JWT_SECRET = base64.b64encode(b"budget-tracker-test-signing-key-0123456789abcdef").decode()
os.environ["JWT_SECRET"] = TEST_JWT_SECRET
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["EMAIL_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from budget_tracker.auth.tokens import TokenService
from budget_tracker.core import config as app_config
from budget_tracker.core.base import Base
from budget_tracker.core.database import get_db
from budget_tracker.core.errors import EmailDeliveryError
from budget_tracker.core.security import hash_password
from budget_tracker.dependencies.auth import get_email_sender
from budget_tracker.models.user import User
from budget_tracker.services.users import UserRepository

TEST_PASSWORD = "pw123"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingEmailSender:
    def __init__(self) -> None:
        self.sent: list[dict[str, str]] = []
        self.fail_with: Exception | None = None

    def send(self, to_email: str, subject: str, body: str) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append({"to": to_email, "subject": subject, "body": body})

    @property
    def last_code(self) -> str:
        body = self.sent[-1]["body"]
        return body.split("Your verification code is ", 1)[1][:6]


@pytest.fixture(scope="session")
def db_engine():
    # In-memory SQLite for fast, isolated tests.
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture()
def session_factory(db_engine):
    # StaticPool keeps one in-memory DB for the whole run; reset schema per test.
    Base.metadata.drop_all(bind=db_engine)
    Base.metadata.create_all(bind=db_engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def outbox() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture()
def failing_outbox(outbox) -> RecordingEmailSender:
    outbox.fail_with = EmailDeliveryError("SMTP email failed: connection refused")
    return outbox


@pytest.fixture()
def token_service() -> TokenService:
    return TokenService(TEST_JWT_SECRET, timedelta(hours=1))


@pytest.fixture(autouse=True)
def _reset_mutable_settings():
    """
    Tests sometimes tweak the process-global settings object; restore them afterwards.
    """
    keys = [
        "EMAIL_ENABLED",
        "EMAIL_PROVIDER",
        "FROM_EMAIL",
        "RESEND_API_KEY",
        "AWS_REGION",
        "SMTP_HOST",
        "SMTP_PORT",
        "SMTP_USERNAME",
        "SMTP_PASSWORD",
        "SMTP_FROM_EMAIL",
        "SMTP_USE_TLS",
        "SMTP_USE_SSL",
    ]
    original = {k: getattr(app_config.settings, k) for k in keys}
    try:
        yield
    finally:
        for k, v in original.items():
            setattr(app_config.settings, k, v)


@pytest.fixture()
def app(session_factory, db_session, token_service, outbox):
    import budget_tracker.main as main

    fastapi_app = main.app
    original_state = (fastapi_app.state.session_factory, fastapi_app.state.token_service)
    fastapi_app.state.session_factory = session_factory
    fastapi_app.state.token_service = token_service

    def override_get_db():
        yield db_session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_email_sender] = lambda: outbox
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()
    fastapi_app.state.session_factory, fastapi_app.state.token_service = original_state


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


def make_user(db, email: str, *, enabled: bool = True, code: str | None = None, expires_at: datetime | None = None) -> User:
    user = User(
        first_name="Test",
        last_name="User",
        email=email,
        password_hash=hash_password(TEST_PASSWORD),
        enabled=enabled,
        verification_code=code,
        verification_expiration=expires_at,
    )
    return UserRepository(db).save(user)


@pytest.fixture()
def users(db_session):
    """
    One verified account and one still waiting for its code.
    """
    verified = make_user(db_session, "jane@example.com", enabled=True)
    pending = make_user(
        db_session,
        "pending@example.com",
        enabled=False,
        code="482913",
        expires_at=datetime.now(timezone.utc) + timedelta(minutes=10),
    )
    return verified, pending


@pytest.fixture()
def auth_headers(token_service):
    def _headers(email: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token_service.issue(email)}"}

    return _headers
