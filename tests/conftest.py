"""Pytest configuration and fixtures."""

import re
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import get_settings
from app.database import Base, get_db
from app.errors import DeliveryError
from app.models.tour import Tour  # noqa: F401
from app.models.user import Role, User  # noqa: F401
from app.services.auth import AuthService
from app.services.email import EmailMessage, EmailSender, get_email_sender
from app.services.jwt import get_jwt_service

RESET_TOKEN_PATTERN = re.compile(r"/resetPassword/([0-9a-f]{64})")


class RecordingSender(EmailSender):
    """Keeps sent messages in memory."""

    def __init__(self) -> None:
        self.messages: list[EmailMessage] = []

    def send(self, message: EmailMessage) -> None:
        self.messages.append(message)

    def last_reset_token(self) -> str:
        match = RESET_TOKEN_PATTERN.search(self.messages[-1].body)
        assert match, "no reset link in the last message"
        return match.group(1)


class FailingSender(EmailSender):
    def send(self, message: EmailMessage) -> None:
        raise DeliveryError("SMTP connection refused")


def make_token(user_id: int, issued_at: datetime) -> str:
    """Sign a token with an arbitrary issue time."""
    settings = get_settings()
    payload = {"sub": str(user_id), "iat": issued_at, "exp": issued_at + timedelta(hours=1)}
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="outbox")
def outbox_fixture() -> RecordingSender:
    return RecordingSender()


@pytest.fixture(name="client")
def client_fixture(db_session: Session, outbox: RecordingSender):
    """Create a test client with overridden DB and mail dependencies and disabled rate limiting."""
    from app.rate_limit import limiter
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_sender] = lambda: outbox
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture(name="failing_mail")
def failing_mail_fixture(client: TestClient):
    """Make every outgoing email fail."""
    from main import app

    app.dependency_overrides[get_email_sender] = lambda: FailingSender()


@pytest.fixture(name="make_user")
def make_user_fixture(db_session: Session):
    """Factory creating a user with the given role; returns a dict with its id and a token."""
    auth_service = AuthService()
    jwt_service = get_jwt_service()

    def factory(email: str, role: Role = Role.USER, password: str = "password123") -> dict:
        user = auth_service.signup(db_session, "Test User", email, password, password, role)
        return {
            "user_id": user.id,
            "email": user.email,
            "role": user.role,
            "password": password,
            "token": jwt_service.create_token(user.id),
        }

    return factory


@pytest.fixture(name="test_user")
def test_user_fixture(make_user) -> dict:
    """Create a regular test user and return its data and token."""
    return make_user("test@example.com")


@pytest.fixture(name="admin_user")
def admin_user_fixture(make_user) -> dict:
    return make_user("admin@example.com", Role.ADMIN)
