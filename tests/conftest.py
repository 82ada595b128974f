import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("SQL_ECHO", "false")
os.environ.setdefault("AUTO_CREATE_DB", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("EMAIL_BACKEND", "disabled")

import sys
from datetime import timedelta
from pathlib import Path

project_root = Path(__file__).resolve().parents[1]
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import stagelocker.models  # noqa: F401
from stagelocker.core.rate_limit import limiter

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

limiter.enabled = False

TEST_SECRET = "test-secret-key"
TEST_ISSUER = "Stage Locker API"
TEST_AUDIENCE = "Stage Locker Client"


class RecordingSink:
    """NotificationSink de prueba: guarda lo enviado y puede simular fallas"""

    def __init__(self):
        self.sent = []
        self.fail = False

    def _record(self, kind: str, email: str, token: str) -> bool:
        if self.fail:
            return False
        self.sent.append((kind, email, token))
        return True

    def send_verification(self, email: str, token: str) -> bool:
        return self._record("verification", email, token)

    def send_password_reset(self, email: str, token: str) -> bool:
        return self._record("password_reset", email, token)

    def last_token(self, kind: str) -> str:
        return [token for sent_kind, _, token in self.sent if sent_kind == kind][-1]


@pytest.fixture()
def engine():
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture()
def db_session(engine):
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture()
def sink():
    return RecordingSink()


@pytest.fixture()
def password_codec():
    from stagelocker.core.security import PasswordCodec

    return PasswordCodec(rounds=4)


@pytest.fixture()
def token_issuer():
    from stagelocker.core.tokens import TokenIssuer

    return TokenIssuer(
        TEST_SECRET,
        issuer=TEST_ISSUER,
        audience=TEST_AUDIENCE,
        login_lifetime=timedelta(days=180),
        short_lived_lifetime=timedelta(minutes=15),
    )


@pytest.fixture()
def store(db_session):
    from stagelocker.services.accounts import SqlAccountStore

    return SqlAccountStore(db_session)


@pytest.fixture()
def auth_service(store, password_codec, token_issuer, sink):
    from stagelocker.services.auth_flow import AuthService

    return AuthService(store, password_codec, token_issuer, sink)


@pytest.fixture()
def client(engine, db_session, sink):
    from stagelocker.main import app
    from stagelocker.core.database import get_session
    from stagelocker.core.rate_limit import FixedWindowRateLimiter
    from stagelocker.dependencies import get_email_rate_limiter, get_notification_sink

    def get_session_override():
        with Session(engine) as session:
            yield session

    rate_limiter = FixedWindowRateLimiter()

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_notification_sink] = lambda: sink
    app.dependency_overrides[get_email_rate_limiter] = lambda: rate_limiter
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
