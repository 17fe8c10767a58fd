"""
Pytest configuration for task_api. In-memory SQLite per test so tests don't touch the filesystem
or each other; a controllable clock so expiry can be tested without sleeping.
"""
import os

# Must be set before task_api.config is imported
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-signing-secret-0123456789abcdef"
os.environ["BCRYPT_ROUNDS"] = "4"

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from task_api.audit import AuditTrail
from task_api.config import Settings, get_settings
from task_api.database import get_db
from task_api.main import app
from task_api.middleware import RequestAuthorizer
from task_api.models import Base
from task_api.oauth import OAuthManager
from task_api.stores import AccessTokenStore, AuthorizationCodeStore, UserStore
from task_api.tokens import CredentialIssuer

TEST_SECRET = "test-signing-secret-0123456789abcdef"
CLIENT_ID = "test-client"
CLIENT_SECRET = "test-secret"
REDIRECT_URI = "http://localhost:8080/oauth/callback"


class FakeClock:
    """Callable clock; advance() moves it forward."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def settings():
    return Settings(
        signing_secret=TEST_SECRET,
        issuer="task-api",
        audience="task-api-clients",
        access_token_ttl_seconds=86400,
        auth_code_ttl_seconds=600,
        client_id=CLIENT_ID,
        client_secret=CLIENT_SECRET,
        redirect_uri=REDIRECT_URI,
    )


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def issuer(settings, clock):
    return CredentialIssuer(settings, clock=clock)


@pytest.fixture
def users(db):
    return UserStore(db)


@pytest.fixture
def codes(db):
    return AuthorizationCodeStore(db)


@pytest.fixture
def tokens(db):
    return AccessTokenStore(db)


@pytest.fixture
def manager(settings, users, codes, tokens, issuer, clock, db):
    return OAuthManager(settings, users, codes, tokens, issuer, clock=clock, audit=AuditTrail(db))


@pytest.fixture
def authorizer(issuer, tokens, users, clock):
    return RequestAuthorizer(issuer, tokens, users, clock=clock)


@pytest.fixture
def registered(manager):
    """A registered user: user@example.com / secret123."""
    return manager.register("user@example.com", "secret123")


@pytest.fixture
def client(session_factory, settings):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_settings] = lambda: settings
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
