import os
from datetime import datetime, timedelta, timezone

# The database module reads DATABASE_URL at import time.
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from notes_backend.api import identity
from notes_backend.api.config import Settings, get_settings
from notes_backend.api.deps import get_db
from notes_backend.api.main import app
from notes_database.models import Base

TEST_SECRET = "test-identity-secret"


def make_token(sub, secret=TEST_SECRET, expires_in=3600, headers=None, **claims):
    """Signs a session token the way the identity provider would."""
    payload = {
        "sub": sub,
        "iat": datetime.now(timezone.utc),
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    }
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256", headers=headers)


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def sqlite_url():
    """Fixture to provide a SQLite in-memory database URL for testing."""
    return "sqlite://"

@pytest.fixture
def engine(sqlite_url):
    """In-memory SQLite engine shared by every connection of one test."""
    engine = create_engine(
        sqlite_url, connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()

@pytest.fixture
def db_session(engine):
    """Provide a SQLAlchemy session for isolated test usage."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

@pytest.fixture
def settings():
    """Settings verifying HS256 tokens signed with the test secret."""
    return Settings(identity_jwt_key=TEST_SECRET, identity_algorithms=["HS256"])

@pytest.fixture(autouse=True)
def clear_jwks_cache():
    identity._jwks_cache.clear()
    yield
    identity._jwks_cache.clear()

@pytest.fixture
def client(db_session, settings):
    """Fixture for FastAPI TestClient with test DB and settings overrides."""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()

@pytest.fixture
def clock(monkeypatch):
    """Replaces the API's clock with one that advances a minute per reading."""
    start = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    readings = []

    def fake_utcnow():
        readings.append(start + timedelta(minutes=len(readings)))
        return readings[-1]

    monkeypatch.setattr("notes_backend.api.main.utcnow", fake_utcnow)
    monkeypatch.setattr("notes_database.users.utcnow", fake_utcnow)
    return readings

@pytest.fixture
def user_data():
    """Claims of the default user."""
    return {
        "sub": "user_alice",
        "email": "alice@example.com",
        "first_name": "Alice",
        "last_name": "Liddell",
        "image_url": "https://img.example.com/alice.png",
        "oauth_provider": "oauth_google",
        "oauth_provider_id": "google-123",
    }

@pytest.fixture
def second_user_data():
    """Claims of a second user."""
    return {"sub": "user_bob", "email": "bob@example.com", "name": "Bob"}

@pytest.fixture
def auth_header(user_data):
    """Returns {'Authorization': 'Bearer <token>'} for default user."""
    return bearer(make_token(**user_data))

@pytest.fixture
def second_auth_header(second_user_data):
    """Returns auth header for second user."""
    return bearer(make_token(**second_user_data))
