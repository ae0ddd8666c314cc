"""
Shared test fixtures and configuration for pytest.

This module provides common fixtures used across all test modules,
including database setup, API clients, a pipeline wired to a fake completion
client, and integration with the factories module.
"""

import os

# Required settings must exist before vaaniai is imported
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only-not-for-production-use-32chars")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
# No seed key: tests create the admin config row themselves
os.environ["OPENROUTER_API_KEY"] = ""

from typing import Tuple

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import vaaniai.database
from vaaniai.database import Base, get_db, set_sqlite_pragma
from vaaniai.dependencies import get_message_pipeline
from vaaniai.main import app as fastapi_app
from vaaniai.message_pipeline import InFlightRegistry, MessagePipeline, SlidingWindowRateLimiter
from vaaniai.models import User
from vaaniai.routers.auth import failed_login_attempts
from vaaniai.usage_meter import guest_counter, usage_meter

from .factories import (
    DEFAULT_TEST_PASSWORD,
    RecordingClientFactory,
    create_admin_user,
    create_api_config,
    create_enterprise_user,
    create_free_user,
    create_premium_user,
    create_super_admin_user,
)

# In-memory SQLite database shared by every session of a test
test_engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
# Foreign keys on, so ON DELETE CASCADE behaves as in production
event.listen(test_engine, "connect", set_sqlite_pragma)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

# App code that opens its own sessions (startup seeding, CLI) uses the test database
vaaniai.database.SessionLocal = TestingSessionLocal


@pytest.fixture(autouse=True)
def reset_in_memory_state():
    """Guest allowances and login lockouts live in process memory; clear them per test."""
    guest_counter.reset_all()
    failed_login_attempts.clear()
    yield
    guest_counter.reset_all()
    failed_login_attempts.clear()


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.

    Tables are created before and dropped after every test.
    """
    from vaaniai import models  # noqa: F401

    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def client_factory():
    """Fake completion client factory; inspect .requests and .configs_seen in tests."""
    return RecordingClientFactory()


@pytest.fixture
def pipeline(client_factory):
    """Message pipeline with the shared usage meter and a fake completion client."""
    return MessagePipeline(
        meter=usage_meter,
        client_factory=client_factory,
        rate_limiter=SlidingWindowRateLimiter(),
        in_flight=InFlightRegistry(),
    )


@pytest.fixture(scope="function")
def client(db_session, pipeline):
    """
    Test client with the database and the message pipeline overridden.
    """

    def override_get_db():
        yield db_session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_message_pipeline] = lambda: pipeline

    with TestClient(fastapi_app) as test_client:
        yield test_client

    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def api_config(db_session):
    """A configured completion API (rate limiting disabled)."""
    return create_api_config(db_session)


# ============================================================================
# User Fixtures
# ============================================================================


@pytest.fixture
def test_user(db_session):
    """Free-plan user with DEFAULT_TEST_PASSWORD."""
    return create_free_user(db_session, email="test@example.com")


@pytest.fixture
def test_user_premium(db_session):
    return create_premium_user(db_session)


@pytest.fixture
def test_user_enterprise(db_session):
    return create_enterprise_user(db_session)


@pytest.fixture
def test_user_admin(db_session):
    return create_admin_user(db_session, email="admin@example.com")


@pytest.fixture
def test_user_super_admin(db_session):
    return create_super_admin_user(db_session, email="superadmin@example.com")


def login_client(client: TestClient, user: User, password: str = DEFAULT_TEST_PASSWORD) -> Tuple[TestClient, str, str]:
    """
    Log the user in and set the Authorization header on the client.

    Returns:
        (client, access_token, refresh_token)
    """
    response = client.post("/login", json={"email": user.email, "password": password})
    assert response.status_code == 200, f"Login failed: {response.text}"
    tokens = response.json()
    client.headers.update({"Authorization": f"Bearer {tokens['access_token']}"})
    return client, tokens["access_token"], tokens["refresh_token"]


@pytest.fixture
def authenticated_client(client, test_user):
    """Client logged in as the free-plan test_user."""
    return login_client(client, test_user)[0]


@pytest.fixture
def authenticated_client_admin(client, test_user_admin):
    return login_client(client, test_user_admin)[0]


@pytest.fixture
def authenticated_client_super_admin(client, test_user_super_admin):
    return login_client(client, test_user_super_admin)[0]


@pytest.fixture
def guest_headers():
    """Headers identifying a guest device."""
    return {"X-Guest-Id": "guest-device-0001", "X-Timezone": "Asia/Kolkata"}


@pytest.fixture
def login():
    """The login_client helper, for tests that need more than one logged-in user."""
    return login_client
