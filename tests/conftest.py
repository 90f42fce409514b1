"""
Pytest configuration and fixtures.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient
from unittest.mock import patch

# Import Base and get_db from the app's database module
from app.core.database import Base, get_db
from app.core.roles import KeyRole
from app.core.security import hash_password
from app.main import app
from app.services.access_key_registry import AccessKeyRegistry
from app.services.rate_limiter import api_limiter, login_limiter

# Import all models to ensure they register with Base.metadata
# This is critical - tables won't be created if models aren't imported
from app.models import (  # noqa: F401
    BearerToken,
    AccessKey,
    Resource,
    Filter,
    TagDictionaryEntry,
    AdminSetting,
)

ADMIN_PASSWORD = "test-password"
# bcrypt is slow on purpose; hash once per session
ADMIN_PASSWORD_HASH = hash_password(ADMIN_PASSWORD)

# Use file-based SQLite for testing (more reliable than in-memory)
TEST_DATABASE_URL = "sqlite:///./test_gallery.db"

# Create test engine
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    pool_pre_ping=False,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """
    Create all tables before tests run and drop them after all tests complete.
    """
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function", autouse=True)
def clean_tables():
    """Empty every table after each test so tests do not see each other's rows."""
    yield
    with test_engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture(scope="function", autouse=True)
def reset_rate_limiters():
    api_limiter.reset()
    login_limiter.reset()
    yield
    api_limiter.reset()
    login_limiter.reset()


@pytest.fixture(scope="function", autouse=True)
def admin_password_hash():
    """Use a known admin password for all tests."""
    with patch("app.core.config.settings.ADMIN_PASSWORD_HASH", ADMIN_PASSWORD_HASH):
        yield


@pytest.fixture(scope="function")
def client():
    """
    Create a test client with database override.

    The get_db dependency is overridden to use TestingSessionLocal,
    creating a new session for each request (as FastAPI expects).
    """
    def override_get_db():
        """Override get_db dependency to use test database session."""
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def db_session():
    """
    Provide a database session for tests that need direct DB access.
    """
    db = TestingSessionLocal()
    try:
        yield db
        db.rollback()
    finally:
        db.close()


def ip_headers(ip: str, token: str = None) -> dict:
    """Request headers making the call come from `ip`, optionally with a bearer token."""
    headers = {"X-Forwarded-For": ip}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


@pytest.fixture(scope="function")
def admin_token(client):
    """Bearer token from a password login."""
    response = client.post(
        "/api/auth/login",
        json={"password": ADMIN_PASSWORD},
        headers=ip_headers("10.0.0.1"),
    )
    assert response.status_code == 200
    return response.json()["token"]


@pytest.fixture(scope="function")
def make_key(db_session):
    """Factory creating an access key directly in the registry. Returns its code."""
    def _make(percentage: int = 100, role: KeyRole = KeyRole.USER, duration_days: int = 30,
              username: str = "tester") -> str:
        key = AccessKeyRegistry(db_session).create(username, duration_days, role, percentage)
        db_session.commit()
        return key.code
    return _make


@pytest.fixture(scope="function")
def redeem(client):
    """Redeem an access key from an IP; returns the response."""
    def _redeem(code: str, ip: str = "192.168.1.10"):
        return client.post("/api/keys/verify", json={"code": code}, headers=ip_headers(ip))
    return _redeem
