import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure predictable environment variables for tests before importing the app.
BASE_DIR = Path(__file__).resolve().parents[1]
TEST_DB_PATH = BASE_DIR / "test.db"

if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

os.environ.setdefault("DATABASE_URL", f"sqlite:///{TEST_DB_PATH}")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("SMS_PROVIDER", "mock")
os.environ.setdefault("DEV_DEFAULT_OTP", "123456")

import app.main as main  # noqa: E402  (import after env vars are set)
from app.database import Base, SessionLocal, engine  # noqa: E402

DEV_OTP = "123456"


@pytest.fixture(autouse=True)
def fresh_schema():
    """Every test starts from empty tables."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    main.app.dependency_overrides.clear()


@pytest.fixture()
def client():
    with TestClient(main.app) as test_client:
        yield test_client


@pytest.fixture()
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def login(client):
    """Sign in ``phone`` with the development OTP and return the auth headers."""

    def _login(phone: str = "+919876543210") -> dict:
        response = client.post("/api/auth/verify-otp", json={"phone": phone, "otp": DEV_OTP})
        assert response.status_code == 200, response.json()
        token = response.json()["data"]["access_token"]
        return {"Authorization": f"Bearer {token}"}

    return _login
