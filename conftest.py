"""Shared test fixtures: throwaway database, upload dir and signed-in users."""

import os
import tempfile
import uuid
from types import SimpleNamespace

import pytest
from cryptography.fernet import Fernet

# Must happen before config.py is imported anywhere
_TMP_DIR = tempfile.mkdtemp(prefix="schedule-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")
os.environ.setdefault("DB_ENCRYPTION_KEY", Fernet.generate_key().decode())
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ["ENVIRONMENT"] = "test"

from fastapi.testclient import TestClient  # noqa: E402

from auth_utils import create_session_token  # noqa: E402
from database import SessionLocal  # noqa: E402
from dependencies import limiter  # noqa: E402
from main import app  # noqa: E402
from models import User  # noqa: E402


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield


@pytest.fixture
def client():
    # Host header has to pass TrustedHostMiddleware
    return TestClient(app, base_url="http://localhost:8000")


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user():
    """Create an account directly in the database and return it with auth headers."""
    def _make(role="user", name=None, is_active=True):
        email = f"test_{uuid.uuid4().hex[:12]}@example.com"
        session = SessionLocal()
        try:
            user = User(email=email, name=name or email.split("@")[0], role=role, is_active=is_active)
            session.add(user)
            session.commit()
            session.refresh(user)
            user_id = user.id
        finally:
            session.close()
        token = create_session_token(user_id)
        return SimpleNamespace(
            id=user_id,
            email=email,
            token=token,
            headers={"Authorization": f"Bearer {token}"},
        )
    return _make
