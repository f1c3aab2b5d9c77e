"""Test fixtures.

The app reads its configuration at import time, so the environment is set
up here before anything from ``app`` is imported. Each test gets a fresh
schema in a throwaway SQLite file.
"""

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

_TEST_DIR = Path(tempfile.mkdtemp(prefix="challenge-tests-"))

os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DIR / 'test.db'}"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["RESEND_API_KEY"] = ""
os.environ["META_PIXEL_ID"] = ""
os.environ["META_CAPI_ACCESS_TOKEN"] = ""
os.environ["ADMIN_EMAIL"] = "admin@example.com"
os.environ["FIREBASE_PROJECT_ID"] = "fittrah-test"

from unittest.mock import AsyncMock, patch  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app import rate_limiter  # noqa: E402
from app.auth import get_current_admin  # noqa: E402
from app.database import Base, SessionLocal, engine  # noqa: E402
from app.domain.challenge.repository import ChallengeRepository  # noqa: E402
from app.main import app  # noqa: E402
from app.models import ChallengeRegistration  # noqa: E402

MEETING_URL = "https://meet.google.com/abc-defg-hij"
STARTS_AT = datetime(2026, 11, 1, 17, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    rate_limiter.memory_cache.clear()
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db_session():
    """A session for direct repository calls. Do not call the API while it is open."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_settings():
    def _make(**overrides) -> str:
        data = {
            "capacity": 2,
            "meeting_url": MEETING_URL,
            "starts_at": STARTS_AT,
            "duration_minutes": 90,
            "timezone": "Asia/Riyadh",
            "is_active": True,
            "title": "تحدي التوازن",
            "subtitle": "سبعة أيام نحو الهدوء",
            "description": "تحدٍّ مجاني للأمهات",
            "benefits": ["هدوء", "توازن"],
            "requirements": ["دفتر"],
            "faq": [{"q": "هل هو مجاني؟", "a": "نعم"}],
        }
        data.update(overrides)
        with SessionLocal() as db:
            return ChallengeRepository.create_settings(db, **data).id

    return _make


@pytest.fixture
def add_registration():
    """Insert a registration row directly, bypassing the capacity check"""

    def _add(email: str, status: str = "confirmed", **fields) -> str:
        with SessionLocal() as db:
            registration = ChallengeRegistration(
                name=fields.pop("name", email.split("@")[0]),
                email=email,
                status=status,
                **fields,
            )
            db.add(registration)
            db.commit()
            return registration.id

    return _add


@pytest.fixture
def get_registration():
    def _get(registration_id: str):
        with SessionLocal() as db:
            registration = ChallengeRepository.get_registration_by_id(db, registration_id)
            if registration is not None:
                db.expunge(registration)
            return registration

    return _get


@pytest.fixture
def count_status():
    def _count(status=None) -> int:
        with SessionLocal() as db:
            return ChallengeRepository.count_registrations(db, status)

    return _count


@pytest.fixture
def side_effects():
    """Patch the confirmation email and the CAPI Lead event"""
    with patch(
        "app.domain.challenge.service.send_challenge_confirmation", new=AsyncMock()
    ) as email, patch("app.services.meta_capi.track_lead", new=AsyncMock()) as lead:
        yield {"email": email, "lead": lead}


@pytest.fixture
def client(side_effects):
    return TestClient(app)


@pytest.fixture
def admin_client(side_effects):
    app.dependency_overrides[get_current_admin] = lambda: {"email": "admin@example.com"}
    return TestClient(app)
