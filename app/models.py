import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    String,
    Text,
)
from sqlalchemy.sql import func

from .database import Base

STATUS_CONFIRMED = "confirmed"
STATUS_WAITLIST = "waitlist"


def generate_public_id():
    """Generate a unique public ID for secure public access"""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChallengeSettings(Base):
    """Singleton row holding capacity, schedule and landing-page copy"""

    __tablename__ = "challenge_settings"

    id = Column(String(36), primary_key=True, default=generate_public_id)
    capacity = Column(Integer, nullable=False, default=50)  # Max confirmed seats
    meeting_url = Column(String(500), nullable=False, default="")
    starts_at = Column(DateTime(timezone=True), nullable=True)
    duration_minutes = Column(Integer, nullable=False, default=60)
    timezone = Column(String(64), nullable=False, default="UTC")
    is_active = Column(Boolean, nullable=False, default=True)  # Gate for new registrations

    # Display fields
    title = Column(String(255), nullable=False, default="")
    subtitle = Column(String(500), nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    benefits = Column(JSON, nullable=False, default=list)
    requirements = Column(JSON, nullable=False, default=list)
    faq = Column(JSON, nullable=False, default=list)  # [{"q": ..., "a": ...}]

    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())


class ChallengeRegistration(Base):
    __tablename__ = "challenge_registrations"
    __table_args__ = (
        CheckConstraint(
            "status IN ('confirmed', 'waitlist')", name="ck_challenge_registrations_status"
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_public_id)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    name = Column(String(255), nullable=False)
    # Stored trimmed + lowercased; natural dedup key
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(50), nullable=True)
    status = Column(String(20), nullable=False, index=True)
    link_copied_at = Column(DateTime(timezone=True), nullable=True)
    link_saved_at = Column(DateTime(timezone=True), nullable=True)
