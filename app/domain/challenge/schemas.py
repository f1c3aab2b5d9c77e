"""Challenge domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator

RegistrationStatus = Literal["confirmed", "waitlist"]
RegistrationOutcome = Literal["success", "full", "already_registered", "error"]


class FaqItem(BaseModel):
    q: str
    a: str


# ============================================================================
# PUBLIC
# ============================================================================


class RegistrationRequest(BaseModel):
    """Raw registration form. Fields are validated by the service, not here,
    so that bad input still gets the standard result shape back."""

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    lang: Literal["ar", "en"] = "ar"

    # Marketing context forwarded to Meta CAPI
    event_source_url: Optional[str] = None
    fbp: Optional[str] = None
    fbc: Optional[str] = None


class RegistrationResult(BaseModel):
    """Client-facing registration outcome"""

    status: RegistrationOutcome
    registration_id: Optional[str] = None
    remaining: Optional[int] = None
    existing_status: Optional[RegistrationStatus] = None
    error: Optional[str] = None


class ChallengeStats(BaseModel):
    capacity: int
    confirmed_count: int
    waitlist_count: int
    remaining: int


class PublicChallengeSettings(BaseModel):
    """Settings visible to anyone (no meeting_url)"""

    model_config = ConfigDict(from_attributes=True)

    title: str
    subtitle: str
    description: str
    benefits: list[str]
    requirements: list[str]
    faq: list[FaqItem]
    capacity: int
    starts_at: Optional[datetime] = None
    duration_minutes: int
    timezone: str
    is_active: bool


class ChallengeSettingsResponse(PublicChallengeSettings):
    id: str
    meeting_url: str
    updated_at: Optional[datetime] = None


class ChallengeSettingsUpdate(BaseModel):
    """Partial update - only fields that are sent are written"""

    capacity: Optional[int] = Field(None, ge=1)
    meeting_url: Optional[str] = None
    starts_at: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(None, ge=1)
    timezone: Optional[str] = None
    is_active: Optional[bool] = None
    title: Optional[str] = None
    subtitle: Optional[str] = None
    description: Optional[str] = None
    benefits: Optional[list[str]] = None
    requirements: Optional[list[str]] = None
    faq: Optional[list[FaqItem]] = None

    @field_validator(
        "capacity",
        "meeting_url",
        "duration_minutes",
        "timezone",
        "is_active",
        "title",
        "subtitle",
        "description",
        "benefits",
        "requirements",
        "faq",
    )
    @classmethod
    def reject_null(cls, v):
        # Only starts_at may be cleared
        if v is None:
            raise ValueError("may not be null")
        return v

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError, OSError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v


class MeetingDetails(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    meeting_url: str
    starts_at: Optional[datetime] = None
    duration_minutes: int
    timezone: str


class RegistrationLookup(BaseModel):
    id: str
    status: RegistrationStatus


class ActionResult(BaseModel):
    success: bool
    error: Optional[str] = None


# ============================================================================
# ADMIN
# ============================================================================


class RegistrationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: Optional[datetime] = None
    name: str
    email: str
    phone: Optional[str] = None
    status: RegistrationStatus
    link_copied_at: Optional[datetime] = None
    link_saved_at: Optional[datetime] = None


class RegistrationUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    status: Optional[RegistrationStatus] = None

    @field_validator("name", "email", "status")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("may not be null")
        return v


class RegistrationListResponse(BaseModel):
    data: list[RegistrationResponse]
    total: int
    page: int
    page_size: int


class AdminOverview(BaseModel):
    capacity: int
    confirmed_count: int
    remaining_count: int
    waitlist_count: int
    copied_count: int
    saved_count: int
    not_copied_count: int


class ChartDataPoint(BaseModel):
    date: str
    confirmed: int
    waitlist: int
