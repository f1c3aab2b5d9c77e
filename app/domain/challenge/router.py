"""Challenge router - public FastAPI endpoints for the challenge landing page"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.orm import Session

from ...database import get_db
from ...rate_limiter import create_rate_limiter, get_client_ip
from .schemas import (
    ActionResult,
    ChallengeStats,
    MeetingDetails,
    PublicChallengeSettings,
    RegistrationLookup,
    RegistrationRequest,
    RegistrationResult,
)
from .service import ChallengeService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/challenge", tags=["Challenge"])

register_rate_limit = create_rate_limiter(
    limit=10, window_seconds=600, key_prefix="challenge_register"
)
engagement_rate_limit = create_rate_limiter(
    limit=60, window_seconds=60, key_prefix="challenge_engagement"
)


def get_challenge_service(db: Session = Depends(get_db)) -> ChallengeService:
    """Dependency injection for ChallengeService"""
    return ChallengeService(db)


@router.get("/settings", response_model=PublicChallengeSettings)
async def get_settings(service: ChallengeService = Depends(get_challenge_service)):
    """Landing-page settings (the meeting link is never exposed here)"""
    return service.get_public_settings()


@router.get("/stats", response_model=ChallengeStats)
async def get_stats(service: ChallengeService = Depends(get_challenge_service)):
    return service.get_stats()


@router.post("/register", response_model=RegistrationResult)
async def register(
    data: RegistrationRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    service: ChallengeService = Depends(get_challenge_service),
    _: None = Depends(register_rate_limit),
):
    """
    Register for the challenge.

    Always answers 200 with a status of success, full (waitlisted),
    already_registered or error.
    """
    return service.register(
        data,
        background_tasks=background_tasks,
        client_ip=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )


@router.get("/registrations/lookup", response_model=RegistrationLookup)
async def lookup_registration(
    email: str = Query(..., min_length=3),
    service: ChallengeService = Depends(get_challenge_service),
):
    """Find an existing registration by email (already-registered screen)"""
    return service.lookup_registration(email)


@router.get("/registrations/{registration_id}/meeting", response_model=MeetingDetails)
async def get_meeting_details(
    registration_id: str,
    service: ChallengeService = Depends(get_challenge_service),
):
    return service.get_meeting_details(registration_id)


@router.post("/registrations/{registration_id}/link-copied", response_model=ActionResult)
async def mark_link_copied(
    registration_id: str,
    service: ChallengeService = Depends(get_challenge_service),
    _: None = Depends(engagement_rate_limit),
):
    return ActionResult(success=service.mark_link_copied(registration_id))


@router.post("/registrations/{registration_id}/link-saved", response_model=ActionResult)
async def mark_link_saved(
    registration_id: str,
    service: ChallengeService = Depends(get_challenge_service),
    _: None = Depends(engagement_rate_limit),
):
    return ActionResult(success=service.mark_link_saved(registration_id))
