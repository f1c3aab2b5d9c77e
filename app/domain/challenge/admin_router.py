"""Challenge admin router - dashboard endpoints, admin token required"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from ...auth import get_current_admin
from .router import get_challenge_service
from .schemas import (
    ActionResult,
    AdminOverview,
    ChallengeSettingsResponse,
    ChallengeSettingsUpdate,
    ChartDataPoint,
    RegistrationListResponse,
    RegistrationUpdate,
)
from .service import ChallengeService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/challenge",
    tags=["Challenge Admin"],
    dependencies=[Depends(get_current_admin)],
)


@router.get("/overview", response_model=AdminOverview)
async def get_overview(service: ChallengeService = Depends(get_challenge_service)):
    return service.get_overview()


@router.get("/chart", response_model=list[ChartDataPoint])
async def get_chart_data(
    days: int = Query(14, ge=1, le=90),
    service: ChallengeService = Depends(get_challenge_service),
):
    return service.get_chart_data(days)


@router.get("/settings", response_model=ChallengeSettingsResponse)
async def get_settings(service: ChallengeService = Depends(get_challenge_service)):
    return service.get_settings()


@router.patch("/settings", response_model=ChallengeSettingsResponse)
async def update_settings(
    data: ChallengeSettingsUpdate,
    service: ChallengeService = Depends(get_challenge_service),
):
    return service.update_settings(data)


# ============================================================================
# REGISTRATIONS
# ============================================================================


@router.get("/registrations", response_model=RegistrationListResponse)
async def list_registrations(
    status: Literal["all", "confirmed", "waitlist"] = Query("all"),
    not_copied: bool = Query(False),
    saved: bool = Query(False),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200),
    service: ChallengeService = Depends(get_challenge_service),
):
    return service.list_registrations(status, not_copied, saved, search, page, page_size)


@router.get("/export")
async def export_registrations(
    export_filter: Literal["all", "confirmed", "waitlist"] = Query("all", alias="filter"),
    service: ChallengeService = Depends(get_challenge_service),
):
    """Download registrations as CSV"""
    return service.export_csv(export_filter)


@router.patch("/registrations/{registration_id}", response_model=ActionResult)
async def update_registration(
    registration_id: str,
    data: RegistrationUpdate,
    service: ChallengeService = Depends(get_challenge_service),
):
    return service.update_registration(registration_id, data)


@router.delete("/registrations/{registration_id}", response_model=ActionResult)
async def delete_registration(
    registration_id: str,
    service: ChallengeService = Depends(get_challenge_service),
):
    return service.delete_registration(registration_id)


@router.post("/registrations/{registration_id}/promote", response_model=ActionResult)
async def promote_registration(
    registration_id: str,
    service: ChallengeService = Depends(get_challenge_service),
):
    """Move a waitlisted registration to confirmed if a seat is free"""
    return service.promote(registration_id)
