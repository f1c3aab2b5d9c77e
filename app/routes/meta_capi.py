"""
Meta Conversions API relay
POST /meta/capi - receives pixel events from the browser and forwards them
server-side with hashed PII and the same event_id for deduplication
"""

import logging
from typing import Any, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from ..rate_limiter import create_rate_limiter, get_client_ip
from ..services import meta_capi

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/meta", tags=["Meta"])

capi_rate_limit = create_rate_limiter(limit=30, window_seconds=60, key_prefix="meta_capi")


class CAPIEventRequest(BaseModel):
    event_name: Optional[str] = None
    event_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    event_source_url: Optional[str] = None
    custom_data: Optional[dict[str, Any]] = None
    fbp: Optional[str] = None
    fbc: Optional[str] = None
    user_agent: Optional[str] = None


@router.post("/capi")
async def forward_event(
    data: CAPIEventRequest,
    request: Request,
    _: None = Depends(capi_rate_limit),
):
    if not meta_capi.is_configured():
        logger.error("[CAPI] META_CAPI_ACCESS_TOKEN or META_PIXEL_ID not configured")
        raise HTTPException(status_code=500, detail="Server configuration error")

    if not data.event_name or not data.event_id:
        raise HTTPException(
            status_code=400, detail="Missing required fields: event_name, event_id"
        )

    user_data = meta_capi.build_user_data(
        email=data.email,
        phone=data.phone,
        client_ip=get_client_ip(request),
        user_agent=data.user_agent or request.headers.get("user-agent"),
        fbp=data.fbp,
        fbc=data.fbc,
    )
    payload = meta_capi.build_event_payload(
        event_name=data.event_name,
        event_id=data.event_id,
        user_data=user_data,
        event_source_url=data.event_source_url,
        custom_data=data.custom_data,
    )

    try:
        result = await meta_capi.send_event(payload)
    except httpx.HTTPError as e:
        logger.error(f"[CAPI] Meta API error for {data.event_name}: {e}")
        raise HTTPException(status_code=502, detail="Meta API error") from e

    logger.info(f"[CAPI] Forwarded {data.event_name} ({data.event_id})")
    return {
        "success": True,
        "event_id": data.event_id,
        "events_received": result.get("events_received"),
    }
