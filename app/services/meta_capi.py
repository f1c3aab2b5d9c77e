"""
Meta Conversions API (CAPI) forwarding

Server-side copy of browser pixel events. PII is SHA-256 hashed before it
leaves the server; event_id is shared with the browser pixel so Meta can
deduplicate the two.
"""

import hashlib
import logging
import time
import uuid
from typing import Any, Optional

import httpx

from ..config import (
    META_API_VERSION,
    META_CAPI_ACCESS_TOKEN,
    META_PIXEL_ID,
    META_TEST_EVENT_CODE,
)
from ..shared.validators import normalize_email, phone_digits

logger = logging.getLogger(__name__)

GRAPH_API_URL = "https://graph.facebook.com"


class CAPINotConfiguredError(RuntimeError):
    """Raised when the pixel id or access token is missing"""


def sha256_hex(value: str) -> str:
    return hashlib.sha256(value.strip().lower().encode("utf-8")).hexdigest()


def hash_email(email: str) -> str:
    return sha256_hex(normalize_email(email))


def hash_phone(phone: str) -> str:
    return sha256_hex(phone_digits(phone))


def generate_event_id() -> str:
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}"


def is_configured() -> bool:
    return bool(META_PIXEL_ID and META_CAPI_ACCESS_TOKEN)


def build_user_data(
    email: Optional[str] = None,
    phone: Optional[str] = None,
    client_ip: Optional[str] = None,
    user_agent: Optional[str] = None,
    fbp: Optional[str] = None,
    fbc: Optional[str] = None,
) -> dict[str, Any]:
    user_data: dict[str, Any] = {}
    if email:
        user_data["em"] = [hash_email(email)]
    if phone and phone_digits(phone):
        user_data["ph"] = [hash_phone(phone)]
    if client_ip:
        user_data["client_ip_address"] = client_ip
    if user_agent:
        user_data["client_user_agent"] = user_agent
    if fbp:
        user_data["fbp"] = fbp
    if fbc:
        user_data["fbc"] = fbc
    return user_data


def build_event_payload(
    event_name: str,
    event_id: str,
    user_data: dict[str, Any],
    event_source_url: Optional[str] = None,
    custom_data: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    event: dict[str, Any] = {
        "event_name": event_name,
        "event_time": int(time.time()),
        "event_id": event_id,
        "action_source": "website",
        "user_data": user_data,
    }
    if event_source_url:
        event["event_source_url"] = event_source_url
    if custom_data:
        event["custom_data"] = custom_data

    payload: dict[str, Any] = {"data": [event]}
    # Test event code routes events to the Events Manager test tab
    if META_TEST_EVENT_CODE:
        payload["test_event_code"] = META_TEST_EVENT_CODE
    return payload


async def send_event(payload: dict[str, Any]) -> dict:
    """POST an events payload to the Graph API. Raises on transport or API errors."""
    if not is_configured():
        raise CAPINotConfiguredError("Meta CAPI is not configured")

    url = f"{GRAPH_API_URL}/{META_API_VERSION}/{META_PIXEL_ID}/events"
    async with httpx.AsyncClient(timeout=10.0) as client:
        response = await client.post(
            url, params={"access_token": META_CAPI_ACCESS_TOKEN}, json=payload
        )
    logger.info(f"📡 Meta CAPI response status: {response.status_code}")
    response.raise_for_status()
    return response.json()


async def track_lead(
    email: Optional[str],
    phone: Optional[str],
    content_name: str,
    form_name: str,
    event_id: Optional[str] = None,
    event_source_url: Optional[str] = None,
    client_ip: Optional[str] = None,
    user_agent: Optional[str] = None,
    fbp: Optional[str] = None,
    fbc: Optional[str] = None,
) -> bool:
    """
    Forward a Lead event. Background-task safe: never raises.

    Returns True when Meta accepted the event.
    """
    if not is_configured():
        logger.debug("Meta CAPI not configured - skipping Lead event")
        return False

    try:
        payload = build_event_payload(
            event_name="Lead",
            event_id=event_id or generate_event_id(),
            user_data=build_user_data(email, phone, client_ip, user_agent, fbp, fbc),
            event_source_url=event_source_url,
            custom_data={"content_name": content_name, "form_name": form_name},
        )
        await send_event(payload)
        return True
    except Exception as e:
        logger.warning(f"⚠️ Meta CAPI Lead event failed: {e}")
        return False
