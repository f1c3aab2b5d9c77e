"""
Email Service using Resend
Provides email functionality using MJML templates for responsive design
"""

import logging
from datetime import datetime
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, EMAIL_REPLY_TO, RESEND_API_KEY
from .email_templates import (
    CHALLENGE_COPY,
    challenge_confirmation_template,
    challenge_confirmation_text,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


class EmailNotConfiguredError(RuntimeError):
    """Raised when no email provider credentials are available"""


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns a dict-like object with 'html' and 'errors' keys
        if isinstance(result, dict):
            if result.get("errors"):
                logger.warning(f"MJML compilation warnings: {result['errors']}")
            return result.get("html", "")
        return str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise RuntimeError(f"Failed to compile MJML template: {str(e)}") from e


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    text_content: Optional[str] = None,
    from_address: Optional[str] = None,
    reply_to: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        text_content: Optional plain-text alternative
        from_address: Optional custom from address
        reply_to: Optional reply-to address

    Returns:
        Send response dict
    """
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise EmailNotConfiguredError("Email service not configured")

    html_content = compile_mjml_to_html(mjml_content)
    recipients = [to] if isinstance(to, str) else to

    email_data = {
        "from": from_address or EMAIL_FROM_ADDRESS,
        "to": recipients,
        "subject": subject,
        "html": html_content,
    }
    if text_content:
        email_data["text"] = text_content
    if reply_to:
        email_data["reply_to"] = reply_to

    try:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send(email_data)
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise RuntimeError(f"Failed to send email: {str(e)}") from e


# ============================================
# Challenge emails
# ============================================


async def send_challenge_confirmation(
    to: str,
    name: Optional[str],
    meeting_url: str,
    starts_at: Optional[datetime],
    duration_minutes: int,
    registration_id: str,
    tz_name: str = "UTC",
    lang: str = "ar",
) -> Optional[dict]:
    """
    Send the confirmed-seat email with the meeting link.

    Runs as a background task after the registration has committed, so it
    never raises: failures are logged and None is returned.
    """
    try:
        mjml_content = challenge_confirmation_template(
            name=name,
            meeting_url=meeting_url,
            starts_at=starts_at,
            duration_minutes=duration_minutes,
            registration_id=registration_id,
            tz_name=tz_name,
            lang=lang,
        )
        text_content = challenge_confirmation_text(
            name=name,
            meeting_url=meeting_url,
            starts_at=starts_at,
            duration_minutes=duration_minutes,
            registration_id=registration_id,
            tz_name=tz_name,
            lang=lang,
        )
        return await send_email(
            to=to,
            subject=CHALLENGE_COPY[lang]["subject"],
            mjml_content=mjml_content,
            text_content=text_content,
            reply_to=EMAIL_REPLY_TO,
        )
    except Exception as e:
        logger.error(
            f"❌ Challenge confirmation email failed for registration {registration_id}: {e}"
        )
        return None
