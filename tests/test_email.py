import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

from app import email_service
from app.email_templates import (
    challenge_confirmation_template,
    challenge_confirmation_text,
    format_date,
    format_time,
    localize_start,
)

STARTS_AT = datetime(2026, 11, 1, 17, 0, tzinfo=timezone.utc)
MEETING_URL = "https://meet.google.com/abc-defg-hij"


class TestFormatting:
    def test_localized_to_challenge_timezone(self):
        local = localize_start(STARTS_AT, "Asia/Riyadh")
        assert (local.hour, local.minute) == (20, 0)

    def test_naive_values_are_utc(self):
        local = localize_start(datetime(2026, 11, 1, 17, 0), "UTC")
        assert local.hour == 17

    def test_unknown_timezone_keeps_utc(self):
        assert localize_start(STARTS_AT, "Mars/Olympus") == STARTS_AT

    def test_arabic_date_and_time(self):
        local = localize_start(STARTS_AT, "Asia/Riyadh")

        assert format_date(local, "ar") == "الأحد، 1 نوفمبر 2026"
        assert format_time(local, "ar") == "08:00 م"

    def test_english_date_and_time(self):
        local = localize_start(STARTS_AT, "Asia/Riyadh")

        assert format_date(local, "en") == "Sunday, November 01, 2026"
        assert format_time(local, "en") == "08:00 PM"

    def test_missing_start(self):
        assert format_date(None) == ""
        assert format_time(None) == ""


class TestConfirmationTemplate:
    def test_contains_link_and_id(self):
        mjml = challenge_confirmation_template(
            name="Amina",
            meeting_url=MEETING_URL,
            starts_at=STARTS_AT,
            duration_minutes=90,
            registration_id="reg-123",
            tz_name="Asia/Riyadh",
        )

        assert MEETING_URL in mjml
        assert "reg-123" in mjml
        assert "90 دقيقة" in mjml
        assert 'align="right"' in mjml

    def test_name_is_escaped(self):
        mjml = challenge_confirmation_template(
            name="<b>Amina</b>",
            meeting_url=MEETING_URL,
            starts_at=STARTS_AT,
            duration_minutes=90,
            registration_id="reg-123",
        )

        assert "<b>Amina</b>" not in mjml
        assert "&lt;b&gt;Amina&lt;/b&gt;" in mjml

    def test_english_text_version(self):
        text = challenge_confirmation_text(
            name=None,
            meeting_url=MEETING_URL,
            starts_at=STARTS_AT,
            duration_minutes=60,
            registration_id="reg-9",
            lang="en",
        )

        assert text.startswith("Hi there,")
        assert MEETING_URL in text
        assert "Registration ID: reg-9" in text


class TestSendConfirmation:
    def _send(self, lang="ar"):
        return asyncio.run(
            email_service.send_challenge_confirmation(
                to="amina@example.com",
                name="Amina",
                meeting_url=MEETING_URL,
                starts_at=STARTS_AT,
                duration_minutes=90,
                registration_id="reg-1",
                tz_name="Asia/Riyadh",
                lang=lang,
            )
        )

    def test_sends_localized_subject(self):
        send = AsyncMock(return_value={"id": "email-1"})
        with patch.object(email_service, "send_email", new=send):
            assert self._send("en") == {"id": "email-1"}

        kwargs = send.call_args.kwargs
        assert kwargs["to"] == "amina@example.com"
        assert kwargs["subject"] == "🎉 You're registered for the Balance Challenge!"
        assert MEETING_URL in kwargs["text_content"]

    def test_failure_is_swallowed(self):
        with patch.object(
            email_service, "send_email", new=AsyncMock(side_effect=RuntimeError("resend down"))
        ):
            assert self._send() is None

    def test_missing_api_key_is_swallowed(self):
        assert self._send() is None
