"""Atomic registration: capacity decision, dedup and failure behaviour"""

from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest
from fastapi import BackgroundTasks
from sqlalchemy.exc import OperationalError

from app.database import SessionLocal
from app.domain.challenge.repository import STATUS_CLOSED, ChallengeRepository
from app.domain.challenge.schemas import RegistrationRequest
from app.domain.challenge.service import MESSAGES, ChallengeService


def register(name, email, phone=None):
    with SessionLocal() as db:
        return ChallengeRepository.register_for_challenge(db, name, email, phone)


def register_via_service(**fields):
    with SessionLocal() as db:
        return ChallengeService(db).register(RegistrationRequest(**fields))


class TestCapacityDecision:
    def test_first_registrations_are_confirmed_until_full(self, make_settings):
        make_settings(capacity=2)

        first = register("Amina", "amina@example.com")
        second = register("Sara", "sara@example.com")

        assert first["status"] == "success"
        assert first["remaining"] == 1
        assert second["status"] == "success"
        assert second["remaining"] == 0

    def test_overflow_goes_to_waitlist(self, make_settings, count_status, get_registration):
        make_settings(capacity=2)
        register("Amina", "amina@example.com")
        register("Sara", "sara@example.com")

        third = register("Huda", "huda@example.com")

        assert third["status"] == "full"
        assert third["remaining"] == 0
        assert get_registration(third["registration_id"]).status == "waitlist"
        assert count_status("confirmed") == 2
        assert count_status("waitlist") == 1

    def test_phone_is_stored(self, make_settings, get_registration):
        make_settings()
        result = register("Amina", "amina@example.com", "+212 600 000 000")

        assert get_registration(result["registration_id"]).phone == "+212 600 000 000"

    def test_inactive_challenge_is_closed(self, make_settings, count_status):
        make_settings(is_active=False)

        assert register("Amina", "amina@example.com") == {"status": STATUS_CLOSED}
        assert count_status() == 0

    def test_missing_settings_is_closed(self, count_status):
        assert register("Amina", "amina@example.com") == {"status": STATUS_CLOSED}
        assert count_status() == 0

    def test_lowered_capacity_waitlists_new_registrations(self, make_settings, add_registration):
        make_settings(capacity=1)
        add_registration("a@example.com")
        add_registration("b@example.com")

        result = register("Huda", "huda@example.com")

        assert result["status"] == "full"


class TestDeduplication:
    def test_same_email_returns_existing_registration(self, make_settings, count_status):
        make_settings()
        first = register("Amina", "amina@example.com")

        second = register("Amina again", "amina@example.com")

        assert second["status"] == "already_registered"
        assert second["registration_id"] == first["registration_id"]
        assert second["existing_status"] == "confirmed"
        assert count_status() == 1

    def test_duplicate_reports_waitlist_status(self, make_settings):
        make_settings(capacity=1)
        register("Amina", "amina@example.com")
        waitlisted = register("Sara", "sara@example.com")

        again = register("Sara", "sara@example.com")

        assert again["status"] == "already_registered"
        assert again["registration_id"] == waitlisted["registration_id"]
        assert again["existing_status"] == "waitlist"

    def test_case_and_whitespace_variants_are_the_same_person(self, make_settings, count_status):
        make_settings()

        first = register_via_service(name="Amina", email="  Amina@Example.COM ")
        second = register_via_service(name="Amina", email="amina@example.com")

        assert first.status == "success"
        assert second.status == "already_registered"
        assert second.registration_id == first.registration_id
        assert count_status() == 1

    def test_duplicate_on_full_challenge_is_not_waitlisted_again(self, make_settings, count_status):
        make_settings(capacity=1)
        register("Amina", "amina@example.com")

        result = register("Amina", "amina@example.com")

        assert result["status"] == "already_registered"
        assert count_status("waitlist") == 0


class TestGatewayValidation:
    @pytest.mark.parametrize(
        "fields",
        [
            {"name": "", "email": "amina@example.com"},
            {"name": "   ", "email": "amina@example.com"},
            {"name": "Amina", "email": ""},
            {"name": "Amina"},
            {"email": "amina@example.com"},
        ],
    )
    def test_missing_fields_never_reach_the_store(self, make_settings, count_status, fields):
        make_settings()

        with patch.object(ChallengeRepository, "register_for_challenge") as store:
            result = register_via_service(**fields)

        store.assert_not_called()
        assert result.status == "error"
        assert result.error == MESSAGES["ar"]["required"]
        assert count_status() == 0

    @pytest.mark.parametrize("email", ["not-an-email", "a@b", "a b@example.com", "@example.com"])
    def test_malformed_email_is_rejected(self, make_settings, count_status, email):
        make_settings()

        result = register_via_service(name="Amina", email=email, lang="en")

        assert result.status == "error"
        assert result.error == MESSAGES["en"]["invalid_email"]
        assert count_status() == 0

    def test_blank_phone_is_stored_as_null(self, make_settings, get_registration):
        make_settings()

        result = register_via_service(name="Amina", email="amina@example.com", phone="   ")

        assert get_registration(result.registration_id).phone is None

    def test_name_is_trimmed(self, make_settings, get_registration):
        make_settings()

        result = register_via_service(name="  Amina  ", email="amina@example.com")

        assert get_registration(result.registration_id).name == "Amina"

    def test_closed_maps_to_localized_error(self, make_settings):
        make_settings(is_active=False)

        result = register_via_service(name="Amina", email="amina@example.com", lang="en")

        assert result.status == "error"
        assert result.error == MESSAGES["en"]["closed"]

    def test_store_failure_maps_to_error(self, make_settings):
        make_settings()
        failure = OperationalError("INSERT", {}, Exception("database is down"))

        with patch.object(ChallengeRepository, "register_for_challenge", side_effect=failure):
            result = register_via_service(name="Amina", email="amina@example.com")

        assert result.status == "error"
        assert result.error == MESSAGES["ar"]["failed"]
        assert result.registration_id is None


class TestSideEffectQueueing:
    def _register(self, **fields):
        tasks = BackgroundTasks()
        with SessionLocal() as db:
            result = ChallengeService(db).register(RegistrationRequest(**fields), tasks)
        return result, [task.func.__name__ for task in tasks.tasks]

    def test_confirmed_queues_email_and_lead(self, make_settings):
        make_settings()

        result, queued = self._register(name="Amina", email="amina@example.com")

        assert result.status == "success"
        assert queued == ["send_challenge_confirmation", "track_lead"]

    def test_waitlisted_queues_lead_only(self, make_settings, add_registration):
        make_settings(capacity=1)
        add_registration("a@example.com")

        result, queued = self._register(name="Amina", email="amina@example.com")

        assert result.status == "full"
        assert queued == ["track_lead"]

    def test_duplicate_queues_nothing(self, make_settings, add_registration):
        make_settings()
        add_registration("amina@example.com")

        result, queued = self._register(name="Amina", email="amina@example.com")

        assert result.status == "already_registered"
        assert queued == []

    def test_missing_meeting_url_skips_email(self, make_settings):
        make_settings(meeting_url="")

        result, queued = self._register(name="Amina", email="amina@example.com")

        assert result.status == "success"
        assert queued == ["track_lead"]


class TestFailureLeavesNothingWritten:
    def test_commit_failure_rolls_back_the_insert(self, make_settings, db_session, count_status):
        make_settings()
        failure = OperationalError("COMMIT", {}, Exception("disk I/O error"))

        with patch.object(db_session, "commit", side_effect=failure):
            with pytest.raises(OperationalError):
                ChallengeRepository.register_for_challenge(
                    db_session, "Amina", "amina@example.com", None
                )
        db_session.close()

        assert count_status() == 0


class TestConcurrentRegistration:
    def test_capacity_is_never_exceeded(self, make_settings, count_status):
        make_settings(capacity=3)

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(
                pool.map(
                    lambda i: register(f"User {i}", f"user{i}@example.com"),
                    range(12),
                )
            )

        statuses = [r["status"] for r in results]
        assert statuses.count("success") == 3
        assert statuses.count("full") == 9
        assert count_status("confirmed") == 3
        assert count_status("waitlist") == 9

    def test_same_email_creates_one_row(self, make_settings, count_status):
        make_settings(capacity=10)

        with ThreadPoolExecutor(max_workers=5) as pool:
            results = list(pool.map(lambda _: register("Amina", "amina@example.com"), range(5)))

        statuses = [r["status"] for r in results]
        assert statuses.count("success") == 1
        assert statuses.count("already_registered") == 4
        assert len({r["registration_id"] for r in results}) == 1
        assert count_status() == 1
