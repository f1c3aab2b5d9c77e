"""Challenge service - Registration gateway and admin business logic"""

import csv
import logging
from datetime import datetime, time, timedelta, timezone
from io import StringIO
from typing import Optional

from fastapi import BackgroundTasks, HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...email_service import send_challenge_confirmation
from ...models import STATUS_CONFIRMED, STATUS_WAITLIST, ChallengeRegistration, utcnow
from ...services import meta_capi
from ...shared.validators import normalize_email, normalize_phone, validate_email
from .repository import STATUS_CLOSED, ChallengeRepository
from .schemas import (
    ActionResult,
    AdminOverview,
    ChallengeSettingsResponse,
    ChallengeSettingsUpdate,
    ChallengeStats,
    ChartDataPoint,
    MeetingDetails,
    PublicChallengeSettings,
    RegistrationListResponse,
    RegistrationLookup,
    RegistrationRequest,
    RegistrationResponse,
    RegistrationResult,
    RegistrationUpdate,
)

logger = logging.getLogger(__name__)

MESSAGES = {
    "ar": {
        "required": "الاسم والبريد الإلكتروني مطلوبان",
        "invalid_email": "صيغة البريد الإلكتروني غير صحيحة",
        "closed": "التسجيل مغلق حاليًا",
        "failed": "حدث خطأ أثناء التسجيل",
    },
    "en": {
        "required": "Name and email are required",
        "invalid_email": "Invalid email format",
        "closed": "Registration is currently closed",
        "failed": "Something went wrong while registering",
    },
}

EXPORT_FILTERS = ("all", STATUS_CONFIRMED, STATUS_WAITLIST)


class ChallengeService:
    """Service layer for challenge registration business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ChallengeRepository()

    # ========================================================================
    # PUBLIC
    # ========================================================================

    def get_public_settings(self) -> PublicChallengeSettings:
        settings = self.repo.get_settings(self.db)
        if not settings:
            raise HTTPException(status_code=404, detail="Challenge settings not found")
        return PublicChallengeSettings.model_validate(settings)

    def get_stats(self) -> ChallengeStats:
        """Capacity / confirmed / waitlist / remaining counts from committed state"""
        settings = self.repo.get_settings(self.db)
        capacity = settings.capacity if settings else 0
        confirmed_count = self.repo.count_registrations(self.db, STATUS_CONFIRMED)
        waitlist_count = self.repo.count_registrations(self.db, STATUS_WAITLIST)

        return ChallengeStats(
            capacity=capacity,
            confirmed_count=confirmed_count,
            waitlist_count=waitlist_count,
            remaining=max(capacity - confirmed_count, 0),
        )

    def register(
        self,
        data: RegistrationRequest,
        background_tasks: Optional[BackgroundTasks] = None,
        client_ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> RegistrationResult:
        """
        Validate the form, run the atomic registration and map its outcome.

        Invalid input never reaches the database. Side effects are queued
        only after the registration has committed.
        """
        messages = MESSAGES[data.lang]
        name = (data.name or "").strip()
        email = normalize_email(data.email)

        if not name or not email:
            return RegistrationResult(status="error", error=messages["required"])

        try:
            email = validate_email(email)
        except ValueError:
            return RegistrationResult(status="error", error=messages["invalid_email"])

        phone = normalize_phone(data.phone)

        try:
            outcome = self.repo.register_for_challenge(self.db, name, email, phone)
        except SQLAlchemyError as e:
            logger.error(f"❌ Challenge registration failed for {email}: {e}")
            return RegistrationResult(status="error", error=messages["failed"])

        if outcome["status"] == STATUS_CLOSED:
            logger.info(f"Registration attempt while closed: {email}")
            return RegistrationResult(status="error", error=messages["closed"])

        result = RegistrationResult(**outcome)

        if result.status == "success":
            logger.info(
                f"✅ Confirmed registration {result.registration_id} ({result.remaining} seats left)"
            )
        elif result.status == "full":
            logger.info(f"📋 Waitlisted registration {result.registration_id}")
        else:
            logger.info(f"ℹ️ Duplicate registration attempt for {email}")

        if background_tasks is not None and result.status in ("success", "full"):
            self._queue_side_effects(
                background_tasks, result, name, email, phone, data, client_ip, user_agent
            )

        return result

    def _queue_side_effects(
        self,
        background_tasks: BackgroundTasks,
        result: RegistrationResult,
        name: str,
        email: str,
        phone: Optional[str],
        data: RegistrationRequest,
        client_ip: Optional[str],
        user_agent: Optional[str],
    ) -> None:
        try:
            if result.status == "success":
                settings = self.repo.get_settings(self.db)
                if settings and settings.meeting_url:
                    background_tasks.add_task(
                        send_challenge_confirmation,
                        to=email,
                        name=name,
                        meeting_url=settings.meeting_url,
                        starts_at=settings.starts_at,
                        duration_minutes=settings.duration_minutes,
                        registration_id=result.registration_id,
                        tz_name=settings.timezone,
                        lang=data.lang,
                    )
                else:
                    logger.warning("⚠️ No meeting URL configured - confirmation email skipped")

            background_tasks.add_task(
                meta_capi.track_lead,
                email=email,
                phone=phone,
                content_name="challenge",
                form_name="challenge_modal",
                event_source_url=data.event_source_url,
                client_ip=client_ip,
                user_agent=user_agent,
                fbp=data.fbp,
                fbc=data.fbc,
            )
        except Exception as e:
            # The seat is already committed; never let side effects change the outcome
            logger.error(f"❌ Failed to queue side effects for {result.registration_id}: {e}")

    def lookup_registration(self, email: str) -> RegistrationLookup:
        registration = self.repo.get_registration_by_email(self.db, normalize_email(email))
        if not registration:
            raise HTTPException(status_code=404, detail="Registration not found")
        return RegistrationLookup(id=registration.id, status=registration.status)

    def get_meeting_details(self, registration_id: str) -> MeetingDetails:
        """Meeting link and schedule, only for confirmed registrations"""
        registration = self.repo.get_registration_by_id(self.db, registration_id)
        if not registration or registration.status != STATUS_CONFIRMED:
            raise HTTPException(status_code=404, detail="Meeting details not available")

        settings = self.repo.get_settings(self.db)
        if not settings:
            logger.error("❌ Challenge settings not found")
            raise HTTPException(status_code=404, detail="Meeting details not available")

        return MeetingDetails.model_validate(settings)

    def mark_link_copied(self, registration_id: str) -> bool:
        return self._touch(registration_id, "link_copied_at")

    def mark_link_saved(self, registration_id: str) -> bool:
        return self._touch(registration_id, "link_saved_at")

    def _touch(self, registration_id: str, column: str) -> bool:
        try:
            updated = self.repo.touch_registration(self.db, registration_id, column)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error setting {column} on {registration_id}: {e}")
            return False
        if not updated:
            logger.warning(f"⚠️ {column}: registration {registration_id} not found")
        return updated

    # ========================================================================
    # ADMIN
    # ========================================================================

    def get_overview(self) -> AdminOverview:
        stats = self.get_stats()
        copied_count = self.repo.count_registrations(self.db, STATUS_CONFIRMED, copied=True)
        saved_count = self.repo.count_registrations(self.db, STATUS_CONFIRMED, saved=True)

        return AdminOverview(
            capacity=stats.capacity,
            confirmed_count=stats.confirmed_count,
            remaining_count=stats.remaining,
            waitlist_count=stats.waitlist_count,
            copied_count=copied_count,
            saved_count=saved_count,
            not_copied_count=stats.confirmed_count - copied_count,
        )

    def get_chart_data(self, days: int = 14, now: Optional[datetime] = None) -> list[ChartDataPoint]:
        """Registrations per UTC day over the last ``days`` days, zero-filled"""
        now = now or utcnow()
        first_day = (now - timedelta(days=days - 1)).date()
        start = datetime.combine(first_day, time.min, tzinfo=timezone.utc)

        buckets = {
            (first_day + timedelta(days=i)).isoformat(): {"confirmed": 0, "waitlist": 0}
            for i in range(days)
        }

        for created_at, status in self.repo.get_registrations_created_between(self.db, start, now):
            if created_at.tzinfo is not None:
                created_at = created_at.astimezone(timezone.utc)
            entry = buckets.get(created_at.date().isoformat())
            if entry is not None and status in entry:
                entry[status] += 1

        return [
            ChartDataPoint(date=day, confirmed=counts["confirmed"], waitlist=counts["waitlist"])
            for day, counts in sorted(buckets.items())
        ]

    def get_settings(self) -> ChallengeSettingsResponse:
        settings = self.repo.get_settings(self.db)
        if not settings:
            raise HTTPException(status_code=404, detail="Challenge settings not found")
        return ChallengeSettingsResponse.model_validate(settings)

    def update_settings(self, data: ChallengeSettingsUpdate) -> ChallengeSettingsResponse:
        """Merge-patch the settings row. Lowering capacity does not demote anyone."""
        settings = self.repo.get_settings(self.db)
        if not settings:
            raise HTTPException(status_code=404, detail="Challenge settings not found")

        updates = data.model_dump(exclude_unset=True)
        logger.info(f"⚙️ Updating challenge settings: {sorted(updates)}")

        try:
            settings = self.repo.update_settings(self.db, settings, **updates)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating settings: {e}")
            raise HTTPException(status_code=500, detail="Failed to update settings") from e

        return ChallengeSettingsResponse.model_validate(settings)

    def list_registrations(
        self,
        status: str = "all",
        not_copied: bool = False,
        saved: bool = False,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> RegistrationListResponse:
        rows, total = self.repo.search_registrations(
            self.db,
            status=None if status == "all" else status,
            not_copied=not_copied,
            saved=saved,
            search=search,
            page=page,
            page_size=page_size,
        )
        return RegistrationListResponse(
            data=[RegistrationResponse.model_validate(r) for r in rows],
            total=total,
            page=page,
            page_size=page_size,
        )

    def update_registration(self, registration_id: str, data: RegistrationUpdate) -> ActionResult:
        """
        Admin edit of a registration.

        Moving a waitlisted registration to confirmed goes through the same
        capacity check as promotion, and commits together with the field edits.
        """
        registration = self.repo.get_registration_by_id(self.db, registration_id)
        if not registration:
            return ActionResult(success=False, error="Registration not found")

        updates = data.model_dump(exclude_unset=True)

        if "name" in updates:
            updates["name"] = updates["name"].strip()
            if not updates["name"]:
                return ActionResult(success=False, error="Name is required")

        if "email" in updates:
            try:
                updates["email"] = validate_email(updates["email"])
            except ValueError:
                return ActionResult(success=False, error="Invalid email format")
            if not updates["email"]:
                return ActionResult(success=False, error="Email is required")

        if "phone" in updates:
            updates["phone"] = normalize_phone(updates["phone"])

        promoting = (
            updates.get("status") == STATUS_CONFIRMED and registration.status == STATUS_WAITLIST
        )
        if promoting:
            updates.pop("status")

        if not updates and not promoting:
            return ActionResult(success=True)

        try:
            if promoting:
                outcome = self.repo.promote_registration(self.db, registration_id, **updates)
                if not outcome["success"]:
                    logger.info(f"Promotion of {registration_id} refused: {outcome['error']}")
                    return ActionResult(**outcome)
                logger.info(f"⬆️ Promoted registration {registration_id} to confirmed")
            else:
                self.repo.update_registration(self.db, registration, **updates)
        except IntegrityError:
            self.db.rollback()
            return ActionResult(success=False, error="Email already registered")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating registration {registration_id}: {e}")
            return ActionResult(success=False, error="Failed to update registration")

        return ActionResult(success=True)

    def delete_registration(self, registration_id: str) -> ActionResult:
        registration = self.repo.get_registration_by_id(self.db, registration_id)
        if not registration:
            return ActionResult(success=False, error="Registration not found")

        try:
            self.repo.delete_registration(self.db, registration)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting registration {registration_id}: {e}")
            return ActionResult(success=False, error="Failed to delete registration")

        logger.info(f"🗑️ Deleted registration {registration_id}")
        return ActionResult(success=True)

    def promote(self, registration_id: str) -> ActionResult:
        """Move one waitlisted registration to confirmed if a seat is free"""
        try:
            outcome = self.repo.promote_registration(self.db, registration_id)
        except SQLAlchemyError as e:
            logger.error(f"Error promoting registration {registration_id}: {e}")
            return ActionResult(success=False, error="Failed to promote registration")

        if outcome["success"]:
            logger.info(f"⬆️ Promoted registration {registration_id} to confirmed")
        else:
            logger.info(f"Promotion of {registration_id} refused: {outcome['error']}")
        return ActionResult(**outcome)

    def export_csv(self, export_filter: str = "all") -> StreamingResponse:
        """Export registrations as CSV (all cells quoted)"""
        if export_filter not in EXPORT_FILTERS:
            raise HTTPException(status_code=400, detail="Invalid export filter")

        registrations: list[ChallengeRegistration] = self.repo.get_registrations_for_export(
            self.db, None if export_filter == "all" else export_filter
        )
        logger.info(f"📊 Exporting {len(registrations)} registrations ({export_filter})")

        output = StringIO()
        writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(
            [
                "ID",
                "Created At",
                "Name",
                "Email",
                "Phone",
                "Status",
                "Link Copied At",
                "Link Saved At",
            ]
        )
        for r in registrations:
            writer.writerow(
                [
                    r.id,
                    r.created_at.isoformat() if r.created_at else "",
                    r.name,
                    r.email,
                    r.phone or "",
                    r.status,
                    r.link_copied_at.isoformat() if r.link_copied_at else "",
                    r.link_saved_at.isoformat() if r.link_saved_at else "",
                ]
            )

        output.seek(0)
        filename = f"challenge-registrations-{export_filter}-{utcnow().date().isoformat()}.csv"
        return StreamingResponse(
            iter([output.getvalue()]),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
