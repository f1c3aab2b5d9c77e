"""Challenge repository - Database operations for settings and registrations"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import (
    STATUS_CONFIRMED,
    STATUS_WAITLIST,
    ChallengeRegistration,
    ChallengeSettings,
    utcnow,
)

logger = logging.getLogger(__name__)

# Outcome of the atomic registration unit when registration is not open
STATUS_CLOSED = "closed"


class ChallengeRepository:
    """Repository for challenge database operations"""

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @staticmethod
    def get_settings(db: Session) -> Optional[ChallengeSettings]:
        """Get the singleton settings row"""
        return db.query(ChallengeSettings).order_by(ChallengeSettings.id).first()

    @staticmethod
    def lock_settings(db: Session) -> Optional[ChallengeSettings]:
        """Get the settings row with a row lock held until commit/rollback.

        Every writer of registration status takes this lock first, which is
        what keeps the confirmed count from passing capacity.
        """
        return (
            db.query(ChallengeSettings)
            .order_by(ChallengeSettings.id)
            .with_for_update()
            .first()
        )

    @staticmethod
    def create_settings(db: Session, **settings_data) -> ChallengeSettings:
        settings = ChallengeSettings(**settings_data)
        db.add(settings)
        db.commit()
        db.refresh(settings)
        return settings

    @staticmethod
    def update_settings(db: Session, settings: ChallengeSettings, **updates) -> ChallengeSettings:
        """Merge the given fields into the settings row and refresh updated_at"""
        for key, value in updates.items():
            if hasattr(settings, key):
                setattr(settings, key, value)
        settings.updated_at = utcnow()

        db.commit()
        db.refresh(settings)
        return settings

    # ------------------------------------------------------------------
    # Atomic units
    # ------------------------------------------------------------------

    @staticmethod
    def register_for_challenge(
        db: Session, name: str, email: str, phone: Optional[str]
    ) -> dict:
        """
        Decide confirmed-vs-waitlist and insert the registration in one transaction.

        ``email`` must already be normalized. Returns a dict with ``status``
        (success | full | already_registered | closed), ``registration_id``,
        ``remaining`` and, for duplicates, ``existing_status``.

        Raises SQLAlchemyError on store failures; nothing is left written.
        """
        try:
            settings = ChallengeRepository.lock_settings(db)
            if settings is None or not settings.is_active:
                db.rollback()
                return {"status": STATUS_CLOSED}

            existing = (
                db.query(ChallengeRegistration.id, ChallengeRegistration.status)
                .filter(ChallengeRegistration.email == email)
                .first()
            )
            if existing:
                db.rollback()
                return {
                    "status": "already_registered",
                    "registration_id": existing.id,
                    "existing_status": existing.status,
                }

            capacity = settings.capacity
            confirmed_count = ChallengeRepository.count_registrations(db, STATUS_CONFIRMED)

            if confirmed_count < capacity:
                status = STATUS_CONFIRMED
                outcome = "success"
                remaining = capacity - confirmed_count - 1
            else:
                status = STATUS_WAITLIST
                outcome = "full"
                remaining = 0

            registration = ChallengeRegistration(
                name=name, email=email, phone=phone, status=status
            )
            db.add(registration)
            db.flush()
            registration_id = registration.id
            db.commit()

            return {
                "status": outcome,
                "registration_id": registration_id,
                "remaining": remaining,
            }

        except IntegrityError:
            db.rollback()
            # Unique index on email caught a duplicate the lookup did not see
            existing = ChallengeRepository.get_registration_by_email(db, email)
            if existing:
                result = {
                    "status": "already_registered",
                    "registration_id": existing.id,
                    "existing_status": existing.status,
                }
                db.rollback()
                return result
            raise
        except SQLAlchemyError:
            db.rollback()
            raise

    @staticmethod
    def promote_registration(db: Session, registration_id: str, **updates) -> dict:
        """
        Move a waitlisted registration to confirmed if a seat is free.

        Field ``updates`` (name, email, phone) are written in the same
        transaction, so either the edit and the promotion both land or neither does.

        Capacity is re-checked under the same settings lock used by
        registration, so concurrent promotions cannot overfill.
        Returns {"success": bool, "error": str | None}.
        """
        try:
            settings = ChallengeRepository.lock_settings(db)
            capacity = settings.capacity if settings else 0
            confirmed_count = ChallengeRepository.count_registrations(db, STATUS_CONFIRMED)

            if capacity - confirmed_count <= 0:
                db.rollback()
                return {"success": False, "error": "No remaining capacity"}

            registration = (
                db.query(ChallengeRegistration)
                .filter(ChallengeRegistration.id == registration_id)
                .populate_existing()
                .with_for_update()
                .first()
            )
            if not registration:
                db.rollback()
                return {"success": False, "error": "Registration not found"}

            if registration.status != STATUS_WAITLIST:
                db.rollback()
                return {"success": False, "error": "Registration is not on waitlist"}

            for key, value in updates.items():
                if hasattr(registration, key):
                    setattr(registration, key, value)
            registration.status = STATUS_CONFIRMED
            db.commit()
            return {"success": True, "error": None}

        except SQLAlchemyError:
            db.rollback()
            raise

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    def count_registrations(
        db: Session,
        status: Optional[str] = None,
        copied: Optional[bool] = None,
        saved: Optional[bool] = None,
    ) -> int:
        query = db.query(func.count(ChallengeRegistration.id))
        if status:
            query = query.filter(ChallengeRegistration.status == status)
        if copied is not None:
            column = ChallengeRegistration.link_copied_at
            query = query.filter(column.isnot(None) if copied else column.is_(None))
        if saved is not None:
            column = ChallengeRegistration.link_saved_at
            query = query.filter(column.isnot(None) if saved else column.is_(None))
        return query.scalar() or 0

    @staticmethod
    def get_registration_by_id(db: Session, registration_id: str) -> Optional[ChallengeRegistration]:
        return (
            db.query(ChallengeRegistration)
            .filter(ChallengeRegistration.id == registration_id)
            .first()
        )

    @staticmethod
    def get_registration_by_email(db: Session, email: str) -> Optional[ChallengeRegistration]:
        return (
            db.query(ChallengeRegistration)
            .filter(ChallengeRegistration.email == email)
            .first()
        )

    @staticmethod
    def search_registrations(
        db: Session,
        status: Optional[str] = None,
        not_copied: bool = False,
        saved: bool = False,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[ChallengeRegistration], int]:
        """Filtered, paginated registrations (newest first) plus the total match count"""
        query = db.query(ChallengeRegistration)

        if status:
            query = query.filter(ChallengeRegistration.status == status)

        if not_copied:
            query = query.filter(
                ChallengeRegistration.status == STATUS_CONFIRMED,
                ChallengeRegistration.link_copied_at.is_(None),
            )

        if saved:
            query = query.filter(ChallengeRegistration.link_saved_at.isnot(None))

        if search and search.strip():
            term = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    ChallengeRegistration.email.ilike(term),
                    ChallengeRegistration.name.ilike(term),
                    ChallengeRegistration.phone.ilike(term),
                )
            )

        total = query.count()
        rows = (
            query.order_by(ChallengeRegistration.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return rows, total

    @staticmethod
    def get_registrations_for_export(
        db: Session, status: Optional[str] = None
    ) -> list[ChallengeRegistration]:
        query = db.query(ChallengeRegistration)
        if status:
            query = query.filter(ChallengeRegistration.status == status)
        return query.order_by(ChallengeRegistration.created_at.desc()).all()

    @staticmethod
    def get_registrations_created_between(
        db: Session, start: datetime, end: datetime
    ) -> list[tuple[datetime, str]]:
        return (
            db.query(ChallengeRegistration.created_at, ChallengeRegistration.status)
            .filter(
                ChallengeRegistration.created_at >= start,
                ChallengeRegistration.created_at <= end,
            )
            .all()
        )

    # ------------------------------------------------------------------
    # Plain writes
    # ------------------------------------------------------------------

    @staticmethod
    def touch_registration(db: Session, registration_id: str, column: str) -> bool:
        """Set a timestamp column to now. Returns False if no row matched."""
        updated = (
            db.query(ChallengeRegistration)
            .filter(ChallengeRegistration.id == registration_id)
            .update({column: utcnow()}, synchronize_session=False)
        )
        db.commit()
        return updated > 0

    @staticmethod
    def update_registration(
        db: Session, registration: ChallengeRegistration, **updates
    ) -> ChallengeRegistration:
        """Update a registration with provided fields"""
        for key, value in updates.items():
            if hasattr(registration, key):
                setattr(registration, key, value)

        db.commit()
        db.refresh(registration)
        return registration

    @staticmethod
    def delete_registration(db: Session, registration: ChallengeRegistration) -> None:
        db.delete(registration)
        db.commit()
