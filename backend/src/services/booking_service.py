"""
Booking creation and cancellation.

Validation and insert happen inside one transaction that holds a row lock per
practitioner (practitioner_schedule_locks, SELECT ... FOR UPDATE, then an
UPDATE of locked_at). Two concurrent requests for the same practitioner are
therefore serialized: the second one re-reads bookings after the first has
committed and sees the conflict.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Set

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from core.constants import BOOKING_STATUSES, INACTIVE_BOOKING_STATUSES
from core.exceptions import AvailabilityUnavailable, BookingNotFound, SlotConflict
from models import Booking, BookingPractitioner, BookingSettings, PracticeContext, PractitionerScheduleLock
from services.availability_service import AvailabilityService
from services.booking_conflict_detector import BookingConflictDetector
from services.schedule_repository import ScheduleRepository
from shared_types.availability import AppointmentMode, CandidateSlot
from utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)


class BookingService:
    """Service class for booking write operations."""

    @staticmethod
    def _existing_lock_ids(db: Session, tenant_id: str, practitioner_ids: Sequence[int]) -> Set[int]:
        return {
            row[0] for row in db.query(PractitionerScheduleLock.practitioner_id).filter(
                PractitionerScheduleLock.tenant_id == tenant_id,
                PractitionerScheduleLock.practitioner_id.in_(practitioner_ids)
            ).all()
        }

    @staticmethod
    def _ensure_lock_rows(db: Session, tenant_id: str, practitioner_ids: Sequence[int]) -> None:
        """
        Create missing lock rows.

        Rows a concurrent request created first are skipped one by one, so
        losing the race on one practitioner never drops the others.
        """
        existing = BookingService._existing_lock_ids(db, tenant_id, practitioner_ids)
        missing = [pid for pid in dict.fromkeys(practitioner_ids) if pid not in existing]
        if not missing:
            return

        rows = [{"tenant_id": tenant_id, "practitioner_id": pid} for pid in missing]
        dialect = db.get_bind().dialect.name
        if dialect in ("postgresql", "sqlite"):
            insert = pg_insert if dialect == "postgresql" else sqlite_insert
            db.execute(
                insert(PractitionerScheduleLock)
                .values(rows)
                .on_conflict_do_nothing(index_elements=["tenant_id", "practitioner_id"])
            )
        else:
            for row in rows:
                try:
                    with db.begin_nested():
                        db.add(PractitionerScheduleLock(**row))
                except IntegrityError:
                    logger.debug(f"Lock row for practitioner {row['practitioner_id']} was created concurrently")
        db.commit()

    @staticmethod
    def _lock_practitioners(
        db: Session,
        tenant_id: str,
        practitioner_ids: Sequence[int],
        clock: Callable[[], datetime] = utc_now
    ) -> None:
        """
        Lock practitioner rows in ascending id order (consistent order avoids deadlocks).

        Raises:
            AvailabilityUnavailable: If a lock row is missing, so the
                practitioner would not be serialized
        """
        expected = set(practitioner_ids)
        locks = db.query(PractitionerScheduleLock).filter(
            PractitionerScheduleLock.tenant_id == tenant_id,
            PractitionerScheduleLock.practitioner_id.in_(sorted(expected))
        ).order_by(PractitionerScheduleLock.practitioner_id).with_for_update().all()

        locked = {lock.practitioner_id for lock in locks}
        if locked != expected:
            logger.error(
                f"Missing schedule lock rows for tenant {tenant_id}, practitioners {sorted(expected - locked)}"
            )
            raise AvailabilityUnavailable("Could not lock practitioner schedules")

        now = clock()
        for lock in locks:
            lock.locked_at = now
        db.flush()

    @staticmethod
    def create_booking(
        db: Session,
        context: PracticeContext,
        settings: BookingSettings,
        candidate: CandidateSlot,
        mode: AppointmentMode | str = AppointmentMode.IN_PERSON,
        service_id: Optional[int] = None,
        status: str = 'pending',
        clock: Callable[[], datetime] = utc_now
    ) -> Booking:
        """
        Create a booking after re-validating the candidate under lock.

        Args:
            db: Database session
            context: Tenant context
            settings: Booking settings for the tenant
            candidate: Slot to book (UTC instants, ordered practitioner ids)
            mode: Appointment delivery mode
            service_id: Optional service being booked
            status: Initial status (must be an active status)

        Returns:
            The committed Booking

        Raises:
            SlotConflict: If any practitioner is already booked in the slot
            AvailabilityUnavailable: If the database could not be read or written
            ValueError: If status or mode is invalid
        """
        if status not in BOOKING_STATUSES or status in INACTIVE_BOOKING_STATUSES:
            raise ValueError(f"Invalid initial booking status: {status}")
        mode_value = AppointmentMode(mode).value

        practitioner_ids = list(candidate.practitioner_ids)
        repository = ScheduleRepository(db, context.tenant_id)
        availability = AvailabilityService(repository, context, settings, clock)

        try:
            BookingService._ensure_lock_rows(db, context.tenant_id, practitioner_ids)
            BookingService._lock_practitioners(db, context.tenant_id, practitioner_ids, clock)

            # Re-read inside the lock; no retry here since a failed read
            # releases the lock along with the transaction
            window_start, window_end = availability.candidate_window(candidate)
            bookings = repository.get_bookings(practitioner_ids, window_start, window_end)
            BookingConflictDetector.check_candidate(candidate, bookings)

            booking = Booking(
                tenant_id=context.tenant_id,
                location_id=candidate.location_id,
                service_id=service_id,
                mode=mode_value,
                start_time=candidate.start_time,
                end_time=candidate.end_time,
                status=status,
            )
            for position, practitioner_id in enumerate(practitioner_ids):
                link = BookingPractitioner(practitioner_id=practitioner_id, position=position)
                part = candidate.practitioner_slices.get(practitioner_id)
                if part is not None:
                    link.start_time, link.end_time = part.start, part.end
                booking.practitioners.append(link)
            db.add(booking)
            db.commit()
        except SlotConflict:
            db.rollback()
            raise
        except AvailabilityUnavailable:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            logger.exception(f"Failed to create booking for practitioners {practitioner_ids}: {e}")
            db.rollback()
            raise AvailabilityUnavailable("Could not create booking") from e

        logger.info(
            f"Created booking {booking.id} for tenant {context.tenant_id}, practitioners {practitioner_ids}, "
            f"{candidate.start_time.isoformat()} - {candidate.end_time.isoformat()}"
        )
        return booking

    @staticmethod
    def cancel_booking(
        db: Session,
        tenant_id: str,
        booking_id: int,
        status: str = 'cancelled'
    ) -> Booking:
        """
        Soft-cancel a booking by status; bookings are never deleted.

        Idempotent: a booking that is already cancelled or no-show is
        returned unchanged.

        Raises:
            BookingNotFound: If the booking does not exist for the tenant
            AvailabilityUnavailable: If the row is locked by another operation
            ValueError: If status is not a cancelling status
        """
        if status not in INACTIVE_BOOKING_STATUSES:
            raise ValueError(f"Invalid cancellation status: {status}")

        try:
            booking = db.query(Booking).filter(
                Booking.id == booking_id,
                Booking.tenant_id == tenant_id
            ).with_for_update().first()
        except OperationalError as e:
            db.rollback()
            raise AvailabilityUnavailable("Booking is being modified by another operation") from e

        if booking is None:
            raise BookingNotFound(booking_id)

        if not booking.is_active:
            return booking

        booking.status = status
        db.commit()
        logger.info(f"Booking {booking_id} for tenant {tenant_id} marked {status}")
        return booking

    @staticmethod
    def get_booking(db: Session, tenant_id: str, booking_id: int) -> Booking:
        """
        Get a booking by id.

        Raises:
            BookingNotFound: If the booking does not exist for the tenant
        """
        booking = db.query(Booking).filter(
            Booking.id == booking_id,
            Booking.tenant_id == tenant_id
        ).first()
        if booking is None:
            raise BookingNotFound(booking_id)
        return booking

    @staticmethod
    def list_practitioner_bookings(
        db: Session,
        tenant_id: str,
        practitioner_id: int,
        window_start: datetime,
        window_end: datetime
    ) -> List[Booking]:
        """Get a practitioner's active bookings overlapping a UTC window."""
        repository = ScheduleRepository(db, tenant_id)
        return repository.get_bookings([practitioner_id], window_start, window_end)[practitioner_id]
