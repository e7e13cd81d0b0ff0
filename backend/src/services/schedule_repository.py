"""
Schedule data access for the availability engine.

Provides the read queries the engine depends on (general availability,
portal overrides, tenant restrictions, active bookings, and practitioners
offering a service), always scoped to one tenant. Database failures surface
as AvailabilityUnavailable so callers never mistake a failed read for
"no availability" or "no conflict".
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Generator, List, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from core.constants import INACTIVE_BOOKING_STATUSES
from core.exceptions import AvailabilityUnavailable
from models import (
    AvailabilitySlot, PortalAvailabilityOverride, TenantAvailabilityRestriction,
    PractitionerService, Booking, BookingPractitioner,
)
from utils.datetime_utils import ensure_utc

logger = logging.getLogger(__name__)


class ScheduleRepository:
    """
    Tenant-scoped read access to schedule data.

    One instance per request; it holds the session and tenant id but no
    cached data.
    """

    def __init__(self, db: Session, tenant_id: str):
        self.db = db
        self.tenant_id = tenant_id

    @contextmanager
    def _read(self, what: str) -> Generator[None, None, None]:
        try:
            yield
        except SQLAlchemyError as e:
            logger.exception(f"Failed to read {what} for tenant {self.tenant_id}: {e}")
            self.db.rollback()
            raise AvailabilityUnavailable(f"Could not read {what}") from e

    def get_availability_slots(self, practitioner_ids: Sequence[int]) -> List[AvailabilitySlot]:
        """Get general weekly availability rows for the practitioners."""
        if not practitioner_ids:
            return []
        with self._read("practitioner availability"):
            return self.db.query(AvailabilitySlot).filter(
                AvailabilitySlot.tenant_id == self.tenant_id,
                AvailabilitySlot.practitioner_id.in_(practitioner_ids)
            ).order_by(
                AvailabilitySlot.practitioner_id, AvailabilitySlot.start_time
            ).all()

    def get_portal_overrides(self, practitioner_ids: Sequence[int]) -> List[PortalAvailabilityOverride]:
        """Get portal override rows (enabled and disabled) for the practitioners."""
        if not practitioner_ids:
            return []
        with self._read("portal availability"):
            return self.db.query(PortalAvailabilityOverride).filter(
                PortalAvailabilityOverride.tenant_id == self.tenant_id,
                PortalAvailabilityOverride.practitioner_id.in_(practitioner_ids)
            ).order_by(
                PortalAvailabilityOverride.practitioner_id, PortalAvailabilityOverride.start_time
            ).all()

    def get_tenant_restrictions(self, practitioner_ids: Sequence[int]) -> List[TenantAvailabilityRestriction]:
        """Get tenant day restrictions for the practitioners."""
        if not practitioner_ids:
            return []
        with self._read("tenant availability restrictions"):
            return self.db.query(TenantAvailabilityRestriction).filter(
                TenantAvailabilityRestriction.tenant_id == self.tenant_id,
                TenantAvailabilityRestriction.practitioner_id.in_(practitioner_ids)
            ).all()

    def get_bookings(
        self,
        practitioner_ids: Sequence[int],
        window_start: datetime,
        window_end: datetime
    ) -> Dict[int, List[Booking]]:
        """
        Get active bookings overlapping [window_start, window_end).

        Not filtered by location. A booking attended by several of the
        practitioners appears in each of their lists.

        Returns:
            Dict mapping every requested practitioner_id to its bookings (possibly empty)
        """
        result: Dict[int, List[Booking]] = {practitioner_id: [] for practitioner_id in practitioner_ids}
        if not practitioner_ids:
            return result

        utc_start = ensure_utc(window_start)
        utc_end = ensure_utc(window_end)

        with self._read("bookings"):
            rows = self.db.query(Booking, BookingPractitioner.practitioner_id).join(
                BookingPractitioner, Booking.id == BookingPractitioner.booking_id
            ).options(
                selectinload(Booking.practitioners)
            ).filter(
                Booking.tenant_id == self.tenant_id,
                BookingPractitioner.practitioner_id.in_(practitioner_ids),
                Booking.status.notin_(list(INACTIVE_BOOKING_STATUSES)),
                Booking.start_time < utc_end,
                Booking.end_time > utc_start,
            ).order_by(Booking.start_time).all()

        for booking, practitioner_id in rows:
            result.setdefault(practitioner_id, []).append(booking)
        return result

    def get_practitioner_ids_for_service(self, service_id: int) -> List[int]:
        """Get ids of practitioners currently offering a service."""
        with self._read("practitioner services"):
            rows = self.db.query(PractitionerService.practitioner_id).filter(
                PractitionerService.tenant_id == self.tenant_id,
                PractitionerService.service_id == service_id,
                PractitionerService.is_offered == True
            ).order_by(PractitionerService.practitioner_id).all()
        return [row[0] for row in rows]
