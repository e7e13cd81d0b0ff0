"""
Booking conflict detection.

A practitioner can never be double-booked. Every active booking of the
practitioner counts, at any location: someone busy at Location A is busy at
Location B too. Cancelled and no-show bookings do not block.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Mapping, Optional, Sequence

from core.constants import INACTIVE_BOOKING_STATUSES
from core.exceptions import SlotConflict
from models import Booking
from shared_types.availability import CandidateSlot, Interval
from utils.datetime_utils import ensure_utc
from utils.interval_utils import overlaps

logger = logging.getLogger(__name__)


class BookingConflictDetector:
    """Pure conflict checks over prefetched bookings."""

    @staticmethod
    def booking_interval(booking: Booking, practitioner_id: Optional[int] = None) -> Interval[datetime]:
        """
        Get a booking's [start, end) as UTC-aware datetimes.

        With a practitioner_id, that practitioner's own slice of the booking is
        used when one is recorded; otherwise the whole booking's range.
        """
        start = ensure_utc(booking.start_time)
        end = ensure_utc(booking.end_time)
        assert start is not None and end is not None
        if practitioner_id is None:
            return Interval(start, end)

        for link in booking.practitioners:
            if link.practitioner_id != practitioner_id:
                continue
            slice_start = ensure_utc(link.start_time) or start
            slice_end = ensure_utc(link.end_time) or end
            if slice_start < slice_end:
                return Interval(slice_start, slice_end)
            logger.warning(
                f"Ignoring invalid time slice for practitioner {practitioner_id} on booking {booking.id}: "
                f"{slice_start.isoformat()} - {slice_end.isoformat()}"
            )
            break
        return Interval(start, end)

    @staticmethod
    def find_conflicting_bookings(
        bookings: Iterable[Booking],
        start_time: datetime,
        end_time: datetime,
        practitioner_id: Optional[int] = None
    ) -> List[Booking]:
        """
        Find active bookings overlapping [start_time, end_time).

        Uses the half-open overlap test s1 < e2 and s2 < e1, which covers a
        candidate starting inside, ending inside, containing, or contained by
        an existing booking. Touching boundaries are not conflicts. When
        practitioner_id is given, each booking is measured by that
        practitioner's slice of it.

        Location is deliberately ignored.
        """
        utc_start = ensure_utc(start_time)
        utc_end = ensure_utc(end_time)
        assert utc_start is not None and utc_end is not None
        candidate = Interval(utc_start, utc_end)

        conflicts: List[Booking] = []
        for booking in bookings:
            if booking.status in INACTIVE_BOOKING_STATUSES:
                continue
            if overlaps(candidate, BookingConflictDetector.booking_interval(booking, practitioner_id)):
                conflicts.append(booking)
        return conflicts

    @staticmethod
    def check_practitioner_conflict(
        practitioner_id: int,
        start_time: datetime,
        end_time: datetime,
        bookings: Sequence[Booking]
    ) -> None:
        """
        Validate one practitioner's candidate interval.

        Args:
            practitioner_id: Practitioner to check
            start_time: Candidate start (UTC instant)
            end_time: Candidate end (UTC instant)
            bookings: That practitioner's bookings around the candidate's day

        Raises:
            SlotConflict: If any active booking overlaps the candidate
        """
        conflicts = BookingConflictDetector.find_conflicting_bookings(
            bookings, start_time, end_time, practitioner_id
        )
        if conflicts:
            logger.warning(
                f"Appointment conflict detected for practitioner {practitioner_id}: "
                f"requested {start_time.isoformat()} - {end_time.isoformat()}, "
                f"conflicting bookings {[b.id for b in conflicts]}"
            )
            raise SlotConflict([b.id for b in conflicts], [practitioner_id])

    @staticmethod
    def check_candidate(
        candidate: CandidateSlot,
        bookings_by_practitioner: Mapping[int, Sequence[Booking]]
    ) -> None:
        """
        Validate a candidate against every practitioner it needs.

        Each practitioner is checked over the part of the slot they attend.
        A conflict on any practitioner fails the whole candidate; the raised
        error lists all conflicting bookings and all busy practitioners.

        Raises:
            SlotConflict: If any practitioner is busy during the candidate
        """
        conflicting_ids: List[int] = []
        busy_practitioners: List[int] = []

        for practitioner_id in candidate.practitioner_ids:
            attended = candidate.interval_for(practitioner_id)
            try:
                BookingConflictDetector.check_practitioner_conflict(
                    practitioner_id,
                    attended.start,
                    attended.end,
                    bookings_by_practitioner.get(practitioner_id, []),
                )
            except SlotConflict as e:
                conflicting_ids.extend(e.conflicting_booking_ids)
                busy_practitioners.extend(e.practitioner_ids)

        if busy_practitioners:
            raise SlotConflict(conflicting_ids, busy_practitioners)
