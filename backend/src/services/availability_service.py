"""
Availability service for shared scheduling and availability logic.

This module is the single entry point booking handlers use to answer
"what is free" and "is this exact slot free". It composes:

- AvailabilitySourceResolver: which availability source applies per practitioner
- IntersectionEngine: common window when several practitioners attend together
- BookingConflictDetector: validation of a single candidate against bookings

Every call is scoped by an explicit PracticeContext (tenant + timezone) and
typed BookingSettings; nothing is read from ambient state.

Explicit practitioner_ids are required jointly: all of them attend the same
appointment, so their windows are intersected. A service_id without
practitioner_ids is a pool: any one practitioner offering the service can
take the appointment, so each is resolved on its own and the results are
unioned.
"""

import logging
from datetime import date as date_type, datetime, timedelta, timezone
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, TypeVar

from core.exceptions import AvailabilityUnavailable, BookingWindowViolation
from models import Booking, BookingSettings, PracticeContext
from services.availability_source_resolver import AvailabilitySourceResolver
from services.booking_conflict_detector import BookingConflictDetector
from services.intersection_engine import IntersectionEngine
from services.schedule_repository import ScheduleRepository
from shared_types.availability import (
    AppointmentMode, CandidateSlot, DayAvailability, DayOfWeek, Interval, SlotData, WeeklyAvailability,
)
from utils.datetime_utils import (
    add_minutes, combine_local, ensure_utc, local_day_bounds, practice_now, to_local, to_offset_local, to_utc,
    utc_now,
)
from utils.interval_utils import clip_intervals, generate_slots, merge_intervals, subtract_intervals

logger = logging.getLogger(__name__)

R = TypeVar("R")

# Practitioners who must attend one appointment together
PractitionerGroup = Tuple[int, ...]

# Free UTC intervals per local date for one practitioner group
GroupFreeTime = Tuple[PractitionerGroup, Dict[date_type, List[Interval[datetime]]]]


class AvailabilityService:
    """
    Slot availability façade.

    Stateless apart from the collaborators it is constructed with; create one
    per request.
    """

    def __init__(
        self,
        repository: ScheduleRepository,
        context: PracticeContext,
        settings: BookingSettings,
        clock: Callable[[], datetime] = utc_now
    ):
        self.repository = repository
        self.context = context
        self.settings = settings
        self.clock = clock

    # ===== Data access =====

    def _fetch_with_retry(self, what: str, fetch: Callable[..., R], *args: object) -> R:
        """
        Run a repository read, retrying once on AvailabilityUnavailable.

        A second failure propagates; a failed read is never treated as
        "no availability" or "no conflict".
        """
        try:
            return fetch(*args)
        except AvailabilityUnavailable as e:
            logger.warning(f"Retrying {what} read for tenant {self.context.tenant_id} after failure: {e}")
            return fetch(*args)

    def resolve_practitioner_ids(
        self,
        practitioner_ids: Optional[Sequence[int]],
        service_id: Optional[int]
    ) -> List[int]:
        """
        Determine which practitioners a request is about.

        Explicit ids win (deduplicated, order kept). Without ids, a service
        expands to the practitioners offering it. Neither yields [].
        """
        if practitioner_ids:
            return list(dict.fromkeys(practitioner_ids))
        if service_id is None:
            return []
        return self._fetch_with_retry(
            "practitioner services", self.repository.get_practitioner_ids_for_service, service_id
        )

    def practitioner_groups(
        self,
        practitioner_ids: Optional[Sequence[int]],
        service_id: Optional[int]
    ) -> List[PractitionerGroup]:
        """
        Split a request into groups of jointly required practitioners.

        Explicit ids form one group. Practitioners found through a service
        each form their own group, since any one of them can take the
        appointment.
        """
        ids = self.resolve_practitioner_ids(practitioner_ids, service_id)
        if not ids:
            return []
        if practitioner_ids:
            return [tuple(ids)]
        return [(practitioner_id,) for practitioner_id in ids]

    def _weekly_by_group(
        self,
        groups: List[PractitionerGroup],
        location_id: Optional[int],
        mode: AppointmentMode
    ) -> Dict[PractitionerGroup, WeeklyAvailability]:
        """Resolve every practitioner once, then intersect within each group."""
        practitioner_ids = list(dict.fromkeys(pid for group in groups for pid in group))
        slots = self._fetch_with_retry("availability slots", self.repository.get_availability_slots, practitioner_ids)
        overrides = self._fetch_with_retry("portal overrides", self.repository.get_portal_overrides, practitioner_ids)
        restrictions = self._fetch_with_retry(
            "tenant restrictions", self.repository.get_tenant_restrictions, practitioner_ids
        )

        per_practitioner = AvailabilitySourceResolver.resolve(
            practitioner_ids, location_id, mode, slots, overrides, restrictions
        )
        return {
            group: IntersectionEngine.intersect({pid: per_practitioner[pid] for pid in group})
            for group in groups
        }

    # ===== Availability queries =====

    def get_weekly_availability(
        self,
        practitioner_ids: Optional[Sequence[int]],
        service_id: Optional[int],
        location_id: Optional[int],
        mode: AppointmentMode | str
    ) -> WeeklyAvailability:
        """
        Get the recurring weekly window.

        For explicit practitioners this is where all of them are open; for a
        service it is where at least one offering practitioner is open.
        Bookings are not considered; this is the template a slot picker is
        built from.
        """
        groups = self.practitioner_groups(practitioner_ids, service_id)
        if not groups:
            return {}

        by_group = self._weekly_by_group(groups, location_id, AppointmentMode(mode))
        combined: Dict[DayOfWeek, List[Interval]] = {}
        for weekly in by_group.values():
            for day, intervals in weekly.items():
                combined.setdefault(day, []).extend(intervals)

        return {day: merge_intervals(combined[day]) for day in DayOfWeek if day in combined}

    def booking_window(self) -> Tuple[datetime, date_type, date_type]:
        """
        Get the self-service booking window.

        Returns:
            Tuple of (earliest bookable instant in practice time,
            first bookable local date, last bookable local date)
        """
        now = self.clock()
        today = practice_now(self.context.timezone, now).date()
        # Lead time is elapsed time, so add it before converting to local
        earliest = to_local(ensure_utc(now) + timedelta(hours=self.settings.advance_booking_hours),
                            self.context.timezone)
        first_date = today if self.settings.allow_same_day_booking else today + timedelta(days=1)
        last_date = today + timedelta(days=self.settings.max_advance_booking_days)
        return earliest, first_date, last_date

    def _free_time_by_group(
        self,
        groups: List[PractitionerGroup],
        location_id: Optional[int],
        mode: AppointmentMode,
        start_date: date_type,
        end_date: date_type,
        apply_booking_window: bool
    ) -> List[GroupFreeTime]:
        """
        Compute free UTC intervals per local date for each group.

        A group's weekly window is projected onto each date, then the active
        bookings of that group's practitioners (at any location) are
        subtracted. Everything is compared as UTC instants so the repeated
        hour on DST transition days stays distinct.
        """
        if start_date > end_date or not groups:
            return []

        weekly_by_group = self._weekly_by_group(groups, location_id, mode)
        groups = [group for group in groups if weekly_by_group[group]]
        if not groups:
            return []

        tz_name = self.context.timezone
        practitioner_ids = list(dict.fromkeys(pid for group in groups for pid in group))
        window_start, _ = local_day_bounds(start_date, tz_name)
        _, window_end = local_day_bounds(end_date, tz_name)
        bookings_by_practitioner = self._fetch_with_retry(
            "bookings", self.repository.get_bookings, practitioner_ids, window_start, window_end
        )

        earliest: Optional[datetime] = None
        first_date, last_date = start_date, end_date
        if apply_booking_window:
            earliest_local, window_first, window_last = self.booking_window()
            earliest = ensure_utc(earliest_local)
            first_date = max(first_date, window_first)
            last_date = min(last_date, window_last)

        result: List[GroupFreeTime] = []
        for group in groups:
            weekly = weekly_by_group[group]
            busy = self._busy_intervals(bookings_by_practitioner, group)
            free_by_date: Dict[date_type, List[Interval[datetime]]] = {}

            current = first_date
            while current <= last_date:
                day_intervals = weekly.get(DayOfWeek.from_date(current))
                if day_intervals:
                    free = subtract_intervals(self._open_intervals(current, day_intervals), busy)
                    if earliest is not None:
                        free = clip_intervals(free, earliest)
                    if free:
                        free_by_date[current] = free
                current += timedelta(days=1)

            result.append((group, free_by_date))
        return result

    def _open_intervals(self, local_date: date_type, day_intervals: Sequence[Interval]) -> List[Interval[datetime]]:
        """Place a day's wall-clock intervals on a date, as UTC instants."""
        tz_name = self.context.timezone
        opened: List[Interval[datetime]] = []
        for interval in day_intervals:
            start = combine_local(local_date, interval.start, tz_name).astimezone(timezone.utc)
            end = combine_local(local_date, interval.end, tz_name).astimezone(timezone.utc)
            # Wall-clock ranges swallowed by a spring-forward gap
            if start < end:
                opened.append(Interval(start, end))
        return opened

    def _busy_intervals(
        self,
        bookings_by_practitioner: Mapping[int, Sequence[Booking]],
        group: PractitionerGroup
    ) -> List[Interval[datetime]]:
        """Collect the UTC ranges during which any practitioner of the group is booked."""
        busy: List[Interval[datetime]] = []
        for practitioner_id in group:
            for booking in bookings_by_practitioner.get(practitioner_id, []):
                if not booking.is_active:
                    continue
                busy.append(BookingConflictDetector.booking_interval(booking, practitioner_id))
        return busy

    def _to_local_intervals(self, intervals: Sequence[Interval[datetime]]) -> List[Interval[datetime]]:
        return [
            Interval(to_offset_local(iv.start, self.context.timezone), to_offset_local(iv.end, self.context.timezone))
            for iv in intervals
        ]

    def get_availability(
        self,
        practitioner_ids: Optional[Sequence[int]],
        service_id: Optional[int],
        location_id: Optional[int],
        mode: AppointmentMode | str,
        start_date: date_type,
        end_date: date_type,
        apply_booking_window: bool = True
    ) -> Dict[date_type, DayAvailability]:
        """
        Get free intervals per local date for the requested practitioners.

        Explicit practitioners must all be free (their windows are
        intersected and all of their bookings subtracted). For a service,
        each offering practitioner's free time is computed from their own
        bookings and the results are unioned. Dates with nothing free are
        omitted.

        Args:
            practitioner_ids: Practitioners who must all attend (may be empty)
            service_id: Used to find practitioners when none are given
            location_id: Requested location (in-person only)
            mode: Appointment delivery mode
            start_date: First local date (inclusive)
            end_date: Last local date (inclusive)
            apply_booking_window: Clip to advance-booking rules (self-service)

        Returns:
            Dict mapping local date to the remaining free intervals, in
            practice-local time
        """
        groups = self.practitioner_groups(practitioner_ids, service_id)
        free_time = self._free_time_by_group(
            groups, location_id, AppointmentMode(mode), start_date, end_date, apply_booking_window
        )

        combined: Dict[date_type, List[Interval[datetime]]] = {}
        for _, free_by_date in free_time:
            for day_date, intervals in free_by_date.items():
                combined.setdefault(day_date, []).extend(intervals)

        return {
            day_date: DayAvailability(
                date=day_date,
                day_of_week=DayOfWeek.from_date(day_date),
                intervals=self._to_local_intervals(merge_intervals(combined[day_date])),
            )
            for day_date in sorted(combined)
        }

    def get_available_slots(
        self,
        practitioner_ids: Optional[Sequence[int]],
        service_id: Optional[int],
        location_id: Optional[int],
        mode: AppointmentMode | str,
        start_date: date_type,
        end_date: date_type,
        apply_booking_window: bool = True
    ) -> Dict[date_type, List[SlotData]]:
        """
        Get bookable slots of session_duration_minutes per local date.

        Slot starts are aligned to step_size_minutes (practice-local clock)
        and each slot fits entirely inside one free interval. Each slot lists
        the practitioners who can take it: all requested practitioners, or
        for a service, every offering practitioner free at that time.
        """
        groups = self.practitioner_groups(practitioner_ids, service_id)
        free_time = self._free_time_by_group(
            groups, location_id, AppointmentMode(mode), start_date, end_date, apply_booking_window
        )

        tz_name = self.context.timezone
        takers: Dict[date_type, Dict[Tuple[datetime, datetime], List[int]]] = {}
        for group, free_by_date in free_time:
            for day_date, intervals in free_by_date.items():
                slots = generate_slots(
                    self._to_local_intervals(intervals),
                    self.settings.session_duration_minutes,
                    self.settings.step_size_minutes
                )
                for slot in slots:
                    # Slots stepping across a DST change keep their start offset; restate them
                    key = (to_offset_local(slot.start, tz_name), to_offset_local(slot.end, tz_name))
                    takers.setdefault(day_date, {}).setdefault(key, []).extend(group)

        return {
            day_date: [
                SlotData(start_time=start, end_time=end, practitioner_ids=list(dict.fromkeys(ids)))
                for (start, end), ids in sorted(takers[day_date].items())
            ]
            for day_date in sorted(takers)
        }

    # ===== Candidate validation =====

    def build_candidate(
        self,
        practitioner_ids: Sequence[int],
        location_id: Optional[int],
        local_start: str | datetime,
        practitioner_slices: Optional[Mapping[int, Tuple[str | datetime, str | datetime]]] = None
    ) -> CandidateSlot:
        """
        Build a candidate from a practice-local start time.

        end_time is start_time + session_duration_minutes. practitioner_slices
        maps a practitioner to the local (start, end) of the part they attend.

        Raises:
            InvalidTimeFormat: If a local time cannot be parsed
            ValueError: If no practitioners are given or a slice is invalid
        """
        tz_name = self.context.timezone
        start_utc = to_utc(local_start, tz_name)
        slices = {
            practitioner_id: Interval(to_utc(part_start, tz_name), to_utc(part_end, tz_name))
            for practitioner_id, (part_start, part_end) in (practitioner_slices or {}).items()
        }
        return CandidateSlot(
            practitioner_ids=tuple(dict.fromkeys(practitioner_ids)),
            location_id=location_id,
            start_time=start_utc,
            end_time=add_minutes(start_utc, self.settings.session_duration_minutes),
            practitioner_slices=slices,
        )

    def candidate_window(self, candidate: CandidateSlot) -> Tuple[datetime, datetime]:
        """
        Get the UTC pre-filter window for a candidate.

        Spans the candidate's local start date through its local end date, so
        bookings crossing local midnight are still seen.
        """
        tz_name = self.context.timezone
        window_start, _ = local_day_bounds(to_local(candidate.start_time, tz_name).date(), tz_name)
        _, window_end = local_day_bounds(to_local(candidate.end_time, tz_name).date(), tz_name)
        return window_start, window_end

    def validate_candidate(self, candidate: CandidateSlot) -> None:
        """
        Check that every practitioner of the candidate is free.

        Raises:
            SlotConflict: If any practitioner has an overlapping active booking
            AvailabilityUnavailable: If bookings could not be read (after one retry)
        """
        window_start, window_end = self.candidate_window(candidate)
        bookings_by_practitioner = self._fetch_with_retry(
            "bookings", self.repository.get_bookings, list(candidate.practitioner_ids), window_start, window_end
        )
        BookingConflictDetector.check_candidate(candidate, bookings_by_practitioner)

    def check_booking_window(self, candidate: CandidateSlot) -> None:
        """
        Enforce the self-service booking window on a candidate.

        Raises:
            BookingWindowViolation: If the candidate is too soon, same-day when
                that is not allowed, or too far in the future
        """
        earliest, first_date, last_date = self.booking_window()
        local_start = to_local(candidate.start_time, self.context.timezone)

        if ensure_utc(candidate.start_time) < earliest:
            raise BookingWindowViolation(
                f"Appointments must be booked at least {self.settings.advance_booking_hours} hours in advance"
            )
        if local_start.date() < first_date:
            raise BookingWindowViolation("Same-day booking is not allowed")
        if local_start.date() > last_date:
            raise BookingWindowViolation(
                f"Appointments can only be booked up to {self.settings.max_advance_booking_days} days in advance"
            )
