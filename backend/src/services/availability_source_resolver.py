"""
Availability source resolution.

Decides, per practitioner, which availability source applies for a booking
request and returns that practitioner's weekly open intervals:

1. Portal overrides, when any override row (enabled or disabled) matches the
   practitioner, location filter and tenant-restricted days.
2. Otherwise, the general weekly schedule (AvailabilitySlot rows).

Either way the resulting days are intersected with the tenant's day
allow-list when one is configured. Absent data yields empty results, never
an exception.
"""

import logging
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Set

from models import AvailabilitySlot, PortalAvailabilityOverride, TenantAvailabilityRestriction
from shared_types.availability import AppointmentMode, DayOfWeek, Interval, WeeklyAvailability
from utils.interval_utils import merge_intervals

logger = logging.getLogger(__name__)


class _WeeklyRow(Protocol):
    practitioner_id: int
    location_id: Optional[int]
    day_of_week: str


class AvailabilitySourceResolver:
    """
    Pure resolver over prefetched schedule rows.

    No database access; callers pass in the rows fetched by the schedule
    repository for the practitioners of interest.
    """

    SOURCE_OVERRIDE = 'portal_override'
    SOURCE_GENERAL = 'general_availability'

    @staticmethod
    def restricted_days(
        practitioner_id: int,
        restrictions: Iterable[TenantAvailabilityRestriction]
    ) -> Optional[Set[DayOfWeek]]:
        """
        Get the tenant day allow-list for a practitioner.

        Returns:
            Set of allowed days, or None when no (or an empty) restriction is configured
        """
        for restriction in restrictions:
            if restriction.practitioner_id != practitioner_id:
                continue
            days: Set[DayOfWeek] = set()
            for raw_day in restriction.available_days or []:
                try:
                    days.add(DayOfWeek.parse(raw_day))
                except ValueError:
                    logger.warning(
                        f"Ignoring unknown day {raw_day!r} in tenant restriction for practitioner {practitioner_id}"
                    )
            return days or None
        return None

    @staticmethod
    def _matches(
        row: _WeeklyRow,
        practitioner_id: int,
        location_id: Optional[int],
        mode: AppointmentMode,
        allowed_days: Optional[Set[DayOfWeek]]
    ) -> bool:
        if row.practitioner_id != practitioner_id:
            return False
        # Location only narrows in-person requests
        if mode == AppointmentMode.IN_PERSON and location_id is not None and row.location_id != location_id:
            return False
        if allowed_days is not None:
            try:
                if DayOfWeek.parse(row.day_of_week) not in allowed_days:
                    return False
            except ValueError:
                return False
        return True

    @staticmethod
    def _group_by_day(rows: Sequence[AvailabilitySlot | PortalAvailabilityOverride]) -> WeeklyAvailability:
        grouped: Dict[DayOfWeek, List[Interval]] = {}
        for row in rows:
            try:
                day = DayOfWeek.parse(row.day_of_week)
            except ValueError:
                logger.warning(f"Skipping availability row with unknown day {row.day_of_week!r}: {row!r}")
                continue
            if not row.start_time < row.end_time:
                logger.warning(f"Skipping availability row with empty time range: {row!r}")
                continue
            grouped.setdefault(day, []).append(Interval(row.start_time, row.end_time))

        return {day: merge_intervals(intervals) for day, intervals in grouped.items()}

    @staticmethod
    def resolve_for_practitioner(
        practitioner_id: int,
        location_id: Optional[int],
        mode: AppointmentMode,
        slots: Sequence[AvailabilitySlot],
        overrides: Sequence[PortalAvailabilityOverride],
        restrictions: Sequence[TenantAvailabilityRestriction]
    ) -> WeeklyAvailability:
        """
        Resolve one practitioner's weekly open intervals.

        Args:
            practitioner_id: Practitioner to resolve
            location_id: Requested location (only used for in-person mode)
            mode: Appointment delivery mode
            slots: General availability rows (may include other practitioners)
            overrides: Portal override rows (may include other practitioners)
            restrictions: Tenant day restrictions (may include other practitioners)

        Returns:
            Dict mapping day to sorted, merged intervals. Days without
            availability are absent.
        """
        allowed_days = AvailabilitySourceResolver.restricted_days(practitioner_id, restrictions)

        matching_overrides = [
            row for row in overrides
            if AvailabilitySourceResolver._matches(row, practitioner_id, location_id, mode, allowed_days)
        ]

        if matching_overrides:
            # Presence of configuration, not its values, decides the source.
            # Disabled rows contribute nothing, so a disabled day stays empty.
            source = AvailabilitySourceResolver.SOURCE_OVERRIDE
            weekly = AvailabilitySourceResolver._group_by_day(
                [row for row in matching_overrides if row.is_enabled]
            )
        else:
            source = AvailabilitySourceResolver.SOURCE_GENERAL
            weekly = AvailabilitySourceResolver._group_by_day([
                row for row in slots
                if AvailabilitySourceResolver._matches(row, practitioner_id, location_id, mode, allowed_days)
            ])

        logger.info(
            f"Resolved availability for practitioner {practitioner_id} from {source} "
            f"(mode={mode.value}, location_id={location_id}, days={sorted(d.value for d in weekly)})"
        )
        return weekly

    @staticmethod
    def resolve(
        practitioner_ids: Sequence[int],
        location_id: Optional[int],
        mode: AppointmentMode,
        slots: Sequence[AvailabilitySlot],
        overrides: Sequence[PortalAvailabilityOverride],
        restrictions: Sequence[TenantAvailabilityRestriction]
    ) -> Dict[int, WeeklyAvailability]:
        """
        Resolve weekly availability for each practitioner.

        Returns:
            Dict mapping practitioner_id to that practitioner's weekly availability
        """
        return {
            practitioner_id: AvailabilitySourceResolver.resolve_for_practitioner(
                practitioner_id, location_id, mode, slots, overrides, restrictions
            )
            for practitioner_id in practitioner_ids
        }
