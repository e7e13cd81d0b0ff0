"""
Joint availability for appointments that need several practitioners at once.
"""

from typing import Mapping

from shared_types.availability import DayOfWeek, WeeklyAvailability
from utils.interval_utils import intersect_interval_lists


class IntersectionEngine:
    """Combines per-practitioner weekly availability into a common window."""

    @staticmethod
    def intersect(per_practitioner: Mapping[int, WeeklyAvailability]) -> WeeklyAvailability:
        """
        Compute the ranges where ALL practitioners are free simultaneously.

        For one practitioner the map passes through unchanged. For several,
        only days common to everyone are considered, and each day's interval
        lists are intersected pairwise; a day is dropped as soon as no
        positive-length overlap remains.

        Args:
            per_practitioner: Dict mapping practitioner_id to weekly availability

        Returns:
            Weekly availability shared by all practitioners (empty if none given)
        """
        weeklies = list(per_practitioner.values())
        if not weeklies:
            return {}
        if len(weeklies) == 1:
            return {day: list(intervals) for day, intervals in weeklies[0].items() if intervals}

        common_days = set(weeklies[0])
        for weekly in weeklies[1:]:
            common_days &= set(weekly)

        result: WeeklyAvailability = {}
        # Keep Monday-first ordering for stable output
        for day in DayOfWeek:
            if day not in common_days:
                continue
            shared = list(weeklies[0][day])
            for weekly in weeklies[1:]:
                shared = intersect_interval_lists(shared, weekly[day])
                if not shared:
                    break
            if shared:
                result[day] = shared

        return result
