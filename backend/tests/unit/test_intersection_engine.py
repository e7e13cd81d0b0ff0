"""
Unit tests for IntersectionEngine.
"""

from datetime import time

from services.intersection_engine import IntersectionEngine
from shared_types.availability import DayOfWeek, Interval

MON = DayOfWeek.MONDAY
TUE = DayOfWeek.TUESDAY
WED = DayOfWeek.WEDNESDAY


def iv(start_hour, end_hour):
    return Interval(time(start_hour), time(end_hour))


class TestIntersectionEngine:
    """Test joint availability across practitioners."""

    def test_single_practitioner_passes_through(self):
        weekly = {MON: [iv(9, 12), iv(14, 17)], TUE: [iv(9, 17)]}

        assert IntersectionEngine.intersect({1: weekly}) == weekly

    def test_no_practitioners(self):
        assert IntersectionEngine.intersect({}) == {}

    def test_two_practitioners_overlap(self):
        """Test P1 Mon 9-12 and P2 Mon 10-14 share Mon 10-12."""
        result = IntersectionEngine.intersect({1: {MON: [iv(9, 12)]}, 2: {MON: [iv(10, 14)]}})

        assert result == {MON: [iv(10, 12)]}

    def test_only_common_days_survive(self):
        result = IntersectionEngine.intersect({
            1: {MON: [iv(9, 17)], TUE: [iv(9, 17)]},
            2: {TUE: [iv(9, 17)], WED: [iv(9, 17)]},
        })

        assert result == {TUE: [iv(9, 17)]}

    def test_touching_intervals_drop_the_day(self):
        """Test that a zero-length overlap means the day is unavailable."""
        result = IntersectionEngine.intersect({1: {MON: [iv(9, 12)]}, 2: {MON: [iv(12, 15)]}})

        assert result == {}

    def test_three_practitioners(self):
        result = IntersectionEngine.intersect({
            1: {MON: [iv(8, 12), iv(13, 18)]},
            2: {MON: [iv(9, 17)]},
            3: {MON: [iv(11, 14)]},
        })

        assert result == {MON: [iv(11, 12), iv(13, 14)]}

    def test_one_practitioner_without_availability_empties_result(self):
        result = IntersectionEngine.intersect({1: {MON: [iv(9, 17)]}, 2: {}})

        assert result == {}

    def test_result_is_subset_of_every_input(self):
        inputs = {
            1: {MON: [iv(8, 11), iv(12, 16)], WED: [iv(9, 12)]},
            2: {MON: [iv(10, 13), iv(15, 18)], WED: [iv(11, 15)]},
        }

        result = IntersectionEngine.intersect(inputs)

        for day, intervals in result.items():
            for interval in intervals:
                for weekly in inputs.values():
                    assert any(
                        source.start <= interval.start and interval.end <= source.end
                        for source in weekly[day]
                    )

    def test_result_keeps_monday_first_order(self):
        result = IntersectionEngine.intersect({
            1: {WED: [iv(9, 12)], MON: [iv(9, 12)]},
            2: {MON: [iv(9, 12)], WED: [iv(9, 12)]},
        })

        assert list(result) == [MON, WED]
