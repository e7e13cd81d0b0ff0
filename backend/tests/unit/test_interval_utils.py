"""
Unit tests for half-open interval arithmetic.
"""

import pytest
from datetime import datetime, time, timezone

from shared_types.availability import Interval
from utils.interval_utils import (
    clip_intervals, generate_slots, intersect_interval_lists, merge_intervals,
    overlaps, round_up_to_step, subtract_intervals,
)


def t(hour: int, minute: int = 0) -> time:
    return time(hour, minute)


def dt(hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 11, 2, hour, minute, tzinfo=timezone.utc)


class TestInterval:
    """Test the Interval value type."""

    def test_empty_interval_rejected(self):
        with pytest.raises(ValueError):
            Interval(t(10), t(10))

    def test_reversed_interval_rejected(self):
        with pytest.raises(ValueError):
            Interval(t(11), t(10))

    def test_to_dict_for_times(self):
        assert Interval(t(9), t(12, 30)).to_dict() == {"start_time": "09:00", "end_time": "12:30"}

    def test_to_dict_for_datetimes(self):
        assert Interval(dt(14), dt(15)).to_dict() == {
            "start_time": "2026-11-02T14:00:00+00:00",
            "end_time": "2026-11-02T15:00:00+00:00",
        }


class TestOverlaps:
    """Test the half-open overlap predicate."""

    @pytest.mark.parametrize("a,b,expected", [
        ((9, 10), (9, 10), True),      # identical
        ((9, 11), (10, 12), True),     # partial
        ((9, 12), (10, 11), True),     # containment
        ((9, 10), (10, 11), False),    # touching end -> start
        ((9, 10), (11, 12), False),    # disjoint
    ])
    def test_overlap_cases(self, a, b, expected):
        first = Interval(t(a[0]), t(a[1]))
        second = Interval(t(b[0]), t(b[1]))

        assert overlaps(first, second) is expected
        # Symmetric
        assert overlaps(second, first) is expected


class TestMergeIntervals:
    """Test merge_intervals function."""

    def test_overlapping_rows_are_merged(self):
        result = merge_intervals([Interval(t(11), t(14)), Interval(t(9), t(12))])

        assert result == [Interval(t(9), t(14))]

    def test_touching_rows_are_merged(self):
        result = merge_intervals([Interval(t(9), t(12)), Interval(t(12), t(13))])

        assert result == [Interval(t(9), t(13))]

    def test_disjoint_rows_are_sorted(self):
        result = merge_intervals([Interval(t(14), t(17)), Interval(t(9), t(12))])

        assert result == [Interval(t(9), t(12)), Interval(t(14), t(17))]

    def test_empty(self):
        assert merge_intervals([]) == []


class TestIntersectIntervalLists:
    """Test the two-pointer intersection."""

    def test_partial_overlap(self):
        result = intersect_interval_lists([Interval(t(9), t(12))], [Interval(t(10), t(14))])

        assert result == [Interval(t(10), t(12))]

    def test_multiple_intervals_each_side(self):
        first = [Interval(t(8), t(12)), Interval(t(13), t(18))]
        second = [Interval(t(10), t(14)), Interval(t(16), t(20))]

        result = intersect_interval_lists(first, second)

        assert result == [Interval(t(10), t(12)), Interval(t(13), t(14)), Interval(t(16), t(18))]

    def test_touching_only_yields_nothing(self):
        """Test that a zero-length overlap is not kept."""
        assert intersect_interval_lists([Interval(t(9), t(10))], [Interval(t(10), t(11))]) == []

    def test_empty_side(self):
        assert intersect_interval_lists([Interval(t(9), t(10))], []) == []


class TestSubtractIntervals:
    """Test subtract_intervals function."""

    def test_booking_in_the_middle_splits_interval(self):
        result = subtract_intervals([Interval(dt(14), dt(18))], [Interval(dt(15), dt(16))])

        assert result == [Interval(dt(14), dt(15)), Interval(dt(16), dt(18))]

    def test_booking_at_edges(self):
        result = subtract_intervals(
            [Interval(dt(14), dt(18))],
            [Interval(dt(13), dt(14, 30)), Interval(dt(17, 30), dt(19))]
        )

        assert result == [Interval(dt(14, 30), dt(17, 30))]

    def test_booking_covering_everything(self):
        assert subtract_intervals([Interval(dt(14), dt(15))], [Interval(dt(13), dt(16))]) == []

    def test_touching_booking_removes_nothing(self):
        result = subtract_intervals([Interval(dt(14), dt(15))], [Interval(dt(15), dt(16))])

        assert result == [Interval(dt(14), dt(15))]


class TestClipIntervals:
    """Test clip_intervals function."""

    def test_clips_partially_past_interval(self):
        result = clip_intervals([Interval(dt(9), dt(12)), Interval(dt(13), dt(15))], dt(10, 15))

        assert result == [Interval(dt(10, 15), dt(12)), Interval(dt(13), dt(15))]

    def test_drops_fully_past_interval(self):
        assert clip_intervals([Interval(dt(9), dt(10))], dt(10)) == []


class TestGenerateSlots:
    """Test slot generation over free intervals."""

    def test_slots_fit_inside_interval(self):
        slots = generate_slots([Interval(dt(9), dt(11))], duration_minutes=30, step_minutes=30)

        assert [s.start for s in slots] == [dt(9), dt(9, 30), dt(10), dt(10, 30)]
        assert all(s.end <= dt(11) for s in slots)

    def test_start_is_aligned_to_step(self):
        slots = generate_slots([Interval(dt(9, 10), dt(10, 30))], duration_minutes=30, step_minutes=30)

        assert [s.start for s in slots] == [dt(9, 30), dt(10)]

    def test_longer_duration_than_step(self):
        slots = generate_slots([Interval(dt(9), dt(10, 30))], duration_minutes=60, step_minutes=15)

        assert [s.start for s in slots] == [dt(9), dt(9, 15), dt(9, 30)]

    def test_interval_shorter_than_duration(self):
        assert generate_slots([Interval(dt(9), dt(9, 20))], duration_minutes=30, step_minutes=15) == []

    def test_non_positive_values_rejected(self):
        with pytest.raises(ValueError):
            generate_slots([Interval(dt(9), dt(10))], duration_minutes=0, step_minutes=15)


class TestHelpers:

    def test_round_up_to_step(self):
        assert round_up_to_step(dt(9, 1), 15) == dt(9, 15)
        assert round_up_to_step(dt(9, 45), 15) == dt(9, 45)
        assert round_up_to_step(datetime(2026, 11, 2, 9, 45, 30, tzinfo=timezone.utc), 15) == dt(10)
