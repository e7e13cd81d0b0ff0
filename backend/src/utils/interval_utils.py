"""
Half-open interval arithmetic shared by the availability engine.

All intervals are [start, end). Two intervals that merely touch
(a.end == b.start) do not overlap, so back-to-back appointments are allowed.
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Sequence

from shared_types.availability import Interval, T


def overlaps(a: Interval[T], b: Interval[T]) -> bool:
    """Check if two half-open intervals overlap. Symmetric in a and b."""
    return a.start < b.end and b.start < a.end


def merge_intervals(intervals: Iterable[Interval[T]]) -> List[Interval[T]]:
    """
    Sort intervals and merge the ones that overlap or touch.

    Practitioners may enter overlapping rows for the same day (e.g. 09-12 and
    11-14); the merged form keeps intersection and subtraction simple.
    """
    ordered = sorted(intervals)
    if not ordered:
        return []

    merged: List[Interval[T]] = [ordered[0]]
    for interval in ordered[1:]:
        last = merged[-1]
        if interval.start <= last.end:
            if interval.end > last.end:
                merged[-1] = Interval(last.start, interval.end)
        else:
            merged.append(interval)
    return merged


def intersect_interval_lists(
    first: Sequence[Interval[T]],
    second: Sequence[Interval[T]]
) -> List[Interval[T]]:
    """
    Intersect two interval lists with a two-pointer sweep.

    Both inputs are sorted first. Each overlap is clipped to
    [max(starts), min(ends)); zero-length overlaps are dropped.
    """
    a = sorted(first)
    b = sorted(second)
    result: List[Interval[T]] = []
    i = j = 0

    while i < len(a) and j < len(b):
        start = max(a[i].start, b[j].start)
        end = min(a[i].end, b[j].end)
        if start < end:
            result.append(Interval(start, end))

        # Advance whichever interval finishes first
        if a[i].end < b[j].end:
            i += 1
        else:
            j += 1

    return result


def subtract_intervals(
    available: Sequence[Interval[T]],
    busy: Sequence[Interval[T]]
) -> List[Interval[T]]:
    """
    Remove busy ranges from available ranges.

    Returns the remaining positive-length sub-intervals in start order.
    """
    remaining = merge_intervals(available)
    for blocked in merge_intervals(busy):
        next_remaining: List[Interval[T]] = []
        for interval in remaining:
            if not overlaps(interval, blocked):
                next_remaining.append(interval)
                continue
            if interval.start < blocked.start:
                next_remaining.append(Interval(interval.start, blocked.start))
            if blocked.end < interval.end:
                next_remaining.append(Interval(blocked.end, interval.end))
        remaining = next_remaining
    return remaining


def clip_intervals(
    intervals: Sequence[Interval[datetime]],
    not_before: datetime
) -> List[Interval[datetime]]:
    """Drop the part of each interval that lies before not_before."""
    clipped: List[Interval[datetime]] = []
    for interval in intervals:
        if interval.end <= not_before:
            continue
        if interval.start < not_before:
            clipped.append(Interval(not_before, interval.end))
        else:
            clipped.append(interval)
    return clipped


def round_up_to_step(value: datetime, step_minutes: int) -> datetime:
    """
    Round a datetime up to the next step boundary within its hour grid.

    For step_minutes=30 this rounds to :00/:30; already-aligned values
    (with zero seconds) are returned unchanged.
    """
    base = value.replace(second=0, microsecond=0)
    if base < value:
        base += timedelta(minutes=1)

    total_minutes = base.hour * 60 + base.minute
    remainder = total_minutes % step_minutes
    if remainder == 0:
        return base
    return base + timedelta(minutes=step_minutes - remainder)


def generate_slots(
    intervals: Sequence[Interval[datetime]],
    duration_minutes: int,
    step_minutes: int
) -> List[Interval[datetime]]:
    """
    Generate bookable slots from free intervals.

    Slot starts are aligned to step_minutes and each slot
    [start, start + duration) must fit inside a single free interval.
    """
    if duration_minutes <= 0 or step_minutes <= 0:
        raise ValueError("duration_minutes and step_minutes must be positive")

    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=step_minutes)
    slots: List[Interval[datetime]] = []

    for interval in intervals:
        current = round_up_to_step(interval.start, step_minutes)
        while current + duration <= interval.end:
            slots.append(Interval(current, current + duration))
            current += step

    return slots
