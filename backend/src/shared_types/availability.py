"""
Shared types for availability-related functionality.

This module contains shared data classes and types used across availability services
to ensure type safety and consistency.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Dict, Generic, List, Optional, Tuple, TypeVar

T = TypeVar("T", time, datetime)


class DayOfWeek(str, Enum):
    """Lowercase day names, Monday first (same order as date.weekday())."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_date(cls, value: date) -> "DayOfWeek":
        return list(cls)[value.weekday()]

    @classmethod
    def parse(cls, value: "str | DayOfWeek") -> "DayOfWeek":
        """Accept enum members or case-insensitive day names."""
        if isinstance(value, DayOfWeek):
            return value
        return cls(str(value).strip().lower())


class AppointmentMode(str, Enum):
    """Delivery channel of an appointment; decides whether location filters apply."""

    IN_PERSON = "in-person"
    VIRTUAL = "virtual"
    HYBRID = "hybrid"


@dataclass(frozen=True, order=True)
class Interval(Generic[T]):
    """
    Half-open time range [start, end).

    Works for wall-clock times (weekly templates) and for aware datetimes
    (concrete dates). Ordering sorts by start, then end.
    """

    start: T
    end: T

    def __post_init__(self) -> None:
        if not self.start < self.end:
            raise ValueError(f"Interval start must be before end: {self.start} >= {self.end}")

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary format (HH:MM for times, ISO for datetimes)."""
        if isinstance(self.start, datetime):
            return {"start_time": self.start.isoformat(), "end_time": self.end.isoformat()}
        return {
            "start_time": self.start.strftime("%H:%M"),
            "end_time": self.end.strftime("%H:%M"),
        }


# Per-day open intervals (recurring weekly template)
WeeklyAvailability = Dict[DayOfWeek, List[Interval[time]]]


@dataclass(frozen=True)
class CandidateSlot:
    """
    A booking under evaluation. Not persisted.

    start_time/end_time are UTC instants. The first practitioner is the
    primary one. practitioner_slices optionally narrows individual
    practitioners to part of the slot; the rest attend all of it.
    """

    practitioner_ids: Tuple[int, ...]
    location_id: Optional[int]
    start_time: datetime
    end_time: datetime
    practitioner_slices: Dict[int, Interval[datetime]] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        if not self.practitioner_ids:
            raise ValueError("A candidate slot needs at least one practitioner")
        if not self.start_time < self.end_time:
            raise ValueError("Candidate start_time must be before end_time")
        for practitioner_id, part in self.practitioner_slices.items():
            if practitioner_id not in self.practitioner_ids:
                raise ValueError(f"Time slice given for practitioner {practitioner_id} who is not on the slot")
            if part.start < self.start_time or part.end > self.end_time:
                raise ValueError(f"Time slice for practitioner {practitioner_id} lies outside the slot")

    def interval_for(self, practitioner_id: int) -> Interval[datetime]:
        """Get the part of the slot a practitioner attends."""
        return self.practitioner_slices.get(practitioner_id, Interval(self.start_time, self.end_time))


@dataclass
class DayAvailability:
    """Free intervals remaining on one local calendar date."""

    date: date
    day_of_week: DayOfWeek
    intervals: List[Interval[datetime]] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "date": self.date.isoformat(),
            "day_of_week": self.day_of_week.value,
            "intervals": [interval.to_dict() for interval in self.intervals],
        }


@dataclass
class SlotData:
    """
    Represents a bookable time slot on a specific date.

    Times are practice-local aware datetimes.
    """
    start_time: datetime
    end_time: datetime
    practitioner_ids: List[int]

    def to_dict(self) -> dict[str, str | List[int]]:
        """Convert to dictionary format."""
        return {
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "practitioner_ids": list(self.practitioner_ids),
        }
