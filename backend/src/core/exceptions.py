"""
Scheduling error taxonomy.

Availability queries never raise for "nothing free"; they return empty
collections. The exceptions here are reserved for invalid input, real
conflicts and data-access faults.
"""

from typing import Iterable, List


class SchedulingError(Exception):
    """Base class for all scheduling engine errors."""


class InvalidTimeFormat(SchedulingError):
    """A candidate date/time string could not be parsed."""

    def __init__(self, value: object, reason: str | None = None):
        self.value = value
        message = f"Invalid date/time format: {value!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class SlotConflict(SchedulingError):
    """
    The candidate overlaps at least one active booking.

    Carries every conflicting booking id and every practitioner that is busy,
    so the caller can refresh the slot picker.
    """

    def __init__(self, conflicting_booking_ids: Iterable[int], practitioner_ids: Iterable[int] = ()):
        self.conflicting_booking_ids: List[int] = sorted(set(conflicting_booking_ids))
        self.practitioner_ids: List[int] = list(dict.fromkeys(practitioner_ids))
        super().__init__(
            f"Time slot conflict: practitioner(s) {self.practitioner_ids} already booked "
            f"(bookings {self.conflicting_booking_ids})"
        )


class BookingWindowViolation(SchedulingError):
    """A self-service booking falls outside the practice's booking window."""


class AvailabilityUnavailable(SchedulingError):
    """Schedule data could not be read; never to be treated as "no conflict"."""


class BookingNotFound(SchedulingError):
    """No booking with the given id exists for the tenant."""

    def __init__(self, booking_id: int):
        self.booking_id = booking_id
        super().__init__(f"Booking {booking_id} not found")
