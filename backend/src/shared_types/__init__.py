"""
Shared type definitions for the practice scheduling backend.

This module contains dataclasses and types that are used across multiple services.
"""

from shared_types.availability import (
    AppointmentMode,
    CandidateSlot,
    DayAvailability,
    DayOfWeek,
    Interval,
    SlotData,
    WeeklyAvailability,
)

__all__ = [
    "AppointmentMode",
    "CandidateSlot",
    "DayAvailability",
    "DayOfWeek",
    "Interval",
    "SlotData",
    "WeeklyAvailability",
]
