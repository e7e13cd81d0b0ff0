"""
Shared response models for API endpoints.

This module contains Pydantic response models returned by the availability
and booking endpoints.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel


class IntervalResponse(BaseModel):
    """Response model for an open or free interval."""
    start_time: str  # "HH:MM" for weekly intervals, ISO 8601 for dated ones
    end_time: str


class DayAvailabilityResponse(BaseModel):
    """Response model for free intervals on one date."""
    date: str  # Format: "YYYY-MM-DD"
    day_of_week: str
    intervals: List[IntervalResponse]


class AvailabilityResponse(BaseModel):
    """Response model for availability query."""
    practitioner_ids: List[int]
    timezone: str
    weekly: Dict[str, List[IntervalResponse]]  # day name -> intervals
    dates: List[DayAvailabilityResponse]


class AvailableSlotResponse(BaseModel):
    """Response model for a bookable slot."""
    start_time: str  # ISO 8601, practice-local
    end_time: str
    practitioner_ids: List[int]


class DaySlotsResponse(BaseModel):
    """Response model for bookable slots on one date."""
    date: str
    slots: List[AvailableSlotResponse]


class AvailableSlotsResponse(BaseModel):
    """Response model for available slots query."""
    practitioner_ids: List[int]
    timezone: str
    session_duration_minutes: int
    dates: List[DaySlotsResponse]


class SlotValidationResponse(BaseModel):
    """Response model for candidate slot validation."""
    available: bool
    start_time: str  # ISO 8601, UTC
    end_time: str


class ConflictDetail(BaseModel):
    """Detail model for a rejected candidate slot."""
    message: str
    conflicting_booking_ids: List[int]
    practitioner_ids: List[int]


class PractitionerSliceResponse(BaseModel):
    """Part of a booking one practitioner attends (UTC)."""
    practitioner_id: int
    start_time: datetime
    end_time: datetime


class BookingResponse(BaseModel):
    """Response model for a booking."""
    id: int
    tenant_id: str
    practitioner_ids: List[int]
    location_id: Optional[int] = None
    service_id: Optional[int] = None
    mode: str
    status: str
    start_time: datetime
    end_time: datetime
    practitioner_slices: List[PractitionerSliceResponse] = []


class BookingListResponse(BaseModel):
    """Response model for a practitioner's bookings in a date window."""
    practitioner_id: int
    timezone: str
    bookings: List[BookingResponse]
