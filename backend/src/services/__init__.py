"""
Services package for shared business logic.

This package contains service classes that encapsulate business logic
shared across multiple API endpoints.
"""

from .availability_service import AvailabilityService
from .booking_service import BookingService
from .settings_service import SettingsService

__all__ = [
    "AvailabilityService",
    "BookingService",
    "SettingsService",
]
