# Package initialization
# Import all models to ensure relationships are properly established
from .practitioner_availability import AvailabilitySlot
from .portal_availability_override import PortalAvailabilityOverride
from .tenant_availability_restriction import TenantAvailabilityRestriction
from .practitioner_service import PractitionerService
from .booking import Booking, BookingPractitioner
from .practitioner_schedule_lock import PractitionerScheduleLock
from .practice_setting import PracticeSetting, BookingSettings, PracticeContext

__all__ = [
    "AvailabilitySlot",
    "PortalAvailabilityOverride",
    "TenantAvailabilityRestriction",
    "PractitionerService",
    "Booking",
    "BookingPractitioner",
    "PractitionerScheduleLock",
    "PracticeSetting",
    "BookingSettings",
    "PracticeContext",
]
