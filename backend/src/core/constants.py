"""Application constants and configuration values."""

from core.config import FRONTEND_URL

# Database connection settings
DB_POOL_RECYCLE_SECONDS = 300  # 5 minutes

# CORS origins for development and production
_CORS_ORIGINS_RAW = [
    "http://localhost:5173",      # React dev server (Vite) - localhost
    FRONTEND_URL,
]

# Filter out None values and empty strings to avoid CORS errors
CORS_ORIGINS = [origin for origin in _CORS_ORIGINS_RAW if origin and origin.strip()]

# Booking statuses
BOOKING_STATUSES = ('pending', 'requested', 'confirmed', 'completed', 'cancelled', 'no-show', 'declined')
# Bookings in these states never block a slot
INACTIVE_BOOKING_STATUSES = frozenset({'cancelled', 'no-show'})

# Practice setting keys (stored as strings in practice_settings)
SETTING_SESSION_DURATION = 'appointment_session_duration'
SETTING_ADVANCE_BOOKING_HOURS = 'appointment_advance_booking_hours'
SETTING_MAX_ADVANCE_BOOKING_DAYS = 'appointment_max_advance_booking_days'
SETTING_ALLOW_SAME_DAY_BOOKING = 'appointment_allow_same_day_booking'
SETTING_SLOT_STEP_MINUTES = 'appointment_slot_step_minutes'
SETTING_TIMEZONE = 'time_locale_timezone'

# Defaults used when a practice has not configured a setting
DEFAULT_SESSION_DURATION_MINUTES = 30
DEFAULT_ADVANCE_BOOKING_HOURS = 2
DEFAULT_MAX_ADVANCE_BOOKING_DAYS = 90
DEFAULT_SLOT_STEP_MINUTES = 30

# Upper bound on the number of days a single availability query may span
MAX_AVAILABILITY_WINDOW_DAYS = 62
