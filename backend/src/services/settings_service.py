"""
Settings service for practice booking settings.

Practice settings are stored as loose key/value strings. This service reads
them once per request and resolves them into the typed value objects the
availability engine takes (BookingSettings, PracticeContext).
"""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from core.config import DEFAULT_PRACTICE_TIMEZONE
from core.constants import (
    SETTING_SESSION_DURATION, SETTING_ADVANCE_BOOKING_HOURS, SETTING_MAX_ADVANCE_BOOKING_DAYS,
    SETTING_ALLOW_SAME_DAY_BOOKING, SETTING_SLOT_STEP_MINUTES, SETTING_TIMEZONE,
)
from models import PracticeSetting, BookingSettings, PracticeContext

logger = logging.getLogger(__name__)

# Stored setting key -> BookingSettings field
_BOOKING_SETTING_FIELDS = {
    SETTING_SESSION_DURATION: 'session_duration_minutes',
    SETTING_ADVANCE_BOOKING_HOURS: 'advance_booking_hours',
    SETTING_MAX_ADVANCE_BOOKING_DAYS: 'max_advance_booking_days',
    SETTING_ALLOW_SAME_DAY_BOOKING: 'allow_same_day_booking',
    SETTING_SLOT_STEP_MINUTES: 'step_size_minutes',
}


class SettingsService:
    """
    Service class for settings operations.

    Provides centralized access to practice settings with validation.
    """

    @staticmethod
    def get_raw_settings(db: Session, tenant_id: str) -> Dict[str, Optional[str]]:
        """Get all stored settings for a tenant as a key -> value dict."""
        rows = db.query(PracticeSetting).filter(PracticeSetting.tenant_id == tenant_id).all()
        return {row.key: row.value for row in rows}

    @staticmethod
    def get_booking_settings(db: Session, tenant_id: str) -> BookingSettings:
        """
        Get validated booking settings for a tenant.

        Each stored value is validated on its own; an invalid value is logged
        and replaced by its default so one bad row cannot block booking.
        """
        raw = SettingsService.get_raw_settings(db, tenant_id)

        values: Dict[str, Any] = {}
        for key, field_name in _BOOKING_SETTING_FIELDS.items():
            value = raw.get(key)
            if value is None or str(value).strip() == '':
                continue
            try:
                BookingSettings.model_validate({field_name: value})
            except ValidationError as e:
                logger.warning(f"Ignoring invalid setting {key}={value!r} for tenant {tenant_id}: {e.errors()[0]['msg']}")
                continue
            values[field_name] = value

        return BookingSettings.model_validate(values)

    @staticmethod
    def get_practice_context(db: Session, tenant_id: str) -> PracticeContext:
        """
        Get the explicit tenant context (tenant id + IANA timezone).

        Falls back to DEFAULT_PRACTICE_TIMEZONE when the stored timezone is
        missing or unknown.
        """
        raw = SettingsService.get_raw_settings(db, tenant_id)
        tz_name = (raw.get(SETTING_TIMEZONE) or '').strip() or DEFAULT_PRACTICE_TIMEZONE
        try:
            return PracticeContext(tenant_id=tenant_id, timezone=tz_name)
        except ValidationError:
            logger.warning(f"Unknown timezone {tz_name!r} for tenant {tenant_id}, using {DEFAULT_PRACTICE_TIMEZONE}")
            return PracticeContext(tenant_id=tenant_id, timezone=DEFAULT_PRACTICE_TIMEZONE)

    @staticmethod
    def set_setting(db: Session, tenant_id: str, key: str, value: Optional[str]) -> PracticeSetting:
        """Create or update a single setting (caller commits)."""
        setting = db.query(PracticeSetting).filter(
            PracticeSetting.tenant_id == tenant_id,
            PracticeSetting.key == key
        ).first()
        if setting is None:
            setting = PracticeSetting(tenant_id=tenant_id, key=key, value=value)
            db.add(setting)
        else:
            setting.value = value
        return setting
