"""
Practice settings model and typed settings schemas.

Settings are stored as loose key/value strings per tenant. They are read once
per request and validated into typed value objects (BookingSettings,
PracticeContext) that are passed explicitly into the availability engine.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from sqlalchemy import String, Text, TIMESTAMP, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from core.config import DEFAULT_PRACTICE_TIMEZONE
from core.constants import (
    DEFAULT_ADVANCE_BOOKING_HOURS, DEFAULT_MAX_ADVANCE_BOOKING_DAYS,
    DEFAULT_SESSION_DURATION_MINUTES, DEFAULT_SLOT_STEP_MINUTES,
)
from core.database import Base


# Settings schema validation models
class BookingSettings(BaseModel):
    """Schema for booking window and slot generation settings."""
    model_config = ConfigDict(frozen=True)

    session_duration_minutes: int = Field(default=DEFAULT_SESSION_DURATION_MINUTES, ge=5, le=480, description="Length of one appointment; end_time = start_time + this value.")
    advance_booking_hours: int = Field(default=DEFAULT_ADVANCE_BOOKING_HOURS, ge=0, le=720, description="Minimum lead time between now and the start of a self-service booking.")
    max_advance_booking_days: int = Field(default=DEFAULT_MAX_ADVANCE_BOOKING_DAYS, ge=1, le=365, description="How many days ahead patients may book.")
    allow_same_day_booking: bool = Field(default=False, description="Whether patients may book for today (local date).")
    step_size_minutes: int = Field(default=DEFAULT_SLOT_STEP_MINUTES, ge=5, le=120, description="Grid on which bookable slot start times are offered (e.g. 30 = 09:00, 09:30, ...).")

    @model_validator(mode='before')
    @classmethod
    def coerce_same_day_flag(cls, data: Any) -> Any:
        """Accept the stored '1'/'0' form of allow_same_day_booking."""
        if isinstance(data, dict):
            flag: Any = data.get('allow_same_day_booking')  # type: ignore[reportUnknownVariableType]
            if isinstance(flag, str) and flag.strip() in ('0', '1'):
                data = {**data, 'allow_same_day_booking': flag.strip() == '1'}  # type: ignore[reportUnknownVariableType]
        return data  # type: ignore[reportUnknownVariableType]


class PracticeContext(BaseModel):
    """Explicit tenant context threaded through every engine call."""
    model_config = ConfigDict(frozen=True)

    tenant_id: str = Field(min_length=1)
    timezone: str = Field(default=DEFAULT_PRACTICE_TIMEZONE, description="IANA timezone name of the practice.")

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        # Import here to avoid circular import (datetime_utils -> shared_types)
        from utils.datetime_utils import get_zone
        get_zone(value)
        return value


class PracticeSetting(Base):
    """A single key/value setting for a tenant (practice)."""

    __tablename__ = "practice_settings"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    tenant_id: Mapped[str] = mapped_column(String(64))
    key: Mapped[str] = mapped_column(String(100))
    value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint('tenant_id', 'key', name='uq_practice_settings_tenant_key'),
    )

    def __repr__(self) -> str:
        return f"<PracticeSetting(tenant_id={self.tenant_id}, key={self.key}, value={self.value})>"
