"""
Practitioner availability model for the general weekly schedule.

This model stores the default working hours for each practitioner by day of week.
Practitioners can set multiple working periods per day (e.g., 9am-12pm, 2pm-6pm)
to accommodate healthcare-specific scheduling needs like morning and evening sessions.
"""

from datetime import time, datetime
from typing import Optional
from sqlalchemy import String, Time, TIMESTAMP, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base


class AvailabilitySlot(Base):
    """
    Model for storing practitioner general availability by day of week.

    Each record represents one recurring open interval for a specific day of the
    week at a location. location_id is NULL for virtual-only availability.
    Multiple records per day are allowed (no unique constraint).

    This is the fallback source: when a practitioner has any portal override
    rows for the requested combination, those replace these records.
    """

    __tablename__ = "practitioner_availability"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the availability record."""

    tenant_id: Mapped[str] = mapped_column(String(64))
    """Tenant (practice) owning this record."""

    practitioner_id: Mapped[int] = mapped_column()
    """Reference to the practitioner (external entity)."""

    location_id: Mapped[Optional[int]] = mapped_column(nullable=True)
    """Location where the practitioner works in this period; NULL for virtual."""

    day_of_week: Mapped[str] = mapped_column(String(10))
    """Lowercase day name ('monday' ... 'sunday')."""

    start_time: Mapped[time] = mapped_column(Time)
    """Start time of the working period (practice-local wall clock)."""

    end_time: Mapped[time] = mapped_column(Time)
    """End time of the working period (practice-local wall clock)."""

    created_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="check_availability_time_range"),
        Index('idx_practitioner_availability_tenant_practitioner_day', 'tenant_id', 'practitioner_id', 'day_of_week'),
    )

    def __repr__(self) -> str:
        return f"<AvailabilitySlot(practitioner_id={self.practitioner_id}, day={self.day_of_week}, {self.start_time}-{self.end_time})>"
