"""
Portal availability override model.

Tenant-specific explicit enable/disable of a practitioner's hours per day, as
configured for the public booking portal. When any row exists for a
practitioner (and location, for in-person bookings), overrides fully replace
the general weekly schedule, including days that are disabled.
"""

from datetime import time, datetime
from typing import Optional
from sqlalchemy import String, Time, TIMESTAMP, Boolean, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base


class PortalAvailabilityOverride(Base):
    """Explicit per-day portal availability for a practitioner."""

    __tablename__ = "practitioner_portal_availability"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    tenant_id: Mapped[str] = mapped_column(String(64))
    practitioner_id: Mapped[int] = mapped_column()
    location_id: Mapped[Optional[int]] = mapped_column(nullable=True)
    day_of_week: Mapped[str] = mapped_column(String(10))
    start_time: Mapped[time] = mapped_column(Time)
    end_time: Mapped[time] = mapped_column(Time)

    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    """
    False marks the day as explicitly closed on the portal. A disabled row still
    counts as "configuration present" and suppresses the fallback schedule.
    """

    created_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="check_portal_availability_time_range"),
        Index('idx_portal_availability_tenant_practitioner', 'tenant_id', 'practitioner_id', 'location_id'),
    )

    def __repr__(self) -> str:
        state = "enabled" if self.is_enabled else "disabled"
        return f"<PortalAvailabilityOverride(practitioner_id={self.practitioner_id}, day={self.day_of_week}, {self.start_time}-{self.end_time}, {state})>"
