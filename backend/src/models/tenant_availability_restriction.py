"""
Tenant availability restriction model.

An optional allow-list of days on which a practitioner takes bookings for a
given tenant. A practitioner working for several practices may, for example,
only see patients of this practice on Mondays and Wednesdays.
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy import String, TIMESTAMP, JSON, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base


class TenantAvailabilityRestriction(Base):
    """Per-tenant allow-list of days for a practitioner."""

    __tablename__ = "practitioner_tenant_settings"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    tenant_id: Mapped[str] = mapped_column(String(64))
    practitioner_id: Mapped[int] = mapped_column()

    available_days: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    """Lowercase day names. Empty means "no restriction"."""

    created_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint('tenant_id', 'practitioner_id', name='uq_tenant_settings_practitioner'),
    )

    def __repr__(self) -> str:
        return f"<TenantAvailabilityRestriction(practitioner_id={self.practitioner_id}, days={self.available_days})>"
