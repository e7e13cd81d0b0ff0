"""
Per-practitioner lock rows used to serialize booking creation.

Booking creation selects these rows FOR UPDATE (in practitioner id order)
and stamps locked_at on them before re-checking conflicts and inserting, so
two concurrent requests for the same practitioner cannot both pass
validation. The UPDATE also takes the database write lock on SQLite, which
ignores FOR UPDATE.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, TIMESTAMP, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base


class PractitionerScheduleLock(Base):
    """One row per (tenant, practitioner); the row itself is the lock."""

    __tablename__ = "practitioner_schedule_locks"

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(64))
    practitioner_id: Mapped[int] = mapped_column()

    locked_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    """When a booking transaction last held this lock."""

    __table_args__ = (
        UniqueConstraint('tenant_id', 'practitioner_id', name='uq_schedule_lock_practitioner'),
    )

    def __repr__(self) -> str:
        return f"<PractitionerScheduleLock(tenant_id={self.tenant_id}, practitioner_id={self.practitioner_id})>"
