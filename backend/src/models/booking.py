"""
Booking model representing appointments between patients and practitioners.

A booking occupies [start_time, end_time) for every practitioner attached to
it, unless that practitioner's row records a narrower slice, regardless of
location: a practitioner booked at one location is busy everywhere. Bookings are never deleted; cancellation is a status change.
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy import String, TIMESTAMP, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import BOOKING_STATUSES, INACTIVE_BOOKING_STATUSES
from core.database import Base

_STATUS_LIST = ", ".join(f"'{s}'" for s in BOOKING_STATUSES)


class Booking(Base):
    """
    Booking entity. Times are stored as UTC instants.

    Status values: pending, requested, confirmed, completed, cancelled,
    no-show, declined. Only cancelled and no-show free the slot.
    """

    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    tenant_id: Mapped[str] = mapped_column(String(64))

    location_id: Mapped[Optional[int]] = mapped_column(nullable=True)
    """Location of an in-person booking; NULL for virtual."""

    service_id: Mapped[Optional[int]] = mapped_column(nullable=True)
    mode: Mapped[str] = mapped_column(String(20), default="in-person")

    start_time: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True))
    end_time: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True))

    status: Mapped[str] = mapped_column(String(20), default="pending")

    created_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    updated_at: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    practitioners: Mapped[List["BookingPractitioner"]] = relationship(
        "BookingPractitioner",
        back_populates="booking",
        order_by="BookingPractitioner.position",
        cascade="all, delete-orphan",
    )
    """Ordered attendance rows; position 0 is the primary practitioner."""

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="check_booking_time_range"),
        CheckConstraint(f"status IN ({_STATUS_LIST})", name="check_booking_status"),
        Index('idx_bookings_tenant_start', 'tenant_id', 'start_time'),
    )

    @property
    def practitioner_ids(self) -> List[int]:
        """Practitioner ids in attendance order (first = primary)."""
        return [row.practitioner_id for row in self.practitioners]

    @property
    def is_active(self) -> bool:
        """Whether this booking still blocks its time slot."""
        return self.status not in INACTIVE_BOOKING_STATUSES

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, status={self.status}, {self.start_time}-{self.end_time})>"


class BookingPractitioner(Base):
    """
    Association between a booking and one attending practitioner.

    start_time/end_time narrow the practitioner's part of the booking (e.g. an
    assistant who only joins for the last half hour). NULL means the
    booking's own time.
    """

    __tablename__ = "booking_practitioners"

    booking_id: Mapped[int] = mapped_column(ForeignKey("bookings.id", ondelete="CASCADE"), primary_key=True)
    practitioner_id: Mapped[int] = mapped_column(primary_key=True)

    position: Mapped[int] = mapped_column(default=0)
    """Order within the booking; 0 is the primary practitioner."""

    start_time: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    end_time: Mapped[Optional[datetime]] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    booking: Mapped[Booking] = relationship("Booking", back_populates="practitioners")

    __table_args__ = (
        CheckConstraint(
            "start_time IS NULL OR end_time IS NULL OR start_time < end_time",
            name="check_booking_practitioner_time_range",
        ),
        Index('idx_booking_practitioners_practitioner', 'practitioner_id'),
    )

    def __repr__(self) -> str:
        return f"<BookingPractitioner(booking_id={self.booking_id}, practitioner_id={self.practitioner_id}, position={self.position})>"
