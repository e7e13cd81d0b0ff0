"""
Practitioner service offering model.

Links practitioners to the services (appointment types) they offer, used to
expand a service-only availability request into a set of practitioners.
"""

from sqlalchemy import String, Boolean, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base


class PractitionerService(Base):
    """A practitioner offering a service at a tenant."""

    __tablename__ = "practitioner_services"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    tenant_id: Mapped[str] = mapped_column(String(64))
    practitioner_id: Mapped[int] = mapped_column()
    service_id: Mapped[int] = mapped_column()

    is_offered: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    """Soft switch; rows are kept when a practitioner stops offering a service."""

    __table_args__ = (
        UniqueConstraint('tenant_id', 'practitioner_id', 'service_id', name='uq_practitioner_service'),
        Index('idx_practitioner_services_tenant_service', 'tenant_id', 'service_id'),
    )

    def __repr__(self) -> str:
        return f"<PractitionerService(practitioner_id={self.practitioner_id}, service_id={self.service_id}, offered={self.is_offered})>"
