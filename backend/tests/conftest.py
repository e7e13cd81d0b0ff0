"""
Test configuration and shared fixtures for the practice scheduling test suite.

Uses a SQLite database file by default (set TEST_DATABASE_URL to run against
PostgreSQL). The schema is built once per session by running the Alembic
migrations; each test starts from empty tables.
"""

import os

# Must be set before core.database creates its engine
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from datetime import datetime, time, timezone
from pathlib import Path
from typing import Dict, Generator, List, Optional, Tuple

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

from alembic.config import Config
from alembic import command

from core.database import Base
from models import (
    AvailabilitySlot, PortalAvailabilityOverride, TenantAvailabilityRestriction,
    PractitionerService, Booking, BookingPractitioner, PracticeSetting,
    BookingSettings, PracticeContext,
)

BACKEND_DIR = Path(__file__).resolve().parent.parent

TENANT_ID = "practice-a"
OTHER_TENANT_ID = "practice-b"
PRACTICE_TZ = "America/Toronto"

# Monday 2026-10-26 12:00 UTC (08:00 in Toronto)
FIXED_NOW = datetime(2026, 10, 26, 12, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    """Clock used by tests that depend on "now"."""
    return FIXED_NOW


@pytest.fixture(scope="session")
def db_engine(tmp_path_factory):
    """
    Create a database engine for the test session.

    Uses NullPool so every session gets a fresh connection, and disables
    SQLite's same-thread check because TestClient runs handlers in a worker
    thread.
    """
    url = os.getenv("TEST_DATABASE_URL")
    connect_args = {}
    if not url:
        db_file = tmp_path_factory.mktemp("db") / "scheduling_test.db"
        url = f"sqlite:///{db_file}"
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}

    engine = create_engine(url, poolclass=NullPool, connect_args=connect_args, echo=False)

    yield engine

    engine.dispose()


@pytest.fixture(scope="session", autouse=True)
def setup_test_database(db_engine):
    """
    Setup test database schema using Alembic migrations.

    Runs all migrations from scratch (base -> head) once per session, so the
    migrations are exercised by every test run.
    """
    alembic_cfg = Config(str(BACKEND_DIR / "alembic.ini"))
    alembic_cfg.set_main_option("sqlalchemy.url", db_engine.url.render_as_string(hide_password=False))

    Base.metadata.drop_all(bind=db_engine)
    command.upgrade(alembic_cfg, "head")

    yield

    command.downgrade(alembic_cfg, "base")


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """
    Provide a database session for a test.

    Application code commits, so isolation is done by emptying every table
    after the test instead of rolling back a wrapping transaction.
    """
    TestSession = sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)
    session = TestSession()

    yield session

    session.rollback()
    session.close()
    with db_engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def practice_context() -> PracticeContext:
    """Tenant context used by most tests."""
    return PracticeContext(tenant_id=TENANT_ID, timezone=PRACTICE_TZ)


@pytest.fixture
def booking_settings() -> BookingSettings:
    """Default booking settings (30 minute sessions on a 30 minute grid)."""
    return BookingSettings()


# Helper functions for creating schedule data
def create_availability_slot(
    db_session: Session,
    practitioner_id: int,
    day_of_week: str,
    start_time: time,
    end_time: time,
    location_id: Optional[int] = None,
    tenant_id: str = TENANT_ID
) -> AvailabilitySlot:
    """
    Helper to create a general weekly availability row.

    Args:
        db_session: Database session
        practitioner_id: Practitioner the row belongs to
        day_of_week: Lowercase day name
        start_time: Local wall-clock start
        end_time: Local wall-clock end
        location_id: Location (None for virtual)
        tenant_id: Owning tenant

    Returns:
        Created AvailabilitySlot instance
    """
    slot = AvailabilitySlot(
        tenant_id=tenant_id,
        practitioner_id=practitioner_id,
        location_id=location_id,
        day_of_week=day_of_week,
        start_time=start_time,
        end_time=end_time,
    )
    db_session.add(slot)
    return slot


def create_portal_override(
    db_session: Session,
    practitioner_id: int,
    day_of_week: str,
    start_time: time,
    end_time: time,
    location_id: Optional[int] = None,
    is_enabled: bool = True,
    tenant_id: str = TENANT_ID
) -> PortalAvailabilityOverride:
    """Helper to create a portal availability override row."""
    override = PortalAvailabilityOverride(
        tenant_id=tenant_id,
        practitioner_id=practitioner_id,
        location_id=location_id,
        day_of_week=day_of_week,
        start_time=start_time,
        end_time=end_time,
        is_enabled=is_enabled,
    )
    db_session.add(override)
    return override


def create_tenant_restriction(
    db_session: Session,
    practitioner_id: int,
    available_days: List[str],
    tenant_id: str = TENANT_ID
) -> TenantAvailabilityRestriction:
    """Helper to create a tenant day allow-list for a practitioner."""
    restriction = TenantAvailabilityRestriction(
        tenant_id=tenant_id,
        practitioner_id=practitioner_id,
        available_days=available_days,
    )
    db_session.add(restriction)
    return restriction


def create_practitioner_service(
    db_session: Session,
    practitioner_id: int,
    service_id: int,
    is_offered: bool = True,
    tenant_id: str = TENANT_ID
) -> PractitionerService:
    """Helper to record that a practitioner offers a service."""
    offering = PractitionerService(
        tenant_id=tenant_id,
        practitioner_id=practitioner_id,
        service_id=service_id,
        is_offered=is_offered,
    )
    db_session.add(offering)
    return offering


def create_booking(
    db_session: Session,
    practitioner_ids: List[int],
    start_time: datetime,
    end_time: datetime,
    status: str = "confirmed",
    location_id: Optional[int] = None,
    tenant_id: str = TENANT_ID,
    practitioner_slices: Optional[Dict[int, Tuple[datetime, datetime]]] = None
) -> Booking:
    """
    Helper to create a booking with its ordered practitioner rows.

    start_time and end_time must be aware datetimes; they are stored as UTC.
    practitioner_slices narrows individual practitioners to part of the booking.
    """
    booking = Booking(
        tenant_id=tenant_id,
        location_id=location_id,
        mode="in-person" if location_id is not None else "virtual",
        start_time=start_time.astimezone(timezone.utc),
        end_time=end_time.astimezone(timezone.utc),
        status=status,
    )
    slices = practitioner_slices or {}
    for position, practitioner_id in enumerate(practitioner_ids):
        link = BookingPractitioner(practitioner_id=practitioner_id, position=position)
        if practitioner_id in slices:
            part_start, part_end = slices[practitioner_id]
            link.start_time = part_start.astimezone(timezone.utc)
            link.end_time = part_end.astimezone(timezone.utc)
        booking.practitioners.append(link)
    db_session.add(booking)
    db_session.flush()
    return booking


def create_setting(
    db_session: Session,
    key: str,
    value: Optional[str],
    tenant_id: str = TENANT_ID
) -> PracticeSetting:
    """Helper to store a practice setting."""
    setting = PracticeSetting(tenant_id=tenant_id, key=key, value=value)
    db_session.add(setting)
    return setting
