# pyright: reportMissingTypeStubs=false
"""
Availability & Booking API endpoints.

Thin request handlers over AvailabilityService and BookingService. Every
route is scoped by the tenant in the path; engine errors are mapped to HTTP
status codes here and nowhere else.
"""

import logging
from datetime import date as date_type, datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.constants import MAX_AVAILABILITY_WINDOW_DAYS
from core.database import get_db
from core.exceptions import (
    AvailabilityUnavailable, BookingNotFound, BookingWindowViolation, InvalidTimeFormat, SchedulingError, SlotConflict,
)
from models import Booking
from services import AvailabilityService, BookingService, SettingsService
from services.schedule_repository import ScheduleRepository
from shared_types.availability import AppointmentMode, DayOfWeek
from utils.datetime_utils import ensure_utc, local_day_bounds, parse_date_string, to_local, utc_now
from api.responses import (
    AvailabilityResponse, AvailableSlotResponse, AvailableSlotsResponse, BookingListResponse, BookingResponse,
    ConflictDetail, DayAvailabilityResponse, DaySlotsResponse, IntervalResponse, PractitionerSliceResponse,
    SlotValidationResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

SLOT_UNAVAILABLE_MESSAGE = "The selected time slot is no longer available"
TRY_AGAIN_MESSAGE = "Availability could not be checked, please try again"


# ===== Request Models =====

class PractitionerSliceRequest(BaseModel):
    """Part of the slot one practitioner attends (practice-local times)."""
    practitioner_id: int
    start_time: str
    end_time: str


class CandidateRequest(BaseModel):
    """Request model for a candidate slot (start_time in practice-local time)."""
    practitioner_ids: List[int]
    location_id: Optional[int] = None
    start_time: str  # Format: "YYYY-MM-DD HH:MM[:SS]"
    practitioner_slices: List[PractitionerSliceRequest] = []

    @field_validator('practitioner_ids')
    @classmethod
    def validate_practitioner_ids(cls, v: List[int]) -> List[int]:
        if not v:
            raise ValueError('At least one practitioner must be specified')
        return list(dict.fromkeys(v))

    def slice_map(self) -> Dict[int, Tuple[str, str]]:
        return {part.practitioner_id: (part.start_time, part.end_time) for part in self.practitioner_slices}


class BookingCreateRequest(CandidateRequest):
    """Request model for creating a booking."""
    mode: AppointmentMode = AppointmentMode.IN_PERSON
    service_id: Optional[int] = None
    status: str = 'pending'
    enforce_booking_window: bool = True  # Self-service requests; staff may bypass


class BookingCancelRequest(BaseModel):
    """Request model for cancelling a booking."""
    status: str = 'cancelled'


# ===== Dependencies & Helpers =====

def get_clock() -> Callable[[], datetime]:
    """Clock dependency (overridden in tests)."""
    return utc_now


def _build_service(db: Session, tenant_id: str, clock: Callable[[], datetime]) -> AvailabilityService:
    """Resolve tenant context and settings, then build the availability façade."""
    try:
        context = SettingsService.get_practice_context(db, tenant_id)
        settings = SettingsService.get_booking_settings(db, tenant_id)
    except SQLAlchemyError as e:
        logger.exception(f"Failed to load settings for tenant {tenant_id}: {e}")
        db.rollback()
        raise AvailabilityUnavailable("Could not read practice settings") from e
    return AvailabilityService(ScheduleRepository(db, tenant_id), context, settings, clock)


def _to_http_exception(e: SchedulingError) -> HTTPException:
    """Map an engine error to its HTTP response."""
    if isinstance(e, SlotConflict):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=ConflictDetail(
                message=SLOT_UNAVAILABLE_MESSAGE,
                conflicting_booking_ids=e.conflicting_booking_ids,
                practitioner_ids=e.practitioner_ids,
            ).model_dump()
        )
    if isinstance(e, (InvalidTimeFormat, BookingWindowViolation)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if isinstance(e, BookingNotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, AvailabilityUnavailable):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=TRY_AGAIN_MESSAGE)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


def _resolve_date_window(
    service: AvailabilityService,
    start_date: Optional[str],
    end_date: Optional[str]
) -> Tuple[date_type, date_type]:
    """Parse the requested local date window; defaults to one week from today."""
    today = to_local(service.clock(), service.context.timezone).date()
    start = parse_date_string(start_date) if start_date else today
    end = parse_date_string(end_date) if end_date else start + timedelta(days=6)

    if start > end:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start_date cannot be after end_date"
        )
    if (end - start).days >= MAX_AVAILABILITY_WINDOW_DAYS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Date range cannot exceed {MAX_AVAILABILITY_WINDOW_DAYS} days"
        )
    return start, end


def _booking_response(booking: Booking) -> BookingResponse:
    return BookingResponse(
        id=booking.id,
        tenant_id=booking.tenant_id,
        practitioner_ids=booking.practitioner_ids,
        location_id=booking.location_id,
        service_id=booking.service_id,
        mode=booking.mode,
        status=booking.status,
        start_time=ensure_utc(booking.start_time),
        end_time=ensure_utc(booking.end_time),
        practitioner_slices=[
            PractitionerSliceResponse(
                practitioner_id=link.practitioner_id,
                start_time=ensure_utc(link.start_time or booking.start_time),
                end_time=ensure_utc(link.end_time or booking.end_time),
            )
            for link in booking.practitioners
            if link.start_time is not None or link.end_time is not None
        ],
    )


# ===== Endpoints =====

@router.get("/tenants/{tenant_id}/availability",
            summary="Get free availability for one or more practitioners")
async def get_availability(
    tenant_id: str,
    practitioner_ids: List[int] = Query(default=[]),
    service_id: Optional[int] = Query(default=None),
    location_id: Optional[int] = Query(default=None),
    mode: AppointmentMode = Query(default=AppointmentMode.IN_PERSON),
    start_date: Optional[str] = Query(default=None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(default=None, description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock)
) -> AvailabilityResponse:
    """
    Get availability for the requested practitioners or service.

    Explicit practitioners must all be free together; a service alone is
    free wherever any offering practitioner is. Returns the recurring weekly
    window (overrides, general availability and tenant day restrictions) and
    the free intervals per date after subtracting active bookings and applying
    the practice's booking window. Nothing free is an empty result, not an
    error.
    """
    try:
        service = _build_service(db, tenant_id, clock)
        start, end = _resolve_date_window(service, start_date, end_date)

        ids = service.resolve_practitioner_ids(practitioner_ids, service_id)
        weekly = service.get_weekly_availability(practitioner_ids, service_id, location_id, mode)
        dated = service.get_availability(practitioner_ids, service_id, location_id, mode, start, end)

        return AvailabilityResponse(
            practitioner_ids=ids,
            timezone=service.context.timezone,
            weekly={
                day.value: [IntervalResponse(**interval.to_dict()) for interval in weekly[day]]
                for day in DayOfWeek if day in weekly
            },
            dates=[
                DayAvailabilityResponse(
                    date=day.date.isoformat(),
                    day_of_week=day.day_of_week.value,
                    intervals=[IntervalResponse(**interval.to_dict()) for interval in day.intervals],
                )
                for _, day in sorted(dated.items())
            ],
        )
    except HTTPException:
        raise
    except SchedulingError as e:
        raise _to_http_exception(e)
    except Exception as e:
        logger.exception(f"Failed to fetch availability for tenant {tenant_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not fetch availability"
        )


@router.get("/tenants/{tenant_id}/availability/slots",
            summary="Get bookable slots for one or more practitioners")
async def get_available_slots(
    tenant_id: str,
    practitioner_ids: List[int] = Query(default=[]),
    service_id: Optional[int] = Query(default=None),
    location_id: Optional[int] = Query(default=None),
    mode: AppointmentMode = Query(default=AppointmentMode.IN_PERSON),
    start_date: Optional[str] = Query(default=None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(default=None, description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock)
) -> AvailableSlotsResponse:
    """Get session-length slots that fit entirely inside free intervals."""
    try:
        service = _build_service(db, tenant_id, clock)
        start, end = _resolve_date_window(service, start_date, end_date)

        ids = service.resolve_practitioner_ids(practitioner_ids, service_id)
        slots_by_date = service.get_available_slots(practitioner_ids, service_id, location_id, mode, start, end)

        return AvailableSlotsResponse(
            practitioner_ids=ids,
            timezone=service.context.timezone,
            session_duration_minutes=service.settings.session_duration_minutes,
            dates=[
                DaySlotsResponse(
                    date=day_date.isoformat(),
                    slots=[AvailableSlotResponse(**slot.to_dict()) for slot in slots],
                )
                for day_date, slots in sorted(slots_by_date.items())
            ],
        )
    except HTTPException:
        raise
    except SchedulingError as e:
        raise _to_http_exception(e)
    except Exception as e:
        logger.exception(f"Failed to fetch available slots for tenant {tenant_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not fetch available slots"
        )


@router.post("/tenants/{tenant_id}/bookings/validate",
             summary="Check that a candidate slot is free")
async def validate_booking_slot(
    tenant_id: str,
    request: CandidateRequest,
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock)
) -> SlotValidationResponse:
    """
    Check a candidate against existing bookings of every practitioner.

    Returns 409 with the conflicting booking ids when any practitioner is
    already booked.
    """
    try:
        service = _build_service(db, tenant_id, clock)
        candidate = service.build_candidate(
            request.practitioner_ids, request.location_id, request.start_time, request.slice_map()
        )
        service.validate_candidate(candidate)
        return SlotValidationResponse(
            available=True,
            start_time=candidate.start_time.isoformat(),
            end_time=candidate.end_time.isoformat(),
        )
    except SchedulingError as e:
        raise _to_http_exception(e)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.exception(f"Failed to validate slot for tenant {tenant_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not validate slot"
        )


@router.post("/tenants/{tenant_id}/bookings",
             summary="Create a booking",
             status_code=status.HTTP_201_CREATED)
async def create_booking(
    tenant_id: str,
    request: BookingCreateRequest,
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock)
) -> BookingResponse:
    """
    Create a booking after re-checking the slot under lock.

    Self-service requests enforce the advance-booking window; the conflict
    check always applies.
    """
    try:
        service = _build_service(db, tenant_id, clock)
        candidate = service.build_candidate(
            request.practitioner_ids, request.location_id, request.start_time, request.slice_map()
        )
        if request.enforce_booking_window:
            service.check_booking_window(candidate)

        booking = BookingService.create_booking(
            db,
            service.context,
            service.settings,
            candidate,
            mode=request.mode,
            service_id=request.service_id,
            status=request.status,
            clock=clock,
        )
        return _booking_response(booking)
    except SchedulingError as e:
        raise _to_http_exception(e)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.exception(f"Failed to create booking for tenant {tenant_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not create booking"
        )


@router.post("/tenants/{tenant_id}/bookings/{booking_id}/cancel",
             summary="Cancel a booking")
async def cancel_booking(
    tenant_id: str,
    booking_id: int,
    request: Optional[BookingCancelRequest] = None,
    db: Session = Depends(get_db)
) -> BookingResponse:
    """Mark a booking cancelled (or no-show); its slot becomes free again."""
    try:
        cancel_status = request.status if request else 'cancelled'
        booking = BookingService.cancel_booking(db, tenant_id, booking_id, cancel_status)
        return _booking_response(booking)
    except SchedulingError as e:
        raise _to_http_exception(e)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.exception(f"Failed to cancel booking {booking_id} for tenant {tenant_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not cancel booking"
        )


@router.get("/tenants/{tenant_id}/bookings/{booking_id}",
            summary="Get a booking")
async def get_booking(
    tenant_id: str,
    booking_id: int,
    db: Session = Depends(get_db)
) -> BookingResponse:
    """Get one booking of the tenant, including cancelled ones."""
    try:
        booking = BookingService.get_booking(db, tenant_id, booking_id)
        return _booking_response(booking)
    except SchedulingError as e:
        raise _to_http_exception(e)
    except Exception as e:
        logger.exception(f"Failed to fetch booking {booking_id} for tenant {tenant_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not fetch booking"
        )


@router.get("/tenants/{tenant_id}/practitioners/{practitioner_id}/bookings",
            summary="List a practitioner's active bookings")
async def list_practitioner_bookings(
    tenant_id: str,
    practitioner_id: int,
    start_date: Optional[str] = Query(default=None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(default=None, description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
    clock: Callable[[], datetime] = Depends(get_clock)
) -> BookingListResponse:
    """Get the practitioner's active bookings overlapping the local date window, at any location."""
    try:
        service = _build_service(db, tenant_id, clock)
        start, end = _resolve_date_window(service, start_date, end_date)
        window_start, _ = local_day_bounds(start, service.context.timezone)
        _, window_end = local_day_bounds(end, service.context.timezone)

        bookings = BookingService.list_practitioner_bookings(db, tenant_id, practitioner_id, window_start, window_end)
        return BookingListResponse(
            practitioner_id=practitioner_id,
            timezone=service.context.timezone,
            bookings=[_booking_response(booking) for booking in bookings],
        )
    except HTTPException:
        raise
    except SchedulingError as e:
        raise _to_http_exception(e)
    except Exception as e:
        logger.exception(f"Failed to list bookings of practitioner {practitioner_id} for tenant {tenant_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not list bookings"
        )
