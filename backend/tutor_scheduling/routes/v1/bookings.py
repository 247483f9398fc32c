# backend/tutor_scheduling/routes/v1/bookings.py
"""
Booking routes - API v1

Versioned booking endpoints under /api/v1/bookings.
All business logic delegated to SchedulingService.

Endpoints:
    POST / - Claim a slot and create a PENDING booking
    GET / - List bookings visible to the caller
    GET /{booking_id} - Booking details
    POST /{booking_id}/confirm - Tutor confirms a PENDING booking
    POST /{booking_id}/complete - Tutor marks a started booking completed
    POST /{booking_id}/cancel - Either party cancels
"""

import asyncio
import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, status

from ...api.dependencies import get_actor, get_scheduling_service
from ...core.constants import DEFAULT_QUERY_LIMIT, MAX_QUERY_LIMIT
from ...core.enums import BookingStatus
from ...core.exceptions import DomainException
from ...principal import Actor
from ...schemas.booking import (
    BookingCancel,
    BookingCreate,
    BookingListResponse,
    BookingResponse,
)
from ...services.scheduling_service import ContactInfo, SchedulingService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])

ULID_PATH_PATTERN = r"^[0-9A-HJKMNP-TV-Z]{26}$"


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post(
    "",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "Slot was just taken"}},
)
async def create_booking(
    booking_data: BookingCreate = Body(...),
    actor: Actor = Depends(get_actor),
    scheduling_service: SchedulingService = Depends(get_scheduling_service),
) -> BookingResponse:
    """Book a tutor's hour for the calling learner."""
    contact = ContactInfo(
        name=booking_data.contact_name,
        email=str(booking_data.contact_email) if booking_data.contact_email else None,
        phone=booking_data.contact_phone,
        notes=booking_data.notes,
    )
    try:
        booking = await asyncio.to_thread(
            scheduling_service.book,
            booking_data.tutor_id,
            actor.id,
            booking_data.session_id,
            booking_data.slot_date,
            booking_data.hour,
            contact,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    limit: int = Query(DEFAULT_QUERY_LIMIT, ge=1, le=MAX_QUERY_LIMIT),
    actor: Actor = Depends(get_actor),
    scheduling_service: SchedulingService = Depends(get_scheduling_service),
) -> BookingListResponse:
    bookings = await asyncio.to_thread(
        scheduling_service.list_bookings, actor, status_filter, limit
    )
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(booking) for booking in bookings],
        total=len(bookings),
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str = Path(..., description="Booking ULID", pattern=ULID_PATH_PATTERN),
    actor: Actor = Depends(get_actor),
    scheduling_service: SchedulingService = Depends(get_scheduling_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(scheduling_service.get_booking, booking_id, actor)
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking(
    booking_id: str = Path(..., description="Booking ULID", pattern=ULID_PATH_PATTERN),
    actor: Actor = Depends(get_actor),
    scheduling_service: SchedulingService = Depends(get_scheduling_service),
) -> BookingResponse:
    """Confirm a PENDING booking (tutor only)."""
    try:
        booking = await asyncio.to_thread(scheduling_service.confirm, booking_id, actor)
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: str = Path(..., description="Booking ULID", pattern=ULID_PATH_PATTERN),
    actor: Actor = Depends(get_actor),
    scheduling_service: SchedulingService = Depends(get_scheduling_service),
) -> BookingResponse:
    """Mark a CONFIRMED booking completed once its hour has started."""
    try:
        booking = await asyncio.to_thread(scheduling_service.complete, booking_id, actor)
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: str = Path(..., description="Booking ULID", pattern=ULID_PATH_PATTERN),
    cancel_data: Optional[BookingCancel] = Body(None),
    actor: Actor = Depends(get_actor),
    scheduling_service: SchedulingService = Depends(get_scheduling_service),
) -> BookingResponse:
    """Cancel a booking and release its slot."""
    try:
        booking = await asyncio.to_thread(
            scheduling_service.cancel,
            booking_id,
            actor,
            cancel_data.reason if cancel_data else None,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)
