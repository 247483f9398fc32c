# backend/tutor_scheduling/schemas/booking.py
"""
Booking schemas for the scheduling engine.

A booking request names a tutor slot by (tutor_id, date, hour). Hour
validity is checked by the service so that every caller gets the same
domain error, not a schema error.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import EmailStr, Field, field_validator

from ..core.enums import BookingStatus
from .base import Money, StandardizedModel, StrictRequestModel


class BookingCreate(StrictRequestModel):
    """Request to claim a slot and open a PENDING booking."""

    tutor_id: str = Field(..., min_length=1)
    session_id: str = Field(..., description="Catalog session being booked")
    slot_date: date = Field(..., alias="date")
    hour: int
    contact_name: Optional[str] = Field(None, max_length=255)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=64)
    notes: Optional[str] = Field(None, max_length=2000)

    model_config = StrictRequestModel.model_config | {"populate_by_name": True}

    @field_validator("contact_name", "contact_phone", "notes")
    @classmethod
    def _blank_to_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        stripped = value.strip()
        return stripped or None


class BookingCancel(StrictRequestModel):
    reason: Optional[str] = Field(None, max_length=500)


class BookingResponse(StandardizedModel):
    id: str
    tutor_id: str
    learner_id: str
    session_id: str
    session_title: Optional[str] = None
    slot_date: date = Field(..., serialization_alias="date")
    hour: int
    starts_at: datetime
    status: BookingStatus
    price: Money
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[str] = None
    cancellation_reason: Optional[str] = None


class BookingListResponse(StandardizedModel):
    bookings: List[BookingResponse]
    total: int
