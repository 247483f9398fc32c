"""Request and response schemas for slot and weekly-template endpoints."""

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import Field

from ..core.enums import SlotStatus
from .base import StandardizedModel, StrictRequestModel


class TimeSlotResponse(StandardizedModel):
    tutor_id: str
    slot_date: date = Field(..., serialization_alias="date")
    hour: int
    status: SlotStatus
    booking_id: Optional[str] = None
    starts_at: datetime
    duration_minutes: int


class SlotListResponse(StandardizedModel):
    tutor_id: str
    start: date
    end: date
    slots: List[TimeSlotResponse]


class DayHoursRequest(StrictRequestModel):
    hours: List[int] = Field(default_factory=list, description="Hours that should be AVAILABLE")


class DayEditResponse(StandardizedModel):
    slot_date: date = Field(..., serialization_alias="date")
    added: List[int]
    removed: List[int]
    kept_occupied: List[int]
    skipped_past: List[int]


class PatternRequest(StrictRequestModel):
    hours: List[int] = Field(default_factory=list)


class PatternResponse(StandardizedModel):
    tutor_id: str
    pattern: Dict[int, List[int]] = Field(..., description="Weekday (0=Monday) to hours")


class MaterializeRequest(StrictRequestModel):
    week_start: date = Field(..., description="Any date in the target week")
    # Uncommitted pattern to use instead of the saved one
    pattern: Optional[Dict[int, List[int]]] = None


class CopyDayRequest(StrictRequestModel):
    source_date: date
    target_date: date


class CopyWeekRequest(StrictRequestModel):
    from_week_start: date
    to_week_start: date


class BulkCreateRequest(StrictRequestModel):
    weekday: int = Field(..., description="0=Monday ... 6=Sunday")
    hour: int
    week_count: int


class CreatedSlotsResponse(StandardizedModel):
    created: int
    slots: List[TimeSlotResponse]


class ClearFutureResponse(StandardizedModel):
    removed: int
    skipped_booked: int


class WindowStatisticsResponse(StandardizedModel):
    start_date: date
    end_date: date
    available: int
    pending: int
    booked: int
    unavailable: int
    active_days: int


class TutorStatisticsResponse(StandardizedModel):
    tutor_id: str
    upcoming: WindowStatisticsResponse
    this_week: WindowStatisticsResponse
    completed_bookings: int
