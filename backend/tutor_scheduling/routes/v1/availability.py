# backend/tutor_scheduling/routes/v1/availability.py
"""
Tutor availability routes - API v1

Versioned availability endpoints under /api/v1/tutors.
All business logic delegated to SlotStore, WeeklyTemplateService,
SchedulingService and AuditService.

Endpoints:
    GET /{tutor_id}/slots - Slots in a date range
    PUT /{tutor_id}/slots/{date}/{hour} - Make one hour available
    DELETE /{tutor_id}/slots/{date}/{hour} - Remove one unbooked hour
    PUT /{tutor_id}/days/{date} - Replace the available hours of a date
    GET /{tutor_id}/template - Committed weekly pattern
    PUT /{tutor_id}/template/{weekday} - Replace one weekday of the pattern
    POST /{tutor_id}/template/materialize - Generate a week of slots
    POST /{tutor_id}/copy-day - Copy one date's hours onto another
    POST /{tutor_id}/copy-week - Copy a week onto another
    POST /{tutor_id}/bulk-create - Same hour for N successive weeks
    POST /{tutor_id}/clear-future - Remove all future unbooked hours
    GET /{tutor_id}/audit - Recent slot changes
    GET /{tutor_id}/audit/stats - Change summary
    GET /{tutor_id}/stats - Slot statistics
"""

import asyncio
from datetime import date, timedelta
import logging
from typing import List, NoReturn, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, status

from ...api.dependencies import (
    get_actor,
    get_audit_service,
    get_scheduling_service,
    get_slot_store,
    get_weekly_template_service,
    require_owner,
)
from ...core.exceptions import DomainException
from ...core.timezone_utils import clock_today
from ...models.time_slot import TimeSlot
from ...principal import Actor
from ...schemas.audit import AuditEntryResponse, AuditHistoryResponse, ChangeStatsResponse
from ...schemas.availability import (
    BulkCreateRequest,
    ClearFutureResponse,
    CopyDayRequest,
    CopyWeekRequest,
    CreatedSlotsResponse,
    DayEditResponse,
    DayHoursRequest,
    MaterializeRequest,
    PatternRequest,
    PatternResponse,
    SlotListResponse,
    TimeSlotResponse,
    TutorStatisticsResponse,
    WindowStatisticsResponse,
)
from ...services.audit_service import AuditService
from ...services.scheduling_service import SchedulingService
from ...services.slot_store import SlotStore
from ...services.weekly_template_service import TemplateDraft, WeeklyTemplateService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["availability-v1"])

# Default span of GET /slots when no end date is given
DEFAULT_RANGE_DAYS = 6


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def _slot_list(slots: List[TimeSlot]) -> List[TimeSlotResponse]:
    return [TimeSlotResponse.model_validate(slot) for slot in slots]


# ============================================================================
# Slots
# ============================================================================


@router.get("/{tutor_id}/slots", response_model=SlotListResponse)
async def list_slots(
    tutor_id: str = Path(..., min_length=1),
    start: Optional[date] = Query(None, description="First date (defaults to today)"),
    end: Optional[date] = Query(None, description="Last date, inclusive"),
    actor: Actor = Depends(get_actor),
    slot_store: SlotStore = Depends(get_slot_store),
) -> SlotListResponse:
    """List a tutor's slots between two dates. Readable by any caller."""
    start_date = start or clock_today(slot_store.clock)
    end_date = end or start_date + timedelta(days=DEFAULT_RANGE_DAYS)
    try:
        slots = await asyncio.to_thread(
            slot_store.list_for_range, tutor_id, start_date, end_date
        )
    except DomainException as e:
        handle_domain_exception(e)
    return SlotListResponse(
        tutor_id=tutor_id,
        start=min(start_date, end_date),
        end=max(start_date, end_date),
        slots=_slot_list(slots),
    )


@router.put("/{tutor_id}/slots/{slot_date}/{hour}", response_model=TimeSlotResponse)
async def upsert_slot(
    tutor_id: str,
    slot_date: date,
    hour: int,
    actor: Actor = Depends(get_actor),
    slot_store: SlotStore = Depends(get_slot_store),
) -> TimeSlotResponse:
    """Make one hour AVAILABLE (idempotent)."""
    require_owner(actor, tutor_id)
    try:
        slot = await asyncio.to_thread(
            slot_store.upsert_available, tutor_id, slot_date, hour, actor_id=actor.id
        )
    except DomainException as e:
        handle_domain_exception(e)
    return TimeSlotResponse.model_validate(slot)


@router.delete("/{tutor_id}/slots/{slot_date}/{hour}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_slot(
    tutor_id: str,
    slot_date: date,
    hour: int,
    actor: Actor = Depends(get_actor),
    slot_store: SlotStore = Depends(get_slot_store),
) -> None:
    """Remove an unbooked hour. Removing a missing hour is a no-op."""
    require_owner(actor, tutor_id)
    try:
        await asyncio.to_thread(slot_store.remove, tutor_id, slot_date, hour, actor_id=actor.id)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{tutor_id}/slots/{slot_date}/{hour}/block", response_model=TimeSlotResponse)
async def block_slot(
    tutor_id: str,
    slot_date: date,
    hour: int,
    actor: Actor = Depends(get_actor),
    slot_store: SlotStore = Depends(get_slot_store),
) -> TimeSlotResponse:
    """Mark an AVAILABLE hour UNAVAILABLE without deleting it."""
    require_owner(actor, tutor_id)
    try:
        slot = await asyncio.to_thread(
            slot_store.set_unavailable, tutor_id, slot_date, hour, actor_id=actor.id
        )
    except DomainException as e:
        handle_domain_exception(e)
    return TimeSlotResponse.model_validate(slot)


@router.post("/{tutor_id}/slots/{slot_date}/{hour}/unblock", response_model=TimeSlotResponse)
async def unblock_slot(
    tutor_id: str,
    slot_date: date,
    hour: int,
    actor: Actor = Depends(get_actor),
    slot_store: SlotStore = Depends(get_slot_store),
) -> TimeSlotResponse:
    require_owner(actor, tutor_id)
    try:
        slot = await asyncio.to_thread(
            slot_store.set_available, tutor_id, slot_date, hour, actor_id=actor.id
        )
    except DomainException as e:
        handle_domain_exception(e)
    return TimeSlotResponse.model_validate(slot)


@router.put("/{tutor_id}/days/{slot_date}", response_model=DayEditResponse)
async def set_day_hours(
    tutor_id: str,
    slot_date: date,
    payload: DayHoursRequest = Body(...),
    actor: Actor = Depends(get_actor),
    template_service: WeeklyTemplateService = Depends(get_weekly_template_service),
) -> DayEditResponse:
    """Make the AVAILABLE hours of ``slot_date`` exactly ``payload.hours``."""
    require_owner(actor, tutor_id)
    try:
        result = await asyncio.to_thread(
            template_service.set_day_hours,
            tutor_id,
            slot_date,
            payload.hours,
            actor_id=actor.id,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return DayEditResponse.model_validate(result)


# ============================================================================
# Weekly template
# ============================================================================


@router.get("/{tutor_id}/template", response_model=PatternResponse)
async def get_template(
    tutor_id: str,
    actor: Actor = Depends(get_actor),
    template_service: WeeklyTemplateService = Depends(get_weekly_template_service),
) -> PatternResponse:
    require_owner(actor, tutor_id)
    pattern = await asyncio.to_thread(template_service.get_pattern, tutor_id)
    return PatternResponse(
        tutor_id=tutor_id,
        pattern={weekday: sorted(hours) for weekday, hours in pattern.items()},
    )


@router.put("/{tutor_id}/template/{weekday}", response_model=PatternResponse)
async def set_template_day(
    tutor_id: str,
    weekday: int,
    payload: PatternRequest = Body(...),
    actor: Actor = Depends(get_actor),
    template_service: WeeklyTemplateService = Depends(get_weekly_template_service),
) -> PatternResponse:
    """Replace the committed hours for one weekday (0=Monday)."""
    require_owner(actor, tutor_id)
    try:
        await asyncio.to_thread(template_service.set_pattern, tutor_id, weekday, payload.hours)
    except DomainException as e:
        handle_domain_exception(e)
    pattern = await asyncio.to_thread(template_service.get_pattern, tutor_id)
    return PatternResponse(
        tutor_id=tutor_id,
        pattern={day: sorted(hours) for day, hours in pattern.items()},
    )


@router.post("/{tutor_id}/template/materialize", response_model=CreatedSlotsResponse)
async def materialize_template(
    tutor_id: str,
    payload: MaterializeRequest = Body(...),
    actor: Actor = Depends(get_actor),
    template_service: WeeklyTemplateService = Depends(get_weekly_template_service),
) -> CreatedSlotsResponse:
    """
    Generate AVAILABLE slots for the week containing ``week_start``.

    When ``pattern`` is given it is used as an uncommitted draft; otherwise
    the saved pattern applies.
    """
    require_owner(actor, tutor_id)
    try:
        draft: Optional[TemplateDraft] = None
        if payload.pattern is not None:
            draft = TemplateDraft(tutor_id=tutor_id)
            for weekday, hours in payload.pattern.items():
                draft.set_day(weekday, hours)
        created = await asyncio.to_thread(
            template_service.materialize,
            tutor_id,
            payload.week_start,
            draft,
            actor_id=actor.id,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return CreatedSlotsResponse(created=len(created), slots=_slot_list(created))


# ============================================================================
# Bulk edits
# ============================================================================


@router.post("/{tutor_id}/copy-day", response_model=CreatedSlotsResponse)
async def copy_day(
    tutor_id: str,
    payload: CopyDayRequest = Body(...),
    actor: Actor = Depends(get_actor),
    template_service: WeeklyTemplateService = Depends(get_weekly_template_service),
) -> CreatedSlotsResponse:
    require_owner(actor, tutor_id)
    try:
        slots = await asyncio.to_thread(
            template_service.copy_day,
            tutor_id,
            payload.source_date,
            payload.target_date,
            actor_id=actor.id,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return CreatedSlotsResponse(created=len(slots), slots=_slot_list(slots))


@router.post("/{tutor_id}/copy-week", response_model=CreatedSlotsResponse)
async def copy_week(
    tutor_id: str,
    payload: CopyWeekRequest = Body(...),
    actor: Actor = Depends(get_actor),
    template_service: WeeklyTemplateService = Depends(get_weekly_template_service),
) -> CreatedSlotsResponse:
    require_owner(actor, tutor_id)
    try:
        copied = await asyncio.to_thread(
            template_service.copy_week,
            tutor_id,
            payload.from_week_start,
            payload.to_week_start,
            actor_id=actor.id,
        )
    except DomainException as e:
        handle_domain_exception(e)
    slots = [slot for day in sorted(copied) for slot in copied[day]]
    return CreatedSlotsResponse(created=len(slots), slots=_slot_list(slots))


@router.post(
    "/{tutor_id}/bulk-create",
    response_model=CreatedSlotsResponse,
    status_code=status.HTTP_201_CREATED,
)
async def bulk_create(
    tutor_id: str,
    payload: BulkCreateRequest = Body(...),
    actor: Actor = Depends(get_actor),
    template_service: WeeklyTemplateService = Depends(get_weekly_template_service),
) -> CreatedSlotsResponse:
    require_owner(actor, tutor_id)
    try:
        created = await asyncio.to_thread(
            template_service.bulk_create,
            tutor_id,
            payload.weekday,
            payload.hour,
            payload.week_count,
            actor_id=actor.id,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return CreatedSlotsResponse(created=len(created), slots=_slot_list(created))


@router.post("/{tutor_id}/clear-future", response_model=ClearFutureResponse)
async def clear_future(
    tutor_id: str,
    actor: Actor = Depends(get_actor),
    template_service: WeeklyTemplateService = Depends(get_weekly_template_service),
) -> ClearFutureResponse:
    """Remove every future AVAILABLE hour; booked hours are reported as skipped."""
    require_owner(actor, tutor_id)
    try:
        result = await asyncio.to_thread(
            template_service.clear_future, tutor_id, actor_id=actor.id
        )
    except DomainException as e:
        handle_domain_exception(e)
    return ClearFutureResponse(removed=result.removed, skipped_booked=result.skipped_booked)


# ============================================================================
# Reporting
# ============================================================================


@router.get("/{tutor_id}/audit", response_model=AuditHistoryResponse)
async def get_audit_history(
    tutor_id: str,
    since_days: int = Query(30, ge=0, le=365),
    actor: Actor = Depends(get_actor),
    audit_service: AuditService = Depends(get_audit_service),
) -> AuditHistoryResponse:
    require_owner(actor, tutor_id)
    entries = await asyncio.to_thread(audit_service.history, tutor_id, since_days)
    return AuditHistoryResponse(
        tutor_id=tutor_id,
        since_days=since_days,
        entries=[AuditEntryResponse.model_validate(entry) for entry in entries],
    )


@router.get("/{tutor_id}/audit/stats", response_model=ChangeStatsResponse)
async def get_change_stats(
    tutor_id: str,
    days: int = Query(30, ge=1, le=365),
    actor: Actor = Depends(get_actor),
    audit_service: AuditService = Depends(get_audit_service),
) -> ChangeStatsResponse:
    require_owner(actor, tutor_id)
    stats = await asyncio.to_thread(audit_service.change_stats, tutor_id, days)
    return ChangeStatsResponse(
        tutor_id=tutor_id,
        days=days,
        total_changes=stats.total_changes,
        slots_added=stats.slots_added,
        slots_removed=stats.slots_removed,
        most_active_day=stats.most_active_day,
        avg_changes_per_day=stats.avg_changes_per_day,
    )


@router.get("/{tutor_id}/stats", response_model=TutorStatisticsResponse)
async def get_statistics(
    tutor_id: str,
    actor: Actor = Depends(get_actor),
    scheduling_service: SchedulingService = Depends(get_scheduling_service),
) -> TutorStatisticsResponse:
    """Slot counts for the next seven days and for the current Monday-start week."""
    require_owner(actor, tutor_id)
    stats = await asyncio.to_thread(scheduling_service.tutor_statistics, tutor_id)
    return TutorStatisticsResponse(
        tutor_id=tutor_id,
        upcoming=WindowStatisticsResponse.model_validate(stats.upcoming),
        this_week=WindowStatisticsResponse.model_validate(stats.this_week),
        completed_bookings=stats.completed_bookings,
    )

