# backend/tutor_scheduling/services/weekly_template_service.py
"""
Weekly Template Service for the scheduling engine.

Handles recurring availability and bulk slot editing:
- Committed weekday -> hours patterns, edited through a staged TemplateDraft
- Materializing a pattern into concrete slots for a week
- Copying a day or a week, bulk creation across weeks, clearing the future
- Replacing the available hours of a single date

Every slot write goes through SlotStore, so bulk edits take the same
conditional path as booking claims and never overwrite an occupied slot.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
import logging
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy.orm import Session

from ..core.clock import Clock
from ..core.constants import ALLOWED_HOURS, DAYS_IN_WEEK, MAX_BULK_WEEKS
from ..core.enums import AuditReason, SlotStatus
from ..core.exceptions import (
    EmptySourceError,
    PastDateError,
    SlotBookedError,
    ValidationException,
)
from ..core.timezone_utils import (
    is_past,
    local_today,
    next_weekday_occurrence,
    week_dates,
    week_start,
)
from ..models.time_slot import TimeSlot
from ..repositories import RepositoryFactory
from ..repositories.weekly_template_repository import WeeklyTemplateRepository
from .base import BaseService
from .slot_store import SlotStore, validate_hour

logger = logging.getLogger(__name__)

LAST_HOUR = max(ALLOWED_HOURS)


def validate_weekday(weekday: int) -> None:
    valid_type = isinstance(weekday, int) and not isinstance(weekday, bool)
    if not valid_type or not 0 <= weekday < DAYS_IN_WEEK:
        raise ValidationException(
            f"Weekday must be 0 (Monday) to 6 (Sunday), got {weekday}",
            code="INVALID_WEEKDAY",
            details={"weekday": weekday},
        )


def validate_hours(hours: Iterable[int]) -> Set[int]:
    """Validate every hour before anything is written; returns them as a set."""
    hour_set = set()
    for hour in hours:
        validate_hour(hour)
        hour_set.add(hour)
    return hour_set


@dataclass
class TemplateDraft:
    """
    Staged edits to a tutor's weekly pattern.

    A draft is a private copy; nothing reads it until it is committed with
    ``commit_draft`` or passed explicitly to ``materialize``.
    """

    tutor_id: str
    days: Dict[int, Set[int]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for weekday in range(DAYS_IN_WEEK):
            self.days.setdefault(weekday, set())

    def set_day(self, weekday: int, hours: Iterable[int]) -> None:
        validate_weekday(weekday)
        self.days[weekday] = validate_hours(hours)

    def toggle(self, weekday: int, hour: int) -> bool:
        """Flip one hour; returns True if the hour is now part of the pattern."""
        validate_weekday(weekday)
        validate_hour(hour)
        hours = self.days[weekday]
        if hour in hours:
            hours.discard(hour)
            return False
        hours.add(hour)
        return True

    def pattern(self) -> Dict[int, Set[int]]:
        return {weekday: set(hours) for weekday, hours in self.days.items()}


@dataclass
class DayEditResult:
    """Outcome of replacing the available hours of one date."""

    slot_date: date
    added: List[int] = field(default_factory=list)
    removed: List[int] = field(default_factory=list)
    kept_occupied: List[int] = field(default_factory=list)
    skipped_past: List[int] = field(default_factory=list)


@dataclass
class ClearFutureResult:
    removed: int = 0
    skipped_booked: int = 0


class WeeklyTemplateService(BaseService):
    """
    Service for recurring weekly availability and bulk slot edits.
    """

    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        slot_store: Optional[SlotStore] = None,
        repository: Optional[WeeklyTemplateRepository] = None,
    ):
        super().__init__(db, clock)
        self.slot_store = slot_store or SlotStore(db, self.clock)
        self.repository = repository or RepositoryFactory.create_weekly_template_repository(db)

    # Pattern management

    @BaseService.measure_operation("set_pattern")
    def set_pattern(self, tutor_id: str, weekday: int, hours: Iterable[int]) -> Set[int]:
        """
        Replace the committed hours for one weekday.

        Raises:
            InvalidHourError: If any hour is not bookable (nothing is saved)
        """
        validate_weekday(weekday)
        hour_set = validate_hours(hours)
        now = self.clock.now()
        with self.transaction():
            self.repository.upsert_day(tutor_id, weekday, hour_set, now)
        self.log_operation("set_pattern", tutor_id=tutor_id, weekday=weekday, hours=sorted(hour_set))
        return hour_set

    def get_pattern(self, tutor_id: str) -> Dict[int, Set[int]]:
        """Committed pattern for all seven weekdays (empty sets where unset)."""
        stored = self.repository.get_pattern(tutor_id)
        return {weekday: set(stored.get(weekday, [])) for weekday in range(DAYS_IN_WEEK)}

    def stage(self, tutor_id: str) -> TemplateDraft:
        """Start a draft from the committed pattern."""
        return TemplateDraft(tutor_id=tutor_id, days=self.get_pattern(tutor_id))

    @BaseService.measure_operation("commit_draft")
    def commit_draft(self, draft: TemplateDraft) -> Dict[int, Set[int]]:
        """Persist all seven days of a draft in one transaction."""
        pattern = draft.pattern()
        for weekday, hours in pattern.items():
            validate_weekday(weekday)
            validate_hours(hours)
        now = self.clock.now()
        with self.transaction():
            for weekday, hours in pattern.items():
                self.repository.upsert_day(draft.tutor_id, weekday, hours, now)
        self.log_operation("commit_draft", tutor_id=draft.tutor_id)
        return pattern

    # Slot generation

    @BaseService.measure_operation("materialize")
    def materialize(
        self,
        tutor_id: str,
        week_start_date: date,
        draft: Optional[TemplateDraft] = None,
        *,
        actor_id: Optional[str] = None,
    ) -> List[TimeSlot]:
        """
        Create AVAILABLE slots for the Monday-start week containing
        ``week_start_date`` from the committed pattern (or an explicit draft).

        Hours that already have a slot, in any status, are left alone. Past
        hours are skipped. Returns the slots created.
        """
        if draft is not None and draft.tutor_id != tutor_id:
            raise ValidationException(
                "Draft belongs to a different tutor",
                code="DRAFT_TUTOR_MISMATCH",
                details={"tutor_id": tutor_id, "draft_tutor_id": draft.tutor_id},
            )
        pattern = draft.pattern() if draft is not None else self.get_pattern(tutor_id)
        now = self.clock.now()
        days = week_dates(week_start_date)

        existing = {
            (slot.slot_date, slot.hour)
            for slot in self.slot_store.list_for_range(tutor_id, days[0], days[-1])
        }

        created: List[TimeSlot] = []
        for day in days:
            for hour in sorted(pattern.get(day.weekday(), set())):
                if (day, hour) in existing or is_past(day, hour, now):
                    continue
                slot, changed = self.slot_store.ensure_available(
                    tutor_id,
                    day,
                    hour,
                    now=now,
                    reason=AuditReason.TEMPLATE_MATERIALIZE,
                    actor_id=actor_id,
                )
                if changed:
                    created.append(slot)

        self.log_operation(
            "materialize", tutor_id=tutor_id, week_start=days[0].isoformat(), created=len(created)
        )
        return created

    @BaseService.measure_operation("set_day_hours")
    def set_day_hours(
        self,
        tutor_id: str,
        slot_date: date,
        hours: Iterable[int],
        *,
        actor_id: Optional[str] = None,
        reason: AuditReason = AuditReason.TUTOR_EDIT,
        now: Optional[datetime] = None,
    ) -> DayEditResult:
        """
        Make the AVAILABLE hours of one date exactly ``hours``.

        Occupied hours are never removed and are reported as kept. Hours that
        have already started are skipped.

        Raises:
            InvalidHourError: If any hour is not bookable (nothing is written)
            PastDateError: If the whole date is already over
        """
        wanted = validate_hours(hours)
        now = now if now is not None else self.clock.now()
        if is_past(slot_date, LAST_HOUR, now):
            raise PastDateError(tutor_id, slot_date, LAST_HOUR)

        result = DayEditResult(slot_date=slot_date)
        current = {
            slot.hour: slot
            for slot in self.slot_store.list_for_range(tutor_id, slot_date, slot_date)
        }

        for hour in sorted(ALLOWED_HOURS):
            slot = current.get(hour)
            if slot is not None and slot.is_occupied:
                result.kept_occupied.append(hour)
                continue
            is_available = slot is not None and slot.status == SlotStatus.AVAILABLE
            if (hour in wanted) == is_available:
                continue
            if is_past(slot_date, hour, now):
                result.skipped_past.append(hour)
                continue

            if hour in wanted:
                _, changed = self.slot_store.ensure_available(
                    tutor_id, slot_date, hour, now=now, reason=reason, actor_id=actor_id
                )
                if changed:
                    result.added.append(hour)
            else:
                try:
                    self.slot_store.remove(
                        tutor_id, slot_date, hour, now=now, reason=reason, actor_id=actor_id
                    )
                    result.removed.append(hour)
                except SlotBookedError:
                    # Claimed between our read and the conditional delete
                    result.kept_occupied.append(hour)

        self.log_operation(
            "set_day_hours",
            tutor_id=tutor_id,
            date=slot_date.isoformat(),
            added=result.added,
            removed=result.removed,
        )
        return result

    def _available_hours(self, tutor_id: str, slot_date: date) -> Set[int]:
        return {
            slot.hour
            for slot in self.slot_store.list_for_range(tutor_id, slot_date, slot_date)
            if slot.status == SlotStatus.AVAILABLE
        }

    @BaseService.measure_operation("copy_day")
    def copy_day(
        self,
        tutor_id: str,
        source_date: date,
        target_date: date,
        *,
        actor_id: Optional[str] = None,
    ) -> List[TimeSlot]:
        """
        Give ``target_date`` exactly the AVAILABLE hours of ``source_date``.

        Only AVAILABLE source hours are copied; PENDING, BOOKED and
        UNAVAILABLE hours never are. Past target hours are skipped. Returns
        the target's AVAILABLE slots for the copied hours.

        Raises:
            EmptySourceError: The source date has no AVAILABLE hours
        """
        source_hours = self._available_hours(tutor_id, source_date)
        if not source_hours:
            raise EmptySourceError(tutor_id, source_date)
        return self._copy_hours(
            tutor_id, source_hours, target_date, AuditReason.COPY_DAY, actor_id, self.clock.now()
        )

    def _copy_hours(
        self,
        tutor_id: str,
        source_hours: Set[int],
        target_date: date,
        reason: AuditReason,
        actor_id: Optional[str],
        now: datetime,
    ) -> List[TimeSlot]:
        self.set_day_hours(
            tutor_id, target_date, source_hours, actor_id=actor_id, reason=reason, now=now
        )
        return [
            slot
            for slot in self.slot_store.list_for_range(tutor_id, target_date, target_date)
            if slot.hour in source_hours and slot.status == SlotStatus.AVAILABLE
        ]

    @BaseService.measure_operation("copy_week")
    def copy_week(
        self,
        tutor_id: str,
        from_week_start: date,
        to_week_start: date,
        *,
        actor_id: Optional[str] = None,
    ) -> Dict[date, List[TimeSlot]]:
        """
        Copy each day of one Monday-start week onto the matching day of another.

        Source days without AVAILABLE hours are skipped, as are target days
        that are already over.

        Raises:
            EmptySourceError: The whole source week has no AVAILABLE hours
        """
        now = self.clock.now()
        source_days = week_dates(from_week_start)
        target_days = week_dates(to_week_start)

        copied: Dict[date, List[TimeSlot]] = {}
        any_source = False
        for source_day, target_day in zip(source_days, target_days):
            source_hours = self._available_hours(tutor_id, source_day)
            if not source_hours:
                continue
            any_source = True
            if is_past(target_day, LAST_HOUR, now):
                continue
            copied[target_day] = self._copy_hours(
                tutor_id, source_hours, target_day, AuditReason.COPY_WEEK, actor_id, now
            )

        if not any_source:
            raise EmptySourceError(tutor_id, week_start(from_week_start))
        return copied

    @BaseService.measure_operation("bulk_create")
    def bulk_create(
        self,
        tutor_id: str,
        weekday: int,
        hour: int,
        week_count: int,
        *,
        actor_id: Optional[str] = None,
    ) -> List[TimeSlot]:
        """
        Create the (weekday, hour) slot for ``week_count`` successive weeks,
        starting with the first such weekday strictly after today.

        Existing slots are skipped, so repeating the call creates nothing.
        Returns only the slots created by this call.
        """
        validate_weekday(weekday)
        validate_hour(hour)
        valid_count = isinstance(week_count, int) and not isinstance(week_count, bool)
        if not valid_count or not 1 <= week_count <= MAX_BULK_WEEKS:
            raise ValidationException(
                f"week_count must be between 1 and {MAX_BULK_WEEKS}",
                code="INVALID_WEEK_COUNT",
                details={"week_count": week_count},
            )

        now = self.clock.now()
        first = next_weekday_occurrence(local_today(now), weekday)

        created: List[TimeSlot] = []
        for week in range(week_count):
            day = first + timedelta(weeks=week)
            if self.slot_store.find(tutor_id, day, hour) is not None:
                continue
            slot, changed = self.slot_store.ensure_available(
                tutor_id, day, hour, now=now, reason=AuditReason.BULK_CREATE, actor_id=actor_id
            )
            if changed:
                created.append(slot)

        self.log_operation("bulk_create", tutor_id=tutor_id, created=len(created))
        return created

    @BaseService.measure_operation("clear_future")
    def clear_future(self, tutor_id: str, *, actor_id: Optional[str] = None) -> ClearFutureResult:
        """
        Remove every future AVAILABLE slot for the tutor.

        PENDING and BOOKED slots are left untouched and counted as skipped.
        """
        now = self.clock.now()
        result = ClearFutureResult()
        candidates = self.slot_store.repository.list_from_date(
            tutor_id,
            local_today(now),
            statuses=[SlotStatus.AVAILABLE, *SlotStatus.occupied()],
        )
        for slot in candidates:
            if is_past(slot.slot_date, slot.hour, now):
                continue
            if slot.is_occupied:
                result.skipped_booked += 1
                continue
            try:
                if self.slot_store.remove(
                    tutor_id,
                    slot.slot_date,
                    slot.hour,
                    now=now,
                    reason=AuditReason.CLEAR_FUTURE,
                    actor_id=actor_id,
                ):
                    result.removed += 1
            except SlotBookedError:
                result.skipped_booked += 1

        self.log_operation(
            "clear_future",
            tutor_id=tutor_id,
            removed=result.removed,
            skipped_booked=result.skipped_booked,
        )
        return result
