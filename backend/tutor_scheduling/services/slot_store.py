# backend/tutor_scheduling/services/slot_store.py
"""
Slot Store Service for the scheduling engine.

Owns slot status. Every mutation is a conditional statement on the expected
current status, so template edits, toggles and booking claims all race
through the same primitive and can never overwrite each other.

Validation (hour range, past start) happens before any write. Slot change
events are dispatched only after the surrounding transaction commits.
"""

from datetime import date, datetime
import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.clock import Clock
from ..core.constants import ALLOWED_HOURS
from ..core.enums import AuditAction, AuditReason, SlotStatus
from ..core.exceptions import (
    InvalidHourError,
    InvalidTransitionError,
    NotFoundError,
    PastDateError,
    SlotBookedError,
    SlotUnavailableError,
)
from ..core.timezone_utils import is_past
from ..events import SchedulingEvents, SlotChanged
from ..models.time_slot import TimeSlot
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.slot_repository import SlotRepository
from .base import BaseService

logger = logging.getLogger(__name__)


def validate_hour(hour: int) -> None:
    """Raise InvalidHourError unless ``hour`` is a bookable hour."""
    if isinstance(hour, bool) or not isinstance(hour, int) or hour not in ALLOWED_HOURS:
        raise InvalidHourError(hour)


class SlotStore(BaseService):
    """
    Service for the durable table of time slots keyed by (tutor, date, hour).
    """

    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        repository: Optional[SlotRepository] = None,
    ):
        super().__init__(db, clock)
        self.repository = repository or RepositoryFactory.create_slot_repository(db)

    # Helpers

    def _now(self, now: Optional[datetime]) -> datetime:
        return now if now is not None else self.clock.now()

    def _ensure_future(self, tutor_id: str, slot_date: date, hour: int, now: datetime) -> None:
        if is_past(slot_date, hour, now):
            raise PastDateError(tutor_id, slot_date, hour)

    def _require(self, tutor_id: str, slot_date: date, hour: int) -> TimeSlot:
        slot = self.repository.get_slot(tutor_id, slot_date, hour)
        if slot is None:
            raise NotFoundError(
                f"No slot for {tutor_id} on {slot_date.isoformat()} at {hour:02d}:00",
                code="SLOT_NOT_FOUND",
                details={"tutor_id": tutor_id, "date": slot_date.isoformat(), "hour": hour},
            )
        return slot

    @staticmethod
    def _event(
        slot_date: date,
        hour: int,
        tutor_id: str,
        action: AuditAction,
        reason: AuditReason,
        now: datetime,
        actor_id: Optional[str] = None,
        booking_id: Optional[str] = None,
    ) -> SlotChanged:
        return SlotChanged(
            tutor_id=tutor_id,
            slot_date=slot_date,
            hour=hour,
            action=action,
            reason=reason,
            actor_id=actor_id,
            booking_id=booking_id,
            occurred_at=now,
        )

    # Reads

    def get(self, tutor_id: str, slot_date: date, hour: int) -> TimeSlot:
        """Return the slot or raise NotFoundError."""
        return self._require(tutor_id, slot_date, hour)

    def find(self, tutor_id: str, slot_date: date, hour: int) -> Optional[TimeSlot]:
        return self.repository.get_slot(tutor_id, slot_date, hour)

    def list_for_range(self, tutor_id: str, start_date: date, end_date: date) -> List[TimeSlot]:
        """Slots between two dates inclusive, ordered by date and hour."""
        if end_date < start_date:
            start_date, end_date = end_date, start_date
        return self.repository.list_for_range(tutor_id, start_date, end_date)

    # Availability edits

    @BaseService.measure_operation("upsert_available")
    def upsert_available(
        self,
        tutor_id: str,
        slot_date: date,
        hour: int,
        *,
        now: Optional[datetime] = None,
        reason: AuditReason = AuditReason.TUTOR_EDIT,
        actor_id: Optional[str] = None,
    ) -> TimeSlot:
        """
        Make a future hour AVAILABLE.

        Idempotent on an AVAILABLE slot. An UNAVAILABLE slot is turned back on;
        a PENDING or BOOKED slot is returned unchanged, never downgraded.
        """
        slot, _created = self.ensure_available(
            tutor_id, slot_date, hour, now=now, reason=reason, actor_id=actor_id
        )
        return slot

    def ensure_available(
        self,
        tutor_id: str,
        slot_date: date,
        hour: int,
        *,
        now: Optional[datetime] = None,
        reason: AuditReason = AuditReason.TUTOR_EDIT,
        actor_id: Optional[str] = None,
    ) -> Tuple[TimeSlot, bool]:
        """
        Same as upsert_available, also reporting whether the slot became
        AVAILABLE because of this call.
        """
        validate_hour(hour)
        now = self._now(now)
        self._ensure_future(tutor_id, slot_date, hour, now)

        with self.transaction():
            changed = self.repository.insert_available(tutor_id, slot_date, hour, now)
            if not changed:
                changed = (
                    self.repository.set_status(
                        tutor_id,
                        slot_date,
                        hour,
                        from_status=SlotStatus.UNAVAILABLE,
                        to_status=SlotStatus.AVAILABLE,
                        now=now,
                    )
                    == 1
                )

        if changed:
            SchedulingEvents.dispatch(
                self._event(slot_date, hour, tutor_id, AuditAction.ADDED, reason, now, actor_id)
            )
        return self._require(tutor_id, slot_date, hour), changed

    @BaseService.measure_operation("remove_slot")
    def remove(
        self,
        tutor_id: str,
        slot_date: date,
        hour: int,
        *,
        now: Optional[datetime] = None,
        reason: AuditReason = AuditReason.TUTOR_EDIT,
        actor_id: Optional[str] = None,
    ) -> bool:
        """
        Take a future, unoccupied slot out of the schedule.

        The row is deleted unless a booking has ever referenced it; such a slot
        is kept for history and retired to UNAVAILABLE instead. Returns True
        if the slot was deleted or retired; absent or already retired slots
        are a no-op.

        Raises:
            SlotBookedError: The slot is PENDING or BOOKED
            PastDateError: The slot has already started
        """
        validate_hour(hour)
        now = self._now(now)
        self._ensure_future(tutor_id, slot_date, hour, now)

        removed_available = False
        with self.transaction():
            if self.repository.delete_with_status(
                tutor_id, slot_date, hour, [SlotStatus.AVAILABLE]
            ):
                removed_available = True
            elif self.repository.set_status(
                tutor_id,
                slot_date,
                hour,
                from_status=SlotStatus.AVAILABLE,
                to_status=SlotStatus.UNAVAILABLE,
                now=now,
            ):
                removed_available = True
            elif not self.repository.delete_with_status(
                tutor_id, slot_date, hour, [SlotStatus.UNAVAILABLE]
            ):
                existing = self.repository.get_slot(tutor_id, slot_date, hour)
                if existing is not None and existing.is_occupied:
                    raise SlotBookedError(tutor_id, slot_date, hour)
                return False

        if removed_available:
            SchedulingEvents.dispatch(
                self._event(slot_date, hour, tutor_id, AuditAction.REMOVED, reason, now, actor_id)
            )
        return True

    @BaseService.measure_operation("set_unavailable")
    def set_unavailable(
        self,
        tutor_id: str,
        slot_date: date,
        hour: int,
        *,
        now: Optional[datetime] = None,
        actor_id: Optional[str] = None,
    ) -> TimeSlot:
        """Block an AVAILABLE future slot without deleting it. Idempotent."""
        return self._toggle(
            tutor_id, slot_date, hour, SlotStatus.AVAILABLE, SlotStatus.UNAVAILABLE, now, actor_id
        )

    @BaseService.measure_operation("set_available")
    def set_available(
        self,
        tutor_id: str,
        slot_date: date,
        hour: int,
        *,
        now: Optional[datetime] = None,
        actor_id: Optional[str] = None,
    ) -> TimeSlot:
        """Re-open an UNAVAILABLE future slot. Idempotent."""
        return self._toggle(
            tutor_id, slot_date, hour, SlotStatus.UNAVAILABLE, SlotStatus.AVAILABLE, now, actor_id
        )

    def _toggle(
        self,
        tutor_id: str,
        slot_date: date,
        hour: int,
        from_status: SlotStatus,
        to_status: SlotStatus,
        now: Optional[datetime],
        actor_id: Optional[str],
    ) -> TimeSlot:
        validate_hour(hour)
        now = self._now(now)
        self._ensure_future(tutor_id, slot_date, hour, now)

        with self.transaction():
            changed = self.repository.set_status(
                tutor_id, slot_date, hour, from_status=from_status, to_status=to_status, now=now
            )
            if not changed:
                slot = self._require(tutor_id, slot_date, hour)
                if slot.is_occupied:
                    raise SlotBookedError(tutor_id, slot_date, hour)

        if changed:
            action = AuditAction.ADDED if to_status == SlotStatus.AVAILABLE else AuditAction.REMOVED
            SchedulingEvents.dispatch(
                self._event(
                    slot_date, hour, tutor_id, action, AuditReason.TUTOR_EDIT, now, actor_id
                )
            )
        return self._require(tutor_id, slot_date, hour)

    # Booking primitives

    @BaseService.measure_operation("claim")
    def claim(
        self,
        tutor_id: str,
        slot_date: date,
        hour: int,
        booking_id: str,
        *,
        now: Optional[datetime] = None,
    ) -> TimeSlot:
        """
        Atomically move AVAILABLE -> PENDING bound to ``booking_id`` and commit.

        Exactly one of any number of concurrent claims on the same slot wins;
        the rest raise SlotUnavailableError.
        """
        validate_hour(hour)
        now = self._now(now)

        with self.transaction():
            won = self.repository.claim(tutor_id, slot_date, hour, booking_id, now) == 1

        if not won:
            prometheus_metrics.inc_slot_claim("lost")
            self.logger.info(
                "Slot claim lost",
                extra={"tutor_id": tutor_id, "date": slot_date.isoformat(), "hour": hour},
            )
            raise SlotUnavailableError(tutor_id, slot_date, hour)

        prometheus_metrics.inc_slot_claim("won")
        return self._require(tutor_id, slot_date, hour)

    @BaseService.measure_operation("release")
    def release(
        self,
        tutor_id: str,
        slot_date: date,
        hour: int,
        *,
        booking_id: Optional[str] = None,
        now: Optional[datetime] = None,
        reason: Optional[AuditReason] = None,
        actor_id: Optional[str] = None,
    ) -> TimeSlot:
        """
        PENDING/BOOKED -> AVAILABLE, clearing the booking binding.

        With ``booking_id`` the release only applies while the slot is still
        bound to that booking.

        Raises:
            InvalidTransitionError: The slot is not occupied (or not by this booking)
            NotFoundError: No such slot
            PastDateError: The slot has already started; elapsed slots keep their status
        """
        now = self._now(now)
        with self.transaction():
            events = self.apply_release(
                tutor_id,
                slot_date,
                hour,
                booking_id=booking_id,
                now=now,
                reason=reason,
                actor_id=actor_id,
            )
        SchedulingEvents.dispatch_all(events)
        return self._require(tutor_id, slot_date, hour)

    def apply_release(
        self,
        tutor_id: str,
        slot_date: date,
        hour: int,
        *,
        now: datetime,
        booking_id: Optional[str] = None,
        reason: Optional[AuditReason] = None,
        actor_id: Optional[str] = None,
    ) -> List[SlotChanged]:
        """
        Release inside the caller's transaction.

        Returns the events to dispatch once the caller has committed.
        """
        validate_hour(hour)
        self._ensure_future(tutor_id, slot_date, hour, now)
        if self.repository.release(tutor_id, slot_date, hour, now, booking_id=booking_id) == 1:
            if reason is None:
                return []
            return [
                self._event(
                    slot_date,
                    hour,
                    tutor_id,
                    AuditAction.REMOVED,
                    reason,
                    now,
                    actor_id,
                    booking_id,
                )
            ]

        slot = self._require(tutor_id, slot_date, hour)
        if not slot.is_occupied:
            raise InvalidTransitionError(
                "Slot is already free; nothing to release",
                details={"tutor_id": tutor_id, "date": slot_date.isoformat(), "hour": hour},
            )
        raise InvalidTransitionError(
            "Slot is held by a different booking",
            details={"tutor_id": tutor_id, "date": slot_date.isoformat(), "hour": hour},
        )

    @BaseService.measure_operation("confirm_slot")
    def confirm(
        self,
        tutor_id: str,
        slot_date: date,
        hour: int,
        *,
        booking_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> TimeSlot:
        """PENDING -> BOOKED."""
        now = self._now(now)
        with self.transaction():
            self.apply_confirm(tutor_id, slot_date, hour, booking_id=booking_id, now=now)
        return self._require(tutor_id, slot_date, hour)

    def apply_confirm(
        self,
        tutor_id: str,
        slot_date: date,
        hour: int,
        *,
        now: datetime,
        booking_id: Optional[str] = None,
    ) -> None:
        """Confirm inside the caller's transaction."""
        validate_hour(hour)
        if self.repository.confirm(tutor_id, slot_date, hour, now, booking_id=booking_id) == 1:
            return
        slot = self._require(tutor_id, slot_date, hour)
        raise InvalidTransitionError(
            f"Slot cannot be confirmed from {slot.status.value}",
            details={
                "tutor_id": tutor_id,
                "date": slot_date.isoformat(),
                "hour": hour,
                "status": slot.status.value,
            },
        )
