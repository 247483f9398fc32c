"""Typed scheduling events and the in-process listener registry."""

from __future__ import annotations

from datetime import date, datetime
import logging
from typing import Callable, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from ..core.enums import AuditAction, AuditReason

logger = logging.getLogger("tutor_scheduling.events")


class SchedulingEvent(BaseModel):
    """Base class for scheduling domain events."""

    model_config = ConfigDict(extra="forbid", frozen=True)


SchedulingEventListener = Callable[[SchedulingEvent], None]


class SchedulingEvents:
    """
    Registry for scheduling event listeners.

    Events are dispatched only after the originating transaction has
    committed. Listener failures are logged and never reach the caller.
    """

    _listeners: List[SchedulingEventListener] = []

    @classmethod
    def register(cls, listener: SchedulingEventListener) -> None:
        if listener not in cls._listeners:
            cls._listeners.append(listener)

    @classmethod
    def unregister(cls, listener: SchedulingEventListener) -> None:
        # Equality, not identity: bound methods are recreated on each attribute access
        cls._listeners = [existing for existing in cls._listeners if existing != listener]

    @classmethod
    def dispatch(cls, event: SchedulingEvent) -> None:
        for listener in list(cls._listeners):
            try:
                listener(event)
            except Exception:
                logger.warning(
                    "Scheduling event listener error: %s", listener, exc_info=True
                )
        logger.debug(
            "scheduling_event=%s payload=%s", event.__class__.__name__, event.model_dump()
        )

    @classmethod
    def dispatch_all(cls, events: Sequence[SchedulingEvent]) -> None:
        for event in events:
            cls.dispatch(event)


class SlotChanged(SchedulingEvent):
    tutor_id: str
    slot_date: date
    hour: int
    action: AuditAction
    reason: AuditReason
    actor_id: Optional[str] = None
    booking_id: Optional[str] = None
    occurred_at: datetime


class BookingCreated(SchedulingEvent):
    booking_id: str
    tutor_id: str
    learner_id: str
    slot_date: date
    hour: int
    created_at: datetime


class BookingConfirmed(SchedulingEvent):
    booking_id: str
    tutor_id: str
    learner_id: str
    confirmed_at: datetime


class BookingCompleted(SchedulingEvent):
    booking_id: str
    tutor_id: str
    learner_id: str
    completed_at: datetime


class BookingCancelled(SchedulingEvent):
    booking_id: str
    tutor_id: str
    learner_id: str
    cancelled_by: Optional[str] = None
    reason: Optional[str] = None
    cancelled_at: datetime
