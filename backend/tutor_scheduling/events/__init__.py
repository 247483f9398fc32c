"""Event primitives for post-commit scheduling notifications."""

from .scheduling_events import (
    BookingCancelled,
    BookingCompleted,
    BookingConfirmed,
    BookingCreated,
    SchedulingEvent,
    SchedulingEventListener,
    SchedulingEvents,
    SlotChanged,
)

__all__ = [
    "BookingCancelled",
    "BookingCompleted",
    "BookingConfirmed",
    "BookingCreated",
    "SchedulingEvent",
    "SchedulingEventListener",
    "SchedulingEvents",
    "SlotChanged",
]
