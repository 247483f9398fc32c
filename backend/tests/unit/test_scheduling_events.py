from datetime import date, datetime, timezone

from pydantic import ValidationError
import pytest

from tutor_scheduling.core.enums import AuditAction, AuditReason
from tutor_scheduling.events import SchedulingEvents, SlotChanged


def _event() -> SlotChanged:
    return SlotChanged(
        tutor_id="t1",
        slot_date=date(2025, 6, 9),
        hour=9,
        action=AuditAction.ADDED,
        reason=AuditReason.TUTOR_EDIT,
        occurred_at=datetime(2025, 6, 2, 5, 0, tzinfo=timezone.utc),
    )


class Collector:
    def __init__(self):
        self.events = []

    def handle(self, event):
        self.events.append(event)


def test_dispatch_reaches_registered_listener():
    collector = Collector()
    SchedulingEvents.register(collector.handle)
    SchedulingEvents.register(collector.handle)

    SchedulingEvents.dispatch(_event())

    assert len(collector.events) == 1


def test_unregister_bound_method():
    collector = Collector()
    SchedulingEvents.register(collector.handle)
    SchedulingEvents.unregister(collector.handle)

    SchedulingEvents.dispatch(_event())

    assert collector.events == []


def test_failing_listener_is_isolated(caplog):
    collector = Collector()

    def broken(_event):
        raise RuntimeError("listener down")

    SchedulingEvents.register(broken)
    SchedulingEvents.register(collector.handle)

    with caplog.at_level("WARNING"):
        SchedulingEvents.dispatch(_event())

    assert len(collector.events) == 1
    assert "listener error" in caplog.text


def test_events_are_immutable_and_strict():
    event = _event()
    with pytest.raises(ValidationError):
        event.hour = 10
    with pytest.raises(ValidationError):
        SlotChanged(**event.model_dump(), unexpected="x")
