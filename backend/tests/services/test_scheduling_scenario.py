"""A tutor's week from template to rebooking after a cancellation."""

import pytest

from tests.utils.scheduling_builders import (
    LEARNER_ID,
    NEXT_MONDAY,
    OTHER_LEARNER_ID,
    SESSION_ID,
    TUTOR,
    TUTOR_ID,
)
from tutor_scheduling.core.enums import AuditAction, AuditReason, BookingStatus, SlotStatus
from tutor_scheduling.core.exceptions import SlotUnavailableError

THIRD_LEARNER_ID = "learner-finn"


def test_book_confirm_cancel_rebook(
    audit_recorder, template_service, scheduling_service, slot_store, audit_service
):
    template_service.set_pattern(TUTOR_ID, 0, [9, 10])
    created = template_service.materialize(TUTOR_ID, NEXT_MONDAY)
    assert [(slot.slot_date, slot.hour) for slot in created] == [
        (NEXT_MONDAY, 9),
        (NEXT_MONDAY, 10),
    ]

    first = scheduling_service.book(TUTOR_ID, LEARNER_ID, SESSION_ID, NEXT_MONDAY, 9)
    assert first.status == BookingStatus.PENDING
    assert slot_store.get(TUTOR_ID, NEXT_MONDAY, 9).status == SlotStatus.PENDING

    with pytest.raises(SlotUnavailableError):
        scheduling_service.book(TUTOR_ID, OTHER_LEARNER_ID, SESSION_ID, NEXT_MONDAY, 9)

    confirmed = scheduling_service.confirm(first.id, TUTOR)
    assert confirmed.status == BookingStatus.CONFIRMED
    assert slot_store.get(TUTOR_ID, NEXT_MONDAY, 9).status == SlotStatus.BOOKED

    cancelled = scheduling_service.cancel(first.id, TUTOR, "tutor is ill")
    assert cancelled.status == BookingStatus.CANCELLED
    assert cancelled.cancelled_by == TUTOR_ID
    slot = slot_store.get(TUTOR_ID, NEXT_MONDAY, 9)
    assert slot.status == SlotStatus.AVAILABLE
    assert slot.booking_id is None

    audit_recorder.flush(timeout=5)
    removals = [
        entry
        for entry in audit_service.history(TUTOR_ID)
        if entry.action == AuditAction.REMOVED
    ]
    assert len(removals) == 1
    assert removals[0].reason == AuditReason.BOOKING_CANCELLED
    assert removals[0].hour == 9

    rebooked = scheduling_service.book(TUTOR_ID, THIRD_LEARNER_ID, SESSION_ID, NEXT_MONDAY, 9)
    assert rebooked.status == BookingStatus.PENDING
    assert rebooked.id != first.id
    assert slot_store.get(TUTOR_ID, NEXT_MONDAY, 9).booking_id == rebooked.id
    assert slot_store.get(TUTOR_ID, NEXT_MONDAY, 10).status == SlotStatus.AVAILABLE
