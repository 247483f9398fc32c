"""Background maintenance jobs."""

from datetime import timedelta

from tests.utils.scheduling_builders import (
    LEARNER_ID,
    NEXT_MONDAY,
    SESSION_ID,
    TUTOR_ID,
    seed_available,
)
from tutor_scheduling.core.enums import BookingStatus, SlotStatus
from tutor_scheduling.tasks import celery_app
from tutor_scheduling.tasks.beat_schedule import EXPIRE_TASK, RECONCILE_TASK, get_beat_schedule
from tutor_scheduling.tasks.reconciliation import run_pending_expiry, run_reconciliation

ORPHAN_BOOKING_ID = "01JX0000000000000000000001"


def test_reconciliation_frees_orphaned_claim(session_factory, slot_store, clock):
    seed_available(slot_store, NEXT_MONDAY, [9])
    slot_store.claim(TUTOR_ID, NEXT_MONDAY, 9, ORPHAN_BOOKING_ID)
    clock.advance(timedelta(minutes=5))

    result = run_reconciliation(session_factory=session_factory, clock=clock)

    assert result == {"released": 1}
    assert slot_store.get(TUTOR_ID, NEXT_MONDAY, 9).status == SlotStatus.AVAILABLE


def test_reconciliation_respects_grace_period(session_factory, slot_store, clock):
    seed_available(slot_store, NEXT_MONDAY, [9])
    slot_store.claim(TUTOR_ID, NEXT_MONDAY, 9, ORPHAN_BOOKING_ID)
    clock.advance(timedelta(seconds=30))

    result = run_reconciliation(session_factory=session_factory, clock=clock, grace_seconds=120)

    assert result == {"released": 0}
    assert slot_store.get(TUTOR_ID, NEXT_MONDAY, 9).status == SlotStatus.PENDING


def test_pending_expiry_cancels_stale_bookings(
    session_factory, slot_store, scheduling_service, clock
):
    seed_available(slot_store, NEXT_MONDAY, [9, 10])
    stale = scheduling_service.book(TUTOR_ID, LEARNER_ID, SESSION_ID, NEXT_MONDAY, 9)
    clock.advance(timedelta(minutes=45))
    fresh = scheduling_service.book(TUTOR_ID, LEARNER_ID, SESSION_ID, NEXT_MONDAY, 10)

    result = run_pending_expiry(session_factory=session_factory, clock=clock, max_age_minutes=30)

    assert result == {"expired": 1}
    repo = scheduling_service.booking_repository
    assert repo.get_booking(stale.id).status == BookingStatus.CANCELLED
    assert repo.get_booking(fresh.id).status == BookingStatus.PENDING
    assert slot_store.get(TUTOR_ID, NEXT_MONDAY, 9).status == SlotStatus.AVAILABLE


def test_beat_schedule_runs_both_jobs():
    schedule = get_beat_schedule(interval_seconds=60)

    tasks = {entry["task"] for entry in schedule.values()}
    assert tasks == {RECONCILE_TASK, EXPIRE_TASK}
    assert all(entry["schedule"] == timedelta(seconds=60) for entry in schedule.values())


def test_tasks_are_registered():
    import tutor_scheduling.tasks.reconciliation  # noqa: F401

    assert RECONCILE_TASK in celery_app.tasks
    assert EXPIRE_TASK in celery_app.tasks
