from datetime import timedelta

import pytest

from tests.utils.scheduling_builders import (
    LEARNER_ID,
    NEXT_MONDAY,
    OTHER_TUTOR_ID,
    SESSION_ID,
    TUTOR,
    TODAY,
    TUTOR_ID,
    local_instant,
    seed_available,
)
from tutor_scheduling.core.enums import SlotStatus
from tutor_scheduling.core.exceptions import (
    EmptySourceError,
    InvalidHourError,
    PastDateError,
    ValidationException,
)
from tutor_scheduling.services.weekly_template_service import TemplateDraft

NEXT_TUESDAY = NEXT_MONDAY + timedelta(days=1)
NEXT_WEDNESDAY = NEXT_MONDAY + timedelta(days=2)


def _available(slot_store, day):
    return {
        slot.hour
        for slot in slot_store.list_for_range(TUTOR_ID, day, day)
        if slot.status == SlotStatus.AVAILABLE
    }


def _status(slot_store, day, hour):
    return slot_store.get(TUTOR_ID, day, hour).status


class TestPattern:
    def test_set_and_get_pattern(self, template_service):
        template_service.set_pattern(TUTOR_ID, 0, [10, 9])

        pattern = template_service.get_pattern(TUTOR_ID)

        assert pattern[0] == {9, 10}
        assert all(pattern[day] == set() for day in range(1, 7))

    def test_invalid_hour_saves_nothing(self, template_service):
        with pytest.raises(InvalidHourError):
            template_service.set_pattern(TUTOR_ID, 0, [9, 12])
        assert template_service.get_pattern(TUTOR_ID)[0] == set()

    def test_invalid_weekday(self, template_service):
        with pytest.raises(ValidationException) as exc_info:
            template_service.set_pattern(TUTOR_ID, 7, [9])
        assert exc_info.value.code == "INVALID_WEEKDAY"

    def test_draft_is_private_until_committed(self, template_service):
        template_service.set_pattern(TUTOR_ID, 0, [9])
        draft = template_service.stage(TUTOR_ID)

        assert draft.toggle(0, 10) is True
        assert draft.toggle(0, 9) is False
        draft.set_day(4, [14, 15])
        assert template_service.get_pattern(TUTOR_ID)[0] == {9}

        template_service.commit_draft(draft)

        pattern = template_service.get_pattern(TUTOR_ID)
        assert pattern[0] == {10}
        assert pattern[4] == {14, 15}

    def test_draft_rejects_bad_hours(self):
        draft = TemplateDraft(tutor_id=TUTOR_ID)
        with pytest.raises(InvalidHourError):
            draft.toggle(0, 12)
        assert draft.pattern()[0] == set()


class TestMaterialize:
    def test_creates_slots_from_pattern(self, template_service, slot_store):
        template_service.set_pattern(TUTOR_ID, 0, [9, 10])

        created = template_service.materialize(TUTOR_ID, NEXT_MONDAY)

        assert sorted((slot.slot_date, slot.hour) for slot in created) == [
            (NEXT_MONDAY, 9),
            (NEXT_MONDAY, 10),
        ]
        assert _available(slot_store, NEXT_MONDAY) == {9, 10}

    def test_any_date_in_week_targets_monday_week(self, template_service):
        template_service.set_pattern(TUTOR_ID, 0, [9])

        created = template_service.materialize(TUTOR_ID, NEXT_WEDNESDAY)

        assert [(slot.slot_date, slot.hour) for slot in created] == [(NEXT_MONDAY, 9)]

    def test_existing_slots_left_alone(self, template_service, slot_store):
        template_service.set_pattern(TUTOR_ID, 0, [9, 10])
        slot_store.upsert_available(TUTOR_ID, NEXT_MONDAY, 9)
        slot_store.set_unavailable(TUTOR_ID, NEXT_MONDAY, 9)

        created = template_service.materialize(TUTOR_ID, NEXT_MONDAY)

        assert [slot.hour for slot in created] == [10]
        assert _status(slot_store, NEXT_MONDAY, 9) == SlotStatus.UNAVAILABLE

    def test_past_hours_skipped(self, template_service, slot_store, clock):
        template_service.set_pattern(TUTOR_ID, 0, [9, 10])
        clock.set(local_instant(TODAY, 9, 30))

        created = template_service.materialize(TUTOR_ID, TODAY)

        assert [slot.hour for slot in created] == [10]

    def test_materialize_with_draft_does_not_commit(self, template_service):
        draft = template_service.stage(TUTOR_ID)
        draft.set_day(1, [13])

        created = template_service.materialize(TUTOR_ID, NEXT_MONDAY, draft)

        assert [(slot.slot_date, slot.hour) for slot in created] == [(NEXT_TUESDAY, 13)]
        assert template_service.get_pattern(TUTOR_ID)[1] == set()

    def test_draft_for_other_tutor_rejected(self, template_service):
        draft = TemplateDraft(tutor_id=OTHER_TUTOR_ID)
        with pytest.raises(ValidationException) as exc_info:
            template_service.materialize(TUTOR_ID, NEXT_MONDAY, draft)
        assert exc_info.value.code == "DRAFT_TUTOR_MISMATCH"


class TestSetDayHours:
    def test_diff_against_current_hours(self, template_service, slot_store):
        seed_available(slot_store, NEXT_MONDAY, [9, 10, 11])

        result = template_service.set_day_hours(TUTOR_ID, NEXT_MONDAY, [10, 14])

        assert result.added == [14]
        assert result.removed == [9, 11]
        assert _available(slot_store, NEXT_MONDAY) == {10, 14}

    def test_occupied_hours_kept(self, template_service, slot_store):
        seed_available(slot_store, NEXT_MONDAY, [9, 10])
        slot_store.claim(TUTOR_ID, NEXT_MONDAY, 9, "01JX0000000000000000000001")

        result = template_service.set_day_hours(TUTOR_ID, NEXT_MONDAY, [])

        assert result.kept_occupied == [9]
        assert result.removed == [10]
        assert _status(slot_store, NEXT_MONDAY, 9) == SlotStatus.PENDING

    def test_started_hours_skipped(self, template_service, slot_store, clock):
        seed_available(slot_store, TODAY, [9])
        clock.set(local_instant(TODAY, 9, 30))

        result = template_service.set_day_hours(TUTOR_ID, TODAY, [13])

        assert result.skipped_past == [9]
        assert result.added == [13]
        assert _available(slot_store, TODAY) == {9, 13}

    def test_finished_day_rejected(self, template_service, clock):
        clock.set(local_instant(TODAY, 17))
        with pytest.raises(PastDateError):
            template_service.set_day_hours(TUTOR_ID, TODAY, [9])

    def test_invalid_hour_writes_nothing(self, template_service, slot_store):
        seed_available(slot_store, NEXT_MONDAY, [9])
        with pytest.raises(InvalidHourError):
            template_service.set_day_hours(TUTOR_ID, NEXT_MONDAY, [10, 12])
        assert _available(slot_store, NEXT_MONDAY) == {9}


class TestCopy:
    def test_copy_day_reproduces_available_hours_only(self, template_service, slot_store):
        seed_available(slot_store, NEXT_MONDAY, [9, 10, 11])
        slot_store.claim(TUTOR_ID, NEXT_MONDAY, 11, "01JX0000000000000000000001")
        seed_available(slot_store, NEXT_TUESDAY, [14, 15])
        slot_store.claim(TUTOR_ID, NEXT_TUESDAY, 15, "01JX0000000000000000000002")

        copied = template_service.copy_day(TUTOR_ID, NEXT_MONDAY, NEXT_TUESDAY)

        assert sorted(slot.hour for slot in copied) == [9, 10]
        assert _available(slot_store, NEXT_TUESDAY) == {9, 10}
        assert slot_store.find(TUTOR_ID, NEXT_TUESDAY, 11) is None
        assert _status(slot_store, NEXT_TUESDAY, 15) == SlotStatus.PENDING

    def test_copy_day_from_empty_source(self, template_service):
        with pytest.raises(EmptySourceError):
            template_service.copy_day(TUTOR_ID, NEXT_MONDAY, NEXT_TUESDAY)

    def test_copy_week_skips_empty_days(self, template_service, slot_store):
        seed_available(slot_store, NEXT_MONDAY, [9])
        seed_available(slot_store, NEXT_WEDNESDAY, [14, 15])
        target_monday = NEXT_MONDAY + timedelta(days=7)

        copied = template_service.copy_week(TUTOR_ID, NEXT_MONDAY, target_monday)

        assert sorted(copied) == [target_monday, target_monday + timedelta(days=2)]
        assert _available(slot_store, target_monday) == {9}
        assert _available(slot_store, target_monday + timedelta(days=2)) == {14, 15}

    def test_copy_week_from_empty_week(self, template_service):
        with pytest.raises(EmptySourceError):
            template_service.copy_week(TUTOR_ID, NEXT_MONDAY, NEXT_MONDAY + timedelta(days=7))


class TestBulkCreate:
    def test_repeat_creates_nothing(self, template_service):
        first = template_service.bulk_create(TUTOR_ID, 0, 9, 4)
        second = template_service.bulk_create(TUTOR_ID, 0, 9, 4)

        assert [slot.slot_date for slot in first] == [
            NEXT_MONDAY + timedelta(weeks=week) for week in range(4)
        ]
        assert second == []

    @pytest.mark.parametrize("week_count", [0, -1, 53])
    def test_week_count_bounds(self, template_service, week_count):
        with pytest.raises(ValidationException) as exc_info:
            template_service.bulk_create(TUTOR_ID, 0, 9, week_count)
        assert exc_info.value.code == "INVALID_WEEK_COUNT"

    def test_rejects_lunch_hour(self, template_service):
        with pytest.raises(InvalidHourError):
            template_service.bulk_create(TUTOR_ID, 0, 12, 2)


def test_clear_future_skips_booked(template_service, slot_store, clock):
    seed_available(slot_store, TODAY, [9, 10])
    seed_available(slot_store, NEXT_MONDAY, [9, 10])
    slot_store.claim(TUTOR_ID, NEXT_MONDAY, 10, "01JX0000000000000000000001")
    clock.set(local_instant(TODAY, 9, 30))

    result = template_service.clear_future(TUTOR_ID)

    assert (result.removed, result.skipped_booked) == (2, 1)
    # The running 09:00 slot is history and stays
    assert _available(slot_store, TODAY) == {9}
    assert _status(slot_store, NEXT_MONDAY, 10) == SlotStatus.PENDING


def test_clear_future_retires_slots_bookings_referenced(
    template_service, scheduling_service, slot_store
):
    seed_available(slot_store, NEXT_MONDAY, [9, 10])
    booking = scheduling_service.book(TUTOR_ID, LEARNER_ID, SESSION_ID, NEXT_MONDAY, 9)
    scheduling_service.cancel(booking.id, TUTOR)

    result = template_service.clear_future(TUTOR_ID)

    assert (result.removed, result.skipped_booked) == (2, 0)
    assert _status(slot_store, NEXT_MONDAY, 9) == SlotStatus.UNAVAILABLE
    assert slot_store.find(TUTOR_ID, NEXT_MONDAY, 10) is None
