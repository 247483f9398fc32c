from datetime import timedelta

from tests.utils.scheduling_builders import NEXT_MONDAY, NOW, TUTOR_ID
from tutor_scheduling.core.enums import BookingStatus, SlotStatus
from tutor_scheduling.models.booking import Booking
from tutor_scheduling.repositories import RepositoryFactory


def _make_booking(db, booking_id, status=BookingStatus.PENDING, hour=9):
    booking = Booking(
        id=booking_id,
        tutor_id=TUTOR_ID,
        learner_id="learner-x",
        slot_date=NEXT_MONDAY,
        hour=hour,
        session_id="single-lesson",
        price=450,
        status=status,
        created_at=NOW,
        updated_at=NOW,
    )
    db.add(booking)
    db.commit()
    return booking


class TestInsertAvailable:
    def test_insert_then_duplicate_is_noop(self, db):
        repo = RepositoryFactory.create_slot_repository(db)

        assert repo.insert_available(TUTOR_ID, NEXT_MONDAY, 9, NOW) is True
        assert repo.insert_available(TUTOR_ID, NEXT_MONDAY, 9, NOW) is False
        db.commit()

        slots = repo.list_for_range(TUTOR_ID, NEXT_MONDAY, NEXT_MONDAY)
        assert [(slot.hour, slot.status) for slot in slots] == [(9, SlotStatus.AVAILABLE)]


class TestConditionalUpdates:
    def test_claim_only_from_available(self, db):
        repo = RepositoryFactory.create_slot_repository(db)
        repo.insert_available(TUTOR_ID, NEXT_MONDAY, 9, NOW)
        db.commit()

        assert repo.claim(TUTOR_ID, NEXT_MONDAY, 9, "B1", NOW) == 1
        assert repo.claim(TUTOR_ID, NEXT_MONDAY, 9, "B2", NOW) == 0
        db.commit()

        slot = repo.get_slot(TUTOR_ID, NEXT_MONDAY, 9)
        assert slot.status == SlotStatus.PENDING
        assert slot.booking_id == "B1"

    def test_release_guarded_by_booking_id(self, db):
        repo = RepositoryFactory.create_slot_repository(db)
        repo.insert_available(TUTOR_ID, NEXT_MONDAY, 9, NOW)
        repo.claim(TUTOR_ID, NEXT_MONDAY, 9, "B1", NOW)
        db.commit()

        assert repo.release(TUTOR_ID, NEXT_MONDAY, 9, NOW, booking_id="B2") == 0
        assert repo.release(TUTOR_ID, NEXT_MONDAY, 9, NOW, booking_id="B1") == 1
        db.commit()

        slot = repo.get_slot(TUTOR_ID, NEXT_MONDAY, 9)
        assert slot.status == SlotStatus.AVAILABLE
        assert slot.booking_id is None

    def test_confirm_requires_pending(self, db):
        repo = RepositoryFactory.create_slot_repository(db)
        repo.insert_available(TUTOR_ID, NEXT_MONDAY, 9, NOW)
        db.commit()

        assert repo.confirm(TUTOR_ID, NEXT_MONDAY, 9, NOW) == 0
        repo.claim(TUTOR_ID, NEXT_MONDAY, 9, "B1", NOW)
        assert repo.confirm(TUTOR_ID, NEXT_MONDAY, 9, NOW, booking_id="B1") == 1
        db.commit()

        assert repo.get_slot(TUTOR_ID, NEXT_MONDAY, 9).status == SlotStatus.BOOKED

    def test_delete_with_status_leaves_occupied_rows(self, db):
        repo = RepositoryFactory.create_slot_repository(db)
        repo.insert_available(TUTOR_ID, NEXT_MONDAY, 9, NOW)
        repo.claim(TUTOR_ID, NEXT_MONDAY, 9, "B1", NOW)
        db.commit()

        assert repo.delete_with_status(TUTOR_ID, NEXT_MONDAY, 9, [SlotStatus.AVAILABLE]) == 0
        assert repo.get_slot(TUTOR_ID, NEXT_MONDAY, 9) is not None

    def test_delete_with_status_keeps_rows_a_booking_referenced(self, db):
        repo = RepositoryFactory.create_slot_repository(db)
        repo.insert_available(TUTOR_ID, NEXT_MONDAY, 9, NOW)
        db.commit()
        _make_booking(db, "01JX0000000000000000000004", BookingStatus.CANCELLED)

        assert repo.delete_with_status(TUTOR_ID, NEXT_MONDAY, 9, [SlotStatus.AVAILABLE]) == 0
        assert repo.get_slot(TUTOR_ID, NEXT_MONDAY, 9) is not None


class TestFindOrphaned:
    def test_missing_and_cancelled_bookings_are_orphans(self, db):
        repo = RepositoryFactory.create_slot_repository(db)
        for hour in (9, 10, 11):
            repo.insert_available(TUTOR_ID, NEXT_MONDAY, hour, NOW)
        repo.claim(TUTOR_ID, NEXT_MONDAY, 9, "01JX0000000000000000000001", NOW)
        repo.claim(TUTOR_ID, NEXT_MONDAY, 10, "01JX0000000000000000000002", NOW)
        repo.claim(TUTOR_ID, NEXT_MONDAY, 11, "01JX0000000000000000000003", NOW)
        db.commit()
        _make_booking(db, "01JX0000000000000000000002", BookingStatus.CANCELLED, hour=10)
        _make_booking(db, "01JX0000000000000000000003", BookingStatus.PENDING, hour=11)

        orphans = repo.find_orphaned(NOW + timedelta(seconds=1))

        assert [slot.hour for slot in orphans] == [9, 10]

    def test_recent_claims_are_not_orphans(self, db):
        repo = RepositoryFactory.create_slot_repository(db)
        repo.insert_available(TUTOR_ID, NEXT_MONDAY, 9, NOW)
        repo.claim(TUTOR_ID, NEXT_MONDAY, 9, "01JX0000000000000000000001", NOW)
        db.commit()

        assert repo.find_orphaned(NOW) == []
