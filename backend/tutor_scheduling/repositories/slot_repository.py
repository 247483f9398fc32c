# backend/tutor_scheduling/repositories/slot_repository.py
"""
Slot Repository for the scheduling engine.

All status changes are single conditional statements keyed on the expected
current status. The caller inspects the affected row count to learn whether
it won; nothing here reads a row and then writes it back.

Every statement is issued without a preceding SELECT in the same
transaction, so the first statement of a claim is the UPDATE itself.
"""

from datetime import date, datetime
import logging
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import and_, delete, insert, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import BookingStatus, SlotStatus
from ..core.exceptions import RepositoryException
from ..core.ulid_helper import generate_ulid
from ..models.booking import Booking
from ..models.time_slot import TimeSlot
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

_UNIQUE_KEY = ["tutor_id", "slot_date", "hour"]
_NO_SYNC = {"synchronize_session": False}


class SlotRepository(BaseRepository[TimeSlot]):
    """
    Repository for time slot data access.

    Methods returning ``int`` return the number of rows affected; zero means
    the expected precondition did not hold.
    """

    def __init__(self, db: Session):
        super().__init__(db, TimeSlot)

    def _key(self, tutor_id: str, slot_date: date, hour: int):
        return and_(
            TimeSlot.tutor_id == tutor_id,
            TimeSlot.slot_date == slot_date,
            TimeSlot.hour == hour,
        )

    # Reads

    def get_slot(self, tutor_id: str, slot_date: date, hour: int) -> Optional[TimeSlot]:
        """Fetch one slot, bypassing any stale identity-map copy."""
        try:
            stmt = (
                select(TimeSlot)
                .where(self._key(tutor_id, slot_date, hour))
                .execution_options(populate_existing=True)
            )
            return self.db.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting slot {tutor_id} {slot_date} {hour}: {str(e)}")
            raise RepositoryException(f"Failed to get slot: {str(e)}")

    def list_for_range(self, tutor_id: str, start_date: date, end_date: date) -> List[TimeSlot]:
        """All slots for a tutor between two dates (inclusive), ordered by date and hour."""
        try:
            stmt = (
                select(TimeSlot)
                .where(
                    TimeSlot.tutor_id == tutor_id,
                    TimeSlot.slot_date >= start_date,
                    TimeSlot.slot_date <= end_date,
                )
                .order_by(TimeSlot.slot_date, TimeSlot.hour)
                .execution_options(populate_existing=True)
            )
            return list(self.db.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing slots for {tutor_id}: {str(e)}")
            raise RepositoryException(f"Failed to list slots: {str(e)}")

    def list_from_date(
        self,
        tutor_id: str,
        start_date: date,
        statuses: Optional[Sequence[SlotStatus]] = None,
    ) -> List[TimeSlot]:
        """Slots on or after ``start_date``, optionally limited to the given statuses."""
        try:
            stmt = select(TimeSlot).where(
                TimeSlot.tutor_id == tutor_id, TimeSlot.slot_date >= start_date
            )
            if statuses:
                stmt = stmt.where(TimeSlot.status.in_(list(statuses)))
            stmt = stmt.order_by(TimeSlot.slot_date, TimeSlot.hour).execution_options(
                populate_existing=True
            )
            return list(self.db.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing future slots for {tutor_id}: {str(e)}")
            raise RepositoryException(f"Failed to list slots: {str(e)}")

    def find_orphaned(
        self, updated_before: datetime, from_date: Optional[date] = None
    ) -> List[TimeSlot]:
        """
        Occupied slots with no live booking behind them.

        A slot is orphaned when its booking row is missing or cancelled. Slots
        touched after ``updated_before`` are left alone so an in-flight
        booking write is never mistaken for an orphan. With ``from_date`` only
        slots on or after that date are returned.
        """
        try:
            stmt = (
                select(TimeSlot)
                .outerjoin(Booking, Booking.id == TimeSlot.booking_id)
                .where(
                    TimeSlot.status.in_(list(SlotStatus.occupied())),
                    TimeSlot.updated_at < updated_before,
                    or_(Booking.id.is_(None), Booking.status == BookingStatus.CANCELLED),
                )
            )
            if from_date is not None:
                stmt = stmt.where(TimeSlot.slot_date >= from_date)
            stmt = (
                stmt
                .order_by(TimeSlot.slot_date, TimeSlot.hour)
                .execution_options(populate_existing=True)
            )
            return list(self.db.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding orphaned slots: {str(e)}")
            raise RepositoryException(f"Failed to find orphaned slots: {str(e)}")

    # Writes

    def insert_available(self, tutor_id: str, slot_date: date, hour: int, now: datetime) -> bool:
        """
        Insert an AVAILABLE slot unless one already exists.

        Returns True when a row was inserted. A concurrent insert of the same
        key is treated as "already exists".
        """
        values = {
            "id": generate_ulid(),
            "tutor_id": tutor_id,
            "slot_date": slot_date,
            "hour": hour,
            "status": SlotStatus.AVAILABLE,
            "booking_id": None,
            "created_at": now,
            "updated_at": now,
        }
        table = TimeSlot.__table__
        try:
            dialect = self.dialect_name
            if dialect == "postgresql":
                stmt = pg_insert(table).values(**values).on_conflict_do_nothing(
                    index_elements=_UNIQUE_KEY
                )
                return self.db.execute(stmt).rowcount == 1
            if dialect == "sqlite":
                stmt = sqlite_insert(table).values(**values).on_conflict_do_nothing(
                    index_elements=_UNIQUE_KEY
                )
                return self.db.execute(stmt).rowcount == 1

            savepoint = self.db.begin_nested()
            try:
                self.db.execute(insert(table).values(**values))
            except IntegrityError:
                savepoint.rollback()
                return False
            savepoint.commit()
            return True
        except SQLAlchemyError as e:
            self.logger.error(f"Error inserting slot {tutor_id} {slot_date} {hour}: {str(e)}")
            raise RepositoryException(f"Failed to insert slot: {str(e)}")

    def _update(self, where, values: dict) -> int:
        try:
            stmt = update(TimeSlot).where(where).values(**values).execution_options(**_NO_SYNC)
            return self.db.execute(stmt).rowcount
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating slot: {str(e)}")
            raise RepositoryException(f"Failed to update slot: {str(e)}")

    def claim(
        self, tutor_id: str, slot_date: date, hour: int, booking_id: str, now: datetime
    ) -> int:
        """AVAILABLE -> PENDING bound to ``booking_id``, as one conditional UPDATE."""
        return self._update(
            and_(self._key(tutor_id, slot_date, hour), TimeSlot.status == SlotStatus.AVAILABLE),
            {"status": SlotStatus.PENDING, "booking_id": booking_id, "updated_at": now},
        )

    def release(
        self,
        tutor_id: str,
        slot_date: date,
        hour: int,
        now: datetime,
        booking_id: Optional[str] = None,
    ) -> int:
        """PENDING/BOOKED -> AVAILABLE, optionally only while bound to ``booking_id``."""
        where = and_(
            self._key(tutor_id, slot_date, hour),
            TimeSlot.status.in_(list(SlotStatus.occupied())),
        )
        if booking_id is not None:
            where = and_(where, TimeSlot.booking_id == booking_id)
        return self._update(
            where, {"status": SlotStatus.AVAILABLE, "booking_id": None, "updated_at": now}
        )

    def confirm(
        self, tutor_id: str, slot_date: date, hour: int, now: datetime, booking_id: Optional[str] = None
    ) -> int:
        """PENDING -> BOOKED, optionally only while bound to ``booking_id``."""
        where = and_(self._key(tutor_id, slot_date, hour), TimeSlot.status == SlotStatus.PENDING)
        if booking_id is not None:
            where = and_(where, TimeSlot.booking_id == booking_id)
        return self._update(where, {"status": SlotStatus.BOOKED, "updated_at": now})

    def set_status(
        self,
        tutor_id: str,
        slot_date: date,
        hour: int,
        *,
        from_status: SlotStatus,
        to_status: SlotStatus,
        now: datetime,
    ) -> int:
        """Move between the two unbound statuses (AVAILABLE <-> UNAVAILABLE)."""
        unbound = (SlotStatus.AVAILABLE, SlotStatus.UNAVAILABLE)
        if from_status not in unbound or to_status not in unbound:
            raise ValueError("set_status only moves between AVAILABLE and UNAVAILABLE")
        return self._update(
            and_(self._key(tutor_id, slot_date, hour), TimeSlot.status == from_status),
            {"status": to_status, "updated_at": now},
        )

    def delete_with_status(
        self, tutor_id: str, slot_date: date, hour: int, statuses: Iterable[SlotStatus]
    ) -> int:
        """
        Delete a slot only if it currently has one of ``statuses`` and no
        booking, in any status, has ever referenced it.
        """
        referenced = (
            select(Booking.id)
            .where(
                Booking.tutor_id == tutor_id,
                Booking.slot_date == slot_date,
                Booking.hour == hour,
            )
            .exists()
        )
        try:
            stmt = (
                delete(TimeSlot)
                .where(
                    self._key(tutor_id, slot_date, hour),
                    TimeSlot.status.in_(list(statuses)),
                    ~referenced,
                )
                .execution_options(**_NO_SYNC)
            )
            return self.db.execute(stmt).rowcount
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting slot {tutor_id} {slot_date} {hour}: {str(e)}")
            raise RepositoryException(f"Failed to delete slot: {str(e)}")
