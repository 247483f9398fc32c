# backend/tutor_scheduling/repositories/booking_repository.py
"""
Booking Repository for the scheduling engine.

Implements all data access operations for booking management. Status
changes are conditional updates on the expected current status so two
racing transitions (for example a double cancel) cannot both succeed.
"""

from datetime import date, datetime
import logging
from typing import Any, List, Optional, Sequence

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.constants import DEFAULT_QUERY_LIMIT
from ..core.enums import BookingStatus
from ..core.exceptions import RepositoryException
from ..models.booking import Booking
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    """
    Repository for booking data access.
    """

    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        """Fetch a booking, refreshing any stale identity-map copy."""
        try:
            stmt = (
                select(Booking)
                .where(Booking.id == booking_id)
                .execution_options(populate_existing=True)
            )
            return self.db.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to get booking: {str(e)}")

    def get_active_for_slot(self, tutor_id: str, slot_date: date, hour: int) -> Optional[Booking]:
        try:
            stmt = select(Booking).where(
                Booking.tutor_id == tutor_id,
                Booking.slot_date == slot_date,
                Booking.hour == hour,
                Booking.status.in_(list(BookingStatus.active())),
            )
            return self.db.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting active booking for slot: {str(e)}")
            raise RepositoryException(f"Failed to get booking: {str(e)}")

    def list_for_party(
        self,
        party_id: str,
        *,
        status: Optional[BookingStatus] = None,
        limit: int = DEFAULT_QUERY_LIMIT,
        as_tutor: bool = True,
        as_learner: bool = True,
    ) -> List[Booking]:
        """
        Bookings where ``party_id`` is the tutor and/or the learner.

        Ordered by slot date and hour, most recent first.
        """
        clauses = []
        if as_tutor:
            clauses.append(Booking.tutor_id == party_id)
        if as_learner:
            clauses.append(Booking.learner_id == party_id)
        if not clauses:
            return []
        try:
            stmt = select(Booking).where(or_(*clauses))
            if status is not None:
                stmt = stmt.where(Booking.status == status)
            stmt = stmt.order_by(Booking.slot_date.desc(), Booking.hour.desc()).limit(limit)
            return list(self.db.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing bookings for {party_id}: {str(e)}")
            raise RepositoryException(f"Failed to list bookings: {str(e)}")

    def list_all(
        self, *, status: Optional[BookingStatus] = None, limit: int = DEFAULT_QUERY_LIMIT
    ) -> List[Booking]:
        try:
            stmt = select(Booking)
            if status is not None:
                stmt = stmt.where(Booking.status == status)
            stmt = stmt.order_by(Booking.slot_date.desc(), Booking.hour.desc()).limit(limit)
            return list(self.db.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing bookings: {str(e)}")
            raise RepositoryException(f"Failed to list bookings: {str(e)}")

    def list_stale_pending(self, created_before: datetime) -> List[Booking]:
        """PENDING bookings created before the cutoff, oldest first."""
        try:
            stmt = (
                select(Booking)
                .where(
                    Booking.status == BookingStatus.PENDING,
                    Booking.created_at < created_before,
                )
                .order_by(Booking.created_at)
            )
            return list(self.db.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing stale pending bookings: {str(e)}")
            raise RepositoryException(f"Failed to list pending bookings: {str(e)}")

    def count_for_tutor(self, tutor_id: str, status: BookingStatus) -> int:
        try:
            stmt = select(func.count(Booking.id)).where(
                Booking.tutor_id == tutor_id, Booking.status == status
            )
            return int(self.db.execute(stmt).scalar_one())
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting bookings for {tutor_id}: {str(e)}")
            raise RepositoryException(f"Failed to count bookings: {str(e)}")

    def transition(
        self,
        booking_id: str,
        *,
        from_statuses: Sequence[BookingStatus],
        to_status: BookingStatus,
        **fields: Any,
    ) -> int:
        """
        Move a booking to ``to_status`` if it is currently in ``from_statuses``.

        Extra keyword arguments are written in the same statement (timestamps,
        cancellation details).
        """
        try:
            stmt = (
                update(Booking)
                .where(Booking.id == booking_id, Booking.status.in_(list(from_statuses)))
                .values(status=to_status, **fields)
                .execution_options(synchronize_session=False)
            )
            return self.db.execute(stmt).rowcount
        except SQLAlchemyError as e:
            self.logger.error(f"Error transitioning booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to update booking: {str(e)}")
