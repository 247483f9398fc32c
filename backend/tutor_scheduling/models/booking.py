# backend/tutor_scheduling/models/booking.py
"""
Booking model for the scheduling engine.

A booking is a learner's claim on exactly one time slot. Rows are never
hard-deleted; cancelled bookings stay as history.

Architecture: the slot reference (tutor_id, slot_date, hour) is stored on
the booking itself. A partial unique index guarantees that at most one
PENDING or CONFIRMED booking exists per slot, backing up the slot-level
compare-and-swap at the storage layer.
"""

from datetime import datetime
import logging

from sqlalchemy import Column, Date, Index, Integer, Numeric, String, Text, text
import ulid

from ..core.enums import BookingStatus
from ..core.timezone_utils import slot_start_instant
from ..database import Base
from .base_enum import create_safe_enum
from .types import UTCDateTime, now_utc

logger = logging.getLogger(__name__)

_ACTIVE_PREDICATE = text("status IN ('PENDING', 'CONFIRMED')")


class Booking(Base):
    """
    Learner booking of a tutor's slot.

    Session details are snapshotted at booking time for historical accuracy.
    """

    __tablename__ = "bookings"

    # Primary key
    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    # Parties
    tutor_id = Column(String(64), nullable=False, index=True)
    learner_id = Column(String(64), nullable=False, index=True)

    # Slot reference
    slot_date = Column(Date, nullable=False, index=True)
    hour = Column(Integer, nullable=False)

    # Session snapshot (preserved for history)
    session_id = Column(String(64), nullable=False)
    session_title = Column(String(255), nullable=True)
    price = Column(Numeric(10, 2), nullable=False)

    status = Column(
        create_safe_enum(BookingStatus, "booking_status"),
        nullable=False,
        default=BookingStatus.PENDING,
        index=True,
    )

    # Contact metadata
    contact_name = Column(String(255), nullable=True)
    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(64), nullable=True)
    notes = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(UTCDateTime, nullable=False, default=now_utc)
    updated_at = Column(UTCDateTime, nullable=False, default=now_utc)
    confirmed_at = Column(UTCDateTime, nullable=True)
    completed_at = Column(UTCDateTime, nullable=True)
    cancelled_at = Column(UTCDateTime, nullable=True)

    # Cancellation tracking
    cancelled_by = Column(String(64), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    __table_args__ = (
        Index(
            "uq_bookings_active_slot",
            "tutor_id",
            "slot_date",
            "hour",
            unique=True,
            sqlite_where=_ACTIVE_PREDICATE,
            postgresql_where=_ACTIVE_PREDICATE,
        ),
        Index("ix_bookings_status_created", "status", "created_at"),
    )

    @property
    def starts_at(self) -> datetime:
        return slot_start_instant(self.slot_date, self.hour)

    def is_party(self, actor_id: str) -> bool:
        return actor_id in (self.tutor_id, self.learner_id)

    def __repr__(self) -> str:
        return f"<Booking {self.id} {self.tutor_id} {self.slot_date} {self.hour} {self.status.value}>"
