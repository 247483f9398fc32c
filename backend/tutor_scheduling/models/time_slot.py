# backend/tutor_scheduling/models/time_slot.py
"""
TimeSlot model.

One row per bookable hour: (tutor_id, slot_date, hour) is unique. Every
status change goes through a conditional UPDATE keyed on the expected
status, so the row itself is the unit of exclusivity.
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, Column, Date, Index, Integer, String, UniqueConstraint
import ulid

from ..core.constants import ALLOWED_HOURS, SLOT_DURATION_MINUTES
from ..core.enums import SlotStatus
from ..core.timezone_utils import slot_start_instant
from ..database import Base
from .base_enum import create_safe_enum
from .types import UTCDateTime, now_utc

_ALLOWED_HOURS_SQL = ", ".join(str(hour) for hour in sorted(ALLOWED_HOURS))


class TimeSlot(Base):
    """A single one-hour slot on a tutor's calendar."""

    __tablename__ = "time_slots"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    tutor_id = Column(String(64), nullable=False)
    slot_date = Column(Date, nullable=False)
    hour = Column(Integer, nullable=False)
    status = Column(
        create_safe_enum(SlotStatus, "slot_status"),
        nullable=False,
        default=SlotStatus.AVAILABLE,
    )
    # Not a foreign key: the claim binds the slot before the booking row exists
    booking_id = Column(String(26), nullable=True, index=True)

    created_at = Column(UTCDateTime, nullable=False, default=now_utc)
    updated_at = Column(UTCDateTime, nullable=False, default=now_utc)

    __table_args__ = (
        UniqueConstraint("tutor_id", "slot_date", "hour", name="uq_time_slots_tutor_date_hour"),
        CheckConstraint(f"hour IN ({_ALLOWED_HOURS_SQL})", name="ck_time_slots_allowed_hour"),
        CheckConstraint(
            "(status IN ('PENDING', 'BOOKED') AND booking_id IS NOT NULL) OR "
            "(status IN ('AVAILABLE', 'UNAVAILABLE') AND booking_id IS NULL)",
            name="ck_time_slots_booking_binding",
        ),
        Index("ix_time_slots_tutor_date", "tutor_id", "slot_date"),
        Index("ix_time_slots_status", "status"),
    )

    @property
    def starts_at(self) -> datetime:
        """UTC instant at which the slot starts."""
        return slot_start_instant(self.slot_date, self.hour)

    @property
    def duration_minutes(self) -> int:
        return SLOT_DURATION_MINUTES

    @property
    def is_occupied(self) -> bool:
        return self.status in SlotStatus.occupied()

    def __repr__(self) -> str:
        return (
            f"<TimeSlot {self.tutor_id} {self.slot_date.isoformat()} "
            f"{self.hour:02d}:00 {self.status.value}>"
        )
