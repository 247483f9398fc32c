from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, Integer, String

from ..database import Base
from .types import HourSetType, UTCDateTime, now_utc


class WeeklyTemplate(Base):
    """Committed recurring pattern: one row per (tutor, weekday)."""

    __tablename__ = "weekly_templates"

    tutor_id = Column(String(64), primary_key=True)
    weekday = Column(Integer, primary_key=True)
    hours = Column(HourSetType, nullable=False, default=list)
    updated_at = Column(UTCDateTime, nullable=False, default=now_utc, onupdate=now_utc)

    __table_args__ = (
        CheckConstraint("weekday BETWEEN 0 AND 6", name="ck_weekly_templates_weekday"),
    )
