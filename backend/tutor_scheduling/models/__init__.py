"""
Database models for the scheduling engine.

- TimeSlot: one bookable hour per (tutor, date, hour)
- Booking: a learner's claim on a slot
- WeeklyTemplate: committed recurring weekday pattern
- SlotAuditLog: append-only record of availability changes
"""

from .audit_log import SlotAuditLog
from .booking import Booking
from .time_slot import TimeSlot
from .weekly_template import WeeklyTemplate

__all__ = [
    "Booking",
    "SlotAuditLog",
    "TimeSlot",
    "WeeklyTemplate",
]
