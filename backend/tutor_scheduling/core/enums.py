# backend/tutor_scheduling/core/enums.py
"""
Core enums for the scheduling engine.

Slot and booking statuses are closed sets. The mapping between them is:

    Booking PENDING    -> Slot PENDING
    Booking CONFIRMED  -> Slot BOOKED
    Booking COMPLETED  -> Slot BOOKED (kept as historical record)
    Booking CANCELLED  -> Slot AVAILABLE (released)
"""

from enum import Enum


class RoleName(str, Enum):
    """Roles supplied by the identity collaborator."""

    ADMIN = "admin"
    TUTOR = "tutor"
    LEARNER = "learner"


class SlotStatus(str, Enum):
    """Lifecycle of one bookable hour."""

    AVAILABLE = "AVAILABLE"
    PENDING = "PENDING"
    BOOKED = "BOOKED"
    UNAVAILABLE = "UNAVAILABLE"

    @classmethod
    def occupied(cls) -> tuple["SlotStatus", ...]:
        return (cls.PENDING, cls.BOOKED)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @classmethod
    def active(cls) -> tuple["BookingStatus", ...]:
        return (cls.PENDING, cls.CONFIRMED)


class AuditAction(str, Enum):
    """Slot mutations recorded in the audit trail."""

    ADDED = "ADDED"
    REMOVED = "REMOVED"


class AuditReason(str, Enum):
    """Reason tags attached to audit entries."""

    TUTOR_EDIT = "tutor_edit"
    TEMPLATE_MATERIALIZE = "template_materialize"
    COPY_DAY = "copy_day"
    COPY_WEEK = "copy_week"
    BULK_CREATE = "bulk_create"
    CLEAR_FUTURE = "clear_future"
    BOOKING_CANCELLED = "booking_cancelled"
    BOOKING_EXPIRED = "booking_expired"
    RECONCILIATION = "reconciliation"
