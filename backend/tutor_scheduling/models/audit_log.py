# backend/tutor_scheduling/models/audit_log.py
"""
Append-only audit trail of slot availability changes.

Rows are written best-effort after the mutation has committed; nothing in
the scheduling flow reads them back.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Column, Date, Index, Integer, String
import ulid

from ..core.enums import AuditAction, AuditReason
from ..database import Base
from .base_enum import create_safe_enum
from .types import UTCDateTime, now_utc

if TYPE_CHECKING:
    from ..events.scheduling_events import SlotChanged


class SlotAuditLog(Base):
    """Persistence model for slot audit entries."""

    __tablename__ = "slot_audit_log"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    tutor_id = Column(String(64), nullable=False)
    slot_date = Column(Date, nullable=False)
    hour = Column(Integer, nullable=False)
    action = Column(create_safe_enum(AuditAction, "audit_action"), nullable=False)
    reason = Column(create_safe_enum(AuditReason, "audit_reason"), nullable=False)
    actor_id = Column(String(64), nullable=True)
    booking_id = Column(String(26), nullable=True)
    occurred_at = Column(UTCDateTime, nullable=False, default=now_utc)

    __table_args__ = (Index("ix_slot_audit_tutor_occurred", "tutor_id", "occurred_at"),)

    @classmethod
    def from_event(cls, event: "SlotChanged") -> "SlotAuditLog":
        """Factory helper to build an audit row from a slot change event."""
        return cls(
            tutor_id=event.tutor_id,
            slot_date=event.slot_date,
            hour=event.hour,
            action=event.action,
            reason=event.reason,
            actor_id=event.actor_id,
            booking_id=event.booking_id,
            occurred_at=event.occurred_at,
        )
