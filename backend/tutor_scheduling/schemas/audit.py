"""Schemas for audit log endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from ..core.enums import AuditAction, AuditReason
from .base import StandardizedModel


class AuditEntryResponse(StandardizedModel):
    id: str
    tutor_id: str
    slot_date: date = Field(..., serialization_alias="date")
    hour: int
    action: AuditAction
    reason: AuditReason
    actor_id: Optional[str] = None
    booking_id: Optional[str] = None
    occurred_at: datetime


class AuditHistoryResponse(StandardizedModel):
    tutor_id: str
    since_days: int
    entries: List[AuditEntryResponse]


class ChangeStatsResponse(StandardizedModel):
    tutor_id: str
    days: int
    total_changes: int
    slots_added: int
    slots_removed: int
    most_active_day: Optional[date] = None
    avg_changes_per_day: float
