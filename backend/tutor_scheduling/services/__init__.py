"""
Service layer for the scheduling engine.

- SlotStore: slot status primitives (upsert, remove, claim, release, confirm)
- WeeklyTemplateService: weekly patterns and bulk slot edits
- SchedulingService: booking lifecycle and maintenance jobs
- AuditService / SlotAuditRecorder: audit trail read and write sides
"""

from .audit_service import AuditService, ChangeStats, SlotAuditRecorder
from .base import BaseService
from .scheduling_service import ContactInfo, SchedulingService, TutorStatistics
from .slot_store import SlotStore
from .weekly_template_service import (
    ClearFutureResult,
    DayEditResult,
    TemplateDraft,
    WeeklyTemplateService,
)

__all__ = [
    "AuditService",
    "BaseService",
    "ChangeStats",
    "ClearFutureResult",
    "ContactInfo",
    "DayEditResult",
    "SchedulingService",
    "SlotAuditRecorder",
    "SlotStore",
    "TemplateDraft",
    "TutorStatistics",
    "WeeklyTemplateService",
]
