# backend/tutor_scheduling/repositories/__init__.py
"""
Repository layer for the scheduling engine.

Key Components:
- BaseRepository: Foundation for all repositories
- RepositoryFactory: Factory for creating repository instances
- SlotRepository: conditional slot transitions (claim, release, confirm, toggle)
- BookingRepository: booking rows and their status transitions
- WeeklyTemplateRepository: committed weekday patterns
- AuditRepository: slot audit trail

Usage:
    from tutor_scheduling.repositories import RepositoryFactory

    slots = RepositoryFactory.create_slot_repository(db)
    won = slots.claim(tutor_id, slot_date, hour, booking_id, now) == 1
"""

from .audit_repository import AuditRepository
from .base_repository import BaseRepository, IRepository
from .booking_repository import BookingRepository
from .factory import RepositoryFactory
from .slot_repository import SlotRepository
from .weekly_template_repository import WeeklyTemplateRepository

__all__ = [
    "AuditRepository",
    "BaseRepository",
    "BookingRepository",
    "IRepository",
    "RepositoryFactory",
    "SlotRepository",
    "WeeklyTemplateRepository",
]
