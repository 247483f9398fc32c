# backend/tutor_scheduling/repositories/factory.py
"""
Repository Factory for the scheduling engine.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .audit_repository import AuditRepository
    from .booking_repository import BookingRepository
    from .slot_repository import SlotRepository
    from .weekly_template_repository import WeeklyTemplateRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation to ensure consistent initialization
    and makes it easy to swap implementations if needed.
    """

    @staticmethod
    def create_slot_repository(db: Session) -> "SlotRepository":
        """Create repository for time slot operations."""
        from .slot_repository import SlotRepository

        return SlotRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        """Create repository for booking operations."""
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_weekly_template_repository(db: Session) -> "WeeklyTemplateRepository":
        from .weekly_template_repository import WeeklyTemplateRepository

        return WeeklyTemplateRepository(db)

    @staticmethod
    def create_audit_repository(db: Session) -> "AuditRepository":
        from .audit_repository import AuditRepository

        return AuditRepository(db)
