# backend/tutor_scheduling/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from ...core.clock import Clock, system_clock
from ...integrations.session_catalog import SessionCatalog, default_catalog
from ...services.audit_service import AuditService
from ...services.scheduling_service import SchedulingService
from ...services.slot_store import SlotStore
from ...services.weekly_template_service import WeeklyTemplateService
from .database import get_db


def get_clock() -> Clock:
    """Time source for request handling."""
    return system_clock


@lru_cache(maxsize=1)
def get_catalog_singleton() -> SessionCatalog:
    """Get singleton session catalog instance."""
    return default_catalog()


def get_catalog() -> SessionCatalog:
    return get_catalog_singleton()


def get_slot_store(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> SlotStore:
    """Get SlotStore instance for dependency injection."""
    return SlotStore(db, clock)


def get_weekly_template_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    slot_store: SlotStore = Depends(get_slot_store),
) -> WeeklyTemplateService:
    """Get WeeklyTemplateService sharing the request's SlotStore."""
    return WeeklyTemplateService(db, clock, slot_store=slot_store)


def get_scheduling_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    catalog: SessionCatalog = Depends(get_catalog),
    slot_store: SlotStore = Depends(get_slot_store),
) -> SchedulingService:
    """
    Get scheduling service instance.

    Args:
        db: Database session
        clock: Time source
        catalog: Session catalog used to price bookings
        slot_store: Slot primitives bound to the same session

    Returns:
        SchedulingService instance
    """
    return SchedulingService(db, clock, catalog=catalog, slot_store=slot_store)


def get_audit_service(
    db: Session = Depends(get_db), clock: Clock = Depends(get_clock)
) -> AuditService:
    """Get AuditService instance for dependency injection."""
    return AuditService(db, clock)
