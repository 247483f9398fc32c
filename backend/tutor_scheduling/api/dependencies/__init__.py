# backend/tutor_scheduling/api/dependencies/__init__.py
"""
Centralized dependency injection for the API layer.

Usage:
    from ...api.dependencies import get_db, get_actor, get_scheduling_service
"""

from .auth import get_actor, require_owner
from .database import get_db
from .services import (
    get_audit_service,
    get_catalog,
    get_clock,
    get_scheduling_service,
    get_slot_store,
    get_weekly_template_service,
)

__all__ = [
    "get_actor",
    "get_audit_service",
    "get_catalog",
    "get_clock",
    "get_db",
    "get_scheduling_service",
    "get_slot_store",
    "get_weekly_template_service",
    "require_owner",
]
