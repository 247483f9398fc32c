# backend/tutor_scheduling/tasks/__init__.py
"""
Celery tasks package for the scheduling engine.

- reconcile_orphaned_slots_task: frees slots whose booking never landed
- expire_stale_pending_task: cancels unconfirmed PENDING bookings
"""

from .celery_app import celery_app
from .reconciliation import (
    expire_stale_pending_task,
    reconcile_orphaned_slots_task,
    run_pending_expiry,
    run_reconciliation,
)

__all__ = [
    "celery_app",
    "expire_stale_pending_task",
    "reconcile_orphaned_slots_task",
    "run_pending_expiry",
    "run_reconciliation",
]
