# backend/tutor_scheduling/tasks/beat_schedule.py
"""
Celery Beat schedule configuration for the scheduling engine.

Both maintenance jobs run every ``reconciliation_interval_seconds``.
"""

from datetime import timedelta
from typing import Any

from ..core.config import settings

RECONCILE_TASK = "scheduling.reconcile_orphaned_slots"
EXPIRE_TASK = "scheduling.expire_stale_pending"


def get_beat_schedule(interval_seconds: int | None = None) -> dict[str, dict[str, Any]]:
    """
    Build the beat schedule.

    Args:
        interval_seconds: Override settings.reconciliation_interval_seconds

    Returns:
        Mapping of schedule entry name to Celery beat configuration dict
    """
    interval = timedelta(
        seconds=interval_seconds
        if interval_seconds is not None
        else settings.reconciliation_interval_seconds
    )
    return {
        "reconcile-orphaned-slots": {
            "task": RECONCILE_TASK,
            "schedule": interval,
            "options": {"priority": 5},
        },
        "expire-stale-pending-bookings": {
            "task": EXPIRE_TASK,
            "schedule": interval,
            "options": {"priority": 5},
        },
    }


CELERYBEAT_SCHEDULE = get_beat_schedule()
