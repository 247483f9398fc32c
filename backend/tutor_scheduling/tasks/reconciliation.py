"""Celery tasks that keep slot and booking state consistent."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session

from ..core.clock import Clock
from ..database import get_db_session, with_db_retry
from ..services.scheduling_service import SchedulingService
from .beat_schedule import EXPIRE_TASK, RECONCILE_TASK
from .celery_app import celery_app

logger = logging.getLogger(__name__)


def run_reconciliation(
    session_factory: Optional[Callable[[], Session]] = None,
    clock: Optional[Clock] = None,
    grace_seconds: Optional[int] = None,
) -> Dict[str, int]:
    """Free slots left PENDING/BOOKED without a live booking."""

    def _run() -> int:
        with get_db_session(session_factory) as db:
            return SchedulingService(db, clock).reconcile_orphaned_slots(grace_seconds)

    freed = with_db_retry("reconcile_orphaned_slots", _run)
    if freed:
        logger.warning("Reconciliation released orphaned slots", extra={"released": freed})
    return {"released": freed}


def run_pending_expiry(
    session_factory: Optional[Callable[[], Session]] = None,
    clock: Optional[Clock] = None,
    max_age_minutes: Optional[int] = None,
) -> Dict[str, int]:
    """Cancel PENDING bookings past their confirmation window."""

    def _run() -> int:
        with get_db_session(session_factory) as db:
            return SchedulingService(db, clock).expire_stale_pending(max_age_minutes)

    expired = with_db_retry("expire_stale_pending", _run)
    logger.info("Pending booking expiry finished", extra={"expired": expired})
    return {"expired": expired}


@celery_app.task(name=RECONCILE_TASK)
def reconcile_orphaned_slots_task() -> Dict[str, int]:
    return run_reconciliation()


@celery_app.task(name=EXPIRE_TASK)
def expire_stale_pending_task() -> Dict[str, int]:
    return run_pending_expiry()
