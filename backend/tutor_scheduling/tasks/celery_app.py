# backend/tutor_scheduling/tasks/celery_app.py
"""
Celery application configuration for the scheduling engine.

Runs the periodic maintenance jobs: reconciliation of orphaned slots and
expiry of PENDING bookings that were never confirmed.
"""

from celery import Celery

from ..core.config import settings
from .beat_schedule import CELERYBEAT_SCHEDULE


def create_celery_app() -> Celery:
    """
    Create and configure the Celery application.

    Returns:
        Celery: Configured Celery application instance
    """
    celery_app = Celery("tutor_scheduling", broker=settings.celery_broker_url)

    celery_app.conf.update(
        {
            # Task settings
            "task_serializer": "json",
            "accept_content": ["json"],
            "result_serializer": "json",
            "timezone": settings.tutor_timezone,
            "enable_utc": True,
            # Maintenance jobs are idempotent; results are never read
            "task_ignore_result": True,
            "task_acks_late": True,
            "task_reject_on_worker_lost": True,
            "task_soft_time_limit": 120,
            "task_time_limit": 300,
            "worker_prefetch_multiplier": 1,
            "worker_hijack_root_logger": False,
            "beat_schedule": CELERYBEAT_SCHEDULE,
        }
    )

    # Register task modules explicitly so workers never see "unregistered task"
    celery_app.conf.imports = ("tutor_scheduling.tasks.reconciliation",)
    return celery_app


celery_app = create_celery_app()
