"""Slot audit trail: best-effort recording and reporting of availability changes."""

from __future__ import annotations

from collections import Counter
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import date, timedelta
import logging
import threading
from typing import Callable, List, Optional, Set

from sqlalchemy.orm import Session

from ..core.clock import Clock
from ..core.config import settings
from ..core.enums import AuditAction
from ..database import SessionLocal, get_db_session
from ..events import SchedulingEvent, SchedulingEvents, SlotChanged
from ..models.audit_log import SlotAuditLog
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.audit_repository import AuditRepository
from .base import BaseService

logger = logging.getLogger(__name__)


class SlotAuditRecorder:
    """
    Listener that writes SlotChanged events to the audit log.

    Writes are queued on a dedicated thread pool so the request that made
    the change never waits on the audit store. Each entry is written in its
    own session after the originating change has committed. A failed write
    is logged and counted; it never reaches the caller and never undoes the
    change.
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        enabled: Optional[bool] = None,
        max_workers: Optional[int] = None,
    ):
        self.session_factory = session_factory or SessionLocal
        self.enabled = settings.audit_enabled if enabled is None else enabled
        self.max_workers = max_workers or settings.audit_writer_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()

    def __call__(self, event: SchedulingEvent) -> None:
        if isinstance(event, SlotChanged) and self.enabled:
            self._submit(event)

    def _submit(self, entry: SlotChanged) -> None:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers, thread_name_prefix="slot-audit"
                )
            future = self._executor.submit(self.record, entry)
            self._pending.add(future)
        future.add_done_callback(self._forget)

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def record(self, entry: SlotChanged) -> None:
        """Write one audit entry; failures are contained here."""
        if not self.enabled:
            return
        try:
            with get_db_session(self.session_factory) as session:
                RepositoryFactory.create_audit_repository(session).write(
                    SlotAuditLog.from_event(entry)
                )
        except Exception as exc:
            prometheus_metrics.inc_audit_write_failure()
            logger.warning(
                f"Audit write failed: {exc}",
                extra={
                    "tutor_id": entry.tutor_id,
                    "date": entry.slot_date.isoformat(),
                    "hour": entry.hour,
                    "action": entry.action.value,
                    "reason": entry.reason.value,
                },
            )

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for queued writes to finish.

        Returns:
            True if every queued write finished within ``timeout``
        """
        with self._lock:
            pending = list(self._pending)
        _done, not_done = wait(pending, timeout=timeout)
        if not_done:
            logger.warning(f"{len(not_done)} audit writes still pending after {timeout}s")
        return not not_done

    def shutdown(self) -> None:
        """Drain the queue and stop the writer threads."""
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    def install(self) -> "SlotAuditRecorder":
        SchedulingEvents.register(self)
        return self

    def uninstall(self) -> None:
        SchedulingEvents.unregister(self)
        self.shutdown()


@dataclass
class ChangeStats:
    total_changes: int = 0
    slots_added: int = 0
    slots_removed: int = 0
    most_active_day: Optional[date] = None
    avg_changes_per_day: float = 0.0


class AuditService(BaseService):
    """Read side of the slot audit trail."""

    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        repository: Optional[AuditRepository] = None,
    ):
        super().__init__(db, clock)
        self.repository = repository or RepositoryFactory.create_audit_repository(db)

    def history(self, tutor_id: str, since_days: Optional[int] = None) -> List[SlotAuditLog]:
        """Entries from the last ``since_days`` days, newest first."""
        days = since_days if since_days is not None else settings.audit_history_default_days
        since = self.clock.now() - timedelta(days=max(0, days))
        return self.repository.list_since(tutor_id, since)

    def change_stats(self, tutor_id: str, days: Optional[int] = None) -> ChangeStats:
        """
        Summarize recent changes: totals, adds vs removes, the busiest day
        (ties go to the most recent day) and the average per day.
        """
        days = days if days is not None else settings.audit_history_default_days
        entries = self.history(tutor_id, days)

        stats = ChangeStats(total_changes=len(entries))
        stats.slots_added = sum(1 for entry in entries if entry.action == AuditAction.ADDED)
        stats.slots_removed = sum(1 for entry in entries if entry.action == AuditAction.REMOVED)

        per_day = Counter(entry.occurred_at.date() for entry in entries)
        if per_day:
            stats.most_active_day = max(per_day, key=lambda day: (per_day[day], day))
        stats.avg_changes_per_day = stats.total_changes / days if days > 0 else 0.0
        return stats
