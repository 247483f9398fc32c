"""Time sources for the scheduling engine."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import threading
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Supplies the current instant. All past/future decisions go through it."""

    def now(self) -> datetime:
        """Return the current time as a timezone-aware UTC datetime."""
        ...


class SystemClock:
    """Wall clock backed by the host system."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FrozenClock:
    """Clock pinned to a fixed instant, advanced explicitly. Used by tests and replays."""

    def __init__(self, instant: datetime):
        self._lock = threading.Lock()
        self._instant = _ensure_utc(instant)

    def now(self) -> datetime:
        with self._lock:
            return self._instant

    def set(self, instant: datetime) -> None:
        with self._lock:
            self._instant = _ensure_utc(instant)

    def advance(self, delta: timedelta) -> datetime:
        with self._lock:
            self._instant = self._instant + delta
            return self._instant


def _ensure_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        raise ValueError("Clock instants must be timezone-aware")
    return instant.astimezone(timezone.utc)


system_clock = SystemClock()
