"""Session catalog collaborator: resolves what a booking is for and what it costs."""

from __future__ import annotations

from decimal import Decimal
import logging
from threading import Lock
from typing import Dict, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class SessionInfo(BaseModel):
    """Snapshot of a bookable session offering."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    title: str
    price: Decimal = Field(ge=0)


@runtime_checkable
class SessionCatalog(Protocol):
    def get_session(self, session_id: str) -> Optional[SessionInfo]:
        """Return the session, or None if the catalog has no such id."""
        ...


class InMemorySessionCatalog:
    """Process-local catalog used in development and tests."""

    def __init__(self, sessions: Optional[Dict[str, SessionInfo]] = None):
        self._lock = Lock()
        self._sessions: Dict[str, SessionInfo] = dict(sessions or {})

    def add(self, session_id: str, title: str, price: Decimal | str | int) -> SessionInfo:
        info = SessionInfo(session_id=session_id, title=title, price=Decimal(str(price)))
        with self._lock:
            self._sessions[session_id] = info
        return info

    def get_session(self, session_id: str) -> Optional[SessionInfo]:
        with self._lock:
            return self._sessions.get(session_id)


def default_catalog() -> InMemorySessionCatalog:
    """Catalog seeded with the standard single-lesson offering."""
    catalog = InMemorySessionCatalog()
    catalog.add("single-lesson", "Single lesson (60 min)", Decimal("450.00"))
    return catalog
