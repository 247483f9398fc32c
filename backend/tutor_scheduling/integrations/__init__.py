"""External collaborator interfaces."""

from .session_catalog import InMemorySessionCatalog, SessionCatalog, SessionInfo, default_catalog

__all__ = ["InMemorySessionCatalog", "SessionCatalog", "SessionInfo", "default_catalog"]
