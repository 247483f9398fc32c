"""Repository for slot audit log persistence and querying."""

from __future__ import annotations

from datetime import datetime
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.constants import MAX_QUERY_LIMIT
from ..core.exceptions import RepositoryException
from ..models.audit_log import SlotAuditLog
from .base_repository import BaseRepository


class AuditRepository(BaseRepository[SlotAuditLog]):
    """Data access helpers for SlotAuditLog entries."""

    def __init__(self, db: Session):
        super().__init__(db, SlotAuditLog)

    def write(self, entry: SlotAuditLog) -> SlotAuditLog:
        """Persist an audit entry. Caller is responsible for committing."""
        self.db.add(entry)
        self.db.flush()
        return entry

    def list_since(
        self, tutor_id: str, since: datetime, limit: int = MAX_QUERY_LIMIT
    ) -> List[SlotAuditLog]:
        """Entries for a tutor at or after ``since``, newest first."""
        try:
            stmt = (
                select(SlotAuditLog)
                .where(SlotAuditLog.tutor_id == tutor_id, SlotAuditLog.occurred_at >= since)
                .order_by(SlotAuditLog.occurred_at.desc(), SlotAuditLog.id.desc())
                .limit(limit)
            )
            return list(self.db.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading audit history for {tutor_id}: {str(e)}")
            raise RepositoryException(f"Failed to load audit history: {str(e)}")
