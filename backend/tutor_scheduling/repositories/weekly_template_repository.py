from datetime import datetime
import logging
from typing import Dict, Iterable, List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.weekly_template import WeeklyTemplate
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class WeeklyTemplateRepository(BaseRepository[WeeklyTemplate]):
    """Repository for committed weekly patterns."""

    def __init__(self, db: Session):
        super().__init__(db, WeeklyTemplate)

    def get_pattern(self, tutor_id: str) -> Dict[int, List[int]]:
        """Return weekday -> sorted hours for every stored weekday."""
        try:
            stmt = select(WeeklyTemplate).where(WeeklyTemplate.tutor_id == tutor_id)
            rows = self.db.execute(stmt).scalars().all()
            return {row.weekday: list(row.hours) for row in rows}
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading pattern for {tutor_id}: {str(e)}")
            raise RepositoryException(f"Failed to load weekly pattern: {str(e)}")

    def upsert_day(
        self, tutor_id: str, weekday: int, hours: Iterable[int], now: datetime
    ) -> WeeklyTemplate:
        """Replace the hours stored for one weekday. Does not commit."""
        try:
            row = self.db.get(WeeklyTemplate, (tutor_id, weekday))
            if row is None:
                row = WeeklyTemplate(tutor_id=tutor_id, weekday=weekday, hours=sorted(hours))
                row.updated_at = now
                self.db.add(row)
            else:
                row.hours = sorted(hours)
                row.updated_at = now
            self.db.flush()
            return row
        except SQLAlchemyError as e:
            self.logger.error(f"Error saving pattern for {tutor_id}/{weekday}: {str(e)}")
            raise RepositoryException(f"Failed to save weekly pattern: {str(e)}")
