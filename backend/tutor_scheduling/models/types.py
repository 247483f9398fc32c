# backend/tutor_scheduling/models/types.py
"""
Custom SQLAlchemy types that work across different database backends.
"""

from datetime import datetime, timezone
import json
from typing import TYPE_CHECKING, Any, Iterable, Optional

from sqlalchemy import DateTime, Integer, String, TypeDecorator
from sqlalchemy.dialects.postgresql import ARRAY

if TYPE_CHECKING:
    from sqlalchemy.sql.type_api import TypeDecorator as _TypeDecorator

    TypeDecoratorProtocol = _TypeDecorator[Any]
else:
    TypeDecoratorProtocol = TypeDecorator


def now_utc() -> datetime:
    """Return timezone-aware UTC timestamp for defaults."""
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecoratorProtocol):
    """
    Timestamp column that always round-trips as an aware UTC datetime.

    SQLite has no timezone storage, so values are normalized to UTC on the
    way in and tagged as UTC on the way out.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect: Any) -> Any:
        if value is None:
            return value
        if value.tzinfo is None:
            raise ValueError("Naive datetimes are not accepted; pass an aware UTC value")
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: Optional[datetime], dialect: Any) -> Any:
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class HourSetType(TypeDecoratorProtocol):
    """
    A set of slot hours.

    Uses PostgreSQL ARRAY when available and falls back to a JSON list for
    other databases (like SQLite). Always loads as a sorted list.
    """

    impl = String
    cache_ok = True

    def load_dialect_impl(self, dialect: Any) -> Any:
        if dialect.name == "postgresql":
            return dialect.type_descriptor(ARRAY(Integer))
        return dialect.type_descriptor(String(255))

    def process_bind_param(self, value: Optional[Iterable[int]], dialect: Any) -> Any:
        if value is None:
            return value
        hours = sorted({int(hour) for hour in value})
        if dialect.name == "postgresql":
            return hours
        return json.dumps(hours)

    def process_result_value(self, value: Any, dialect: Any) -> Any:
        if value is None:
            return []
        if dialect.name == "postgresql":
            return sorted(value)
        return sorted(json.loads(value))
