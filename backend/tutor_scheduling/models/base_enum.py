# backend/tutor_scheduling/models/base_enum.py
"""
Safe enum helpers for SQLAlchemy.

Status columns must persist enum VALUES, not NAMES, so that raw SQL
(conditional updates, partial index predicates) and ORM reads agree on
what is stored.

Usage:
    from tutor_scheduling.models.base_enum import create_safe_enum

    class TimeSlot(Base):
        status = Column(create_safe_enum(SlotStatus, "slot_status"), nullable=False)
"""

from enum import Enum
from typing import Sequence, Type

from sqlalchemy import Enum as SAEnum


def create_safe_enum(
    enum_class: Type[Enum],
    name: str,
    *,
    native_enum: bool = False,
    validate_strings: bool = True,
) -> SAEnum:
    """
    Create a SQLAlchemy Enum that stores enum values (not names).

    Non-native by default: the column is a VARCHAR, which keeps the schema
    identical on SQLite and PostgreSQL and needs no type migrations.
    """
    return SAEnum(
        enum_class,
        name=name,
        native_enum=native_enum,
        validate_strings=validate_strings,
        values_callable=_get_enum_values,
        length=max(len(value) for value in _get_enum_values(enum_class)),
    )


def _get_enum_values(enum_class: Type[Enum]) -> Sequence[str]:
    return [member.value for member in enum_class]
