"""
Timezone utilities for the scheduling engine.

Slots are stored as (date, hour) in the tutor's local wall-clock time. These
helpers turn them into absolute instants and derive local calendar dates
from the injected clock.
"""

from datetime import date, datetime, timedelta
from typing import Optional

import pytz

from .clock import Clock
from .config import settings
from .constants import DAYS_IN_WEEK


def get_tutor_timezone(tz_name: Optional[str] = None) -> pytz.BaseTzInfo:
    """
    Get the timezone in which slot hours are expressed.

    Args:
        tz_name: Optional IANA name override (defaults to settings.tutor_timezone)

    Returns:
        pytz timezone object
    """
    return pytz.timezone(tz_name or settings.tutor_timezone)


def slot_start_instant(slot_date: date, hour: int, tz_name: Optional[str] = None) -> datetime:
    """
    Get the UTC instant at which a slot starts.

    Args:
        slot_date: Local calendar date of the slot
        hour: Local start hour of the slot
        tz_name: Optional timezone override

    Returns:
        Timezone-aware datetime in UTC
    """
    tz = get_tutor_timezone(tz_name)
    local = tz.localize(datetime(slot_date.year, slot_date.month, slot_date.day, hour))
    return local.astimezone(pytz.UTC)


def is_past(slot_date: date, hour: int, now: datetime, tz_name: Optional[str] = None) -> bool:
    """A slot is past once its start instant is at or before now."""
    return slot_start_instant(slot_date, hour, tz_name) <= now


def local_today(now: datetime, tz_name: Optional[str] = None) -> date:
    """Get 'today' in the tutor's timezone for the given instant."""
    return now.astimezone(get_tutor_timezone(tz_name)).date()


def clock_today(clock: Clock, tz_name: Optional[str] = None) -> date:
    return local_today(clock.now(), tz_name)


def week_start(day: date) -> date:
    """Return the Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def week_dates(start: date) -> list[date]:
    """Return the seven dates of the Monday-start week containing ``start``."""
    monday = week_start(start)
    return [monday + timedelta(days=offset) for offset in range(DAYS_IN_WEEK)]


def next_weekday_occurrence(today: date, weekday: int) -> date:
    """
    Get the next date falling on ``weekday`` strictly after ``today``.

    If today is that weekday, the result is one week later.
    """
    days_ahead = (weekday - today.weekday()) % DAYS_IN_WEEK
    if days_ahead == 0:
        days_ahead = DAYS_IN_WEEK
    return today + timedelta(days=days_ahead)
