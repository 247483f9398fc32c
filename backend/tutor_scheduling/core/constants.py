"""Scheduling constants shared across the engine."""

from __future__ import annotations

# Bookable hours in tutor local time. 12:00 is the lunch hour and never bookable.
LUNCH_HOUR = 12
ALLOWED_HOURS: frozenset[int] = frozenset({8, 9, 10, 11, 13, 14, 15, 16, 17})

# Every slot is exactly one hour long
SLOT_DURATION_MINUTES = 60

# Day of week mapping (date.weekday() order)
DAYS_OF_WEEK = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
DAYS_IN_WEEK = 7

# Reporting windows
UPCOMING_WINDOW_DAYS = 7

# Query limits
DEFAULT_QUERY_LIMIT = 100
MAX_QUERY_LIMIT = 1000

# Bulk creation guard
MAX_BULK_WEEKS = 52
