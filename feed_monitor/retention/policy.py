"""Retention policy: how far back stored payloads are kept."""

import calendar
from datetime import datetime, timedelta

from ..ingestion.interfaces import RetentionWindow


def _months_back(when: datetime, months: int) -> datetime:
    """Step back whole calendar months, clamping the day to the month's end."""
    month_index = when.year * 12 + (when.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(when.day, calendar.monthrange(year, month)[1])
    return when.replace(year=year, month=month, day=day)


def cutoff(now: datetime, retention_window: RetentionWindow) -> datetime:
    """Oldest retrieved_at that is still kept.

    week is a fixed 7 days; month and year are calendar steps, so
    31 March minus a month is the last day of February.
    """
    window = RetentionWindow(retention_window)
    if window is RetentionWindow.WEEK:
        return now - timedelta(days=7)
    if window is RetentionWindow.MONTH:
        return _months_back(now, 1)
    return _months_back(now, 12)


def is_expired(retrieved_at: datetime, cutoff_at: datetime) -> bool:
    """True when a record falls outside the retention window."""
    return retrieved_at < cutoff_at
