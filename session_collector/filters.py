"""Date-range filtering of collected sessions."""

from datetime import datetime
from typing import Optional

from .models import DateRange, Session


def _aware(value: datetime) -> datetime:
    # Naive timestamps are treated as local time
    return value if value.tzinfo is not None else value.astimezone()


def is_within_date_range(timestamp: datetime, date_range: Optional[DateRange]) -> bool:
    """Inclusive on both ends; a missing bound never excludes anything."""
    if date_range is None:
        return True
    ts = _aware(timestamp)
    if date_range.start is not None and ts < _aware(date_range.start):
        return False
    if date_range.end is not None and ts > _aware(date_range.end):
        return False
    return True


def filter_by_date_range(sessions: list[Session], date_range: Optional[DateRange]) -> list[Session]:
    if date_range is None:
        return sessions
    return [s for s in sessions if is_within_date_range(s.timestamp, date_range)]
