"""Timezone helpers.

The calendar stores every timestamp as naive UTC and derives calendar days
from the UTC date. These helpers are the only place that conversion happens.
"""

from datetime import date, datetime, time, timezone


def to_utc(dt: datetime) -> datetime:
    """Convert datetime to UTC.

    Args:
        dt: Datetime (timezone-aware or naive)

    Returns:
        Datetime in UTC timezone
    """
    if dt.tzinfo is None:
        # Assume UTC if naive
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_storage(dt: datetime) -> datetime:
    """Convert a datetime to the naive UTC form stored in the database."""
    return to_utc(dt).replace(tzinfo=None)


def utcnow() -> datetime:
    """Current time in storage form (naive UTC)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utc_today() -> date:
    return utcnow().date()


def day_bounds(start: date | datetime, end: date | datetime) -> tuple[datetime, datetime]:
    """Inclusive storage-form bounds for a date or datetime range.

    Plain dates cover the whole day: start at 00:00, end at 23:59:59.999999.
    Datetimes are used as given (converted to naive UTC).
    """
    if isinstance(start, datetime):
        lower = to_storage(start)
    else:
        lower = datetime.combine(start, time.min)
    if isinstance(end, datetime):
        upper = to_storage(end)
    else:
        upper = datetime.combine(end, time.max)
    return lower, upper
