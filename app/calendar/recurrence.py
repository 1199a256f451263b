"""Recurrence model and date stepping.

Pure functions only: no database access, no clock reads. The generator
drives advance() from a rule's start date to produce candidate days.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta
from enum import StrEnum

from dateutil.relativedelta import relativedelta

from app.calendar.errors import InvalidArgumentError

# Upper bound on the day-by-day weekday scan
WEEKDAY_SCAN_DAYS = 14


class RecurrenceType(StrEnum):
    """How often a rule repeats."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


def sunday_weekday(day: date) -> int:
    """Weekday number with Sunday = 0 ... Saturday = 6."""
    return day.isoweekday() % 7


def parse_recurrence_type(value: str | RecurrenceType) -> RecurrenceType:
    try:
        return RecurrenceType(value)
    except ValueError as e:
        valid = ", ".join(t.value for t in RecurrenceType)
        raise InvalidArgumentError(f"Unknown recurrence type {value!r}. Must be one of: {valid}") from e


def normalize_days_of_week(days_of_week: Iterable[int] | None) -> list[int] | None:
    """Validate and canonicalize a weekday filter.

    Returns a sorted, de-duplicated list, or None when no filter is given.

    Raises:
        InvalidArgumentError: If any element falls outside 0-6
    """
    if days_of_week is None:
        return None
    days = list(days_of_week)
    invalid = [d for d in days if not isinstance(d, int) or isinstance(d, bool) or not 0 <= d <= 6]
    if invalid:
        raise InvalidArgumentError(f"Days of week must be between 0 (Sunday) and 6 (Saturday), got {invalid}")
    return sorted(set(days)) or None


@dataclass(frozen=True)
class RecurrenceSpec:
    """Validated recurrence request.

    Attributes:
        recurrence_type: daily, weekly or monthly
        interval: every N units, >= 1
        end_date: inclusive last day, None for open-ended rules
        days_of_week: weekday filter for weekly rules (Sunday = 0)
    """

    recurrence_type: RecurrenceType
    interval: int = 1
    end_date: date | None = None
    days_of_week: tuple[int, ...] | None = None

    @classmethod
    def build(
        cls,
        recurrence_type: str | RecurrenceType,
        interval: int | None = 1,
        end_date: date | None = None,
        days_of_week: Iterable[int] | None = None,
    ) -> RecurrenceSpec:
        """Validate raw values and build a spec.

        Raises:
            InvalidArgumentError: On unknown type, interval < 1 or weekdays outside 0-6
        """
        rtype = parse_recurrence_type(recurrence_type)
        interval = 1 if interval is None else interval
        if interval < 1:
            raise InvalidArgumentError(f"Recurrence interval must be >= 1, got {interval}")
        days = normalize_days_of_week(days_of_week)
        return cls(
            recurrence_type=rtype,
            interval=interval,
            end_date=end_date,
            days_of_week=tuple(days) if days else None,
        )


def _add_months(current: date, months: int, anchor_day: int | None) -> date:
    shifted = current + relativedelta(months=months)
    if anchor_day is None or anchor_day <= shifted.day:
        return shifted
    last_day = calendar.monthrange(shifted.year, shifted.month)[1]
    return shifted.replace(day=min(anchor_day, last_day))


def advance(
    current: date,
    recurrence_type: str | RecurrenceType,
    interval: int = 1,
    days_of_week: Iterable[int] | None = None,
    *,
    anchor_day: int | None = None,
) -> date:
    """Return the next candidate date after ``current``.

    - daily: current + interval days
    - weekly without weekdays: current + interval weeks
    - weekly with weekdays: the very next day whose weekday is in the set.
      The interval is not applied in this mode; a Mon/Wed/Fri rule with
      interval 2 still lands on every Mon/Wed/Fri.
    - monthly: current + interval months, clamped to the end of shorter
      months. ``anchor_day`` restores the rule's original day of month when
      the target month is long enough (Jan 31 -> Feb 29 -> Mar 31).

    The result is always strictly after ``current``; ``days_of_week`` is
    ignored for non-weekly types.

    Days are UTC calendar days, so weekday filters apply to the UTC date of
    an occurrence, not the client's local date.

    Raises:
        InvalidArgumentError: On unknown recurrence type or interval < 1
    """
    rtype = parse_recurrence_type(recurrence_type)
    if interval < 1:
        raise InvalidArgumentError(f"Recurrence interval must be >= 1, got {interval}")

    if rtype is RecurrenceType.DAILY:
        return current + timedelta(days=interval)

    if rtype is RecurrenceType.WEEKLY:
        weekdays = set(days_of_week or ())
        if weekdays:
            for offset in range(1, WEEKDAY_SCAN_DAYS + 1):
                candidate = current + timedelta(days=offset)
                if sunday_weekday(candidate) in weekdays:
                    return candidate
        return current + timedelta(weeks=interval)

    return _add_months(current, interval, anchor_day)
