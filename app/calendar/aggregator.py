"""Calendar aggregation.

Groups a user's assigned workouts by calendar day and annotates each one
with template facts from the catalog.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy.orm import Session

from app.calendar.errors import InvalidArgumentError
from app.calendar.repository import list_workouts_between
from app.calendar.templates import TemplateCatalog, TemplateLookupCache
from app.db.models import AssignedWorkout
from app.utils.timezone import day_bounds


@dataclass(frozen=True)
class CalendarWorkout:
    """Assigned workout annotated with template facts."""

    id: str
    template_id: str
    template_name: str
    exercise_count: int
    scheduled_at: datetime
    status: str
    completed_at: datetime | None
    recurrence_ref: str | None


@dataclass(frozen=True)
class CalendarDay:
    """All workouts on one calendar day.

    Attributes:
        date: ISO calendar date (YYYY-MM-DD)
        workouts: That day's workouts ordered by time of day
    """

    date: str
    workouts: list[CalendarWorkout]


def annotate(workout: AssignedWorkout, templates: TemplateLookupCache) -> CalendarWorkout:
    info = templates.describe(workout.template_id)
    return CalendarWorkout(
        id=workout.id,
        template_id=workout.template_id,
        template_name=info.name,
        exercise_count=info.exercise_count,
        scheduled_at=workout.scheduled_at,
        status=workout.status,
        completed_at=workout.completed_at,
        recurrence_ref=workout.recurrence_ref,
    )


def validate_range(start: date | datetime, end: date | datetime) -> tuple[datetime, datetime]:
    """Inclusive storage bounds for a range; dates cover whole days.

    Raises:
        InvalidArgumentError: If a bound is missing or start is after end
    """
    if start is None or end is None:
        raise InvalidArgumentError("start and end dates are required")
    lower, upper = day_bounds(start, end)
    if lower > upper:
        raise InvalidArgumentError(f"start ({start}) must not be after end ({end})")
    return lower, upper


def events_in_range(
    session: Session,
    catalog: TemplateCatalog,
    user_id: str,
    start: date | datetime,
    end: date | datetime,
) -> list[CalendarDay]:
    """Calendar days with workouts between start and end, inclusive.

    Days are returned in ascending date order; days without workouts are
    omitted, so an empty range gives an empty list.
    """
    lower, upper = validate_range(start, end)
    templates = TemplateLookupCache(catalog)

    grouped: dict[str, list[CalendarWorkout]] = {}
    for workout in list_workouts_between(session, user_id, lower, upper):
        grouped.setdefault(workout.scheduled_date.isoformat(), []).append(annotate(workout, templates))

    # Workouts arrive ordered by scheduled_at, so each day's list is already in time order
    return [CalendarDay(date=day, workouts=workouts) for day, workouts in sorted(grouped.items())]
