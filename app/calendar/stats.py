"""Workout completion statistics over a date range."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.calendar.aggregator import validate_range
from app.calendar.status import WorkoutStatus
from app.db.models import AssignedWorkout


@dataclass(frozen=True)
class WorkoutStats:
    """Completion tallies for a range.

    in_progress workouts count toward total only, so
    completed + pending + skipped can be less than total.
    """

    total: int
    completed: int
    pending: int
    skipped: int
    completion_rate: float


def completion_rate(completed: int, total: int) -> float:
    """Percentage of completed workouts; 0 when there are none."""
    if total == 0:
        return 0.0
    return completed / total * 100


def summarize(status_counts: Counter[str]) -> WorkoutStats:
    total = sum(status_counts.values())
    completed = status_counts[WorkoutStatus.COMPLETED.value]
    return WorkoutStats(
        total=total,
        completed=completed,
        pending=status_counts[WorkoutStatus.PENDING.value],
        skipped=status_counts[WorkoutStatus.SKIPPED.value],
        completion_rate=completion_rate(completed, total),
    )


def compute_stats(session: Session, user_id: str, start: date | datetime, end: date | datetime) -> WorkoutStats:
    """Tally workouts scheduled between start and end, inclusive."""
    lower, upper = validate_range(start, end)
    rows = session.execute(
        select(AssignedWorkout.status, func.count())
        .where(
            AssignedWorkout.user_id == user_id,
            AssignedWorkout.scheduled_at >= lower,
            AssignedWorkout.scheduled_at <= upper,
        )
        .group_by(AssignedWorkout.status)
    ).all()
    return summarize(Counter({status: count for status, count in rows}))
