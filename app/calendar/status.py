"""Assigned workout status state machine.

pending -> in_progress | completed | skipped
in_progress -> completed | skipped
completed, skipped: terminal

Legality is enforced by the UPDATE itself (WHERE status IN legal sources),
so two concurrent requests cannot both move a workout out of the same state.
"""

from __future__ import annotations

from enum import StrEnum

from loguru import logger
from sqlalchemy import update
from sqlalchemy.orm import Session

from app.calendar.errors import InvalidArgumentError, InvalidStatusTransitionError
from app.calendar.repository import get_workout
from app.db.models import AssignedWorkout
from app.utils.timezone import utcnow


class WorkoutStatus(StrEnum):
    """Lifecycle status of an assigned workout."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"


ALLOWED_TRANSITIONS: dict[WorkoutStatus, frozenset[WorkoutStatus]] = {
    WorkoutStatus.PENDING: frozenset({WorkoutStatus.IN_PROGRESS, WorkoutStatus.COMPLETED, WorkoutStatus.SKIPPED}),
    WorkoutStatus.IN_PROGRESS: frozenset({WorkoutStatus.COMPLETED, WorkoutStatus.SKIPPED}),
    WorkoutStatus.COMPLETED: frozenset(),
    WorkoutStatus.SKIPPED: frozenset(),
}


def parse_status(value: str | WorkoutStatus) -> WorkoutStatus:
    try:
        return WorkoutStatus(value)
    except ValueError as e:
        valid = ", ".join(s.value for s in WorkoutStatus)
        raise InvalidArgumentError(f"Invalid status {value!r}. Must be one of: {valid}") from e


def can_transition(current: str | WorkoutStatus, target: str | WorkoutStatus) -> bool:
    return WorkoutStatus(target) in ALLOWED_TRANSITIONS[WorkoutStatus(current)]


def sources_for(target: WorkoutStatus) -> list[str]:
    """Statuses from which ``target`` may be entered."""
    return [source.value for source in WorkoutStatus if can_transition(source, target)]


def set_status(session: Session, user_id: str, workout_id: str, new_status: str | WorkoutStatus) -> AssignedWorkout:
    """Move a workout to ``new_status``.

    Completing a workout stamps completed_at; every other target leaves
    completed_at untouched.

    Raises:
        InvalidArgumentError: If new_status is not a known status
        NotFoundError: If the workout does not exist or belongs to another user
        InvalidStatusTransitionError: If the current status forbids the change
    """
    target = parse_status(new_status)

    values: dict[str, object] = {"status": target.value, "updated_at": utcnow()}
    if target is WorkoutStatus.COMPLETED:
        values["completed_at"] = utcnow()

    result = session.execute(
        update(AssignedWorkout)
        .where(
            AssignedWorkout.id == workout_id,
            AssignedWorkout.user_id == user_id,
            AssignedWorkout.status.in_(sources_for(target)),
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )

    # Refresh from the database either way so the caller sees the committed status
    workout = get_workout(session, user_id, workout_id)
    session.refresh(workout)
    if result.rowcount == 0:
        logger.info(f"[CALENDAR] Rejected status change {workout.status} -> {target.value} for workout {workout_id}", user_id=user_id)
        raise InvalidStatusTransitionError(workout.status, target.value)

    logger.info(f"[CALENDAR] Workout {workout_id} status set to {target.value}", user_id=user_id)
    return workout
