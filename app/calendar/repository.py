"""Data access for recurrence rules and assigned workouts.

Every function takes an explicit Session and flushes its own writes, so
callers can read back what they just wrote inside the same transaction.
Ownership is part of every lookup: a row that belongs to another user is
indistinguishable from a missing row.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import date, datetime, time
from typing import Any

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.calendar.errors import NotFoundError
from app.calendar.recurrence import RecurrenceSpec
from app.db.models import AssignedWorkout, RecurrenceRule
from app.utils.timezone import to_storage, utcnow

# Dialects that support INSERT ... ON CONFLICT DO NOTHING ... RETURNING
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def create_rule(
    session: Session,
    user_id: str,
    template_id: str,
    spec: RecurrenceSpec,
    start_date: date,
    time_of_day: time,
) -> RecurrenceRule:
    rule = RecurrenceRule(
        user_id=user_id,
        template_id=template_id,
        recurrence_type=spec.recurrence_type.value,
        interval=spec.interval,
        start_date=start_date,
        end_date=spec.end_date,
        days_of_week=list(spec.days_of_week) if spec.days_of_week else None,
        time_of_day=time_of_day,
        is_active=True,
    )
    session.add(rule)
    session.flush()
    logger.debug(f"[CALENDAR] Created recurrence rule {rule.id}", user_id=user_id, template_id=template_id)
    return rule


def get_rule(session: Session, user_id: str, rule_id: str) -> RecurrenceRule:
    """Get a recurrence rule owned by the user.

    Raises:
        NotFoundError: If the rule does not exist or belongs to another user
    """
    rule = session.execute(
        select(RecurrenceRule).where(RecurrenceRule.id == rule_id, RecurrenceRule.user_id == user_id)
    ).scalar_one_or_none()
    if rule is None:
        raise NotFoundError(f"Recurrence rule {rule_id} not found")
    return rule


def list_rules(session: Session, user_id: str, *, active_only: bool = True) -> list[RecurrenceRule]:
    query = select(RecurrenceRule).where(RecurrenceRule.user_id == user_id)
    if active_only:
        query = query.where(RecurrenceRule.is_active.is_(True))
    query = query.order_by(RecurrenceRule.start_date, RecurrenceRule.created_at)
    return list(session.execute(query).scalars().all())


def list_active_rules(session: Session) -> list[RecurrenceRule]:
    """Active rules of every user, for out-of-band refreshes."""
    query = select(RecurrenceRule).where(RecurrenceRule.is_active.is_(True)).order_by(RecurrenceRule.user_id, RecurrenceRule.start_date)
    return list(session.execute(query).scalars().all())


def create_workout(
    session: Session,
    user_id: str,
    template_id: str,
    scheduled_at: datetime,
    recurrence_ref: str | None = None,
) -> AssignedWorkout:
    stored_at = to_storage(scheduled_at)
    workout = AssignedWorkout(
        user_id=user_id,
        template_id=template_id,
        scheduled_at=stored_at,
        scheduled_date=stored_at.date(),
        status="pending",
        recurrence_ref=recurrence_ref,
    )
    session.add(workout)
    session.flush()
    return workout


def get_workout(session: Session, user_id: str, workout_id: str) -> AssignedWorkout:
    """Get an assigned workout owned by the user.

    Raises:
        NotFoundError: If the workout does not exist or belongs to another user
    """
    workout = session.execute(
        select(AssignedWorkout).where(AssignedWorkout.id == workout_id, AssignedWorkout.user_id == user_id)
    ).scalar_one_or_none()
    if workout is None:
        raise NotFoundError(f"Workout {workout_id} not found")
    return workout


def find_occurrence(
    session: Session,
    user_id: str,
    template_id: str,
    day: date,
    recurrence_ref: str | None,
    *,
    exclude_id: str | None = None,
) -> AssignedWorkout | None:
    """Find the occurrence occupying (user, template, day, rule), if any."""
    query = select(AssignedWorkout).where(
        AssignedWorkout.user_id == user_id,
        AssignedWorkout.template_id == template_id,
        AssignedWorkout.scheduled_date == day,
    )
    if recurrence_ref is None:
        query = query.where(AssignedWorkout.recurrence_ref.is_(None))
    else:
        query = query.where(AssignedWorkout.recurrence_ref == recurrence_ref)
    if exclude_id is not None:
        query = query.where(AssignedWorkout.id != exclude_id)
    return session.execute(query.limit(1)).scalar_one_or_none()


def list_workouts_between(session: Session, user_id: str, lower: datetime, upper: datetime) -> list[AssignedWorkout]:
    """Workouts with lower <= scheduled_at <= upper, ordered by scheduled_at."""
    query = (
        select(AssignedWorkout)
        .where(
            AssignedWorkout.user_id == user_id,
            AssignedWorkout.scheduled_at >= lower,
            AssignedWorkout.scheduled_at <= upper,
        )
        .order_by(AssignedWorkout.scheduled_at, AssignedWorkout.created_at)
    )
    return list(session.execute(query).scalars().all())


def list_upcoming(session: Session, user_id: str, now: datetime, limit: int) -> list[AssignedWorkout]:
    query = (
        select(AssignedWorkout)
        .where(
            AssignedWorkout.user_id == user_id,
            AssignedWorkout.scheduled_at >= now,
            AssignedWorkout.status.in_(("pending", "in_progress")),
        )
        .order_by(AssignedWorkout.scheduled_at)
        .limit(limit)
    )
    return list(session.execute(query).scalars().all())


def delete_workout(session: Session, user_id: str, workout_id: str) -> bool:
    result = session.execute(
        delete(AssignedWorkout).where(AssignedWorkout.id == workout_id, AssignedWorkout.user_id == user_id)
    )
    return result.rowcount > 0


def occurrence_row(rule: RecurrenceRule, scheduled_at: datetime) -> dict[str, Any]:
    """Insert parameters for a generated occurrence.

    All columns are supplied explicitly so multi-row inserts never depend on
    per-row Python defaults.
    """
    now = utcnow()
    return {
        "id": str(uuid.uuid4()),
        "user_id": rule.user_id,
        "template_id": rule.template_id,
        "scheduled_at": scheduled_at,
        "scheduled_date": scheduled_at.date(),
        "status": "pending",
        "completed_at": None,
        "recurrence_ref": rule.id,
        "created_at": now,
        "updated_at": now,
    }


def insert_occurrences(session: Session, rows: Sequence[dict[str, Any]]) -> int:
    """Insert staged occurrences, skipping rows that hit the uniqueness constraint.

    PostgreSQL and SQLite get a single INSERT ... ON CONFLICT DO NOTHING
    statement, so the batch is all-or-nothing and the returned ids tell how
    many rows were really written. Other dialects insert row by row inside
    savepoints.

    Returns:
        Number of rows persisted
    """
    if not rows:
        return 0

    dialect = session.get_bind().dialect.name
    dialect_insert = _UPSERT_INSERTS.get(dialect)
    if dialect_insert is not None:
        stmt = dialect_insert(AssignedWorkout).values(list(rows)).on_conflict_do_nothing().returning(AssignedWorkout.id)
        inserted_ids = session.execute(stmt).scalars().all()
        return len(inserted_ids)

    inserted = 0
    for row in rows:
        try:
            with session.begin_nested():
                session.add(AssignedWorkout(**row))
        except IntegrityError:
            logger.debug(f"[CALENDAR] Occurrence already exists, skipping: {row['scheduled_date']}", rule_id=row["recurrence_ref"])
            continue
        inserted += 1
    return inserted
