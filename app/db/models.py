from __future__ import annotations

import uuid
from datetime import date, datetime, time, timezone

from sqlalchemy import JSON, Boolean, Date, DateTime, Index, Integer, String, Text, Time, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    """Naive UTC timestamp; every DateTime column in this schema is naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all database models."""


class WorkoutTemplate(Base):
    """Workout template catalog entry.

    Owned by the template catalog, not by the calendar. The calendar only
    reads it to validate scheduling requests and to annotate calendar views
    with a name and an exercise count.
    """

    __tablename__ = "workout_templates"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    exercises: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)


class RecurrenceRule(Base):
    """Repeating schedule for one template.

    Stores:
    - recurrence_type: daily, weekly or monthly
    - interval: every N units (>= 1)
    - start_date / end_date: inclusive generation window (end_date optional)
    - days_of_week: weekday filter for weekly rules (0 = Sunday ... 6 = Saturday)
    - time_of_day: time component reused for every generated occurrence
    - is_active: soft-delete flag; inactive rules generate nothing

    Rules are never deleted by the engine. Deactivating a rule leaves the
    occurrences it already materialized in place.
    """

    __tablename__ = "recurrence_rules"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    template_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    recurrence_type: Mapped[str] = mapped_column(String, nullable=False)
    interval: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    days_of_week: Mapped[list[int] | None] = mapped_column(JSON, nullable=True)
    time_of_day: Mapped[time] = mapped_column(Time, nullable=False, default=time.min)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (Index("idx_recurrence_rules_window", "start_date", "end_date"),)


class AssignedWorkout(Base):
    """One concrete, dated workout occurrence for a user.

    Schema:
    - scheduled_at: occurrence timestamp (naive UTC)
    - scheduled_date: calendar day of scheduled_at, kept in sync on every write
    - status: pending, in_progress, completed or skipped
    - completed_at: stamped on the transition into completed
    - recurrence_ref: id of the generating RecurrenceRule (lookup, not ownership)

    Constraints:
    - Unique constraint: (user_id, template_id, scheduled_date, recurrence_ref)
      makes generation idempotent even under concurrent invocations. One-off
      workouts have recurrence_ref NULL and are not constrained.
    """

    __tablename__ = "assigned_workouts"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    template_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    scheduled_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending", index=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    recurrence_ref: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "template_id",
            "scheduled_date",
            "recurrence_ref",
            name="uq_assigned_workout_occurrence",
        ),
        Index("idx_assigned_workouts_user_scheduled_at", "user_id", "scheduled_at"),
    )
