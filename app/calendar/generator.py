"""Occurrence generator.

Expands a RecurrenceRule into concrete AssignedWorkout rows ahead of time.
Each invocation is bounded twice: by a cap on new rows and by a horizon
date. Calling it again for the same rule extends the generated window
without duplicating days that already exist.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any

from loguru import logger
from sqlalchemy.orm import Session

from app.calendar.recurrence import RecurrenceType, advance
from app.calendar.repository import find_occurrence, insert_occurrences, occurrence_row
from app.config.settings import settings
from app.db.models import RecurrenceRule
from app.utils.timezone import utc_today

DEFAULT_GENERATION_CAP = 12


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of one generator invocation.

    Attributes:
        created: Rows actually persisted
        existing: Candidate days that already had an occurrence for this rule
        conflicts: Staged rows dropped by the uniqueness constraint (a
            concurrent invocation wrote them first)
        last_candidate: Last candidate day examined, None if none was
    """

    created: int
    existing: int
    conflicts: int
    last_candidate: date | None


def generation_horizon(rule: RecurrenceRule, today: date) -> date:
    """Last day the generator may materialize for this rule."""
    if rule.end_date is not None:
        return rule.end_date
    return today + timedelta(days=settings.recurrence_horizon_days)


def generate_occurrences(
    session: Session,
    rule: RecurrenceRule,
    cap: int = DEFAULT_GENERATION_CAP,
    today: date | None = None,
) -> GenerationResult:
    """Materialize up to ``cap`` pending occurrences for ``rule``.

    Walks candidate days from rule.start_date with advance() until the cap is
    reached or the horizon (end_date, else today + horizon days) is passed.
    Days before today are skipped without counting against the cap. A day
    that already has an occurrence for this rule is left alone. New rows are
    staged and written in one batch at the end.

    Args:
        session: Database session
        rule: Rule to expand
        cap: Maximum number of new rows
        today: Reference day, defaults to the current UTC date

    Returns:
        GenerationResult with created/existing/conflict counts
    """
    today = today or utc_today()
    if not rule.is_active:
        logger.info(f"[RECURRENCE] Rule {rule.id} is inactive, nothing to generate")
        return GenerationResult(created=0, existing=0, conflicts=0, last_candidate=None)

    horizon = generation_horizon(rule, today)
    rtype = RecurrenceType(rule.recurrence_type)
    days_of_week = rule.days_of_week if rtype is RecurrenceType.WEEKLY else None
    anchor_day = rule.start_date.day if rtype is RecurrenceType.MONTHLY else None

    staged: list[dict[str, Any]] = []
    existing = 0
    last_candidate: date | None = None
    candidate = rule.start_date

    while len(staged) < cap and candidate <= horizon:
        if candidate >= today:
            last_candidate = candidate
            if find_occurrence(session, rule.user_id, rule.template_id, candidate, rule.id) is None:
                staged.append(occurrence_row(rule, datetime.combine(candidate, rule.time_of_day)))
            else:
                existing += 1
        candidate = advance(candidate, rtype, rule.interval, days_of_week, anchor_day=anchor_day)

    created = insert_occurrences(session, staged)
    conflicts = len(staged) - created
    if conflicts:
        logger.warning(
            f"[RECURRENCE] {conflicts} occurrence(s) for rule {rule.id} were written concurrently, skipped",
            user_id=rule.user_id,
        )

    logger.info(
        f"[RECURRENCE] Generated {created} occurrence(s) for rule {rule.id} "
        f"(existing={existing}, horizon={horizon.isoformat()}, cap={cap})",
        user_id=rule.user_id,
    )
    return GenerationResult(created=created, existing=existing, conflicts=conflicts, last_candidate=last_candidate)
