"""Calendar Service.

Single entry point for scheduling, calendar reads and workout lifecycle
changes. Each operation validates its inputs before touching the database,
runs in its own session, and reports failures as CalendarError subclasses.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, time, timedelta

from loguru import logger
from sqlalchemy.orm import Session

from app.calendar import repository
from app.calendar.aggregator import CalendarDay, CalendarWorkout, annotate, events_in_range
from app.calendar.errors import ConflictError, InvalidArgumentError, NotFoundError, UnauthorizedError
from app.calendar.generator import GenerationResult, generate_occurrences
from app.calendar.recurrence import RecurrenceSpec
from app.calendar.stats import WorkoutStats, compute_stats
from app.calendar.status import set_status
from app.calendar.templates import SqlTemplateCatalog, TemplateCatalog, TemplateLookupCache
from app.config.settings import settings
from app.db.models import RecurrenceRule
from app.db.session import get_session
from app.utils.timezone import to_storage, utc_today, utcnow

CatalogFactory = Callable[[Session], TemplateCatalog]


def _require_user(user_id: str | None) -> str:
    if not user_id:
        raise UnauthorizedError("Unauthorized")
    return user_id


def _require_datetime(value: datetime | date | None, name: str) -> datetime:
    if value is None:
        raise InvalidArgumentError(f"{name} is required")
    if isinstance(value, datetime):
        return to_storage(value)
    return datetime.combine(value, time.min)


class CalendarService:
    """Service for workout scheduling and calendar views.

    Args:
        catalog_factory: Builds the template catalog for a session. Defaults
            to the workout_templates table.
        today: Clock for the generator's "today"; defaults to the UTC date.
    """

    def __init__(
        self,
        catalog_factory: CatalogFactory = SqlTemplateCatalog,
        today: Callable[[], date] = utc_today,
    ):
        self._catalog_factory = catalog_factory
        self._today = today

    def schedule_workout(
        self,
        user_id: str,
        template_id: str,
        scheduled_at: datetime | date | None,
        recurrence: RecurrenceSpec | None = None,
    ) -> CalendarWorkout:
        """Schedule a workout, optionally repeating.

        Creates the requested occurrence. When a recurrence is given, also
        creates a RecurrenceRule starting on that day, links the first
        occurrence to it and generates the following occurrences up to the
        configured cap.

        Raises:
            UnauthorizedError: If user_id is empty
            InvalidArgumentError: If scheduled_at is missing or the end date precedes it
            NotFoundError: If the template does not exist
        """
        user_id = _require_user(user_id)
        if not template_id:
            raise InvalidArgumentError("templateId is required")
        scheduled = _require_datetime(scheduled_at, "scheduledAt")
        if recurrence is not None and recurrence.end_date is not None and recurrence.end_date < scheduled.date():
            raise InvalidArgumentError(f"Recurrence end date {recurrence.end_date} is before the first occurrence {scheduled.date()}")

        with get_session() as session:
            templates = TemplateLookupCache(self._catalog_factory(session))
            if templates.get(template_id) is None:
                raise NotFoundError("Workout template not found")

            workout = repository.create_workout(session, user_id, template_id, scheduled)

            if recurrence is not None:
                rule = repository.create_rule(
                    session,
                    user_id,
                    template_id,
                    recurrence,
                    start_date=scheduled.date(),
                    time_of_day=scheduled.time(),
                )
                workout.recurrence_ref = rule.id
                session.flush()
                generate_occurrences(session, rule, cap=settings.recurrence_generation_cap, today=self._today())

            logger.info(
                f"[CALENDAR] Scheduled workout {workout.id} at {workout.scheduled_at.isoformat()}",
                user_id=user_id,
                template_id=template_id,
                recurring=recurrence is not None,
            )
            return annotate(workout, templates)

    def get_calendar_events(self, user_id: str, start_date: date | datetime, end_date: date | datetime) -> list[CalendarDay]:
        user_id = _require_user(user_id)
        with get_session() as session:
            return events_in_range(session, self._catalog_factory(session), user_id, start_date, end_date)

    def get_workouts_for_date(self, user_id: str, day: date | datetime | None) -> list[CalendarWorkout]:
        user_id = _require_user(user_id)
        if day is None:
            raise InvalidArgumentError("date is required")
        target = day.date() if isinstance(day, datetime) else day
        events = self.get_calendar_events(user_id, target, target)
        return events[0].workouts if events else []

    def update_workout_status(self, user_id: str, workout_id: str, status: str) -> CalendarWorkout:
        """Change a workout's status through the state machine.

        Raises:
            InvalidArgumentError: Unknown status
            NotFoundError: Workout missing or not owned by the user
            InvalidStatusTransitionError: Transition not allowed from the current status
        """
        user_id = _require_user(user_id)
        with get_session() as session:
            workout = set_status(session, user_id, workout_id, status)
            return annotate(workout, TemplateLookupCache(self._catalog_factory(session)))

    def reschedule_workout(self, user_id: str, workout_id: str, new_date: datetime | date | None) -> CalendarWorkout:
        """Move a workout to a new date/time.

        Only scheduled_at (and its calendar day) change. A recurring
        occurrence cannot be moved onto a day that already holds another
        occurrence of the same rule.

        Raises:
            InvalidArgumentError: If new_date is missing
            NotFoundError: Workout missing or not owned by the user
            ConflictError: Target day already has an occurrence of the same rule
        """
        user_id = _require_user(user_id)
        new_scheduled = _require_datetime(new_date, "scheduledAt")

        with get_session() as session:
            workout = repository.get_workout(session, user_id, workout_id)
            if workout.recurrence_ref is not None:
                clash = repository.find_occurrence(
                    session,
                    user_id,
                    workout.template_id,
                    new_scheduled.date(),
                    workout.recurrence_ref,
                    exclude_id=workout.id,
                )
                if clash is not None:
                    raise ConflictError(f"An occurrence of this recurring workout already exists on {new_scheduled.date().isoformat()}")

            workout.scheduled_at = new_scheduled
            workout.scheduled_date = new_scheduled.date()
            session.flush()
            logger.info(f"[CALENDAR] Rescheduled workout {workout_id} to {new_scheduled.isoformat()}", user_id=user_id)
            return annotate(workout, TemplateLookupCache(self._catalog_factory(session)))

    def delete_workout(self, user_id: str, workout_id: str) -> bool:
        """Delete one occurrence. The parent rule (if any) is left untouched."""
        user_id = _require_user(user_id)
        with get_session() as session:
            deleted = repository.delete_workout(session, user_id, workout_id)
        if deleted:
            logger.info(f"[CALENDAR] Deleted workout {workout_id}", user_id=user_id)
        return deleted

    def get_upcoming_workouts(self, user_id: str, limit: int | None = None) -> list[CalendarWorkout]:
        """Pending or in-progress workouts from now on, soonest first."""
        user_id = _require_user(user_id)
        limit = settings.upcoming_workouts_limit if limit is None else limit
        if limit < 1:
            raise InvalidArgumentError(f"limit must be >= 1, got {limit}")
        with get_session() as session:
            templates = TemplateLookupCache(self._catalog_factory(session))
            return [annotate(w, templates) for w in repository.list_upcoming(session, user_id, utcnow(), limit)]

    def get_workout_stats(
        self,
        user_id: str,
        start_date: date | datetime | None = None,
        end_date: date | datetime | None = None,
    ) -> WorkoutStats:
        """Completion stats for a range; defaults to the last N days ending today."""
        user_id = _require_user(user_id)
        end = end_date if end_date is not None else self._today()
        start = start_date if start_date is not None else self._today() - timedelta(days=settings.stats_default_window_days)
        with get_session() as session:
            return compute_stats(session, user_id, start, end)

    def list_recurrences(self, user_id: str, *, active_only: bool = True) -> list[RecurrenceRule]:
        user_id = _require_user(user_id)
        with get_session() as session:
            rules = repository.list_rules(session, user_id, active_only=active_only)
            session.expunge_all()
            return rules

    def refresh_recurrence(self, user_id: str, rule_id: str, cap: int | None = None) -> GenerationResult:
        """Re-run generation for an existing rule to extend its window.

        Raises:
            NotFoundError: Rule missing or not owned by the user
            ConflictError: Rule has been deactivated
            InvalidArgumentError: cap < 1
        """
        user_id = _require_user(user_id)
        cap = settings.recurrence_generation_cap if cap is None else cap
        if cap < 1:
            raise InvalidArgumentError(f"cap must be >= 1, got {cap}")
        with get_session() as session:
            rule = repository.get_rule(session, user_id, rule_id)
            if not rule.is_active:
                raise ConflictError(f"Recurrence rule {rule_id} is inactive")
            return generate_occurrences(session, rule, cap=cap, today=self._today())

    def deactivate_recurrence(self, user_id: str, rule_id: str) -> RecurrenceRule:
        """Stop future generation for a rule. Existing occurrences stay."""
        user_id = _require_user(user_id)
        with get_session() as session:
            rule = repository.get_rule(session, user_id, rule_id)
            if rule.is_active:
                rule.is_active = False
                session.flush()
                session.refresh(rule)
                logger.info(f"[RECURRENCE] Deactivated rule {rule_id}", user_id=user_id)
            session.expunge(rule)
            return rule
