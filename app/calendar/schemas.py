"""Calendar API schemas (Pydantic).

Request fields use the camelCase names mobile clients already send
(templateId, scheduledAt, daysOfWeek, ...); responses mirror them.
"""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.calendar.aggregator import CalendarDay, CalendarWorkout
from app.calendar.generator import GenerationResult
from app.calendar.recurrence import RecurrenceSpec
from app.calendar.stats import WorkoutStats
from app.db.models import RecurrenceRule


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RecurrenceRequest(CamelModel):
    """Recurrence option of a scheduling request."""

    type: str = Field(description="daily, weekly or monthly")
    interval: int = 1
    end_date: date | None = None
    days_of_week: list[int] | None = Field(default=None, description="0 = Sunday ... 6 = Saturday")

    def to_spec(self) -> RecurrenceSpec:
        return RecurrenceSpec.build(self.type, self.interval, self.end_date, self.days_of_week)


class ScheduleWorkoutRequest(CamelModel):
    template_id: str = Field(min_length=1)
    scheduled_at: datetime
    recurrence: RecurrenceRequest | None = None


class UpdateStatusRequest(CamelModel):
    status: str


class RescheduleRequest(CamelModel):
    scheduled_at: datetime


class CalendarWorkoutSchema(CamelModel):
    """Assigned workout as returned by the API."""

    id: str
    template_id: str
    template_name: str
    exercises_count: int
    scheduled_at: datetime
    status: str
    completed_at: datetime | None
    recurrence_ref: str | None

    @classmethod
    def from_workout(cls, workout: CalendarWorkout) -> CalendarWorkoutSchema:
        return cls(
            id=workout.id,
            template_id=workout.template_id,
            template_name=workout.template_name,
            exercises_count=workout.exercise_count,
            scheduled_at=workout.scheduled_at,
            status=workout.status,
            completed_at=workout.completed_at,
            recurrence_ref=workout.recurrence_ref,
        )


class CalendarDaySchema(CamelModel):
    date: str
    workouts: list[CalendarWorkoutSchema]

    @classmethod
    def from_day(cls, day: CalendarDay) -> CalendarDaySchema:
        return cls(date=day.date, workouts=[CalendarWorkoutSchema.from_workout(w) for w in day.workouts])


class CalendarEventsResponse(CamelModel):
    events: list[CalendarDaySchema]


class WorkoutListResponse(CamelModel):
    workouts: list[CalendarWorkoutSchema]


class WorkoutStatsResponse(CamelModel):
    total: int
    completed: int
    pending: int
    skipped: int
    completion_rate: float

    @classmethod
    def from_stats(cls, stats: WorkoutStats) -> WorkoutStatsResponse:
        return cls(
            total=stats.total,
            completed=stats.completed,
            pending=stats.pending,
            skipped=stats.skipped,
            completion_rate=stats.completion_rate,
        )


class RecurrenceRuleSchema(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    template_id: str
    recurrence_type: str
    interval: int
    start_date: date
    end_date: date | None
    days_of_week: list[int] | None
    is_active: bool

    @classmethod
    def from_rule(cls, rule: RecurrenceRule) -> RecurrenceRuleSchema:
        return cls.model_validate(rule)


class RecurrenceListResponse(CamelModel):
    recurrences: list[RecurrenceRuleSchema]


class RefreshRecurrenceResponse(CamelModel):
    created: int
    existing: int
    conflicts: int
    last_candidate: date | None

    @classmethod
    def from_result(cls, result: GenerationResult) -> RefreshRecurrenceResponse:
        return cls(
            created=result.created,
            existing=result.existing,
            conflicts=result.conflicts,
            last_candidate=result.last_candidate,
        )
