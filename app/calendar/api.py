"""Calendar API endpoints.

Thin HTTP layer over CalendarService: parses requests, resolves the caller
and maps CalendarError codes to HTTP status codes.
"""

from __future__ import annotations

from datetime import date
from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from loguru import logger

from app.api.dependencies.auth import get_current_user_id
from app.calendar.errors import (
    CalendarError,
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
    UnauthorizedError,
)
from app.calendar.schemas import (
    CalendarDaySchema,
    CalendarEventsResponse,
    CalendarWorkoutSchema,
    RecurrenceListResponse,
    RecurrenceRuleSchema,
    RefreshRecurrenceResponse,
    RescheduleRequest,
    ScheduleWorkoutRequest,
    UpdateStatusRequest,
    WorkoutListResponse,
    WorkoutStatsResponse,
)
from app.calendar.service import CalendarService

router = APIRouter(prefix="/calendar", tags=["calendar"])

_STATUS_BY_ERROR: list[tuple[type[CalendarError], int]] = [
    (UnauthorizedError, status.HTTP_401_UNAUTHORIZED),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidArgumentError, status.HTTP_400_BAD_REQUEST),
    (ConflictError, status.HTTP_409_CONFLICT),
]


def get_calendar_service() -> CalendarService:
    return CalendarService()


def _raise_http(error: CalendarError) -> NoReturn:
    """Raise the HTTPException matching a calendar error."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            raise HTTPException(status_code=status_code, detail={"code": error.code, "message": error.message}) from error
    logger.error(f"[CALENDAR] Unmapped calendar error: {error}")
    raise HTTPException(status_code=500, detail={"code": error.code, "message": error.message}) from error


@router.get("/events", response_model=CalendarEventsResponse)
def get_calendar_events(
    start_date: date = Query(alias="startDate"),
    end_date: date = Query(alias="endDate"),
    user_id: str = Depends(get_current_user_id),
    service: CalendarService = Depends(get_calendar_service),
) -> CalendarEventsResponse:
    """Calendar days with scheduled workouts between startDate and endDate (inclusive)."""
    try:
        days = service.get_calendar_events(user_id, start_date, end_date)
    except CalendarError as e:
        _raise_http(e)
    return CalendarEventsResponse(events=[CalendarDaySchema.from_day(day) for day in days])


@router.get("/workouts/upcoming", response_model=WorkoutListResponse)
def get_upcoming_workouts(
    limit: int | None = Query(default=None, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    service: CalendarService = Depends(get_calendar_service),
) -> WorkoutListResponse:
    """Pending or in-progress workouts from now on, soonest first."""
    try:
        workouts = service.get_upcoming_workouts(user_id, limit)
    except CalendarError as e:
        _raise_http(e)
    return WorkoutListResponse(workouts=[CalendarWorkoutSchema.from_workout(w) for w in workouts])


@router.get("/workouts", response_model=WorkoutListResponse)
def get_workouts_for_date(
    day: date = Query(alias="date"),
    user_id: str = Depends(get_current_user_id),
    service: CalendarService = Depends(get_calendar_service),
) -> WorkoutListResponse:
    try:
        workouts = service.get_workouts_for_date(user_id, day)
    except CalendarError as e:
        _raise_http(e)
    return WorkoutListResponse(workouts=[CalendarWorkoutSchema.from_workout(w) for w in workouts])


@router.post("/workouts", response_model=CalendarWorkoutSchema, status_code=status.HTTP_201_CREATED)
def schedule_workout(
    request: ScheduleWorkoutRequest,
    user_id: str = Depends(get_current_user_id),
    service: CalendarService = Depends(get_calendar_service),
) -> CalendarWorkoutSchema:
    """Schedule a workout, optionally with a recurrence.

    Recurring requests create the first occurrence plus up to the configured
    cap of future occurrences within the horizon.
    """
    logger.info(f"[CALENDAR] POST /calendar/workouts called for user_id={user_id}")
    try:
        recurrence = request.recurrence.to_spec() if request.recurrence else None
        workout = service.schedule_workout(user_id, request.template_id, request.scheduled_at, recurrence)
    except CalendarError as e:
        _raise_http(e)
    return CalendarWorkoutSchema.from_workout(workout)


@router.patch("/workouts/{workout_id}/status", response_model=CalendarWorkoutSchema)
def update_workout_status(
    workout_id: str,
    request: UpdateStatusRequest,
    user_id: str = Depends(get_current_user_id),
    service: CalendarService = Depends(get_calendar_service),
) -> CalendarWorkoutSchema:
    """Move a workout through pending -> in_progress -> completed/skipped."""
    try:
        workout = service.update_workout_status(user_id, workout_id, request.status)
    except CalendarError as e:
        _raise_http(e)
    return CalendarWorkoutSchema.from_workout(workout)


@router.patch("/workouts/{workout_id}/schedule", response_model=CalendarWorkoutSchema)
def reschedule_workout(
    workout_id: str,
    request: RescheduleRequest,
    user_id: str = Depends(get_current_user_id),
    service: CalendarService = Depends(get_calendar_service),
) -> CalendarWorkoutSchema:
    try:
        workout = service.reschedule_workout(user_id, workout_id, request.scheduled_at)
    except CalendarError as e:
        _raise_http(e)
    return CalendarWorkoutSchema.from_workout(workout)


@router.delete("/workouts/{workout_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_workout(
    workout_id: str,
    user_id: str = Depends(get_current_user_id),
    service: CalendarService = Depends(get_calendar_service),
) -> Response:
    """Delete one scheduled workout; its recurrence rule is left untouched."""
    try:
        deleted = service.delete_workout(user_id, workout_id)
    except CalendarError as e:
        _raise_http(e)
    if not deleted:
        _raise_http(NotFoundError("Workout not found"))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/stats", response_model=WorkoutStatsResponse)
def get_workout_stats(
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    user_id: str = Depends(get_current_user_id),
    service: CalendarService = Depends(get_calendar_service),
) -> WorkoutStatsResponse:
    """Completion stats; defaults to the last 30 days when dates are omitted."""
    try:
        stats = service.get_workout_stats(user_id, start_date, end_date)
    except CalendarError as e:
        _raise_http(e)
    return WorkoutStatsResponse.from_stats(stats)


@router.get("/recurrences", response_model=RecurrenceListResponse)
def list_recurrences(
    include_inactive: bool = Query(default=False, alias="includeInactive"),
    user_id: str = Depends(get_current_user_id),
    service: CalendarService = Depends(get_calendar_service),
) -> RecurrenceListResponse:
    try:
        rules = service.list_recurrences(user_id, active_only=not include_inactive)
    except CalendarError as e:
        _raise_http(e)
    return RecurrenceListResponse(recurrences=[RecurrenceRuleSchema.from_rule(rule) for rule in rules])


@router.post("/recurrences/{rule_id}/refresh", response_model=RefreshRecurrenceResponse)
def refresh_recurrence(
    rule_id: str,
    cap: int | None = Query(default=None, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    service: CalendarService = Depends(get_calendar_service),
) -> RefreshRecurrenceResponse:
    """Generate the next batch of occurrences for an active rule."""
    try:
        result = service.refresh_recurrence(user_id, rule_id, cap)
    except CalendarError as e:
        _raise_http(e)
    return RefreshRecurrenceResponse.from_result(result)


@router.delete("/recurrences/{rule_id}", response_model=RecurrenceRuleSchema)
def deactivate_recurrence(
    rule_id: str,
    user_id: str = Depends(get_current_user_id),
    service: CalendarService = Depends(get_calendar_service),
) -> RecurrenceRuleSchema:
    """Deactivate a rule. Already scheduled workouts are kept."""
    try:
        rule = service.deactivate_recurrence(user_id, rule_id)
    except CalendarError as e:
        _raise_http(e)
    return RecurrenceRuleSchema.from_rule(rule)
