"""Tests for the assigned workout status state machine."""

from datetime import datetime

import pytest

from app.calendar.errors import InvalidArgumentError, InvalidStatusTransitionError, NotFoundError
from app.calendar.repository import create_workout
from app.calendar.status import ALLOWED_TRANSITIONS, WorkoutStatus, can_transition, set_status, sources_for


@pytest.fixture
def workout(db_session, user_id, template):
    return create_workout(db_session, user_id, template.id, datetime(2024, 1, 15, 9, 0))


class TestTransitionTable:
    def test_terminal_states_have_no_exits(self):
        assert ALLOWED_TRANSITIONS[WorkoutStatus.COMPLETED] == frozenset()
        assert ALLOWED_TRANSITIONS[WorkoutStatus.SKIPPED] == frozenset()

    def test_pending_can_go_anywhere_forward(self):
        assert can_transition("pending", "in_progress")
        assert can_transition("pending", "completed")
        assert can_transition("pending", "skipped")

    def test_in_progress_cannot_return_to_pending(self):
        assert not can_transition("in_progress", "pending")
        assert can_transition("in_progress", "completed")

    def test_same_state_is_not_a_transition(self):
        assert not can_transition("pending", "pending")

    def test_sources_for_completed(self):
        assert set(sources_for(WorkoutStatus.COMPLETED)) == {"pending", "in_progress"}
        assert sources_for(WorkoutStatus.PENDING) == []


class TestSetStatus:
    def test_pending_in_progress_completed(self, db_session, user_id, workout):
        started = set_status(db_session, user_id, workout.id, "in_progress")
        assert started.status == "in_progress"
        assert started.completed_at is None

        finished = set_status(db_session, user_id, workout.id, "completed")
        assert finished.status == "completed"
        assert finished.completed_at is not None

    def test_pending_directly_to_skipped(self, db_session, user_id, workout):
        skipped = set_status(db_session, user_id, workout.id, WorkoutStatus.SKIPPED)
        assert skipped.status == "skipped"
        assert skipped.completed_at is None

    @pytest.mark.parametrize("terminal", ["completed", "skipped"])
    @pytest.mark.parametrize("target", ["pending", "in_progress", "completed", "skipped"])
    def test_no_transition_out_of_terminal_state(self, db_session, user_id, workout, terminal, target):
        set_status(db_session, user_id, workout.id, terminal)

        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            set_status(db_session, user_id, workout.id, target)

        assert exc_info.value.current == terminal
        assert exc_info.value.requested == target
        db_session.refresh(workout)
        assert workout.status == terminal

    def test_completed_at_kept_after_rejected_change(self, db_session, user_id, workout):
        completed = set_status(db_session, user_id, workout.id, "completed")
        stamped = completed.completed_at

        with pytest.raises(InvalidStatusTransitionError):
            set_status(db_session, user_id, workout.id, "pending")

        db_session.refresh(workout)
        assert workout.completed_at == stamped

    def test_unknown_status(self, db_session, user_id, workout):
        with pytest.raises(InvalidArgumentError):
            set_status(db_session, user_id, workout.id, "done")

    def test_missing_workout(self, db_session, user_id):
        with pytest.raises(NotFoundError):
            set_status(db_session, user_id, "does-not-exist", "completed")

    def test_other_users_workout_is_not_found(self, db_session, workout):
        with pytest.raises(NotFoundError):
            set_status(db_session, "someone-else", workout.id, "completed")
