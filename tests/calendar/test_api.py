"""HTTP tests for the calendar router."""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies.auth import get_current_user_id
from app.main import app
from app.utils.timezone import utc_today


@pytest.fixture
def client(db_session, user_id):
    app.dependency_overrides[get_current_user_id] = lambda: user_id
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _schedule(client, template_id, scheduled_at, **extra):
    return client.post("/calendar/workouts", json={"templateId": template_id, "scheduledAt": scheduled_at, **extra})


class TestScheduleEndpoint:
    def test_one_off_created(self, client, template):
        response = _schedule(client, template.id, "2024-01-05T18:00:00Z")

        assert response.status_code == 201
        body = response.json()
        assert body["templateId"] == template.id
        assert body["templateName"] == "Full Body"
        assert body["exercisesCount"] == 3
        assert body["status"] == "pending"
        assert body["recurrenceRef"] is None
        assert body["scheduledAt"].startswith("2024-01-05T18:00:00")

    def test_recurring_creates_occurrences(self, client, template):
        start = utc_today() + timedelta(days=1)
        end = start + timedelta(days=2)
        response = _schedule(
            client,
            template.id,
            f"{start.isoformat()}T07:00:00",
            recurrence={"type": "daily", "interval": 1, "endDate": end.isoformat()},
        )

        assert response.status_code == 201
        rule_id = response.json()["recurrenceRef"]
        assert rule_id

        events = client.get("/calendar/events", params={"startDate": start.isoformat(), "endDate": end.isoformat()}).json()["events"]
        assert [day["date"] for day in events] == [(start + timedelta(days=i)).isoformat() for i in range(3)]
        assert {w["recurrenceRef"] for day in events for w in day["workouts"]} == {rule_id}

    def test_unknown_template_is_404(self, client):
        response = _schedule(client, "missing", "2024-01-05T18:00:00Z")

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "NOT_FOUND"

    def test_missing_template_id_is_422(self, client):
        response = client.post("/calendar/workouts", json={"scheduledAt": "2024-01-05T18:00:00Z"})

        assert response.status_code == 422

    def test_unsupported_recurrence_type_is_400(self, client, template):
        response = _schedule(client, template.id, "2024-01-05T18:00:00Z", recurrence={"type": "yearly"})

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_ARGUMENT"

    def test_zero_interval_is_400(self, client, template):
        response = _schedule(client, template.id, "2024-01-05T18:00:00Z", recurrence={"type": "daily", "interval": 0})

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_ARGUMENT"

    def test_out_of_range_weekday_is_400(self, client, template):
        response = _schedule(client, template.id, "2024-01-05T18:00:00Z", recurrence={"type": "weekly", "daysOfWeek": [7]})

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_ARGUMENT"


class TestWorkoutEndpoints:
    def test_status_transitions(self, client, template):
        workout_id = _schedule(client, template.id, "2024-01-05T18:00:00Z").json()["id"]

        completed = client.patch(f"/calendar/workouts/{workout_id}/status", json={"status": "completed"})
        assert completed.status_code == 200
        assert completed.json()["completedAt"] is not None

        rejected = client.patch(f"/calendar/workouts/{workout_id}/status", json={"status": "pending"})
        assert rejected.status_code == 409
        assert rejected.json()["detail"]["code"] == "INVALID_TRANSITION"

    def test_unknown_status_is_400(self, client, template):
        workout_id = _schedule(client, template.id, "2024-01-05T18:00:00Z").json()["id"]

        response = client.patch(f"/calendar/workouts/{workout_id}/status", json={"status": "done"})

        assert response.status_code == 400

    def test_reschedule(self, client, template):
        workout_id = _schedule(client, template.id, "2024-01-05T18:00:00Z").json()["id"]

        response = client.patch(f"/calendar/workouts/{workout_id}/schedule", json={"scheduledAt": "2024-01-09T06:30:00Z"})

        assert response.status_code == 200
        assert response.json()["scheduledAt"].startswith("2024-01-09T06:30:00")
        by_date = client.get("/calendar/workouts", params={"date": "2024-01-09"}).json()["workouts"]
        assert [w["id"] for w in by_date] == [workout_id]

    def test_delete(self, client, template):
        workout_id = _schedule(client, template.id, "2024-01-05T18:00:00Z").json()["id"]

        assert client.delete(f"/calendar/workouts/{workout_id}").status_code == 204
        assert client.delete(f"/calendar/workouts/{workout_id}").status_code == 404

    def test_upcoming(self, client, template):
        tomorrow = utc_today() + timedelta(days=1)
        _schedule(client, template.id, f"{tomorrow.isoformat()}T09:00:00")
        _schedule(client, template.id, "2020-01-01T09:00:00Z")

        response = client.get("/calendar/workouts/upcoming")

        assert response.status_code == 200
        assert len(response.json()["workouts"]) == 1

    def test_events_require_both_dates(self, client):
        assert client.get("/calendar/events", params={"startDate": "2024-01-01"}).status_code == 422

    def test_events_start_after_end_is_400(self, client):
        response = client.get("/calendar/events", params={"startDate": "2024-02-01", "endDate": "2024-01-01"})

        assert response.status_code == 400


class TestStatsEndpoint:
    def test_completion_rate(self, client, template):
        first = _schedule(client, template.id, "2024-01-02T09:00:00Z").json()["id"]
        _schedule(client, template.id, "2024-01-03T09:00:00Z")
        client.patch(f"/calendar/workouts/{first}/status", json={"status": "completed"})

        response = client.get("/calendar/stats", params={"startDate": "2024-01-01", "endDate": "2024-01-31"})

        assert response.json() == {"total": 2, "completed": 1, "pending": 1, "skipped": 0, "completionRate": 50.0}


class TestRecurrenceEndpoints:
    def _recurring(self, client, template):
        start = utc_today() + timedelta(days=1)
        return _schedule(client, template.id, f"{start.isoformat()}T07:00:00", recurrence={"type": "daily"}).json()["recurrenceRef"]

    def test_list_refresh_deactivate(self, client, template):
        rule_id = self._recurring(client, template)

        listed = client.get("/calendar/recurrences").json()["recurrences"]
        assert [r["id"] for r in listed] == [rule_id]
        assert listed[0]["recurrenceType"] == "daily"

        refreshed = client.post(f"/calendar/recurrences/{rule_id}/refresh", params={"cap": 3})
        assert refreshed.status_code == 200
        assert refreshed.json()["created"] == 3

        deactivated = client.delete(f"/calendar/recurrences/{rule_id}")
        assert deactivated.status_code == 200
        assert deactivated.json()["isActive"] is False
        assert client.get("/calendar/recurrences").json()["recurrences"] == []
        assert len(client.get("/calendar/recurrences", params={"includeInactive": True}).json()["recurrences"]) == 1

        assert client.post(f"/calendar/recurrences/{rule_id}/refresh").status_code == 409

    def test_unknown_rule_is_404(self, client):
        assert client.post("/calendar/recurrences/missing/refresh").status_code == 404


def test_requires_authentication(db_session):
    app.dependency_overrides.clear()
    response = TestClient(app).get("/calendar/events", params={"startDate": "2024-01-01", "endDate": "2024-01-31"})

    assert response.status_code == 401
