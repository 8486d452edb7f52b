"""Integration tests for API endpoints.

These tests verify API endpoints work correctly end-to-end.
"""

from datetime import timedelta

from conftest import FIXED_NOW
from taskcycle.database.repository import TaskRepository
from taskcycle.database.notification_repository import NotificationRepository
from taskcycle.errors import StoreReadFailure, StoreWriteFailure


def _create_task(test_client, **overrides):
    payload = {
        "title": "Weekly sync",
        "due_date": "2025-10-20",
        "owner_id": 1,
        "collaborators": [2],
    }
    payload.update(overrides)
    response = test_client.post("/tasks", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


class TestTaskEndpoints:
    def test_health(self, test_client):
        assert test_client.get("/health").json() == {"status": "ok"}

    def test_create_and_get_task(self, test_client):
        task = _create_task(test_client)
        assert task["is_recurring"] is False
        assert task["status"] == "ongoing"

        response = test_client.get(f"/tasks/{task['id']}")
        assert response.status_code == 200
        assert response.json()["title"] == "Weekly sync"

    def test_get_missing_task(self, test_client):
        assert test_client.get("/tasks/9999").status_code == 404

    def test_create_recurring_task(self, test_client):
        task = _create_task(
            test_client,
            is_recurring=True,
            recurrence_pattern="weekly",
            recurrence_weekday=3,
            recurrence_max_count=5,
        )
        assert task["is_recurring"] is True
        assert task["recurrence_pattern"] == "weekly"
        assert task["recurrence_count"] == 1
        assert task["recurrence_series_id"]

    def test_recurring_task_requires_pattern(self, test_client):
        response = test_client.post("/tasks", json={"title": "X", "is_recurring": True})
        assert response.status_code == 400

    def test_unknown_pattern_is_rejected(self, test_client):
        response = test_client.post(
            "/tasks", json={"title": "X", "is_recurring": True, "recurrence_pattern": "hourly"}
        )
        assert response.status_code == 422

    def test_completing_recurring_task_spawns_successor(self, test_client):
        task = _create_task(
            test_client,
            is_recurring=True,
            recurrence_pattern="weekly",
            recurrence_weekday=3,
            recurrence_max_count=5,
        )
        test_client.post(f"/tasks/{task['id']}/subtasks", json={"title": "Agenda"})

        response = test_client.patch(f"/tasks/{task['id']}/status", json={"status": "completed"})

        assert response.status_code == 200
        data = response.json()
        assert data["task"]["status"] == "completed"
        recurrence = data["recurrence"]
        assert recurrence["outcome"] == "successor_created"
        assert recurrence["next_due_date"] == "2025-10-22"
        assert recurrence["subtasks_copied"] == 1
        assert recurrence["next_task"]["recurrence_count"] == 2

        successor_id = recurrence["next_task"]["id"]
        subtasks = test_client.get(f"/tasks/{successor_id}/subtasks").json()
        assert subtasks[0]["title"] == "Agenda"
        assert subtasks[0]["status"] == "not_started"

        series = test_client.get(f"/tasks/series/{task['recurrence_series_id']}").json()
        assert [t["due_date"] for t in series] == ["2025-10-20", "2025-10-22"]

    def test_repeated_completion_does_not_spawn_again(self, test_client):
        task = _create_task(test_client, is_recurring=True, recurrence_pattern="daily")
        first = test_client.patch(f"/tasks/{task['id']}/status", json={"status": "completed"})

        again = test_client.patch(f"/tasks/{task['id']}/status", json={"status": "completed"})

        assert again.status_code == 200
        recurrence = again.json()["recurrence"]
        assert recurrence["outcome"] == "already_spawned"
        assert recurrence["next_task"]["id"] == first.json()["recurrence"]["next_task"]["id"]
        series = test_client.get(f"/tasks/series/{task['recurrence_series_id']}").json()
        assert len(series) == 2

    def test_completion_retry_after_failed_successor_write(self, test_client, monkeypatch):
        """A failed successor write is reported, and re-sending completed creates it."""
        task = _create_task(test_client, is_recurring=True, recurrence_pattern="daily")
        original_create = TaskRepository.create_successor
        calls = {"n": 0}

        def fail_once(self, successor, subtasks):
            calls["n"] += 1
            if calls["n"] == 1:
                raise StoreWriteFailure("connection reset")
            return original_create(self, successor, subtasks)

        monkeypatch.setattr(TaskRepository, "create_successor", fail_once)

        failed = test_client.patch(f"/tasks/{task['id']}/status", json={"status": "completed"})
        assert failed.status_code == 500
        assert test_client.get(f"/tasks/{task['id']}").json()["status"] == "completed"

        retry = test_client.patch(f"/tasks/{task['id']}/status", json={"status": "completed"})

        assert retry.status_code == 200
        assert retry.json()["recurrence"]["outcome"] == "successor_created"
        assert retry.json()["recurrence"]["next_due_date"] == "2025-10-21"
        series = test_client.get(f"/tasks/series/{task['recurrence_series_id']}").json()
        assert len(series) == 2

    def test_completing_non_recurring_task(self, test_client):
        task = _create_task(test_client)
        response = test_client.patch(f"/tasks/{task['id']}/status", json={"status": "completed"})
        assert response.json()["recurrence"]["outcome"] == "not_recurring"

    def test_non_completion_status_change(self, test_client):
        task = _create_task(test_client, is_recurring=True, recurrence_pattern="daily")
        response = test_client.patch(f"/tasks/{task['id']}/status", json={"status": "under_review"})
        assert response.json()["recurrence"] is None

    def test_status_of_missing_task(self, test_client):
        response = test_client.patch("/tasks/9999/status", json={"status": "completed"})
        assert response.status_code == 404

    def test_unknown_series(self, test_client):
        assert test_client.get("/tasks/series/nope").status_code == 404


class TestNotificationEndpoints:
    def test_check_deadlines_then_cooldown(self, test_client, clock):
        _create_task(test_client, title="Report", due_date="2025-10-23")
        _create_task(test_client, title="Audit", due_date="2025-10-18", collaborators=[])

        first = test_client.post("/notifications/check-deadlines").json()
        assert first["upcoming"]["status"] == "completed"
        assert first["upcoming"]["created"] == 2
        assert first["missed"]["created"] == 1
        assert first["total_created"] == 3

        clock.advance(minutes=1)
        second = test_client.post("/notifications/check-deadlines").json()
        assert second["upcoming"]["status"] == "skipped"
        assert second["upcoming"]["remaining_minutes"] == 4
        assert second["missed"]["duplicates_prevented"] == 1
        assert second["total_created"] == 0

        forced = test_client.post("/notifications/check-deadlines", json={"force": True}).json()
        assert forced["upcoming"]["status"] == "completed"
        assert forced["upcoming"]["duplicates_prevented"] == 2

    def test_check_upcoming_and_missed_separately(self, test_client):
        _create_task(test_client, due_date="2025-10-21")
        upcoming = test_client.post("/notifications/check-upcoming", json={"force": True}).json()
        assert upcoming["created"] == 2
        assert upcoming["per_offset"]["1"]["created"] == 2

        missed = test_client.post("/notifications/check-missed").json()
        assert missed["status"] == "no_matching_tasks"

    def test_deadline_status(self, test_client):
        idle = test_client.get("/notifications/deadline-status").json()
        assert idle["cooldown_active"] is False

        test_client.post("/notifications/check-deadlines")
        status = test_client.get("/notifications/deadline-status").json()
        assert status["cooldown_active"] is True
        assert status["remaining_seconds"] == 300

    def test_inbox_read_flow(self, test_client):
        _create_task(test_client, due_date="2025-10-23")
        test_client.post("/notifications/check-deadlines")

        inbox = test_client.get("/notifications", params={"emp_id": 2}).json()
        assert len(inbox) == 1
        assert inbox[0]["type"] == "Upcoming Deadline"
        assert test_client.get("/notifications/unread-count", params={"emp_id": 2}).json() == {"unread_count": 1}

        # Another employee cannot mark it read
        other = test_client.patch(f"/notifications/{inbox[0]['id']}/read", params={"emp_id": 1})
        assert other.status_code == 404

        marked = test_client.patch(f"/notifications/{inbox[0]['id']}/read", params={"emp_id": 2})
        assert marked.status_code == 200
        assert marked.json()["read"] is True
        assert test_client.get("/notifications/unread-count", params={"emp_id": 2}).json() == {"unread_count": 0}

    def test_mark_all_read(self, test_client):
        _create_task(test_client, due_date="2025-10-23")
        _create_task(test_client, due_date="2025-10-27")
        test_client.post("/notifications/check-deadlines")

        response = test_client.patch("/notifications/mark-all-read", params={"emp_id": 1})

        assert response.json()["updated_count"] == 2
        unread = test_client.get("/notifications", params={"emp_id": 1, "unread_only": True}).json()
        assert unread == []

    def test_emp_id_is_required(self, test_client):
        assert test_client.get("/notifications").status_code == 422

    def test_inbox_store_failure_is_500(self, test_client, monkeypatch):
        def broken(self, *args, **kwargs):
            raise StoreReadFailure("Failed to list notifications of emp 1")

        monkeypatch.setattr(NotificationRepository, "list_for_employee", broken)
        monkeypatch.setattr(NotificationRepository, "unread_count", broken)

        assert test_client.get("/notifications", params={"emp_id": 1}).status_code == 500
        assert test_client.get("/notifications/unread-count", params={"emp_id": 1}).status_code == 500


def test_lifespan_initializes_database(monkeypatch):
    from fastapi.testclient import TestClient
    from taskcycle.api import app as app_module

    calls = []
    monkeypatch.setattr(app_module, "init_db", lambda: calls.append("init_db"))

    with TestClient(app_module.app) as client:
        assert client.get("/health").status_code == 200

    assert calls == ["init_db"]
