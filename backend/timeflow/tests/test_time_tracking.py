"""
Time tracking tests for the TimeFlow backend.

Tests cover manual entries, the start/stop timer, the one-running-timer
rule, entry ownership, the dashboard summary, and reports.
"""
from datetime import datetime, timedelta, timezone
import pytest
from fastapi import status

from .test_base import BaseAPITest, API, TestDataFactory
from timeflow.api.routes.time_tracking import RUNNING_TIMER_DETAIL


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def task(storage, regular_user, shared_project):
    return storage.create_task(name="Landing page", user_id=regular_user.id, project_id=shared_project.id)


class TestTimeEntries(BaseAPITest):
    """Test cases for time entry CRUD."""

    def test_create_manual_entry(self, client, auth_headers, task):
        response = client.post(f"{API}/time-entries", json=TestDataFactory.create_time_entry(task.id),
                               headers=auth_headers)

        self.assert_success_response(response, status.HTTP_201_CREATED)
        data = response.json()
        assert data["duration"] == 9000
        assert data["is_running"] is False
        assert data["task"]["name"] == "Landing page"

    def test_create_entry_end_before_start(self, client, auth_headers, task):
        response = client.post(f"{API}/time-entries", headers=auth_headers,
                               json=TestDataFactory.create_time_entry(task.id, end_time="2024-01-15T08:00:00Z"))
        self.assert_validation_error(response)

    def test_create_entry_without_end_runs(self, client, auth_headers, task):
        response = client.post(f"{API}/time-entries", headers=auth_headers,
                               json=TestDataFactory.create_time_entry(task.id, end_time=None))

        self.assert_success_response(response, status.HTTP_201_CREATED)
        assert response.json()["is_running"] is True
        assert response.json()["duration"] is None

    def test_create_entry_on_inaccessible_task(self, client, other_headers, task):
        response = client.post(f"{API}/time-entries", json=TestDataFactory.create_time_entry(task.id),
                               headers=other_headers)
        self.assert_forbidden(response)

    def test_create_entry_ignores_client_duration(self, client, auth_headers, task):
        response = client.post(f"{API}/time-entries", headers=auth_headers,
                               json=TestDataFactory.create_time_entry(task.id, duration=60))

        self.assert_success_response(response, status.HTTP_201_CREATED)
        assert response.json()["duration"] == 9000

    def test_create_entry_on_inactive_task(self, client, storage, auth_headers, task):
        storage.delete_task(task.id)

        for end_time in ("2024-01-15T11:30:00Z", None):
            response = client.post(f"{API}/time-entries", headers=auth_headers,
                                   json=TestDataFactory.create_time_entry(task.id, end_time=end_time))
            self.assert_bad_request(response, "Task is inactive")

    def test_create_entry_on_unknown_task(self, client, auth_headers):
        response = client.post(f"{API}/time-entries", json=TestDataFactory.create_time_entry(9999),
                               headers=auth_headers)
        self.assert_not_found(response)

    def test_list_entries_running_first(self, client, storage, auth_headers, regular_user, task):
        finished = storage.create_time_entry(task.id, regular_user.id, utc(2024, 1, 15, 9), utc(2024, 1, 15, 10))
        running = storage.create_time_entry(task.id, regular_user.id, utc(2024, 1, 10, 9))

        response = client.get(f"{API}/time-entries", headers=auth_headers)

        self.assert_success_response(response)
        assert [e["id"] for e in response.json()] == [running.id, finished.id]

    def test_list_entries_by_date(self, client, storage, auth_headers, regular_user, task):
        storage.create_time_entry(task.id, regular_user.id, utc(2024, 1, 10, 9), utc(2024, 1, 10, 10))
        recent = storage.create_time_entry(task.id, regular_user.id, utc(2024, 1, 15, 9), utc(2024, 1, 15, 10))

        response = client.get(f"{API}/time-entries", params={"start_date": "2024-01-12"}, headers=auth_headers)
        assert [e["id"] for e in response.json()] == [recent.id]

    def test_list_entries_single_day_range(self, client, storage, auth_headers, regular_user, task):
        entry = storage.create_time_entry(task.id, regular_user.id, utc(2024, 1, 15, 9), utc(2024, 1, 15, 10))
        storage.create_time_entry(task.id, regular_user.id, utc(2024, 1, 16, 0), utc(2024, 1, 16, 1))

        response = client.get(f"{API}/time-entries", headers=auth_headers,
                              params={"start_date": "2024-01-15", "end_date": "2024-01-15"})
        assert [e["id"] for e in response.json()] == [entry.id]

    def test_list_entries_invalid_date(self, client, auth_headers):
        response = client.get(f"{API}/time-entries", params={"start_date": "15/01/2024"}, headers=auth_headers)
        self.assert_bad_request(response, "Invalid start_date format")

    def test_entries_are_private(self, client, storage, auth_headers, other_headers, other_user, team, task):
        storage.add_team_member(team.id, other_user.id)
        entry = storage.create_time_entry(task.id, other_user.id, utc(2024, 1, 15, 9), utc(2024, 1, 15, 10))

        assert client.get(f"{API}/time-entries", headers=auth_headers).json() == []
        self.assert_forbidden(client.get(f"{API}/time-entries/{entry.id}", headers=auth_headers))
        self.assert_success_response(client.get(f"{API}/time-entries/{entry.id}", headers=other_headers))

    def test_admin_reads_any_entry(self, client, storage, admin_headers, regular_user, task):
        entry = storage.create_time_entry(task.id, regular_user.id, utc(2024, 1, 15, 9), utc(2024, 1, 15, 10))
        self.assert_success_response(client.get(f"{API}/time-entries/{entry.id}", headers=admin_headers))

    def test_update_entry_recomputes_duration(self, client, storage, auth_headers, regular_user, task):
        entry = storage.create_time_entry(task.id, regular_user.id, utc(2024, 1, 15, 9), utc(2024, 1, 15, 10))

        response = client.put(f"{API}/time-entries/{entry.id}", headers=auth_headers,
                              json={"end_time": "2024-01-15T10:45:00Z", "notes": "Longer"})

        self.assert_success_response(response)
        assert response.json()["duration"] == 6300
        assert response.json()["notes"] == "Longer"

    def test_update_entry_ignores_client_duration(self, client, storage, auth_headers, regular_user, task):
        entry = storage.create_time_entry(task.id, regular_user.id, utc(2024, 1, 15, 9), utc(2024, 1, 15, 10))

        response = client.put(f"{API}/time-entries/{entry.id}", headers=auth_headers, json={"duration": 5})

        self.assert_success_response(response)
        assert response.json()["duration"] == 3600

    def test_update_entry_invalid_range(self, client, storage, auth_headers, regular_user, task):
        entry = storage.create_time_entry(task.id, regular_user.id, utc(2024, 1, 15, 9), utc(2024, 1, 15, 10))
        response = client.put(f"{API}/time-entries/{entry.id}", headers=auth_headers,
                              json={"start_time": "2024-01-15T11:00:00Z"})
        self.assert_bad_request(response, "end_time must be after start_time")

    def test_clearing_end_time_restarts_entry(self, client, storage, auth_headers, regular_user, task):
        entry = storage.create_time_entry(task.id, regular_user.id, utc(2024, 1, 15, 9), utc(2024, 1, 15, 10))

        response = client.put(f"{API}/time-entries/{entry.id}", json={"end_time": None}, headers=auth_headers)

        self.assert_success_response(response)
        assert response.json()["is_running"] is True
        assert response.json()["duration"] is None

    def test_restart_blocked_by_running_timer(self, client, storage, auth_headers, regular_user, task):
        entry = storage.create_time_entry(task.id, regular_user.id, utc(2024, 1, 15, 9), utc(2024, 1, 15, 10))
        storage.start_timer(task.id, regular_user.id)

        response = client.put(f"{API}/time-entries/{entry.id}", json={"end_time": None}, headers=auth_headers)
        self.assert_bad_request(response, RUNNING_TIMER_DETAIL)

    def test_delete_entry(self, client, storage, auth_headers, regular_user, task):
        entry = storage.create_time_entry(task.id, regular_user.id, utc(2024, 1, 15, 9), utc(2024, 1, 15, 10))

        self.assert_success_response(client.delete(f"{API}/time-entries/{entry.id}", headers=auth_headers))
        assert storage.get_time_entry(entry.id) is None

    def test_delete_all_entries_admin_only(self, client, storage, auth_headers, admin_headers, regular_user, task):
        storage.create_time_entry(task.id, regular_user.id, utc(2024, 1, 15, 9), utc(2024, 1, 15, 10))
        storage.create_time_entry(task.id, regular_user.id, utc(2024, 1, 16, 9), utc(2024, 1, 16, 10))

        self.assert_forbidden(client.delete(f"{API}/time-entries", headers=auth_headers))

        response = client.delete(f"{API}/time-entries", headers=admin_headers)
        self.assert_success_response(response)
        assert response.json()["message"] == "Deleted 2 time entries"
        assert storage.get_all_time_entries() == []


class TestTimer(BaseAPITest):
    """Test cases for the start/stop timer."""

    def test_start_and_stop(self, client, auth_headers, task):
        started = client.post(f"{API}/timer/start", json={"task_id": task.id}, headers=auth_headers)
        self.assert_success_response(started, status.HTTP_201_CREATED)
        assert started.json()["is_running"] is True

        running = client.get(f"{API}/time-entries/running", headers=auth_headers).json()
        assert [e["id"] for e in running] == [started.json()["id"]]

        stopped = client.post(f"{API}/timer/stop", json={"notes": "Wrapped up"}, headers=auth_headers)
        self.assert_success_response(stopped)
        data = stopped.json()
        assert data["id"] == started.json()["id"]
        assert data["is_running"] is False
        assert data["end_time"] is not None
        assert data["duration"] >= 0
        assert data["notes"] == "Wrapped up"

    def test_only_one_running_timer(self, client, storage, auth_headers, regular_user, task):
        other_task = storage.create_task(name="Pricing page", user_id=regular_user.id, project_id=task.project_id)
        client.post(f"{API}/timer/start", json={"task_id": task.id}, headers=auth_headers)

        response = client.post(f"{API}/timer/start", json={"task_id": other_task.id}, headers=auth_headers)
        self.assert_bad_request(response, RUNNING_TIMER_DETAIL)

        manual = client.post(f"{API}/time-entries", headers=auth_headers,
                             json=TestDataFactory.create_time_entry(task.id, end_time=None))
        self.assert_bad_request(manual, RUNNING_TIMER_DETAIL)

    def test_running_timers_are_per_user(self, client, storage, other_headers, other_user, regular_user, team, task):
        storage.add_team_member(team.id, other_user.id)
        storage.start_timer(task.id, regular_user.id)

        response = client.post(f"{API}/timer/start", json={"task_id": task.id}, headers=other_headers)
        self.assert_success_response(response, status.HTTP_201_CREATED)

    def test_start_on_inactive_task(self, client, storage, auth_headers, task):
        storage.delete_task(task.id)
        response = client.post(f"{API}/timer/start", json={"task_id": task.id}, headers=auth_headers)
        self.assert_bad_request(response, "Task is inactive")

    def test_stop_without_running_timer(self, client, auth_headers):
        response = client.post(f"{API}/timer/stop", json={}, headers=auth_headers)
        self.assert_error_response(response, status.HTTP_404_NOT_FOUND, "No running timer found")

    def test_stop_specific_entry_that_is_not_running(self, client, storage, auth_headers, regular_user, task):
        entry = storage.create_time_entry(task.id, regular_user.id, utc(2024, 1, 15, 9), utc(2024, 1, 15, 10))
        response = client.post(f"{API}/timer/stop", json={"entry_id": entry.id}, headers=auth_headers)
        self.assert_bad_request(response)

    def test_stop_specific_entry(self, client, storage, auth_headers, regular_user, task):
        entry = storage.start_timer(task.id, regular_user.id)

        response = client.post(f"{API}/timer/stop", json={"entry_id": entry.id}, headers=auth_headers)

        self.assert_success_response(response)
        assert response.json()["is_running"] is False


class TestDashboard(BaseAPITest):
    """Test cases for the dashboard summary."""

    def test_dashboard_counters(self, storage, regular_user, shared_project):
        # Wednesday; the week started on Sunday the 14th
        now = utc(2024, 1, 17, 15)
        project_id = shared_project.id
        uid = regular_user.id

        overdue = storage.create_task(name="Overdue", user_id=uid, project_id=project_id,
                                      estimated_hours=3, deadline=now - timedelta(hours=1))
        storage.create_time_entry(overdue.id, uid, utc(2024, 1, 17, 9), utc(2024, 1, 17, 10))
        storage.create_time_entry(overdue.id, uid, utc(2024, 1, 15, 9), utc(2024, 1, 15, 11))
        storage.create_time_entry(overdue.id, uid, utc(2024, 1, 5, 10), utc(2024, 1, 5, 10, 30))

        storage.create_task(name="Due today", user_id=uid, project_id=project_id,
                            estimated_hours=5, deadline=utc(2024, 1, 17, 20))

        nearing = storage.create_task(name="Due tomorrow", user_id=uid, project_id=project_id,
                                      estimated_hours=1, deadline=utc(2024, 1, 18, 10))
        storage.create_time_entry(nearing.id, uid, utc(2023, 12, 20, 9), utc(2023, 12, 20, 9, 50))

        done = storage.create_task(name="Done", user_id=uid, project_id=project_id, estimated_hours=2)
        storage.create_time_entry(done.id, uid, utc(2023, 12, 10, 9), utc(2023, 12, 10, 12))
        storage.complete_task(done.id)

        stats = storage.get_dashboard_stats(uid, now=now)

        assert stats["today_time"] == 3600
        assert stats["week_time"] == 3 * 3600
        assert stats["month_time"] == 3 * 3600 + 1800
        assert stats["active_tasks"] == 3
        assert stats["completed_tasks"] == 1
        assert stats["overdue_tasks"] == 1
        assert stats["due_today_tasks"] == 1
        assert stats["due_tomorrow_tasks"] == 1
        assert stats["over_time_tasks"] == 1
        assert stats["nearing_limit_tasks"] == 1
        assert stats["efficiency"] == 67

    def test_dashboard_without_data(self, storage, regular_user):
        stats = storage.get_dashboard_stats(regular_user.id, now=utc(2024, 1, 17, 15))
        assert all(value == 0 for value in stats.values())

    def test_dashboard_endpoint(self, client, storage, auth_headers, regular_user, task):
        storage.start_timer(task.id, regular_user.id)

        response = client.get(f"{API}/dashboard/stats", headers=auth_headers)

        self.assert_success_response(response)
        data = response.json()
        assert data["active_tasks"] == 1
        assert data["today_time"] >= 0
        assert set(data) >= {"week_time", "month_time", "overdue_tasks", "efficiency"}


class TestReports(BaseAPITest):
    """Test cases for the time reports."""

    def test_daily_report_zero_fills(self, client, storage, auth_headers, regular_user, task):
        storage.create_time_entry(task.id, regular_user.id, utc(2024, 1, 15, 9), utc(2024, 1, 15, 11))
        storage.create_time_entry(task.id, regular_user.id, utc(2024, 1, 17, 23), utc(2024, 1, 17, 23, 30))

        response = client.get(f"{API}/reports/daily", headers=auth_headers,
                              params={"start_date": "2024-01-14", "end_date": "2024-01-17"})

        self.assert_success_response(response)
        assert response.json() == [
            {"date": "2024-01-14", "total_time": 0},
            {"date": "2024-01-15", "total_time": 7200},
            {"date": "2024-01-16", "total_time": 0},
            {"date": "2024-01-17", "total_time": 1800},
        ]

    def test_daily_report_defaults_to_last_week(self, client, auth_headers):
        response = client.get(f"{API}/reports/daily", headers=auth_headers)

        self.assert_success_response(response)
        assert len(response.json()) == 7

    def test_daily_report_inverted_range(self, client, auth_headers):
        response = client.get(f"{API}/reports/daily", headers=auth_headers,
                              params={"start_date": "2024-01-17", "end_date": "2024-01-14"})
        self.assert_bad_request(response)

    def test_daily_report_range_limit(self, client, auth_headers):
        response = client.get(f"{API}/reports/daily", headers=auth_headers,
                              params={"start_date": "0001-01-01", "end_date": "2024-01-17"})
        self.assert_bad_request(response, "Date range must not exceed")

        response = client.get(f"{API}/reports/daily", headers=auth_headers,
                              params={"start_date": "2023-01-18", "end_date": "2024-01-17"})
        self.assert_success_response(response)
        assert len(response.json()) == 365

    def test_daily_report_invalid_date(self, client, auth_headers):
        response = client.get(f"{API}/reports/daily", params={"end_date": "yesterday"}, headers=auth_headers)
        self.assert_bad_request(response, "Invalid end_date format")

    def test_time_by_task(self, client, storage, auth_headers, regular_user, task):
        small = storage.create_task(name="Pricing page", user_id=regular_user.id, project_id=task.project_id)
        storage.create_time_entry(task.id, regular_user.id, utc(2024, 1, 15, 9), utc(2024, 1, 15, 11))
        storage.create_time_entry(small.id, regular_user.id, utc(2024, 1, 15, 13), utc(2024, 1, 15, 13, 20))
        storage.create_time_entry(task.id, regular_user.id, utc(2024, 1, 16, 9), utc(2024, 1, 16, 10))

        response = client.get(f"{API}/reports/time-by-task", headers=auth_headers)

        self.assert_success_response(response)
        rows = response.json()
        assert [(row["task"]["id"], row["total_time"]) for row in rows] == [(task.id, 10800), (small.id, 1200)]

    def test_time_by_task_date_range(self, client, storage, auth_headers, regular_user, task):
        storage.create_time_entry(task.id, regular_user.id, utc(2024, 1, 15, 9), utc(2024, 1, 15, 11))
        storage.create_time_entry(task.id, regular_user.id, utc(2024, 1, 20, 9), utc(2024, 1, 20, 10))

        response = client.get(f"{API}/reports/time-by-task", headers=auth_headers,
                              params={"start_date": "2024-01-19"})
        assert [row["total_time"] for row in response.json()] == [3600]

    def test_single_day_range_matches_daily_report(self, client, storage, auth_headers, regular_user, task):
        storage.create_time_entry(task.id, regular_user.id, utc(2024, 1, 15, 9), utc(2024, 1, 15, 10))
        params = {"start_date": "2024-01-15", "end_date": "2024-01-15"}

        by_task = client.get(f"{API}/reports/time-by-task", params=params, headers=auth_headers).json()
        daily = client.get(f"{API}/reports/daily", params=params, headers=auth_headers).json()

        assert [row["total_time"] for row in by_task] == [3600]
        assert daily == [{"date": "2024-01-15", "total_time": 3600}]
