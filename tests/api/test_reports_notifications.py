"""Tests for report and notification endpoints."""

from typing import Any, Callable

import pytest  # type: ignore[import-not-found]
from fastapi.testclient import TestClient  # type: ignore[import-untyped]

REPORTS = "/api/v1/reports"
NOTIFICATIONS = "/api/v1/notifications"


@pytest.fixture
def tracked(
    client: TestClient, auth_headers: dict[str, str], make_task: Callable[..., Any]
) -> Callable[..., dict[str, Any]]:
    """Record a finished entry with fixed timestamps."""

    def _tracked(task: dict[str, Any], start: str, end: str) -> dict[str, Any]:
        entry = client.post(
            "/api/v1/entries/start", json={"task_id": task["id"]}, headers=auth_headers
        ).json()
        client.post("/api/v1/entries/stop", json={}, headers=auth_headers)
        response = client.patch(
            f"/api/v1/entries/{entry['id']}",
            json={"start_time": start, "end_time": end},
            headers=auth_headers,
        )
        assert response.status_code == 200, response.text
        result: dict[str, Any] = response.json()
        return result

    return _tracked


class TestAggregate:
    """Test the aggregation endpoint."""

    def test_group_by_project(
        self,
        client: TestClient,
        auth_headers: dict[str, str],
        make_task: Callable[..., Any],
        tracked: Callable[..., Any],
    ) -> None:
        draft = make_task("Draft")
        tracked(draft, "2026-01-05T09:00:00Z", "2026-01-05T10:00:00Z")
        tracked(draft, "2026-01-06T09:00:00Z", "2026-01-06T09:30:00Z")

        response = client.get(
            f"{REPORTS}/aggregate", params={"group_by": "project"}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json() == [
            {"key": draft["project_id"], "label": "Website", "seconds": 5400, "hours": 2}
        ]

    def test_group_by_day_with_range(
        self,
        client: TestClient,
        auth_headers: dict[str, str],
        make_task: Callable[..., Any],
        tracked: Callable[..., Any],
    ) -> None:
        draft = make_task("Draft")
        tracked(draft, "2026-01-05T09:00:00Z", "2026-01-05T10:00:00Z")
        tracked(draft, "2026-01-06T09:00:00Z", "2026-01-06T09:30:00Z")
        tracked(draft, "2026-01-07T09:00:00Z", "2026-01-07T09:10:00Z")

        response = client.get(
            f"{REPORTS}/aggregate",
            params={"group_by": "day", "from_date": "2026-01-05", "to_date": "2026-01-06"},
            headers=auth_headers,
        )

        assert [(r["label"], r["seconds"]) for r in response.json()] == [
            ("2026-01-05", 3600),
            ("2026-01-06", 1800),
        ]

    def test_invalid_group_by(self, client: TestClient, auth_headers: dict[str, str]) -> None:
        response = client.get(
            f"{REPORTS}/aggregate", params={"group_by": "year"}, headers=auth_headers
        )

        assert response.status_code == 422


class TestDashboardAndRows:
    """Test dashboard totals and export rows."""

    def test_dashboard_shows_active_entry(
        self, client: TestClient, auth_headers: dict[str, str], make_task: Callable[..., Any]
    ) -> None:
        task = make_task()
        entry = client.post(
            "/api/v1/entries/start", json={"task_id": task["id"]}, headers=auth_headers
        ).json()

        response = client.get(f"{REPORTS}/dashboard", headers=auth_headers)

        data = response.json()
        assert response.status_code == 200
        assert data["active_entry"]["id"] == entry["id"]
        assert data["unread_notifications"] == 0
        assert data["today_formatted"] == "00:00:00"

    def test_entry_rows(
        self,
        client: TestClient,
        auth_headers: dict[str, str],
        make_task: Callable[..., Any],
        tracked: Callable[..., Any],
    ) -> None:
        tracked(make_task("Draft"), "2026-01-05T09:00:00Z", "2026-01-05T10:30:00Z")

        response = client.get(f"{REPORTS}/rows", headers=auth_headers)

        data = response.json()
        assert data["title"] == "Time Tracking Report"
        assert data["rows"][0]["Task"] == "Draft"
        assert data["rows"][0]["Duration"] == "1h 30m"

    def test_summary_rows(
        self,
        client: TestClient,
        auth_headers: dict[str, str],
        make_task: Callable[..., Any],
        tracked: Callable[..., Any],
    ) -> None:
        tracked(make_task("Draft"), "2026-01-05T09:00:00Z", "2026-01-05T10:30:00Z")

        response = client.get(f"{REPORTS}/rows", params={"group_by": "task"}, headers=auth_headers)

        assert response.json()["rows"] == [{"Task": "Draft", "Hours": 2}]


class TestNotifications:
    """Test alerts and notification state."""

    def test_alerts_are_stored_once(
        self, client: TestClient, auth_headers: dict[str, str], make_task: Callable[..., Any]
    ) -> None:
        task = make_task("Invoices", deadline="2000-01-01")

        first = client.post(f"{NOTIFICATIONS}/alerts", headers=auth_headers)
        second = client.post(f"{NOTIFICATIONS}/alerts", headers=auth_headers)

        assert [n["related_id"] for n in first.json()] == [task["id"]]
        assert first.json()[0]["category"] == "deadline"
        assert second.json() == []
        unread = client.get(f"{NOTIFICATIONS}/unread-count", headers=auth_headers)
        assert unread.json() == {"count": 1}

    def test_mark_read(
        self, client: TestClient, auth_headers: dict[str, str], make_task: Callable[..., Any]
    ) -> None:
        make_task("Invoices", deadline="2000-01-01")
        notification = client.post(f"{NOTIFICATIONS}/alerts", headers=auth_headers).json()[0]

        response = client.post(f"{NOTIFICATIONS}/{notification['id']}/read", headers=auth_headers)

        assert response.json()["read"] is True
        assert client.get(
            f"{NOTIFICATIONS}/", params={"unread_only": True}, headers=auth_headers
        ).json() == []
        assert client.post(f"{NOTIFICATIONS}/read-all", headers=auth_headers).json() == {"count": 0}

    def test_notifications_are_private(
        self,
        client: TestClient,
        auth_headers: dict[str, str],
        headers_for: Callable[..., dict[str, str]],
        make_task: Callable[..., Any],
    ) -> None:
        make_task("Invoices", deadline="2000-01-01")
        notification = client.post(f"{NOTIFICATIONS}/alerts", headers=auth_headers).json()[0]
        bob = headers_for("bob")

        url = f"{NOTIFICATIONS}/{notification['id']}"

        assert client.get(f"{NOTIFICATIONS}/", headers=bob).json() == []
        assert client.post(f"{url}/read", headers=bob).status_code == 404
        assert client.delete(url, headers=bob).status_code == 404
        assert client.delete(url, headers=auth_headers).status_code == 204
