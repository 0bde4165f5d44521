"""Tests for entry endpoints."""

from typing import Any, Callable, Optional

from fastapi.testclient import TestClient  # type: ignore[import-untyped]

ENTRIES = "/api/v1/entries"


def start(client: TestClient, headers: dict[str, str], task_id: str, **body: Any) -> Any:
    return client.post(f"{ENTRIES}/start", json={"task_id": task_id, **body}, headers=headers)


def stop(client: TestClient, headers: dict[str, str], entry_id: Optional[str] = None) -> Any:
    body = {"entry_id": entry_id} if entry_id else {}
    return client.post(f"{ENTRIES}/stop", json=body, headers=headers)


def finished_entry(
    client: TestClient, headers: dict[str, str], task_id: str, start_time: str, end_time: str
) -> dict[str, Any]:
    """Track a task, stop it, then move the entry to fixed timestamps."""
    entry = start(client, headers, task_id).json()
    stop(client, headers)
    response = client.patch(
        f"{ENTRIES}/{entry['id']}",
        json={"start_time": start_time, "end_time": end_time},
        headers=headers,
    )
    assert response.status_code == 200, response.text
    result: dict[str, Any] = response.json()
    return result


class TestTracking:
    """Test start, stop and current."""

    def test_start_and_stop(
        self, client: TestClient, auth_headers: dict[str, str], make_task: Callable[..., Any]
    ) -> None:
        task = make_task()

        response = start(client, auth_headers, task["id"], notes="Kickoff")
        assert response.status_code == 201
        entry = response.json()
        assert entry["is_active"] is True
        assert entry["notes"] == "Kickoff"
        assert entry["user_id"] == "alice"

        current = client.get(f"{ENTRIES}/current", headers=auth_headers)
        assert current.json()["id"] == entry["id"]

        stopped = stop(client, auth_headers)
        assert stopped.status_code == 200
        assert stopped.json()["is_active"] is False
        assert stopped.json()["duration"] >= 0

        assert client.get(f"{ENTRIES}/current", headers=auth_headers).json() is None

    def test_start_switches_active_entry(
        self, client: TestClient, auth_headers: dict[str, str], make_task: Callable[..., Any]
    ) -> None:
        first_task, second_task = make_task("Draft"), make_task("Review")

        first = start(client, auth_headers, first_task["id"]).json()
        second = start(client, auth_headers, second_task["id"]).json()

        entries = client.get(f"{ENTRIES}/", headers=auth_headers).json()
        assert [e["id"] for e in entries if e["is_active"]] == [second["id"]]
        assert first["id"] in {e["id"] for e in entries}

    def test_stop_without_active_entry(
        self, client: TestClient, auth_headers: dict[str, str]
    ) -> None:
        response = stop(client, auth_headers)

        assert response.status_code == 409
        assert response.json()["error_code"] == "NotActiveError"

    def test_stop_by_id_twice(
        self, client: TestClient, auth_headers: dict[str, str], make_task: Callable[..., Any]
    ) -> None:
        entry = start(client, auth_headers, make_task()["id"]).json()

        assert stop(client, auth_headers, entry["id"]).status_code == 200
        assert stop(client, auth_headers, entry["id"]).status_code == 409

    def test_start_unknown_task(self, client: TestClient, auth_headers: dict[str, str]) -> None:
        response = start(client, auth_headers, "missing")

        assert response.status_code == 400
        assert response.json()["error_code"] == "InvalidTaskError"

    def test_start_completed_task(
        self, client: TestClient, auth_headers: dict[str, str], make_task: Callable[..., Any]
    ) -> None:
        task = make_task()
        client.post(f"/api/v1/tasks/{task['id']}/complete", headers=auth_headers)

        response = start(client, auth_headers, task["id"])

        assert response.status_code == 400
        assert response.json()["error_code"] == "InvalidTaskError"

    def test_request_validation(self, client: TestClient, auth_headers: dict[str, str]) -> None:
        assert start(client, auth_headers, "").status_code == 422


class TestUserIsolation:
    """Test that users only see their own entries."""

    def test_entries_are_private(
        self,
        client: TestClient,
        auth_headers: dict[str, str],
        headers_for: Callable[..., dict[str, str]],
        make_task: Callable[..., Any],
    ) -> None:
        bob = headers_for("bob")
        entry = start(client, auth_headers, make_task()["id"]).json()

        assert client.get(f"{ENTRIES}/", headers=bob).json() == []
        assert client.get(f"{ENTRIES}/current", headers=bob).json() is None
        assert client.get(f"{ENTRIES}/{entry['id']}", headers=bob).status_code == 404
        assert stop(client, bob, entry["id"]).status_code == 409
        assert client.get(f"{ENTRIES}/current", headers=auth_headers).json()["id"] == entry["id"]

    def test_two_users_track_independently(
        self,
        client: TestClient,
        auth_headers: dict[str, str],
        headers_for: Callable[..., dict[str, str]],
        make_task: Callable[..., Any],
    ) -> None:
        bob = headers_for("bob")
        alice_task = make_task()
        bob_task = make_task(headers=bob)

        start(client, auth_headers, alice_task["id"])
        start(client, bob, bob_task["id"])

        alice_current = client.get(f"{ENTRIES}/current", headers=auth_headers).json()
        bob_current = client.get(f"{ENTRIES}/current", headers=bob).json()
        assert alice_current["task_id"] == alice_task["id"]
        assert bob_current["task_id"] == bob_task["id"]


class TestEditing:
    """Test editing and deleting entries."""

    def test_edit_finished_entry(
        self, client: TestClient, auth_headers: dict[str, str], make_task: Callable[..., Any]
    ) -> None:
        entry = start(client, auth_headers, make_task()["id"]).json()
        stop(client, auth_headers)

        response = client.patch(
            f"{ENTRIES}/{entry['id']}",
            json={
                "start_time": "2026-01-05T09:00:00Z",
                "end_time": "2026-01-05T10:30:00Z",
                "notes": "Moved",
            },
            headers=auth_headers,
        )

        assert response.status_code == 200, response.text
        assert response.json()["duration"] == 5400
        assert response.json()["notes"] == "Moved"

    def test_edit_rejects_reversed_range(
        self, client: TestClient, auth_headers: dict[str, str], make_task: Callable[..., Any]
    ) -> None:
        entry = start(client, auth_headers, make_task()["id"]).json()
        stop(client, auth_headers)

        response = client.patch(
            f"{ENTRIES}/{entry['id']}",
            json={"start_time": "2026-01-05T10:00:00Z", "end_time": "2026-01-05T09:00:00Z"},
            headers=auth_headers,
        )

        assert response.status_code == 422

    def test_cannot_close_active_entry_by_edit(
        self, client: TestClient, auth_headers: dict[str, str], make_task: Callable[..., Any]
    ) -> None:
        entry = start(client, auth_headers, make_task()["id"]).json()

        response = client.patch(
            f"{ENTRIES}/{entry['id']}",
            json={"end_time": "2030-01-01T00:00:00Z"},
            headers=auth_headers,
        )

        assert response.status_code == 422
        assert response.json()["error_code"] == "EntryEditError"

    def test_delete_entry(
        self, client: TestClient, auth_headers: dict[str, str], make_task: Callable[..., Any]
    ) -> None:
        entry = start(client, auth_headers, make_task()["id"]).json()

        assert client.delete(f"{ENTRIES}/{entry['id']}", headers=auth_headers).status_code == 204
        assert client.get(f"{ENTRIES}/current", headers=auth_headers).json() is None
        assert client.delete(f"{ENTRIES}/{entry['id']}", headers=auth_headers).status_code == 404


class TestTotals:
    """Test the range total endpoint and date filters."""

    def test_total_in_range(
        self, client: TestClient, auth_headers: dict[str, str], make_task: Callable[..., Any]
    ) -> None:
        finished_entry(
            client, auth_headers, make_task()["id"], "2026-01-05T09:00:00Z", "2026-01-05T09:25:00Z"
        )

        response = client.get(
            f"{ENTRIES}/total",
            params={"start": "2026-01-05T00:00:00Z", "end": "2026-01-06T00:00:00Z"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["seconds"] == 1500
        assert response.json()["formatted"] == "00:25:00"

    def test_reversed_range(self, client: TestClient, auth_headers: dict[str, str]) -> None:
        response = client.get(
            f"{ENTRIES}/total",
            params={"start": "2026-01-06T00:00:00Z", "end": "2026-01-05T00:00:00Z"},
            headers=auth_headers,
        )

        assert response.status_code == 422

    def test_list_filters_by_day(
        self, client: TestClient, auth_headers: dict[str, str], make_task: Callable[..., Any]
    ) -> None:
        entry = finished_entry(
            client, auth_headers, make_task()["id"], "2026-01-05T09:00:00Z", "2026-01-05T09:25:00Z"
        )

        inside = client.get(
            f"{ENTRIES}/",
            params={"from_date": "2026-01-05", "to_date": "2026-01-05"},
            headers=auth_headers,
        )
        outside = client.get(
            f"{ENTRIES}/", params={"from_date": "2026-01-06"}, headers=auth_headers
        )

        assert [e["id"] for e in inside.json()] == [entry["id"]]
        assert outside.json() == []
