"""Shared fixtures for API tests."""

from collections.abc import Iterator
from pathlib import Path
from typing import Any, Callable, Optional

import pytest  # type: ignore[import-not-found]
from fastapi import FastAPI  # type: ignore[import-untyped]
from fastapi.testclient import TestClient  # type: ignore[import-untyped]

from time_ledger.api.auth import create_token_for_user
from time_ledger.api.server import create_app
from time_ledger.core.config import ConfigManager
from time_ledger.core.storage import MemoryStore


@pytest.fixture
def test_config(temp_dir: Path) -> ConfigManager:
    """Create a test configuration."""
    return ConfigManager(temp_dir / "config.yml")


@pytest.fixture
def test_app(test_config: ConfigManager) -> FastAPI:
    """Create an application backed by an in-memory store."""
    return create_app(test_config, MemoryStore())


@pytest.fixture
def client(test_app: FastAPI) -> Iterator[TestClient]:
    """Create a test client that runs the application lifespan."""
    with TestClient(test_app) as test_client:
        yield test_client


@pytest.fixture
def headers_for(test_config: ConfigManager) -> Callable[..., dict[str, str]]:
    """Build bearer headers for any user."""

    def _headers(user_id: str, role: str = "member", **kwargs: Any) -> dict[str, str]:
        token = create_token_for_user(test_config, user_id=user_id, role=role, **kwargs)
        return {"Authorization": f"Bearer {token['access_token']}"}

    return _headers


@pytest.fixture
def auth_headers(headers_for: Callable[..., dict[str, str]]) -> dict[str, str]:
    """Bearer headers for alice."""
    return headers_for("alice", "admin")


@pytest.fixture
def make_task(client: TestClient, auth_headers: dict[str, str]) -> Callable[..., dict[str, Any]]:
    """Create a project and a task in it through the API."""

    def _make(
        title: str = "Draft", headers: Optional[dict[str, str]] = None, **fields: Any
    ) -> dict[str, Any]:
        headers = headers or auth_headers
        project = client.post("/api/v1/projects/", json={"name": "Website"}, headers=headers)
        assert project.status_code == 201, project.text
        task = client.post(
            "/api/v1/tasks/",
            json={"project_id": project.json()["id"], "title": title, **fields},
            headers=headers,
        )
        assert task.status_code == 201, task.text
        result: dict[str, Any] = task.json()
        return result

    return _make
