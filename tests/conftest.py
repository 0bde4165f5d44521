"""Pytest configuration and shared fixtures."""

import tempfile
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

import pytest  # type: ignore[import-not-found]

from time_ledger.core.models import User, UserRole
from time_ledger.core.storage import MemoryStore
from time_ledger.core.workspace import Workspace, open_workspace

ALICE = User(id="alice", display_name="Alice", role=UserRole.ADMIN)
BOB = User(id="bob", display_name="Bob")


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest."""
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def temp_dir() -> Iterator[Path]:
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def open_ws(store: MemoryStore, clock: ManualClock) -> Callable[..., Any]:
    """Async context manager opening a workspace on the shared store.

    Example:
        async with open_ws() as ws:
            ...
    """

    @asynccontextmanager
    async def _open(user: User = ALICE) -> AsyncIterator[Workspace]:
        workspace = await open_workspace(user, store, clock)
        try:
            yield workspace
        finally:
            await workspace.close()

    return _open
