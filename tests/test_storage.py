"""Tests for record stores."""

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest  # type: ignore[import-not-found]

from time_ledger.core.errors import NotFoundError, PersistenceError
from time_ledger.core.models import Project, Task, TaskStatus, TimeEntry
from time_ledger.core.storage import (
    PROJECTS,
    TASKS,
    TIME_ENTRIES,
    ChangeEvent,
    CSVStore,
    MemoryStore,
    Store,
)

START = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


def make_entry(offset_hours: int, user_id: str = "alice", task_id: str = "t1") -> TimeEntry:
    return TimeEntry(
        task_id=task_id,
        user_id=user_id,
        start_time=START + timedelta(hours=offset_hours),
    )


@pytest.fixture(params=["memory", "csv"])
def any_store(request: pytest.FixtureRequest, temp_dir: Path) -> Store:
    """Each test runs against both store implementations."""
    if request.param == "memory":
        return MemoryStore()
    return CSVStore(temp_dir)


class TestStoreOperations:
    """Test the shared store interface."""

    def test_insert_and_get(self, any_store: Store) -> None:
        """Test inserting a record and reading it back."""

        async def scenario() -> None:
            entry = make_entry(0)
            await any_store.insert(TIME_ENTRIES, entry)
            loaded = await any_store.get(TIME_ENTRIES, entry.id)

            assert loaded == entry
            assert loaded is not entry

        asyncio.run(scenario())

    def test_duplicate_insert_raises(self, any_store: Store) -> None:
        async def scenario() -> None:
            entry = make_entry(0)
            await any_store.insert(TIME_ENTRIES, entry)
            with pytest.raises(PersistenceError):
                await any_store.insert(TIME_ENTRIES, entry)

        asyncio.run(scenario())

    def test_update_is_partial(self, any_store: Store) -> None:
        """Test that update only touches the given fields."""

        async def scenario() -> None:
            entry = make_entry(0)
            entry.notes = "keep me"
            await any_store.insert(TIME_ENTRIES, entry)

            end = START + timedelta(minutes=30)
            updated = await any_store.update(
                TIME_ENTRIES, entry.id, {"end_time": end, "duration": 1800}
            )

            assert updated.duration == 1800
            assert updated.end_time == end
            assert updated.notes == "keep me"

        asyncio.run(scenario())

    def test_update_missing_raises_not_found(self, any_store: Store) -> None:
        async def scenario() -> None:
            with pytest.raises(NotFoundError):
                await any_store.update(TIME_ENTRIES, "missing", {"notes": "x"})

        asyncio.run(scenario())

    def test_enum_filters(self, any_store: Store) -> None:
        """Test filtering on enum fields by enum or by value."""

        async def scenario() -> None:
            done = Task(title="Done", project_id="p1", user_id="alice", status=TaskStatus.COMPLETED)
            todo = Task(title="Todo", project_id="p1", user_id="alice")
            await any_store.insert(TASKS, done)
            await any_store.insert(TASKS, todo)

            by_enum = await any_store.select(TASKS, status=TaskStatus.COMPLETED)
            by_value = await any_store.select(TASKS, status="completed")

            assert [t.id for t in by_enum] == [done.id]
            assert [t.id for t in by_value] == [done.id]

        asyncio.run(scenario())

    def test_select_scopes_by_user_and_range(self, any_store: Store) -> None:
        """Test user scoping, range filters and newest-first order."""

        async def scenario() -> None:
            entries = [make_entry(0), make_entry(2), make_entry(4), make_entry(1, user_id="bob")]
            for entry in entries:
                await any_store.insert(TIME_ENTRIES, entry)

            own = await any_store.select(TIME_ENTRIES, user_id="alice")
            ranged = await any_store.select(
                TIME_ENTRIES,
                user_id="alice",
                start=START + timedelta(hours=1),
                end=START + timedelta(hours=4),
                descending=False,
            )

            assert [e.id for e in own] == [entries[2].id, entries[1].id, entries[0].id]
            assert [e.id for e in ranged] == [entries[1].id, entries[2].id]

        asyncio.run(scenario())

    def test_range_filter_only_for_time_entries(self, any_store: Store) -> None:
        async def scenario() -> None:
            with pytest.raises(ValueError):
                await any_store.select(PROJECTS, start=START)

        asyncio.run(scenario())

    def test_delete_and_delete_where(self, any_store: Store) -> None:
        async def scenario() -> None:
            entries = [make_entry(0), make_entry(1), make_entry(2, task_id="t2")]
            for entry in entries:
                await any_store.insert(TIME_ENTRIES, entry)

            assert await any_store.delete(TIME_ENTRIES, entries[0].id) is True
            assert await any_store.delete(TIME_ENTRIES, entries[0].id) is False
            assert await any_store.delete_where(TIME_ENTRIES, task_id="t1") == 1

            remaining = await any_store.select(TIME_ENTRIES)
            assert [e.id for e in remaining] == [entries[2].id]

        asyncio.run(scenario())

    def test_delete_where_requires_filter(self, any_store: Store) -> None:
        async def scenario() -> None:
            with pytest.raises(ValueError):
                await any_store.delete_where(TIME_ENTRIES)

        asyncio.run(scenario())

    def test_revision_counts_mutations(self, any_store: Store) -> None:
        """Test that writes bump the revision and reads do not."""

        async def scenario() -> None:
            before = any_store.revision
            entry = make_entry(0)
            await any_store.insert(TIME_ENTRIES, entry)
            await any_store.update(TIME_ENTRIES, entry.id, {"notes": "x"})
            await any_store.select(TIME_ENTRIES)
            await any_store.delete_where(TIME_ENTRIES, task_id="nothing")

            assert any_store.revision == before + 2

        asyncio.run(scenario())


class TestChangeFeed:
    """Test change notifications."""

    def test_subscription_receives_own_user_events(self) -> None:
        """Test that events are delivered per (table, user)."""

        async def scenario() -> None:
            store = MemoryStore()
            alice = store.subscribe(TIME_ENTRIES, "alice")
            bob = store.subscribe(TIME_ENTRIES, "bob")
            alice_projects = store.subscribe(PROJECTS, "alice")

            entry = make_entry(0)
            await store.insert(TIME_ENTRIES, entry)

            event = await asyncio.wait_for(alice.get(), timeout=1)
            assert event == ChangeEvent(TIME_ENTRIES, "alice", "insert", entry.id)
            assert bob.pending() == 0
            assert alice_projects.pending() == 0

        asyncio.run(scenario())

    def test_closed_subscription_stops_receiving(self) -> None:
        async def scenario() -> None:
            store = MemoryStore()
            subscription = store.subscribe(TIME_ENTRIES, "alice")
            subscription.close()

            await store.insert(TIME_ENTRIES, make_entry(0))

            assert subscription.pending() == 0
            assert store.feed.subscriber_count() == 0

        asyncio.run(scenario())

    def test_drain_coalesces_events(self) -> None:
        async def scenario() -> None:
            store = MemoryStore()
            subscription = store.subscribe(TIME_ENTRIES, "alice")
            for i in range(3):
                await store.insert(TIME_ENTRIES, make_entry(i))

            await subscription.get()
            assert subscription.drain() == 2
            assert subscription.pending() == 0

        asyncio.run(scenario())


class TestCSVStore:
    """Test CSV specific behavior."""

    def test_creates_table_files(self, temp_dir: Path) -> None:
        store = CSVStore(temp_dir)

        for path in store.files.values():
            assert path.exists()
            assert path.read_text(encoding="utf-8").startswith("id,")

    def test_records_survive_a_new_instance(self, temp_dir: Path) -> None:
        """Test persistence across store instances."""

        async def scenario() -> None:
            project = Project(name="Site, v2", user_id="alice", description="Line\nbreak")
            await CSVStore(temp_dir).insert(PROJECTS, project)

            loaded = await CSVStore(temp_dir).get(PROJECTS, project.id)
            assert loaded == project

        asyncio.run(scenario())

    def test_active_entry_survives_blank_cells(self, temp_dir: Path) -> None:
        """Test that missing values are written as blank cells and read back as None."""

        async def scenario() -> None:
            entry = make_entry(0)
            await CSVStore(temp_dir).insert(TIME_ENTRIES, entry)

            lines = CSVStore(temp_dir).files[TIME_ENTRIES].read_text(encoding="utf-8").splitlines()
            assert lines[1].startswith(f"{entry.id},t1,alice,")
            assert ",,," in lines[1]

            loaded = await CSVStore(temp_dir).get(TIME_ENTRIES, entry.id)
            assert loaded == entry
            assert loaded.is_active

        asyncio.run(scenario())

    def test_corrupt_row_raises_persistence_error(self, temp_dir: Path) -> None:
        async def scenario() -> None:
            store = CSVStore(temp_dir)
            with open(store.files[TIME_ENTRIES], "a", encoding="utf-8") as f:
                f.write("e1,t1,alice,not-a-date,,,,\n")

            with pytest.raises(PersistenceError):
                await store.select(TIME_ENTRIES)

        asyncio.run(scenario())
