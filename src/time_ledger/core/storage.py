"""Persistence layer: record stores with per-user change notifications.

Two stores share one async interface:

- MemoryStore keeps records in process memory.
- CSVStore keeps one CSV file per table with file locking and atomic
  temp-file writes.

Every mutation bumps a monotonic revision and publishes a ChangeEvent to
the subscriptions registered for the (table, user) pair it touched.
"""

import asyncio
import csv
import logging
import os
import sys
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

from time_ledger.core.errors import NotFoundError, PersistenceError
from time_ledger.core.models import Notification, Project, Task, TimeEntry, as_utc

logger = logging.getLogger(__name__)

PROJECTS = "projects"
TASKS = "tasks"
TIME_ENTRIES = "time_entries"
NOTIFICATIONS = "notifications"

TABLE_MODELS: dict[str, Any] = {
    PROJECTS: Project,
    TASKS: Task,
    TIME_ENTRIES: TimeEntry,
    NOTIFICATIONS: Notification,
}

TABLE_FIELDS: dict[str, list[str]] = {
    PROJECTS: ["id", "name", "description", "user_id", "is_shared", "created_at"],
    TASKS: [
        "id",
        "title",
        "description",
        "project_id",
        "user_id",
        "status",
        "priority",
        "deadline",
        "estimated_time",
        "created_at",
    ],
    TIME_ENTRIES: [
        "id",
        "task_id",
        "user_id",
        "start_time",
        "end_time",
        "duration",
        "notes",
        "created_at",
    ],
    NOTIFICATIONS: ["id", "user_id", "message", "category", "read", "related_id", "created_at"],
}

R = TypeVar("R")

_STORAGE_ERRORS = (OSError, csv.Error, ValueError, KeyError)


def _check_table(table: str) -> None:
    if table not in TABLE_MODELS:
        raise ValueError(f"Unknown table: {table}")


def _normalize(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


@dataclass(frozen=True)
class ChangeEvent:
    """Notification that a record changed.

    Attributes:
        table: Table the record belongs to
        user_id: Owning user of the record
        action: "insert", "update" or "delete"
        record_id: Identifier of the changed record
    """

    table: str
    user_id: str
    action: str
    record_id: str


class Subscription:
    """Inbound channel of change events for one (table, user) pair."""

    def __init__(self, feed: "ChangeFeed", table: str, user_id: str):
        self.feed = feed
        self.table = table
        self.user_id = user_id
        self.closed = False
        self._queue: asyncio.Queue[ChangeEvent] = asyncio.Queue()

    async def get(self) -> ChangeEvent:
        """Wait for the next change event."""
        return await self._queue.get()

    def drain(self) -> int:
        """Discard queued events.

        Returns:
            Number of events discarded
        """
        count = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            count += 1
        return count

    def pending(self) -> int:
        """Number of events waiting to be consumed."""
        return self._queue.qsize()

    def deliver(self, event: ChangeEvent) -> None:
        """Queue an event unless the subscription is closed."""
        if not self.closed:
            self._queue.put_nowait(event)

    def close(self) -> None:
        """Stop receiving events."""
        if self.closed:
            return
        self.closed = True
        self.feed.unsubscribe(self)


class ChangeFeed:
    """Fan-out of change events to subscriptions keyed by (table, user)."""

    def __init__(self) -> None:
        self._subscriptions: dict[tuple[str, str], list[Subscription]] = {}

    def subscribe(self, table: str, user_id: str) -> Subscription:
        """Open a subscription for one table scoped to one user."""
        subscription = Subscription(self, table, user_id)
        self._subscriptions.setdefault((table, user_id), []).append(subscription)
        logger.debug(f"Subscribed to {table} changes for user {user_id}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscription."""
        key = (subscription.table, subscription.user_id)
        subscribers = self._subscriptions.get(key, [])
        if subscription in subscribers:
            subscribers.remove(subscription)
            logger.debug(f"Unsubscribed from {key[0]} changes for user {key[1]}")
        if not subscribers:
            self._subscriptions.pop(key, None)

    def publish(self, event: ChangeEvent) -> None:
        """Deliver an event to every matching subscription."""
        for subscription in list(self._subscriptions.get((event.table, event.user_id), [])):
            subscription.deliver(event)

    def subscriber_count(self, table: Optional[str] = None, user_id: Optional[str] = None) -> int:
        """Count open subscriptions, optionally filtered by table and user."""
        return sum(
            len(subscribers)
            for (t, u), subscribers in self._subscriptions.items()
            if (table is None or t == table) and (user_id is None or u == user_id)
        )


class Store(ABC):
    """Async record store scoped by owning user.

    Subclasses implement whole-table load and dump; this class implements the
    operations on top of them, serializes mutations with a lock and runs the
    blocking work in a worker thread.
    """

    def __init__(self) -> None:
        self.feed = ChangeFeed()
        self._lock = threading.Lock()
        self._revision = 0

    @property
    def revision(self) -> int:
        """Monotonic counter bumped by every mutation."""
        return self._revision

    @abstractmethod
    def _load(self, table: str) -> list[Any]:
        """Load every record of a table."""
        pass

    @abstractmethod
    def _dump(self, table: str, records: list[Any]) -> None:
        """Replace the content of a table."""
        pass

    async def _call(self, func: Callable[..., tuple[R, list[ChangeEvent]]], *args: Any) -> R:
        """Run a blocking operation in a worker thread.

        Change events are published as soon as the operation finishes, even
        if the awaiting caller was cancelled meanwhile.
        """
        future = asyncio.ensure_future(asyncio.to_thread(func, *args))
        future.add_done_callback(self._publish_changes)
        try:
            result, _ = await asyncio.shield(future)
        except _STORAGE_ERRORS as e:
            logger.error(f"Storage operation failed: {e}")
            raise PersistenceError(f"Storage operation failed: {e}") from e
        return result

    def _publish_changes(self, future: "asyncio.Future[Any]") -> None:
        if future.cancelled() or future.exception() is not None:
            return
        _, events = future.result()
        for event in events:
            self.feed.publish(event)

    def subscribe(self, table: str, user_id: str) -> Subscription:
        """Subscribe to changes of one table scoped to one user."""
        _check_table(table)
        return self.feed.subscribe(table, user_id)

    # Mutations

    async def insert(self, table: str, record: R) -> R:
        """Persist a new record.

        Raises:
            PersistenceError: If a record with the same id exists or I/O fails
        """
        _check_table(table)
        return await self._call(self._insert_sync, table, record)

    def _insert_sync(self, table: str, record: Any) -> tuple[Any, list[ChangeEvent]]:
        with self._lock:
            records = self._load(table)
            if any(r.id == record.id for r in records):
                raise PersistenceError(f"Duplicate {table} id: {record.id}")
            stored = replace(record)
            records.append(stored)
            self._dump(table, records)
            self._revision += 1
        return replace(stored), [ChangeEvent(table, stored.user_id, "insert", stored.id)]

    async def update(self, table: str, record_id: str, changes: dict[str, Any]) -> Any:
        """Apply a partial update to one record as a single write.

        Raises:
            NotFoundError: If the record does not exist
            PersistenceError: If I/O fails
        """
        _check_table(table)
        return await self._call(self._update_sync, table, record_id, changes)

    def _update_sync(
        self, table: str, record_id: str, changes: dict[str, Any]
    ) -> tuple[Any, list[ChangeEvent]]:
        with self._lock:
            records = self._load(table)
            for i, record in enumerate(records):
                if record.id == record_id:
                    records[i] = replace(record, **changes)
                    break
            else:
                raise NotFoundError(f"{table} record not found: {record_id}")
            self._dump(table, records)
            self._revision += 1
            updated = records[i]
        return replace(updated), [ChangeEvent(table, updated.user_id, "update", updated.id)]

    async def delete(self, table: str, record_id: str) -> bool:
        """Delete one record.

        Returns:
            True if deleted, False if not found
        """
        _check_table(table)
        deleted = await self._call(self._delete_sync, table, {"id": record_id})
        return deleted > 0

    async def delete_where(self, table: str, **equals: Any) -> int:
        """Delete every record matching the equality filters.

        Returns:
            Number of deleted records
        """
        _check_table(table)
        if not equals:
            raise ValueError("delete_where requires at least one filter")
        result: int = await self._call(self._delete_sync, table, equals)
        return result

    def _delete_sync(self, table: str, equals: dict[str, Any]) -> tuple[int, list[ChangeEvent]]:
        with self._lock:
            records = self._load(table)
            kept = []
            events = []
            for record in records:
                if self._matches(record, equals):
                    events.append(ChangeEvent(table, record.user_id, "delete", record.id))
                else:
                    kept.append(record)
            if events:
                self._dump(table, kept)
                self._revision += 1
        return len(events), events

    # Queries

    async def get(self, table: str, record_id: str) -> Optional[Any]:
        """Fetch one record by id, or None."""
        _check_table(table)
        return await self._call(self._get_sync, table, record_id)

    def _get_sync(self, table: str, record_id: str) -> tuple[Optional[Any], list[ChangeEvent]]:
        with self._lock:
            records = self._load(table)
        for record in records:
            if record.id == record_id:
                return replace(record), []
        return None, []

    async def select(
        self,
        table: str,
        *,
        user_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        descending: bool = True,
        **equals: Any,
    ) -> list[Any]:
        """Query records of a table.

        Args:
            table: Table name
            user_id: Restrict to records owned by this user
            start: Keep time entries starting at or after this instant
            end: Keep time entries starting at or before this instant
            descending: Newest first (by start_time for time entries,
                created_at otherwise)
            **equals: Equality filters on record attributes

        Returns:
            Matching records
        """
        _check_table(table)
        if (start or end) and table != TIME_ENTRIES:
            raise ValueError("Range filters only apply to time entries")
        if user_id is not None:
            equals["user_id"] = user_id
        return await self._call(self._select_sync, table, start, end, descending, equals)

    def _select_sync(
        self,
        table: str,
        start: Optional[datetime],
        end: Optional[datetime],
        descending: bool,
        equals: dict[str, Any],
    ) -> tuple[list[Any], list[ChangeEvent]]:
        with self._lock:
            records = self._load(table)

        selected = [r for r in records if self._matches(r, equals)]
        if start is not None:
            selected = [r for r in selected if r.start_time >= as_utc(start)]
        if end is not None:
            selected = [r for r in selected if r.start_time <= as_utc(end)]

        sort_attr = "start_time" if table == TIME_ENTRIES else "created_at"
        selected.sort(key=lambda r: getattr(r, sort_attr), reverse=descending)
        return [replace(r) for r in selected], []

    @staticmethod
    def _matches(record: Any, equals: dict[str, Any]) -> bool:
        return all(_normalize(getattr(record, k)) == _normalize(v) for k, v in equals.items())


class MemoryStore(Store):
    """Store keeping every table in process memory."""

    def __init__(self) -> None:
        super().__init__()
        self._tables: dict[str, list[Any]] = {table: [] for table in TABLE_MODELS}

    def _load(self, table: str) -> list[Any]:
        return [replace(r) for r in self._tables[table]]

    def _dump(self, table: str, records: list[Any]) -> None:
        self._tables[table] = [replace(r) for r in records]


# Platform-specific file locking


def _lock_file(file_obj: Any, exclusive: bool = True) -> None:
    """Lock a file in a cross-platform way.

    Args:
        file_obj: File object to lock
        exclusive: If True, acquire exclusive lock; if False, acquire shared lock
    """
    if sys.platform == "win32":
        import msvcrt  # type: ignore[import-not-found]

        mode = msvcrt.LK_NBLCK if exclusive else msvcrt.LK_NBRLCK
        msvcrt.locking(file_obj.fileno(), mode, 1)
    else:
        import fcntl  # type: ignore[import-not-found]

        mode = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(file_obj.fileno(), mode)


def _unlock_file(file_obj: Any) -> None:
    """Unlock a file in a cross-platform way."""
    if sys.platform == "win32":
        import msvcrt  # type: ignore[import-not-found]

        msvcrt.locking(file_obj.fileno(), msvcrt.LK_UNLCK, 1)
    else:
        import fcntl  # type: ignore[import-not-found]

        fcntl.flock(file_obj.fileno(), fcntl.LOCK_UN)


class CSVStore(Store):
    """Store keeping one CSV file per table.

    Change events reach subscribers of this store instance only; writers in
    other processes are picked up on the next refetch.
    """

    def __init__(self, data_dir: Optional[Path] = None):
        """Initialize CSV store.

        Args:
            data_dir: Custom data directory. Defaults to ~/.time-ledger/data
        """
        super().__init__()
        if data_dir is None:
            data_dir = Path.home() / ".time-ledger" / "data"

        self.data_dir = Path(data_dir).expanduser()
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.files = {table: self.data_dir / f"{table}.csv" for table in TABLE_MODELS}

        for table, path in self.files.items():
            if not path.exists():
                self._write_csv_atomic(path, TABLE_FIELDS[table], [])

    def _write_csv_atomic(
        self, file_path: Path, fieldnames: list[str], rows: list[dict[str, Any]]
    ) -> None:
        """Write CSV file atomically using temporary file and rename.

        Args:
            file_path: Target file path
            fieldnames: CSV field names
            rows: List of row dictionaries
        """
        temp_file = file_path.with_suffix(".tmp")

        try:
            with open(temp_file, "w", newline="", encoding="utf-8") as f:
                _lock_file(f, exclusive=True)

                writer = csv.DictWriter(f, fieldnames=fieldnames)
                writer.writeheader()
                writer.writerows(rows)

                f.flush()
                os.fsync(f.fileno())

                _unlock_file(f)

            temp_file.replace(file_path)

        except Exception:
            if temp_file.exists():
                temp_file.unlink()
            raise

    def _read_csv(self, file_path: Path) -> list[dict[str, Any]]:
        """Read CSV file with a shared lock.

        Args:
            file_path: CSV file to read

        Returns:
            List of row dictionaries
        """
        if not file_path.exists():
            return []

        with open(file_path, encoding="utf-8", newline="") as f:
            _lock_file(f, exclusive=False)
            try:
                rows = list(csv.DictReader(f))
            finally:
                _unlock_file(f)

        return rows

    def _load(self, table: str) -> list[Any]:
        model = TABLE_MODELS[table]
        return [model.from_dict(row) for row in self._read_csv(self.files[table])]

    def _dump(self, table: str, records: list[Any]) -> None:
        self._write_csv_atomic(
            self.files[table], TABLE_FIELDS[table], [r.to_dict() for r in records]
        )
