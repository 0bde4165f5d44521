"""Core time tracking engine.

The tracker owns the start/stop state machine for one user and the pointer
to that user's active entry. Operations are serialized by a lock because
each of them reads and then writes the active entry state.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Callable, Optional

from time_ledger.analysis.aggregation import total_time_in_range
from time_ledger.core.duration import elapsed, humanize
from time_ledger.core.errors import (
    EntryEditError,
    InvalidTaskError,
    NotActiveError,
    NotFoundError,
    PersistenceError,
)
from time_ledger.core.models import Task, TaskStatus, TimeEntry, as_utc, utc_now
from time_ledger.core.reconciler import ChangeReconciler, LocalView
from time_ledger.core.session import Session
from time_ledger.core.storage import TASKS, TIME_ENTRIES, Store

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("task_id", "start_time", "end_time", "notes")


class TimeEntryTracker:
    """Start/stop tracking for the user of a session."""

    def __init__(
        self,
        session: Session,
        store: Store,
        reconciler: ChangeReconciler,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize time tracker.

        Args:
            session: Session of the tracking user
            store: Authoritative store
            reconciler: Reconciler mirroring the same user's data
            clock: Source of the current time. Defaults to UTC now.
        """
        self.session = session
        self.store = store
        self.reconciler = reconciler
        self._clock = clock or utc_now
        self._lock = asyncio.Lock()

        self._active: Optional[TimeEntry] = reconciler.view.active_entry
        self._stale = not reconciler.started
        self._synced_revision = -1

        reconciler.add_listener(self._on_time_entries)

    @property
    def user_id(self) -> str:
        return self.session.user.id

    @property
    def current_entry(self) -> Optional[TimeEntry]:
        """Entry presumed active, as last known by the tracker."""
        return self._active

    @property
    def is_stale(self) -> bool:
        """True while the active pointer awaits re-derivation from a refetch."""
        return self._stale

    def detach(self) -> None:
        """Stop following reconciler refetches."""
        self.reconciler.remove_listener(self._on_time_entries)

    def total_time_in_range(self, start: datetime, end: datetime) -> int:
        """Seconds tracked by the user with a start time inside [start, end]."""
        return total_time_in_range(self.reconciler.view.time_entries, start, end)

    async def resync(self) -> Optional[TimeEntry]:
        """Refetch time entries and re-derive the active entry."""
        await self.reconciler.refresh(TIME_ENTRIES)
        return self._active

    def _on_time_entries(self, view: LocalView) -> None:
        if view.revisions[TIME_ENTRIES] < self._synced_revision:
            logger.debug("Ignoring refetch older than the tracker's last write")
            return
        self._active = view.active_entry
        self._stale = False

    def _mark_written(self) -> None:
        self._synced_revision = self.store.revision

    @asynccontextmanager
    async def _operation(self, name: str) -> AsyncIterator[None]:
        self.session.require_open()
        async with self._lock:
            try:
                yield
            except asyncio.CancelledError:
                self._active = None
                self._stale = True
                self._synced_revision = self.store.revision
                logger.warning(
                    f"{name} cancelled for user {self.user_id}; "
                    f"active entry will be re-derived from the next refetch"
                )
                raise

    async def _eligible_task(self, task_id: str) -> Task:
        task: Optional[Task] = await self.store.get(TASKS, task_id)
        if task is None:
            raise InvalidTaskError(f"Task not found: {task_id}", task_id)
        if task.is_completed:
            raise InvalidTaskError(f"Task is already completed: {task.title}", task_id)
        return task

    async def _close(self, entry: TimeEntry) -> TimeEntry:
        end_time = self._clock()
        duration = elapsed(entry.start_time, end_time)

        stopped: TimeEntry = await self.store.update(
            TIME_ENTRIES, entry.id, {"end_time": end_time, "duration": duration}
        )
        self._mark_written()
        if self._active is not None and self._active.id == entry.id:
            self._active = None

        logger.info(f"Stopped entry {entry.id} after {humanize(duration)}")
        return stopped

    async def _reopen(self, entries: list[TimeEntry]) -> None:
        for entry in entries:
            try:
                await self.store.update(
                    TIME_ENTRIES, entry.id, {"end_time": None, "duration": None}
                )
            except PersistenceError as e:
                logger.error(f"Could not reopen entry {entry.id} after failed start: {e}")
        self._mark_written()
        self._stale = True

    async def _switch_to(self, task: Task, notes: Optional[str]) -> TimeEntry:
        view = await self.reconciler.refresh(TIME_ENTRIES)
        stopped = []
        for entry in view.active_entries:
            stopped.append(await self._close(entry))

        entry = TimeEntry(
            task_id=task.id,
            user_id=self.user_id,
            start_time=self._clock(),
            notes=notes,
        )
        try:
            created: TimeEntry = await self.store.insert(TIME_ENTRIES, entry)
        except PersistenceError:
            if stopped:
                await self._reopen(stopped)
            raise

        self._active = created
        self._stale = False
        self._mark_written()
        logger.info(f"Started entry {created.id} on task {task.title!r}")
        return created

    async def start(self, task_id: str, notes: Optional[str] = None) -> TimeEntry:
        """Start tracking a task.

        Any entry the user is still tracking is stopped first. If the new
        entry cannot be stored, the entries stopped on its behalf are
        reopened before the error propagates. Once the stop has begun the
        switch runs to completion even if the caller is cancelled, so the
        user is never left with nothing tracked.

        Args:
            task_id: Task to track
            notes: Notes for the new entry

        Returns:
            Created entry

        Raises:
            InvalidTaskError: If the task is missing or completed
            PersistenceError: If the store fails
        """
        async with self._operation("start"):
            task = await self._eligible_task(task_id)

            switch = asyncio.ensure_future(self._switch_to(task, notes))
            try:
                return await asyncio.shield(switch)
            except asyncio.CancelledError:
                await asyncio.wait([switch])
                if not switch.cancelled() and switch.exception() is not None:
                    logger.error(f"Start cancelled and failed: {switch.exception()}")
                raise

    async def stop(self, entry_id: str) -> TimeEntry:
        """Stop one of the user's active entries.

        Args:
            entry_id: Entry to stop

        Returns:
            Stopped entry with end_time and duration set

        Raises:
            NotActiveError: If the entry is not an active entry of this user
            PersistenceError: If the store fails
        """
        async with self._operation("stop"):
            entry: Optional[TimeEntry] = await self.store.get(TIME_ENTRIES, entry_id)
            if entry is None or entry.user_id != self.user_id:
                raise NotActiveError(f"No active entry {entry_id} for this user", entry_id)
            if not entry.is_active:
                raise NotActiveError(f"Entry {entry_id} is already stopped", entry_id)
            return await self._close(entry)

    async def stop_current(self) -> TimeEntry:
        """Stop whatever the user is tracking.

        Raises:
            NotActiveError: If no entry is running
        """
        async with self._operation("stop"):
            view = await self.reconciler.refresh(TIME_ENTRIES)
            if view.active_entry is None:
                raise NotActiveError("No entry is currently running")
            return await self._close(view.active_entry)

    async def complete(self, task_id: str) -> Task:
        """Stop the user's tracking on a task, then mark the task completed.

        Args:
            task_id: Task to complete

        Returns:
            Updated task

        Raises:
            InvalidTaskError: If the task does not exist
        """
        async with self._operation("complete"):
            task: Optional[Task] = await self.store.get(TASKS, task_id)
            if task is None:
                raise InvalidTaskError(f"Task not found: {task_id}", task_id)

            view = await self.reconciler.refresh(TIME_ENTRIES)
            for entry in view.active_entries:
                if entry.task_id == task_id:
                    await self._close(entry)

            if task.is_completed:
                return task

            updated: Task = await self.store.update(
                TASKS, task_id, {"status": TaskStatus.COMPLETED}
            )
            self._mark_written()
            logger.info(f"Completed task {task.title!r}")
            return updated

    async def edit_entry(self, entry_id: str, **changes: Any) -> TimeEntry:
        """Edit an entry of the user.

        Editable fields are task_id, start_time, end_time and notes. When a
        timestamp of a stopped entry changes, its duration is recomputed from
        the new timestamps. The duration itself cannot be set directly.

        Raises:
            NotFoundError: If the entry does not exist for this user
            EntryEditError: If the edit would bypass stop or reopen an entry
            InvalidTaskError: If the new task does not exist
            InvalidRangeError: If the new timestamps are out of order
        """
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise EntryEditError(
                f"Cannot edit {', '.join(sorted(unknown))}; editable fields: "
                f"{', '.join(EDITABLE_FIELDS)}"
            )

        async with self._operation("edit"):
            entry: Optional[TimeEntry] = await self.store.get(TIME_ENTRIES, entry_id)
            if entry is None or entry.user_id != self.user_id:
                raise NotFoundError(f"Entry not found: {entry_id}")

            updates = dict(changes)
            if "end_time" in updates:
                if entry.is_active and updates["end_time"] is not None:
                    raise EntryEditError("Active entries can only be closed by stopping them")
                if not entry.is_active and updates["end_time"] is None:
                    raise EntryEditError("A stopped entry cannot be reopened")
                if updates["end_time"] is not None:
                    updates["end_time"] = as_utc(updates["end_time"])
            if "start_time" in updates:
                if updates["start_time"] is None:
                    raise EntryEditError("start_time cannot be cleared")
                updates["start_time"] = as_utc(updates["start_time"])
            if "task_id" in updates:
                if await self.store.get(TASKS, updates["task_id"]) is None:
                    raise InvalidTaskError(
                        f"Task not found: {updates['task_id']}", updates["task_id"]
                    )

            start_time = updates.get("start_time", entry.start_time)
            end_time = updates.get("end_time", entry.end_time)
            if "start_time" in updates or "end_time" in updates:
                if end_time is not None:
                    updates["duration"] = elapsed(start_time, end_time)
                else:
                    elapsed(start_time, self._clock())

            updated: TimeEntry = await self.store.update(TIME_ENTRIES, entry_id, updates)
            self._mark_written()
            if self._active is not None and self._active.id == entry_id:
                self._active = updated
            return updated

    async def delete_entry(self, entry_id: str) -> bool:
        """Delete an entry of the user.

        Returns:
            True if deleted, False if not found
        """
        async with self._operation("delete"):
            entry: Optional[TimeEntry] = await self.store.get(TIME_ENTRIES, entry_id)
            if entry is None or entry.user_id != self.user_id:
                return False

            deleted = await self.store.delete(TIME_ENTRIES, entry_id)
            self._mark_written()
            if self._active is not None and self._active.id == entry_id:
                self._active = None
            return deleted
