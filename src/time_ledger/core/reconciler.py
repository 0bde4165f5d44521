"""Change reconciliation between the store and a per-user local view.

The reconciler never patches records incrementally. Each change event
scheduled through a subscription triggers a full refetch of the affected
collection, and the fetched records replace the local copy wholesale.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from time_ledger.core.errors import AnomalyDetected, PersistenceError
from time_ledger.core.models import Notification, Project, Task, TimeEntry
from time_ledger.core.session import Session
from time_ledger.core.storage import (
    NOTIFICATIONS,
    PROJECTS,
    TASKS,
    TIME_ENTRIES,
    Store,
    Subscription,
)

logger = logging.getLogger(__name__)

COLLECTIONS = (PROJECTS, TASKS, TIME_ENTRIES, NOTIFICATIONS)


def derive_active_entry(
    entries: list[TimeEntry],
) -> tuple[Optional[TimeEntry], list[TimeEntry]]:
    """Pick the active entry among a user's entries.

    Args:
        entries: Entries of a single user

    Returns:
        Tuple of (most recently started active entry or None, older active
        entries that should not be active)
    """
    active = sorted((e for e in entries if e.is_active), key=lambda e: e.start_time, reverse=True)
    if not active:
        return None, []
    return active[0], active[1:]


@dataclass
class LocalView:
    """In-memory copy of one user's collections.

    Attributes:
        projects: Own and shared projects
        tasks: Tasks owned by the user
        time_entries: Time entries of the user, newest first
        notifications: Notifications addressed to the user
        active_entry: Derived active entry (None when nothing is tracked)
        anomalies: Active entries found alongside the chosen active entry
        versions: Number of completed refetches per collection
        revisions: Store revision observed when each collection was fetched
    """

    projects: list[Project] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    time_entries: list[TimeEntry] = field(default_factory=list)
    notifications: list[Notification] = field(default_factory=list)
    active_entry: Optional[TimeEntry] = None
    anomalies: list[AnomalyDetected] = field(default_factory=list)
    versions: dict[str, int] = field(default_factory=lambda: {c: 0 for c in COLLECTIONS})
    revisions: dict[str, int] = field(default_factory=lambda: {c: -1 for c in COLLECTIONS})

    @property
    def active_entries(self) -> list[TimeEntry]:
        """All entries without an end time, including anomalous ones."""
        return [e for e in self.time_entries if e.is_active]

    @property
    def unread_count(self) -> int:
        """Number of unread notifications."""
        return sum(1 for n in self.notifications if not n.read)


class ChangeReconciler:
    """Keep a user's local view consistent with the store."""

    def __init__(self, session: Session, store: Store):
        """Initialize reconciler.

        Args:
            session: Session of the user whose data is mirrored
            store: Authoritative store
        """
        self.session = session
        self.store = store
        self.view = LocalView()
        self.last_error: Optional[Exception] = None
        self.started = False
        self.closed = False

        self._subscriptions: dict[str, Subscription] = {}
        self._pumps: dict[str, asyncio.Task[None]] = {}
        self._refresh_locks = {c: asyncio.Lock() for c in COLLECTIONS}
        self._updated = asyncio.Condition()
        self._listeners: list[Callable[[LocalView], None]] = []
        self._flagged: set[str] = set()

    @property
    def user_id(self) -> str:
        return self.session.user.id

    async def start(self) -> None:
        """Subscribe to every collection and perform the initial fetch.

        Subscriptions are opened before fetching, so a change landing between
        the two still schedules a refetch.

        Raises:
            PersistenceError: If the initial fetch fails
        """
        self.session.require_open()
        if self.started:
            return

        for collection in COLLECTIONS:
            self._subscriptions[collection] = self.store.subscribe(collection, self.user_id)

        try:
            for collection in COLLECTIONS:
                await self.refresh(collection)
        except BaseException:
            self._close_subscriptions()
            raise

        for collection, subscription in self._subscriptions.items():
            self._pumps[collection] = asyncio.create_task(
                self._pump(collection, subscription),
                name=f"reconcile-{collection}-{self.user_id}",
            )

        self.started = True
        logger.info(f"Reconciler started for user {self.user_id}")

    async def close(self) -> None:
        """Cancel refetch tasks and tear down every subscription."""
        pumps = list(self._pumps.values())
        for task in pumps:
            task.cancel()
        if pumps:
            await asyncio.gather(*pumps, return_exceptions=True)
        self._pumps.clear()
        self._close_subscriptions()
        self.closed = True
        logger.info(f"Reconciler closed for user {self.user_id}")

    def _close_subscriptions(self) -> None:
        for subscription in self._subscriptions.values():
            subscription.close()
        self._subscriptions.clear()

    def add_listener(self, listener: Callable[[LocalView], None]) -> None:
        """Register a callback run after every time entry refetch."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[LocalView], None]) -> None:
        """Unregister a time entry refetch callback."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def refresh(self, collection: str) -> LocalView:
        """Refetch one collection and replace the local copy.

        Args:
            collection: Collection (table) name

        Returns:
            The updated view

        Raises:
            PersistenceError: If the fetch fails; the view is left unchanged
        """
        if collection not in COLLECTIONS:
            raise ValueError(f"Unknown collection: {collection}")

        async with self._refresh_locks[collection]:
            revision = self.store.revision
            records = await self._fetch(collection)
            self._apply(collection, records, revision)

        async with self._updated:
            self._updated.notify_all()
        return self.view

    async def refresh_all(self) -> LocalView:
        """Refetch every collection."""
        for collection in COLLECTIONS:
            await self.refresh(collection)
        return self.view

    async def wait_for_update(
        self, collection: str, after_version: int, timeout: Optional[float] = None
    ) -> LocalView:
        """Wait until a collection has been refetched past a version.

        Args:
            collection: Collection (table) name
            after_version: Version the caller has already seen
            timeout: Seconds to wait before raising TimeoutError

        Returns:
            The updated view
        """

        async def _wait() -> None:
            async with self._updated:
                await self._updated.wait_for(
                    lambda: self.view.versions[collection] > after_version
                )

        await asyncio.wait_for(_wait(), timeout)
        return self.view

    async def _fetch(self, collection: str) -> list[Any]:
        if collection == PROJECTS:
            own = await self.store.select(PROJECTS, user_id=self.user_id)
            shared = await self.store.select(PROJECTS, is_shared=True)
            seen = {p.id for p in own}
            merged = own + [p for p in shared if p.id not in seen]
            merged.sort(key=lambda p: p.created_at, reverse=True)
            return merged
        return await self.store.select(collection, user_id=self.user_id)

    def _apply(self, collection: str, records: list[Any], revision: int) -> None:
        setattr(self.view, collection, records)
        self.view.versions[collection] += 1
        self.view.revisions[collection] = revision

        if collection != TIME_ENTRIES:
            return

        active, stale = derive_active_entry(records)
        self.view.active_entry = active
        self.view.anomalies = []
        for entry in stale:
            anomaly = AnomalyDetected(self.user_id, active.id, entry.id)  # type: ignore[union-attr]
            self.view.anomalies.append(anomaly)
            if entry.id not in self._flagged:
                self._flagged.add(entry.id)
                logger.warning(str(anomaly))

        for listener in list(self._listeners):
            try:
                listener(self.view)
            except Exception:
                logger.exception("Time entry listener failed")

    async def _pump(self, collection: str, subscription: Subscription) -> None:
        while True:
            event = await subscription.get()
            skipped = subscription.drain()
            logger.debug(
                f"{event.action} on {collection} for user {self.user_id}, "
                f"refetching ({skipped} coalesced)"
            )
            try:
                await self.refresh(collection)
                self.last_error = None
            except PersistenceError as e:
                self.last_error = e
                logger.error(f"Refetch of {collection} failed, keeping last view: {e}")
