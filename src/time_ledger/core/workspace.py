"""Per-user tracking contexts.

A Workspace bundles everything that acts for one user: the session, the
reconciler mirroring the user's data, the tracker and the catalog. The
SessionManager hands out at most one workspace per user, so the tracker's
lock is the only serialization point for that user's timers.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from time_ledger.core.catalog import Catalog
from time_ledger.core.models import User
from time_ledger.core.reconciler import ChangeReconciler, LocalView
from time_ledger.core.session import Session
from time_ledger.core.storage import Store
from time_ledger.core.tracker import TimeEntryTracker

logger = logging.getLogger(__name__)


@dataclass
class Workspace:
    """Tracking context of one user."""

    session: Session
    store: Store
    reconciler: ChangeReconciler
    tracker: TimeEntryTracker
    catalog: Catalog

    @property
    def user(self) -> User:
        return self.session.user

    async def snapshot(self, *collections: str) -> LocalView:
        """Refetch the given collections (all when none given) and return the view."""
        if not collections:
            return await self.reconciler.refresh_all()
        for collection in collections:
            await self.reconciler.refresh(collection)
        return self.reconciler.view

    async def close(self) -> None:
        """Detach the tracker, tear down subscriptions and end the session."""
        self.tracker.detach()
        await self.reconciler.close()
        self.session.close()


async def open_workspace(
    user: User, store: Store, clock: Optional[Callable[[], datetime]] = None
) -> Workspace:
    """Open a standalone workspace for a user.

    Callers that may serve the same user more than once should go through
    SessionManager instead.
    """
    session = Session(user=user)
    reconciler = ChangeReconciler(session, store)
    await reconciler.start()
    tracker = TimeEntryTracker(session, store, reconciler, clock=clock)
    catalog = Catalog(session, store)
    return Workspace(
        session=session, store=store, reconciler=reconciler, tracker=tracker, catalog=catalog
    )


class SessionManager:
    """Open and close workspaces, one per user.

    Opening takes a lock per user, so a slow first request of one user does
    not hold up the others.
    """

    def __init__(self, store: Store, clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self._clock = clock
        self._workspaces: dict[str, Workspace] = {}
        self._user_locks: dict[str, asyncio.Lock] = {}
        self._last_used: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._workspaces)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._workspaces

    async def open(self, user: User) -> Workspace:
        """Get the user's workspace, opening it on first use."""
        async with self._user_locks.setdefault(user.id, asyncio.Lock()):
            self._last_used[user.id] = time.monotonic()
            workspace = self._workspaces.get(user.id)
            if workspace is not None and not workspace.session.closed:
                return workspace

            workspace = await open_workspace(user, self.store, self._clock)
            self._workspaces[user.id] = workspace
            logger.info(f"Opened session {workspace.session.id} for user {user.id}")
            return workspace

    def get(self, user_id: str) -> Optional[Workspace]:
        """Get an open workspace without creating one."""
        return self._workspaces.get(user_id)

    async def close(self, user_id: str) -> bool:
        """Close a user's workspace.

        Returns:
            True if a workspace was open
        """
        return await self._close(user_id)

    async def _close(self, user_id: str, used_before: Optional[float] = None) -> bool:
        async with self._user_locks.setdefault(user_id, asyncio.Lock()):
            last_used = self._last_used.get(user_id)
            if used_before is not None and last_used is not None and last_used > used_before:
                return False
            workspace = self._workspaces.pop(user_id, None)
            self._last_used.pop(user_id, None)
            if workspace is None:
                return False
            await workspace.close()
        logger.info(f"Closed session {workspace.session.id} for user {user_id}")
        return True

    async def close_idle(self, max_idle: float, now: Optional[float] = None) -> list[str]:
        """Close workspaces not used for max_idle seconds.

        Args:
            max_idle: Idle time in seconds after which a workspace is closed
            now: Monotonic reference time (defaults to time.monotonic())

        Returns:
            Ids of the users whose workspace was closed
        """
        if now is None:
            now = time.monotonic()
        cutoff = now - max_idle
        idle = [user_id for user_id, used in self._last_used.items() if used <= cutoff]
        closed = [user_id for user_id in idle if await self._close(user_id, used_before=cutoff)]
        if closed:
            logger.info(f"Closed {len(closed)} idle sessions")
        return closed

    async def close_all(self) -> None:
        """Close every open workspace."""
        workspaces = list(self._workspaces.values())
        self._workspaces.clear()
        self._last_used.clear()
        for workspace in workspaces:
            await workspace.close()
        if workspaces:
            logger.info(f"Closed {len(workspaces)} sessions")
