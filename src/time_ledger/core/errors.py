"""Error taxonomy for tracking, reconciliation and persistence."""

from typing import Optional


class TimeLedgerError(Exception):
    """Base class for all Time Ledger errors."""

    pass


class InvalidTaskError(TimeLedgerError):
    """Task is missing or not eligible for the requested operation."""

    def __init__(self, message: str, task_id: Optional[str] = None):
        super().__init__(message)
        self.task_id = task_id


class NotActiveError(TimeLedgerError):
    """Stop was requested for an entry that is not the caller's active entry."""

    def __init__(self, message: str, entry_id: Optional[str] = None):
        super().__init__(message)
        self.entry_id = entry_id


class InvalidRangeError(TimeLedgerError):
    """An interval ends before it starts."""

    pass


class AnomalyDetected(TimeLedgerError):
    """More than one active entry was observed for a single user.

    Never raised by the reconciler. Instances are recorded on the local view
    and logged, and the most recently started entry is kept as active.
    """

    def __init__(self, user_id: str, active_entry_id: str, stale_entry_id: str):
        super().__init__(
            f"User {user_id} has more than one active entry: keeping {active_entry_id}, "
            f"flagging {stale_entry_id}"
        )
        self.user_id = user_id
        self.active_entry_id = active_entry_id
        self.stale_entry_id = stale_entry_id


class PersistenceError(TimeLedgerError):
    """Failure reported by the persistence collaborator."""

    pass


class NotFoundError(TimeLedgerError):
    """Requested record does not exist or is not visible to the caller."""

    pass


class EntryEditError(TimeLedgerError):
    """Edit would break the time entry lifecycle."""

    pass


class SessionClosedError(TimeLedgerError):
    """Operation attempted on a session that has already ended."""

    pass
