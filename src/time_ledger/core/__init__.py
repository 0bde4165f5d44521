"""Core functionality for task time tracking."""

from time_ledger.core.errors import (
    AnomalyDetected,
    InvalidRangeError,
    InvalidTaskError,
    NotActiveError,
    PersistenceError,
    TimeLedgerError,
)
from time_ledger.core.models import Notification, Project, Task, TimeEntry, User

__all__ = [
    "User",
    "Project",
    "Task",
    "TimeEntry",
    "Notification",
    "TimeLedgerError",
    "InvalidTaskError",
    "NotActiveError",
    "InvalidRangeError",
    "AnomalyDetected",
    "PersistenceError",
]
