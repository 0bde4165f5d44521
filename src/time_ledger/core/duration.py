"""Duration arithmetic for time entries.

Pure functions only: nothing here reads the clock or touches storage.
"""

import math
from collections.abc import Iterable
from datetime import datetime
from typing import Optional

from time_ledger.core.errors import InvalidRangeError
from time_ledger.core.models import Task, TimeEntry, as_utc


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def elapsed(start: datetime, end: datetime) -> int:
    """Seconds between two instants, truncated toward zero.

    Args:
        start: Interval start
        end: Interval end

    Returns:
        Whole seconds from start to end

    Raises:
        InvalidRangeError: If end is before start
    """
    start, end = as_utc(start), as_utc(end)
    if end < start:
        raise InvalidRangeError(
            f"Interval ends before it starts: {end.isoformat()} < {start.isoformat()}"
        )
    return int((end - start).total_seconds())


def humanize(seconds: int) -> str:
    """Format seconds as zero-padded HH:MM:SS.

    Hours are not wrapped into days, so 90000 seconds is "25:00:00".

    Raises:
        InvalidRangeError: If seconds is negative
    """
    if seconds < 0:
        raise InvalidRangeError(f"Cannot format a negative duration: {seconds}")

    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_compact(seconds: Optional[int]) -> str:
    """Format seconds as "1h 5m", or "-" when there is nothing to show."""
    if not seconds:
        return "-"
    return f"{seconds // 3600}h {(seconds % 3600) // 60}m"


def entry_seconds(entry: TimeEntry) -> int:
    """Seconds an entry contributes to totals.

    The stored duration wins when present. An ended entry without a stored
    duration falls back to its timestamps. Active entries contribute nothing.
    """
    if entry.duration is not None:
        return entry.duration
    if entry.end_time is not None:
        return elapsed(entry.start_time, entry.end_time)
    return 0


def total_seconds(entries: Iterable[TimeEntry]) -> int:
    """Sum of entry_seconds over entries."""
    return sum(entry_seconds(e) for e in entries)


def to_hours(seconds: int) -> int:
    """Convert seconds to whole hours, rounding half up."""
    return _round_half_up(seconds / 3600)


def progress_percent(task: Task, entries: Iterable[TimeEntry]) -> int:
    """Tracked time as a percentage of the task estimate.

    Not clamped: a task that overran its estimate reports more than 100.

    Args:
        task: Task with an optional estimate in minutes
        entries: Entries tracked against the task

    Returns:
        Rounded percentage, 0 when the task has no estimate
    """
    if not task.estimated_time:
        return 0
    estimate_seconds = task.estimated_time * 60
    return _round_half_up(total_seconds(entries) / estimate_seconds * 100)
