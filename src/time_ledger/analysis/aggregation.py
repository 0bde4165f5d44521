"""Aggregation of time entries into grouped summaries.

aggregate() is a pure reducer over whatever entries it is handed: range,
project and user filtering is the caller's job (see filter_entries()).

Calendar grouping depends on the timezone. Every function that buckets by
day, week or month takes the timezone explicitly and defaults to UTC; naive
timestamps are read as UTC.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from enum import Enum
from typing import Optional, Union
from zoneinfo import ZoneInfo

from time_ledger.core.duration import entry_seconds, to_hours
from time_ledger.core.errors import InvalidRangeError
from time_ledger.core.models import Project, Task, TimeEntry, as_utc

UNKNOWN_PROJECT = "Unknown Project"
UNKNOWN_TASK = "Unknown Task"

WEEK_STARTS = {"monday": 0, "sunday": 6}


class GroupBy(Enum):
    """Aggregation bucket kind."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    PROJECT = "project"
    TASK = "task"

    @property
    def is_calendar(self) -> bool:
        return self in (GroupBy.DAY, GroupBy.WEEK, GroupBy.MONTH)


@dataclass(frozen=True)
class AggregateRow:
    """One bucket of an aggregation.

    Attributes:
        key: Bucket key (entity id or ISO date string)
        label: Display label
        seconds: Exact tracked seconds in the bucket
        hours: Seconds rounded to whole hours
    """

    key: str
    label: str
    seconds: int
    hours: int

    def to_dict(self) -> dict[str, object]:
        """Chart-friendly representation."""
        return {"label": self.label, "hours": self.hours}


@dataclass(frozen=True)
class DashboardTotals:
    """Tracked seconds for the current day, week and month."""

    today: int
    this_week: int
    this_month: int


def resolve_timezone(name: Optional[str]) -> tzinfo:
    """Resolve a configured timezone name.

    Args:
        name: IANA name, "UTC", or "local" for the machine's zone

    Returns:
        tzinfo instance
    """
    if not name or name.upper() == "UTC":
        return timezone.utc
    if name.lower() == "local":
        local = datetime.now().astimezone().tzinfo
        return local if local is not None else timezone.utc
    return ZoneInfo(name)


def local_date(value: datetime, tz: tzinfo = timezone.utc) -> date:
    """Calendar date of an instant in the given timezone."""
    return as_utc(value).astimezone(tz).date()


def week_start_date(day: date, week_start: str = "monday") -> date:
    """First day of the week containing day."""
    if week_start not in WEEK_STARTS:
        raise ValueError(f"week_start must be one of {sorted(WEEK_STARTS)}")
    offset = (day.weekday() - WEEK_STARTS[week_start]) % 7
    return day - timedelta(days=offset)


def day_bounds(
    start_day: Optional[date], end_day: Optional[date], tz: tzinfo = timezone.utc
) -> tuple[Optional[datetime], Optional[datetime]]:
    """Instants covering whole calendar days in a timezone.

    Args:
        start_day: First day included, or None for no lower bound
        end_day: Last day included, or None for no upper bound
        tz: Timezone the days are expressed in

    Returns:
        (start, end) as aware UTC datetimes; end is the last microsecond of end_day
    """
    start = None
    end = None
    if start_day is not None:
        start = datetime.combine(start_day, time.min, tzinfo=tz).astimezone(timezone.utc)
    if end_day is not None:
        next_day = datetime.combine(end_day + timedelta(days=1), time.min, tzinfo=tz)
        end = (next_day - timedelta(microseconds=1)).astimezone(timezone.utc)
    if start is not None and end is not None and end < start:
        raise InvalidRangeError(f"End date {end_day} is before start date {start_day}")
    return start, end


def _calendar_bucket(
    entry: TimeEntry, group_by: GroupBy, tz: tzinfo, week_start: str
) -> tuple[str, str]:
    day = local_date(entry.start_time, tz)
    if group_by is GroupBy.DAY:
        key = day.isoformat()
        return key, key
    if group_by is GroupBy.WEEK:
        key = week_start_date(day, week_start).isoformat()
        return key, f"Week of {key}"
    key = f"{day.year:04d}-{day.month:02d}"
    return key, key


def aggregate(
    entries: Iterable[TimeEntry],
    tasks: Iterable[Task],
    projects: Iterable[Project],
    group_by: Union[GroupBy, str],
    *,
    tz: tzinfo = timezone.utc,
    week_start: str = "monday",
    sort: bool = False,
) -> list[AggregateRow]:
    """Group entries and sum their tracked time.

    Args:
        entries: Entries to aggregate (already filtered by the caller)
        tasks: Tasks used to resolve entry -> task -> project
        projects: Projects used to resolve display names
        group_by: Bucket kind
        tz: Timezone for day/week/month boundaries
        week_start: "monday" or "sunday"
        sort: Order buckets by label (project/task) or chronologically
            (day/week/month) instead of first-seen order

    Returns:
        One row per bucket
    """
    group_by = GroupBy(group_by)
    tasks_by_id = {t.id: t for t in tasks}
    projects_by_id = {p.id: p for p in projects}

    totals: dict[str, int] = {}
    labels: dict[str, str] = {}

    for entry in entries:
        seconds = entry_seconds(entry)

        if group_by is GroupBy.PROJECT:
            task = tasks_by_id.get(entry.task_id)
            if task is None:
                continue
            key = task.project_id
        elif group_by is GroupBy.TASK:
            key = entry.task_id
        else:
            key, label = _calendar_bucket(entry, group_by, tz, week_start)
            labels.setdefault(key, label)

        totals[key] = totals.get(key, 0) + seconds

    rows = []
    for key, seconds in totals.items():
        if group_by is GroupBy.PROJECT:
            project = projects_by_id.get(key)
            label = project.name if project else UNKNOWN_PROJECT
        elif group_by is GroupBy.TASK:
            task = tasks_by_id.get(key)
            label = task.title if task else UNKNOWN_TASK
        else:
            label = labels[key]
        rows.append(AggregateRow(key=key, label=label, seconds=seconds, hours=to_hours(seconds)))

    if sort:
        if group_by.is_calendar:
            rows.sort(key=lambda r: r.key)
        else:
            rows.sort(key=lambda r: (r.label.lower(), r.key))
    return rows


def filter_entries(
    entries: Iterable[TimeEntry],
    tasks: Iterable[Task],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    project_id: Optional[str] = None,
    user_id: Optional[str] = None,
) -> list[TimeEntry]:
    """Select entries for a report.

    Args:
        entries: Candidate entries
        tasks: Tasks used to resolve project membership
        start: Keep entries starting at or after this instant
        end: Keep entries starting at or before this instant
        project_id: Keep entries whose task belongs to this project
        user_id: Keep entries tracked by this user

    Returns:
        Matching entries in their original order
    """
    filtered = list(entries)

    if start is not None:
        filtered = [e for e in filtered if as_utc(e.start_time) >= as_utc(start)]
    if end is not None:
        filtered = [e for e in filtered if as_utc(e.start_time) <= as_utc(end)]
    if project_id is not None:
        project_task_ids = {t.id for t in tasks if t.project_id == project_id}
        filtered = [e for e in filtered if e.task_id in project_task_ids]
    if user_id is not None:
        filtered = [e for e in filtered if e.user_id == user_id]

    return filtered


def total_time_in_range(entries: Iterable[TimeEntry], start: datetime, end: datetime) -> int:
    """Seconds tracked by entries starting inside [start, end]."""
    lower, upper = as_utc(start), as_utc(end)
    return sum(entry_seconds(e) for e in entries if lower <= as_utc(e.start_time) <= upper)


def dashboard_totals(
    entries: Iterable[TimeEntry],
    now: datetime,
    tz: tzinfo = timezone.utc,
    week_start: str = "monday",
) -> DashboardTotals:
    """Tracked time for today, this week and this month.

    Args:
        entries: Entries of the user
        now: Reference instant
        tz: Timezone defining the calendar boundaries
        week_start: "monday" or "sunday"
    """
    today = local_date(now, tz)
    week_begin = week_start_date(today, week_start)
    month_begin = today.replace(day=1)

    totals = {"today": 0, "this_week": 0, "this_month": 0}
    for entry in entries:
        day = local_date(entry.start_time, tz)
        if day > today:
            continue
        seconds = entry_seconds(entry)
        if day == today:
            totals["today"] += seconds
        if day >= week_begin:
            totals["this_week"] += seconds
        if day >= month_begin:
            totals["this_month"] += seconds

    return DashboardTotals(**totals)
