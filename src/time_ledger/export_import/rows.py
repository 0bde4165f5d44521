"""Flat row builders for exported reports."""

from collections.abc import Iterable, Sequence
from datetime import timezone, tzinfo

from time_ledger.analysis.aggregation import AggregateRow, GroupBy
from time_ledger.core.duration import entry_seconds, format_compact
from time_ledger.core.models import Project, Task, TimeEntry, as_utc
from time_ledger.export_import.base import Row

ENTRY_COLUMNS = ["Date", "Project", "Task", "StartTime", "EndTime", "Duration", "Notes"]

UNKNOWN = "Unknown"
MISSING = "-"


def entry_rows(
    entries: Iterable[TimeEntry],
    tasks: Iterable[Task],
    projects: Iterable[Project],
    tz: tzinfo = timezone.utc,
) -> list[Row]:
    """One row per time entry.

    Args:
        entries: Entries in the order they should appear
        tasks: Tasks used to resolve titles
        projects: Projects used to resolve names
        tz: Timezone for the Date, StartTime and EndTime columns

    Returns:
        Rows keyed by ENTRY_COLUMNS
    """
    tasks_by_id = {t.id: t for t in tasks}
    projects_by_id = {p.id: p for p in projects}

    rows = []
    for entry in entries:
        task = tasks_by_id.get(entry.task_id)
        project = projects_by_id.get(task.project_id) if task else None
        start = as_utc(entry.start_time).astimezone(tz)
        end = as_utc(entry.end_time).astimezone(tz) if entry.end_time else None

        rows.append(
            {
                "Date": start.strftime("%Y-%m-%d"),
                "Project": project.name if project else UNKNOWN,
                "Task": task.title if task else UNKNOWN,
                "StartTime": start.strftime("%H:%M:%S"),
                "EndTime": end.strftime("%H:%M:%S") if end else MISSING,
                "Duration": MISSING if entry.is_active else format_compact(entry_seconds(entry)),
                "Notes": entry.notes or MISSING,
            }
        )
    return rows


def summary_rows(rows: Sequence[AggregateRow], group_by: GroupBy) -> list[Row]:
    """One row per aggregation bucket: group label and whole hours."""
    column = GroupBy(group_by).value.capitalize()
    return [{column: row.label, "Hours": row.hours} for row in rows]
