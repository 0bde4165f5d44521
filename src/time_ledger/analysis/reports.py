"""Terminal reports for aggregated time tracking data."""

from collections.abc import Iterable, Sequence
from datetime import timezone, tzinfo
from typing import Optional

from rich.console import Console  # type: ignore[import-not-found]
from rich.table import Table  # type: ignore[import-not-found]
from rich.text import Text  # type: ignore[import-not-found]

from time_ledger.analysis.aggregation import AggregateRow, DashboardTotals, GroupBy
from time_ledger.core.duration import entry_seconds, humanize, progress_percent
from time_ledger.core.models import Project, Task, TimeEntry, as_utc

GROUP_TITLES = {
    GroupBy.DAY: "Day",
    GroupBy.WEEK: "Week",
    GroupBy.MONTH: "Month",
    GroupBy.PROJECT: "Project",
    GroupBy.TASK: "Task",
}


class ReportGenerator:
    """Render reports to a rich console."""

    def __init__(self, console: Optional[Console] = None):
        """Initialize report generator.

        Args:
            console: Rich console for output. Creates default if None.
        """
        self.console = console or Console()

    def summary_report(
        self,
        rows: Sequence[AggregateRow],
        group_by: GroupBy,
        title: str = "Summary",
    ) -> None:
        """Display an aggregation as a table with share bars.

        Args:
            rows: Output of aggregate()
            group_by: Kind of bucket the rows hold
            title: Report heading
        """
        if not rows:
            self.console.print("[yellow]No entries found for this period[/yellow]")
            return

        total = sum(r.seconds for r in rows)
        self.console.print(f"\n[bold cyan]{title}[/bold cyan]\n")

        table = Table(title=f"Time by {GROUP_TITLES[group_by]}")
        table.add_column(GROUP_TITLES[group_by], style="cyan")
        table.add_column("Duration", style="magenta", justify="right")
        table.add_column("Hours", style="bold", justify="right")
        table.add_column("% Total", style="green", justify="right")
        table.add_column("Bar", style="blue")

        for row in rows:
            pct = (row.seconds / total) * 100 if total > 0 else 0
            table.add_row(
                row.label,
                humanize(row.seconds),
                str(row.hours),
                f"{pct:.1f}%",
                self._create_bar(pct),
            )

        self.console.print(table)
        self.console.print()

        overview = Table(show_header=False, box=None, padding=(0, 2))
        overview.add_column(style="dim")
        overview.add_column(style="bold")
        overview.add_row("Total Time:", humanize(total))
        overview.add_row("Groups:", str(len(rows)))
        self.console.print(overview)

    def entries_report(
        self,
        entries: Iterable[TimeEntry],
        tasks: Iterable[Task],
        projects: Iterable[Project],
        tz: tzinfo = timezone.utc,
    ) -> None:
        """Display individual entries, oldest first."""
        entries = sorted(entries, key=lambda e: as_utc(e.start_time))
        if not entries:
            self.console.print("[yellow]No entries found for this period[/yellow]")
            return

        tasks_by_id = {t.id: t for t in tasks}
        projects_by_id = {p.id: p for p in projects}

        table = Table(title="Time Entries")
        table.add_column("Time", style="cyan", width=20)
        table.add_column("Duration", style="magenta", width=10)
        table.add_column("Task", style="bold")
        table.add_column("Project", style="blue")
        table.add_column("Notes", style="dim")

        for entry in entries:
            start = as_utc(entry.start_time).astimezone(tz)
            end = "now"
            if entry.end_time:
                end = as_utc(entry.end_time).astimezone(tz).strftime("%H:%M")
            task = tasks_by_id.get(entry.task_id)
            project = projects_by_id.get(task.project_id) if task else None

            task_display = task.title if task else "Unknown"
            if entry.is_active:
                task_display = f"▶ {task_display}"

            table.add_row(
                f"{start:%Y-%m-%d %H:%M} → {end}",
                humanize(entry_seconds(entry)) if not entry.is_active else "running",
                task_display,
                project.name if project else "Unknown",
                entry.notes or "",
            )

        self.console.print(table)

    def progress_report(self, tasks: Iterable[Task], entries: Iterable[TimeEntry]) -> None:
        """Display tracked time against each task's estimate.

        Overruns beyond 100% are shown in red with a full bar.
        """
        tasks = list(tasks)
        if not tasks:
            self.console.print("[yellow]No tasks found[/yellow]")
            return

        by_task: dict[str, list[TimeEntry]] = {}
        for entry in entries:
            by_task.setdefault(entry.task_id, []).append(entry)

        table = Table(title="Task Progress")
        table.add_column("Task", style="bold")
        table.add_column("Status", style="dim")
        table.add_column("Tracked", style="magenta", justify="right")
        table.add_column("Estimate", justify="right")
        table.add_column("Progress", justify="right")
        table.add_column("Bar")

        for task in tasks:
            task_entries = by_task.get(task.id, [])
            tracked = sum(entry_seconds(e) for e in task_entries)
            if task.estimated_time:
                percent = progress_percent(task, task_entries)
                style = "red" if percent > 100 else "green"
                progress = Text(f"{percent}%", style=style)
                bar = self._create_bar(min(percent, 100), style=style)
                estimate = f"{task.estimated_time}m"
            else:
                progress = Text("-", style="dim")
                bar = Text()
                estimate = "-"

            table.add_row(
                task.title,
                task.status.value.replace("_", " "),
                humanize(tracked),
                estimate,
                progress,
                bar,
            )

        self.console.print(table)

    def dashboard(self, totals: DashboardTotals, active: Optional[TimeEntry] = None) -> None:
        """Display today / this week / this month totals."""
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column(style="dim")
        table.add_column(style="bold")
        table.add_row("Today:", humanize(totals.today))
        table.add_row("This week:", humanize(totals.this_week))
        table.add_row("This month:", humanize(totals.this_month))
        if active is not None:
            table.add_row("Tracking:", f"since {as_utc(active.start_time):%Y-%m-%d %H:%M} UTC")
        self.console.print(table)

    def _create_bar(self, percentage: float, width: int = 25, style: str = "blue") -> Text:
        """Create a visual bar for percentage display.

        Args:
            percentage: Percentage value (0-100)
            width: Width of the bar in characters
            style: Style of the filled part

        Returns:
            Rich Text object with colored bar
        """
        filled = int((percentage / 100) * width)
        empty = width - filled

        bar = Text()
        bar.append("█" * filled, style=style)
        bar.append("░" * empty, style="dim")

        return bar
