"""Main CLI application."""

from pathlib import Path
from typing import Any, Optional

import click
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from time_ledger import __version__
from time_ledger.analysis.aggregation import (
    GroupBy,
    aggregate,
    dashboard_totals,
    day_bounds,
    filter_entries,
    local_date,
)
from time_ledger.analysis.alerts import (
    deadline_notifications,
    record_alerts,
    threshold_notifications,
)
from time_ledger.analysis.reports import ReportGenerator
from time_ledger.cli.api_commands import serve, token
from time_ledger.cli.common import (
    PERIODS,
    confirm_or_abort,
    console,
    echo_json,
    error_console,
    fail,
    format_datetime,
    get_config,
    get_timezone,
    parse_day,
    resolve_days,
    run_in_workspace,
)
from time_ledger.cli.config_commands import config
from time_ledger.cli.export_commands import export
from time_ledger.core.config import GROUP_BY_CHOICES, ConfigManager
from time_ledger.core.duration import elapsed, humanize
from time_ledger.core.logs import setup_logging
from time_ledger.core.models import TaskPriority, utc_now
from time_ledger.core.storage import PROJECTS, TASKS, TIME_ENTRIES
from time_ledger.core.workspace import Workspace


@click.group()
@click.version_option(version=__version__)
@click.option("--data-dir", help="Custom data directory", type=click.Path())
@click.option("--config", "config_path", help="Custom config file", type=click.Path())
@click.option("-v", "--verbose", is_flag=True, help="Log debug output")
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.pass_context
def cli(
    ctx: click.Context,
    data_dir: Optional[str],
    config_path: Optional[str],
    verbose: bool,
    no_color: bool,
) -> None:
    """Time Ledger - track time on project tasks and report on it.

    Organize work into projects and tasks, track one task at a time, and
    aggregate the results into reports and exports.
    """
    ctx.ensure_object(dict)

    path = Path(config_path).expanduser() if config_path else None
    try:
        config_mgr = ConfigManager(path)
    except ValueError as e:
        error_console.print(f"[yellow]Warning:[/yellow] {e}")
        config_mgr = ConfigManager(path)

    ctx.obj["config"] = config_mgr
    ctx.obj["data_dir"] = Path(data_dir).expanduser() if data_dir else config_mgr.data_dir

    log_file = config_mgr.get("logging.file")
    setup_logging(
        "DEBUG" if verbose else config_mgr.get("logging.level", "WARNING"),
        Path(log_file) if log_file else None,
    )

    if no_color:
        console.no_color = True


# Projects


@cli.group()
def project() -> None:
    """Manage projects."""
    pass


@project.command("add")
@click.argument("name")
@click.option("-d", "--description", help="Project description")
@click.option("--shared", is_flag=True, help="Make the project visible to the whole team")
@click.pass_context
def project_add(ctx: click.Context, name: str, description: Optional[str], shared: bool) -> None:
    """Create a project.

    Example:
        time-ledger project add "Website redesign" --shared
    """
    created = run_in_workspace(
        ctx, lambda ws: ws.catalog.create_project(name, description=description, is_shared=shared)
    )
    console.print(f"[green]✓[/green] Created project: {created.name}")
    console.print(f"  ID: {created.id}")


@project.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def project_list(ctx: click.Context, as_json: bool) -> None:
    """List own and shared projects."""
    projects = run_in_workspace(ctx, lambda ws: ws.catalog.list_projects())
    user_id = get_config(ctx).get("user.id")

    if as_json:
        echo_json([p.to_dict() for p in projects])
        return

    if not projects:
        console.print("[yellow]No projects found[/yellow]")
        console.print('\nCreate one with: [cyan]time-ledger project add "Name"[/cyan]')
        return

    table = Table(title="Projects")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Owner", style="blue")
    table.add_column("Shared", style="green")
    table.add_column("Description")

    for p in projects:
        table.add_row(
            p.id,
            p.name,
            "you" if p.user_id == user_id else p.user_id,
            "yes" if p.is_shared else "no",
            p.description or "-",
        )

    console.print(table)


@project.command("delete")
@click.argument("project_id")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
def project_delete(ctx: click.Context, project_id: str, yes: bool) -> None:
    """Delete a project with all its tasks and time entries."""
    if not confirm_or_abort("Delete this project with all its tasks and time entries?", yes):
        return
    run_in_workspace(ctx, lambda ws: ws.catalog.delete_project(project_id))
    console.print("[green]✓[/green] Project deleted")


# Tasks


@cli.group()
def task() -> None:
    """Manage tasks."""
    pass


@task.command("add")
@click.argument("project_id")
@click.argument("title")
@click.option("-d", "--description", default="", help="Task description")
@click.option(
    "--priority",
    type=click.Choice([p.value for p in TaskPriority]),
    default=TaskPriority.MEDIUM.value,
    help="Task priority",
)
@click.option("--deadline", help="Due date (YYYY-MM-DD)")
@click.option("--estimate", type=click.IntRange(min=1), help="Estimated time in minutes")
@click.pass_context
def task_add(
    ctx: click.Context,
    project_id: str,
    title: str,
    description: str,
    priority: str,
    deadline: Optional[str],
    estimate: Optional[int],
) -> None:
    """Create a task in a project.

    Example:
        time-ledger task add <project-id> "Draft homepage" --estimate 90 --deadline 2026-02-01
    """
    due = parse_day(deadline, get_timezone(ctx))
    created = run_in_workspace(
        ctx,
        lambda ws: ws.catalog.create_task(
            project_id,
            title,
            description=description,
            priority=TaskPriority(priority),
            deadline=due,
            estimated_time=estimate,
        ),
    )
    console.print(f"[green]✓[/green] Created task: {created.title}")
    console.print(f"  ID: {created.id}")


@task.command("list")
@click.option("-p", "--project", "project_id", help="Filter by project ID")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def task_list(ctx: click.Context, project_id: Optional[str], as_json: bool) -> None:
    """List your tasks."""

    async def _load(ws: Workspace) -> tuple[list[Any], dict[str, str]]:
        tasks = await ws.catalog.list_tasks(project_id)
        projects = await ws.catalog.list_projects()
        return tasks, {p.id: p.name for p in projects}

    tasks, project_names = run_in_workspace(ctx, _load)

    if as_json:
        echo_json([t.to_dict() for t in tasks])
        return

    if not tasks:
        console.print("[yellow]No tasks found[/yellow]")
        return

    table = Table(title="Tasks")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="bold")
    table.add_column("Project", style="blue")
    table.add_column("Status", style="cyan")
    table.add_column("Priority")
    table.add_column("Deadline", style="magenta")
    table.add_column("Estimate", justify="right")

    for t in tasks:
        table.add_row(
            t.id,
            t.title,
            project_names.get(t.project_id, "Unknown"),
            t.status.value.replace("_", " "),
            t.priority.value,
            t.deadline.isoformat() if t.deadline else "-",
            f"{t.estimated_time}m" if t.estimated_time else "-",
        )

    console.print(table)


@task.command("delete")
@click.argument("task_id")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
def task_delete(ctx: click.Context, task_id: str, yes: bool) -> None:
    """Delete a task with all its time entries."""
    if not confirm_or_abort("Delete this task with all its time entries?", yes):
        return
    run_in_workspace(ctx, lambda ws: ws.catalog.delete_task(task_id))
    console.print("[green]✓[/green] Task deleted")


# Tracking


@cli.command()
@click.argument("task_id")
@click.option("-n", "--notes", help="Notes for the new entry")
@click.pass_context
def start(ctx: click.Context, task_id: str, notes: Optional[str]) -> None:
    """Start tracking a task. Whatever was running is stopped first.

    Example:
        time-ledger start <task-id> -n "Kickoff"
    """

    async def _start(ws: Workspace) -> tuple[Any, Any]:
        entry = await ws.tracker.start(task_id, notes)
        return entry, await ws.catalog.get_task(task_id)

    entry, started_task = run_in_workspace(ctx, _start)
    console.print(f"[green]✓[/green] Started tracking: {started_task.title}")
    console.print(f"  Started: {format_datetime(entry.start_time, get_timezone(ctx))}")
    console.print(f"  Entry ID: {entry.id}")


@cli.command()
@click.argument("entry_id", required=False)
@click.pass_context
def stop(ctx: click.Context, entry_id: Optional[str]) -> None:
    """Stop an entry, or the current one when no ENTRY_ID is given.

    Example:
        time-ledger stop
    """

    async def _stop(ws: Workspace) -> Any:
        if entry_id:
            return await ws.tracker.stop(entry_id)
        return await ws.tracker.stop_current()

    entry = run_in_workspace(ctx, _stop)
    console.print("[green]✓[/green] Stopped tracking")
    console.print(f"  Duration: {humanize(entry.duration or 0)}")


@cli.command()
@click.argument("task_id")
@click.pass_context
def complete(ctx: click.Context, task_id: str) -> None:
    """Stop tracking a task and mark it completed."""
    completed = run_in_workspace(ctx, lambda ws: ws.tracker.complete(task_id))
    console.print(f"[green]✓[/green] Completed task: {completed.title}")


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show current tracking status and today's totals.

    Example:
        time-ledger status
    """
    tz = get_timezone(ctx)
    week_start = get_config(ctx).get("general.week_start", "monday")

    async def _status(ws: Workspace) -> tuple[Any, Any, Any]:
        view = await ws.snapshot(TIME_ENTRIES, TASKS, PROJECTS)
        totals = dashboard_totals(view.time_entries, utc_now(), tz, week_start)
        return view, ws.tracker.current_entry, totals

    view, active, totals = run_in_workspace(ctx, _status)

    if active is None:
        console.print("[yellow]No task currently being tracked[/yellow]")
        console.print("\nStart tracking with: [cyan]time-ledger start <task-id>[/cyan]")
    else:
        tasks_by_id = {t.id: t for t in view.tasks}
        projects_by_id = {p.id: p for p in view.projects}
        active_task = tasks_by_id.get(active.task_id)
        active_project = projects_by_id.get(active_task.project_id) if active_task else None

        content = f"""[bold]{active_task.title if active_task else "Unknown"}[/bold]

[dim]Project:[/dim] {active_project.name if active_project else "Unknown"}
[dim]Started:[/dim] {format_datetime(active.start_time, tz)}
[dim]Elapsed:[/dim] {humanize(elapsed(active.start_time, utc_now()))}
[dim]Entry ID:[/dim] {active.id}"""
        if active.notes:
            content += f"\n[dim]Notes:[/dim] {active.notes}"

        console.print(Panel(content, title="Currently Tracking", border_style="green"))

    for anomaly in view.anomalies:
        error_console.print(f"[yellow]Warning:[/yellow] {anomaly}")

    console.print()
    ReportGenerator(console).dashboard(totals)


@cli.command()
@click.option("-n", "--count", default=20, help="Number of entries to show")
@click.option("--period", type=click.Choice(PERIODS), help="Time period")
@click.option("--from", "from_date", help="Start date (YYYY-MM-DD)")
@click.option("--to", "to_date", help="End date (YYYY-MM-DD)")
@click.option("-p", "--project", "project_id", help="Filter by project ID")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def log(
    ctx: click.Context,
    count: int,
    period: Optional[str],
    from_date: Optional[str],
    to_date: Optional[str],
    project_id: Optional[str],
    as_json: bool,
) -> None:
    """List recent time entries.

    Example:
        time-ledger log --period week
    """
    tz = get_timezone(ctx)
    start_day, end_day, _ = resolve_days(ctx, period, from_date, to_date)

    async def _log(ws: Workspace) -> tuple[list[Any], Any]:
        start_at, end_at = day_bounds(start_day, end_day, tz)
        view = await ws.snapshot(TIME_ENTRIES, TASKS, PROJECTS)
        entries = filter_entries(view.time_entries, view.tasks, start_at, end_at, project_id)
        return entries[:count], view

    entries, view = run_in_workspace(ctx, _log)

    if as_json:
        echo_json([e.to_dict() for e in entries])
        return

    if not entries:
        console.print("[yellow]No entries found[/yellow]")
        return

    tasks_by_id = {t.id: t for t in view.tasks}

    table = Table(title=f"Time Entries (showing {len(entries)})")
    table.add_column("ID", style="dim")
    table.add_column("Start", style="cyan")
    table.add_column("Duration", style="magenta")
    table.add_column("Task", style="bold")
    table.add_column("Notes")

    for entry in entries:
        status_icon = "▶" if entry.is_active else "■"
        entry_task = tasks_by_id.get(entry.task_id)
        table.add_row(
            entry.id,
            format_datetime(entry.start_time, tz),
            "running" if entry.is_active else humanize(entry.duration or 0),
            f"{status_icon} {entry_task.title if entry_task else 'Unknown'}",
            entry.notes or "-",
        )

    console.print(table)


# Reports


@cli.command()
@click.option(
    "-g",
    "--group-by",
    type=click.Choice(GROUP_BY_CHOICES),
    help="Bucket kind (default from config)",
)
@click.option("--period", type=click.Choice(PERIODS), default="week", help="Time period")
@click.option("--from", "from_date", help="Start date (YYYY-MM-DD)")
@click.option("--to", "to_date", help="End date (YYYY-MM-DD)")
@click.option("-p", "--project", "project_id", help="Filter by project ID")
@click.option("--entries", "show_entries", is_flag=True, help="Also list individual entries")
@click.pass_context
def report(
    ctx: click.Context,
    group_by: Optional[str],
    period: str,
    from_date: Optional[str],
    to_date: Optional[str],
    project_id: Optional[str],
    show_entries: bool,
) -> None:
    """Summarize tracked time.

    Examples:
        time-ledger report --group-by project --period month
        time-ledger report --from 2026-01-01 --to 2026-01-31 -g week
    """
    config_mgr = get_config(ctx)
    tz = get_timezone(ctx)
    grouping = GroupBy(group_by or config_mgr.get("reports.default_group_by", "day"))
    start_day, end_day, label = resolve_days(ctx, period, from_date, to_date)

    async def _report(ws: Workspace) -> tuple[list[Any], list[Any], Any]:
        start_at, end_at = day_bounds(start_day, end_day, tz)
        view = await ws.snapshot(TIME_ENTRIES, TASKS, PROJECTS)
        entries = filter_entries(view.time_entries, view.tasks, start_at, end_at, project_id)
        rows = aggregate(
            entries,
            view.tasks,
            view.projects,
            grouping,
            tz=tz,
            week_start=config_mgr.get("general.week_start", "monday"),
            sort=config_mgr.get("reports.sort", True),
        )
        return rows, entries, view

    rows, entries, view = run_in_workspace(ctx, _report)

    generator = ReportGenerator(console)
    generator.summary_report(rows, grouping, title=f"Time Ledger - {label}")
    if show_entries:
        console.print()
        generator.entries_report(entries, view.tasks, view.projects, tz)


@cli.command()
@click.option("-p", "--project", "project_id", help="Filter by project ID")
@click.pass_context
def progress(ctx: click.Context, project_id: Optional[str]) -> None:
    """Show tracked time against task estimates."""

    async def _progress(ws: Workspace) -> tuple[list[Any], list[Any]]:
        tasks = await ws.catalog.list_tasks(project_id)
        entries = []
        for t in tasks:
            entries.extend(await ws.store.select(TIME_ENTRIES, task_id=t.id))
        return tasks, entries

    tasks, entries = run_in_workspace(ctx, _progress)
    ReportGenerator(console).progress_report(tasks, entries)


@cli.command()
@click.option("--save", is_flag=True, help="Store new alerts as notifications")
@click.pass_context
def alerts(ctx: click.Context, save: bool) -> None:
    """Check deadlines and estimates.

    Example:
        time-ledger alerts --save
    """
    config_mgr = get_config(ctx)
    tz = get_timezone(ctx)

    async def _alerts(ws: Workspace) -> tuple[list[Any], int]:
        view = await ws.snapshot(TASKS, TIME_ENTRIES)
        today = local_date(utc_now(), tz)
        found = deadline_notifications(
            view.tasks, today, config_mgr.get("alerts.deadline_window_days", 3)
        ) + threshold_notifications(
            view.tasks, view.time_entries, config_mgr.get("alerts.threshold_percent", 100)
        )
        stored = await record_alerts(ws.catalog, found) if save else []
        return found, len(stored)

    found, stored_count = run_in_workspace(ctx, _alerts)

    if not found:
        console.print("[green]✓[/green] Nothing needs attention")
        return

    for notification in found:
        tag = escape(f"[{notification.category.value}]")
        console.print(f"[yellow]•[/yellow] {tag} {notification.message}")
    if save:
        console.print(f"\nStored {stored_count} new notifications")


@cli.group()
def notifications() -> None:
    """Read notifications."""
    pass


@notifications.command("list")
@click.option("--unread", is_flag=True, help="Only unread notifications")
@click.pass_context
def notifications_list(ctx: click.Context, unread: bool) -> None:
    """List notifications, newest first."""
    tz = get_timezone(ctx)
    items = run_in_workspace(ctx, lambda ws: ws.catalog.list_notifications(unread_only=unread))

    if not items:
        console.print("[yellow]No notifications[/yellow]")
        return

    table = Table(title="Notifications")
    table.add_column("ID", style="dim")
    table.add_column("When", style="cyan")
    table.add_column("Category", style="magenta")
    table.add_column("Message")

    for n in items:
        style = "" if n.read else "bold"
        table.add_row(
            n.id,
            format_datetime(n.created_at, tz),
            n.category.value,
            f"[{style}]{n.message}[/{style}]" if style else n.message,
        )

    console.print(table)


@notifications.command("read")
@click.argument("notification_id", required=False)
@click.option("--all", "read_all", is_flag=True, help="Mark every notification read")
@click.pass_context
def notifications_read(ctx: click.Context, notification_id: Optional[str], read_all: bool) -> None:
    """Mark a notification, or all of them, read."""
    if read_all:
        count = run_in_workspace(ctx, lambda ws: ws.catalog.mark_all_as_read())
        console.print(f"[green]✓[/green] Marked {count} notifications read")
        return
    if not notification_id:
        fail("Give a NOTIFICATION_ID or --all")
    run_in_workspace(ctx, lambda ws: ws.catalog.mark_as_read(notification_id))
    console.print("[green]✓[/green] Notification marked read")


cli.add_command(export)
cli.add_command(config)
cli.add_command(serve)
cli.add_command(token)


if __name__ == "__main__":
    cli(obj={})
