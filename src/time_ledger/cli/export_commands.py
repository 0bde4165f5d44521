"""Export CLI command."""

from pathlib import Path
from typing import Any, Optional

import click

from time_ledger.analysis.aggregation import GroupBy, aggregate, day_bounds, filter_entries
from time_ledger.cli.common import (
    PERIODS,
    console,
    fail,
    get_config,
    get_timezone,
    resolve_days,
    run_in_workspace,
)
from time_ledger.core.config import EXPORT_FORMATS, GROUP_BY_CHOICES
from time_ledger.core.storage import PROJECTS, TASKS, TIME_ENTRIES
from time_ledger.core.workspace import Workspace
from time_ledger.export_import import (
    EXPORTERS,
    default_filename,
    detect_format,
    entry_rows,
    get_exporter,
    summary_rows,
)


@click.command()
@click.argument("output_file", type=click.Path(), required=False)
@click.option(
    "--format",
    "-f",
    "fmt",
    type=click.Choice(EXPORT_FORMATS, case_sensitive=False),
    help="Export format (auto-detected from file extension if not specified)",
)
@click.option(
    "--group-by",
    "-g",
    type=click.Choice(GROUP_BY_CHOICES),
    help="Export one row per group instead of one row per entry",
)
@click.option("--period", type=click.Choice(PERIODS), help="Time period")
@click.option("--from", "from_date", help="Start date (YYYY-MM-DD)")
@click.option("--to", "to_date", help="End date (YYYY-MM-DD)")
@click.option("-p", "--project", "project_id", help="Filter by project ID")
@click.option("--title", help="Report title (default: from config)")
@click.option(
    "--include-charts/--no-charts",
    default=None,
    help="Include a chart in Excel exports (default: from config)",
)
@click.pass_context
def export(
    ctx: click.Context,
    output_file: Optional[str],
    fmt: Optional[str],
    group_by: Optional[str],
    period: Optional[str],
    from_date: Optional[str],
    to_date: Optional[str],
    project_id: Optional[str],
    title: Optional[str],
    include_charts: Optional[bool],
) -> None:
    """Export time entries or a summary to a file.

    Supported formats: JSON, CSV, Excel and Markdown. Without OUTPUT_FILE the
    file is named after the report title.

    Examples:
      time-ledger export report.xlsx --group-by project --period month
      time-ledger export entries.csv --from 2026-01-01 --to 2026-01-31
      time-ledger export -f markdown --title "Weekly Report" --period week
    """
    config_mgr = get_config(ctx)
    tz = get_timezone(ctx)
    title = title or config_mgr.get("export.title", "Time Tracking Report")

    if output_file:
        output_path = Path(output_file)
        try:
            fmt = fmt or detect_format(output_path)
        except ValueError as e:
            fail(f"{e}. Please specify --format")
    else:
        fmt = fmt or config_mgr.get("export.default_format", "json")
        extension = EXPORTERS[fmt.lower()](Path(".")).get_file_extension()
        output_path = Path(default_filename(title, extension))

    exporter = get_exporter(fmt, output_path)
    start_day, end_day, _ = resolve_days(ctx, period, from_date, to_date)

    options: dict[str, Any] = {}
    if fmt.lower() == "excel":
        if include_charts is None:
            include_charts = config_mgr.get("export.include_charts", True)
        options["include_charts"] = include_charts

    async def _export(ws: Workspace) -> tuple[Path, int]:
        start_at, end_at = day_bounds(start_day, end_day, tz)
        view = await ws.snapshot(TIME_ENTRIES, TASKS, PROJECTS)
        entries = filter_entries(view.time_entries, view.tasks, start_at, end_at, project_id)
        if group_by:
            grouping = GroupBy(group_by)
            aggregated = aggregate(
                entries,
                view.tasks,
                view.projects,
                grouping,
                tz=tz,
                week_start=config_mgr.get("general.week_start", "monday"),
                sort=config_mgr.get("reports.sort", True),
            )
            rows = summary_rows(aggregated, grouping)
        else:
            rows = entry_rows(reversed(entries), view.tasks, view.projects, tz)
        path = await exporter.export_rows_async(rows, title, **options)
        return path, len(rows)

    path, count = run_in_workspace(ctx, _export)

    if count == 0:
        console.print("[yellow]Warning:[/yellow] No entries match the filters")
    console.print(f"[green]✓[/green] Exported {count} rows to {path}")
