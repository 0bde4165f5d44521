"""Helpers shared by the CLI command modules."""

import asyncio
import json
import sys
from collections.abc import Awaitable
from datetime import date, datetime, timedelta, tzinfo
from pathlib import Path
from typing import Any, Callable, NoReturn, Optional, TypeVar

import click
from rich.console import Console

from time_ledger.analysis.aggregation import local_date, resolve_timezone, week_start_date
from time_ledger.core.config import ConfigManager
from time_ledger.core.errors import TimeLedgerError
from time_ledger.core.models import as_utc, utc_now
from time_ledger.core.storage import CSVStore
from time_ledger.core.workspace import Workspace, open_workspace

console = Console()
error_console = Console(stderr=True)

T = TypeVar("T")

PERIODS = ["today", "yesterday", "week", "month", "all"]


def get_config(ctx: click.Context) -> ConfigManager:
    config: ConfigManager = ctx.obj["config"]
    return config


def get_timezone(ctx: click.Context) -> tzinfo:
    return resolve_timezone(get_config(ctx).get("general.timezone", "UTC"))


def fail(message: str) -> NoReturn:
    """Print an error in red and exit with status 1."""
    error_console.print(f"[red]Error:[/red] {message}")
    sys.exit(1)


def run_in_workspace(ctx: click.Context, action: Callable[[Workspace], Awaitable[T]]) -> T:
    """Run a coroutine against a workspace of the configured user.

    The workspace is opened on a CSV store in the data directory and closed
    when the action finishes. Domain errors end the command with status 1.
    """
    config = get_config(ctx)
    data_dir: Path = ctx.obj["data_dir"]

    async def _run() -> T:
        workspace = await open_workspace(config.local_user(), CSVStore(data_dir))
        try:
            return await action(workspace)
        finally:
            await workspace.close()

    try:
        return asyncio.run(_run())
    except (TimeLedgerError, ValueError) as e:
        fail(str(e))


def parse_day(value: Optional[str], tz: tzinfo) -> Optional[date]:
    """Parse 'today', 'yesterday' or YYYY-MM-DD."""
    if value is None:
        return None
    today = local_date(utc_now(), tz)
    if value.lower() == "today":
        return today
    if value.lower() == "yesterday":
        return today - timedelta(days=1)
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise click.BadParameter(f"Invalid date '{value}'. Use YYYY-MM-DD, 'today', or 'yesterday'")


def period_days(
    period: str, tz: tzinfo, week_start: str = "monday"
) -> tuple[Optional[date], Optional[date]]:
    """First and last day of a named period ending today."""
    today = local_date(utc_now(), tz)
    if period == "today":
        return today, today
    if period == "yesterday":
        yesterday = today - timedelta(days=1)
        return yesterday, yesterday
    if period == "week":
        return week_start_date(today, week_start), today
    if period == "month":
        return today.replace(day=1), today
    return None, None


def resolve_days(
    ctx: click.Context,
    period: Optional[str],
    from_date: Optional[str],
    to_date: Optional[str],
) -> tuple[Optional[date], Optional[date], str]:
    """Day range from --from/--to, falling back to --period.

    Returns:
        (first day, last day, label for report headings)
    """
    tz = get_timezone(ctx)
    if from_date or to_date:
        start_day, end_day = parse_day(from_date, tz), parse_day(to_date, tz)
        label = f"{start_day or 'Beginning'} to {end_day or 'Present'}"
        return start_day, end_day, label

    period = period or "all"
    week_start = get_config(ctx).get("general.week_start", "monday")
    start_day, end_day = period_days(period, tz, week_start)
    labels = {
        "today": "Today",
        "yesterday": "Yesterday",
        "week": "This Week",
        "month": "This Month",
        "all": "All Time",
    }
    return start_day, end_day, labels[period]


def format_datetime(value: datetime, tz: tzinfo) -> str:
    """Format an instant for display in the configured timezone."""
    return as_utc(value).astimezone(tz).strftime("%Y-%m-%d %H:%M:%S")


def confirm_or_abort(message: str, yes: bool) -> bool:
    """Ask for confirmation unless --yes was given."""
    if yes:
        return True
    if click.confirm(message):
        return True
    console.print("Cancelled")
    return False


def echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))
