"""Report endpoints: aggregations, dashboard totals and export rows."""

from datetime import date, tzinfo
from typing import Optional

from fastapi import APIRouter, Depends, Query  # type: ignore[import-untyped]

from time_ledger.analysis.aggregation import (
    GroupBy,
    aggregate,
    dashboard_totals,
    day_bounds,
    filter_entries,
)
from time_ledger.api.dependencies import get_config, get_timezone, get_workspace
from time_ledger.api.models import AggregateRowResponse, DashboardResponse, RowsResponse
from time_ledger.core.config import ConfigManager
from time_ledger.core.models import utc_now
from time_ledger.core.storage import NOTIFICATIONS, PROJECTS, TASKS, TIME_ENTRIES
from time_ledger.core.workspace import Workspace
from time_ledger.export_import import entry_rows, summary_rows

router = APIRouter()


@router.get("/aggregate", response_model=list[AggregateRowResponse])
async def get_aggregate(
    group_by: GroupBy = Query(GroupBy.DAY, description="Bucket kind"),
    from_date: Optional[date] = Query(None, description="First day included"),
    to_date: Optional[date] = Query(None, description="Last day included"),
    project_id: Optional[str] = Query(None, description="Filter by project"),
    sort: Optional[bool] = Query(None, description="Sort buckets (default from config)"),
    workspace: Workspace = Depends(get_workspace),
    config: ConfigManager = Depends(get_config),
    tz: tzinfo = Depends(get_timezone),
) -> list[AggregateRowResponse]:
    """Sum the caller's tracked time per bucket.

    Example:
        >>> GET /api/v1/reports/aggregate?group_by=project&from_date=2026-01-01
        [{"key": "uuid", "label": "Website", "seconds": 7200, "hours": 2}]
    """
    start, end = day_bounds(from_date, to_date, tz)
    view = await workspace.snapshot(TIME_ENTRIES, TASKS, PROJECTS)
    entries = filter_entries(view.time_entries, view.tasks, start, end, project_id)
    rows = aggregate(
        entries,
        view.tasks,
        view.projects,
        group_by,
        tz=tz,
        week_start=config.get("general.week_start", "monday"),
        sort=config.get("reports.sort", True) if sort is None else sort,
    )
    return [AggregateRowResponse.from_row(r) for r in rows]


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    workspace: Workspace = Depends(get_workspace),
    config: ConfigManager = Depends(get_config),
    tz: tzinfo = Depends(get_timezone),
) -> DashboardResponse:
    """Tracked time for today, this week and this month."""
    view = await workspace.snapshot(TIME_ENTRIES, NOTIFICATIONS)
    totals = dashboard_totals(
        view.time_entries, utc_now(), tz, config.get("general.week_start", "monday")
    )
    return DashboardResponse.from_totals(totals, view.active_entry, view.unread_count)


@router.get("/rows", response_model=RowsResponse)
async def get_rows(
    group_by: Optional[GroupBy] = Query(
        None, description="Summary rows per bucket; entry rows when omitted"
    ),
    from_date: Optional[date] = Query(None, description="First day included"),
    to_date: Optional[date] = Query(None, description="Last day included"),
    project_id: Optional[str] = Query(None, description="Filter by project"),
    workspace: Workspace = Depends(get_workspace),
    config: ConfigManager = Depends(get_config),
    tz: tzinfo = Depends(get_timezone),
) -> RowsResponse:
    """Flat rows as they would be exported."""
    start, end = day_bounds(from_date, to_date, tz)
    view = await workspace.snapshot(TIME_ENTRIES, TASKS, PROJECTS)
    entries = filter_entries(view.time_entries, view.tasks, start, end, project_id)
    title = config.get("export.title", "Time Tracking Report")

    if group_by is None:
        return RowsResponse(title=title, rows=entry_rows(entries, view.tasks, view.projects, tz))

    rows = aggregate(
        entries,
        view.tasks,
        view.projects,
        group_by,
        tz=tz,
        week_start=config.get("general.week_start", "monday"),
        sort=config.get("reports.sort", True),
    )
    return RowsResponse(title=title, rows=summary_rows(rows, group_by))
