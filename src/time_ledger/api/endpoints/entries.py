"""Entry endpoints for time tracking operations.

Start/stop/current plus listing, editing and deletion of the caller's
time entries.
"""

from datetime import date, datetime, tzinfo
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status  # type: ignore[import-untyped]

from time_ledger.analysis.aggregation import day_bounds, filter_entries
from time_ledger.api.dependencies import get_timezone, get_workspace
from time_ledger.api.models import (
    EntryResponse,
    StartEntryRequest,
    StopEntryRequest,
    TotalResponse,
    UpdateEntryRequest,
)
from time_ledger.core.duration import humanize
from time_ledger.core.errors import NotFoundError
from time_ledger.core.models import as_utc
from time_ledger.core.storage import TASKS, TIME_ENTRIES
from time_ledger.core.workspace import Workspace

router = APIRouter()


@router.get("/", response_model=list[EntryResponse])
async def list_entries(
    skip: int = Query(0, ge=0, description="Number of entries to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of entries to return"),
    project_id: Optional[str] = Query(None, description="Filter by project"),
    from_date: Optional[date] = Query(None, description="First day included (YYYY-MM-DD)"),
    to_date: Optional[date] = Query(None, description="Last day included (YYYY-MM-DD)"),
    workspace: Workspace = Depends(get_workspace),
    tz: tzinfo = Depends(get_timezone),
) -> list[EntryResponse]:
    """List the caller's entries, newest first.

    Example:
        >>> GET /api/v1/entries/?from_date=2026-01-01&limit=10
    """
    start, end = day_bounds(from_date, to_date, tz)
    view = await workspace.snapshot(TIME_ENTRIES, TASKS)
    entries = filter_entries(view.time_entries, view.tasks, start, end, project_id)
    return [EntryResponse.from_entry(e) for e in entries[skip : skip + limit]]


@router.get("/current", response_model=Optional[EntryResponse])
async def get_current_entry(
    workspace: Workspace = Depends(get_workspace),
) -> Optional[EntryResponse]:
    """Entry the caller is tracking, or null."""
    active = await workspace.tracker.resync()
    return EntryResponse.from_entry(active) if active else None


@router.get("/total", response_model=TotalResponse)
async def get_total(
    start: datetime = Query(..., description="Range start (ISO 8601)"),
    end: datetime = Query(..., description="Range end (ISO 8601)"),
    workspace: Workspace = Depends(get_workspace),
) -> TotalResponse:
    """Seconds tracked by entries starting inside [start, end]."""
    if as_utc(end) < as_utc(start):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="end must not be before start",
        )
    await workspace.snapshot(TIME_ENTRIES)
    seconds = workspace.tracker.total_time_in_range(start, end)
    return TotalResponse(start=start, end=end, seconds=seconds, formatted=humanize(seconds))


@router.post("/start", response_model=EntryResponse, status_code=status.HTTP_201_CREATED)
async def start_tracking(
    request: StartEntryRequest,
    workspace: Workspace = Depends(get_workspace),
) -> EntryResponse:
    """Start tracking a task, stopping whatever was running.

    Example:
        >>> POST /api/v1/entries/start
        {"task_id": "uuid", "notes": "Kickoff"}
    """
    entry = await workspace.tracker.start(request.task_id, request.notes)
    return EntryResponse.from_entry(entry)


@router.post("/stop", response_model=EntryResponse)
async def stop_tracking(
    request: StopEntryRequest,
    workspace: Workspace = Depends(get_workspace),
) -> EntryResponse:
    """Stop an active entry, or the current one when no entry_id is given."""
    if request.entry_id:
        entry = await workspace.tracker.stop(request.entry_id)
    else:
        entry = await workspace.tracker.stop_current()
    return EntryResponse.from_entry(entry)


@router.get("/{entry_id}", response_model=EntryResponse)
async def get_entry(
    entry_id: str,
    workspace: Workspace = Depends(get_workspace),
) -> EntryResponse:
    """Get one of the caller's entries."""
    entry = await workspace.store.get(TIME_ENTRIES, entry_id)
    if entry is None or entry.user_id != workspace.user.id:
        raise NotFoundError(f"Entry not found: {entry_id}")
    return EntryResponse.from_entry(entry)


@router.patch("/{entry_id}", response_model=EntryResponse)
async def update_entry(
    entry_id: str,
    request: UpdateEntryRequest,
    workspace: Workspace = Depends(get_workspace),
) -> EntryResponse:
    """Edit an entry. Only the fields present in the body are changed.

    Example:
        >>> PATCH /api/v1/entries/{id}
        {"start_time": "2026-01-05T09:00:00Z", "notes": "Moved earlier"}
    """
    changes = request.model_dump(exclude_unset=True)
    entry = await workspace.tracker.edit_entry(entry_id, **changes)
    return EntryResponse.from_entry(entry)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entry(
    entry_id: str,
    workspace: Workspace = Depends(get_workspace),
) -> Response:
    """Delete one of the caller's entries."""
    if not await workspace.tracker.delete_entry(entry_id):
        raise NotFoundError(f"Entry not found: {entry_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
