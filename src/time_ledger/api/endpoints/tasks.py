"""Task endpoints: CRUD, completion and progress."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status  # type: ignore[import-untyped]

from time_ledger.api.dependencies import get_workspace
from time_ledger.api.models import (
    CreateTaskRequest,
    ProgressResponse,
    TaskResponse,
    UpdateTaskRequest,
)
from time_ledger.core.duration import progress_percent, total_seconds
from time_ledger.core.storage import TIME_ENTRIES
from time_ledger.core.workspace import Workspace

router = APIRouter()


@router.get("/", response_model=list[TaskResponse])
async def list_tasks(
    project_id: Optional[str] = Query(None, description="Filter by project"),
    workspace: Workspace = Depends(get_workspace),
) -> list[TaskResponse]:
    """List the caller's tasks."""
    tasks = await workspace.catalog.list_tasks(project_id)
    return [TaskResponse.from_task(t) for t in tasks]


@router.post("/", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    request: CreateTaskRequest,
    workspace: Workspace = Depends(get_workspace),
) -> TaskResponse:
    """Create a task in a visible project."""
    task = await workspace.catalog.create_task(
        request.project_id,
        request.title,
        description=request.description,
        priority=request.priority,
        deadline=request.deadline,
        estimated_time=request.estimated_time,
        status=request.status,
    )
    return TaskResponse.from_task(task)


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(task_id: str, workspace: Workspace = Depends(get_workspace)) -> TaskResponse:
    """Get a task."""
    return TaskResponse.from_task(await workspace.catalog.get_task(task_id))


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str,
    request: UpdateTaskRequest,
    workspace: Workspace = Depends(get_workspace),
) -> TaskResponse:
    """Update a task. Setting status to completed is rejected; use /complete."""
    task = await workspace.catalog.update_task(task_id, **request.model_dump(exclude_unset=True))
    return TaskResponse.from_task(task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: str, workspace: Workspace = Depends(get_workspace)) -> Response:
    """Delete a task together with its time entries."""
    await workspace.catalog.delete_task(task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{task_id}/complete", response_model=TaskResponse)
async def complete_task(
    task_id: str, workspace: Workspace = Depends(get_workspace)
) -> TaskResponse:
    """Stop the caller's tracking on a task and mark it completed."""
    return TaskResponse.from_task(await workspace.tracker.complete(task_id))


@router.get("/{task_id}/progress", response_model=ProgressResponse)
async def get_progress(
    task_id: str, workspace: Workspace = Depends(get_workspace)
) -> ProgressResponse:
    """Time tracked on a task by everyone, against its estimate."""
    task = await workspace.catalog.get_task(task_id)
    entries = await workspace.store.select(TIME_ENTRIES, task_id=task_id)
    return ProgressResponse(
        task_id=task.id,
        tracked_seconds=total_seconds(entries),
        estimated_time=task.estimated_time,
        percent=progress_percent(task, entries),
    )
