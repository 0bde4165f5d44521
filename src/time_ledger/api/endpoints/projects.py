"""Project endpoints."""

from fastapi import APIRouter, Depends, Response, status  # type: ignore[import-untyped]

from time_ledger.api.dependencies import get_workspace
from time_ledger.api.models import CreateProjectRequest, ProjectResponse, UpdateProjectRequest
from time_ledger.core.workspace import Workspace

router = APIRouter()


@router.get("/", response_model=list[ProjectResponse])
async def list_projects(workspace: Workspace = Depends(get_workspace)) -> list[ProjectResponse]:
    """List the caller's projects and every shared project."""
    projects = await workspace.catalog.list_projects()
    return [ProjectResponse.from_project(p) for p in projects]


@router.post("/", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    request: CreateProjectRequest,
    workspace: Workspace = Depends(get_workspace),
) -> ProjectResponse:
    """Create a project owned by the caller."""
    project = await workspace.catalog.create_project(
        request.name, description=request.description, is_shared=request.is_shared
    )
    return ProjectResponse.from_project(project)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    workspace: Workspace = Depends(get_workspace),
) -> ProjectResponse:
    """Get a visible project."""
    return ProjectResponse.from_project(await workspace.catalog.get_project(project_id))


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    request: UpdateProjectRequest,
    workspace: Workspace = Depends(get_workspace),
) -> ProjectResponse:
    """Update a project owned by the caller."""
    project = await workspace.catalog.update_project(
        project_id, **request.model_dump(exclude_unset=True)
    )
    return ProjectResponse.from_project(project)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    workspace: Workspace = Depends(get_workspace),
) -> Response:
    """Delete a project together with its tasks and their time entries."""
    await workspace.catalog.delete_project(project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
