"""System endpoints for health checks and status."""

import time

from fastapi import APIRouter, Depends  # type: ignore[import-untyped]

from time_ledger import __version__
from time_ledger.api.dependencies import get_config, get_sessions, get_workspace
from time_ledger.api.models import HealthResponse, StatusResponse
from time_ledger.core.config import ConfigManager
from time_ledger.core.models import utc_now
from time_ledger.core.workspace import SessionManager, Workspace

router = APIRouter()

_server_start_time = time.time()


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint. Public; no authentication required.

    Example:
        >>> GET /api/v1/health
        {"status": "healthy", "timestamp": "2026-01-05T10:30:00Z", "version": "0.1.0"}
    """
    return HealthResponse(status="healthy", timestamp=utc_now(), version=__version__)


@router.get("/status", response_model=StatusResponse)
async def get_status(
    workspace: Workspace = Depends(get_workspace),
    sessions: SessionManager = Depends(get_sessions),
    config: ConfigManager = Depends(get_config),
) -> StatusResponse:
    """Status of the server and of the caller's tracking session."""
    active = await workspace.tracker.resync()
    last_error = workspace.reconciler.last_error

    return StatusResponse(
        user_id=workspace.user.id,
        authentication_enabled=config.get("api.authentication.enabled", True),
        cors_enabled=config.get("api.cors.enabled", True),
        active_tracking=active is not None,
        open_sessions=len(sessions),
        store_revision=workspace.store.revision,
        last_sync_error=str(last_error) if last_error else None,
        uptime_seconds=time.time() - _server_start_time,
    )
