"""Dependency injection for FastAPI endpoints."""

from datetime import tzinfo
from typing import Any

from fastapi import Depends, Request  # type: ignore[import-untyped]

from time_ledger.analysis.aggregation import resolve_timezone
from time_ledger.api.auth import user_from_payload, verify_token
from time_ledger.core.config import ConfigManager
from time_ledger.core.storage import Store
from time_ledger.core.workspace import SessionManager, Workspace


def get_config(request: Request) -> ConfigManager:
    """Configuration manager stored on the application."""
    config: ConfigManager = request.app.state.config
    return config


def get_store(request: Request) -> Store:
    """Store shared by every session of the application."""
    store: Store = request.app.state.store
    return store


def get_sessions(request: Request) -> SessionManager:
    """Session manager of the application."""
    sessions: SessionManager = request.app.state.sessions
    return sessions


def get_timezone(config: ConfigManager = Depends(get_config)) -> tzinfo:
    """Timezone used for calendar grouping."""
    return resolve_timezone(config.get("general.timezone", "UTC"))


async def get_workspace(
    payload: dict[str, Any] = Depends(verify_token),
    sessions: SessionManager = Depends(get_sessions),
) -> Workspace:
    """Workspace of the authenticated user, opened on first request."""
    return await sessions.open(user_from_payload(payload))
