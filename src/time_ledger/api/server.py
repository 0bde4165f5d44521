"""FastAPI application server."""

import asyncio
import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI  # type: ignore[import-untyped]
from fastapi.responses import JSONResponse  # type: ignore[import-untyped]

from time_ledger import __version__
from time_ledger.api.middleware import setup_middleware
from time_ledger.core.config import ConfigManager
from time_ledger.core.storage import CSVStore, Store
from time_ledger.core.workspace import SessionManager

logger = logging.getLogger(__name__)


REAP_INTERVAL = 60.0


async def reap_idle_sessions(sessions: SessionManager, max_idle: float) -> None:
    """Periodically close workspaces of users who stopped sending requests."""
    while True:
        await asyncio.sleep(min(max_idle, REAP_INTERVAL))
        try:
            await sessions.close_idle(max_idle)
        except Exception as e:
            logger.error(f"Failed to close idle sessions: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Reap idle workspaces while running and close them all on shutdown."""
    logger.info("Time Ledger API starting")
    reaper = None
    max_idle = app.state.config.get("api.advanced.session_idle_timeout", 1800)
    if max_idle:
        reaper = asyncio.create_task(
            reap_idle_sessions(app.state.sessions, max_idle), name="session-reaper"
        )
    try:
        yield
    finally:
        if reaper is not None:
            reaper.cancel()
            try:
                await reaper
            except asyncio.CancelledError:
                pass
        await app.state.sessions.close_all()
        logger.info("Time Ledger API stopped")


def create_app(config: Optional[ConfigManager] = None, store: Optional[Store] = None) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        config: Configuration manager (creates default if None)
        store: Store shared by all sessions (CSV store in the configured
            data directory if None)

    Returns:
        Configured FastAPI application instance

    Example:
        >>> app = create_app()
        >>> # Or in memory
        >>> app = create_app(ConfigManager(tmp / "config.yml"), MemoryStore())
    """
    if config is None:
        config = ConfigManager()
    if store is None:
        store = CSVStore(config.data_dir)
    if config.get("api.authentication.enabled", True):
        config.ensure_api_secret_key()

    app = FastAPI(
        title="Time Ledger API",
        description="REST API for Time Ledger time tracking",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.store = store
    app.state.sessions = SessionManager(store)

    setup_middleware(app, config)

    from time_ledger.api.endpoints import (
        entries,
        notifications,
        projects,
        reports,
        system,
        tasks,
    )

    app.include_router(system.router, prefix="/api/v1", tags=["system"])
    app.include_router(entries.router, prefix="/api/v1/entries", tags=["entries"])
    app.include_router(projects.router, prefix="/api/v1/projects", tags=["projects"])
    app.include_router(tasks.router, prefix="/api/v1/tasks", tags=["tasks"])
    app.include_router(reports.router, prefix="/api/v1/reports", tags=["reports"])
    app.include_router(
        notifications.router, prefix="/api/v1/notifications", tags=["notifications"]
    )

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        return JSONResponse(
            {
                "message": "Time Ledger API",
                "version": __version__,
                "docs": "/docs",
                "health": "/api/v1/health",
            }
        )

    return app


CONFIG_ENV = "TIME_LEDGER_CONFIG"
DATA_DIR_ENV = "TIME_LEDGER_DATA_DIR"


def app_from_env() -> FastAPI:
    """Application factory for uvicorn workers.

    Reads the config path and data directory chosen on the command line
    from the environment, since workers cannot receive them as arguments.
    """
    config_path = os.environ.get(CONFIG_ENV)
    config = ConfigManager(Path(config_path) if config_path else None)
    data_dir = os.environ.get(DATA_DIR_ENV)
    store = CSVStore(Path(data_dir)) if data_dir else None
    return create_app(config, store)


def run_server(
    host: str = "localhost",
    port: int = 8000,
    reload: bool = False,
    workers: int = 1,
    config_path: Optional[Path] = None,
    data_dir: Optional[Path] = None,
) -> None:
    """Run the API server using Uvicorn.

    Every worker process keeps its own sessions, so with several workers the
    single-active-entry rule for a user rests on the store alone.

    Args:
        host: Host address to bind to
        port: Port number to bind to
        reload: Enable auto-reload for development
        workers: Number of worker processes
        config_path: Config file to load (default location if None)
        data_dir: Data directory overriding the configured one

    Note:
        This function blocks until the server is stopped.
    """
    import uvicorn  # type: ignore[import-untyped]

    config = ConfigManager(config_path)
    if config.get("api.authentication.enabled", True):
        # Generated once here so every worker reads the same key
        config.ensure_api_secret_key()
    if config_path is not None:
        os.environ[CONFIG_ENV] = str(config_path)
    if data_dir is not None:
        os.environ[DATA_DIR_ENV] = str(data_dir)

    uvicorn.run(
        "time_ledger.api.server:app_from_env",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=workers if not reload else 1,
        log_level=config.get("api.advanced.log_level", "info"),
        access_log=config.get("api.advanced.access_log", True),
    )
