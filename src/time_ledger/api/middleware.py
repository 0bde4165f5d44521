"""Middleware and error handlers for the FastAPI application."""

import logging

from fastapi import FastAPI, Request, status  # type: ignore[import-untyped]
from fastapi.middleware.cors import CORSMiddleware  # type: ignore[import-untyped]
from fastapi.responses import JSONResponse  # type: ignore[import-untyped]

from time_ledger.core.config import ConfigManager
from time_ledger.core.errors import (
    EntryEditError,
    InvalidRangeError,
    InvalidTaskError,
    NotActiveError,
    NotFoundError,
    PersistenceError,
    SessionClosedError,
    TimeLedgerError,
)

logger = logging.getLogger(__name__)

# Most specific classes first
ERROR_STATUS: list[tuple[type[Exception], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidTaskError, status.HTTP_400_BAD_REQUEST),
    (NotActiveError, status.HTTP_409_CONFLICT),
    (SessionClosedError, status.HTTP_409_CONFLICT),
    (InvalidRangeError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (EntryEditError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (PersistenceError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (TimeLedgerError, status.HTTP_400_BAD_REQUEST),
    (ValueError, status.HTTP_400_BAD_REQUEST),
]


def status_for(exc: Exception) -> int:
    """HTTP status code for a domain error."""
    for error_class, code in ERROR_STATUS:
        if isinstance(exc, error_class):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def handle_domain_error(request: Request, exc: Exception) -> JSONResponse:
    """Render a domain error as a JSON error response."""
    code = status_for(exc)
    if code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.debug(f"{request.method} {request.url.path} rejected: {exc}")
    return JSONResponse(
        status_code=code,
        content={"detail": str(exc), "error_code": type(exc).__name__},
    )


def setup_cors(app: FastAPI, config: ConfigManager) -> None:
    """Configure CORS middleware from the api.cors section."""
    if not config.get("api.cors.enabled", True):
        return

    origins = config.get("api.cors.origins", ["http://localhost:3000"])

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Map the error taxonomy to HTTP status codes."""
    app.add_exception_handler(TimeLedgerError, handle_domain_error)
    app.add_exception_handler(ValueError, handle_domain_error)


def setup_middleware(app: FastAPI, config: ConfigManager) -> None:
    """Set up all middleware for the application."""
    setup_cors(app, config)
    setup_exception_handlers(app)
