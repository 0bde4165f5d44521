"""REST API for Time Ledger.

FastAPI application exposing tracking, catalog, report and notification
operations. Every request acts as the user named in its bearer token; the
server keeps one workspace per user for the lifetime of the process.

Usage:
    # Generate token
    time-ledger token

    # Start server
    time-ledger serve

    # Access API docs
    http://localhost:8000/docs
"""

__all__ = ["create_app", "run_server"]

from time_ledger.api.server import create_app, run_server  # noqa: F401
