"""API endpoints.

Available routers:
- system: Health checks and status
- entries: Time entry tracking and editing
- projects: Project management
- tasks: Task management, completion and progress
- reports: Aggregations, dashboard totals and export rows
- notifications: Notifications and alerts
"""

__all__ = ["system", "entries", "projects", "tasks", "reports", "notifications"]

from time_ledger.api.endpoints import (  # noqa: F401
    entries,
    notifications,
    projects,
    reports,
    system,
    tasks,
)
