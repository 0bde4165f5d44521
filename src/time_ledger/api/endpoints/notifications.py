"""Notification endpoints."""

from datetime import tzinfo

from fastapi import APIRouter, Depends, Query, Response, status  # type: ignore[import-untyped]

from time_ledger.analysis.aggregation import local_date
from time_ledger.analysis.alerts import (
    deadline_notifications,
    record_alerts,
    threshold_notifications,
)
from time_ledger.api.dependencies import get_config, get_timezone, get_workspace
from time_ledger.api.models import CountResponse, NotificationResponse
from time_ledger.core.config import ConfigManager
from time_ledger.core.errors import NotFoundError
from time_ledger.core.models import utc_now
from time_ledger.core.storage import TASKS, TIME_ENTRIES
from time_ledger.core.workspace import Workspace

router = APIRouter()


@router.get("/", response_model=list[NotificationResponse])
async def list_notifications(
    unread_only: bool = Query(False, description="Only unread notifications"),
    workspace: Workspace = Depends(get_workspace),
) -> list[NotificationResponse]:
    """List the caller's notifications, newest first."""
    notifications = await workspace.catalog.list_notifications(unread_only=unread_only)
    return [NotificationResponse.from_notification(n) for n in notifications]


@router.get("/unread-count", response_model=CountResponse)
async def unread_count(workspace: Workspace = Depends(get_workspace)) -> CountResponse:
    """Number of unread notifications."""
    unread = await workspace.catalog.list_notifications(unread_only=True)
    return CountResponse(count=len(unread))


@router.post("/read-all", response_model=CountResponse)
async def mark_all_as_read(workspace: Workspace = Depends(get_workspace)) -> CountResponse:
    """Mark every unread notification read."""
    return CountResponse(count=await workspace.catalog.mark_all_as_read())


@router.post("/alerts", response_model=list[NotificationResponse])
async def check_alerts(
    workspace: Workspace = Depends(get_workspace),
    config: ConfigManager = Depends(get_config),
    tz: tzinfo = Depends(get_timezone),
) -> list[NotificationResponse]:
    """Check deadlines and estimates; store and return the new alerts."""
    view = await workspace.snapshot(TASKS, TIME_ENTRIES)
    today = local_date(utc_now(), tz)
    alerts = deadline_notifications(
        view.tasks, today, config.get("alerts.deadline_window_days", 3)
    ) + threshold_notifications(
        view.tasks, view.time_entries, config.get("alerts.threshold_percent", 100)
    )
    stored = await record_alerts(workspace.catalog, alerts)
    return [NotificationResponse.from_notification(n) for n in stored]


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_as_read(
    notification_id: str, workspace: Workspace = Depends(get_workspace)
) -> NotificationResponse:
    """Mark one notification read."""
    notification = await workspace.catalog.mark_as_read(notification_id)
    return NotificationResponse.from_notification(notification)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: str, workspace: Workspace = Depends(get_workspace)
) -> Response:
    """Delete one of the caller's notifications."""
    if not await workspace.catalog.delete_notification(notification_id):
        raise NotFoundError(f"Notification not found: {notification_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
