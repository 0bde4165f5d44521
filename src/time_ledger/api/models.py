"""Pydantic models for API requests and responses."""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, Field  # type: ignore[import-untyped]

from time_ledger.analysis.aggregation import AggregateRow, DashboardTotals
from time_ledger.core.duration import humanize
from time_ledger.core.models import (
    Notification,
    NotificationCategory,
    Project,
    Task,
    TaskPriority,
    TaskStatus,
    TimeEntry,
)

# ============================================================================
# Response Models
# ============================================================================


class EntryResponse(BaseModel):
    """Response model for time entry."""

    id: str
    task_id: str
    user_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    notes: Optional[str] = None
    is_active: bool = False

    @classmethod
    def from_entry(cls, entry: TimeEntry) -> "EntryResponse":
        return cls(
            id=entry.id,
            task_id=entry.task_id,
            user_id=entry.user_id,
            start_time=entry.start_time,
            end_time=entry.end_time,
            duration=entry.duration,
            notes=entry.notes,
            is_active=entry.is_active,
        )


class ProjectResponse(BaseModel):
    """Response model for project."""

    id: str
    name: str
    description: Optional[str] = None
    user_id: str
    is_shared: bool = False
    created_at: datetime

    @classmethod
    def from_project(cls, project: Project) -> "ProjectResponse":
        return cls(
            id=project.id,
            name=project.name,
            description=project.description,
            user_id=project.user_id,
            is_shared=project.is_shared,
            created_at=project.created_at,
        )


class TaskResponse(BaseModel):
    """Response model for task."""

    id: str
    title: str
    description: str = ""
    project_id: str
    user_id: str
    status: TaskStatus
    priority: TaskPriority
    deadline: Optional[date] = None
    estimated_time: Optional[int] = None
    created_at: datetime

    @classmethod
    def from_task(cls, task: Task) -> "TaskResponse":
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            project_id=task.project_id,
            user_id=task.user_id,
            status=task.status,
            priority=task.priority,
            deadline=task.deadline,
            estimated_time=task.estimated_time,
            created_at=task.created_at,
        )


class NotificationResponse(BaseModel):
    """Response model for notification."""

    id: str
    message: str
    category: NotificationCategory
    read: bool
    related_id: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_notification(cls, notification: Notification) -> "NotificationResponse":
        return cls(
            id=notification.id,
            message=notification.message,
            category=notification.category,
            read=notification.read,
            related_id=notification.related_id,
            created_at=notification.created_at,
        )


class ProgressResponse(BaseModel):
    """Tracked time of a task against its estimate."""

    task_id: str
    tracked_seconds: int
    estimated_time: Optional[int] = None
    percent: int


class TotalResponse(BaseModel):
    """Tracked time inside a range."""

    start: datetime
    end: datetime
    seconds: int
    formatted: str


class AggregateRowResponse(BaseModel):
    """One aggregation bucket."""

    key: str
    label: str
    seconds: int
    hours: int

    @classmethod
    def from_row(cls, row: AggregateRow) -> "AggregateRowResponse":
        return cls(key=row.key, label=row.label, seconds=row.seconds, hours=row.hours)


class DashboardResponse(BaseModel):
    """Totals for the current day, week and month."""

    today: int
    this_week: int
    this_month: int
    today_formatted: str
    this_week_formatted: str
    this_month_formatted: str
    active_entry: Optional[EntryResponse] = None
    unread_notifications: int = 0

    @classmethod
    def from_totals(
        cls,
        totals: DashboardTotals,
        active: Optional[TimeEntry] = None,
        unread: int = 0,
    ) -> "DashboardResponse":
        return cls(
            today=totals.today,
            this_week=totals.this_week,
            this_month=totals.this_month,
            today_formatted=humanize(totals.today),
            this_week_formatted=humanize(totals.this_week),
            this_month_formatted=humanize(totals.this_month),
            active_entry=EntryResponse.from_entry(active) if active else None,
            unread_notifications=unread,
        )


class RowsResponse(BaseModel):
    """Flat export rows."""

    title: str
    rows: list[dict[str, Any]]


class CountResponse(BaseModel):
    """A bare count."""

    count: int


# ============================================================================
# Request Models
# ============================================================================


class StartEntryRequest(BaseModel):
    """Request model for starting a time entry."""

    task_id: str = Field(..., min_length=1, description="Task to track")
    notes: Optional[str] = Field(None, max_length=5000, description="Additional notes")


class StopEntryRequest(BaseModel):
    """Request model for stopping an entry. Stops the current entry when entry_id is omitted."""

    entry_id: Optional[str] = Field(None, description="Entry to stop")


class UpdateEntryRequest(BaseModel):
    """Request model for editing an entry. Only fields that are sent are changed."""

    task_id: Optional[str] = Field(None, min_length=1)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=5000)


class CreateProjectRequest(BaseModel):
    """Request model for creating a project."""

    name: str = Field(..., min_length=1, max_length=200, description="Project name")
    description: Optional[str] = Field(None, max_length=1000)
    is_shared: bool = False


class UpdateProjectRequest(BaseModel):
    """Request model for updating a project."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    is_shared: Optional[bool] = None


class CreateTaskRequest(BaseModel):
    """Request model for creating a task."""

    project_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=500)
    description: str = Field("", max_length=5000)
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.NOT_STARTED
    deadline: Optional[date] = None
    estimated_time: Optional[int] = Field(None, gt=0, description="Estimate in minutes")


class UpdateTaskRequest(BaseModel):
    """Request model for updating a task. Use the complete endpoint to finish a task."""

    project_id: Optional[str] = Field(None, min_length=1)
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = Field(None, max_length=5000)
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    deadline: Optional[date] = None
    estimated_time: Optional[int] = Field(None, gt=0)


# ============================================================================
# System Models
# ============================================================================


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Health status")
    timestamp: datetime = Field(..., description="Current server time")
    version: str = Field(..., description="API version")


class StatusResponse(BaseModel):
    """Response model for system status."""

    user_id: str
    authentication_enabled: bool
    cors_enabled: bool
    active_tracking: bool
    open_sessions: int
    store_revision: int
    last_sync_error: Optional[str] = None
    uptime_seconds: float

