"""Core data models for task time tracking."""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Generate a new record identifier."""
    return str(uuid4())


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, leave aware ones untouched."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    return as_utc(datetime.fromisoformat(str(value)))


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def _parse_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def _parse_bool(value: Any, default: bool = False) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


class UserRole(Enum):
    """Team role of a user."""

    ADMIN = "admin"
    MEMBER = "member"


class TaskStatus(Enum):
    """Task workflow status."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TaskPriority(Enum):
    """Task priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class NotificationCategory(Enum):
    """Kind of notification."""

    DEADLINE = "deadline"
    THRESHOLD = "threshold"
    MENTION = "mention"
    SYSTEM = "system"


@dataclass
class User:
    """Identity carried by a session.

    Attributes:
        id: User identifier
        display_name: Name shown in reports
        role: Team role
        email: Contact address (optional)
    """

    id: str
    display_name: str = ""
    role: UserRole = UserRole.MEMBER
    email: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "display_name": self.display_name,
            "role": self.role.value,
            "email": self.email,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        """Create User from dictionary."""
        return cls(
            id=data["id"],
            display_name=data.get("display_name") or "",
            role=UserRole(data.get("role") or "member"),
            email=data.get("email") or None,
        )


@dataclass
class Project:
    """Project grouping tasks.

    Attributes:
        name: Display name
        user_id: Owning user
        id: Unique identifier (UUID string)
        description: Project description (optional)
        is_shared: Visible to every team member when True
        created_at: Creation timestamp
    """

    name: str
    user_id: str
    id: str = field(default_factory=new_id)
    description: Optional[str] = None
    is_shared: bool = False
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for CSV/JSON serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "user_id": self.user_id,
            "is_shared": self.is_shared,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Project":
        """Create Project from dictionary (CSV/JSON deserialization)."""
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description") or None,
            user_id=data["user_id"],
            is_shared=_parse_bool(data.get("is_shared")),
            created_at=_parse_datetime(data.get("created_at")) or utc_now(),
        )


@dataclass
class Task:
    """Unit of work inside a project.

    Attributes:
        title: Task title
        project_id: Owning project
        user_id: Owning user
        id: Unique identifier (UUID string)
        description: Longer description
        status: Workflow status
        priority: Priority level
        deadline: Due date (optional)
        estimated_time: Estimated effort in minutes (optional)
        created_at: Creation timestamp
    """

    title: str
    project_id: str
    user_id: str
    id: str = field(default_factory=new_id)
    description: str = ""
    status: TaskStatus = TaskStatus.NOT_STARTED
    priority: TaskPriority = TaskPriority.MEDIUM
    deadline: Optional[date] = None
    estimated_time: Optional[int] = None
    created_at: datetime = field(default_factory=utc_now)

    @property
    def is_completed(self) -> bool:
        """Check if the task is completed."""
        return self.status is TaskStatus.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for CSV/JSON serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "project_id": self.project_id,
            "user_id": self.user_id,
            "status": self.status.value,
            "priority": self.priority.value,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "estimated_time": self.estimated_time,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        """Create Task from dictionary (CSV/JSON deserialization)."""
        return cls(
            id=data["id"],
            title=data["title"],
            description=data.get("description") or "",
            project_id=data["project_id"],
            user_id=data["user_id"],
            status=TaskStatus(data.get("status") or "not_started"),
            priority=TaskPriority(data.get("priority") or "medium"),
            deadline=_parse_date(data.get("deadline")),
            estimated_time=_parse_int(data.get("estimated_time")),
            created_at=_parse_datetime(data.get("created_at")) or utc_now(),
        )


@dataclass
class TimeEntry:
    """Tracked interval of work on a task.

    Attributes:
        task_id: Task the time was spent on
        user_id: User who tracked the time
        start_time: When tracking started
        id: Unique identifier (UUID string)
        end_time: When tracking stopped (None while active)
        duration: Elapsed seconds, set once when the entry is stopped
        notes: Free-form notes
        created_at: When this record was created
    """

    task_id: str
    user_id: str
    start_time: datetime
    id: str = field(default_factory=new_id)
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    notes: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)

    @property
    def is_active(self) -> bool:
        """Check if this entry is still being tracked."""
        return self.end_time is None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for CSV/JSON serialization."""
        return {
            "id": self.id,
            "task_id": self.task_id,
            "user_id": self.user_id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "duration": self.duration,
            "notes": self.notes,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimeEntry":
        """Create TimeEntry from dictionary (CSV/JSON deserialization)."""
        start_time = _parse_datetime(data["start_time"])
        if start_time is None:
            raise ValueError("start_time is required")
        return cls(
            id=data["id"],
            task_id=data["task_id"],
            user_id=data["user_id"],
            start_time=start_time,
            end_time=_parse_datetime(data.get("end_time")),
            duration=_parse_int(data.get("duration")),
            notes=data.get("notes") or None,
            created_at=_parse_datetime(data.get("created_at")) or utc_now(),
        )


@dataclass
class Notification:
    """Message addressed to a user.

    Attributes:
        user_id: Recipient
        message: Text shown to the user
        category: Kind of notification
        id: Unique identifier (UUID string)
        read: Whether the user has seen it
        related_id: Related task or project id (optional)
        created_at: Creation timestamp
    """

    user_id: str
    message: str
    category: NotificationCategory = NotificationCategory.SYSTEM
    id: str = field(default_factory=new_id)
    read: bool = False
    related_id: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for CSV/JSON serialization."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "message": self.message,
            "category": self.category.value,
            "read": self.read,
            "related_id": self.related_id,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Notification":
        """Create Notification from dictionary (CSV/JSON deserialization)."""
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            message=data["message"],
            category=NotificationCategory(data.get("category") or "system"),
            read=_parse_bool(data.get("read")),
            related_id=data.get("related_id") or None,
            created_at=_parse_datetime(data.get("created_at")) or utc_now(),
        )
