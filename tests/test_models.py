"""Tests for data models."""

from datetime import date, datetime, timezone

from time_ledger.core.models import (
    Notification,
    NotificationCategory,
    Project,
    Task,
    TaskPriority,
    TaskStatus,
    TimeEntry,
    User,
    UserRole,
    as_utc,
)


class TestTimeEntry:
    """Test TimeEntry model."""

    def test_new_entry_is_active(self) -> None:
        """Test that an entry without end time is active."""
        entry = TimeEntry(task_id="t1", user_id="alice", start_time=datetime.now(timezone.utc))

        assert entry.is_active is True
        assert entry.duration is None
        assert entry.id

    def test_from_csv_row(self) -> None:
        """Test parsing the string values a CSV row holds."""
        entry = TimeEntry.from_dict(
            {
                "id": "e1",
                "task_id": "t1",
                "user_id": "alice",
                "start_time": "2026-01-05T09:00:00+00:00",
                "end_time": "2026-01-05T10:00:00+00:00",
                "duration": "3600",
                "notes": "",
                "created_at": "2026-01-05T09:00:00+00:00",
            }
        )

        assert entry.duration == 3600
        assert entry.notes is None
        assert entry.is_active is False
        assert entry.end_time == datetime(2026, 1, 5, 10, tzinfo=timezone.utc)

    def test_empty_end_time_stays_active(self) -> None:
        entry = TimeEntry.from_dict(
            {
                "id": "e1",
                "task_id": "t1",
                "user_id": "alice",
                "start_time": "2026-01-05T09:00:00",
                "end_time": "",
                "duration": "",
            }
        )

        assert entry.is_active is True
        assert entry.start_time.tzinfo is not None

    def test_to_dict_from_dict(self) -> None:
        """Test converting to dict and back."""
        entry = TimeEntry(
            task_id="t1",
            user_id="alice",
            start_time=datetime(2026, 1, 5, 9, tzinfo=timezone.utc),
            end_time=datetime(2026, 1, 5, 9, 30, tzinfo=timezone.utc),
            duration=1800,
            notes="Review",
        )

        assert TimeEntry.from_dict(entry.to_dict()) == entry

    def test_to_dict_uses_none_for_missing_values(self) -> None:
        """Test that an active entry has no end time or duration in its dict."""
        entry = TimeEntry(
            task_id="t1", user_id="alice", start_time=datetime(2026, 1, 5, 9, tzinfo=timezone.utc)
        )

        data = entry.to_dict()

        assert data["end_time"] is None
        assert data["duration"] is None
        assert data["notes"] is None
        assert TimeEntry.from_dict(data) == entry


class TestTask:
    """Test Task model."""

    def test_defaults(self) -> None:
        task = Task(title="Draft", project_id="p1", user_id="alice")

        assert task.status is TaskStatus.NOT_STARTED
        assert task.priority is TaskPriority.MEDIUM
        assert task.is_completed is False

    def test_optional_fields_from_blank_cells(self) -> None:
        task = Task.from_dict(
            {
                "id": "t1",
                "title": "Draft",
                "project_id": "p1",
                "user_id": "alice",
                "status": "completed",
                "priority": "high",
                "deadline": "2026-02-01",
                "estimated_time": "",
            }
        )

        assert task.is_completed is True
        assert task.priority is TaskPriority.HIGH
        assert task.deadline == date(2026, 2, 1)
        assert task.estimated_time is None


class TestProjectAndNotification:
    """Test Project and Notification models."""

    def test_shared_flag_parsing(self) -> None:
        row = Project(name="Site", user_id="alice", is_shared=True).to_dict()
        row["is_shared"] = "True"

        assert Project.from_dict(row).is_shared is True

    def test_notification_round_trip(self) -> None:
        notification = Notification(
            user_id="alice",
            message="Due soon",
            category=NotificationCategory.DEADLINE,
            related_id="t1",
        )

        restored = Notification.from_dict(notification.to_dict())

        assert restored == notification
        assert restored.read is False

    def test_user_from_dict(self) -> None:
        user = User.from_dict({"id": "alice", "role": "admin"})

        assert user.role is UserRole.ADMIN
        assert user.email is None


def test_as_utc_keeps_aware_values() -> None:
    aware = datetime(2026, 1, 5, 9, tzinfo=timezone.utc)
    assert as_utc(aware) is aware
    assert as_utc(datetime(2026, 1, 5, 9)).tzinfo is timezone.utc
