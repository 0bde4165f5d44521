"""Project, task and notification management for a session's user.

Deleting a parent removes its children first, one level at a time, so no
time entry ever points at a deleted task and no task at a deleted project.
"""

import logging
from datetime import date
from typing import Any, Optional

from time_ledger.core.errors import InvalidTaskError, NotFoundError
from time_ledger.core.models import (
    Notification,
    NotificationCategory,
    Project,
    Task,
    TaskPriority,
    TaskStatus,
)
from time_ledger.core.session import Session
from time_ledger.core.storage import NOTIFICATIONS, PROJECTS, TASKS, TIME_ENTRIES, Store

logger = logging.getLogger(__name__)

PROJECT_FIELDS = ("name", "description", "is_shared")
TASK_FIELDS = (
    "title",
    "description",
    "project_id",
    "status",
    "priority",
    "deadline",
    "estimated_time",
)


def _check_estimate(estimated_time: Optional[int]) -> None:
    if estimated_time is not None and estimated_time <= 0:
        raise ValueError("estimated_time must be a positive number of minutes")


class Catalog:
    """CRUD over the records a user owns or can see."""

    def __init__(self, session: Session, store: Store):
        """Initialize catalog.

        Args:
            session: Session of the acting user
            store: Authoritative store
        """
        self.session = session
        self.store = store

    @property
    def user_id(self) -> str:
        return self.session.user.id

    # Projects

    async def list_projects(self) -> list[Project]:
        """Projects owned by the user plus every shared project."""
        own = await self.store.select(PROJECTS, user_id=self.user_id)
        shared = await self.store.select(PROJECTS, is_shared=True)
        seen = {p.id for p in own}
        projects = own + [p for p in shared if p.id not in seen]
        projects.sort(key=lambda p: p.created_at, reverse=True)
        return projects

    async def get_project(self, project_id: str) -> Project:
        """Get a visible project.

        Raises:
            NotFoundError: If the project is missing or not visible
        """
        project: Optional[Project] = await self.store.get(PROJECTS, project_id)
        if project is None or (project.user_id != self.user_id and not project.is_shared):
            raise NotFoundError(f"Project not found: {project_id}")
        return project

    async def _owned_project(self, project_id: str) -> Project:
        project: Optional[Project] = await self.store.get(PROJECTS, project_id)
        if project is None or project.user_id != self.user_id:
            raise NotFoundError(f"Project not found: {project_id}")
        return project

    async def create_project(
        self, name: str, description: Optional[str] = None, is_shared: bool = False
    ) -> Project:
        """Create a project owned by the user."""
        self.session.require_open()
        if not name.strip():
            raise ValueError("Project name cannot be empty")

        project = Project(
            name=name.strip(),
            user_id=self.user_id,
            description=description,
            is_shared=is_shared,
        )
        created: Project = await self.store.insert(PROJECTS, project)
        logger.info(f"Created project {created.name!r}")
        return created

    async def update_project(self, project_id: str, **changes: Any) -> Project:
        """Update a project owned by the user.

        Editable fields: name, description, is_shared.
        """
        self.session.require_open()
        unknown = set(changes) - set(PROJECT_FIELDS)
        if unknown:
            raise ValueError(f"Cannot edit project fields: {', '.join(sorted(unknown))}")
        if "name" in changes and not str(changes["name"]).strip():
            raise ValueError("Project name cannot be empty")

        await self._owned_project(project_id)
        updated: Project = await self.store.update(PROJECTS, project_id, changes)
        return updated

    async def delete_project(self, project_id: str) -> None:
        """Delete a project with its tasks and their time entries.

        Raises:
            NotFoundError: If the user does not own the project
        """
        self.session.require_open()
        project = await self._owned_project(project_id)

        tasks = await self.store.select(TASKS, project_id=project_id)
        removed_entries = 0
        for task in tasks:
            removed_entries += await self.store.delete_where(TIME_ENTRIES, task_id=task.id)
        removed_tasks = await self.store.delete_where(TASKS, project_id=project_id) if tasks else 0
        await self.store.delete(PROJECTS, project_id)

        logger.info(
            f"Deleted project {project.name!r} with {removed_tasks} tasks "
            f"and {removed_entries} time entries"
        )

    # Tasks

    async def list_tasks(self, project_id: Optional[str] = None) -> list[Task]:
        """Tasks owned by the user, optionally limited to one project."""
        filters: dict[str, Any] = {}
        if project_id is not None:
            filters["project_id"] = project_id
        tasks: list[Task] = await self.store.select(TASKS, user_id=self.user_id, **filters)
        return tasks

    async def get_task(self, task_id: str) -> Task:
        """Get a task.

        Raises:
            NotFoundError: If the task does not exist
        """
        task: Optional[Task] = await self.store.get(TASKS, task_id)
        if task is None:
            raise NotFoundError(f"Task not found: {task_id}")
        return task

    async def create_task(
        self,
        project_id: str,
        title: str,
        description: str = "",
        priority: TaskPriority = TaskPriority.MEDIUM,
        deadline: Optional[date] = None,
        estimated_time: Optional[int] = None,
        status: TaskStatus = TaskStatus.NOT_STARTED,
    ) -> Task:
        """Create a task in a visible project.

        Args:
            project_id: Owning project
            title: Task title
            description: Longer description
            priority: Priority level
            deadline: Due date
            estimated_time: Estimate in minutes
            status: Initial status

        Returns:
            Created task
        """
        self.session.require_open()
        if not title.strip():
            raise ValueError("Task title cannot be empty")
        _check_estimate(estimated_time)
        await self.get_project(project_id)

        task = Task(
            title=title.strip(),
            project_id=project_id,
            user_id=self.user_id,
            description=description,
            status=TaskStatus(status),
            priority=TaskPriority(priority),
            deadline=deadline,
            estimated_time=estimated_time,
        )
        created: Task = await self.store.insert(TASKS, task)
        logger.info(f"Created task {created.title!r}")
        return created

    async def update_task(self, task_id: str, **changes: Any) -> Task:
        """Update a task owned by the user.

        Completing a task goes through the tracker, which stops its running
        entries first; setting the completed status here is rejected.

        Raises:
            NotFoundError: If the task is missing or owned by someone else
            InvalidTaskError: If the update would complete the task
        """
        self.session.require_open()
        unknown = set(changes) - set(TASK_FIELDS)
        if unknown:
            raise ValueError(f"Cannot edit task fields: {', '.join(sorted(unknown))}")

        task = await self.get_task(task_id)
        if task.user_id != self.user_id:
            raise NotFoundError(f"Task not found: {task_id}")

        updates = dict(changes)
        if "status" in updates:
            updates["status"] = TaskStatus(updates["status"])
            if updates["status"] is TaskStatus.COMPLETED and not task.is_completed:
                raise InvalidTaskError(
                    "Use complete to finish a task so its running entries are stopped", task_id
                )
        if "priority" in updates:
            updates["priority"] = TaskPriority(updates["priority"])
        if "estimated_time" in updates:
            _check_estimate(updates["estimated_time"])
        if "project_id" in updates:
            await self.get_project(updates["project_id"])

        updated: Task = await self.store.update(TASKS, task_id, updates)
        return updated

    async def delete_task(self, task_id: str) -> None:
        """Delete a task and its time entries."""
        self.session.require_open()
        task = await self.get_task(task_id)
        if task.user_id != self.user_id:
            raise NotFoundError(f"Task not found: {task_id}")

        removed = await self.store.delete_where(TIME_ENTRIES, task_id=task_id)
        await self.store.delete(TASKS, task_id)
        logger.info(f"Deleted task {task.title!r} with {removed} time entries")

    # Notifications

    async def list_notifications(self, unread_only: bool = False) -> list[Notification]:
        """Notifications addressed to the user, newest first."""
        filters: dict[str, Any] = {"read": False} if unread_only else {}
        notifications: list[Notification] = await self.store.select(
            NOTIFICATIONS, user_id=self.user_id, **filters
        )
        return notifications

    async def notify(
        self,
        message: str,
        category: NotificationCategory = NotificationCategory.SYSTEM,
        related_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Notification:
        """Create a notification, for the session user unless user_id is given."""
        notification = Notification(
            user_id=user_id or self.user_id,
            message=message,
            category=NotificationCategory(category),
            related_id=related_id,
        )
        created: Notification = await self.store.insert(NOTIFICATIONS, notification)
        return created

    async def mark_as_read(self, notification_id: str) -> Notification:
        """Mark one notification read."""
        notification: Optional[Notification] = await self.store.get(NOTIFICATIONS, notification_id)
        if notification is None or notification.user_id != self.user_id:
            raise NotFoundError(f"Notification not found: {notification_id}")
        updated: Notification = await self.store.update(
            NOTIFICATIONS, notification_id, {"read": True}
        )
        return updated

    async def mark_all_as_read(self) -> int:
        """Mark every unread notification read.

        Returns:
            Number of notifications updated
        """
        unread = await self.list_notifications(unread_only=True)
        for notification in unread:
            await self.store.update(NOTIFICATIONS, notification.id, {"read": True})
        return len(unread)

    async def delete_notification(self, notification_id: str) -> bool:
        """Delete one of the user's notifications."""
        notification: Optional[Notification] = await self.store.get(NOTIFICATIONS, notification_id)
        if notification is None or notification.user_id != self.user_id:
            return False
        return await self.store.delete(NOTIFICATIONS, notification_id)
