"""Deadline and tracked-time threshold alerts."""

import logging
from collections.abc import Iterable
from datetime import date, timedelta
from typing import Optional

from time_ledger.core.catalog import Catalog
from time_ledger.core.duration import progress_percent
from time_ledger.core.models import Notification, NotificationCategory, Task, TimeEntry

logger = logging.getLogger(__name__)

DEFAULT_DEADLINE_WINDOW_DAYS = 3


def is_deadline_approaching(
    deadline: Optional[date], today: date, window_days: int = DEFAULT_DEADLINE_WINDOW_DAYS
) -> bool:
    """True if the deadline falls after today and within window_days."""
    if deadline is None:
        return False
    return today < deadline <= today + timedelta(days=window_days)


def is_deadline_passed(deadline: Optional[date], today: date) -> bool:
    """True if the deadline lies before today."""
    if deadline is None:
        return False
    return deadline < today


def deadline_notifications(
    tasks: Iterable[Task],
    today: date,
    window_days: int = DEFAULT_DEADLINE_WINDOW_DAYS,
) -> list[Notification]:
    """Build notifications for open tasks with a near or missed deadline.

    Args:
        tasks: Candidate tasks; completed ones are ignored
        today: Reference date
        window_days: How far ahead a deadline counts as approaching

    Returns:
        Unsaved notifications addressed to each task's owner
    """
    notifications = []
    for task in tasks:
        if task.is_completed or task.deadline is None:
            continue

        if is_deadline_passed(task.deadline, today):
            message = f'Task "{task.title}" was due on {task.deadline.isoformat()}'
        elif is_deadline_approaching(task.deadline, today, window_days):
            days = (task.deadline - today).days
            unit = "day" if days == 1 else "days"
            message = f'Task "{task.title}" is due in {days} {unit}'
        else:
            continue

        notifications.append(
            Notification(
                user_id=task.user_id,
                message=message,
                category=NotificationCategory.DEADLINE,
                related_id=task.id,
            )
        )
    return notifications


def threshold_notifications(
    tasks: Iterable[Task],
    entries: Iterable[TimeEntry],
    threshold_percent: int = 100,
) -> list[Notification]:
    """Build notifications for tasks whose tracked time reached a share of the estimate.

    Args:
        tasks: Candidate tasks; tasks without an estimate are ignored
        entries: Time entries, matched to tasks by task_id
        threshold_percent: Progress at which a task is reported

    Returns:
        Unsaved notifications addressed to each task's owner
    """
    by_task: dict[str, list[TimeEntry]] = {}
    for entry in entries:
        by_task.setdefault(entry.task_id, []).append(entry)

    notifications = []
    for task in tasks:
        if task.is_completed or not task.estimated_time:
            continue
        percent = progress_percent(task, by_task.get(task.id, []))
        if percent < threshold_percent:
            continue

        notifications.append(
            Notification(
                user_id=task.user_id,
                message=(
                    f'Task "{task.title}" has used {percent}% of its '
                    f"{task.estimated_time} minute estimate"
                ),
                category=NotificationCategory.THRESHOLD,
                related_id=task.id,
            )
        )

    logger.debug(f"{len(notifications)} tasks at or above {threshold_percent}% of estimate")
    return notifications


async def record_alerts(
    catalog: Catalog, notifications: Iterable[Notification]
) -> list[Notification]:
    """Store alerts the user has not already been told about.

    An alert is skipped when an unread notification with the same category,
    related task and message already exists. A changed message, such as a
    deadline that has now passed, is stored as a new alert.

    Returns:
        Notifications actually stored
    """
    unread = await catalog.list_notifications(unread_only=True)
    seen = {(n.category, n.related_id, n.message) for n in unread}

    stored = []
    for notification in notifications:
        key = (notification.category, notification.related_id, notification.message)
        if key in seen:
            continue
        seen.add(key)
        stored.append(
            await catalog.notify(
                notification.message,
                category=notification.category,
                related_id=notification.related_id,
                user_id=notification.user_id,
            )
        )

    if stored:
        logger.info(f"Recorded {len(stored)} new alerts")
    return stored
