from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping, Optional, Sequence

from ..common.datetime_utils import now_local, start_of_day
from ..core.enums import NotificationType, RecurringType, TaskPriority, TaskStatus
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..notifications.service import NotificationService
from ..rbac.permissions import TASKS_ASSIGN, TASKS_CREATE, TASKS_READ, has_permission
from ..rbac.policy import Actor, can_delete_task, can_update_task, can_view_all_tasks, can_view_task
from ..recurrence.rule import validate_rule
from ..recurring.service import RecurringTaskService
from ..users.repository import UserRepository
from .model import NewTask, Task, TaskQuery, TaskStats
from .repository import TaskRepository
from .validation import parse_task_payload

logger = logging.getLogger(__name__)

_RECURRENCE_FIELDS = (
    "is_recurring",
    "recurring_type",
    "recurring_interval",
    "recurring_days",
    "recurring_date",
    "recurring_end_date",
)


def _validate_recurrence(values: Mapping[str, Any], *, interval_given: bool) -> None:
    validate_rule(
        recurring_type=values.get("recurring_type"),
        interval=values.get("recurring_interval"),
        days=values.get("recurring_days"),
        day_of_month=values.get("recurring_date"),
    )
    if values.get("recurring_type") == RecurringType.CUSTOM and not interval_given:
        raise ValidationError("Recurring interval is required for custom recurring tasks")


class TaskService:
    """Use cases: task CRUD with role and ownership checks."""

    def __init__(
        self,
        tasks: TaskRepository,
        users: UserRepository,
        notifications: NotificationService,
        recurring: RecurringTaskService,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._tasks = tasks
        self._users = users
        self._notifications = notifications
        self._recurring = recurring
        self._clock = clock

    def _get_or_404(self, task_id: int) -> Task:
        task = self._tasks.get_by_id(int(task_id))
        if not task:
            raise NotFoundError("Task not found")
        return task

    def _check_assignee(self, actor: Actor, assignee_id: int) -> None:
        if assignee_id != actor.user_id and not has_permission(actor.role, TASKS_ASSIGN):
            raise AuthorizationError("You do not have permission to assign tasks")
        if not self._users.get_by_id(assignee_id):
            raise NotFoundError("Assigned user not found")

    def create_task(self, actor: Actor, data: Mapping[str, Any]) -> Task:
        if not has_permission(actor.role, TASKS_CREATE):
            raise AuthorizationError("You do not have permission to perform this action")

        values = parse_task_payload(data, partial=False)
        self._check_assignee(actor, values["assigned_to"])

        is_recurring = bool(values.get("is_recurring", False))
        if is_recurring:
            _validate_recurrence(values, interval_given="recurring_interval" in values)

        new = NewTask(
            title=values["title"],
            description=values["description"],
            due_date=values["due_date"],
            priority=values["priority"],
            assigned_to=values["assigned_to"],
            created_by=actor.user_id,
            status=values.get("status", TaskStatus.TODO),
            is_recurring=is_recurring,
            recurring_type=values.get("recurring_type") if is_recurring else None,
            recurring_interval=values.get("recurring_interval", 1) if is_recurring else 1,
            recurring_days=values.get("recurring_days", ()) if is_recurring else (),
            recurring_date=values.get("recurring_date") if is_recurring else None,
            recurring_end_date=values.get("recurring_end_date") if is_recurring else None,
        )
        task_id = self._tasks.create(new)
        task = self._get_or_404(task_id)
        logger.info("Task id=%s created by user id=%s (recurring=%s)", task_id, actor.user_id, is_recurring)

        if is_recurring:
            self._recurring.create_next_instance(task)

        if task.assigned_to != actor.user_id:
            self._notifications.notify(
                task.assigned_to,
                f"You have been assigned a new task: {task.title}",
                NotificationType.TASK_ASSIGNED,
                task.task_id,
            )
        return task

    def list_tasks(self, actor: Actor, query: TaskQuery) -> Sequence[Task]:
        if not has_permission(actor.role, TASKS_READ):
            raise AuthorizationError("You do not have permission to perform this action")

        if can_view_all_tasks(actor):
            return self._tasks.list(query)

        # Regular users see only their own tasks; assignee/creator filters are ignored.
        scoped = replace(query, visible_to=actor.user_id, assigned_to=None, created_by=None)
        return self._tasks.list(scoped)

    def get_task(self, actor: Actor, task_id: int) -> Task:
        task = self._get_or_404(task_id)
        if not can_view_task(actor, task):
            raise AuthorizationError("You do not have permission to view this task")
        return task

    def list_instances(self, actor: Actor, task_id: int) -> Sequence[Task]:
        template = self.get_task(actor, task_id)
        return self._tasks.list(TaskQuery(parent_task_id=template.task_id, sort_by="due_date"))

    def update_task(self, actor: Actor, task_id: int, data: Mapping[str, Any]) -> Task:
        task = self._get_or_404(task_id)
        if not can_update_task(actor, task):
            raise AuthorizationError("You do not have permission to update this task")

        changes = parse_task_payload(data, partial=True)

        if task.parent_task_id is not None and changes.get("is_recurring"):
            raise ValidationError("Cannot make a recurring task instance into a recurring task")

        if "assigned_to" in changes and changes["assigned_to"] != task.assigned_to:
            self._check_assignee(actor, changes["assigned_to"])

        recurrence_touched = any(f in changes for f in _RECURRENCE_FIELDS)
        will_recur = changes.get("is_recurring", task.is_recurring)
        if will_recur and recurrence_touched:
            merged = {f: changes.get(f, getattr(task, f)) for f in _RECURRENCE_FIELDS}
            _validate_recurrence(
                merged,
                interval_given="recurring_interval" in changes or task.recurring_type == RecurringType.CUSTOM,
            )

        new_status = changes.get("status")
        if new_status is not None and new_status != task.status:
            changes["completed_at"] = self._clock() if new_status == TaskStatus.COMPLETED else None

        self._tasks.update(task.task_id, changes)
        updated = self._get_or_404(task.task_id)
        logger.info("Task id=%s updated by user id=%s: %s", task.task_id, actor.user_id, sorted(changes))

        now_completed = new_status == TaskStatus.COMPLETED and task.status != TaskStatus.COMPLETED
        recurrence_changed = any(
            f in changes and changes[f] != getattr(task, f) for f in _RECURRENCE_FIELDS
        )

        if recurrence_changed and updated.parent_task_id is None:
            if updated.is_recurring:
                self._recurring.reschedule(updated)
            else:
                self._tasks.delete_pending_children(updated.task_id)
        elif now_completed:
            self._recurring.advance_series(updated)

        self._notify_update(actor, task, changes, now_completed)
        return updated

    def _notify_update(self, actor: Actor, before: Task, changes: Mapping[str, Any], now_completed: bool) -> None:
        new_assignee = changes.get("assigned_to")
        if new_assignee is not None and new_assignee != before.assigned_to:
            self._notifications.notify(
                new_assignee,
                f"You have been assigned to task: {before.title}",
                NotificationType.TASK_ASSIGNED,
                before.task_id,
            )

        if now_completed and before.created_by != actor.user_id:
            self._notifications.notify(
                before.created_by,
                f"Task completed: {before.title}",
                NotificationType.TASK_COMPLETED,
                before.task_id,
            )

        if actor.user_id != before.assigned_to and (new_assignee is None or new_assignee == before.assigned_to):
            self._notifications.notify(
                before.assigned_to,
                f"Task updated: {before.title}",
                NotificationType.TASK_UPDATED,
                before.task_id,
            )

    def delete_task(self, actor: Actor, task_id: int) -> None:
        task = self._get_or_404(task_id)
        if not can_delete_task(actor, task):
            raise AuthorizationError("You do not have permission to delete this task")

        if task.assigned_to != actor.user_id:
            self._notifications.notify(task.assigned_to, f"Task deleted: {task.title}", NotificationType.SYSTEM)

        if not self._tasks.delete(task.task_id):
            raise ValidationError("Failed to delete task")
        logger.info("Task id=%s deleted by user id=%s", task.task_id, actor.user_id)

    def task_stats(self, actor: Actor, *, now: Optional[datetime] = None) -> TaskStats:
        visible_to = None if can_view_all_tasks(actor) else actor.user_id

        today = start_of_day((now or self._clock()).date())
        tomorrow = today + timedelta(days=1)
        next_week = today + timedelta(days=7)

        status_counts = {s.value: 0 for s in TaskStatus}
        status_counts.update(self._tasks.count_by("status", visible_to=visible_to))
        priority_counts = {p.value: 0 for p in TaskPriority}
        priority_counts.update(self._tasks.count_by("priority", visible_to=visible_to))

        return TaskStats(
            status_counts=status_counts,
            priority_counts=priority_counts,
            due_today_count=self._tasks.count_due(start=today, end=tomorrow, visible_to=visible_to),
            due_this_week_count=self._tasks.count_due(start=today, end=next_week, visible_to=visible_to),
            overdue_count=self._tasks.count_due(
                start=None, end=today, visible_to=visible_to, exclude_completed=True
            ),
        )
