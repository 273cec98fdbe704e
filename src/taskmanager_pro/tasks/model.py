from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import isoformat_or_none
from ..core.enums import RecurringType, TaskPriority, TaskStatus


@dataclass(frozen=True)
class Task:
    """Domain entity: Task.

    A task with ``is_recurring`` set and no parent is a series template;
    its generated instances point back to it through ``parent_task_id``.
    """

    task_id: int
    title: str
    description: str
    due_date: datetime
    priority: TaskPriority
    status: TaskStatus
    assigned_to: int
    created_by: int
    is_recurring: bool = False
    recurring_type: Optional[RecurringType] = None
    recurring_interval: int = 1
    recurring_days: tuple[int, ...] = ()
    recurring_date: Optional[int] = None
    recurring_end_date: Optional[datetime] = None
    parent_task_id: Optional[int] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Joined from users for API output.
    assignee_name: Optional[str] = None
    assignee_email: Optional[str] = None
    creator_name: Optional[str] = None
    creator_email: Optional[str] = None

    @property
    def is_template(self) -> bool:
        return self.is_recurring and self.parent_task_id is None

    def to_dict(self) -> dict:
        return {
            "id": self.task_id,
            "title": self.title,
            "description": self.description,
            "due_date": self.due_date.isoformat(),
            "priority": self.priority.value,
            "status": self.status.value,
            "assigned_to": {"id": self.assigned_to, "name": self.assignee_name, "email": self.assignee_email},
            "created_by": {"id": self.created_by, "name": self.creator_name, "email": self.creator_email},
            "is_recurring": self.is_recurring,
            "recurring_type": self.recurring_type.value if self.recurring_type else None,
            "recurring_interval": self.recurring_interval,
            "recurring_days": list(self.recurring_days),
            "recurring_date": self.recurring_date,
            "recurring_end_date": isoformat_or_none(self.recurring_end_date),
            "parent_task_id": self.parent_task_id,
            "completed_at": isoformat_or_none(self.completed_at),
            "created_at": isoformat_or_none(self.created_at),
            "updated_at": isoformat_or_none(self.updated_at),
        }


@dataclass(frozen=True)
class NewTask:
    """Values for inserting a task (template, plain task or generated instance)."""

    title: str
    description: str
    due_date: datetime
    priority: TaskPriority
    assigned_to: int
    created_by: int
    status: TaskStatus = TaskStatus.TODO
    is_recurring: bool = False
    recurring_type: Optional[RecurringType] = None
    recurring_interval: int = 1
    recurring_days: tuple[int, ...] = ()
    recurring_date: Optional[int] = None
    recurring_end_date: Optional[datetime] = None
    parent_task_id: Optional[int] = None


SORTABLE_FIELDS = ("due_date", "created_at", "updated_at", "priority", "status", "title")


@dataclass(frozen=True)
class TaskQuery:
    """Filters for listing tasks.

    ``visible_to`` restricts the result to tasks assigned to or created by
    that user id.
    """

    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    search: Optional[str] = None
    assigned_to: Optional[int] = None
    created_by: Optional[int] = None
    is_recurring: Optional[bool] = None
    recurring_type: Optional[RecurringType] = None
    parent_task_id: Optional[int] = None
    visible_to: Optional[int] = None
    due_from: Optional[datetime] = None
    due_to: Optional[datetime] = None
    sort_by: str = "due_date"
    descending: bool = False
    limit: Optional[int] = None


@dataclass(frozen=True)
class TaskStats:
    status_counts: dict = field(default_factory=dict)
    priority_counts: dict = field(default_factory=dict)
    due_today_count: int = 0
    due_this_week_count: int = 0
    overdue_count: int = 0

    def to_dict(self) -> dict:
        return {
            "status_counts": dict(self.status_counts),
            "priority_counts": dict(self.priority_counts),
            "due_today_count": self.due_today_count,
            "due_this_week_count": self.due_this_week_count,
            "overdue_count": self.overdue_count,
        }
