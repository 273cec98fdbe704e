from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Protocol, Sequence

from .model import NewTask, Task, TaskQuery


class TaskRepository(Protocol):
    def get_by_id(self, task_id: int) -> Optional[Task]:
        raise NotImplementedError

    def create(self, new: NewTask) -> int:
        raise NotImplementedError

    def update(self, task_id: int, changes: Mapping[str, Any]) -> bool:
        """Apply column -> value changes. Unknown columns are rejected."""

        raise NotImplementedError

    def delete(self, task_id: int) -> bool:
        raise NotImplementedError

    def list(self, query: TaskQuery) -> Sequence[Task]:
        raise NotImplementedError

    def count_by(self, column: str, *, visible_to: Optional[int] = None) -> dict:
        """Group-by count over ``status`` or ``priority``."""

        raise NotImplementedError

    def count_due(
        self,
        *,
        start: Optional[datetime],
        end: datetime,
        visible_to: Optional[int] = None,
        exclude_completed: bool = False,
    ) -> int:
        """Count tasks with ``start <= due_date < end``."""

        raise NotImplementedError

    # Recurring series
    def latest_child(self, parent_task_id: int) -> Optional[Task]:
        raise NotImplementedError

    def child_exists(self, parent_task_id: int, due_date: datetime) -> bool:
        raise NotImplementedError

    def delete_pending_children(self, parent_task_id: int) -> int:
        raise NotImplementedError

    def list_active_templates(self, *, as_of: datetime) -> Sequence[Task]:
        """Recurring templates whose end date (if any) is not before ``as_of``."""

        raise NotImplementedError
