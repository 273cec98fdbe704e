from __future__ import annotations

import io
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

import pandas as pd

from ..core.enums import TaskPriority, TaskStatus
from ..core.exceptions import AuthorizationError, ValidationError
from ..rbac.permissions import REPORTS_EXPORT, REPORTS_VIEW, has_permission
from ..rbac.policy import Actor
from ..tasks.model import Task, TaskQuery
from ..tasks.repository import TaskRepository

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

EXPORT_COLUMNS = [
    "ID",
    "Title",
    "Assignee",
    "Created by",
    "Priority",
    "Status",
    "Due date",
    "Completed at",
    "Recurring",
    "Series",
]


@dataclass(frozen=True)
class ReportData:
    summary: dict
    status_distribution: dict
    priority_distribution: dict
    user_performance: list[dict]

    def to_dict(self) -> dict:
        return {
            "summary": self.summary,
            "status_distribution": self.status_distribution,
            "priority_distribution": self.priority_distribution,
            "user_performance": self.user_performance,
        }


def _pct(part: int, whole: int) -> float:
    return round(100.0 * part / whole, 1) if whole else 0.0


def _on_time(task: Task) -> bool:
    return task.completed_at is not None and task.completed_at <= task.due_date


class ReportService:
    def __init__(self, tasks: TaskRepository):
        self._tasks = tasks

    def _load(self, start: Optional[datetime], end: Optional[datetime]) -> Sequence[Task]:
        if start and end and end < start:
            raise ValidationError("End date must be on or after start date")
        return self._tasks.list(TaskQuery(due_from=start, due_to=end, sort_by="due_date"))

    def build_report(
        self,
        actor: Actor,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> ReportData:
        if not has_permission(actor.role, REPORTS_VIEW):
            raise AuthorizationError("You don't have sufficient permissions to view reports")

        tasks = self._load(start, end)
        completed = [t for t in tasks if t.status == TaskStatus.COMPLETED]
        on_time = [t for t in completed if _on_time(t)]

        durations = [
            (t.completed_at - t.created_at).total_seconds() / 86400
            for t in completed
            if t.completed_at and t.created_at
        ]

        status_distribution = {s.value: 0 for s in TaskStatus}
        priority_distribution = {p.value: 0 for p in TaskPriority}
        per_user: dict[int, dict] = {}

        for t in tasks:
            status_distribution[t.status.value] += 1
            priority_distribution[t.priority.value] += 1

            u = per_user.get(t.assigned_to)
            if not u:
                u = {
                    "user_id": t.assigned_to,
                    "name": t.assignee_name or "-",
                    "assigned": 0,
                    "completed": 0,
                    "on_time": 0,
                }
                per_user[t.assigned_to] = u
            u["assigned"] += 1
            if t.status == TaskStatus.COMPLETED:
                u["completed"] += 1
                if _on_time(t):
                    u["on_time"] += 1

        user_performance = []
        for u in per_user.values():
            user_performance.append({**u, "completion_rate": _pct(u["completed"], u["assigned"])})
        user_performance.sort(key=lambda x: (-x["completed"], x["name"]))

        summary = {
            "total": len(tasks),
            "completed": len(completed),
            "completion_rate": _pct(len(completed), len(tasks)),
            "active_users": len(per_user),
            "tasks_per_user": round(len(tasks) / len(per_user), 1) if per_user else 0.0,
            "avg_completion_days": round(sum(durations) / len(durations), 1) if durations else None,
            "on_time_rate": _pct(len(on_time), len(completed)),
        }

        return ReportData(
            summary=summary,
            status_distribution=status_distribution,
            priority_distribution=priority_distribution,
            user_performance=user_performance,
        )

    def export_tasks_xlsx(
        self,
        actor: Actor,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> io.BytesIO:
        if not has_permission(actor.role, REPORTS_EXPORT):
            raise AuthorizationError("You do not have permission to export reports")

        rows = [
            (
                t.task_id,
                t.title,
                t.assignee_name or t.assigned_to,
                t.creator_name or t.created_by,
                t.priority.value,
                t.status.value,
                t.due_date,
                t.completed_at,
                "yes" if t.is_recurring else "no",
                t.parent_task_id or "",
            )
            for t in self._load(start, end)
        ]
        df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
        df["Due date"] = pd.to_datetime(df["Due date"]).dt.strftime("%Y-%m-%d %H:%M")
        df["Completed at"] = pd.to_datetime(df["Completed at"]).dt.strftime("%Y-%m-%d %H:%M").fillna("")

        out = io.BytesIO()
        with pd.ExcelWriter(out, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name="Tasks")
        out.seek(0)
        return out
