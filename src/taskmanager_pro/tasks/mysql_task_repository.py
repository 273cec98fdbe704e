from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from ..core.enums import RecurringType, TaskPriority, TaskStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_int_list, fetchall, fetchone, load_int_list
from .model import SORTABLE_FIELDS, NewTask, Task, TaskQuery
from .repository import TaskRepository

_SELECT = """
    SELECT t.task_id, t.title, t.description, t.due_date, t.priority, t.status,
           t.assigned_to, t.created_by, t.is_recurring, t.recurring_type,
           t.recurring_interval, t.recurring_days, t.recurring_date,
           t.recurring_end_date, t.parent_task_id, t.completed_at,
           t.created_at, t.updated_at,
           a.name AS assignee_name, a.email AS assignee_email,
           c.name AS creator_name, c.email AS creator_email
    FROM tasks t
    LEFT JOIN users a ON a.user_id = t.assigned_to
    LEFT JOIN users c ON c.user_id = t.created_by
"""

_SORT_SQL = {
    "due_date": "t.due_date",
    "created_at": "t.created_at",
    "updated_at": "t.updated_at",
    "title": "t.title",
    "priority": "FIELD(t.priority, 'low', 'medium', 'high')",
    "status": "FIELD(t.status, 'todo', 'in-progress', 'completed')",
}

_UPDATABLE = {
    "title",
    "description",
    "due_date",
    "priority",
    "status",
    "assigned_to",
    "is_recurring",
    "recurring_type",
    "recurring_interval",
    "recurring_days",
    "recurring_date",
    "recurring_end_date",
    "completed_at",
}

_COUNTABLE = {"status", "priority"}


def _row_to_task(r: dict) -> Task:
    return Task(
        task_id=int(r["task_id"]),
        title=r["title"],
        description=r["description"],
        due_date=r["due_date"],
        priority=TaskPriority(r["priority"]),
        status=TaskStatus(r["status"]),
        assigned_to=int(r["assigned_to"]),
        created_by=int(r["created_by"]),
        is_recurring=bool(r.get("is_recurring")),
        recurring_type=RecurringType(r["recurring_type"]) if r.get("recurring_type") else None,
        recurring_interval=int(r.get("recurring_interval") or 1),
        recurring_days=load_int_list(r.get("recurring_days")),
        recurring_date=r.get("recurring_date"),
        recurring_end_date=r.get("recurring_end_date"),
        parent_task_id=r.get("parent_task_id"),
        completed_at=r.get("completed_at"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
        assignee_name=r.get("assignee_name"),
        assignee_email=r.get("assignee_email"),
        creator_name=r.get("creator_name"),
        creator_email=r.get("creator_email"),
    )


def _db_value(value: Any) -> Any:
    if isinstance(value, (RecurringType, TaskPriority, TaskStatus)):
        return value.value
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, tuple):
        return dump_int_list(value)
    return value


def _visibility_clause(visible_to: Optional[int], clauses: list[str], params: list[object]) -> None:
    if visible_to is not None:
        clauses.append("(t.assigned_to=%s OR t.created_by=%s)")
        params.extend([int(visible_to), int(visible_to)])


class MySQLTaskRepository(TaskRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, task_id: int) -> Optional[Task]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE t.task_id=%s", (int(task_id),))
            r = fetchone(cur)
            return _row_to_task(r) if r else None

    def create(self, new: NewTask) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO tasks(
                    title, description, due_date, priority, status, assigned_to, created_by,
                    is_recurring, recurring_type, recurring_interval, recurring_days,
                    recurring_date, recurring_end_date, parent_task_id
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    new.title,
                    new.description,
                    new.due_date,
                    new.priority.value,
                    new.status.value,
                    int(new.assigned_to),
                    int(new.created_by),
                    int(new.is_recurring),
                    new.recurring_type.value if new.recurring_type else None,
                    int(new.recurring_interval or 1),
                    dump_int_list(new.recurring_days),
                    new.recurring_date,
                    new.recurring_end_date,
                    new.parent_task_id,
                ),
            )
            return int(cur.lastrowid)

    def update(self, task_id: int, changes: Mapping[str, Any]) -> bool:
        unknown = set(changes) - _UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update task columns: {sorted(unknown)}")
        if not changes:
            return True

        sets = [f"{col}=%s" for col in changes]
        params = [_db_value(v) for v in changes.values()]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE tasks SET {', '.join(sets)} WHERE task_id=%s",
                tuple(params + [int(task_id)]),
            )
            return cur.rowcount > 0

    def delete(self, task_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM tasks WHERE task_id=%s", (int(task_id),))
            return cur.rowcount > 0

    def list(self, query: TaskQuery) -> Sequence[Task]:
        clauses = ["1=1"]
        params: list[object] = []

        if query.status is not None:
            clauses.append("t.status=%s")
            params.append(query.status.value)
        if query.priority is not None:
            clauses.append("t.priority=%s")
            params.append(query.priority.value)
        if query.is_recurring is not None:
            clauses.append("t.is_recurring=%s")
            params.append(int(query.is_recurring))
        if query.recurring_type is not None:
            clauses.append("t.recurring_type=%s")
            params.append(query.recurring_type.value)
        if query.assigned_to is not None:
            clauses.append("t.assigned_to=%s")
            params.append(int(query.assigned_to))
        if query.created_by is not None:
            clauses.append("t.created_by=%s")
            params.append(int(query.created_by))
        if query.parent_task_id is not None:
            clauses.append("t.parent_task_id=%s")
            params.append(int(query.parent_task_id))
        if query.due_from is not None:
            clauses.append("t.due_date>=%s")
            params.append(query.due_from)
        if query.due_to is not None:
            clauses.append("t.due_date<%s")
            params.append(query.due_to)
        if query.search:
            clauses.append("(LOWER(t.title) LIKE %s OR LOWER(t.description) LIKE %s)")
            like = f"%{query.search.lower()}%"
            params.extend([like, like])
        _visibility_clause(query.visible_to, clauses, params)

        sort_by = query.sort_by if query.sort_by in SORTABLE_FIELDS else "due_date"
        order = f"{_SORT_SQL[sort_by]} {'DESC' if query.descending else 'ASC'}, t.task_id ASC"

        sql = _SELECT + f" WHERE {' AND '.join(clauses)} ORDER BY {order}"
        if query.limit:
            sql += " LIMIT %s"
            params.append(int(query.limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_row_to_task(r) for r in fetchall(cur)]

    def count_by(self, column: str, *, visible_to: Optional[int] = None) -> dict:
        if column not in _COUNTABLE:
            raise ValueError(f"Cannot group tasks by {column!r}")

        clauses = ["1=1"]
        params: list[object] = []
        _visibility_clause(visible_to, clauses, params)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT t.{column} AS k, COUNT(*) AS n FROM tasks t WHERE {' AND '.join(clauses)} GROUP BY t.{column}",
                tuple(params),
            )
            return {r["k"]: int(r["n"]) for r in fetchall(cur)}

    def count_due(
        self,
        *,
        start: Optional[datetime],
        end: datetime,
        visible_to: Optional[int] = None,
        exclude_completed: bool = False,
    ) -> int:
        clauses = ["t.due_date<%s"]
        params: list[object] = [end]
        if start is not None:
            clauses.append("t.due_date>=%s")
            params.append(start)
        if exclude_completed:
            clauses.append("t.status<>%s")
            params.append(TaskStatus.COMPLETED.value)
        _visibility_clause(visible_to, clauses, params)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS n FROM tasks t WHERE {' AND '.join(clauses)}", tuple(params))
            row = fetchone(cur)
            return int(row["n"]) if row else 0

    def latest_child(self, parent_task_id: int) -> Optional[Task]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT + " WHERE t.parent_task_id=%s ORDER BY t.due_date DESC LIMIT 1",
                (int(parent_task_id),),
            )
            r = fetchone(cur)
            return _row_to_task(r) if r else None

    def child_exists(self, parent_task_id: int, due_date: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT 1 AS x FROM tasks WHERE parent_task_id=%s AND due_date=%s LIMIT 1",
                (int(parent_task_id), due_date),
            )
            return fetchone(cur) is not None

    def delete_pending_children(self, parent_task_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM tasks WHERE parent_task_id=%s AND status<>%s",
                (int(parent_task_id), TaskStatus.COMPLETED.value),
            )
            return int(cur.rowcount)

    def list_active_templates(self, *, as_of: datetime) -> Sequence[Task]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _SELECT
                + """
                WHERE t.is_recurring=1 AND t.parent_task_id IS NULL
                  AND (t.recurring_end_date IS NULL OR DATE(t.recurring_end_date) >= %s)
                ORDER BY t.task_id
                """,
                (as_of.date(),),
            )
            return [_row_to_task(r) for r in fetchall(cur)]
