from __future__ import annotations

from datetime import datetime
from typing import Optional

from taskmanager_pro.core.enums import RecurringType, Role, TaskPriority, TaskStatus
from taskmanager_pro.notifications.service import NotificationService
from taskmanager_pro.recurring.service import RecurringTaskService
from taskmanager_pro.tasks.model import NewTask

from fakes import InMemoryNotifications, InMemoryTasks, InMemoryUsers

# Wednesday
FIXED_NOW = datetime(2026, 3, 4, 9, 0, 0)


def _service(tasks, notifications=None, **kwargs) -> RecurringTaskService:
    return RecurringTaskService(
        tasks,
        NotificationService(notifications or InMemoryNotifications()),
        clock=lambda: FIXED_NOW,
        **kwargs,
    )


def _template(
    tasks: InMemoryTasks,
    *,
    due: datetime = datetime(2026, 3, 1, 8, 0),
    recurring_type: RecurringType = RecurringType.DAILY,
    end: Optional[datetime] = None,
    status: TaskStatus = TaskStatus.TODO,
    days: tuple[int, ...] = (),
) -> int:
    return tasks.create(
        NewTask(
            title="Standup notes",
            description="Post yesterday/today/blockers",
            due_date=due,
            priority=TaskPriority.MEDIUM,
            assigned_to=1,
            created_by=1,
            status=status,
            is_recurring=True,
            recurring_type=recurring_type,
            recurring_days=days,
            recurring_end_date=end,
        )
    )


def _child(tasks: InMemoryTasks, parent_id: int, due: datetime, status: TaskStatus) -> int:
    return tasks.create(
        NewTask(
            title="Standup notes",
            description="Post yesterday/today/blockers",
            due_date=due,
            priority=TaskPriority.MEDIUM,
            assigned_to=1,
            created_by=1,
            status=status,
            parent_task_id=parent_id,
        )
    )


def test_next_instance_follows_latest_child():
    tasks = InMemoryTasks()
    svc = _service(tasks)
    template = tasks.get_by_id(_template(tasks))

    first = svc.create_next_instance(template)
    assert first.due_date == datetime(2026, 3, 2, 8, 0)
    assert first.parent_task_id == template.task_id

    second = svc.create_next_instance(template)
    assert second.due_date == datetime(2026, 3, 3, 8, 0)


def test_instances_are_not_templates():
    tasks = InMemoryTasks()
    svc = _service(tasks)
    tid = _template(tasks)
    child = tasks.get_by_id(_child(tasks, tid, datetime(2026, 3, 2, 8, 0), TaskStatus.TODO))

    assert svc.create_next_instance(child) is None


def test_series_stops_at_end_date():
    tasks = InMemoryTasks()
    svc = _service(tasks)
    template = tasks.get_by_id(_template(tasks, end=datetime(2026, 3, 2)))

    assert svc.create_next_instance(template).due_date.day == 2
    assert svc.create_next_instance(template) is None


def test_new_instance_notifies_assignee():
    tasks = InMemoryTasks()
    notifications = InMemoryNotifications()
    svc = _service(tasks, notifications)
    template = tasks.get_by_id(_template(tasks))

    created = svc.create_next_instance(template)

    [n] = notifications.for_user(1)
    assert n.task_id == created.task_id
    assert n.message == "New recurring task instance: Standup notes"


def test_process_completed_only_advances_finished_series():
    tasks = InMemoryTasks()
    svc = _service(tasks)

    done = _template(tasks)
    _child(tasks, done, datetime(2026, 3, 2, 8, 0), TaskStatus.COMPLETED)
    open_ = _template(tasks)
    _child(tasks, open_, datetime(2026, 3, 2, 8, 0), TaskStatus.IN_PROGRESS)
    bare = _template(tasks, status=TaskStatus.COMPLETED)

    created = svc.process_completed_recurring_tasks()

    assert created == 2
    assert [c.due_date.day for c in tasks.children(done)] == [2, 3]
    assert [c.due_date.day for c in tasks.children(open_)] == [2]
    assert [c.due_date.day for c in tasks.children(bare)] == [2]


def test_generate_upcoming_fills_the_window_once():
    tasks = InMemoryTasks()
    svc = _service(tasks, horizon_days=7)
    tid = _template(tasks)

    assert svc.generate_upcoming_recurring_tasks() == 8
    days = [c.due_date.day for c in tasks.children(tid)]
    # nothing before today is back-filled
    assert days == [4, 5, 6, 7, 8, 9, 10, 11]

    assert svc.generate_upcoming_recurring_tasks() == 0


def test_generate_upcoming_respects_weekdays_and_end_date():
    tasks = InMemoryTasks()
    svc = _service(tasks)
    # Tue and Thu
    weekly = _template(tasks, recurring_type=RecurringType.WEEKLY, days=(2, 4))
    short = _template(tasks, end=datetime(2026, 3, 5))
    _template(tasks, end=datetime(2026, 3, 2))

    svc.generate_upcoming_recurring_tasks(now=FIXED_NOW, horizon_days=7)

    assert [c.due_date.day for c in tasks.children(weekly)] == [5, 10]
    assert [c.due_date.day for c in tasks.children(short)] == [4, 5]
    assert tasks.children(3) == []


def test_per_run_cap():
    tasks = InMemoryTasks()
    svc = _service(tasks, horizon_days=30, max_per_run=3)
    tid = _template(tasks)

    assert svc.generate_upcoming_recurring_tasks() == 3
    assert len(tasks.children(tid)) == 3


class _FlakyTasks(InMemoryTasks):
    def __init__(self, broken_id: int):
        super().__init__()
        self._broken_id = broken_id

    def latest_child(self, parent_task_id: int):
        if parent_task_id == self._broken_id:
            raise RuntimeError("boom")
        return super().latest_child(parent_task_id)


def test_run_daily_keeps_going_when_one_series_fails():
    tasks = _FlakyTasks(broken_id=1)
    svc = _service(tasks, horizon_days=1)
    _template(tasks)
    healthy = _template(tasks)

    result = svc.run_daily()

    assert result.upcoming_created == 2
    assert [c.due_date.day for c in tasks.children(healthy)] == [4, 5]
    assert len(result.errors) == 2
    assert all(e.startswith("task 1:") for e in result.errors)
    assert result.to_dict()["upcoming_created"] == 2


def test_reschedule_keeps_completed_instances():
    users = InMemoryUsers()
    users.add("A", "a@example.com", Role.USER)
    tasks = InMemoryTasks(users)
    svc = _service(tasks)
    tid = _template(tasks)
    _child(tasks, tid, datetime(2026, 3, 2, 8, 0), TaskStatus.COMPLETED)
    _child(tasks, tid, datetime(2026, 3, 3, 8, 0), TaskStatus.TODO)

    nxt = svc.reschedule(tasks.get_by_id(tid))

    assert nxt.due_date == datetime(2026, 3, 3, 8, 0)
    assert nxt.assignee_name == "A"
    assert [c.status for c in tasks.children(tid)] == [TaskStatus.COMPLETED, TaskStatus.TODO]
