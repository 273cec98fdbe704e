from __future__ import annotations

from datetime import datetime

import pytest

from taskmanager_pro.core.enums import NotificationType, RecurringType, TaskStatus
from taskmanager_pro.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from taskmanager_pro.tasks.model import TaskQuery


def _payload(assignee, **overrides):
    data = {
        "title": "Write report",
        "description": "Quarterly numbers",
        "dueDate": "2026-03-05T09:00:00",
        "priority": "medium",
        "assignedTo": assignee.user_id,
    }
    data.update(overrides)
    return data


def test_create_plain_task_for_self_sends_no_notification(container, actors, people, notifications_repo):
    task = container.task_service.create_task(actors["user"], _payload(people["user"]))

    assert task.task_id == 1
    assert task.status == TaskStatus.TODO
    assert task.created_by == people["user"].user_id
    assert task.assignee_name == "Uma User"
    assert notifications_repo.all() == []


def test_create_for_someone_else_notifies_assignee(container, actors, people, notifications_repo):
    task = container.task_service.create_task(actors["manager"], _payload(people["user"]))

    [n] = notifications_repo.for_user(people["user"].user_id)
    assert n.type == NotificationType.TASK_ASSIGNED
    assert n.task_id == task.task_id
    assert n.message == "You have been assigned a new task: Write report"


def test_create_with_unknown_assignee_is_404(container, actors, people):
    data = {**_payload(people["user"]), "assignedTo": 999}

    with pytest.raises(NotFoundError) as e:
        container.task_service.create_task(actors["manager"], data)
    assert e.value.message == "Assigned user not found"


def test_create_collects_field_errors(container, actors):
    with pytest.raises(ValidationError) as e:
        container.task_service.create_task(actors["user"], {"priority": "urgent", "dueDate": "soon"})

    fields = {d["field"] for d in e.value.details}
    assert {"title", "description", "due_date", "priority", "assigned_to"} <= fields


def test_recurring_without_type_is_rejected(container, actors, people):
    with pytest.raises(ValidationError) as e:
        container.task_service.create_task(actors["user"], _payload(people["user"], isRecurring=True))
    assert e.value.message == "Recurring type is required for recurring tasks"


def test_custom_recurrence_needs_interval(container, actors, people):
    with pytest.raises(ValidationError):
        container.task_service.create_task(
            actors["user"], _payload(people["user"], isRecurring=True, recurringType="custom")
        )


def test_recurring_create_spawns_first_instance(container, actors, people, tasks_repo, notifications_repo):
    template = container.task_service.create_task(
        actors["user"], _payload(people["user"], isRecurring=True, recurringType="daily")
    )

    [child] = tasks_repo.children(template.task_id)
    assert template.is_template
    assert template.recurring_type == RecurringType.DAILY
    assert child.due_date == datetime(2026, 3, 6, 9, 0)
    assert child.is_recurring is False
    assert child.status == TaskStatus.TODO
    assert child.title == template.title
    # instance notification goes to the assignee even when they created the series
    assert [n.task_id for n in notifications_repo.for_user(people["user"].user_id)] == [child.task_id]


def test_series_due_on_the_last_representable_day_has_no_instance(container, actors, people, tasks_repo):
    template = container.task_service.create_task(
        actors["user"],
        _payload(people["user"], dueDate="9999-12-31T09:00:00", isRecurring=True, recurringType="weekly"),
    )

    assert template.is_template
    assert tasks_repo.children(template.task_id) == []


def test_regular_users_only_see_their_tasks(container, actors, people):
    svc = container.task_service
    svc.create_task(actors["manager"], _payload(people["user"], title="mine"))
    svc.create_task(actors["manager"], _payload(people["other"], title="theirs"))
    svc.create_task(actors["user"], _payload(people["user"], title="also mine"))

    mine = svc.list_tasks(actors["user"], TaskQuery(assigned_to=people["other"].user_id))
    assert sorted(t.title for t in mine) == ["also mine", "mine"]

    everything = svc.list_tasks(actors["manager"], TaskQuery())
    assert len(everything) == 3

    filtered = svc.list_tasks(actors["admin"], TaskQuery(assigned_to=people["other"].user_id))
    assert [t.title for t in filtered] == ["theirs"]


def test_get_task_missing_and_forbidden(container, actors, people):
    task = container.task_service.create_task(actors["manager"], _payload(people["other"]))

    with pytest.raises(NotFoundError):
        container.task_service.get_task(actors["user"], 42)
    with pytest.raises(AuthorizationError):
        container.task_service.get_task(actors["user"], task.task_id)
    assert container.task_service.get_task(actors["other"], task.task_id).task_id == task.task_id


def test_assignee_cannot_edit_task_created_by_someone_else(container, actors, people):
    task = container.task_service.create_task(actors["manager"], _payload(people["user"]))

    with pytest.raises(AuthorizationError) as e:
        container.task_service.update_task(actors["user"], task.task_id, {"status": "completed"})
    assert e.value.message == "You do not have permission to update this task"


def test_completion_notifies_creator_and_assignee(container, actors, people, notifications_repo):
    svc = container.task_service
    task = svc.create_task(actors["user"], _payload(people["other"]))

    updated = svc.update_task(actors["manager"], task.task_id, {"status": "completed"})

    assert updated.status == TaskStatus.COMPLETED
    assert updated.completed_at == datetime(2026, 3, 4, 9, 0)

    [done] = notifications_repo.for_user(people["user"].user_id)
    assert done.type == NotificationType.TASK_COMPLETED
    types = [n.type for n in notifications_repo.for_user(people["other"].user_id)]
    assert types == [NotificationType.TASK_ASSIGNED, NotificationType.TASK_UPDATED]


def test_reopening_clears_completed_at(container, actors, people):
    svc = container.task_service
    task = svc.create_task(actors["user"], _payload(people["user"]))
    svc.update_task(actors["user"], task.task_id, {"status": "completed"})

    reopened = svc.update_task(actors["user"], task.task_id, {"status": "in-progress"})
    assert reopened.completed_at is None


def test_reassignment_notifies_new_assignee_only(container, actors, people, notifications_repo):
    svc = container.task_service
    task = svc.create_task(actors["manager"], _payload(people["manager"]))

    svc.update_task(actors["manager"], task.task_id, {"assignedTo": people["other"].user_id})

    [n] = notifications_repo.for_user(people["other"].user_id)
    assert n.type == NotificationType.TASK_ASSIGNED
    assert notifications_repo.for_user(people["manager"].user_id) == []


def test_instance_cannot_become_recurring(container, actors, people, tasks_repo):
    template = container.task_service.create_task(
        actors["user"], _payload(people["user"], isRecurring=True, recurringType="daily")
    )
    [child] = tasks_repo.children(template.task_id)

    with pytest.raises(ValidationError) as e:
        container.task_service.update_task(
            actors["user"], child.task_id, {"isRecurring": True, "recurringType": "weekly"}
        )
    assert e.value.message == "Cannot make a recurring task instance into a recurring task"


def test_completing_an_instance_advances_the_series(container, actors, people, tasks_repo):
    svc = container.task_service
    template = svc.create_task(actors["user"], _payload(people["user"], isRecurring=True, recurringType="daily"))
    [first] = tasks_repo.children(template.task_id)

    svc.update_task(actors["user"], first.task_id, {"status": "completed"})

    due = [c.due_date.day for c in tasks_repo.children(template.task_id)]
    assert due == [6, 7]


def test_changing_recurrence_regenerates_pending_instances(container, actors, people, tasks_repo):
    svc = container.task_service
    template = svc.create_task(actors["user"], _payload(people["user"], isRecurring=True, recurringType="daily"))

    svc.update_task(actors["user"], template.task_id, {"recurringType": "weekly"})

    [child] = tasks_repo.children(template.task_id)
    assert child.due_date == datetime(2026, 3, 12, 9, 0)


def test_rescheduling_keeps_completed_instances(container, actors, people, tasks_repo):
    svc = container.task_service
    template = svc.create_task(actors["user"], _payload(people["user"], isRecurring=True, recurringType="daily"))
    [first] = tasks_repo.children(template.task_id)
    svc.update_task(actors["user"], first.task_id, {"status": "completed"})

    svc.update_task(actors["user"], template.task_id, {"recurringType": "custom", "recurringInterval": 3})

    children = tasks_repo.children(template.task_id)
    assert [(c.due_date.day, c.status) for c in children] == [
        (6, TaskStatus.COMPLETED),
        (9, TaskStatus.TODO),
    ]


def test_turning_recurrence_off_drops_pending_instances(container, actors, people, tasks_repo):
    svc = container.task_service
    template = svc.create_task(actors["user"], _payload(people["user"], isRecurring=True, recurringType="daily"))

    svc.update_task(actors["user"], template.task_id, {"isRecurring": False})

    assert tasks_repo.children(template.task_id) == []


def test_manager_cannot_delete_tasks_of_others(container, actors, people):
    task = container.task_service.create_task(actors["user"], _payload(people["user"]))

    with pytest.raises(AuthorizationError):
        container.task_service.delete_task(actors["manager"], task.task_id)
    container.task_service.delete_task(actors["admin"], task.task_id)

    with pytest.raises(NotFoundError):
        container.task_service.get_task(actors["admin"], task.task_id)


def test_delete_notifies_assignee(container, actors, people, notifications_repo):
    task = container.task_service.create_task(actors["manager"], _payload(people["user"]))

    container.task_service.delete_task(actors["manager"], task.task_id)

    messages = [n.message for n in notifications_repo.for_user(people["user"].user_id)]
    assert messages[-1] == "Task deleted: Write report"


def test_stats_are_scoped_to_visible_tasks(container, actors, people):
    svc = container.task_service
    svc.create_task(actors["user"], _payload(people["user"], dueDate="2026-03-04T17:00:00"))
    svc.create_task(actors["user"], _payload(people["user"], dueDate="2026-03-08T17:00:00", priority="high"))
    late = svc.create_task(actors["user"], _payload(people["user"], dueDate="2026-03-01T17:00:00"))
    svc.create_task(actors["manager"], _payload(people["other"], dueDate="2026-02-01T17:00:00"))

    stats = svc.task_stats(actors["user"])
    assert stats.status_counts == {"todo": 3, "in-progress": 0, "completed": 0}
    assert stats.priority_counts == {"low": 0, "medium": 2, "high": 1}
    assert stats.due_today_count == 1
    assert stats.due_this_week_count == 2
    assert stats.overdue_count == 1

    svc.update_task(actors["user"], late.task_id, {"status": "completed"})
    assert svc.task_stats(actors["user"]).overdue_count == 0
    assert svc.task_stats(actors["admin"]).overdue_count == 1
