from __future__ import annotations

from datetime import datetime

import pytest

from taskmanager_pro.core.enums import Role, TaskPriority, TaskStatus
from taskmanager_pro.rbac.permissions import (
    REPORTS_EXPORT,
    REPORTS_VIEW,
    SYSTEM_SETTINGS,
    TASKS_CREATE,
    TASKS_READ_ALL,
    USERS_DELETE,
    USERS_MANAGE_ROLES,
    USERS_READ,
    has_all_permissions,
    has_any_permission,
    has_permission,
    permissions_for,
)
from taskmanager_pro.rbac.policy import Actor, can_delete_task, can_update_task, can_view_task
from taskmanager_pro.tasks.model import Task


def _task(created_by: int, assigned_to: int) -> Task:
    return Task(
        task_id=1,
        title="t",
        description="d",
        due_date=datetime(2026, 3, 5, 9, 0),
        priority=TaskPriority.LOW,
        status=TaskStatus.TODO,
        assigned_to=assigned_to,
        created_by=created_by,
    )


@pytest.mark.parametrize(
    "role, permission, expected",
    [
        (Role.ADMIN, SYSTEM_SETTINGS, True),
        (Role.ADMIN, USERS_MANAGE_ROLES, True),
        (Role.MANAGER, TASKS_READ_ALL, True),
        (Role.MANAGER, REPORTS_EXPORT, True),
        (Role.MANAGER, USERS_DELETE, False),
        (Role.USER, TASKS_CREATE, True),
        (Role.USER, TASKS_READ_ALL, False),
        (Role.USER, REPORTS_VIEW, False),
    ],
)
def test_role_table(role, permission, expected):
    assert has_permission(role, permission) is expected


def test_roles_given_as_strings_are_accepted():
    assert has_permission("manager", USERS_READ)
    assert not has_permission("guest", TASKS_CREATE)
    assert not has_permission(None, TASKS_CREATE)


def test_any_and_all():
    assert has_any_permission(Role.USER, [USERS_READ, TASKS_CREATE])
    assert not has_all_permissions(Role.USER, [USERS_READ, TASKS_CREATE])
    assert has_all_permissions(Role.MANAGER, [USERS_READ, TASKS_CREATE])


def test_permissions_for_lists_in_table_order():
    perms = permissions_for(Role.USER)
    assert perms == ["tasks:create", "tasks:read", "tasks:update", "tasks:delete", "tasks:assign"]
    assert permissions_for("nobody") == []
    assert len(permissions_for(Role.ADMIN)) == 16


def test_view_rules():
    user = Actor(user_id=3, role=Role.USER)
    manager = Actor(user_id=2, role=Role.MANAGER)

    assert can_view_task(user, _task(created_by=1, assigned_to=3))
    assert can_view_task(user, _task(created_by=3, assigned_to=1))
    assert not can_view_task(user, _task(created_by=1, assigned_to=4))
    assert can_view_task(manager, _task(created_by=1, assigned_to=4))


def test_update_rules():
    user = Actor(user_id=3, role=Role.USER)
    manager = Actor(user_id=2, role=Role.MANAGER)

    # assignees cannot edit tasks they did not create
    assert not can_update_task(user, _task(created_by=1, assigned_to=3))
    assert can_update_task(user, _task(created_by=3, assigned_to=4))
    assert can_update_task(manager, _task(created_by=1, assigned_to=4))


def test_managers_delete_only_their_own_tasks():
    manager = Actor(user_id=2, role=Role.MANAGER)
    admin = Actor(user_id=1, role=Role.ADMIN)

    assert can_delete_task(manager, _task(created_by=2, assigned_to=3))
    assert not can_delete_task(manager, _task(created_by=3, assigned_to=3))
    assert can_delete_task(admin, _task(created_by=3, assigned_to=3))
