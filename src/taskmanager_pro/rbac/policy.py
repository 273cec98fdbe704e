"""Ownership rules layered on top of the permission table.

Permissions say what a role may do in general; these helpers decide
whether a given actor may touch a given task.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role
from .permissions import TASKS_DELETE_ALL, TASKS_READ_ALL, TASKS_UPDATE_ALL, has_permission


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of a use case."""

    user_id: int
    role: Role


def is_owner_or_has_permission(actor: Actor, owner_id: Optional[int], permission: str) -> bool:
    if owner_id is not None and int(owner_id) == actor.user_id:
        return True
    return has_permission(actor.role, permission)


def can_view_all_tasks(actor: Actor) -> bool:
    return has_permission(actor.role, TASKS_READ_ALL)


def can_view_task(actor: Actor, task) -> bool:
    if actor.user_id in (task.created_by, task.assigned_to):
        return True
    return can_view_all_tasks(actor)


def can_update_task(actor: Actor, task) -> bool:
    return is_owner_or_has_permission(actor, task.created_by, TASKS_UPDATE_ALL)


def can_delete_task(actor: Actor, task) -> bool:
    # Managers hold tasks:delete-all in the table but may only delete their own tasks.
    if actor.role == Role.MANAGER:
        return task.created_by == actor.user_id
    return is_owner_or_has_permission(actor, task.created_by, TASKS_DELETE_ALL)
