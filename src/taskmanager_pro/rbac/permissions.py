"""Static role -> permission table.

Permission strings are ``<resource>:<action>``. Roles not listed here have
no permissions at all.
"""
from __future__ import annotations

from typing import Iterable, Mapping, Optional, Union

from ..core.enums import Role

TASKS_CREATE = "tasks:create"
TASKS_READ = "tasks:read"
TASKS_UPDATE = "tasks:update"
TASKS_DELETE = "tasks:delete"
TASKS_ASSIGN = "tasks:assign"
TASKS_READ_ALL = "tasks:read-all"
TASKS_UPDATE_ALL = "tasks:update-all"
TASKS_DELETE_ALL = "tasks:delete-all"
USERS_READ = "users:read"
USERS_UPDATE = "users:update"
USERS_CREATE = "users:create"
USERS_DELETE = "users:delete"
USERS_MANAGE_ROLES = "users:manage-roles"
REPORTS_VIEW = "reports:view"
REPORTS_EXPORT = "reports:export"
SYSTEM_SETTINGS = "system:settings"

_USER_PERMISSIONS = (
    TASKS_CREATE,
    TASKS_READ,
    TASKS_UPDATE,
    TASKS_DELETE,
    TASKS_ASSIGN,
)

_MANAGER_PERMISSIONS = _USER_PERMISSIONS + (
    TASKS_READ_ALL,
    TASKS_UPDATE_ALL,
    TASKS_DELETE_ALL,
    USERS_READ,
    REPORTS_VIEW,
    REPORTS_EXPORT,
)

_ADMIN_PERMISSIONS = (
    TASKS_CREATE,
    TASKS_READ,
    TASKS_UPDATE,
    TASKS_DELETE,
    TASKS_ASSIGN,
    TASKS_READ_ALL,
    TASKS_UPDATE_ALL,
    TASKS_DELETE_ALL,
    USERS_READ,
    USERS_UPDATE,
    USERS_CREATE,
    USERS_DELETE,
    USERS_MANAGE_ROLES,
    REPORTS_VIEW,
    REPORTS_EXPORT,
    SYSTEM_SETTINGS,
)

ROLE_PERMISSIONS: Mapping[Role, frozenset[str]] = {
    Role.ADMIN: frozenset(_ADMIN_PERMISSIONS),
    Role.MANAGER: frozenset(_MANAGER_PERMISSIONS),
    Role.USER: frozenset(_USER_PERMISSIONS),
}

# Listing order for API output.
_ORDERED = {
    Role.ADMIN: _ADMIN_PERMISSIONS,
    Role.MANAGER: _MANAGER_PERMISSIONS,
    Role.USER: _USER_PERMISSIONS,
}

RoleLike = Union[Role, str, None]


def _as_role(role: RoleLike) -> Optional[Role]:
    if role is None or isinstance(role, Role):
        return role
    try:
        return Role(role)
    except ValueError:
        return None


def has_permission(role: RoleLike, permission: str) -> bool:
    r = _as_role(role)
    if r is None:
        return False
    return permission in ROLE_PERMISSIONS.get(r, frozenset())


def has_any_permission(role: RoleLike, permissions: Iterable[str]) -> bool:
    return any(has_permission(role, p) for p in permissions)


def has_all_permissions(role: RoleLike, permissions: Iterable[str]) -> bool:
    return all(has_permission(role, p) for p in permissions)


def permissions_for(role: RoleLike) -> list[str]:
    r = _as_role(role)
    if r is None:
        return []
    return list(_ORDERED.get(r, ()))
