from __future__ import annotations

from functools import wraps
from typing import Iterable, Optional

from flask import g

from ..core.exceptions import AuthenticationError, AuthorizationError
from .permissions import has_all_permissions, has_any_permission, has_permission
from .policy import Actor

FORBIDDEN_MESSAGE = "You do not have permission to perform this action"


def current_actor() -> Optional[Actor]:
    """Actor resolved for this request by the session loader, if any."""
    return g.get("actor")


def require_actor() -> Actor:
    actor = current_actor()
    if actor is None:
        raise AuthenticationError("Authentication required")
    return actor


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        require_actor()
        return view(*args, **kwargs)

    return wrapper


def permission_required(permission: str):
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            actor = require_actor()
            if not has_permission(actor.role, permission):
                raise AuthorizationError(FORBIDDEN_MESSAGE)
            return view(*args, **kwargs)

        return wrapper

    return decorator


def any_permission_required(permissions: Iterable[str]):
    permissions = tuple(permissions)

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            actor = require_actor()
            if not has_any_permission(actor.role, permissions):
                raise AuthorizationError(FORBIDDEN_MESSAGE)
            return view(*args, **kwargs)

        return wrapper

    return decorator


def all_permissions_required(permissions: Iterable[str]):
    permissions = tuple(permissions)

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            actor = require_actor()
            if not has_all_permissions(actor.role, permissions):
                raise AuthorizationError(FORBIDDEN_MESSAGE)
            return view(*args, **kwargs)

        return wrapper

    return decorator
