from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.validators import parse_enum, require_email, require_min_length, require_non_empty
from ..core.constants import PASSWORD_MIN_LENGTH
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..rbac.permissions import USERS_CREATE, USERS_DELETE, USERS_MANAGE_ROLES, USERS_READ, has_permission
from ..rbac.policy import Actor
from .model import User
from .repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionUser:
    """What we store into the Flask session after login."""

    user_id: int
    name: str
    email: str
    role: Role

    def to_dict(self) -> dict:
        return {"id": self.user_id, "name": self.name, "email": self.email, "role": self.role.value}


def _session_user(user: User) -> SessionUser:
    return SessionUser(user_id=user.user_id, name=user.name, email=user.email, role=user.role)


def _require(actor: Actor, permission: str) -> None:
    if not has_permission(actor.role, permission):
        raise AuthorizationError("You do not have permission to perform this action")


class AuthService:
    """Use cases: register and authenticate."""

    def __init__(self, users: UserRepository):
        self._users = users

    def register(self, *, name: str, email: str, password: str) -> SessionUser:
        """Self-service sign-up. Always creates a plain user; admins assign roles."""
        name = require_non_empty(name, "Name")
        email = require_email(email)
        require_min_length(password, "Password", PASSWORD_MIN_LENGTH)
        role_v = Role.USER

        if self._users.get_by_email(email):
            raise ValidationError("User already exists")

        user_id = self._users.create_user(
            name=name,
            email=email,
            password_hash=generate_password_hash(password),
            role=role_v,
        )
        logger.info("Registered user %s (id=%s, role=%s)", email, user_id, role_v.value)
        return SessionUser(user_id=user_id, name=name, email=email, role=role_v)

    def authenticate(self, email: str, password: str) -> SessionUser:
        email = (email or "").strip().lower()
        if not password:
            raise ValidationError("Password is required")

        user = self._users.get_by_email(email)
        if not user:
            raise AuthenticationError("Invalid credentials")

        try:
            ok = check_password_hash(user.password_hash, password)
        except ValueError:
            # placeholder or corrupted hashes
            ok = False

        if not ok:
            logger.info("Failed login for %s", email)
            raise AuthenticationError("Invalid credentials")

        return _session_user(user)

    def load_actor(self, user_id: int) -> Optional[Actor]:
        """Resolve a session user id into an Actor with the current role."""
        user = self._users.get_by_id(int(user_id))
        if not user:
            return None
        return Actor(user_id=user.user_id, role=user.role)


class UserService:
    """Use cases: profile and user management."""

    def __init__(self, users: UserRepository):
        self._users = users

    def _get_or_404(self, user_id: int) -> User:
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("User not found")
        return user

    def list_users(self, actor: Actor) -> Sequence[User]:
        _require(actor, USERS_READ)
        return self._users.list_all()

    def get_profile(self, actor: Actor) -> User:
        return self._get_or_404(actor.user_id)

    def update_profile(self, actor: Actor, *, name: Optional[str] = None, email: Optional[str] = None) -> User:
        if name is not None:
            name = require_non_empty(name, "Name")
        if email is not None:
            email = require_email(email)
            existing = self._users.get_by_email(email)
            if existing and existing.user_id != actor.user_id:
                raise ConflictError("Email already in use")

        self._get_or_404(actor.user_id)
        self._users.update_profile(actor.user_id, name=name, email=email)
        return self._get_or_404(actor.user_id)

    def change_password(self, actor: Actor, *, current_password: str, new_password: str) -> None:
        if not current_password:
            raise ValidationError("Current password is required")
        require_min_length(new_password, "Password", PASSWORD_MIN_LENGTH)

        user = self._get_or_404(actor.user_id)
        if not check_password_hash(user.password_hash, current_password):
            raise ValidationError("Current password is incorrect")

        self._users.update_password(user.user_id, password_hash=generate_password_hash(new_password))
        logger.info("Password changed for user id=%s", user.user_id)

    def update_role(self, actor: Actor, *, user_id: int, role: str) -> User:
        _require(actor, USERS_MANAGE_ROLES)
        new_role = parse_enum(Role, role, "Invalid role")

        user = self._get_or_404(user_id)
        if user.user_id == actor.user_id:
            raise AuthorizationError("You cannot change your own role")

        self._users.update_role(user.user_id, role=new_role)
        logger.info("User id=%s role %s -> %s (by id=%s)", user.user_id, user.role.value, new_role.value, actor.user_id)
        return self._get_or_404(user.user_id)

    def create_user(self, actor: Actor, *, name: str, email: str, password: str, role: str) -> User:
        _require(actor, USERS_CREATE)
        name = require_non_empty(name, "Name")
        email = require_email(email)
        require_min_length(password, "Password", PASSWORD_MIN_LENGTH)
        role_v = parse_enum(Role, role, "Invalid role")

        if self._users.get_by_email(email):
            raise ConflictError("Email already in use")

        user_id = self._users.create_user(
            name=name,
            email=email,
            password_hash=generate_password_hash(password),
            role=role_v,
        )
        return self._get_or_404(user_id)

    def delete_user(self, actor: Actor, *, user_id: int) -> None:
        _require(actor, USERS_DELETE)
        user = self._get_or_404(user_id)
        if user.user_id == actor.user_id:
            raise AuthorizationError("You cannot delete your own account")

        if not self._users.delete_by_id(user.user_id):
            raise ValidationError("Failed to delete user")
        logger.info("User id=%s deleted by id=%s", user.user_id, actor.user_id)
