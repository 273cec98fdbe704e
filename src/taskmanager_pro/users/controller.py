from __future__ import annotations

import logging

from flask import Flask, jsonify, session

from ..common.http import json_body
from ..container import Container
from ..rbac.guards import all_permissions_required, login_required, permission_required, require_actor
from ..rbac.permissions import USERS_CREATE, USERS_DELETE, USERS_MANAGE_ROLES, USERS_READ

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    def _start_session(s_user) -> None:
        session.clear()
        session.permanent = True
        session["user_id"] = s_user.user_id
        session["role"] = s_user.role.value

    @app.route("/api/auth/register", methods=["POST"], endpoint="auth_register")
    def auth_register():
        data = json_body()
        s_user = container.auth_service.register(
            name=data.get("name", ""),
            email=data.get("email", ""),
            password=data.get("password", ""),
        )
        _start_session(s_user)
        return jsonify({"message": "User registered successfully", "user": s_user.to_dict()}), 201

    @app.route("/api/auth/login", methods=["POST"], endpoint="auth_login")
    def auth_login():
        data = json_body()
        s_user = container.auth_service.authenticate(data.get("email", ""), data.get("password", ""))
        _start_session(s_user)
        logger.info("User id=%s logged in", s_user.user_id)
        return jsonify({"message": "Login successful", "user": s_user.to_dict()})

    @app.route("/api/auth/logout", methods=["POST"], endpoint="auth_logout")
    def auth_logout():
        session.clear()
        return jsonify({"message": "Logged out"})

    @app.route("/api/auth/me", methods=["GET"], endpoint="auth_me")
    @login_required
    def auth_me():
        user = container.user_service.get_profile(require_actor())
        return jsonify(user.to_public_dict())

    @app.route("/api/users", methods=["GET"], endpoint="list_users")
    @permission_required(USERS_READ)
    def list_users():
        users = container.user_service.list_users(require_actor())
        return jsonify([u.to_public_dict() for u in users])

    @app.route("/api/users", methods=["POST"], endpoint="create_user")
    @permission_required(USERS_CREATE)
    def create_user():
        data = json_body()
        user = container.user_service.create_user(
            require_actor(),
            name=data.get("name", ""),
            email=data.get("email", ""),
            password=data.get("password", ""),
            role=data.get("role", "user"),
        )
        return jsonify({"message": "User created successfully", "user": user.to_public_dict()}), 201

    @app.route("/api/users/profile", methods=["GET"], endpoint="get_profile")
    @login_required
    def get_profile():
        user = container.user_service.get_profile(require_actor())
        return jsonify(user.to_public_dict())

    @app.route("/api/users/profile", methods=["PUT"], endpoint="update_profile")
    @login_required
    def update_profile():
        data = json_body()
        user = container.user_service.update_profile(
            require_actor(),
            name=data.get("name"),
            email=data.get("email"),
        )
        return jsonify({"message": "Profile updated successfully", "user": user.to_public_dict()})

    @app.route("/api/users/password", methods=["PUT"], endpoint="change_password")
    @login_required
    def change_password():
        data = json_body()
        container.user_service.change_password(
            require_actor(),
            current_password=data.get("currentPassword", data.get("current_password", "")),
            new_password=data.get("newPassword", data.get("new_password", "")),
        )
        return jsonify({"message": "Password updated successfully"})

    @app.route("/api/users/<int:user_id>/role", methods=["PUT"], endpoint="update_user_role")
    @all_permissions_required([USERS_READ, USERS_MANAGE_ROLES])
    def update_user_role(user_id: int):
        data = json_body()
        user = container.user_service.update_role(require_actor(), user_id=user_id, role=data.get("role", ""))
        return jsonify({"message": "User role updated successfully", "user": user.to_public_dict()})

    @app.route("/api/users/<int:user_id>", methods=["DELETE"], endpoint="delete_user")
    @permission_required(USERS_DELETE)
    def delete_user(user_id: int):
        container.user_service.delete_user(require_actor(), user_id=user_id)
        return jsonify({"message": "User deleted successfully"})
