from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import json_body
from ..container import Container
from ..rbac.guards import any_permission_required, permission_required, require_actor
from ..rbac.permissions import TASKS_CREATE, TASKS_DELETE, TASKS_DELETE_ALL, TASKS_READ, TASKS_UPDATE, TASKS_UPDATE_ALL
from .validation import parse_task_query


def register(app: Flask, container: Container) -> None:
    @app.route("/api/tasks", methods=["POST"], endpoint="create_task")
    @permission_required(TASKS_CREATE)
    def create_task():
        task = container.task_service.create_task(require_actor(), json_body())
        return jsonify({"message": "Task created successfully", "task": task.to_dict()}), 201

    @app.route("/api/tasks", methods=["GET"], endpoint="list_tasks")
    @permission_required(TASKS_READ)
    def list_tasks():
        query = parse_task_query(request.args.to_dict())
        tasks = container.task_service.list_tasks(require_actor(), query)
        return jsonify([t.to_dict() for t in tasks])

    @app.route("/api/tasks/stats", methods=["GET"], endpoint="task_stats")
    @permission_required(TASKS_READ)
    def task_stats():
        stats = container.task_service.task_stats(require_actor())
        return jsonify(stats.to_dict())

    @app.route("/api/tasks/<int:task_id>", methods=["GET"], endpoint="get_task")
    @permission_required(TASKS_READ)
    def get_task(task_id: int):
        task = container.task_service.get_task(require_actor(), task_id)
        return jsonify(task.to_dict())

    @app.route("/api/tasks/<int:task_id>/instances", methods=["GET"], endpoint="list_task_instances")
    @permission_required(TASKS_READ)
    def list_task_instances(task_id: int):
        tasks = container.task_service.list_instances(require_actor(), task_id)
        return jsonify([t.to_dict() for t in tasks])

    @app.route("/api/tasks/<int:task_id>", methods=["PUT"], endpoint="update_task")
    @any_permission_required([TASKS_UPDATE, TASKS_UPDATE_ALL])
    def update_task(task_id: int):
        task = container.task_service.update_task(require_actor(), task_id, json_body())
        return jsonify({"message": "Task updated successfully", "task": task.to_dict()})

    @app.route("/api/tasks/<int:task_id>", methods=["DELETE"], endpoint="delete_task")
    @any_permission_required([TASKS_DELETE, TASKS_DELETE_ALL])
    def delete_task(task_id: int):
        container.task_service.delete_task(require_actor(), task_id)
        return jsonify({"message": "Task deleted successfully"})
