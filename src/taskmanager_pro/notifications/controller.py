from __future__ import annotations

from flask import Flask, jsonify

from ..container import Container
from ..rbac.guards import login_required, require_actor


def register(app: Flask, container: Container) -> None:
    service = container.notification_service

    @app.route("/api/notifications", methods=["GET"], endpoint="list_notifications")
    @login_required
    def list_notifications():
        return jsonify([n.to_dict() for n in service.list_for_user(require_actor())])

    @app.route("/api/notifications/unread-count", methods=["GET"], endpoint="unread_notification_count")
    @login_required
    def unread_notification_count():
        return jsonify({"count": service.unread_count(require_actor())})

    @app.route("/api/notifications/<int:notification_id>/read", methods=["PUT"], endpoint="mark_notification_read")
    @login_required
    def mark_notification_read(notification_id: int):
        n = service.mark_read(require_actor(), notification_id)
        return jsonify({"message": "Notification marked as read", "notification": n.to_dict()})

    @app.route("/api/notifications/read-all", methods=["PUT"], endpoint="mark_all_notifications_read")
    @login_required
    def mark_all_notifications_read():
        updated = service.mark_all_read(require_actor())
        return jsonify({"message": "All notifications marked as read", "updated": updated})

    @app.route("/api/notifications/<int:notification_id>", methods=["DELETE"], endpoint="delete_notification")
    @login_required
    def delete_notification(notification_id: int):
        service.delete(require_actor(), notification_id)
        return jsonify({"message": "Notification deleted"})
