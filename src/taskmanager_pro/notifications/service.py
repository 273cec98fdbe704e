from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..core.constants import NOTIFICATION_LIST_LIMIT
from ..core.enums import NotificationType
from ..core.exceptions import AuthorizationError, NotFoundError
from ..rbac.policy import Actor
from .model import Notification
from .repository import NotificationRepository

logger = logging.getLogger(__name__)


class NotificationService:
    """Persisted in-app notifications.

    Delivery to connected clients is out of scope; clients poll the API.
    """

    def __init__(self, notifications: NotificationRepository):
        self._notifications = notifications

    def notify(
        self,
        user_id: int,
        message: str,
        type: NotificationType = NotificationType.SYSTEM,
        task_id: Optional[int] = None,
    ) -> Optional[int]:
        """Store a notification. Never raises: a failed notification must
        not fail the task operation that triggered it."""
        try:
            return self._notifications.create(user_id=int(user_id), message=message, type=type, task_id=task_id)
        except Exception:
            logger.exception("Error creating notification for user id=%s", user_id)
            return None

    def _get_owned(self, actor: Actor, notification_id: int, action: str) -> Notification:
        n = self._notifications.get_by_id(int(notification_id))
        if not n:
            raise NotFoundError("Notification not found")
        if n.user_id != actor.user_id:
            raise AuthorizationError(f"Not authorized to {action} this notification")
        return n

    def list_for_user(self, actor: Actor) -> Sequence[Notification]:
        return self._notifications.list_for_user(actor.user_id, limit=NOTIFICATION_LIST_LIMIT)

    def mark_read(self, actor: Actor, notification_id: int) -> Notification:
        n = self._get_owned(actor, notification_id, "update")
        self._notifications.mark_read(n.notification_id)
        return self._notifications.get_by_id(n.notification_id) or n

    def mark_all_read(self, actor: Actor) -> int:
        return self._notifications.mark_all_read(actor.user_id)

    def unread_count(self, actor: Actor) -> int:
        return self._notifications.count_unread(actor.user_id)

    def delete(self, actor: Actor, notification_id: int) -> None:
        n = self._get_owned(actor, notification_id, "delete")
        self._notifications.delete(n.notification_id)
