from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import NotificationType


@dataclass(frozen=True)
class Notification:
    notification_id: int
    user_id: int
    message: str
    type: NotificationType
    read: bool
    task_id: Optional[int] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.notification_id,
            "user_id": self.user_id,
            "message": self.message,
            "type": self.type.value,
            "read": self.read,
            "task_id": self.task_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
