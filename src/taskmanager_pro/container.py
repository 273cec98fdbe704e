from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .database.connection import DBConfig, DatabaseConnection
from .notifications.mysql_notification_repository import MySQLNotificationRepository
from .notifications.repository import NotificationRepository
from .notifications.service import NotificationService
from .recurring.service import RecurringTaskService
from .reports.service import ReportService
from .tasks.mysql_task_repository import MySQLTaskRepository
from .tasks.repository import TaskRepository
from .tasks.service import TaskService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    users_repo: UserRepository
    tasks_repo: TaskRepository
    notifications_repo: NotificationRepository

    auth_service: AuthService
    user_service: UserService
    notification_service: NotificationService
    recurring_service: RecurringTaskService
    task_service: TaskService
    report_service: ReportService


def wire_services(
    *,
    users_repo: UserRepository,
    tasks_repo: TaskRepository,
    notifications_repo: NotificationRepository,
    conn: Optional[DatabaseConnection] = None,
    horizon_days: int = 7,
    **service_kwargs: Any,
) -> Container:
    """Build the service graph on top of any repository implementations.

    ``service_kwargs`` may carry ``clock`` for deterministic tests.
    """
    notification_service = NotificationService(notifications_repo)
    recurring_service = RecurringTaskService(
        tasks_repo,
        notification_service,
        horizon_days=horizon_days,
        **service_kwargs,
    )
    task_service = TaskService(
        tasks_repo,
        users_repo,
        notification_service,
        recurring_service,
        **service_kwargs,
    )

    return Container(
        conn=conn,
        users_repo=users_repo,
        tasks_repo=tasks_repo,
        notifications_repo=notifications_repo,
        auth_service=AuthService(users_repo),
        user_service=UserService(users_repo),
        notification_service=notification_service,
        recurring_service=recurring_service,
        task_service=task_service,
        report_service=ReportService(tasks_repo),
    )


def build_container(*, db_config: dict, retries: int = 3, retry_seconds: float = 5.0, horizon_days: int = 7) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
        connect_retries=int(retries),
        retry_seconds=float(retry_seconds),
    )
    conn = DatabaseConnection.get_instance(config)

    return wire_services(
        conn=conn,
        users_repo=MySQLUserRepository(conn),
        tasks_repo=MySQLTaskRepository(conn),
        notifications_repo=MySQLNotificationRepository(conn),
        horizon_days=horizon_days,
    )
