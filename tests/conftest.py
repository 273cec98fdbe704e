from __future__ import annotations

from datetime import datetime

import pytest

from taskmanager_pro.container import wire_services
from taskmanager_pro.core.enums import Role
from taskmanager_pro.main import create_app
from taskmanager_pro.rbac.policy import Actor

from fakes import InMemoryNotifications, InMemoryTasks, InMemoryUsers

# Wednesday
FIXED_NOW = datetime(2026, 3, 4, 9, 0, 0)


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def users_repo() -> InMemoryUsers:
    return InMemoryUsers()


@pytest.fixture
def tasks_repo(users_repo) -> InMemoryTasks:
    return InMemoryTasks(users_repo)


@pytest.fixture
def notifications_repo() -> InMemoryNotifications:
    return InMemoryNotifications()


@pytest.fixture
def people(users_repo):
    """One account per role plus a second regular user."""
    return {
        "admin": users_repo.add("Ada Admin", "admin@example.com", Role.ADMIN),
        "manager": users_repo.add("Max Manager", "manager@example.com", Role.MANAGER),
        "user": users_repo.add("Uma User", "user@example.com", Role.USER),
        "other": users_repo.add("Otto Other", "other@example.com", Role.USER),
    }


@pytest.fixture
def actors(people):
    return {k: Actor(user_id=u.user_id, role=u.role) for k, u in people.items()}


@pytest.fixture
def container(users_repo, tasks_repo, notifications_repo):
    return wire_services(
        users_repo=users_repo,
        tasks_repo=tasks_repo,
        notifications_repo=notifications_repo,
        horizon_days=7,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def app(container):
    app = create_app("taskmanager_pro.config.testing", container=container)
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login_as(client, people):
    def _login(key: str):
        user = people[key]
        with client.session_transaction() as sess:
            sess["user_id"] = user.user_id
            sess["role"] = user.role.value
        return user

    return _login
