from __future__ import annotations

import pytest
from flask import Flask, g

from taskmanager_pro.core.enums import Role
from taskmanager_pro.core.exceptions import AuthenticationError, AuthorizationError
from taskmanager_pro.rbac.guards import (
    FORBIDDEN_MESSAGE,
    all_permissions_required,
    any_permission_required,
    login_required,
    permission_required,
)
from taskmanager_pro.rbac.permissions import REPORTS_EXPORT, USERS_DELETE, USERS_READ
from taskmanager_pro.rbac.policy import Actor


@pytest.fixture()
def ctx():
    app = Flask(__name__)
    with app.test_request_context():
        yield


def _view():
    return "ok"


def test_login_required_without_actor(ctx):
    with pytest.raises(AuthenticationError):
        login_required(_view)()


def test_permission_required_checks_role(ctx):
    g.actor = Actor(user_id=1, role=Role.MANAGER)

    assert permission_required(REPORTS_EXPORT)(_view)() == "ok"
    with pytest.raises(AuthorizationError) as e:
        permission_required(USERS_DELETE)(_view)()
    assert e.value.message == FORBIDDEN_MESSAGE


def test_any_and_all_permission_guards(ctx):
    g.actor = Actor(user_id=1, role=Role.MANAGER)

    assert any_permission_required([USERS_DELETE, USERS_READ])(_view)() == "ok"
    with pytest.raises(AuthorizationError):
        all_permissions_required([USERS_DELETE, USERS_READ])(_view)()

    g.actor = Actor(user_id=2, role=Role.ADMIN)
    assert all_permissions_required([USERS_DELETE, USERS_READ])(_view)() == "ok"
