from __future__ import annotations

from datetime import datetime

import pandas as pd
import pytest

from taskmanager_pro.core.enums import Role, TaskPriority, TaskStatus
from taskmanager_pro.core.exceptions import AuthorizationError, ValidationError
from taskmanager_pro.rbac.policy import Actor
from taskmanager_pro.reports.service import EXPORT_COLUMNS, ReportService
from taskmanager_pro.tasks.model import NewTask

from fakes import InMemoryTasks, InMemoryUsers

MANAGER = Actor(user_id=1, role=Role.MANAGER)


@pytest.fixture
def repo():
    users = InMemoryUsers()
    users.add("Max", "max@example.com", Role.MANAGER)
    users.add("Ann", "ann@example.com", Role.USER)
    users.add("Bo", "bo@example.com", Role.USER)
    tasks = InMemoryTasks(users)

    def add(assignee, due, status=TaskStatus.TODO, completed_at=None, priority=TaskPriority.MEDIUM):
        tid = tasks.create(
            NewTask(
                title=f"task for {assignee}",
                description="d",
                due_date=due,
                priority=priority,
                assigned_to=assignee,
                created_by=1,
                status=status,
            )
        )
        if completed_at:
            tasks.update(tid, {"completed_at": completed_at})

    # created_at is 2026-01-01 09:00 for every fake row
    add(2, datetime(2026, 1, 10), TaskStatus.COMPLETED, datetime(2026, 1, 5, 9, 0), TaskPriority.HIGH)
    add(2, datetime(2026, 1, 10), TaskStatus.COMPLETED, datetime(2026, 1, 11, 9, 0))
    add(2, datetime(2026, 1, 20), TaskStatus.IN_PROGRESS)
    add(3, datetime(2026, 1, 15), TaskStatus.COMPLETED, datetime(2026, 1, 3, 9, 0), TaskPriority.LOW)
    add(3, datetime(2026, 2, 15))
    return tasks


def test_build_report_summary(repo):
    report = ReportService(repo).build_report(MANAGER)
    s = report.summary

    assert s["total"] == 5
    assert s["completed"] == 3
    assert s["completion_rate"] == 60.0
    assert s["active_users"] == 2
    assert s["tasks_per_user"] == 2.5
    # 4, 10 and 2 days
    assert s["avg_completion_days"] == 5.3
    assert s["on_time_rate"] == 66.7

    assert report.status_distribution == {"todo": 1, "in-progress": 1, "completed": 3}
    assert report.priority_distribution == {"low": 1, "medium": 3, "high": 1}


def test_user_performance_is_sorted_by_completed(repo):
    perf = ReportService(repo).build_report(MANAGER).user_performance

    assert [p["name"] for p in perf] == ["Ann", "Bo"]
    assert perf[0] == {
        "user_id": 2,
        "name": "Ann",
        "assigned": 3,
        "completed": 2,
        "on_time": 1,
        "completion_rate": 66.7,
    }


def test_date_range_filters_by_due_date(repo):
    report = ReportService(repo).build_report(
        MANAGER, start=datetime(2026, 1, 1), end=datetime(2026, 2, 1)
    )
    assert report.summary["total"] == 4

    with pytest.raises(ValidationError):
        ReportService(repo).build_report(MANAGER, start=datetime(2026, 2, 1), end=datetime(2026, 1, 1))


def test_reports_need_permission(repo):
    user = Actor(user_id=2, role=Role.USER)
    with pytest.raises(AuthorizationError):
        ReportService(repo).build_report(user)
    with pytest.raises(AuthorizationError):
        ReportService(repo).export_tasks_xlsx(user)


def test_export_writes_a_tasks_sheet(repo):
    out = ReportService(repo).export_tasks_xlsx(MANAGER)

    df = pd.read_excel(out, sheet_name="Tasks", engine="openpyxl")
    assert list(df.columns) == EXPORT_COLUMNS
    assert len(df) == 5
    assert set(df["Assignee"]) == {"Ann", "Bo"}
