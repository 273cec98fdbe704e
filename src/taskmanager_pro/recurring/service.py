from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..common.datetime_utils import now_local, start_of_day
from ..core.constants import DEFAULT_UPCOMING_DAYS, MAX_INSTANCES_PER_RUN
from ..core.enums import NotificationType, TaskStatus
from ..notifications.service import NotificationService
from ..recurrence.rule import RecurrenceRule, next_occurrence, occurrences_between
from ..tasks.model import NewTask, Task
from ..tasks.repository import TaskRepository

logger = logging.getLogger(__name__)

# Upper bound on occurrences walked while fast-forwarding a stale series.
_MAX_WALK = 5000


@dataclass
class RecurringRunResult:
    completed_processed: int = 0
    upcoming_created: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "completed_processed": self.completed_processed,
            "upcoming_created": self.upcoming_created,
            "errors": list(self.errors),
        }


class RecurringTaskService:
    """Generates instances of recurring task templates.

    Instances are linked to their template through ``parent_task_id`` and
    are unique per (template, due date), so every entry point is safe to
    run repeatedly.
    """

    def __init__(
        self,
        tasks: TaskRepository,
        notifications: NotificationService,
        *,
        horizon_days: int = DEFAULT_UPCOMING_DAYS,
        max_per_run: int = MAX_INSTANCES_PER_RUN,
        clock: Callable[[], datetime] = now_local,
    ):
        self._tasks = tasks
        self._notifications = notifications
        self._horizon_days = int(horizon_days)
        self._max_per_run = int(max_per_run)
        self._clock = clock

    def _anchor(self, template: Task) -> datetime:
        latest = self._tasks.latest_child(template.task_id)
        return latest.due_date if latest else template.due_date

    def _insert_instance(self, template: Task, due_date: datetime) -> Task:
        task_id = self._tasks.create(
            NewTask(
                title=template.title,
                description=template.description,
                due_date=due_date,
                priority=template.priority,
                assigned_to=template.assigned_to,
                created_by=template.created_by,
                status=TaskStatus.TODO,
                is_recurring=False,
                parent_task_id=template.task_id,
            )
        )
        logger.info("Created instance id=%s of recurring task id=%s due %s", task_id, template.task_id, due_date)
        self._notifications.notify(
            template.assigned_to,
            f"New recurring task instance: {template.title}",
            NotificationType.TASK_ASSIGNED,
            task_id,
        )
        created = self._tasks.get_by_id(task_id)
        if created is None:
            raise RuntimeError(f"Instance id={task_id} vanished after insert")
        return created

    def create_next_instance(self, template: Task) -> Optional[Task]:
        """Create the occurrence following the latest existing one.

        Returns None when the task is not a template, the series has ended,
        or that occurrence already exists.
        """
        rule = RecurrenceRule.from_task(template)
        if rule is None or template.parent_task_id is not None:
            return None

        due = next_occurrence(rule, self._anchor(template))
        if due is None:
            logger.debug("Recurring task id=%s has ended", template.task_id)
            return None
        if self._tasks.child_exists(template.task_id, due):
            return None
        return self._insert_instance(template, due)

    def advance_series(self, task: Task) -> Optional[Task]:
        """Called when ``task`` (a template or one of its instances) is completed."""
        template = task
        if task.parent_task_id is not None:
            template = self._tasks.get_by_id(task.parent_task_id)
            if template is None:
                return None
        return self.create_next_instance(template)

    def reschedule(self, template: Task) -> Optional[Task]:
        """Drop open instances and regenerate the next one under the current rule.

        Completed instances are kept, so the series resumes after the last
        completed one, or after the template's due date when there is none.
        """
        removed = self._tasks.delete_pending_children(template.task_id)
        if removed:
            logger.info("Removed %d pending instance(s) of recurring task id=%s", removed, template.task_id)
        return self.create_next_instance(template)

    def process_completed_recurring_tasks(self, result: Optional[RecurringRunResult] = None) -> int:
        """Create the next instance for every series whose latest instance is done."""
        result = result or RecurringRunResult()
        created = 0
        for template in self._tasks.list_active_templates(as_of=self._clock()):
            try:
                latest = self._tasks.latest_child(template.task_id)
                status = latest.status if latest else template.status
                if status != TaskStatus.COMPLETED:
                    continue
                if self.create_next_instance(template):
                    created += 1
            except Exception as e:
                logger.exception("Failed to process completed recurring task id=%s", template.task_id)
                result.errors.append(f"task {template.task_id}: {e}")
        result.completed_processed += created
        return created

    def generate_upcoming_recurring_tasks(
        self,
        *,
        now: Optional[datetime] = None,
        horizon_days: Optional[int] = None,
        result: Optional[RecurringRunResult] = None,
    ) -> int:
        """Create missing occurrences due between today and ``now + horizon_days``."""
        result = result or RecurringRunResult()
        now = now or self._clock()
        window_start = start_of_day(now.date())
        window_end = now + timedelta(days=self._horizon_days if horizon_days is None else int(horizon_days))

        created = 0
        for template in self._tasks.list_active_templates(as_of=now):
            try:
                created += self._fill_window(template, window_start, window_end)
            except Exception as e:
                logger.exception("Failed to generate upcoming instances for task id=%s", template.task_id)
                result.errors.append(f"task {template.task_id}: {e}")
        result.upcoming_created += created
        return created

    def _fill_window(self, template: Task, window_start: datetime, window_end: datetime) -> int:
        rule = RecurrenceRule.from_task(template)
        if rule is None:
            return 0

        created = 0
        for due in occurrences_between(rule, self._anchor(template), window_end, limit=_MAX_WALK):
            if due < window_start:
                continue
            if created >= self._max_per_run:
                logger.warning("Recurring task id=%s hit the per-run instance cap", template.task_id)
                break
            if not self._tasks.child_exists(template.task_id, due):
                self._insert_instance(template, due)
                created += 1
        return created

    def run_daily(self, *, now: Optional[datetime] = None) -> RecurringRunResult:
        """Entry point for the midnight job."""
        result = RecurringRunResult()
        logger.info("Running scheduled task: processing recurring tasks")
        self.process_completed_recurring_tasks(result)
        self.generate_upcoming_recurring_tasks(now=now, result=result)
        logger.info(
            "Recurring run done: %d from completed series, %d upcoming, %d error(s)",
            result.completed_processed,
            result.upcoming_created,
            len(result.errors),
        )
        return result
