"""Recurrence rules and next-occurrence arithmetic.

Weekdays follow the browser convention used by API clients:
0 = Sunday ... 6 = Saturday. Weeks start on Sunday.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterator, Optional, Sequence

from dateutil.relativedelta import relativedelta

from ..core.constants import MAX_RECURRING_INTERVAL
from ..core.enums import RecurringType
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class RecurrenceRule:
    recurring_type: RecurringType
    interval: int = 1
    days: tuple[int, ...] = ()
    day_of_month: Optional[int] = None
    end_date: Optional[datetime] = None

    @classmethod
    def from_task(cls, task) -> Optional["RecurrenceRule"]:
        """Build the rule stored on a recurring task, or None for plain tasks."""
        if not task.is_recurring or task.recurring_type is None:
            return None

        day_of_month = task.recurring_date
        if task.recurring_type == RecurringType.MONTHLY and day_of_month is None:
            # Pin to the template's day so short months do not drift the series.
            day_of_month = task.due_date.day

        return cls(
            recurring_type=task.recurring_type,
            interval=int(task.recurring_interval or 1),
            days=tuple(task.recurring_days or ()),
            day_of_month=day_of_month,
            end_date=task.recurring_end_date,
        )


def validate_rule(
    *,
    recurring_type: Optional[RecurringType],
    interval: Optional[int] = None,
    days: Optional[Sequence[int]] = None,
    day_of_month: Optional[int] = None,
) -> None:
    if recurring_type is None:
        raise ValidationError("Recurring type is required for recurring tasks")
    if interval is not None and not 1 <= int(interval) <= MAX_RECURRING_INTERVAL:
        raise ValidationError(f"Recurring interval must be between 1 and {MAX_RECURRING_INTERVAL}")
    for d in days or ():
        if not 0 <= int(d) <= 6:
            raise ValidationError("Recurring days must be between 0 and 6")
    if day_of_month is not None and not 1 <= int(day_of_month) <= 31:
        raise ValidationError("Recurring date must be between 1 and 31")


def js_weekday(value: datetime) -> int:
    """Weekday with Sunday = 0."""
    return (value.weekday() + 1) % 7


def _next_weekly(rule: RecurrenceRule, after: datetime, interval: int) -> datetime:
    days = sorted(set(rule.days))
    if not days:
        return after + timedelta(weeks=interval)

    today = js_weekday(after)
    later = [d for d in days if d > today]
    if later:
        return after + timedelta(days=later[0] - today)

    week_start = after - timedelta(days=today)
    return week_start + timedelta(weeks=interval, days=days[0])


def next_occurrence(rule: RecurrenceRule, after: datetime) -> Optional[datetime]:
    """Return the first occurrence strictly after ``after``.

    The time of day of ``after`` is kept. Returns None once the series has
    passed its end date (the end date itself is still a valid day) or
    would run beyond the last representable date.
    """
    if rule.recurring_type not in tuple(RecurringType):
        raise ValidationError(f"Unsupported recurring type: {rule.recurring_type}")
    interval = max(1, int(rule.interval or 1))

    try:
        if rule.recurring_type == RecurringType.WEEKLY:
            nxt = _next_weekly(rule, after, interval)
        elif rule.recurring_type == RecurringType.MONTHLY:
            # relativedelta clamps day 31 to the last day of shorter months
            nxt = after + relativedelta(months=interval, day=rule.day_of_month or after.day)
        else:
            nxt = after + timedelta(days=interval)
    except (OverflowError, ValueError):
        # past datetime.max: nothing left to schedule
        return None

    if rule.end_date is not None and nxt.date() > rule.end_date.date():
        return None
    return nxt


def occurrences_between(
    rule: RecurrenceRule,
    anchor: datetime,
    until: datetime,
    *,
    limit: int,
) -> Iterator[datetime]:
    """Yield successive occurrences after ``anchor`` that fall on or before ``until``."""
    current = anchor
    produced = 0
    while produced < limit:
        nxt = next_occurrence(rule, current)
        if nxt is None or nxt > until:
            return
        yield nxt
        produced += 1
        current = nxt
