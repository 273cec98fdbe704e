"""Request payload parsing for task routes.

Field errors are collected and raised together as one ValidationError whose
``details`` is a list of ``{"field", "message"}`` items.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional

from ..common.datetime_utils import parse_iso_datetime
from ..common.validators import parse_bool, parse_int
from ..core.constants import DEFAULT_TASK_LIMIT, MAX_RECURRING_INTERVAL
from ..core.enums import RecurringType, TaskPriority, TaskStatus
from ..core.exceptions import ValidationError
from .model import SORTABLE_FIELDS, TaskQuery

# camelCase names sent by browser clients.
_ALIASES = {
    "dueDate": "due_date",
    "assignedTo": "assigned_to",
    "createdBy": "created_by",
    "isRecurring": "is_recurring",
    "recurringType": "recurring_type",
    "recurringInterval": "recurring_interval",
    "recurringDays": "recurring_days",
    "recurringDate": "recurring_date",
    "recurringEndDate": "recurring_end_date",
    "sortBy": "sort_by",
    "sortOrder": "sort_order",
}

_REQUIRED_ON_CREATE = {
    "title": "Title is required",
    "description": "Description is required",
    "due_date": "Valid due date is required",
    "priority": "Priority must be low, medium, or high",
    "assigned_to": "Assignee is required",
}


def normalize_keys(data: Mapping[str, Any]) -> dict:
    return {_ALIASES.get(k, k): v for k, v in (data or {}).items()}


class _Errors:
    def __init__(self) -> None:
        self.items: list[dict] = []

    def add(self, field: str, message: str) -> None:
        self.items.append({"field": field, "message": message})

    def raise_if_any(self) -> None:
        if self.items:
            raise ValidationError(self.items[0]["message"], details=self.items)

    def int_field(self, name: str, value: Any, message: str, **bounds) -> Optional[int]:
        try:
            return parse_int(value, name, **bounds)
        except ValidationError:
            self.add(name, message)
            return None


def parse_task_payload(data: Mapping[str, Any], *, partial: bool) -> dict:
    """Validate a create (``partial=False``) or update payload.

    Returns only the fields present in the payload, converted to domain types.
    """
    raw = normalize_keys(data)
    errors = _Errors()
    out: dict = {}

    if not partial:
        for name, message in _REQUIRED_ON_CREATE.items():
            if raw.get(name) in (None, ""):
                errors.add(name, message)

    for name in ("title", "description"):
        if name in raw and raw[name] is not None:
            value = str(raw[name]).strip()
            if not value:
                errors.add(name, f"{name.capitalize()} cannot be empty")
            else:
                out[name] = value

    for name in ("due_date", "recurring_end_date"):
        if raw.get(name) not in (None, ""):
            try:
                out[name] = parse_iso_datetime(str(raw[name]))
            except ValueError:
                label = "due date" if name == "due_date" else "recurring end date"
                errors.add(name, f"Valid {label} is required")
        elif name == "recurring_end_date" and name in raw:
            out[name] = None

    if raw.get("priority") not in (None, ""):
        try:
            out["priority"] = TaskPriority(raw["priority"])
        except ValueError:
            errors.add("priority", "Priority must be low, medium, or high")

    if "status" in raw and raw["status"] is not None:
        try:
            out["status"] = TaskStatus(raw["status"])
        except ValueError:
            errors.add("status", "Invalid status")

    if raw.get("assigned_to") not in (None, ""):
        assignee = errors.int_field("assigned_to", raw["assigned_to"], "Assignee must be a user id")
        if assignee is not None:
            out["assigned_to"] = assignee

    if "is_recurring" in raw and raw["is_recurring"] is not None:
        try:
            out["is_recurring"] = parse_bool(raw["is_recurring"], "isRecurring")
        except ValidationError as e:
            errors.add("is_recurring", e.message)

    if raw.get("recurring_type") not in (None, ""):
        try:
            out["recurring_type"] = RecurringType(raw["recurring_type"])
        except ValueError:
            errors.add("recurring_type", "Recurring type must be daily, weekly, monthly, or custom")

    if raw.get("recurring_interval") is not None:
        interval = errors.int_field(
            "recurring_interval",
            raw["recurring_interval"],
            f"Recurring interval must be between 1 and {MAX_RECURRING_INTERVAL}",
            min_value=1,
            max_value=MAX_RECURRING_INTERVAL,
        )
        if interval is not None:
            out["recurring_interval"] = interval

    if "recurring_days" in raw and raw["recurring_days"] is not None:
        value = raw["recurring_days"]
        if not isinstance(value, (list, tuple)):
            errors.add("recurring_days", "Recurring days must be an array")
        else:
            try:
                days = {parse_int(d, "recurring_days", min_value=0, max_value=6) for d in value}
            except ValidationError:
                errors.add("recurring_days", "Recurring days must be between 0 and 6")
            else:
                out["recurring_days"] = tuple(sorted(days))

    if raw.get("recurring_date") is not None:
        day = errors.int_field(
            "recurring_date", raw["recurring_date"], "Recurring date must be between 1 and 31", min_value=1, max_value=31
        )
        if day is not None:
            out["recurring_date"] = day

    errors.raise_if_any()
    return out


def parse_task_query(args: Mapping[str, Any]) -> TaskQuery:
    """Build a TaskQuery from URL query arguments."""
    raw = normalize_keys(args)
    errors = _Errors()

    def _enum(name: str, enum_cls):
        v = raw.get(name)
        if v in (None, ""):
            return None
        try:
            return enum_cls(v)
        except ValueError:
            errors.add(name, f"Invalid {name.replace('_', ' ')}")
            return None

    def _int(name: str) -> Optional[int]:
        v = raw.get(name)
        if v in (None, ""):
            return None
        return errors.int_field(name, v, f"{name} must be a positive integer", min_value=1)

    is_recurring = None
    if raw.get("is_recurring") not in (None, ""):
        is_recurring = str(raw["is_recurring"]).lower() == "true"

    sort_by = raw.get("sort_by") or "due_date"
    if sort_by not in SORTABLE_FIELDS:
        errors.add("sort_by", f"sort_by must be one of: {', '.join(SORTABLE_FIELDS)}")

    sort_order = (raw.get("sort_order") or "asc").lower()
    if sort_order not in {"asc", "desc"}:
        errors.add("sort_order", "sort_order must be asc or desc")

    query = TaskQuery(
        status=_enum("status", TaskStatus),
        priority=_enum("priority", TaskPriority),
        search=(raw.get("search") or "").strip() or None,
        assigned_to=_int("assigned_to"),
        created_by=_int("created_by"),
        is_recurring=is_recurring,
        recurring_type=_enum("recurring_type", RecurringType),
        sort_by=sort_by,
        descending=sort_order == "desc",
        limit=min(_int("limit") or DEFAULT_TASK_LIMIT, DEFAULT_TASK_LIMIT),
    )
    errors.raise_if_any()
    return query
