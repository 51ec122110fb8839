"""Task filter validation and translation.

A TaskFilter is whatever the client sent: query params on GET /tasks/,
or a JSON message on the dashboard websocket. FilterBuilder validates it
and combines it with the server-side owner id into a TaskQuery, a
conjunctive set of predicates that the store turns into bound-parameter
SQLAlchemy clauses. Client strings are never spliced into SQL.

A due-date filter is a calendar day and matches the half-open UTC range
[day 00:00, next day 00:00).
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import ColumnElement

from taskmanager.db.models import Task
from taskmanager.errors import ValidationError
from taskmanager.validation import ValidatorTable, parse_day

FILTER_FIELDS = ("q", "due_date", "status")


@dataclass(frozen=True)
class TaskFilter:
    """Untrusted filter criteria. Built per request or message, never stored."""

    q: Optional[str] = None
    due_date: Optional[str] = None
    status: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "TaskFilter":
        """Build from a decoded JSON message. Unknown keys are ignored."""
        if not isinstance(payload, dict):
            raise ValidationError("filter must be a JSON object")

        values: dict[str, Optional[str]] = {}
        for field in FILTER_FIELDS:
            value = payload.get(field)
            if value is not None and not isinstance(value, str):
                raise ValidationError(f"field '{field}' must be a string")
            values[field] = value
        return cls(**values)


@dataclass(frozen=True)
class TaskQuery:
    """Validated predicates for a task listing. Always scoped to one owner."""

    owner_id: int
    name_contains: Optional[str] = None
    due_from: Optional[datetime] = None
    due_before: Optional[datetime] = None
    status: Optional[str] = None

    def clauses(self) -> list[ColumnElement[bool]]:
        clauses: list[ColumnElement[bool]] = [Task.user_id == self.owner_id]
        if self.name_contains:
            clauses.append(Task.name.contains(self.name_contains, autoescape=True))
        if self.due_from is not None and self.due_before is not None:
            clauses.append(Task.due_date >= self.due_from)
            clauses.append(Task.due_date < self.due_before)
        if self.status is not None:
            clauses.append(Task.status == self.status)
        return clauses


def day_range(day_str: str) -> tuple[datetime, datetime]:
    """YYYY-MM-DD → (day 00:00 UTC, next day 00:00 UTC)."""
    day = parse_day(day_str)
    if day is None:
        raise ValidationError("due_date must be a date in YYYY-MM-DD format")
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


class FilterBuilder:
    """Validates a TaskFilter and binds it to the authenticated owner."""

    def __init__(self, validators: ValidatorTable):
        self.validators = validators

    def build(self, task_filter: TaskFilter, owner_id: int) -> TaskQuery:
        due_from = due_before = None
        if task_filter.due_date is not None:
            self.validators.require("day_date", task_filter.due_date, "due_date")
            due_from, due_before = day_range(task_filter.due_date)

        if task_filter.status is not None:
            self.validators.require("task_status", task_filter.status, "status")

        return TaskQuery(
            owner_id=owner_id,
            name_contains=task_filter.q or None,
            due_from=due_from,
            due_before=due_before,
            status=task_filter.status,
        )
