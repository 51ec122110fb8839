"""Pydantic schemas for tasks.

- TaskCreate: what you POST to create a task
- StatusChange: what you PATCH to move a task to another status
- TaskRead: what the API and the dashboard return (owner id is never exposed)
"""

from datetime import datetime, time, timezone
from typing import Optional

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from taskmanager.validation import parse_day


class TaskCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=500)
    due_date: Optional[datetime] = None
    status: Optional[str] = None

    @field_validator("due_date", mode="before")
    @classmethod
    def accept_day_dates(cls, value):
        """A bare YYYY-MM-DD string means midnight UTC on that day."""
        if isinstance(value, str):
            day = parse_day(value)
            if day is not None:
                return datetime.combine(day, time.min, tzinfo=timezone.utc)
        return value

    @field_validator("due_date")
    @classmethod
    def assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class StatusChange(BaseModel):
    status: str


class TaskRead(BaseModel):
    id: int
    name: str
    due_date: Optional[datetime]
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


task_list_adapter = TypeAdapter(list[TaskRead])


def dump_tasks(tasks) -> bytes:
    """Serialize ORM tasks to a JSON array (dashboard frames)."""
    return task_list_adapter.dump_json(
        [TaskRead.model_validate(t) for t in tasks]
    )
