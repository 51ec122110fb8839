"""Ownership policy — a user may only read or change their own tasks.

Existence is checked before ownership so a missing task is always 404,
never 403. Listings don't come through here: the owner constraint is
part of the list query itself (see services/filters.py).
"""

from typing import Optional

from taskmanager.db.models import Task
from taskmanager.errors import Forbidden, NotFound
from taskmanager.services.user_service import Identity


def ensure_owner(resource_owner_id: int, requester_id: int) -> None:
    if resource_owner_id != requester_id:
        raise Forbidden()


def authorize_task(task: Optional[Task], requester: Identity) -> Task:
    """Return `task` if it exists and belongs to `requester`."""
    if task is None:
        raise NotFound("task with given id does not exist")
    ensure_owner(task.user_id, requester.id)
    return task
