"""Task service — owner-scoped task CRUD.

TaskStore is the thin query layer over the tasks table. TaskService puts
the rules in front of it:
1. Listings go through the FilterBuilder, so the owner constraint is part
   of the query and bad filters fail before any SQL runs.
2. Single-task reads and mutations load the task, 404 if it's missing,
   403 if someone else owns it, and only then touch the row.
3. Database errors surface as InternalError; the details stay in the log.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskmanager.auth.ownership import authorize_task
from taskmanager.db.models import Task
from taskmanager.errors import InternalError, NotFound
from taskmanager.services.filters import FilterBuilder, TaskFilter, TaskQuery
from taskmanager.services.user_service import Identity
from taskmanager.validation import DEFAULT_TASK_STATUS

logger = structlog.get_logger()


@contextmanager
def store_errors(action: str) -> Iterator[None]:
    """Re-raise database failures as InternalError."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("tasks.store_error", action=action, error=repr(e))
        raise InternalError(f"failed to {action}") from e


class TaskStore:
    """Queries against the tasks table within one session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_tasks(self, query: TaskQuery) -> list[Task]:
        stmt = select(Task).where(*query.clauses()).order_by(Task.id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_task(self, task_id: int) -> Optional[Task]:
        return await self.db.get(Task, task_id)

    async def create_task(
        self,
        name: str,
        due_date: Optional[datetime],
        owner_id: int,
        status: Optional[str] = None,
    ) -> Task:
        task = Task(
            name=name,
            due_date=due_date,
            status=status or DEFAULT_TASK_STATUS,
            user_id=owner_id,
        )
        self.db.add(task)
        await self.db.commit()
        return task

    async def update_task_status(self, task_id: int, status: str) -> Optional[Task]:
        task = await self.get_task(task_id)
        if task is None:
            return None
        task.status = status
        await self.db.commit()
        return task

    async def delete_task(self, task_id: int) -> bool:
        """Delete a task row. False if it was already gone."""
        result = await self.db.execute(delete(Task).where(Task.id == task_id))
        await self.db.commit()
        return result.rowcount > 0


class TaskService:
    """Business logic for a user's tasks."""

    def __init__(self, db: AsyncSession, filters: FilterBuilder):
        self.store = TaskStore(db)
        self.filters = filters

    @property
    def validators(self):
        return self.filters.validators

    async def list_tasks(self, requester: Identity, task_filter: TaskFilter) -> list[Task]:
        query = self.filters.build(task_filter, requester.id)
        with store_errors("list tasks"):
            return await self.store.list_tasks(query)

    async def create_task(
        self,
        requester: Identity,
        name: str,
        due_date: Optional[datetime] = None,
        status: Optional[str] = None,
    ) -> Task:
        """Create a task owned by `requester`. Status defaults to 'To do'."""
        if status is not None:
            self.validators.require("task_status", status, "status")
        with store_errors("create task"):
            return await self.store.create_task(name, due_date, requester.id, status)

    async def get_task(self, requester: Identity, task_id: int) -> Task:
        with store_errors("load task"):
            task = await self.store.get_task(task_id)
        return authorize_task(task, requester)

    async def update_status(self, requester: Identity, task_id: int, status: str) -> Task:
        self.validators.require("task_status", status, "status")
        await self.get_task(requester, task_id)

        with store_errors("update task"):
            task = await self.store.update_task_status(task_id, status)
        if task is None:
            # Deleted between the ownership check and the update
            raise NotFound("task with given id does not exist")
        return task

    async def delete_task(self, requester: Identity, task_id: int) -> None:
        """Delete a task. 404/403 are raised before anything is deleted.

        Once existence and ownership are confirmed, a row that vanished in
        the meantime still counts as deleted.
        """
        await self.get_task(requester, task_id)
        with store_errors("delete task"):
            await self.store.delete_task(task_id)
