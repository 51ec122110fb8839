"""Task API routes.

Routes translate HTTP to TaskService calls. The service raises the
errors in taskmanager.errors (400/403/404/500), which main.py renders,
so handlers stay free of try/except.

Every route takes the caller as an explicit Identity parameter from
get_current_user; the owner id never comes from the request body.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from taskmanager.api.deps import get_filter_builder
from taskmanager.auth.dependencies import get_current_user
from taskmanager.db.engine import get_db
from taskmanager.schemas.task import StatusChange, TaskCreate, TaskRead
from taskmanager.services.filters import FilterBuilder, TaskFilter
from taskmanager.services.task_service import TaskService
from taskmanager.services.user_service import Identity

router = APIRouter(prefix="/tasks")


def _task_svc(
    db: AsyncSession = Depends(get_db),
    filters: FilterBuilder = Depends(get_filter_builder),
) -> TaskService:
    return TaskService(db, filters)


@router.get("/", response_model=list[TaskRead])
async def list_tasks(
    q: Optional[str] = Query(None, description="Substring of the task name"),
    due_date: Optional[str] = Query(None, description="Due day, YYYY-MM-DD"),
    status: Optional[str] = Query(None, description="Filter by status"),
    identity: Identity = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    """List the caller's tasks with optional filters."""
    return await svc.list_tasks(
        identity, TaskFilter(q=q, due_date=due_date, status=status)
    )


@router.post("/", response_model=TaskRead)
async def create_task(
    body: TaskCreate,
    identity: Identity = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    """Create a task owned by the caller ('To do' unless a status is given)."""
    return await svc.create_task(
        identity, name=body.name, due_date=body.due_date, status=body.status
    )


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(
    task_id: int,
    identity: Identity = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    return await svc.get_task(identity, task_id)


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task_status(
    task_id: int,
    body: StatusChange,
    identity: Identity = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    """Move a task to another status."""
    return await svc.update_status(identity, task_id, body.status)


@router.delete("/{task_id}", status_code=204)
async def delete_task(
    task_id: int,
    identity: Identity = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
):
    await svc.delete_task(identity, task_id)
    return Response(status_code=204)
