"""API route aggregation.

All routers registered here get mounted in main.py. Auth is enforced
per handler through the get_current_user dependency, which also hands
the handler the caller's Identity. Health and auth routers are open.
"""

from fastapi import APIRouter

from taskmanager.api.auth import router as auth_router
from taskmanager.api.health import router as health_router
from taskmanager.api.tasks import router as tasks_router

api_router = APIRouter()

# Open routes: no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes: every handler depends on get_current_user
api_router.include_router(tasks_router, tags=["tasks"])
