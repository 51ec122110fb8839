"""Liveness endpoints.

GET /ping is the plain-text probe the CLI client uses. GET /health also
checks that the database is reachable.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskmanager import __version__
from taskmanager.db.engine import get_db

router = APIRouter()


@router.get("/ping", response_class=PlainTextResponse)
async def ping():
    return "pong"


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Check server health and database connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except SQLAlchemyError as e:
        checks["database"] = f"error: {e.__class__.__name__}"

    status = "healthy" if checks["database"] == "ok" else "degraded"
    return {"status": status, **checks}
