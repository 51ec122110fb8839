"""Async SQLAlchemy engine and session factory.

SQLAlchemy 2.0 async mode — create_async_engine for connection pooling,
async_sessionmaker for per-request sessions, exposed to FastAPI through
get_session_factory (overridden in tests) and get_db.

Every statement's latency is logged at debug level as `db.query`.
"""

import time
from typing import AsyncIterator

import structlog
from fastapi import Depends
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from taskmanager.config import settings

logger = structlog.get_logger()

_QUERY_START = "query_start_time"


def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    conn.info.setdefault(_QUERY_START, []).append(time.perf_counter())


def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    start = conn.info[_QUERY_START].pop()
    logger.debug(
        "db.query",
        statement=statement,
        latency_seconds=round(time.perf_counter() - start, 6),
    )


def instrument_engine(sync_engine: Engine) -> None:
    """Attach the query latency listeners to an engine."""
    event.listen(sync_engine, "before_cursor_execute", _before_cursor_execute)
    event.listen(sync_engine, "after_cursor_execute", _after_cursor_execute)


def _engine_options(url: str) -> dict:
    # SQLite's async pool doesn't take the QueuePool sizing arguments
    if url.startswith("sqlite"):
        return {}
    return {"pool_size": 5, "max_overflow": 15, "pool_pre_ping": True}


engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    **_engine_options(settings.database_url),
)
instrument_engine(engine.sync_engine)

# Session factory: each request (or dashboard message) gets its own session.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """FastAPI dependency — the session factory the app talks to."""
    return async_session_factory


async def get_db(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency — yields a session per request, auto-closes."""
    async with factory() as session:
        yield session
