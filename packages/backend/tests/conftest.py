"""Test fixtures — a throwaway SQLite database per test.

Each test gets its own database file under tmp_path. The schema is built
with a plain sync engine, then the app's get_session_factory dependency
is pointed at an aiosqlite engine on the same file. NullPool means no
connection outlives the event loop that opened it, so the same fixture
works for async httpx tests and for the sync TestClient used by the
websocket tests.
"""

import os
import uuid

os.environ.setdefault("TASKMANAGER_ENVIRONMENT", "test")
os.environ.setdefault("TASKMANAGER_JWT_SECRET", "test-secret")
os.environ.setdefault("TASKMANAGER_BCRYPT_ROUNDS", "4")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from starlette.testclient import TestClient

from taskmanager.db.engine import get_session_factory, instrument_engine
from taskmanager.db.models import Base
from taskmanager.main import app

STRONG_PASSWORD = "Strong1!pw"


def unique_email(prefix: str = "user") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}@example.com"


@pytest.fixture()
def session_factory(tmp_path):
    """Session factory over a fresh SQLite file with the full schema."""
    db_path = tmp_path / "taskmanager.db"

    sync_engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()

    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    instrument_engine(engine.sync_engine)
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
def app_db(session_factory):
    """Point the app at the per-test database."""
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    yield session_factory
    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(app_db):
    """Async HTTP client running the real app, auth included."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def ws_client(app_db):
    """Sync TestClient for the dashboard websocket."""
    with TestClient(app) as tc:
        yield tc


@pytest.fixture()
def make_user(client):
    """Register + login a user through the API.

    Returns {"id", "email", "token", "headers"}.
    """

    async def _make(email=None, password=STRONG_PASSWORD):
        email = email or unique_email()
        r = await client.post("/auth/register", json={"email": email, "password": password})
        assert r.status_code == 201, r.text
        user_id = r.json()["id"]

        r = await client.post("/auth/login", json={"email": email, "password": password})
        assert r.status_code == 200, r.text
        token = r.json()["token"]
        client.cookies.clear()

        return {
            "id": user_id,
            "email": email,
            "token": token,
            "headers": {"Authorization": f"Bearer {token}"},
        }

    return _make
