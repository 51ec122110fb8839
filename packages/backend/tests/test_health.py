"""Health endpoint tests."""

import pytest

from taskmanager import __version__


@pytest.mark.asyncio
async def test_ping_returns_pong(client):
    resp = await client.get("/ping")
    assert resp.status_code == 200
    assert resp.text == "pong"


@pytest.mark.asyncio
async def test_health_returns_ok(client):
    """Health endpoint should return server status, version and database state."""
    resp = await client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["server"] == "ok"
    assert data["database"] == "ok"
    assert data["version"] == __version__
