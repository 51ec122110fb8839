"""WebSocket endpoint — the live task dashboard.

Clients connect to /dashboard/ with the auth_token cookie set by
POST /auth/login. The handshake is refused with 401 unless the cookie
carries a valid token for an existing user. After that, each binary
frame holding a JSON filter ({"q", "due_date", "status"}, all optional)
is answered with one binary frame holding the caller's matching tasks.
"""

from fastapi import APIRouter, Depends, WebSocket
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskmanager.api.deps import get_filter_builder
from taskmanager.auth.dependencies import AuthGate, get_auth_gate
from taskmanager.config import settings
from taskmanager.db.engine import get_session_factory
from taskmanager.realtime.channel import LiveQueryChannel
from taskmanager.services.filters import FilterBuilder

router = APIRouter()


@router.websocket("/dashboard/")
async def dashboard(
    websocket: WebSocket,
    gate: AuthGate = Depends(get_auth_gate),
    filters: FilterBuilder = Depends(get_filter_builder),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    channel = LiveQueryChannel(
        websocket,
        gate=gate,
        filters=filters,
        session_factory=session_factory,
        cookie_name=settings.auth_cookie_name,
        idle_timeout=settings.stream_idle_timeout_seconds,
    )
    await channel.run()
