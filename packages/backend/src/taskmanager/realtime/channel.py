"""Dashboard connection state machine.

    CONNECTING ──auth ok──▶ AUTHENTICATED ──accept──▶ STREAMING ⟲ ──▶ CLOSED
        └──────────auth failed (handshake denied)─────────────────────▲

One LiveQueryChannel per websocket. While STREAMING it handles one frame
at a time:

- non-binary frame            → {"error": ...} frame, keep going
- body isn't a filter object  → {"error": ...} frame, keep going
- filter fails validation     → {"error": ...} frame, keep going
- otherwise                   → one binary frame with the JSON task list

A store failure sends a generic error frame and closes the connection
(1011). Transport errors end the loop. The owner id is fixed at connect
time; messages carry no state between them.
"""

import asyncio
import enum
import json
from typing import Optional

import structlog
from fastapi import WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.types import Message
from starlette.websockets import WebSocketState

from taskmanager.auth.dependencies import AuthGate
from taskmanager.errors import InternalError, Unauthenticated, ValidationError
from taskmanager.schemas.task import dump_tasks
from taskmanager.services.filters import FilterBuilder, TaskFilter
from taskmanager.services.task_service import TaskStore, store_errors
from taskmanager.services.user_service import Identity

logger = structlog.get_logger()

ONLY_BINARY_MESSAGE = "only binary messages are allowed"
INTERNAL_ERROR_MESSAGE = "internal error"

# Close codes: 4001 mirrors HTTP 401 for servers that can't send a
# denial response during the handshake.
CLOSE_UNAUTHENTICATED = 4001
CLOSE_INTERNAL_ERROR = 1011
CLOSE_NORMAL = 1000


class ChannelState(str, enum.Enum):
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    STREAMING = "streaming"
    CLOSED = "closed"


def error_frame(message: str) -> bytes:
    return json.dumps({"error": message}).encode("utf-8")


class LiveQueryChannel:
    """Authenticate once, then answer filter messages until the socket closes."""

    def __init__(
        self,
        websocket: WebSocket,
        gate: AuthGate,
        filters: FilterBuilder,
        session_factory: async_sessionmaker[AsyncSession],
        cookie_name: str = "auth_token",
        idle_timeout: Optional[float] = None,
    ):
        self.websocket = websocket
        self.gate = gate
        self.filters = filters
        self.session_factory = session_factory
        self.cookie_name = cookie_name
        self.idle_timeout = idle_timeout

        self.state = ChannelState.CONNECTING
        self.identity: Optional[Identity] = None

    async def run(self) -> None:
        if await self.connect():
            await self.stream()

    # ─── CONNECTING → AUTHENTICATED → STREAMING ──────────

    async def connect(self) -> bool:
        """Authenticate from the cookie and complete the handshake."""
        token = self.websocket.cookies.get(self.cookie_name)
        try:
            self.identity = await self.gate.from_cookie(token)
        except Unauthenticated as e:
            await self._deny(401, e.message, CLOSE_UNAUTHENTICATED)
            return False
        except InternalError:
            logger.exception("dashboard.auth_error")
            await self._deny(500, "internal server error", CLOSE_INTERNAL_ERROR)
            return False

        self.state = ChannelState.AUTHENTICATED
        await self.websocket.accept()
        self.state = ChannelState.STREAMING
        logger.info("dashboard.connected", user_id=self.identity.id)
        return True

    async def _deny(self, status_code: int, message: str, close_code: int) -> None:
        self.state = ChannelState.CLOSED
        if "websocket.http.response" in self.websocket.scope.get("extensions", {}):
            await self.websocket.send_denial_response(
                JSONResponse({"error": message}, status_code=status_code)
            )
        else:
            await self.websocket.close(code=close_code, reason=message)

    # ─── STREAMING ⟲ ─────────────────────────────────────

    async def stream(self) -> None:
        try:
            while self.state is ChannelState.STREAMING:
                message = await self._receive()
                if message is None:
                    break

                reply, fatal = await self.handle_frame(message)
                await self.websocket.send_bytes(reply)
                if fatal:
                    await self.websocket.close(code=CLOSE_INTERNAL_ERROR)
                    break
        except (WebSocketDisconnect, OSError) as e:
            logger.info("dashboard.transport_error", error=repr(e))
        finally:
            self.state = ChannelState.CLOSED
            logger.info("dashboard.closed", user_id=self.identity.id)

    async def _receive(self) -> Optional[Message]:
        """Next inbound message, or None once the connection is over."""
        if self.idle_timeout is None:
            message = await self.websocket.receive()
        else:
            try:
                message = await asyncio.wait_for(
                    self.websocket.receive(), timeout=self.idle_timeout
                )
            except asyncio.TimeoutError:
                logger.info("dashboard.idle_timeout", user_id=self.identity.id)
                if self.websocket.client_state == WebSocketState.CONNECTED:
                    await self.websocket.close(code=CLOSE_NORMAL, reason="idle timeout")
                return None

        if message["type"] == "websocket.disconnect":
            return None
        return message

    async def handle_frame(self, message: Message) -> tuple[bytes, bool]:
        """Turn one inbound frame into (reply bytes, close afterwards?)."""
        body = message.get("bytes")
        if body is None:
            return error_frame(ONLY_BINARY_MESSAGE), False

        try:
            payload = json.loads(body)
        except (ValueError, RecursionError):
            return error_frame("message body must be a JSON object"), False

        try:
            query = self.filters.build(TaskFilter.from_payload(payload), self.identity.id)
        except ValidationError as e:
            return error_frame(e.message), False

        try:
            async with self.session_factory() as session:
                with store_errors("list tasks"):
                    tasks = await TaskStore(session).list_tasks(query)
        except InternalError:
            logger.exception("dashboard.store_error", user_id=self.identity.id)
            return error_frame(INTERNAL_ERROR_MESSAGE), True

        return dump_tasks(tasks), False
