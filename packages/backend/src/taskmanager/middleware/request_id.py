"""Request ID + access log middleware.

Every request gets an ID, either from the incoming X-Request-ID header
(for distributed tracing) or auto-generated. The ID is bound to
structlog's contextvars so it appears in every log entry for that
request, returned in the response header, and logged with the request's
outcome once it completes.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger()


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Generate and propagate a unique request ID, then log the request."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start = time.perf_counter()
        response: Response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        logger.info(
            "request.completed",
            status_code=response.status_code,
            latency_seconds=round(time.perf_counter() - start, 6),
            client_ip=request.client.host if request.client else "unknown",
            method=request.method,
            path=request.url.path,
        )
        return response
