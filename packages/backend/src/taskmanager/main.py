"""FastAPI application factory.

create_app() returns a configured FastAPI instance: logging, the
validator table, error handlers, middleware, CORS, the JSON API and the
dashboard websocket. Lifespan disposes of the database engine on
shutdown.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from taskmanager import __version__
from taskmanager.api import api_router
from taskmanager.config import settings
from taskmanager.errors import InternalError, TaskManagerError, Unauthenticated
from taskmanager.logging_setup import configure_logging
from taskmanager.middleware.request_id import RequestIdMiddleware
from taskmanager.realtime.websocket import router as ws_router
from taskmanager.validation import build_validators

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info(
        "taskmanager.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    yield

    logger.info("taskmanager.shutdown")

    from taskmanager.db.engine import engine
    await engine.dispose()


async def handle_app_error(request: Request, exc: TaskManagerError) -> JSONResponse:
    """Render service errors as {"error": message} with their status."""
    if isinstance(exc, InternalError):
        logger.error(
            "request.internal_error",
            path=request.url.path,
            error=exc.message,
            exc_info=exc,
        )
        return JSONResponse({"error": InternalError.default_message}, status_code=500)

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse({"error": exc.message}, status_code=exc.status_code, headers=headers)


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed body, query or path params are a 400, not FastAPI's 422."""
    errors = [
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
    ]
    return JSONResponse({"error": "; ".join(errors)}, status_code=400)


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.error("request.unhandled_error", path=request.url.path, exc_info=exc)
    return JSONResponse({"error": InternalError.default_message}, status_code=500)


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    configure_logging(settings.log_level, json=settings.log_json)

    app = FastAPI(
        title="Task Manager",
        description="Multi-user task tracker with a live filtered dashboard",
        version=__version__,
        lifespan=lifespan,
    )

    # Built once; routes and the dashboard read it from app.state
    app.state.validators = build_validators()

    app.add_exception_handler(TaskManagerError, handle_app_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(Exception, handle_unexpected)

    # Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → CORS → handler
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router)
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: taskmanager.main:app)
app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(
        "taskmanager.main:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )
