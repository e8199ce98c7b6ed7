"""FastAPI application for the relay server."""

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from relay import __version__
from relay.config.models import ConfigError
from relay.errors import (
    NoRefreshTokenError,
    NotFoundError,
    ProviderError,
    RelayError,
    StorageError,
    ValidationError,
)
from relay.server.routes import auth, health, messages

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from relay.runtime import Runtime

logger = logging.getLogger(__name__)

# Most specific first
ERROR_STATUS: list[tuple[type[Exception], int]] = [
    (ValidationError, 400),
    (NoRefreshTokenError, 401),
    (NotFoundError, 404),
    (ProviderError, 502),
    (StorageError, 503),
    (ConfigError, 503),
]


def status_for(error: Exception) -> int:
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 500


def _error_response(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"success": False, "error": message})


async def _handle_relay_error(request: Request, exc: Exception) -> JSONResponse:
    status = status_for(exc)
    log = logger.error if status >= 500 else logger.info
    log(
        "request_failed",
        extra={
            "http.path": request.url.path,
            "http.status": status,
            "error.type": type(exc).__name__,
            "error.message": str(exc),
        },
    )
    return _error_response(status, str(exc))


async def _handle_request_validation(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    fields = sorted({".".join(str(p) for p in e.get("loc", ())[1:]) for e in errors})
    message = "Invalid request"
    if fields:
        message = f"Invalid or missing fields: {', '.join(f for f in fields if f)}"
    return _error_response(400, message)


def create_app(runtime: "Runtime", *, manage_runtime: bool = True) -> FastAPI:
    """Create the FastAPI application.

    Args:
        runtime: Wired components served by this app.
        manage_runtime: Start and stop the runtime (database and watcher)
            with the app lifespan.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> "AsyncIterator[None]":
        if manage_runtime:
            logger.info("server_starting")
            await runtime.start()
        try:
            yield
        finally:
            if manage_runtime:
                logger.info("server_stopping")
                await runtime.stop()

    app = FastAPI(
        title="Relay",
        description="Slack OAuth and scheduled message API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.runtime = runtime

    app.add_exception_handler(RelayError, _handle_relay_error)
    app.add_exception_handler(ConfigError, _handle_relay_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)  # type: ignore[arg-type]

    app.include_router(health.router, tags=["health"])
    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(messages.router, prefix="/api/messages", tags=["messages"])

    return app
