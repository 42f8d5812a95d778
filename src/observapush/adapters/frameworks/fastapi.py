"""FastAPI adapter wiring the telemetry context into an application."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from observapush.adapters.frameworks.asgi import (
    ObservabilityMiddleware,
    UserResolver,
    default_user_resolver,
)
from observapush.runtime.context import ObservabilityContext


async def _internal_error(request: Request, exc: Exception) -> JSONResponse:
    """Answer unhandled exceptions with a generic 500.

    The exception itself has already been shipped by ObservabilityMiddleware.
    """
    return JSONResponse({"message": "Internal Server Error"}, status_code=500)


def _wrap_lifespan(app: FastAPI, context: ObservabilityContext) -> None:
    """Start the context before the app's own lifespan, shut it down after."""
    inner = app.router.lifespan_context

    @asynccontextmanager
    async def lifespan(app_: Any) -> AsyncIterator[Any]:
        context.start()
        try:
            async with inner(app_) as state:
                yield state
        finally:
            context.shutdown()

    app.router.lifespan_context = lifespan


def instrument_fastapi(
    app: FastAPI,
    context: ObservabilityContext,
    user_resolver: UserResolver = default_user_resolver,
    manage_lifecycle: bool = True,
) -> FastAPI:
    """Add access logging, request counting and exception logging to ``app``.

    Args:
        app: Application to instrument.
        context: Telemetry context owned by the caller.
        user_resolver: Extracts the authenticated user id from the ASGI scope.
        manage_lifecycle: Start the reporter on startup and shut the context
            down on shutdown.

    Returns:
        The same application, for chaining.
    """
    app.add_middleware(
        ObservabilityMiddleware,
        shipper=context.shipper,
        registry=context.registry,
        auth_path_prefix=context.settings.auth_path_prefix,
        max_body_bytes=context.settings.max_body_bytes,
        user_resolver=user_resolver,
    )
    app.add_exception_handler(Exception, _internal_error)
    if manage_lifecycle:
        _wrap_lifespan(app, context)
    app.state.observability = context
    return app
