"""
FastAPI application factory wiring repository discovery into the app lifecycle.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse

from ..config import Settings, get_settings
from ..db.session import dispose_engine
from ..exceptions import RepositoryNotRegisteredError, UnknownPropertyError
from ..logger import setup_logging
from .registry import RepositoryRegistry
from .routes import health_router
from .schemas import ErrorResponse

LOGGER = logging.getLogger(__name__)


def register_from_settings(registry: RepositoryRegistry, settings: Settings) -> int:
    """Run discovery for the configured namespace; return how many types were registered."""
    discovery = settings.discovery
    if discovery.namespace is None:
        LOGGER.info("No discovery namespace configured; only explicit registrations apply")
        return 0
    registrations = registry.discover(discovery.namespace, packages=discovery.packages)
    return len(registrations)


def create_app(
    registry: RepositoryRegistry | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    The registry is stored on ``app.state.registry``. Discovery for
    ``settings.discovery`` runs once at startup, before the first request.
    """
    runtime_settings = settings or get_settings()
    app_registry = registry if registry is not None else RepositoryRegistry()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        setup_logging(runtime_settings)
        LOGGER.info(
            "Starting %s v%s in %s environment",
            runtime_settings.app.name,
            runtime_settings.app.version,
            runtime_settings.app.environment.value,
        )
        registered = register_from_settings(app_registry, runtime_settings)
        LOGGER.info("%d repository registration(s) active", len(app_registry))
        LOGGER.debug("%d registered by discovery", registered)

        yield

        await dispose_engine()
        LOGGER.info("Application shutdown complete.")

    app = FastAPI(
        title=runtime_settings.app.name,
        version=runtime_settings.app.version,
        docs_url="/docs" if runtime_settings.app.debug else None,
        redoc_url=None,
        openapi_url="/openapi.json" if runtime_settings.app.debug else None,
        lifespan=lifespan,
    )
    app.state.registry = app_registry

    @app.middleware("http")
    async def request_logging_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Log request details and add request ID header."""
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        start_time = time.perf_counter()
        request.state.request_id = request_id

        response = await call_next(request)

        LOGGER.info(
            "%s %s -> %d (%.2fms) [%s]",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - start_time) * 1000,
            request_id,
        )
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(UnknownPropertyError)
    async def unknown_property_handler(
        request: Request, exc: UnknownPropertyError
    ) -> JSONResponse:
        """Key maps built from client input surface as 400s."""
        return _error_response(request, exc, status.HTTP_400_BAD_REQUEST)

    @app.exception_handler(RepositoryNotRegisteredError)
    async def not_registered_handler(
        request: Request, exc: RepositoryNotRegisteredError
    ) -> JSONResponse:
        LOGGER.error("Repository requested for unregistered entity: %s", exc)
        return _error_response(request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR)

    app.include_router(health_router)
    return app


def _error_response(
    request: Request,
    exc: UnknownPropertyError | RepositoryNotRegisteredError,
    status_code: int,
) -> JSONResponse:
    error_response = ErrorResponse(
        error=exc.__class__.__name__,
        message=str(exc),
        context={key: str(value) for key, value in exc.context.items()},
        request_id=getattr(request.state, "request_id", None),
    )
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(exclude_none=True),
    )


__all__ = ["create_app", "register_from_settings"]
