# src/llcdesk_api/main.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""
Application Entry (Adapters Bootstrap)

Synopsis:
    FastAPI bootstrap that wires middleware, exception handlers and the
    billing routers. Provides an application factory (`create_app`) and a
    module-level eager app (`app`) for tooling and tests.

Design:
    • Bootstrap only (no business logic): routers + middleware + handlers.
    • Lifespan initializes the database engine and disposes it on shutdown.
    • Domain errors map to the error envelope through a single handler.
    • Root JSON logging configured at import time.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute
from starlette.requests import Request
from starlette.responses import Response as StarletteResponse

from llcdesk_api.adapters.routers.annual_reports_router import router as annual_reports_router
from llcdesk_api.adapters.routers.billing_charges_router import router as charges_router
from llcdesk_api.adapters.routers.billing_sweep_router import router as sweep_router
from llcdesk_api.adapters.routers.health_router import router as health_router
from llcdesk_api.adapters.routers.metrics_router import router as metrics_router
from llcdesk_api.config.settings import Settings, get_settings
from llcdesk_api.domain.exceptions.base import DomainError
from llcdesk_api.infrastructure.database.session import (
    dispose_engine,
    init_engine_and_sessionmaker,
)
from llcdesk_api.infrastructure.http.errors import (
    handle_domain_error,
    handle_http_exception,
    handle_unhandled_exception,
    handle_validation_error,
)
from llcdesk_api.infrastructure.logging.logger import (
    configure_root_logging,
    get_json_logger,
)
from llcdesk_api.infrastructure.middleware.request_id import RequestIdMiddleware

# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
configure_root_logging()
logger = get_json_logger(__name__)


# -----------------------------------------------------------------------------
# Stable generator
# -----------------------------------------------------------------------------
def _stable_operation_id(route: APIRoute) -> str:
    """Deterministic operationId to stop OpenAPI churn.

    Format:
        "<methods>_<path>", e.g. "post__v1_billing_sweep"
        where methods are sorted and path params braces are removed.
    """
    methods = ",".join(sorted(route.methods or []))
    path = route.path_format.replace("/", "_").replace("{", "").replace("}", "")
    return f"{methods.lower()}_{path.lower()}"


# -----------------------------------------------------------------------------
# Lifespan
# -----------------------------------------------------------------------------
@asynccontextmanager
async def runtime_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create the database engine on startup and dispose it on shutdown.

    Args:
        app: FastAPI application instance.

    Yields:
        None: Control back to FastAPI to serve requests.
    """
    settings = get_settings()
    init_engine_and_sessionmaker(settings)
    app.state.settings = settings
    try:
        yield
    finally:
        await dispose_engine()


# -----------------------------------------------------------------------------
# Middleware & CORS
# -----------------------------------------------------------------------------
def _attach_cors(app: FastAPI, settings: Settings) -> None:
    """Attach CORS middleware based on settings."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def _patch_exception_handlers(app: FastAPI) -> None:
    """Register structured handlers for domain, HTTP, validation and unhandled errors."""

    async def _domain_error_handler(request: Request, exc: Exception) -> StarletteResponse:
        if not isinstance(exc, DomainError):
            raise exc
        return await handle_domain_error(request, exc)

    async def _http_error_handler(request: Request, exc: Exception) -> StarletteResponse:
        if not isinstance(exc, HTTPException):
            raise exc
        return await handle_http_exception(request, exc)

    async def _validation_error_handler(request: Request, exc: Exception) -> StarletteResponse:
        if not isinstance(exc, RequestValidationError):
            raise exc
        return await handle_validation_error(request, exc)

    async def _unhandled_error_handler(request: Request, exc: Exception) -> StarletteResponse:
        return await handle_unhandled_exception(request, exc)

    app.add_exception_handler(DomainError, _domain_error_handler)
    app.add_exception_handler(HTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)


# -----------------------------------------------------------------------------
# App factory
# -----------------------------------------------------------------------------
def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Fully configured application instance.
    """
    settings: Settings = get_settings()

    service_name = settings.service_name or "llcdesk-api"
    service_version = settings.service_version or "0.0.0"

    app = FastAPI(
        title="LLCDesk API",
        version=service_version,
        description="Recurring charges and state annual-report obligations for LLC clients.",
        lifespan=runtime_lifespan,
        docs_url=settings.docs_url,
        openapi_url=settings.openapi_url,
        generate_unique_id_function=_stable_operation_id,
    )

    _patch_exception_handlers(app)

    app.add_middleware(RequestIdMiddleware)
    _attach_cors(app, settings)

    app.include_router(charges_router)
    app.include_router(annual_reports_router)
    app.include_router(sweep_router)
    app.include_router(metrics_router)
    app.include_router(health_router)

    logger.info(
        "service_startup",
        extra={
            "extra": {
                "service": service_name,
                "env": settings.environment.value,
                "version": service_version,
                "status": "starting",
            }
        },
    )
    return app


# Eager app for tools and tests.
app: FastAPI = create_app()


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run(
        "llcdesk_api.main:create_app",
        factory=True,
        host="127.0.0.1",
        port=int(os.getenv("PORT", "8080")),
        reload=True,
    )
