# src/llcdesk_api/adapters/routers/health_router.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Health endpoints (Adapters Layer).

Purpose:
    Expose liveness and readiness signals for container orchestrators and the
    cron host that triggers reconcile passes.

Design:
    * ``/healthz`` never touches the database.
    * ``/readyz`` runs ``SELECT 1`` through an injected session factory and
      answers 503 with a ``degraded`` body when the probe fails.
"""

from __future__ import annotations

import time
import typing as t
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from pydantic import Field
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from llcdesk_api.adapters.schemas.http.base import BaseHTTPSchema
from llcdesk_api.infrastructure.database.session import get_db_session
from llcdesk_api.infrastructure.logging.logger import get_json_logger

logger = get_json_logger(__name__)
router = APIRouter(tags=["Health"])

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class CheckResult(BaseHTTPSchema):
    """Result of a single dependency check."""

    name: str = Field(..., examples=["db"])
    status: t.Literal["ok", "down"]
    detail: str | None = None
    duration_ms: float


class ReadinessResponse(BaseHTTPSchema):
    """Aggregated readiness response."""

    status: t.Literal["ok", "degraded"]
    checks: list[CheckResult] = Field(default_factory=list)


class LivenessResponse(BaseHTTPSchema):
    """Liveness response indicating the process is running."""

    status: t.Literal["ok"] = "ok"


def get_session_factory() -> SessionFactory:
    """Return the session factory used by the readiness probe."""
    return get_db_session


@router.get("/healthz", response_model=LivenessResponse, summary="Liveness probe")
async def healthz() -> LivenessResponse:
    """Report that the process is up."""
    return LivenessResponse()


@router.get(
    "/readyz",
    response_model=ReadinessResponse,
    responses={503: {"model": ReadinessResponse, "description": "Database unreachable."}},
    summary="Readiness probe",
)
async def readyz(
    response: Response,
    session_factory: Annotated[SessionFactory, Depends(get_session_factory)],
) -> ReadinessResponse:
    """Probe the database with ``SELECT 1``."""
    start = time.perf_counter()
    ok = True
    detail: str | None = None
    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:  # noqa: BLE001
        ok = False
        detail = str(exc)
    duration_ms = (time.perf_counter() - start) * 1000

    if not ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        logger.warning("health.readyz.degraded", extra={"extra": {"detail": detail}})

    return ReadinessResponse(
        status="ok" if ok else "degraded",
        checks=[
            CheckResult(
                name="db",
                status="ok" if ok else "down",
                detail=detail,
                duration_ms=round(duration_ms, 3),
            )
        ],
    )
