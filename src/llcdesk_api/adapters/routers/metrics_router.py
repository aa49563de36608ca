# src/llcdesk_api/adapters/routers/metrics_router.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Prometheus scrape endpoint (`/metrics`).

Exposes the text-format Prometheus endpoint and warms the reconcile
duration histogram so `_bucket`/`_count`/`_sum` series appear on the very
first scrape.

Layer:
    adapters/routers
"""

from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from llcdesk_api.domain.enums.billing import ObligationEngine
from llcdesk_api.infrastructure.logging.logger import get_json_logger
from llcdesk_api.infrastructure.observability.metrics import get_reconcile_duration_seconds

logger = get_json_logger(__name__)
router = APIRouter()


def _warm_reconcile_histogram() -> None:
    """Ensure each engine label has a series before the first reconcile pass."""
    try:
        hist = get_reconcile_duration_seconds()
        for engine in ObligationEngine:
            hist.labels(engine=engine.value)
    except Exception as exc:  # pragma: no cover
        logger.debug(
            "metrics_router: failed warming histogram",
            extra={"extra": {"metric": "llcdesk_reconcile_duration_seconds", "error": str(exc)}},
        )


@router.get("/metrics", include_in_schema=False)
async def metrics_probe() -> Response:
    """Expose Prometheus metrics in the text exposition format."""
    _warm_reconcile_histogram()
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
