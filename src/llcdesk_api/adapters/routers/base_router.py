# src/llcdesk_api/adapters/routers/base_router.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""
Base Router (Adapters Layer)

Purpose:
    Provide a canonical APIRouter wrapper and shared utilities for LLCDesk HTTP endpoints:
      - Versioned routing with stable prefixes (e.g., "/v1/billing/charges").
      - Standard error response mapping using ErrorEnvelope.
      - Pagination query dependency with hard caps.

Layer:
    adapters/routers
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from fastapi import APIRouter, Query

from llcdesk_api.adapters.schemas.http.envelopes import ErrorEnvelope
from llcdesk_api.domain.entities.billing_filters import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from llcdesk_api.infrastructure.logging.logger import get_json_logger

_LOGGER = get_json_logger(__name__)

TagType = str | Enum


@dataclass(frozen=True)
class PageParams:
    """Validated pagination parameters.

    Attributes:
        page: 1-indexed page number.
        limit: Items per page.
    """

    page: int
    limit: int


class BaseRouter(APIRouter):
    """Canonical router wrapper for LLCDesk HTTP endpoints.

    Args:
        version: API version segment (e.g., "v1").
        resource: Resource path (e.g., "billing/charges").
        prefix: Optional explicit prefix (overrides version/resource).
        tags: Default tags applied to all routes mounted on this router.
        dependencies: Optional global dependencies for all routes.
        **kwargs: Additional APIRouter kwargs.
    """

    MIN_PAGE: int = 1
    DEFAULT_PAGE_SIZE: int = DEFAULT_PAGE_LIMIT
    MAX_PAGE_SIZE: int = MAX_PAGE_LIMIT

    def __init__(
        self,
        *,
        version: str,
        resource: str,
        prefix: str | None = None,
        tags: Sequence[TagType] | None = None,
        dependencies: Sequence[Any] | None = None,
        **kwargs: Any,
    ) -> None:
        computed_prefix = prefix or f"/{version}/{resource}"
        super().__init__(
            prefix=computed_prefix,
            tags=list(tags) if tags is not None else None,
            dependencies=list(dependencies) if dependencies is not None else None,
            **kwargs,
        )
        _LOGGER.info(
            "router_initialized",
            extra={"extra": {"prefix": computed_prefix, "tags": [str(t) for t in tags or []]}},
        )

    @classmethod
    def page_params(
        cls,
        page: int | None = Query(
            default=None,
            description="1-indexed page number.",
            examples=[1],
        ),
        limit: int | None = Query(
            default=None,
            description="Items per page (clamped to 1..100).",
            examples=[20],
        ),
    ) -> PageParams:
        """Return pagination parameters clamped to policy bounds.

        Out-of-range values are clamped rather than rejected.
        """
        p = page if page is not None else cls.MIN_PAGE
        size = limit if limit is not None else cls.DEFAULT_PAGE_SIZE
        p = max(cls.MIN_PAGE, p)
        size = max(1, min(cls.MAX_PAGE_SIZE, size))
        return PageParams(page=p, limit=size)

    @staticmethod
    def std_error_responses() -> dict[int | str, dict[str, Any]]:
        """Return the canonical error response mapping for endpoints."""
        return {
            400: {"model": ErrorEnvelope, "description": "Bad request (validation or parameter)."},
            404: {"model": ErrorEnvelope, "description": "Not found."},
            409: {"model": ErrorEnvelope, "description": "Conflict with the current status."},
            422: {"model": ErrorEnvelope, "description": "Unprocessable content."},
            500: {"model": ErrorEnvelope, "description": "Internal server error."},
        }
