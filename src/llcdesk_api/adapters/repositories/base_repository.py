# src/llcdesk_api/adapters/repositories/base_repository.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Shared base for the billing repositories.

Layer: adapters / repositories

Notes:
    * Repositories never commit; use cases own transactions.
    * Bulk UPDATEs skip session synchronization, so reads pass
      ``populate_existing``.
    * ``track`` records ``db_operation_duration_seconds`` and
      ``db_errors_total`` per operation.
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager, suppress
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from llcdesk_api.infrastructure.observability.metrics import (
    get_db_errors_total,
    get_db_operation_duration_seconds,
)

TModel = TypeVar("TModel")

_UNIQUE_VIOLATION = "23505"


def is_unique_violation(exc: IntegrityError) -> bool:
    """Return True when ``exc`` wraps a PostgreSQL unique violation (SQLSTATE 23505)."""
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate is None:
        # asyncpg errors surface through the DBAPI adapter's __cause__.
        sqlstate = getattr(getattr(orig, "__cause__", None), "sqlstate", None)
    return sqlstate == _UNIQUE_VIOLATION


class BaseRepository(Generic[TModel]):  # noqa: UP046
    """Abstract base class for all repositories."""

    _MODEL_NAME = "unknown"

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: Async SQLAlchemy session bound to the target database.
        """
        self._session: AsyncSession = session
        self._metrics_hist = get_db_operation_duration_seconds()
        self._metrics_err = get_db_errors_total()

    # ------------------------------------------------------------------
    # Timestamp / audit utilities
    # ------------------------------------------------------------------

    @staticmethod
    def utc_now() -> datetime:
        """Return current UTC time with timezone info."""
        return datetime.now(UTC)

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    @contextmanager
    def track(self, operation: str) -> Iterator[None]:
        """Time a repository operation and count its failures.

        Metrics failures never mask the operation's own outcome.

        Args:
            operation: Logical operation name used as the metric label.
        """
        start = time.perf_counter()
        outcome = "success"
        try:
            yield
        except Exception as exc:
            outcome = "error"
            with suppress(Exception):
                self._metrics_err.labels(
                    operation=operation,
                    model=self._MODEL_NAME,
                    reason=type(exc).__name__,
                ).inc()
            raise
        finally:
            with suppress(Exception):
                self._metrics_hist.labels(
                    operation=operation,
                    model=self._MODEL_NAME,
                    outcome=outcome,
                ).observe(time.perf_counter() - start)

    # ------------------------------------------------------------------
    # Fetch helpers
    # ------------------------------------------------------------------

    async def fetch_optional(self, stmt: Select[Any]) -> TModel | None:
        """Execute a statement and return zero or one row."""
        res = await self._session.execute(stmt.execution_options(populate_existing=True))
        return res.scalars().first()

    async def count(self, stmt: Select[Any]) -> int:
        """Return ``SELECT count(*)`` over ``stmt`` as a subquery."""
        res = await self._session.execute(
            select(func.count()).select_from(stmt.order_by(None).subquery())
        )
        return int(res.scalar_one())
