# src/llcdesk_api/domain/entities/billing_filters.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Listing filters for charges and annual-report obligations.

Purpose:
    Typed, self-normalizing filter objects shared by repository Protocols,
    use cases, and routers.

Layer:
    domain/entities
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from llcdesk_api.domain.enums.billing import ChargeSort, ObligationStatus, Recurrence

DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100


def parse_status_filter(raw: str | None) -> tuple[ObligationStatus, ...] | None:
    """Parse a status filter such as ``"all"``, ``"overdue"`` or ``"pending,overdue"``.

    Args:
        raw: Comma-separated status values; ``None``/``"all"`` means no filter.

    Returns:
        Tuple of statuses, or ``None`` when no filtering applies.

    Raises:
        ValueError: If any component is not a known status.
    """
    if raw is None or not raw.strip() or raw.strip().lower() == "all":
        return None
    return tuple(ObligationStatus(part.strip().lower()) for part in raw.split(",") if part.strip())


def _clamp_paging(page: int, limit: int) -> tuple[int, int]:
    return max(1, page), min(MAX_PAGE_LIMIT, max(1, limit))


@dataclass(frozen=True, slots=True)
class ChargeListFilters:
    """Filters for charge listings.

    Attributes:
        statuses: Allowed statuses; ``None`` means all.
        recurrence: Billing period of the source line item.
        due_from: Inclusive lower bound on ``due_date``.
        due_to: Inclusive upper bound on ``due_date``.
        query: Case-insensitive substring over company and address fields.
        client_id: Restrict to a single client.
        jurisdiction_code: Restrict to clients whose latest LLC is in this state.
        sort: Sort order.
        page: 1-indexed page (clamped to >= 1).
        limit: Page size (clamped to 1..100).
    """

    statuses: tuple[ObligationStatus, ...] | None = None
    recurrence: Recurrence | None = None
    due_from: date | None = None
    due_to: date | None = None
    query: str | None = None
    client_id: UUID | None = None
    jurisdiction_code: str | None = None
    sort: ChargeSort = ChargeSort.DEFAULT
    page: int = 1
    limit: int = DEFAULT_PAGE_LIMIT

    def __post_init__(self) -> None:
        """Clamp paging and normalize free-text inputs."""
        page, limit = _clamp_paging(self.page, self.limit)
        object.__setattr__(self, "page", page)
        object.__setattr__(self, "limit", limit)
        query = (self.query or "").strip()
        object.__setattr__(self, "query", query or None)
        if self.jurisdiction_code is not None:
            object.__setattr__(self, "jurisdiction_code", self.jurisdiction_code.strip().upper())

    @property
    def offset(self) -> int:
        """Return the zero-based row offset."""
        return (self.page - 1) * self.limit


@dataclass(frozen=True, slots=True)
class AnnualReportListFilters:
    """Filters for annual-report obligation listings."""

    statuses: tuple[ObligationStatus, ...] | None = None
    jurisdiction_code: str | None = None
    frequency: Recurrence | None = None
    period_year: int | None = None
    client_id: UUID | None = None
    query: str | None = None
    page: int = 1
    limit: int = DEFAULT_PAGE_LIMIT

    def __post_init__(self) -> None:
        """Clamp paging and normalize free-text inputs."""
        page, limit = _clamp_paging(self.page, self.limit)
        object.__setattr__(self, "page", page)
        object.__setattr__(self, "limit", limit)
        query = (self.query or "").strip()
        object.__setattr__(self, "query", query or None)
        if self.jurisdiction_code is not None:
            object.__setattr__(self, "jurisdiction_code", self.jurisdiction_code.strip().upper())

    @property
    def offset(self) -> int:
        """Return the zero-based row offset."""
        return (self.page - 1) * self.limit
