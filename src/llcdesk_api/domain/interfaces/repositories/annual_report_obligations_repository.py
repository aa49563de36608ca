# src/llcdesk_api/domain/interfaces/repositories/annual_report_obligations_repository.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Annual-report obligations repository interface.

Layer:
    domain/interfaces/repositories
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Protocol
from uuid import UUID

from llcdesk_api.domain.entities.billing import (
    AnnualReportListItem,
    AnnualReportObligation,
    AnnualReportsSummary,
    Page,
)
from llcdesk_api.domain.entities.billing_filters import AnnualReportListFilters
from llcdesk_api.domain.enums.billing import Recurrence


class AnnualReportObligationsRepository(Protocol):
    """Domain-level contract for annual-report obligation storage."""

    async def create_if_not_exists(
        self,
        *,
        client_id: UUID,
        jurisdiction_code: str,
        frequency: Recurrence,
        period_year: int,
        due_date: date,
    ) -> tuple[AnnualReportObligation, bool]:
        """Insert a ``pending`` obligation unless one exists for the key.

        Raises:
            DuplicateObligationError: If the insert lost a race on a unique key.
        """
        ...

    async def correct_due_date(self, obligation_id: UUID, *, due_date: date) -> bool:
        """Set a new due date on an open row only; return True if updated."""
        ...

    async def sweep_status(self, today: date) -> int:
        """Age ``pending -> overdue`` / revert ``overdue -> pending``; return rows changed."""
        ...

    async def get(self, obligation_id: UUID) -> AnnualReportObligation | None:
        """Return an obligation by id."""
        ...

    async def mark_done(
        self, obligation_id: UUID, *, done_at: datetime, notes: str | None
    ) -> AnnualReportObligation | None:
        """Mark an open obligation as done; ``None`` if it was not open."""
        ...

    async def mark_canceled(
        self, obligation_id: UUID, *, notes: str | None
    ) -> AnnualReportObligation | None:
        """Cancel an open obligation; ``None`` if it was not open."""
        ...

    async def reopen(self, obligation_id: UUID, *, today: date) -> AnnualReportObligation | None:
        """Reopen a done/canceled obligation, clearing ``done_at``."""
        ...

    async def update(
        self,
        obligation_id: UUID,
        *,
        due_date: date | None = None,
        notes: str | None = None,
        fields: frozenset[str] = frozenset(),
    ) -> AnnualReportObligation | None:
        """Apply the edits named in ``fields`` to an open row."""
        ...

    async def delete(self, obligation_id: UUID) -> bool:
        """Delete an obligation permanently."""
        ...

    async def list(self, filters: AnnualReportListFilters) -> Page[AnnualReportListItem]:
        """Return a filtered page of obligations (overdue first, then due date)."""
        ...

    async def summary(self) -> AnnualReportsSummary:
        """Return pending/overdue/done counts."""
        ...
