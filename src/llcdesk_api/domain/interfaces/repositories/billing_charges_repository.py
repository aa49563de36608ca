# src/llcdesk_api/domain/interfaces/repositories/billing_charges_repository.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Billing charges repository interface.

Purpose:
    Define the persistence contract for recurring address/service charges,
    covering the reconciler path (race-safe creation, aging sweep) and the
    human-action and read paths used by the back-office.

Layer:
    domain/interfaces/repositories

Notes:
    Every mutating method that changes status carries its status guard in
    the UPDATE itself and returns ``None`` when the guard did not match, so
    callers can detect lost races without a separate read.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Protocol
from uuid import UUID

from llcdesk_api.domain.entities.billing import (
    BillingCharge,
    ChargeListItem,
    ChargesSummary,
    ObligationPeriod,
    Page,
)
from llcdesk_api.domain.entities.billing_filters import ChargeListFilters
from llcdesk_api.domain.enums.billing import PaymentProvider


class BillingChargesRepository(Protocol):
    """Domain-level contract for charge storage."""

    async def create_if_not_exists(
        self,
        *,
        client_id: UUID,
        line_item_id: UUID,
        period: ObligationPeriod,
        amount_cents: int,
    ) -> tuple[BillingCharge, bool]:
        """Insert a ``pending`` charge unless one exists for the uniqueness key.

        Must be a single constrained insert-or-detect operation.

        Returns:
            ``(row, created)`` where ``row`` is the persisted (new or existing) charge.

        Raises:
            DuplicateObligationError: If the insert lost a race on a unique key.
        """
        ...

    async def sweep_status(self, today: date) -> int:
        """Age ``pending -> overdue`` / revert ``overdue -> pending``; return rows changed."""
        ...

    async def get(self, charge_id: UUID) -> BillingCharge | None:
        """Return a charge by id."""
        ...

    async def mark_paid(
        self,
        charge_id: UUID,
        *,
        paid_at: datetime,
        paid_method: str | None,
        provider: PaymentProvider,
        provider_ref: str | None,
        notes: str | None,
    ) -> BillingCharge | None:
        """Mark an open charge as paid; ``None`` if it was not open."""
        ...

    async def mark_canceled(self, charge_id: UUID, *, notes: str | None) -> BillingCharge | None:
        """Cancel an open charge; ``None`` if it was not open."""
        ...

    async def reopen(self, charge_id: UUID, *, today: date) -> BillingCharge | None:
        """Reopen a canceled charge to ``pending``/``overdue`` by due date."""
        ...

    async def update(
        self,
        charge_id: UUID,
        *,
        amount_cents: int | None = None,
        due_date: date | None = None,
        notes: str | None = None,
        paid_at: datetime | None = None,
        fields: frozenset[str] = frozenset(),
    ) -> BillingCharge | None:
        """Apply the edits named in ``fields``.

        Returns ``None`` when the row is missing or no longer editable: a
        ``paid_at``-only edit needs a paid row, any other edit an open row.
        """
        ...

    async def delete(self, charge_id: UUID) -> bool:
        """Delete a charge permanently; return True if a row was removed."""
        ...

    async def list(self, filters: ChargeListFilters) -> Page[ChargeListItem]:
        """Return a filtered, sorted page of charges."""
        ...

    async def summary(self, *, today: date) -> ChargesSummary:
        """Return pending/overdue/paid-this-month aggregates."""
        ...
