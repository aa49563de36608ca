# src/llcdesk_api/domain/entities/billing.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Billing domain entities.

Purpose:
    Immutable value objects for the obligation scheduling engine:
        - ClientBillingFacts: derived per-subject inputs to the calculators.
        - ObligationPeriod: a computed half-open period and its due date.
        - AnnualReportRule: a jurisdiction's annual-report policy.
        - BillingCharge / AnnualReportObligation: persisted obligations.

Layer:
    domain/entities

Notes:
    Entities validate their own invariants in ``__post_init__`` and raise
    ``ValueError``; they perform no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from llcdesk_api.domain.enums.billing import (
    DueType,
    ObligationStatus,
    PaymentProvider,
    Recurrence,
)


@dataclass(frozen=True, slots=True)
class ClientBillingFacts:
    """Billing-relevant facts for one subject, derived from its line items.

    Attributes:
        client_id:
            Subject (client) identifier.
        recurrence:
            Normalized recurrence of the obligation.
        anchor_date:
            Date from which periods are computed (sale or formation date).
        source_id:
            Line item that produced the facts (charges only).
        jurisdiction_code:
            Two-letter jurisdiction code (annual reports only).
        expiration_date:
            Optional hard stop for Annual service periods.
        amount_cents:
            Amount billed per period (charges only).
    """

    client_id: UUID
    recurrence: Recurrence
    anchor_date: date
    source_id: UUID | None = None
    jurisdiction_code: str | None = None
    expiration_date: date | None = None
    amount_cents: int = 0

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.amount_cents < 0:
            raise ValueError("amount_cents must be >= 0")
        if self.jurisdiction_code is not None and len(self.jurisdiction_code) != 2:
            raise ValueError("jurisdiction_code must be a two-letter code")


@dataclass(frozen=True, slots=True)
class ObligationPeriod:
    """Computed obligation period ``[period_start, period_end)``."""

    period_start: date
    period_end: date
    due_date: date

    def __post_init__(self) -> None:
        """Validate that the period is non-empty."""
        if self.period_start >= self.period_end:
            raise ValueError("period_start must be strictly before period_end")

    def contains(self, day: date) -> bool:
        """Return True when ``day`` falls inside the half-open period."""
        return self.period_start <= day < self.period_end


@dataclass(frozen=True, slots=True)
class AnnualReportRule:
    """Annual-report policy for a single jurisdiction.

    Attributes:
        jurisdiction_code: Two-letter code (e.g. ``"WY"``).
        jurisdiction_name: Human-readable name.
        frequency: ``ANNUAL``, ``BIENNIAL`` or ``NONE``.
        due_type: Due-date policy; ignored when ``frequency`` is ``NONE``.
        month: Month for fixed-date / fiscal-month policies.
        day: Day for fixed-date / fiscal-month policies.
        offset_days: Offset for the after-formation policy.
        fee: Approximate state fee, informational.
        note: Free-form operator note.
    """

    jurisdiction_code: str
    jurisdiction_name: str
    frequency: Recurrence
    due_type: DueType | None = None
    month: int | None = None
    day: int | None = None
    offset_days: int | None = None
    fee: str | None = None
    note: str | None = None

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.frequency not in (Recurrence.ANNUAL, Recurrence.BIENNIAL, Recurrence.NONE):
            raise ValueError("annual-report frequency must be ANNUAL, BIENNIAL or NONE")
        if self.month is not None and not 1 <= self.month <= 12:
            raise ValueError("month must be within 1..12")
        if self.day is not None and not 1 <= self.day <= 31:
            raise ValueError("day must be within 1..31")

    @property
    def has_obligation(self) -> bool:
        """Return True when the jurisdiction requires a filing."""
        return self.frequency is not Recurrence.NONE


@dataclass(frozen=True, slots=True)
class BillingCharge:
    """Persisted recurring address/service charge."""

    id: UUID
    client_id: UUID
    line_item_id: UUID
    period_start: date
    period_end: date
    due_date: date
    amount_cents: int
    status: ObligationStatus
    currency: str = "USD"
    paid_at: datetime | None = None
    paid_method: str | None = None
    provider: PaymentProvider | None = None
    provider_ref: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class AnnualReportObligation:
    """Persisted state annual-report obligation."""

    id: UUID
    client_id: UUID
    jurisdiction_code: str
    frequency: Recurrence
    period_year: int
    period_start: date
    period_end: date
    due_date: date
    status: ObligationStatus
    done_at: datetime | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class ChargeListItem:
    """Charge joined with the client and source line item for listings."""

    charge: BillingCharge
    company_name: str | None = None
    payment_method: str | None = None
    recurrence: Recurrence | None = None
    address_provider: str | None = None
    address_line1: str | None = None
    address_line2: str | None = None
    jurisdiction_code: str | None = None


@dataclass(frozen=True, slots=True)
class AnnualReportListItem:
    """Annual-report obligation joined with its client for listings."""

    obligation: AnnualReportObligation
    company_name: str | None = None


@dataclass(frozen=True, slots=True)
class ChargesSummary:
    """Aggregate counts and totals (cents) over charges."""

    pending_count: int = 0
    pending_total_cents: int = 0
    overdue_count: int = 0
    overdue_total_cents: int = 0
    paid_this_month_count: int = 0
    paid_this_month_total_cents: int = 0


@dataclass(frozen=True, slots=True)
class AnnualReportsSummary:
    """Aggregate counts over annual-report obligations."""

    pending: int = 0
    overdue: int = 0
    done: int = 0


@dataclass(frozen=True, slots=True)
class AnnualReportDiagnostics:
    """Counters explaining why the annual-report engine did (not) create rows."""

    active_clients: int
    llc_line_items: int
    llc_line_items_with_state: int
    jurisdictions_matched: int
    jurisdictions_without_obligation: int
    obligations_stored: int


@dataclass(frozen=True, slots=True)
class Page[T]:
    """A page of results plus the unpaginated total."""

    items: tuple[T, ...]
    total: int
    page: int
    limit: int
