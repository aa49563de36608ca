# src/llcdesk_api/adapters/schemas/http/billing_schemas.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""HTTP Schemas: Billing obligations.

Synopsis:
    Pydantic models for the charges, annual-report and sweep endpoints.
    Response models are wrapped by SuccessEnvelope / PaginatedEnvelope;
    request bodies drive the human-action use cases.

Layer:
    adapters/schemas/http
"""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import AwareDatetime, Field

from llcdesk_api.adapters.schemas.http.base import BaseHTTPSchema
from llcdesk_api.domain.enums.billing import PaymentProvider

# ---------------------------------------------------------------------------
# Charges
# ---------------------------------------------------------------------------


class ChargeHTTP(BaseHTTPSchema):
    """HTTP payload for a single recurring charge."""

    id: UUID
    client_id: UUID
    line_item_id: UUID
    period_start: date = Field(..., description="Inclusive period start.")
    period_end: date = Field(..., description="Exclusive period end.")
    due_date: date
    amount_cents: int = Field(..., ge=0, examples=[4900])
    currency: str = Field(..., examples=["USD"])
    status: str = Field(..., examples=["pending"])
    paid_at: datetime | None = None
    paid_method: str | None = None
    provider: str | None = None
    provider_ref: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ChargeListItemHTTP(ChargeHTTP):
    """Charge with client and address context, as listed."""

    company_name: str | None = None
    payment_method: str | None = None
    recurrence: str | None = Field(default=None, examples=["Monthly"])
    address_provider: str | None = None
    address_line1: str | None = None
    address_line2: str | None = None
    jurisdiction_code: str | None = Field(default=None, examples=["WY"])


class ChargesSummaryHTTP(BaseHTTPSchema):
    """Aggregate counts and totals (cents) over charges."""

    pending_count: int
    pending_total_cents: int
    overdue_count: int
    overdue_total_cents: int
    paid_this_month_count: int
    paid_this_month_total_cents: int


class MarkChargePaidHTTPRequest(BaseHTTPSchema):
    """Body for ``POST /v1/billing/charges/{id}/pay``."""

    paid_at: AwareDatetime | None = Field(
        default=None, description="Payment timestamp; defaults to now (UTC)."
    )
    paid_method: str | None = Field(
        default=None,
        max_length=100,
        description="Payment method label; defaults to the client's method.",
    )
    provider: PaymentProvider = PaymentProvider.MANUAL
    provider_ref: str | None = Field(default=None, max_length=255)
    notes: str | None = None


class UpdateChargeHTTPRequest(BaseHTTPSchema):
    """Body for ``PATCH /v1/billing/charges/{id}``.

    Only fields present in the body are applied; an explicit ``null``
    clears ``notes``.
    """

    amount_cents: int | None = Field(default=None, ge=0)
    due_date: date | None = None
    notes: str | None = None
    paid_at: AwareDatetime | None = None


# ---------------------------------------------------------------------------
# Annual reports
# ---------------------------------------------------------------------------


class AnnualReportHTTP(BaseHTTPSchema):
    """HTTP payload for a single annual-report obligation."""

    id: UUID
    client_id: UUID
    jurisdiction_code: str = Field(..., examples=["WY"])
    jurisdiction_name: str | None = Field(default=None, examples=["Wyoming"])
    frequency: str = Field(..., examples=["Annual"])
    period_year: int = Field(..., examples=[2025])
    period_start: date
    period_end: date
    due_date: date
    status: str = Field(..., examples=["pending"])
    done_at: datetime | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AnnualReportListItemHTTP(AnnualReportHTTP):
    """Annual-report obligation with its client, as listed."""

    company_name: str | None = None


class AnnualReportsSummaryHTTP(BaseHTTPSchema):
    """Pending/overdue/done counts over annual-report obligations."""

    pending: int
    overdue: int
    done: int


class AnnualReportDiagnosticsHTTP(BaseHTTPSchema):
    """Counters explaining the annual-report engine's inputs."""

    active_clients: int
    llc_line_items: int
    llc_line_items_with_state: int
    jurisdictions_matched: int
    jurisdictions_without_obligation: int
    obligations_stored: int


class MarkAnnualReportDoneHTTPRequest(BaseHTTPSchema):
    """Body for ``POST /v1/billing/annual-reports/{id}/done``."""

    done_at: AwareDatetime | None = Field(
        default=None, description="Filing timestamp; defaults to now (UTC)."
    )
    notes: str | None = None


class UpdateAnnualReportHTTPRequest(BaseHTTPSchema):
    """Body for ``PATCH /v1/billing/annual-reports/{id}``."""

    due_date: date | None = None
    notes: str | None = None


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


class CancelObligationHTTPRequest(BaseHTTPSchema):
    """Body for the ``cancel`` actions."""

    notes: str | None = None


class ReconcileResultHTTP(BaseHTTPSchema):
    """Outcome of a reconcile pass."""

    engine: str = Field(..., examples=["charges"])
    created: int
    updated: int
    subjects: int
    failed_subjects: int


class SweepResultHTTP(BaseHTTPSchema):
    """Rows transitioned by the aging sweep, per table."""

    charges: int
    annual_reports: int


__all__ = [
    "AnnualReportDiagnosticsHTTP",
    "AnnualReportHTTP",
    "AnnualReportListItemHTTP",
    "AnnualReportsSummaryHTTP",
    "CancelObligationHTTPRequest",
    "ChargeHTTP",
    "ChargeListItemHTTP",
    "ChargesSummaryHTTP",
    "MarkAnnualReportDoneHTTPRequest",
    "MarkChargePaidHTTPRequest",
    "ReconcileResultHTTP",
    "SweepResultHTTP",
    "UpdateAnnualReportHTTPRequest",
    "UpdateChargeHTTPRequest",
]
