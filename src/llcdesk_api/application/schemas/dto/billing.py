# src/llcdesk_api/application/schemas/dto/billing.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Application DTOs for billing obligation flows.

Purpose:
    Request/response DTOs used by the reconcile, sweep and human-action use
    cases. These DTOs are transport-agnostic and are mapped to HTTP schemas
    by the routers.

Layer:
    application/schemas/dto
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from llcdesk_api.domain.enums.billing import ObligationEngine, PaymentProvider

CHARGES_WINDOW_DAYS_DEFAULT = 60
CHARGES_WINDOW_DAYS_MAX = 90
ANNUAL_REPORTS_WINDOW_MONTHS_DEFAULT = 12
ANNUAL_REPORTS_WINDOW_MONTHS_MAX = 24


def clamp_window(value: int | None, *, default: int, maximum: int) -> int:
    """Return ``value`` clamped to ``0..maximum`` (``default`` when unset)."""
    if value is None:
        return default
    return max(0, min(maximum, int(value)))


@dataclass(frozen=True, slots=True)
class ReconcileChargesRequestDTO:
    """Request DTO for a charges reconcile pass.

    Attributes:
        window_days:
            Forward window in days; ``None`` uses the configured default.
        as_of:
            Calendar date treated as "today"; ``None`` uses the UTC date.
    """

    window_days: int | None = None
    as_of: date | None = None


@dataclass(frozen=True, slots=True)
class ReconcileAnnualReportsRequestDTO:
    """Request DTO for an annual-report reconcile pass."""

    window_months: int | None = None
    as_of: date | None = None


@dataclass(frozen=True, slots=True)
class ReconcileResultDTO:
    """Outcome of a reconcile pass.

    Attributes:
        engine: Which reconciler ran.
        created: Rows inserted by this pass.
        updated: Due-date corrections plus aging-sweep transitions.
        subjects: Subjects (clients) considered.
        failed_subjects: Subjects whose Unit of Work was rolled back.
    """

    engine: ObligationEngine
    created: int = 0
    updated: int = 0
    subjects: int = 0
    failed_subjects: int = 0


@dataclass(frozen=True, slots=True)
class SweepResultDTO:
    """Rows transitioned by a standalone aging sweep, per table."""

    charges: int
    annual_reports: int


@dataclass(frozen=True, slots=True)
class MarkChargePaidRequestDTO:
    """Request DTO for recording a charge payment."""

    charge_id: UUID
    paid_at: datetime | None = None
    paid_method: str | None = None
    provider: PaymentProvider = PaymentProvider.MANUAL
    provider_ref: str | None = None
    notes: str | None = None


@dataclass(frozen=True, slots=True)
class UpdateChargeRequestDTO:
    """Request DTO for editing a charge.

    ``fields`` names the attributes the caller actually sent, so that an
    explicit ``None`` (clear notes) differs from "not provided".
    """

    charge_id: UUID
    amount_cents: int | None = None
    due_date: date | None = None
    notes: str | None = None
    paid_at: datetime | None = None
    fields: frozenset[str] = frozenset()


@dataclass(frozen=True, slots=True)
class MarkAnnualReportDoneRequestDTO:
    """Request DTO for marking an annual report as filed."""

    obligation_id: UUID
    done_at: datetime | None = None
    notes: str | None = None


@dataclass(frozen=True, slots=True)
class UpdateAnnualReportRequestDTO:
    """Request DTO for editing an annual-report obligation."""

    obligation_id: UUID
    due_date: date | None = None
    notes: str | None = None
    fields: frozenset[str] = frozenset()


@dataclass(frozen=True, slots=True)
class CancelObligationRequestDTO:
    """Request DTO for canceling a charge or annual-report obligation."""

    obligation_id: UUID
    notes: str | None = None


__all__ = [
    "ANNUAL_REPORTS_WINDOW_MONTHS_DEFAULT",
    "ANNUAL_REPORTS_WINDOW_MONTHS_MAX",
    "CHARGES_WINDOW_DAYS_DEFAULT",
    "CHARGES_WINDOW_DAYS_MAX",
    "CancelObligationRequestDTO",
    "MarkAnnualReportDoneRequestDTO",
    "MarkChargePaidRequestDTO",
    "ReconcileAnnualReportsRequestDTO",
    "ReconcileChargesRequestDTO",
    "ReconcileResultDTO",
    "SweepResultDTO",
    "UpdateAnnualReportRequestDTO",
    "UpdateChargeRequestDTO",
    "clamp_window",
]
