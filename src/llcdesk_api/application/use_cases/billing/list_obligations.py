# src/llcdesk_api/application/use_cases/billing/list_obligations.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Use cases: Read paths over charges and annual-report obligations.

Purpose:
    Listings, summaries and diagnostics used by the billing dashboard.
    These use cases are read-only and never commit.

Layer:
    application/use_cases/billing
"""

from __future__ import annotations

from datetime import date

from llcdesk_api.application.uow import UnitOfWork
from llcdesk_api.application.use_cases.billing.reconcile_charges import utc_today
from llcdesk_api.application.use_cases.billing.repositories import (
    get_annual_reports_repo,
    get_charges_repo,
    get_facts_repo,
)
from llcdesk_api.domain.entities.billing import (
    AnnualReportDiagnostics,
    AnnualReportListItem,
    AnnualReportsSummary,
    ChargeListItem,
    ChargesSummary,
    Page,
)
from llcdesk_api.domain.entities.billing_filters import (
    AnnualReportListFilters,
    ChargeListFilters,
)


class ListChargesUseCase:
    """Return a filtered, sorted page of charges."""

    def __init__(self, *, uow: UnitOfWork) -> None:
        self._uow = uow

    async def execute(self, filters: ChargeListFilters) -> Page[ChargeListItem]:
        async with self._uow as tx:
            return await get_charges_repo(tx).list(filters)


class GetChargesSummaryUseCase:
    """Return pending, overdue and paid-this-month aggregates."""

    def __init__(self, *, uow: UnitOfWork) -> None:
        self._uow = uow

    async def execute(self, as_of: date | None = None) -> ChargesSummary:
        async with self._uow as tx:
            return await get_charges_repo(tx).summary(today=as_of or utc_today())


class ListAnnualReportsUseCase:
    """Return a filtered page of annual-report obligations."""

    def __init__(self, *, uow: UnitOfWork) -> None:
        self._uow = uow

    async def execute(self, filters: AnnualReportListFilters) -> Page[AnnualReportListItem]:
        async with self._uow as tx:
            return await get_annual_reports_repo(tx).list(filters)


class GetAnnualReportsSummaryUseCase:
    """Return pending, overdue and done counts."""

    def __init__(self, *, uow: UnitOfWork) -> None:
        self._uow = uow

    async def execute(self) -> AnnualReportsSummary:
        async with self._uow as tx:
            return await get_annual_reports_repo(tx).summary()


class GetAnnualReportDiagnosticsUseCase:
    """Explain the annual-report engine's inputs.

    Operators use this when the annual-report tab is empty: it reports how
    many active clients exist, how many carry an LLC line item with a state,
    and how many of those states actually require a filing.
    """

    def __init__(self, *, uow: UnitOfWork) -> None:
        self._uow = uow

    async def execute(self) -> AnnualReportDiagnostics:
        async with self._uow as tx:
            return await get_facts_repo(tx).annual_report_diagnostics()


__all__ = [
    "GetAnnualReportDiagnosticsUseCase",
    "GetAnnualReportsSummaryUseCase",
    "GetChargesSummaryUseCase",
    "ListAnnualReportsUseCase",
    "ListChargesUseCase",
]
