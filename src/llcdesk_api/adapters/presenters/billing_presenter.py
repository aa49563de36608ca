# src/llcdesk_api/adapters/presenters/billing_presenter.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Presenters for billing obligation use cases."""

from __future__ import annotations

from llcdesk_api.adapters.schemas.http.billing_schemas import (
    AnnualReportDiagnosticsHTTP,
    AnnualReportHTTP,
    AnnualReportListItemHTTP,
    AnnualReportsSummaryHTTP,
    ChargeHTTP,
    ChargeListItemHTTP,
    ChargesSummaryHTTP,
    ReconcileResultHTTP,
    SweepResultHTTP,
)
from llcdesk_api.adapters.schemas.http.envelopes import PaginatedEnvelope, SuccessEnvelope
from llcdesk_api.application.schemas.dto.billing import ReconcileResultDTO, SweepResultDTO
from llcdesk_api.domain.entities.billing import (
    AnnualReportDiagnostics,
    AnnualReportListItem,
    AnnualReportObligation,
    AnnualReportsSummary,
    BillingCharge,
    ChargeListItem,
    ChargesSummary,
    Page,
)
from llcdesk_api.domain.services.jurisdictions import jurisdiction_name


def _charge_fields(charge: BillingCharge) -> dict[str, object]:
    return {
        "id": charge.id,
        "client_id": charge.client_id,
        "line_item_id": charge.line_item_id,
        "period_start": charge.period_start,
        "period_end": charge.period_end,
        "due_date": charge.due_date,
        "amount_cents": charge.amount_cents,
        "currency": charge.currency,
        "status": charge.status.value,
        "paid_at": charge.paid_at,
        "paid_method": charge.paid_method,
        "provider": charge.provider.value if charge.provider is not None else None,
        "provider_ref": charge.provider_ref,
        "notes": charge.notes,
        "created_at": charge.created_at,
        "updated_at": charge.updated_at,
    }


def _annual_report_fields(obligation: AnnualReportObligation) -> dict[str, object]:
    return {
        "id": obligation.id,
        "client_id": obligation.client_id,
        "jurisdiction_code": obligation.jurisdiction_code,
        "jurisdiction_name": jurisdiction_name(obligation.jurisdiction_code),
        "frequency": obligation.frequency.value,
        "period_year": obligation.period_year,
        "period_start": obligation.period_start,
        "period_end": obligation.period_end,
        "due_date": obligation.due_date,
        "status": obligation.status.value,
        "done_at": obligation.done_at,
        "notes": obligation.notes,
        "created_at": obligation.created_at,
        "updated_at": obligation.updated_at,
    }


def present_charge(charge: BillingCharge) -> SuccessEnvelope[ChargeHTTP]:
    """Present a single charge."""
    return SuccessEnvelope(data=ChargeHTTP.model_validate(_charge_fields(charge)))


def present_charge_page(page: Page[ChargeListItem]) -> PaginatedEnvelope[ChargeListItemHTTP]:
    """Present a page of listed charges."""
    items = [
        ChargeListItemHTTP.model_validate(
            {
                **_charge_fields(item.charge),
                "company_name": item.company_name,
                "payment_method": item.payment_method,
                "recurrence": item.recurrence.value if item.recurrence is not None else None,
                "address_provider": item.address_provider,
                "address_line1": item.address_line1,
                "address_line2": item.address_line2,
                "jurisdiction_code": item.jurisdiction_code,
            }
        )
        for item in page.items
    ]
    return PaginatedEnvelope(page=page.page, page_size=page.limit, total=page.total, items=items)


def present_charges_summary(summary: ChargesSummary) -> SuccessEnvelope[ChargesSummaryHTTP]:
    """Present charge aggregates."""
    return SuccessEnvelope(
        data=ChargesSummaryHTTP(
            pending_count=summary.pending_count,
            pending_total_cents=summary.pending_total_cents,
            overdue_count=summary.overdue_count,
            overdue_total_cents=summary.overdue_total_cents,
            paid_this_month_count=summary.paid_this_month_count,
            paid_this_month_total_cents=summary.paid_this_month_total_cents,
        )
    )


def present_annual_report(
    obligation: AnnualReportObligation,
) -> SuccessEnvelope[AnnualReportHTTP]:
    """Present a single annual-report obligation."""
    return SuccessEnvelope(
        data=AnnualReportHTTP.model_validate(_annual_report_fields(obligation))
    )


def present_annual_report_page(
    page: Page[AnnualReportListItem],
) -> PaginatedEnvelope[AnnualReportListItemHTTP]:
    """Present a page of listed annual-report obligations."""
    items = [
        AnnualReportListItemHTTP.model_validate(
            {**_annual_report_fields(item.obligation), "company_name": item.company_name}
        )
        for item in page.items
    ]
    return PaginatedEnvelope(page=page.page, page_size=page.limit, total=page.total, items=items)


def present_annual_reports_summary(
    summary: AnnualReportsSummary,
) -> SuccessEnvelope[AnnualReportsSummaryHTTP]:
    """Present annual-report counts."""
    return SuccessEnvelope(
        data=AnnualReportsSummaryHTTP(
            pending=summary.pending, overdue=summary.overdue, done=summary.done
        )
    )


def present_annual_report_diagnostics(
    diagnostics: AnnualReportDiagnostics,
) -> SuccessEnvelope[AnnualReportDiagnosticsHTTP]:
    """Present annual-report engine diagnostics."""
    return SuccessEnvelope(
        data=AnnualReportDiagnosticsHTTP(
            active_clients=diagnostics.active_clients,
            llc_line_items=diagnostics.llc_line_items,
            llc_line_items_with_state=diagnostics.llc_line_items_with_state,
            jurisdictions_matched=diagnostics.jurisdictions_matched,
            jurisdictions_without_obligation=diagnostics.jurisdictions_without_obligation,
            obligations_stored=diagnostics.obligations_stored,
        )
    )


def present_reconcile_result(result: ReconcileResultDTO) -> SuccessEnvelope[ReconcileResultHTTP]:
    """Present the outcome of a reconcile pass."""
    return SuccessEnvelope(
        data=ReconcileResultHTTP(
            engine=result.engine.value,
            created=result.created,
            updated=result.updated,
            subjects=result.subjects,
            failed_subjects=result.failed_subjects,
        )
    )


def present_sweep_result(result: SweepResultDTO) -> SuccessEnvelope[SweepResultHTTP]:
    """Present the outcome of an aging sweep."""
    return SuccessEnvelope(
        data=SweepResultHTTP(charges=result.charges, annual_reports=result.annual_reports)
    )
