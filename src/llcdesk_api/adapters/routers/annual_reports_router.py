# src/llcdesk_api/adapters/routers/annual_reports_router.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Annual Reports Router (v1).

Synopsis:
    HTTP surface for state annual-report obligations.

Endpoints (all under /v1/billing/annual-reports):
    - GET    ""                  → reconcile, then PaginatedEnvelope of obligations.
    - POST   "/reconcile"        → SuccessEnvelope with the reconcile outcome.
    - GET    "/summary"          → SuccessEnvelope with pending/overdue/done counts.
    - GET    "/diagnostics"      → SuccessEnvelope with engine input counters.
    - GET    "/{obligation_id}"  → SuccessEnvelope with the obligation.
    - PATCH  "/{obligation_id}"  → SuccessEnvelope with the edited obligation.
    - DELETE "/{obligation_id}"  → 204.
    - POST   "/{obligation_id}/done|cancel|reopen" → SuccessEnvelope with the obligation.
"""

from __future__ import annotations

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import Body, Depends, Query, Response, status

from llcdesk_api.adapters.dependencies.billing_uow import (
    ReconcileWindows,
    get_billing_uow,
    get_reconcile_metrics,
    get_reconcile_windows,
)
from llcdesk_api.adapters.presenters.billing_presenter import (
    present_annual_report,
    present_annual_report_diagnostics,
    present_annual_report_page,
    present_annual_reports_summary,
    present_reconcile_result,
)
from llcdesk_api.adapters.routers.base_router import BaseRouter, PageParams
from llcdesk_api.adapters.schemas.http.billing_schemas import (
    AnnualReportDiagnosticsHTTP,
    AnnualReportHTTP,
    AnnualReportListItemHTTP,
    AnnualReportsSummaryHTTP,
    CancelObligationHTTPRequest,
    MarkAnnualReportDoneHTTPRequest,
    ReconcileResultHTTP,
    UpdateAnnualReportHTTPRequest,
)
from llcdesk_api.adapters.schemas.http.envelopes import PaginatedEnvelope, SuccessEnvelope
from llcdesk_api.application.interfaces.reconcile_metrics import ReconcileMetricsPort
from llcdesk_api.application.schemas.dto.billing import (
    ANNUAL_REPORTS_WINDOW_MONTHS_MAX,
    CancelObligationRequestDTO,
    MarkAnnualReportDoneRequestDTO,
    ReconcileAnnualReportsRequestDTO,
    UpdateAnnualReportRequestDTO,
)
from llcdesk_api.application.uow import UnitOfWork
from llcdesk_api.application.use_cases.billing.list_obligations import (
    GetAnnualReportDiagnosticsUseCase,
    GetAnnualReportsSummaryUseCase,
    ListAnnualReportsUseCase,
)
from llcdesk_api.application.use_cases.billing.manage_annual_reports import (
    CancelAnnualReportUseCase,
    DeleteAnnualReportUseCase,
    GetAnnualReportUseCase,
    MarkAnnualReportDoneUseCase,
    ReopenAnnualReportUseCase,
    UpdateAnnualReportUseCase,
)
from llcdesk_api.application.use_cases.billing.reconcile_annual_reports import (
    ReconcileAnnualReportsUseCase,
)
from llcdesk_api.domain.entities.billing_filters import (
    AnnualReportListFilters,
    parse_status_filter,
)
from llcdesk_api.domain.enums.billing import Recurrence
from llcdesk_api.domain.exceptions.billing import ObligationValidationError
from llcdesk_api.domain.services.jurisdictions import normalize_jurisdiction

router = BaseRouter(
    version="v1", resource="billing/annual-reports", tags=["Billing: Annual Reports"]
)

WindowMonths = Annotated[
    int | None,
    Query(
        description=(
            "Forward window in months for the reconcile pass, clamped to "
            f"0..{ANNUAL_REPORTS_WINDOW_MONTHS_MAX} (default from settings)."
        ),
    ),
]


def _annual_report_filters(
    *,
    status_raw: str | None,
    frequency_raw: str | None,
    state: str | None,
    year: int | None,
    q: str | None,
    client_id: UUID | None,
    page_params: PageParams,
) -> AnnualReportListFilters:
    """Translate query parameters into listing filters (400 on bad values)."""
    try:
        statuses = parse_status_filter(status_raw)
    except ValueError as exc:
        raise ObligationValidationError(
            "Invalid status filter.", details={"status": status_raw}
        ) from exc

    frequency: Recurrence | None = None
    if frequency_raw and frequency_raw.strip().lower() != "all":
        frequency = Recurrence.parse(frequency_raw)
        if frequency not in (Recurrence.ANNUAL, Recurrence.BIENNIAL):
            raise ObligationValidationError(
                "Invalid frequency filter.", details={"frequency": frequency_raw}
            )

    jurisdiction_code: str | None = None
    if state and state.strip():
        jurisdiction_code = normalize_jurisdiction(state)
        if jurisdiction_code is None:
            raise ObligationValidationError("Unknown state.", details={"state": state})

    return AnnualReportListFilters(
        statuses=statuses,
        jurisdiction_code=jurisdiction_code,
        frequency=frequency,
        period_year=year,
        client_id=client_id,
        query=q,
        page=page_params.page,
        limit=page_params.limit,
    )


# ---------------------------------------------------------------------------
# Collection routes
# ---------------------------------------------------------------------------


@router.get(
    "",
    response_model=PaginatedEnvelope[AnnualReportListItemHTTP],
    responses=BaseRouter.std_error_responses(),
    summary="Reconcile and list annual reports",
    description=(
        "Runs an annual-report reconcile pass over the requested window, then returns "
        "a page of obligations, overdue first, then by due date."
    ),
)
async def list_annual_reports(
    uow: Annotated[UnitOfWork, Depends(get_billing_uow)],
    metrics: Annotated[ReconcileMetricsPort, Depends(get_reconcile_metrics)],
    windows: Annotated[ReconcileWindows, Depends(get_reconcile_windows)],
    page_params: Annotated[PageParams, Depends(BaseRouter.page_params)],
    window_months: WindowMonths = None,
    status_filter: Annotated[
        str | None,
        Query(alias="status", description="'all', a status, or a comma-separated list."),
    ] = "pending,overdue",
    frequency: Annotated[str | None, Query(description="Annual or Biennial.")] = None,
    state: Annotated[str | None, Query(description="Jurisdiction code or name.")] = None,
    year: Annotated[int | None, Query(description="Calendar year of the due date.")] = None,
    q: Annotated[str | None, Query(description="Search company name.")] = None,
    client_id: Annotated[UUID | None, Query()] = None,
) -> PaginatedEnvelope[AnnualReportListItemHTTP]:
    """Reconcile, then list annual-report obligations."""
    filters = _annual_report_filters(
        status_raw=status_filter,
        frequency_raw=frequency,
        state=state,
        year=year,
        q=q,
        client_id=client_id,
        page_params=page_params,
    )
    await ReconcileAnnualReportsUseCase(
        uow=uow, default_window_months=windows.annual_reports_months, metrics=metrics
    ).execute(ReconcileAnnualReportsRequestDTO(window_months=window_months))
    page = await ListAnnualReportsUseCase(uow=uow).execute(filters)
    return present_annual_report_page(page)


@router.post(
    "/reconcile",
    response_model=SuccessEnvelope[ReconcileResultHTTP],
    responses=BaseRouter.std_error_responses(),
    summary="Run an annual-report reconcile pass",
)
async def reconcile_annual_reports(
    uow: Annotated[UnitOfWork, Depends(get_billing_uow)],
    metrics: Annotated[ReconcileMetricsPort, Depends(get_reconcile_metrics)],
    windows: Annotated[ReconcileWindows, Depends(get_reconcile_windows)],
    window_months: WindowMonths = None,
    as_of: Annotated[date | None, Query(description="Date treated as today (UTC).")] = None,
) -> SuccessEnvelope[ReconcileResultHTTP]:
    """Create missing obligations, correct open due dates and age statuses."""
    result = await ReconcileAnnualReportsUseCase(
        uow=uow, default_window_months=windows.annual_reports_months, metrics=metrics
    ).execute(ReconcileAnnualReportsRequestDTO(window_months=window_months, as_of=as_of))
    return present_reconcile_result(result)


@router.get(
    "/summary",
    response_model=SuccessEnvelope[AnnualReportsSummaryHTTP],
    responses=BaseRouter.std_error_responses(),
    summary="Annual-report counts",
)
async def annual_reports_summary(
    uow: Annotated[UnitOfWork, Depends(get_billing_uow)],
) -> SuccessEnvelope[AnnualReportsSummaryHTTP]:
    """Return pending, overdue and done counts."""
    return present_annual_reports_summary(await GetAnnualReportsSummaryUseCase(uow=uow).execute())


@router.get(
    "/diagnostics",
    response_model=SuccessEnvelope[AnnualReportDiagnosticsHTTP],
    responses=BaseRouter.std_error_responses(),
    summary="Annual-report engine diagnostics",
)
async def annual_reports_diagnostics(
    uow: Annotated[UnitOfWork, Depends(get_billing_uow)],
) -> SuccessEnvelope[AnnualReportDiagnosticsHTTP]:
    """Explain why the engine did or did not create obligations."""
    diagnostics = await GetAnnualReportDiagnosticsUseCase(uow=uow).execute()
    return present_annual_report_diagnostics(diagnostics)


# ---------------------------------------------------------------------------
# Item routes
# ---------------------------------------------------------------------------


@router.get(
    "/{obligation_id}",
    response_model=SuccessEnvelope[AnnualReportHTTP],
    responses=BaseRouter.std_error_responses(),
    summary="Get an annual-report obligation",
)
async def get_annual_report(
    obligation_id: UUID,
    uow: Annotated[UnitOfWork, Depends(get_billing_uow)],
) -> SuccessEnvelope[AnnualReportHTTP]:
    """Return a single obligation."""
    return present_annual_report(await GetAnnualReportUseCase(uow=uow).execute(obligation_id))


@router.patch(
    "/{obligation_id}",
    response_model=SuccessEnvelope[AnnualReportHTTP],
    responses=BaseRouter.std_error_responses(),
    summary="Edit an annual-report obligation",
)
async def update_annual_report(
    obligation_id: UUID,
    body: UpdateAnnualReportHTTPRequest,
    uow: Annotated[UnitOfWork, Depends(get_billing_uow)],
) -> SuccessEnvelope[AnnualReportHTTP]:
    """Apply the fields present in the body to an open obligation."""
    obligation = await UpdateAnnualReportUseCase(uow=uow).execute(
        UpdateAnnualReportRequestDTO(
            obligation_id=obligation_id,
            due_date=body.due_date,
            notes=body.notes,
            fields=frozenset(body.model_fields_set),
        )
    )
    return present_annual_report(obligation)


@router.delete(
    "/{obligation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=BaseRouter.std_error_responses(),
    summary="Delete an annual-report obligation",
)
async def delete_annual_report(
    obligation_id: UUID,
    uow: Annotated[UnitOfWork, Depends(get_billing_uow)],
) -> Response:
    """Delete an obligation permanently."""
    await DeleteAnnualReportUseCase(uow=uow).execute(obligation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{obligation_id}/done",
    response_model=SuccessEnvelope[AnnualReportHTTP],
    responses=BaseRouter.std_error_responses(),
    summary="Mark an annual report as filed",
)
async def mark_annual_report_done(
    obligation_id: UUID,
    uow: Annotated[UnitOfWork, Depends(get_billing_uow)],
    body: Annotated[MarkAnnualReportDoneHTTPRequest | None, Body()] = None,
) -> SuccessEnvelope[AnnualReportHTTP]:
    """Mark an open obligation as done."""
    body = body or MarkAnnualReportDoneHTTPRequest()
    obligation = await MarkAnnualReportDoneUseCase(uow=uow).execute(
        MarkAnnualReportDoneRequestDTO(
            obligation_id=obligation_id, done_at=body.done_at, notes=body.notes
        )
    )
    return present_annual_report(obligation)


@router.post(
    "/{obligation_id}/cancel",
    response_model=SuccessEnvelope[AnnualReportHTTP],
    responses=BaseRouter.std_error_responses(),
    summary="Cancel an annual-report obligation",
)
async def cancel_annual_report(
    obligation_id: UUID,
    uow: Annotated[UnitOfWork, Depends(get_billing_uow)],
    body: Annotated[CancelObligationHTTPRequest | None, Body()] = None,
) -> SuccessEnvelope[AnnualReportHTTP]:
    """Cancel an open obligation."""
    obligation = await CancelAnnualReportUseCase(uow=uow).execute(
        CancelObligationRequestDTO(
            obligation_id=obligation_id, notes=body.notes if body else None
        )
    )
    return present_annual_report(obligation)


@router.post(
    "/{obligation_id}/reopen",
    response_model=SuccessEnvelope[AnnualReportHTTP],
    responses=BaseRouter.std_error_responses(),
    summary="Reopen a done or canceled annual report",
)
async def reopen_annual_report(
    obligation_id: UUID,
    uow: Annotated[UnitOfWork, Depends(get_billing_uow)],
) -> SuccessEnvelope[AnnualReportHTTP]:
    """Reopen as pending or overdue and clear the filing timestamp."""
    return present_annual_report(await ReopenAnnualReportUseCase(uow=uow).execute(obligation_id))
