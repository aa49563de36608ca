# src/llcdesk_api/adapters/routers/billing_charges_router.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Billing Charges Router (v1).

Synopsis:
    HTTP surface for recurring address/service charges.

Endpoints (all under /v1/billing/charges):
    - GET    ""                 → reconcile, then PaginatedEnvelope of charges.
    - POST   "/reconcile"       → SuccessEnvelope with the reconcile outcome.
    - GET    "/summary"         → SuccessEnvelope with pending/overdue/paid totals.
    - GET    "/{charge_id}"     → SuccessEnvelope with the charge.
    - PATCH  "/{charge_id}"     → SuccessEnvelope with the edited charge.
    - DELETE "/{charge_id}"     → 204.
    - POST   "/{charge_id}/pay|cancel|reopen" → SuccessEnvelope with the charge.

Design:
    * Routers parse HTTP input into filters/DTOs and call use cases.
    * Domain errors propagate to the exception handlers, which map them to
      the canonical error envelope.
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
    present_charge,
    present_charge_page,
    present_charges_summary,
    present_reconcile_result,
)
from llcdesk_api.adapters.routers.base_router import BaseRouter, PageParams
from llcdesk_api.adapters.schemas.http.billing_schemas import (
    CancelObligationHTTPRequest,
    ChargeHTTP,
    ChargeListItemHTTP,
    ChargesSummaryHTTP,
    MarkChargePaidHTTPRequest,
    ReconcileResultHTTP,
    UpdateChargeHTTPRequest,
)
from llcdesk_api.adapters.schemas.http.envelopes import PaginatedEnvelope, SuccessEnvelope
from llcdesk_api.application.interfaces.reconcile_metrics import ReconcileMetricsPort
from llcdesk_api.application.schemas.dto.billing import (
    CHARGES_WINDOW_DAYS_MAX,
    CancelObligationRequestDTO,
    MarkChargePaidRequestDTO,
    ReconcileChargesRequestDTO,
    UpdateChargeRequestDTO,
)
from llcdesk_api.application.uow import UnitOfWork
from llcdesk_api.application.use_cases.billing.list_obligations import (
    GetChargesSummaryUseCase,
    ListChargesUseCase,
)
from llcdesk_api.application.use_cases.billing.manage_charges import (
    CancelChargeUseCase,
    DeleteChargeUseCase,
    GetChargeUseCase,
    MarkChargePaidUseCase,
    ReopenChargeUseCase,
    UpdateChargeUseCase,
)
from llcdesk_api.application.use_cases.billing.reconcile_charges import (
    ReconcileChargesUseCase,
)
from llcdesk_api.domain.entities.billing_filters import ChargeListFilters, parse_status_filter
from llcdesk_api.domain.enums.billing import ChargeSort, PaymentProvider, Recurrence
from llcdesk_api.domain.exceptions.billing import ObligationValidationError
from llcdesk_api.domain.services.jurisdictions import normalize_jurisdiction

router = BaseRouter(version="v1", resource="billing/charges", tags=["Billing: Charges"])

_DEFAULT_STATUS_FILTER = "pending,overdue"

WindowDays = Annotated[
    int | None,
    Query(
        description=(
            "Forward window in days for the reconcile pass, clamped to "
            f"0..{CHARGES_WINDOW_DAYS_MAX} (default from settings)."
        ),
    ),
]


def _charge_filters(
    *,
    status_raw: str | None,
    recurrence_raw: str | None,
    due_from: date | None,
    due_to: date | None,
    q: str | None,
    client_id: UUID | None,
    state: str | None,
    sort: ChargeSort,
    page_params: PageParams,
) -> ChargeListFilters:
    """Translate query parameters into listing filters (400 on bad values)."""
    try:
        statuses = parse_status_filter(status_raw)
    except ValueError as exc:
        raise ObligationValidationError(
            "Invalid status filter.", details={"status": status_raw}
        ) from exc

    recurrence: Recurrence | None = None
    if recurrence_raw and recurrence_raw.strip().lower() != "all":
        recurrence = Recurrence.parse(recurrence_raw)
        if recurrence not in (Recurrence.MONTHLY, Recurrence.ANNUAL):
            raise ObligationValidationError(
                "Invalid recurrence filter.", details={"recurrence": recurrence_raw}
            )

    jurisdiction_code: str | None = None
    if state and state.strip():
        jurisdiction_code = normalize_jurisdiction(state)
        if jurisdiction_code is None:
            raise ObligationValidationError("Unknown state.", details={"state": state})

    return ChargeListFilters(
        statuses=statuses,
        recurrence=recurrence,
        due_from=due_from,
        due_to=due_to,
        query=q,
        client_id=client_id,
        jurisdiction_code=jurisdiction_code,
        sort=sort,
        page=page_params.page,
        limit=page_params.limit,
    )


# ---------------------------------------------------------------------------
# Collection routes
# ---------------------------------------------------------------------------


@router.get(
    "",
    response_model=PaginatedEnvelope[ChargeListItemHTTP],
    responses=BaseRouter.std_error_responses(),
    summary="Reconcile and list charges",
    description=(
        "Runs a charges reconcile pass over the requested window, then returns a page "
        "of charges. Default ordering puts overdue charges first, then by due date."
    ),
)
async def list_charges(
    uow: Annotated[UnitOfWork, Depends(get_billing_uow)],
    metrics: Annotated[ReconcileMetricsPort, Depends(get_reconcile_metrics)],
    windows: Annotated[ReconcileWindows, Depends(get_reconcile_windows)],
    page_params: Annotated[PageParams, Depends(BaseRouter.page_params)],
    window_days: WindowDays = None,
    status_filter: Annotated[
        str | None,
        Query(alias="status", description="'all', a status, or a comma-separated list."),
    ] = _DEFAULT_STATUS_FILTER,
    recurrence: Annotated[
        str | None, Query(description="Billing period of the source item (Monthly/Annual).")
    ] = None,
    due_from: Annotated[date | None, Query(description="Inclusive lower due-date bound.")] = None,
    due_to: Annotated[date | None, Query(description="Inclusive upper due-date bound.")] = None,
    q: Annotated[str | None, Query(description="Search company name and address.")] = None,
    client_id: Annotated[UUID | None, Query()] = None,
    state: Annotated[
        str | None, Query(description="Jurisdiction of the client's latest LLC (code or name).")
    ] = None,
    sort: Annotated[ChargeSort, Query()] = ChargeSort.DEFAULT,
) -> PaginatedEnvelope[ChargeListItemHTTP]:
    """Reconcile, then list charges."""
    filters = _charge_filters(
        status_raw=status_filter,
        recurrence_raw=recurrence,
        due_from=due_from,
        due_to=due_to,
        q=q,
        client_id=client_id,
        state=state,
        sort=sort,
        page_params=page_params,
    )
    await ReconcileChargesUseCase(
        uow=uow, default_window_days=windows.charges_days, metrics=metrics
    ).execute(ReconcileChargesRequestDTO(window_days=window_days))
    page = await ListChargesUseCase(uow=uow).execute(filters)
    return present_charge_page(page)


@router.post(
    "/reconcile",
    response_model=SuccessEnvelope[ReconcileResultHTTP],
    responses=BaseRouter.std_error_responses(),
    summary="Run a charges reconcile pass",
)
async def reconcile_charges(
    uow: Annotated[UnitOfWork, Depends(get_billing_uow)],
    metrics: Annotated[ReconcileMetricsPort, Depends(get_reconcile_metrics)],
    windows: Annotated[ReconcileWindows, Depends(get_reconcile_windows)],
    window_days: WindowDays = None,
    as_of: Annotated[date | None, Query(description="Date treated as today (UTC).")] = None,
) -> SuccessEnvelope[ReconcileResultHTTP]:
    """Create missing charges inside the window and age statuses."""
    result = await ReconcileChargesUseCase(
        uow=uow, default_window_days=windows.charges_days, metrics=metrics
    ).execute(ReconcileChargesRequestDTO(window_days=window_days, as_of=as_of))
    return present_reconcile_result(result)


@router.get(
    "/summary",
    response_model=SuccessEnvelope[ChargesSummaryHTTP],
    responses=BaseRouter.std_error_responses(),
    summary="Charge totals",
)
async def charges_summary(
    uow: Annotated[UnitOfWork, Depends(get_billing_uow)],
) -> SuccessEnvelope[ChargesSummaryHTTP]:
    """Return pending, overdue and paid-this-month totals."""
    summary = await GetChargesSummaryUseCase(uow=uow).execute()
    return present_charges_summary(summary)


# ---------------------------------------------------------------------------
# Item routes
# ---------------------------------------------------------------------------


@router.get(
    "/{charge_id}",
    response_model=SuccessEnvelope[ChargeHTTP],
    responses=BaseRouter.std_error_responses(),
    summary="Get a charge",
)
async def get_charge(
    charge_id: UUID,
    uow: Annotated[UnitOfWork, Depends(get_billing_uow)],
) -> SuccessEnvelope[ChargeHTTP]:
    """Return a single charge."""
    return present_charge(await GetChargeUseCase(uow=uow).execute(charge_id))


@router.patch(
    "/{charge_id}",
    response_model=SuccessEnvelope[ChargeHTTP],
    responses=BaseRouter.std_error_responses(),
    summary="Edit a charge",
)
async def update_charge(
    charge_id: UUID,
    body: UpdateChargeHTTPRequest,
    uow: Annotated[UnitOfWork, Depends(get_billing_uow)],
) -> SuccessEnvelope[ChargeHTTP]:
    """Apply the fields present in the body."""
    charge = await UpdateChargeUseCase(uow=uow).execute(
        UpdateChargeRequestDTO(
            charge_id=charge_id,
            amount_cents=body.amount_cents,
            due_date=body.due_date,
            notes=body.notes,
            paid_at=body.paid_at,
            fields=frozenset(body.model_fields_set),
        )
    )
    return present_charge(charge)


@router.delete(
    "/{charge_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=BaseRouter.std_error_responses(),
    summary="Delete a charge",
)
async def delete_charge(
    charge_id: UUID,
    uow: Annotated[UnitOfWork, Depends(get_billing_uow)],
) -> Response:
    """Delete a charge permanently."""
    await DeleteChargeUseCase(uow=uow).execute(charge_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{charge_id}/pay",
    response_model=SuccessEnvelope[ChargeHTTP],
    responses=BaseRouter.std_error_responses(),
    summary="Record a payment",
)
async def pay_charge(
    charge_id: UUID,
    uow: Annotated[UnitOfWork, Depends(get_billing_uow)],
    body: Annotated[MarkChargePaidHTTPRequest | None, Body()] = None,
) -> SuccessEnvelope[ChargeHTTP]:
    """Mark an open charge as paid."""
    body = body or MarkChargePaidHTTPRequest()
    charge = await MarkChargePaidUseCase(uow=uow).execute(
        MarkChargePaidRequestDTO(
            charge_id=charge_id,
            paid_at=body.paid_at,
            paid_method=body.paid_method,
            provider=PaymentProvider(body.provider),
            provider_ref=body.provider_ref,
            notes=body.notes,
        )
    )
    return present_charge(charge)


@router.post(
    "/{charge_id}/cancel",
    response_model=SuccessEnvelope[ChargeHTTP],
    responses=BaseRouter.std_error_responses(),
    summary="Cancel a charge",
)
async def cancel_charge(
    charge_id: UUID,
    uow: Annotated[UnitOfWork, Depends(get_billing_uow)],
    body: Annotated[CancelObligationHTTPRequest | None, Body()] = None,
) -> SuccessEnvelope[ChargeHTTP]:
    """Cancel an open charge."""
    charge = await CancelChargeUseCase(uow=uow).execute(
        CancelObligationRequestDTO(obligation_id=charge_id, notes=body.notes if body else None)
    )
    return present_charge(charge)


@router.post(
    "/{charge_id}/reopen",
    response_model=SuccessEnvelope[ChargeHTTP],
    responses=BaseRouter.std_error_responses(),
    summary="Reopen a canceled charge",
)
async def reopen_charge(
    charge_id: UUID,
    uow: Annotated[UnitOfWork, Depends(get_billing_uow)],
) -> SuccessEnvelope[ChargeHTTP]:
    """Reopen a canceled charge as pending or overdue."""
    return present_charge(await ReopenChargeUseCase(uow=uow).execute(charge_id))
