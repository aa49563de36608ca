# src/llcdesk_api/adapters/routers/billing_sweep_router.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Billing Sweep Router (v1).

Synopsis:
    ``POST /v1/billing/sweep`` runs the status aging sweep over charges and
    annual-report obligations without creating anything.
"""

from __future__ import annotations

from datetime import date
from typing import Annotated

from fastapi import Depends, Query

from llcdesk_api.adapters.dependencies.billing_uow import get_billing_uow
from llcdesk_api.adapters.presenters.billing_presenter import present_sweep_result
from llcdesk_api.adapters.routers.base_router import BaseRouter
from llcdesk_api.adapters.schemas.http.billing_schemas import SweepResultHTTP
from llcdesk_api.adapters.schemas.http.envelopes import SuccessEnvelope
from llcdesk_api.application.uow import UnitOfWork
from llcdesk_api.application.use_cases.billing.sweep_obligation_status import (
    SweepObligationStatusUseCase,
)

router = BaseRouter(version="v1", resource="billing", tags=["Billing: Sweep"])


@router.post(
    "/sweep",
    response_model=SuccessEnvelope[SweepResultHTTP],
    responses=BaseRouter.std_error_responses(),
    summary="Age obligation statuses",
)
async def sweep_obligation_status(
    uow: Annotated[UnitOfWork, Depends(get_billing_uow)],
    as_of: Annotated[date | None, Query(description="Date treated as today (UTC).")] = None,
) -> SuccessEnvelope[SweepResultHTTP]:
    """Move pending rows past due to overdue and overdue rows no longer past due to pending."""
    result = await SweepObligationStatusUseCase(uow=uow).execute(as_of=as_of)
    return present_sweep_result(result)
