# src/llcdesk_api/application/use_cases/billing/sweep_obligation_status.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Use case: Age open obligations against today.

Purpose:
    Run the status aging sweep over both obligation tables without a
    reconcile pass (cron and the ``POST /v1/billing/sweep`` route).

Layer:
    application/use_cases/billing
"""

from __future__ import annotations

import logging
from datetime import date

from llcdesk_api.application.schemas.dto.billing import SweepResultDTO
from llcdesk_api.application.uow import UnitOfWork
from llcdesk_api.application.use_cases.billing.reconcile_charges import utc_today
from llcdesk_api.application.use_cases.billing.repositories import (
    get_annual_reports_repo,
    get_charges_repo,
)

logger = logging.getLogger(__name__)


class SweepObligationStatusUseCase:
    """Transition ``pending <-> overdue`` on charges and annual reports."""

    def __init__(self, *, uow: UnitOfWork) -> None:
        self._uow = uow

    async def execute(self, as_of: date | None = None) -> SweepResultDTO:
        """Sweep both tables in a single transaction.

        Args:
            as_of: Calendar date treated as "today"; defaults to the UTC date.

        Returns:
            Rows transitioned per table.
        """
        today = as_of or utc_today()
        async with self._uow as tx:
            charges = await get_charges_repo(tx).sweep_status(today)
            annual_reports = await get_annual_reports_repo(tx).sweep_status(today)
            await tx.commit()

        logger.info(
            "billing.sweep_obligation_status.success",
            extra={
                "extra": {
                    "today": today.isoformat(),
                    "charges": charges,
                    "annual_reports": annual_reports,
                }
            },
        )
        return SweepResultDTO(charges=charges, annual_reports=annual_reports)


__all__ = ["SweepObligationStatusUseCase"]
