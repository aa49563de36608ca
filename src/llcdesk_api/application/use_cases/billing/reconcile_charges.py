# src/llcdesk_api/application/use_cases/billing/reconcile_charges.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Use case: Reconcile recurring address/service charges.

Purpose:
    Bring the ``billing_charges`` table in line with what the period
    calculator says should exist for each client's Address line item:
        - read charges facts (one per eligible client),
        - compute the current period and, inside the forward window, the
          next period,
        - insert missing rows with a race-safe insert-or-detect,
        - age ``pending``/``overdue`` rows against today.

Layer:
    application/use_cases/billing

Notes:
    - Existing charges are never modified by this pass; human edits to
      amount or due date win.
    - Each client runs in its own Unit of Work. A failing client is logged,
      counted and rolled back alone; the pass continues.
"""

from __future__ import annotations

import logging
import time
from datetime import UTC, date, datetime
from functools import partial
from uuid import UUID

from llcdesk_api.application.interfaces.reconcile_metrics import (
    NullReconcileMetrics,
    ReconcileMetricsPort,
)
from llcdesk_api.application.schemas.dto.billing import (
    CHARGES_WINDOW_DAYS_DEFAULT,
    CHARGES_WINDOW_DAYS_MAX,
    ReconcileChargesRequestDTO,
    ReconcileResultDTO,
    clamp_window,
)
from llcdesk_api.application.uow import UnitOfWork, run_in_uow
from llcdesk_api.application.use_cases.billing.repositories import (
    get_charges_repo,
    get_facts_repo,
)
from llcdesk_api.domain.entities.billing import ClientBillingFacts, ObligationPeriod
from llcdesk_api.domain.enums.billing import ObligationEngine
from llcdesk_api.domain.exceptions.billing import DuplicateObligationError
from llcdesk_api.domain.services.obligation_schedule import expected_charge_periods

logger = logging.getLogger(__name__)

_ENGINE = ObligationEngine.CHARGES


def utc_today() -> date:
    """Return the current UTC calendar date."""
    return datetime.now(tz=UTC).date()


class ReconcileChargesUseCase:
    """Create missing charges for every eligible client, then age statuses.

    Args:
        uow: Application UnitOfWork; entered once per subject.
        default_window_days: Window used when the request leaves it unset.
        metrics: Optional metrics sink.
    """

    def __init__(
        self,
        *,
        uow: UnitOfWork,
        default_window_days: int = CHARGES_WINDOW_DAYS_DEFAULT,
        metrics: ReconcileMetricsPort | None = None,
    ) -> None:
        self._uow = uow
        self._default_window_days = clamp_window(
            default_window_days,
            default=CHARGES_WINDOW_DAYS_DEFAULT,
            maximum=CHARGES_WINDOW_DAYS_MAX,
        )
        self._metrics: ReconcileMetricsPort = metrics or NullReconcileMetrics()

    async def execute(self, req: ReconcileChargesRequestDTO | None = None) -> ReconcileResultDTO:
        """Run one reconcile pass.

        Args:
            req: Window and optional ``as_of`` override.

        Returns:
            ReconcileResultDTO where ``updated`` is the number of rows the
            aging sweep transitioned.

        Raises:
            Exception: Failures reading facts or running the sweep propagate;
                per-subject failures do not.
        """
        req = req or ReconcileChargesRequestDTO()
        window_days = clamp_window(
            req.window_days,
            default=self._default_window_days,
            maximum=CHARGES_WINDOW_DAYS_MAX,
        )
        today = req.as_of or utc_today()
        started = time.perf_counter()

        logger.info(
            "billing.reconcile_charges.start",
            extra={"extra": {"window_days": window_days, "today": today.isoformat()}},
        )

        async with self._uow as tx:
            all_facts = list(await get_facts_repo(tx).list_charge_facts())

        created = 0
        failed = 0
        for facts in all_facts:
            if facts.source_id is None:
                continue
            periods = expected_charge_periods(facts, today, window_days)
            if not periods:
                continue
            try:
                created += await run_in_uow(
                    self._uow,
                    partial(
                        self._reconcile_subject,
                        facts=facts,
                        line_item_id=facts.source_id,
                        periods=periods,
                    ),
                )
            except Exception as exc:  # noqa: BLE001
                failed += 1
                self._metrics.record_subject_failure(_ENGINE, reason=type(exc).__name__)
                logger.warning(
                    "billing.reconcile_charges.subject_failed",
                    exc_info=True,
                    extra={
                        "extra": {
                            "client_id": str(facts.client_id),
                            "line_item_id": str(facts.source_id),
                            "periods": [p.period_start.isoformat() for p in periods],
                        }
                    },
                )

        aged = await run_in_uow(self._uow, partial(_sweep, today=today))

        duration = time.perf_counter() - started
        self._metrics.record_obligations(_ENGINE, result="created", count=created)
        self._metrics.record_obligations(_ENGINE, result="aged", count=aged)
        self._metrics.record_run(_ENGINE, duration_s=duration)

        logger.info(
            "billing.reconcile_charges.success",
            extra={
                "extra": {
                    "subjects": len(all_facts),
                    "rows_created": created,
                    "rows_aged": aged,
                    "failed_subjects": failed,
                    "duration_ms": int(duration * 1000),
                }
            },
        )
        return ReconcileResultDTO(
            engine=_ENGINE,
            created=created,
            updated=aged,
            subjects=len(all_facts),
            failed_subjects=failed,
        )

    @staticmethod
    async def _reconcile_subject(
        tx: UnitOfWork,
        *,
        facts: ClientBillingFacts,
        line_item_id: UUID,
        periods: list[ObligationPeriod],
    ) -> int:
        repo = get_charges_repo(tx)
        created = 0
        for period in periods:
            try:
                _, was_created = await repo.create_if_not_exists(
                    client_id=facts.client_id,
                    line_item_id=line_item_id,
                    period=period,
                    amount_cents=facts.amount_cents,
                )
            except DuplicateObligationError:
                # Lost an insert race; the row exists.
                continue
            if was_created:
                created += 1
        return created


async def _sweep(tx: UnitOfWork, *, today: date) -> int:
    return await get_charges_repo(tx).sweep_status(today)


__all__ = ["ReconcileChargesUseCase", "utc_today"]
