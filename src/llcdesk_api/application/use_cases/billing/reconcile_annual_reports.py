# src/llcdesk_api/application/use_cases/billing/reconcile_annual_reports.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Use case: Reconcile state annual-report obligations.

Purpose:
    For every client whose most recent LLC line item names a jurisdiction
    with a filing requirement, make sure one obligation exists per filing
    year inside the forward window, and keep due dates of still-open rows
    in step with the jurisdiction rule.

Layer:
    application/use_cases/billing

Notes:
    - Years run from ``today.year`` to ``(today + window_months).year``.
    - Biennial jurisdictions only file in years with an even distance from
      the formation year.
    - ``period_year`` is the resolved due date's year.
    - Rows that are ``done`` or ``canceled`` are never corrected.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from functools import partial

from llcdesk_api.application.interfaces.reconcile_metrics import (
    NullReconcileMetrics,
    ReconcileMetricsPort,
)
from llcdesk_api.application.schemas.dto.billing import (
    ANNUAL_REPORTS_WINDOW_MONTHS_DEFAULT,
    ANNUAL_REPORTS_WINDOW_MONTHS_MAX,
    ReconcileAnnualReportsRequestDTO,
    ReconcileResultDTO,
    clamp_window,
)
from llcdesk_api.application.uow import UnitOfWork, run_in_uow
from llcdesk_api.application.use_cases.billing.reconcile_charges import utc_today
from llcdesk_api.application.use_cases.billing.repositories import (
    get_annual_reports_repo,
    get_facts_repo,
)
from llcdesk_api.domain.entities.billing import AnnualReportRule, ClientBillingFacts
from llcdesk_api.domain.enums.billing import ObligationEngine, Recurrence
from llcdesk_api.domain.exceptions.billing import DuplicateObligationError
from llcdesk_api.domain.services.annual_report_rules import ANNUAL_REPORT_RULES
from llcdesk_api.domain.services.obligation_schedule import (
    ExpectedFiling,
    expected_annual_report_filings,
)

logger = logging.getLogger(__name__)

_ENGINE = ObligationEngine.ANNUAL_REPORTS
_FILING_FREQUENCIES = frozenset({Recurrence.ANNUAL, Recurrence.BIENNIAL})


@dataclass(frozen=True, slots=True)
class _SubjectOutcome:
    created: int = 0
    corrected: int = 0


class ReconcileAnnualReportsUseCase:
    """Create missing annual-report obligations and correct open due dates.

    Args:
        uow: Application UnitOfWork; entered once per subject.
        default_window_months: Window used when the request leaves it unset.
        metrics: Optional metrics sink.
        rules: Jurisdiction rule registry, keyed by two-letter code.
    """

    def __init__(
        self,
        *,
        uow: UnitOfWork,
        default_window_months: int = ANNUAL_REPORTS_WINDOW_MONTHS_DEFAULT,
        metrics: ReconcileMetricsPort | None = None,
        rules: Mapping[str, AnnualReportRule] = ANNUAL_REPORT_RULES,
    ) -> None:
        self._uow = uow
        self._default_window_months = clamp_window(
            default_window_months,
            default=ANNUAL_REPORTS_WINDOW_MONTHS_DEFAULT,
            maximum=ANNUAL_REPORTS_WINDOW_MONTHS_MAX,
        )
        self._metrics: ReconcileMetricsPort = metrics or NullReconcileMetrics()
        self._rules = rules

    async def execute(
        self, req: ReconcileAnnualReportsRequestDTO | None = None
    ) -> ReconcileResultDTO:
        """Run one reconcile pass.

        Args:
            req: Window and optional ``as_of`` override.

        Returns:
            ReconcileResultDTO where ``updated`` counts due-date corrections
            plus aging-sweep transitions.
        """
        req = req or ReconcileAnnualReportsRequestDTO()
        window_months = clamp_window(
            req.window_months,
            default=self._default_window_months,
            maximum=ANNUAL_REPORTS_WINDOW_MONTHS_MAX,
        )
        today = req.as_of or utc_today()
        started = time.perf_counter()

        logger.info(
            "billing.reconcile_annual_reports.start",
            extra={"extra": {"window_months": window_months, "today": today.isoformat()}},
        )

        async with self._uow as tx:
            all_facts = list(await get_facts_repo(tx).list_annual_report_facts())

        created = 0
        corrected = 0
        failed = 0
        for facts in all_facts:
            if facts.recurrence not in _FILING_FREQUENCIES or facts.jurisdiction_code is None:
                continue
            rule = self._rules.get(facts.jurisdiction_code)
            filings = expected_annual_report_filings(facts, rule, today, window_months)
            if rule is None or not filings:
                continue
            try:
                outcome = await run_in_uow(
                    self._uow,
                    partial(
                        _reconcile_subject,
                        facts=facts,
                        jurisdiction_code=facts.jurisdiction_code,
                        frequency=rule.frequency,
                        filings=filings,
                    ),
                )
            except Exception as exc:  # noqa: BLE001
                failed += 1
                self._metrics.record_subject_failure(_ENGINE, reason=type(exc).__name__)
                logger.warning(
                    "billing.reconcile_annual_reports.subject_failed",
                    exc_info=True,
                    extra={
                        "extra": {
                            "client_id": str(facts.client_id),
                            "jurisdiction_code": facts.jurisdiction_code,
                            "period_years": [f.period_year for f in filings],
                        }
                    },
                )
                continue
            created += outcome.created
            corrected += outcome.corrected

        aged = await run_in_uow(self._uow, partial(_sweep, today=today))

        duration = time.perf_counter() - started
        self._metrics.record_obligations(_ENGINE, result="created", count=created)
        self._metrics.record_obligations(_ENGINE, result="corrected", count=corrected)
        self._metrics.record_obligations(_ENGINE, result="aged", count=aged)
        self._metrics.record_run(_ENGINE, duration_s=duration)

        logger.info(
            "billing.reconcile_annual_reports.success",
            extra={
                "extra": {
                    "subjects": len(all_facts),
                    "rows_created": created,
                    "rows_corrected": corrected,
                    "rows_aged": aged,
                    "failed_subjects": failed,
                    "duration_ms": int(duration * 1000),
                }
            },
        )
        return ReconcileResultDTO(
            engine=_ENGINE,
            created=created,
            updated=corrected + aged,
            subjects=len(all_facts),
            failed_subjects=failed,
        )


async def _reconcile_subject(
    tx: UnitOfWork,
    *,
    facts: ClientBillingFacts,
    jurisdiction_code: str,
    frequency: Recurrence,
    filings: list[ExpectedFiling],
) -> _SubjectOutcome:
    repo = get_annual_reports_repo(tx)
    created = 0
    corrected = 0
    for filing in filings:
        try:
            row, was_created = await repo.create_if_not_exists(
                client_id=facts.client_id,
                jurisdiction_code=jurisdiction_code,
                frequency=frequency,
                period_year=filing.period_year,
                due_date=filing.due_date,
            )
        except DuplicateObligationError:
            continue
        if was_created:
            created += 1
            continue
        if row.status.is_open and row.due_date != filing.due_date:
            if await repo.correct_due_date(row.id, due_date=filing.due_date):
                corrected += 1
    return _SubjectOutcome(created=created, corrected=corrected)


async def _sweep(tx: UnitOfWork, *, today: date) -> int:
    return await get_annual_reports_repo(tx).sweep_status(today)


__all__ = ["ReconcileAnnualReportsUseCase"]
