from __future__ import annotations

from datetime import UTC, date, datetime
from uuid import uuid4

from llcdesk_api.application.schemas.dto.billing import ReconcileAnnualReportsRequestDTO
from llcdesk_api.application.use_cases.billing.reconcile_annual_reports import (
    ReconcileAnnualReportsUseCase,
)
from llcdesk_api.domain.entities.billing import AnnualReportRule, ClientBillingFacts
from llcdesk_api.domain.enums.billing import (
    DueType,
    ObligationEngine,
    ObligationStatus,
    Recurrence,
)

AS_OF = date(2025, 3, 1)


def _facts(code: str = "WY", **overrides: object) -> ClientBillingFacts:
    values: dict[str, object] = {
        "client_id": uuid4(),
        "source_id": uuid4(),
        "recurrence": Recurrence.ANNUAL,
        "anchor_date": date(2020, 7, 20),
        "jurisdiction_code": code,
    }
    values.update(overrides)
    return ClientBillingFacts(**values)  # type: ignore[arg-type]


def _req(window_months: int | None = 12) -> ReconcileAnnualReportsRequestDTO:
    return ReconcileAnnualReportsRequestDTO(window_months=window_months, as_of=AS_OF)


async def test_creates_one_obligation_per_filing_year(uow, metrics) -> None:
    facts = _facts()
    uow.facts_repo.annual_report_facts.append(facts)

    result = await ReconcileAnnualReportsUseCase(uow=uow, metrics=metrics).execute(_req())

    assert result.engine is ObligationEngine.ANNUAL_REPORTS
    assert (result.created, result.updated, result.failed_subjects) == (2, 0, 0)
    rows = sorted(uow.annual_reports_repo.rows.values(), key=lambda r: r.period_year)
    assert [(r.period_year, r.due_date) for r in rows] == [
        (2025, date(2025, 7, 1)),
        (2026, date(2026, 7, 1)),
    ]
    assert all(r.jurisdiction_code == "WY" and r.frequency is Recurrence.ANNUAL for r in rows)
    assert (rows[0].period_start, rows[0].period_end) == (date(2025, 1, 1), date(2026, 1, 1))


async def test_open_row_with_stale_due_date_is_corrected(uow) -> None:
    facts = _facts()
    uow.facts_repo.annual_report_facts.append(facts)
    stale = uow.annual_reports_repo.add(
        client_id=facts.client_id, period_year=2025, due_date=date(2025, 6, 1)
    )

    result = await ReconcileAnnualReportsUseCase(uow=uow).execute(_req())

    assert result.created == 1
    assert result.updated == 1
    assert uow.annual_reports_repo.rows[stale.id].due_date == date(2025, 7, 1)


async def test_done_row_keeps_its_due_date(uow) -> None:
    facts = _facts()
    uow.facts_repo.annual_report_facts.append(facts)
    filed = uow.annual_reports_repo.add(
        client_id=facts.client_id,
        period_year=2025,
        due_date=date(2025, 6, 1),
        status=ObligationStatus.DONE,
        done_at=datetime(2025, 2, 1, tzinfo=UTC),
    )

    result = await ReconcileAnnualReportsUseCase(uow=uow).execute(_req(window_months=0))

    assert (result.created, result.updated) == (0, 0)
    assert uow.annual_reports_repo.rows[filed.id] == filed


async def test_updated_includes_aging_transitions(uow) -> None:
    past_due = uow.annual_reports_repo.add(period_year=2024, due_date=date(2024, 7, 1))

    result = await ReconcileAnnualReportsUseCase(uow=uow).execute(_req())

    assert result.updated == 1
    assert uow.annual_reports_repo.rows[past_due.id].status is ObligationStatus.OVERDUE


async def test_biennial_jurisdiction_skips_off_years(uow) -> None:
    facts = _facts("AK", recurrence=Recurrence.BIENNIAL, anchor_date=date(2020, 6, 1))
    uow.facts_repo.annual_report_facts.append(facts)

    result = await ReconcileAnnualReportsUseCase(uow=uow).execute(_req())

    assert result.created == 1
    (row,) = uow.annual_reports_repo.rows.values()
    assert (row.period_year, row.due_date, row.frequency) == (
        2026,
        date(2026, 1, 2),
        Recurrence.BIENNIAL,
    )


async def test_exempt_unknown_and_non_filing_subjects_are_skipped(uow) -> None:
    uow.facts_repo.annual_report_facts.extend(
        [
            _facts("AZ", recurrence=Recurrence.NONE),
            _facts("ZZ"),
            _facts(jurisdiction_code=None),
        ]
    )

    result = await ReconcileAnnualReportsUseCase(uow=uow).execute(_req())

    assert result.subjects == 3
    assert result.created == 0
    assert uow.annual_reports_repo.rows == {}


async def test_rule_registry_can_be_injected(uow) -> None:
    uow.facts_repo.annual_report_facts.append(_facts("WY"))
    rules = {
        "WY": AnnualReportRule(
            jurisdiction_code="WY",
            jurisdiction_name="Wyoming",
            frequency=Recurrence.ANNUAL,
            due_type=DueType.FIXED_DATE,
            month=9,
            day=30,
        )
    }

    await ReconcileAnnualReportsUseCase(uow=uow, rules=rules).execute(_req(window_months=0))

    (row,) = uow.annual_reports_repo.rows.values()
    assert row.due_date == date(2025, 9, 30)


async def test_failing_subject_is_isolated_and_counted(uow, metrics) -> None:
    bad = _facts()
    good = _facts()
    uow.facts_repo.annual_report_facts.extend([bad, good])
    uow.annual_reports_repo.fail_for_clients.add(bad.client_id)

    result = await ReconcileAnnualReportsUseCase(uow=uow, metrics=metrics).execute(
        _req(window_months=0)
    )

    assert (result.created, result.failed_subjects) == (1, 1)
    assert metrics.failures == [(ObligationEngine.ANNUAL_REPORTS, "RuntimeError")]
    assert (ObligationEngine.ANNUAL_REPORTS, "corrected", 0) in metrics.obligations
