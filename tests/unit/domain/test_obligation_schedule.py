from __future__ import annotations

from datetime import date
from uuid import uuid4

from llcdesk_api.domain.entities.billing import ClientBillingFacts
from llcdesk_api.domain.enums.billing import Recurrence
from llcdesk_api.domain.services.annual_report_rules import ANNUAL_REPORT_RULES
from llcdesk_api.domain.services.obligation_schedule import (
    ExpectedFiling,
    expected_annual_report_filings,
    expected_charge_periods,
    filing_years,
)


def _charge_facts(recurrence: Recurrence, anchor: date) -> ClientBillingFacts:
    return ClientBillingFacts(
        client_id=uuid4(),
        recurrence=recurrence,
        anchor_date=anchor,
        source_id=uuid4(),
        amount_cents=4900,
    )


def _llc_facts(code: str, anchor: date) -> ClientBillingFacts:
    return ClientBillingFacts(
        client_id=uuid4(),
        recurrence=ANNUAL_REPORT_RULES[code].frequency,
        anchor_date=anchor,
        jurisdiction_code=code,
    )


def test_charge_window_zero_returns_only_the_current_period() -> None:
    facts = _charge_facts(Recurrence.MONTHLY, date(2024, 1, 15))

    periods = expected_charge_periods(facts, date(2024, 3, 20), window_days=0)

    assert [(p.period_start, p.period_end) for p in periods] == [
        (date(2024, 3, 15), date(2024, 4, 15))
    ]


def test_charge_window_adds_next_period_when_due_inside_it() -> None:
    facts = _charge_facts(Recurrence.MONTHLY, date(2024, 1, 15))

    short = expected_charge_periods(facts, date(2024, 3, 20), window_days=30)
    long = expected_charge_periods(facts, date(2024, 3, 20), window_days=60)

    assert len(short) == 1
    assert [p.due_date for p in long] == [date(2024, 4, 15), date(2024, 5, 15)]


def test_charge_schedule_is_empty_for_non_stepping_recurrence() -> None:
    facts = _charge_facts(Recurrence.NONE, date(2024, 1, 15))

    assert expected_charge_periods(facts, date(2024, 3, 20), window_days=60) == []


def test_biennial_filing_years_count_from_the_formation_year() -> None:
    assert filing_years(date(2021, 6, 1), Recurrence.BIENNIAL, 2025, 2027) == [2025, 2027]
    assert filing_years(date(2020, 6, 1), Recurrence.BIENNIAL, 2025, 2027) == [2026]
    assert filing_years(date(2020, 6, 1), Recurrence.ANNUAL, 2025, 2026) == [2025, 2026]
    assert filing_years(date(2020, 6, 1), Recurrence.NONE, 2025, 2026) == []


def test_annual_filings_cover_every_year_in_the_window() -> None:
    facts = _llc_facts("WY", date(2020, 7, 20))

    filings = expected_annual_report_filings(
        facts, ANNUAL_REPORT_RULES["WY"], date(2025, 3, 1), window_months=12
    )

    assert filings == [
        ExpectedFiling(period_year=2025, due_date=date(2025, 7, 1)),
        ExpectedFiling(period_year=2026, due_date=date(2026, 7, 1)),
    ]


def test_window_zero_keeps_only_the_current_year() -> None:
    facts = _llc_facts("WY", date(2020, 7, 20))

    filings = expected_annual_report_filings(
        facts, ANNUAL_REPORT_RULES["WY"], date(2025, 3, 1), window_months=0
    )

    assert [f.period_year for f in filings] == [2025]


def test_alaska_biennial_skips_off_years() -> None:
    facts = _llc_facts("AK", date(2021, 6, 1))

    filings = expected_annual_report_filings(
        facts, ANNUAL_REPORT_RULES["AK"], date(2025, 3, 1), window_months=12
    )

    assert filings == [ExpectedFiling(period_year=2025, due_date=date(2025, 1, 2))]


def test_new_york_biennial_uses_the_anniversary_month() -> None:
    facts = _llc_facts("NY", date(2020, 4, 10))

    filings = expected_annual_report_filings(
        facts, ANNUAL_REPORT_RULES["NY"], date(2025, 1, 15), window_months=12
    )

    assert filings == [ExpectedFiling(period_year=2026, due_date=date(2026, 4, 30))]


def test_california_first_filing_year_comes_from_the_due_date() -> None:
    facts = _llc_facts("CA", date(2025, 11, 15))

    filings = expected_annual_report_filings(
        facts, ANNUAL_REPORT_RULES["CA"], date(2025, 11, 20), window_months=12
    )

    assert filings == [ExpectedFiling(period_year=2026, due_date=date(2026, 2, 13))]
    period = filings[0].period
    assert (period.period_start, period.period_end) == (date(2026, 1, 1), date(2027, 1, 1))


def test_exempt_or_missing_rule_yields_no_filings() -> None:
    facts = _llc_facts("AZ", date(2020, 1, 1))

    assert (
        expected_annual_report_filings(facts, ANNUAL_REPORT_RULES["AZ"], date(2025, 1, 1), 12)
        == []
    )
    assert expected_annual_report_filings(facts, None, date(2025, 1, 1), 12) == []
