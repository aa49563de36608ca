# src/llcdesk_api/domain/services/obligation_schedule.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Expected-obligation schedules for both reconcilers.

Purpose:
    Combine the period calculator and the due-date resolver into the list of
    obligations that *should* exist for a subject inside a forward window.
    Reconcilers compare this list to persisted rows.

Layer:
    domain/services

Notes:
    - Pure domain logic (no I/O, no logging).
    - The annual-report ``period_year`` is taken from the resolved due date,
      not from the loop year. A December anchor under an after-formation
      rule can therefore yield a filing "for" year Y+1 that was generated
      while iterating year Y. Consumers rely on due-date/year alignment.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

from llcdesk_api.domain.entities.billing import (
    AnnualReportRule,
    ClientBillingFacts,
    ObligationPeriod,
)
from llcdesk_api.domain.enums.billing import Recurrence
from llcdesk_api.domain.services.due_date_resolver import resolve_due_date
from llcdesk_api.domain.services.period_calculator import (
    add_months_safe,
    current_period,
    next_period,
)


@dataclass(frozen=True, slots=True)
class ExpectedFiling:
    """An annual-report filing that should exist.

    Attributes:
        period_year: Year derived from ``due_date``.
        due_date: Resolved due date.
    """

    period_year: int
    due_date: date

    @property
    def period(self) -> ObligationPeriod:
        """Return the calendar-year period ``[Jan 1, Jan 1 next year)``."""
        return ObligationPeriod(
            period_start=date(self.period_year, 1, 1),
            period_end=date(self.period_year + 1, 1, 1),
            due_date=self.due_date,
        )


def expected_charge_periods(
    facts: ClientBillingFacts, today: date, window_days: int
) -> list[ObligationPeriod]:
    """Return the charge periods that should exist for ``facts`` as of ``today``.

    The current period is always included when it exists. When
    ``window_days > 0`` the following period is added if its due date falls on
    or before ``today + window_days``.

    Args:
        facts: Charges facts (Monthly or Annual).
        today: UTC calendar date of the pass.
        window_days: Forward window in days (``0`` disables look-ahead).

    Returns:
        Zero, one or two periods in chronological order.
    """
    current = current_period(facts, today)
    if current is None:
        return []

    periods = [current]
    if window_days > 0:
        upcoming = next_period(facts, current.period_end)
        if upcoming is not None and upcoming.due_date <= today + timedelta(days=window_days):
            periods.append(upcoming)
    return periods


def filing_years(
    anchor: date, frequency: Recurrence, start_year: int, end_year: int
) -> list[int]:
    """Return the candidate filing years in ``[start_year, end_year]``.

    Biennial jurisdictions keep only years with an even distance from the
    anchor (formation) year, i.e. the formation year itself is filing year 0.
    """
    years = range(start_year, end_year + 1)
    if frequency is Recurrence.BIENNIAL:
        return [year for year in years if (year - anchor.year) % 2 == 0]
    if frequency is Recurrence.ANNUAL:
        return list(years)
    return []


def expected_annual_report_filings(
    facts: ClientBillingFacts,
    rule: AnnualReportRule | None,
    today: date,
    window_months: int,
) -> list[ExpectedFiling]:
    """Return the annual-report filings that should exist inside the window.

    Years run from ``today.year`` through ``(today + window_months).year``
    inclusive.

    Args:
        facts: Annual-report facts (anchor = formation date).
        rule: Jurisdiction rule; ``None`` or ``NONE`` frequency yields nothing.
        today: UTC calendar date of the pass.
        window_months: Forward window in months.

    Returns:
        Filings in loop order, de-duplicated by ``period_year``.
    """
    if rule is None or not rule.has_obligation:
        return []

    end_year = add_months_safe(today, max(0, window_months)).year
    filings: list[ExpectedFiling] = []
    seen: set[int] = set()
    for year in filing_years(facts.anchor_date, rule.frequency, today.year, end_year):
        due = resolve_due_date(rule, facts.anchor_date, year)
        if due is None or due.year in seen:
            continue
        seen.add(due.year)
        filings.append(ExpectedFiling(period_year=due.year, due_date=due))
    return filings


__all__ = [
    "ExpectedFiling",
    "expected_annual_report_filings",
    "expected_charge_periods",
    "filing_years",
]
