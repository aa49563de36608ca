# src/llcdesk_api/domain/services/due_date_resolver.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Due-date rule resolver for state annual reports.

Purpose:
    Map a jurisdiction rule + formation (anchor) date + target year to a
    single due date.

Layer:
    domain/services

Notes:
    - Pure domain logic:
        * No logging.
        * No HTTP or transport concerns.
        * No persistence or gateways.
    - The resolver is frequency-agnostic per call: skipping alternate years
      for biennial jurisdictions is the reconciler's job.
    - Missing or unusable rules resolve to ``None`` ("no obligation") rather
      than raising, so a new jurisdiction never breaks a batch.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, timedelta

from llcdesk_api.domain.entities.billing import AnnualReportRule
from llcdesk_api.domain.enums.billing import DueType, Recurrence
from llcdesk_api.domain.services.annual_report_rules import ANNUAL_REPORT_RULES
from llcdesk_api.domain.services.period_calculator import last_day_of_month

_DEFAULT_FISCAL_MONTH = 4


def _month_end(year: int, month: int) -> date:
    return date(year, month, last_day_of_month(year, month))


def _clamped(year: int, month: int, day: int) -> date:
    return date(year, month, min(day, last_day_of_month(year, month)))


def resolve_due_date(rule: AnnualReportRule | None, anchor: date, year: int) -> date | None:
    """Resolve the due date of ``rule`` for the filing year ``year``.

    Args:
        rule: Jurisdiction rule, or ``None`` when the jurisdiction is unknown.
        anchor: Formation (anchor) date of the LLC.
        year: Target calendar year.

    Returns:
        The due date, or ``None`` when there is no obligation (unknown rule,
        ``frequency == NONE``, unrecognized due type, or missing parameters).
    """
    if rule is None or rule.frequency is Recurrence.NONE:
        return None

    due_type = rule.due_type
    if due_type is DueType.FIXED_DATE:
        if rule.month is None:
            return None
        if rule.day is None:
            return _month_end(year, rule.month)
        return _clamped(year, rule.month, rule.day)

    if due_type is DueType.ANNIVERSARY_MONTH_START:
        return date(year, anchor.month, 1)

    if due_type is DueType.ANNIVERSARY_MONTH_END:
        return _month_end(year, anchor.month)

    if due_type is DueType.ANNIVERSARY_QUARTER_END:
        quarter_end_month = ((anchor.month - 1) // 3 + 1) * 3
        return _month_end(year, quarter_end_month)

    if due_type is DueType.MONTH_BEFORE_ANNIVERSARY:
        if anchor.month == 1:
            return _month_end(year - 1, 12)
        return _month_end(year, anchor.month - 1)

    if due_type is DueType.AFTER_FORMATION_DAYS:
        if rule.offset_days is None:
            return None
        if year == anchor.year:
            return anchor + timedelta(days=rule.offset_days)
        return _clamped(year, anchor.month, anchor.day)

    if due_type is DueType.FISCAL_MONTH:
        return _clamped(year, rule.month or _DEFAULT_FISCAL_MONTH, rule.day or 1)

    return None


def due_date_for(
    jurisdiction_code: str | None,
    anchor: date,
    year: int,
    *,
    rules: Mapping[str, AnnualReportRule] = ANNUAL_REPORT_RULES,
) -> date | None:
    """Look up the jurisdiction's rule and resolve its due date for ``year``.

    Args:
        jurisdiction_code: Two-letter code; unknown codes yield ``None``.
        anchor: Formation (anchor) date.
        year: Target calendar year.
        rules: Rule registry (overridable for tests).

    Returns:
        The due date, or ``None`` when there is no obligation.
    """
    if not jurisdiction_code:
        return None
    return resolve_due_date(rules.get(jurisdiction_code.strip().upper()), anchor, year)


__all__ = ["due_date_for", "resolve_due_date"]
