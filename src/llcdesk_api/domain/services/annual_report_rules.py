# src/llcdesk_api/domain/services/annual_report_rules.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Annual-report rules by US jurisdiction.

Purpose:
    Registry of per-state annual-report policies (frequency, due-date policy,
    approximate fee). Jurisdictions absent from the registry produce no
    obligations.

Layer:
    domain/services

Notes:
    Fees are informational only and are never billed by the engine.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType

from llcdesk_api.domain.entities.billing import AnnualReportRule
from llcdesk_api.domain.enums.billing import DueType, Recurrence

_A = Recurrence.ANNUAL
_B = Recurrence.BIENNIAL
_N = Recurrence.NONE


def _fixed(
    code: str, name: str, freq: Recurrence, month: int, day: int, fee: str
) -> AnnualReportRule:
    return AnnualReportRule(
        jurisdiction_code=code,
        jurisdiction_name=name,
        frequency=freq,
        due_type=DueType.FIXED_DATE,
        month=month,
        day=day,
        fee=fee,
    )


def _policy(
    code: str,
    name: str,
    freq: Recurrence,
    due_type: DueType,
    fee: str,
    *,
    day: int | None = None,
    offset_days: int | None = None,
    note: str | None = None,
) -> AnnualReportRule:
    return AnnualReportRule(
        jurisdiction_code=code,
        jurisdiction_name=name,
        frequency=freq,
        due_type=due_type,
        day=day,
        offset_days=offset_days,
        fee=fee,
        note=note,
    )


def _exempt(code: str, name: str) -> AnnualReportRule:
    return AnnualReportRule(jurisdiction_code=code, jurisdiction_name=name, frequency=_N)


_RULES: tuple[AnnualReportRule, ...] = (
    _fixed("AL", "Alabama", _A, 3, 15, "~$100+"),
    _fixed("AK", "Alaska", _B, 1, 2, "~$100"),
    _fixed("AR", "Arkansas", _A, 5, 1, "~$150"),
    _policy(
        "CA",
        "California",
        _B,
        DueType.AFTER_FORMATION_DAYS,
        "~$20",
        offset_days=90,
        note="First filing 90 days after formation, biennial afterwards.",
    ),
    _policy("CO", "Colorado", _A, DueType.ANNIVERSARY_MONTH_END, "~$10"),
    _policy("CT", "Connecticut", _A, DueType.ANNIVERSARY_MONTH_END, "~$80"),
    _fixed("DE", "Delaware", _A, 6, 1, "~$300"),
    _fixed("FL", "Florida", _A, 5, 1, "~$138.75"),
    _fixed("GA", "Georgia", _A, 4, 1, "~$50"),
    _policy("HI", "Hawaii", _A, DueType.ANNIVERSARY_QUARTER_END, "~$15"),
    _policy("ID", "Idaho", _A, DueType.ANNIVERSARY_MONTH_END, "$0"),
    _policy("IL", "Illinois", _A, DueType.MONTH_BEFORE_ANNIVERSARY, "~$75"),
    _policy("IN", "Indiana", _B, DueType.ANNIVERSARY_MONTH_END, "~$50"),
    _fixed("IA", "Iowa", _B, 4, 1, "~$60"),
    _policy("KS", "Kansas", _A, DueType.FISCAL_MONTH, "~$55", day=15),
    _fixed("KY", "Kentucky", _A, 6, 30, "~$15"),
    _policy("LA", "Louisiana", _A, DueType.ANNIVERSARY_MONTH_END, "~$35"),
    _fixed("ME", "Maine", _A, 6, 1, "~$85"),
    _fixed("MD", "Maryland", _A, 4, 15, "~$300+"),
    _policy("MA", "Massachusetts", _A, DueType.FISCAL_MONTH, "~$500+"),
    _fixed("MI", "Michigan", _A, 2, 15, "~$25"),
    _fixed("MN", "Minnesota", _A, 12, 31, "$0"),
    _fixed("MS", "Mississippi", _A, 4, 15, "~$50"),
    _fixed("MT", "Montana", _A, 4, 15, "~$20"),
    _fixed("NE", "Nebraska", _B, 4, 1, "~$26"),
    _policy("NV", "Nevada", _A, DueType.ANNIVERSARY_MONTH_END, "~$350"),
    _fixed("NH", "New Hampshire", _A, 4, 1, "~$100"),
    _policy("NJ", "New Jersey", _A, DueType.MONTH_BEFORE_ANNIVERSARY, "~$50"),
    _policy("NY", "New York", _B, DueType.ANNIVERSARY_MONTH_END, "~$9"),
    _fixed("NC", "North Carolina", _A, 4, 15, "~$200"),
    _fixed("ND", "North Dakota", _A, 11, 15, "~$50"),
    _policy("OK", "Oklahoma", _A, DueType.ANNIVERSARY_MONTH_END, "~$25"),
    _policy("OR", "Oregon", _A, DueType.ANNIVERSARY_MONTH_END, "~$100"),
    _fixed("PA", "Pennsylvania", _A, 9, 30, "~$7"),
    _fixed("RI", "Rhode Island", _A, 5, 1, "~$50"),
    _policy("SD", "South Dakota", _A, DueType.ANNIVERSARY_MONTH_START, "~$50"),
    _policy("TN", "Tennessee", _A, DueType.FISCAL_MONTH, "~$300 minimum", day=1),
    _fixed("TX", "Texas", _A, 5, 15, "$0 (most LLCs)"),
    _policy("UT", "Utah", _A, DueType.ANNIVERSARY_MONTH_END, "~$20"),
    _fixed("VT", "Vermont", _A, 3, 15, "~$35"),
    _policy("VA", "Virginia", _A, DueType.ANNIVERSARY_MONTH_END, "~$50"),
    _policy("WA", "Washington", _A, DueType.ANNIVERSARY_MONTH_END, "~$73"),
    _fixed("WV", "West Virginia", _A, 7, 1, "~$25"),
    _policy("WI", "Wisconsin", _A, DueType.ANNIVERSARY_QUARTER_END, "~$25"),
    _policy("WY", "Wyoming", _A, DueType.ANNIVERSARY_MONTH_START, "~$60"),
    _fixed("DC", "District of Columbia", _B, 4, 1, "~$300"),
    _exempt("AZ", "Arizona"),
    _exempt("MO", "Missouri"),
    _exempt("NM", "New Mexico"),
    _exempt("OH", "Ohio"),
    _exempt("SC", "South Carolina"),
)

ANNUAL_REPORT_RULES: Mapping[str, AnnualReportRule] = MappingProxyType(
    {rule.jurisdiction_code: rule for rule in _RULES}
)


def get_annual_report_rule(jurisdiction_code: str | None) -> AnnualReportRule | None:
    """Return the rule for a jurisdiction code (case-insensitive), if registered."""
    if not jurisdiction_code:
        return None
    return ANNUAL_REPORT_RULES.get(jurisdiction_code.strip().upper())


def has_annual_report_obligation(jurisdiction_code: str | None) -> bool:
    """Return True when the jurisdiction is registered and requires filings."""
    rule = get_annual_report_rule(jurisdiction_code)
    return rule is not None and rule.has_obligation


def iter_annual_report_rules() -> Iterator[AnnualReportRule]:
    """Iterate registered rules in a stable (code-sorted) order."""
    for code in sorted(ANNUAL_REPORT_RULES):
        yield ANNUAL_REPORT_RULES[code]


__all__ = [
    "ANNUAL_REPORT_RULES",
    "get_annual_report_rule",
    "has_annual_report_obligation",
    "iter_annual_report_rules",
]
