# src/llcdesk_api/domain/services/period_calculator.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Period calculator for recurring charges.

Purpose:
    Map billing facts (anchor date, recurrence, optional expiration) to the
    current billing period ``[start, end)`` and, on request, the period that
    follows a known boundary.

Layer:
    domain/services

Notes:
    - Pure domain logic:
        * No logging.
        * No HTTP or transport concerns.
        * No persistence or gateways.
    - Boundaries are always computed from the anchor (``anchor + k`` months or
      years), never by chaining single-step additions. An anchor on the 31st
      therefore yields Jan 31, Feb 29, Mar 31 rather than drifting to the 29th.
    - Periods are start-inclusive and end-exclusive: an ``as_of`` equal to a
      boundary belongs to the period that starts on it.
"""

from __future__ import annotations

import calendar
from datetime import date

from llcdesk_api.domain.entities.billing import ClientBillingFacts, ObligationPeriod
from llcdesk_api.domain.enums.billing import Recurrence

_STEPPED = (Recurrence.MONTHLY, Recurrence.ANNUAL)


def last_day_of_month(year: int, month: int) -> int:
    """Return the number of days in ``month`` of ``year``."""
    return calendar.monthrange(year, month)[1]


def add_months_safe(d: date, months: int) -> date:
    """Add calendar months, clamping the day to the target month's last day.

    Args:
        d: Start date.
        months: Number of months to add (may be negative).

    Returns:
        The shifted date, e.g. ``2024-01-31 + 1 -> 2024-02-29``.
    """
    index = d.year * 12 + (d.month - 1) + months
    year, month0 = divmod(index, 12)
    month = month0 + 1
    return date(year, month, min(d.day, last_day_of_month(year, month)))


def add_years_safe(d: date, years: int) -> date:
    """Add calendar years; Feb 29 maps to Feb 28 in non-leap years."""
    year = d.year + years
    return date(year, d.month, min(d.day, last_day_of_month(year, d.month)))


def _boundary(anchor: date, recurrence: Recurrence, k: int) -> date:
    if recurrence is Recurrence.MONTHLY:
        return add_months_safe(anchor, k)
    return add_years_safe(anchor, k)


def _steps_between(anchor: date, day: date, recurrence: Recurrence) -> int:
    """Return a lower-bound estimate of whole steps from ``anchor`` to ``day``."""
    if recurrence is Recurrence.MONTHLY:
        raw = (day.year - anchor.year) * 12 + (day.month - anchor.month)
    else:
        raw = day.year - anchor.year
    return max(0, raw - 1)


def _finalize(
    facts: ClientBillingFacts, start: date, end: date
) -> ObligationPeriod | None:
    """Apply expiration rules and compute the due date."""
    if facts.recurrence is Recurrence.MONTHLY:
        return ObligationPeriod(period_start=start, period_end=end, due_date=end)

    expiration = facts.expiration_date
    if expiration is not None and end > expiration:
        return None
    return ObligationPeriod(
        period_start=start,
        period_end=end,
        due_date=expiration if expiration is not None else end,
    )


def current_period(facts: ClientBillingFacts, as_of: date) -> ObligationPeriod | None:
    """Return the period containing ``as_of`` (or the first period, if not started).

    Args:
        facts: Billing facts; only ``MONTHLY`` and ``ANNUAL`` recurrences step.
        as_of: Evaluation date (UTC calendar date).

    Returns:
        The first period ``[start, end)`` with ``as_of < end``, or ``None``
        when the recurrence does not step or an Annual service has expired
        (``as_of >= expiration_date``) or would run past its expiration.
    """
    recurrence = facts.recurrence
    if recurrence not in _STEPPED:
        return None
    if (
        recurrence is Recurrence.ANNUAL
        and facts.expiration_date is not None
        and as_of >= facts.expiration_date
    ):
        return None

    anchor = facts.anchor_date
    k = _steps_between(anchor, as_of, recurrence)
    end = _boundary(anchor, recurrence, k + 1)
    while as_of >= end:
        k += 1
        end = _boundary(anchor, recurrence, k + 1)
    return _finalize(facts, _boundary(anchor, recurrence, k), end)


def next_period(facts: ClientBillingFacts, after_period_end: date) -> ObligationPeriod | None:
    """Return the period starting at the first boundary on/after ``after_period_end``.

    Args:
        facts: Billing facts.
        after_period_end: End of a known period (normally ``current.period_end``).

    Returns:
        The next period, or ``None`` under the same expiration rules as
        :func:`current_period`.
    """
    recurrence = facts.recurrence
    if recurrence not in _STEPPED:
        return None
    if (
        recurrence is Recurrence.ANNUAL
        and facts.expiration_date is not None
        and after_period_end >= facts.expiration_date
    ):
        return None

    anchor = facts.anchor_date
    k = _steps_between(anchor, after_period_end, recurrence)
    start = _boundary(anchor, recurrence, k)
    while start < after_period_end:
        k += 1
        start = _boundary(anchor, recurrence, k)
    return _finalize(facts, start, _boundary(anchor, recurrence, k + 1))


__all__ = [
    "add_months_safe",
    "add_years_safe",
    "current_period",
    "last_day_of_month",
    "next_period",
]
