# src/llcdesk_api/domain/enums/billing.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Billing enums for the obligation scheduling domain.

Purpose:
    Define the closed vocabularies shared by the period calculator, the
    due-date resolver, the reconcilers, and the persistence adapters.

Layer:
    domain/enums

Notes:
    - Pure domain types:
        * No logging.
        * No HTTP or transport concerns.
        * No persistence or gateways.
    - Free-form labels stored by the back-office (e.g. ``"Mensal"``, ``"Llc"``)
      are normalized through the ``parse`` class methods at the data-access
      boundary; nothing downstream compares raw strings.
"""

from __future__ import annotations

import unicodedata
from enum import Enum


def _fold(raw: str) -> str:
    """Lower-case and strip accents so ``"Endereço"`` matches ``"endereco"``."""
    decomposed = unicodedata.normalize("NFKD", raw.strip())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).lower()


class Recurrence(str, Enum):
    """How often an obligation repeats."""

    MONTHLY = "Monthly"
    ANNUAL = "Annual"
    BIENNIAL = "Biennial"
    NONE = "None"

    @classmethod
    def parse(cls, raw: str | None) -> Recurrence | None:
        """Normalize a stored billing-period / frequency label.

        Accepts the English values and the Portuguese labels used by the
        legacy spreadsheets (``Mensal``, ``Anual``, ``Bienal``, ``Nenhum``).

        Args:
            raw: Label as stored, or ``None``.

        Returns:
            The matching member, or ``None`` when the label is empty or unknown.
        """
        if raw is None or not raw.strip():
            return None
        return _RECURRENCE_ALIASES.get(_fold(raw))

    @property
    def aliases(self) -> tuple[str, ...]:
        """Return the lower-case stored labels that parse to this member."""
        return tuple(label for label, member in _RECURRENCE_ALIASES.items() if member is self)


_RECURRENCE_ALIASES: dict[str, Recurrence] = {
    "monthly": Recurrence.MONTHLY,
    "mensal": Recurrence.MONTHLY,
    "annual": Recurrence.ANNUAL,
    "anual": Recurrence.ANNUAL,
    "yearly": Recurrence.ANNUAL,
    "biennial": Recurrence.BIENNIAL,
    "bienal": Recurrence.BIENNIAL,
    "none": Recurrence.NONE,
    "nenhum": Recurrence.NONE,
}


class ObligationStatus(str, Enum):
    """Lifecycle status of a persisted charge or annual-report obligation."""

    PENDING = "pending"
    OVERDUE = "overdue"
    PAID = "paid"
    DONE = "done"
    CANCELED = "canceled"

    @property
    def is_open(self) -> bool:
        """Return True for statuses the engine may still age or correct."""
        return self in OPEN_STATUSES

    @property
    def is_terminal(self) -> bool:
        """Return True for human-owned statuses the engine must never touch."""
        return not self.is_open


OPEN_STATUSES: frozenset[ObligationStatus] = frozenset(
    {ObligationStatus.PENDING, ObligationStatus.OVERDUE}
)


class LineItemKind(str, Enum):
    """Category of a client line item relevant to billing."""

    ADDRESS = "Address"
    LLC = "LLC"

    @property
    def aliases(self) -> tuple[str, ...]:
        """Return accent-free, lower-case labels stored for this kind."""
        return _KIND_ALIASES[self]

    @classmethod
    def parse(cls, raw: str | None) -> LineItemKind | None:
        """Normalize a stored ``kind`` label (case/accent insensitive)."""
        if raw is None:
            return None
        folded = _fold(raw)
        for kind, labels in _KIND_ALIASES.items():
            if folded in labels:
                return kind
        return None


_KIND_ALIASES: dict[LineItemKind, tuple[str, ...]] = {
    LineItemKind.ADDRESS: ("address", "endereco"),
    LineItemKind.LLC: ("llc",),
}


class DueType(str, Enum):
    """Jurisdiction due-date policy for annual reports."""

    FIXED_DATE = "fixed-date"
    ANNIVERSARY_MONTH_START = "anniversary-month-start"
    ANNIVERSARY_MONTH_END = "anniversary-month-end"
    ANNIVERSARY_QUARTER_END = "anniversary-quarter"
    MONTH_BEFORE_ANNIVERSARY = "month-before-anniversary"
    AFTER_FORMATION_DAYS = "after-formation-days"
    FISCAL_MONTH = "fiscal-month"


class ChargeSort(str, Enum):
    """Sort orders accepted by charge listings."""

    DEFAULT = "default"
    DUE_DATE_ASC = "due_date_asc"
    DUE_DATE_DESC = "due_date_desc"
    COMPANY_ASC = "company_asc"
    COMPANY_DESC = "company_desc"


class PaymentProvider(str, Enum):
    """Where a charge payment was recorded."""

    MANUAL = "manual"
    STRIPE = "stripe"


class ObligationEngine(str, Enum):
    """Reconciler identity, used for logs and metric labels."""

    CHARGES = "charges"
    ANNUAL_REPORTS = "annual_reports"


__all__ = [
    "ChargeSort",
    "DueType",
    "LineItemKind",
    "OPEN_STATUSES",
    "ObligationEngine",
    "ObligationStatus",
    "PaymentProvider",
    "Recurrence",
]
