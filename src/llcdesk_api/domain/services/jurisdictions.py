# src/llcdesk_api/domain/services/jurisdictions.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""US jurisdiction codes and name normalization.

Purpose:
    Map the free-form state values stored on LLC line items (``"WY"``,
    ``"wy"``, ``"Wyoming"``) to canonical two-letter codes.

Layer:
    domain/services
"""

from __future__ import annotations

import unicodedata
from collections.abc import Mapping
from types import MappingProxyType

US_JURISDICTIONS: Mapping[str, str] = MappingProxyType(
    {
        "AL": "Alabama",
        "AK": "Alaska",
        "AZ": "Arizona",
        "AR": "Arkansas",
        "CA": "California",
        "CO": "Colorado",
        "CT": "Connecticut",
        "DE": "Delaware",
        "DC": "District of Columbia",
        "FL": "Florida",
        "GA": "Georgia",
        "HI": "Hawaii",
        "ID": "Idaho",
        "IL": "Illinois",
        "IN": "Indiana",
        "IA": "Iowa",
        "KS": "Kansas",
        "KY": "Kentucky",
        "LA": "Louisiana",
        "ME": "Maine",
        "MD": "Maryland",
        "MA": "Massachusetts",
        "MI": "Michigan",
        "MN": "Minnesota",
        "MS": "Mississippi",
        "MO": "Missouri",
        "MT": "Montana",
        "NE": "Nebraska",
        "NV": "Nevada",
        "NH": "New Hampshire",
        "NJ": "New Jersey",
        "NM": "New Mexico",
        "NY": "New York",
        "NC": "North Carolina",
        "ND": "North Dakota",
        "OH": "Ohio",
        "OK": "Oklahoma",
        "OR": "Oregon",
        "PA": "Pennsylvania",
        "RI": "Rhode Island",
        "SC": "South Carolina",
        "SD": "South Dakota",
        "TN": "Tennessee",
        "TX": "Texas",
        "UT": "Utah",
        "VT": "Vermont",
        "VA": "Virginia",
        "WA": "Washington",
        "WV": "West Virginia",
        "WI": "Wisconsin",
        "WY": "Wyoming",
    }
)

# Alternate spellings seen in imported spreadsheets.
_EXTRA_NAMES: Mapping[str, str] = {
    "washington dc": "DC",
    "washington d.c.": "DC",
    "distrito de columbia": "DC",
    "carolina do norte": "NC",
    "carolina do sul": "SC",
    "nova york": "NY",
    "nova jersey": "NJ",
    "novo mexico": "NM",
    "havai": "HI",
    "florida": "FL",
}


def _fold(raw: str) -> str:
    decomposed = unicodedata.normalize("NFKD", raw)
    ascii_only = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return " ".join(ascii_only.lower().split())


_BY_NAME: Mapping[str, str] = MappingProxyType(
    {**{_fold(name): code for code, name in US_JURISDICTIONS.items()}, **_EXTRA_NAMES}
)


def normalize_jurisdiction(raw: str | None) -> str | None:
    """Return the canonical two-letter code for a stored state value.

    Args:
        raw: Code or name in any case; surrounding whitespace is ignored.

    Returns:
        The two-letter code, or ``None`` when the value is empty or unknown.
    """
    if raw is None or not raw.strip():
        return None
    candidate = raw.strip().upper()
    if candidate in US_JURISDICTIONS:
        return candidate
    return _BY_NAME.get(_fold(raw))


def jurisdiction_name(code: str) -> str | None:
    """Return the display name for a two-letter code."""
    return US_JURISDICTIONS.get(code.upper())


__all__ = ["US_JURISDICTIONS", "jurisdiction_name", "normalize_jurisdiction"]
