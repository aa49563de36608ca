# src/llcdesk_api/adapters/schemas/http/__init__.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""HTTP Schemas package (Adapters Layer).

Purpose:
    Public, adapter-facing HTTP schema surface for LLCDesk.

    This module re-exports the canonical envelopes used by routers and
    presenters. It does NOT expose BaseHTTPSchema, which stays internal to
    this package.

Layer:
    adapters/schemas/http
"""

from __future__ import annotations

from llcdesk_api.adapters.schemas.http.envelopes import (
    ErrorEnvelope,
    ErrorObject,
    PaginatedEnvelope,
    SuccessEnvelope,
)

__all__ = [
    "ErrorObject",
    "ErrorEnvelope",
    "SuccessEnvelope",
    "PaginatedEnvelope",
]
