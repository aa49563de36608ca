# src/llcdesk_api/domain/exceptions/billing.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Billing domain exceptions.

Layer:
    domain/exceptions
"""

from __future__ import annotations

from llcdesk_api.domain.exceptions.base import DomainError


class ObligationNotFound(DomainError):
    """Raised when a charge or annual-report obligation does not exist."""

    code = "OBLIGATION_NOT_FOUND"
    http_status = 404


class ObligationStateError(DomainError):
    """Raised when a human action conflicts with the row's current status."""

    code = "OBLIGATION_STATE_CONFLICT"
    http_status = 409


class ObligationValidationError(DomainError):
    """Raised when a human action carries invalid input."""

    code = "OBLIGATION_VALIDATION_ERROR"
    http_status = 400


class DuplicateObligationError(DomainError):
    """Raised when an insert lost a race on the obligation uniqueness key.

    Reconcilers treat this as "already exists"; it is never surfaced to users.
    """

    code = "OBLIGATION_DUPLICATE"
    http_status = 409


__all__ = [
    "DuplicateObligationError",
    "ObligationNotFound",
    "ObligationStateError",
    "ObligationValidationError",
]
