# src/llcdesk_api/adapters/uow/__init__.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""
Unit of Work implementations (Adapters Layer)

Purpose:
    Provide concrete UnitOfWork implementations backed by SQLAlchemy's
    AsyncSession. Application-layer code depends only on the `UnitOfWork`
    protocol from `llcdesk_api.application.uow`.

Exports:
    - SqlAlchemyUnitOfWork: SQLAlchemy-backed UnitOfWork used by the HTTP
      dependencies and the reconcile CLI.
"""

from __future__ import annotations

from .sqlalchemy_uow import SqlAlchemyUnitOfWork

__all__ = ["SqlAlchemyUnitOfWork"]
