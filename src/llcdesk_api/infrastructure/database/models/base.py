# src/llcdesk_api/infrastructure/database/models/base.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Declarative Base and persistence mixins for LLCDesk.

This module defines:
    - A project-wide SQLAlchemy Declarative Base with deterministic naming
      conventions (for stable Alembic diffs).
    - Persistence mixins for identity (UUIDv4), audit timestamps (UTC) and
      soft-delete.
    - A concise ``__repr__`` mixin (no domain logic).

Notes:
    Models that declare their own constraints build ``__table_args__`` with
    :func:`table_args` so the configured schema is kept.
"""

from __future__ import annotations

import os
import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import MetaData
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column
from sqlalchemy.sql import func
from sqlalchemy.types import DateTime

__all__ = [
    "DEFAULT_DB_SCHEMA",
    "Base",
    "BaseEntity",
    "IdentityMixin",
    "ReprMixin",
    "SoftDeleteMixin",
    "TimestampMixin",
    "metadata",
    "now_utc",
    "qualified",
    "table_args",
]

#: Default database schema for all tables (``DB_SCHEMA`` env, empty disables).
DEFAULT_DB_SCHEMA: str | None = os.getenv("DB_SCHEMA", "public") or None

#: Deterministic naming conventions for Alembic-friendly diffs.
#: Ref: https://alembic.sqlalchemy.org/en/latest/naming.html
NAMING_CONVENTIONS: dict[str, str] = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=NAMING_CONVENTIONS)


def now_utc() -> datetime:
    """Return the current UTC time with timezone info."""
    return datetime.now(UTC)


def qualified(target: str) -> str:
    """Return ``table.column`` prefixed with the configured schema, for FKs."""
    return f"{DEFAULT_DB_SCHEMA}.{target}" if DEFAULT_DB_SCHEMA else target


def table_args(*constraints: Any) -> tuple[Any, ...]:
    """Return ``__table_args__`` with ``constraints`` plus the schema mapping."""
    if DEFAULT_DB_SCHEMA:
        return (*constraints, {"schema": DEFAULT_DB_SCHEMA})
    return tuple(constraints)


class Base(DeclarativeBase):
    """Declarative Base for all ORM models."""

    metadata = metadata

    @declared_attr.directive
    def __table_args__(cls) -> tuple[Any, ...]:
        """Attach the default schema when configured."""
        return table_args()


class IdentityMixin:
    """Mixin providing a UUIDv4 primary key ``id`` column."""

    id: Mapped[uuid.UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=func.gen_random_uuid(),
        nullable=False,
    )


class TimestampMixin:
    """Mixin providing ``created_at`` and ``updated_at`` timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=now_utc,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=now_utc,
        onupdate=now_utc,
        server_default=func.now(),
    )


class SoftDeleteMixin:
    """Mixin providing a nullable ``deleted_at`` timestamp for soft-deletes."""

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
    )


class ReprMixin:
    """Mixin providing a concise, field-based ``__repr__`` implementation."""

    def __repr__(self) -> str:
        cls = type(self)
        attrs = []
        for column in cls.__table__.columns:  # type: ignore[attr-defined]
            value = getattr(self, column.key, None)
            if isinstance(value, (str, int, bool, uuid.UUID)):
                attrs.append(f"{column.key}={value!r}")
        return f"{cls.__name__}({', '.join(sorted(attrs))})"


class BaseEntity(IdentityMixin, TimestampMixin, Base):
    """Concrete base class for most entities in the system."""

    __abstract__ = True
