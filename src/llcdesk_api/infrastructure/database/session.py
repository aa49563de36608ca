# src/llcdesk_api/infrastructure/database/session.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Process-wide async engine and sessions for the billing database.

``create_app`` initializes the engine in its lifespan and disposes it on
shutdown. The billing UnitOfWork dependency takes :func:`get_sessionmaker`; the
readiness probe opens a throwaway session through :func:`get_db_session`.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager, suppress

from sqlalchemy.exc import IllegalStateChangeError, InvalidRequestError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from llcdesk_api.config.settings import Settings, get_settings

_engine: AsyncEngine | None = None
_sessionmaker: async_sessionmaker[AsyncSession] | None = None


def init_engine_and_sessionmaker(settings: Settings) -> None:
    """Create the engine for ``settings.database_url``; no-op when already created.

    Raises:
        ValueError: If ``database_url`` is empty.
    """
    global _engine, _sessionmaker

    if not settings.database_url:
        raise ValueError("database_url must be configured")
    if _engine is not None:
        return

    _engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    _sessionmaker = async_sessionmaker(bind=_engine, expire_on_commit=False, class_=AsyncSession)


async def dispose_engine() -> None:
    """Close pooled connections and forget the engine."""
    global _engine, _sessionmaker
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _sessionmaker = None


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Return the sessionmaker created by :func:`init_engine_and_sessionmaker`.

    Raises:
        RuntimeError: If the engine has not been initialized.
    """
    if _sessionmaker is None:
        raise RuntimeError("DB sessionmaker not initialized (call init_engine_and_sessionmaker)")
    return _sessionmaker


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a session that is rolled back and closed on exit.

    Initializes the engine from :func:`get_settings` when the app lifespan
    did not run (test clients without a ``with`` block).
    """
    if _sessionmaker is None:
        init_engine_and_sessionmaker(get_settings())

    session = get_sessionmaker()()
    try:
        yield session
    finally:
        with suppress(InvalidRequestError, IllegalStateChangeError):
            if session.in_transaction():
                await session.rollback()
            await session.close()
