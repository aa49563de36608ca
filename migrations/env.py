# migrations/env.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""Alembic environment for the LLCDesk billing tables.

The database URL and schema come from :class:`llcdesk_api.config.settings.Settings`
(``DATABASE_URL``, ``DB_SCHEMA``). A ``.env.<ENVIRONMENT>`` file, when present,
is loaded first without overriding exported variables.

Usage:
    alembic upgrade head
    alembic upgrade head --sql          # offline script
    alembic -x show_url=1 upgrade head  # log the URL with the password hidden
"""

from __future__ import annotations

import asyncio
import logging
import logging.config
import os
from pathlib import Path

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import pool
from sqlalchemy.engine import Connection, make_url
from sqlalchemy.ext.asyncio import create_async_engine

config = context.config
if config.config_file_name is not None:
    logging.config.fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

_ROOT = Path(__file__).resolve().parents[1]
_environment = (os.getenv("ENVIRONMENT") or "").strip().lower()
if _environment and (_ROOT / f".env.{_environment}").exists():
    load_dotenv(_ROOT / f".env.{_environment}", override=False)

from llcdesk_api.config.settings import get_settings  # noqa: E402
from llcdesk_api.infrastructure.database.models import billing as _billing_models  # noqa: E402,F401
from llcdesk_api.infrastructure.database.models.base import metadata  # noqa: E402

settings = get_settings()
target_metadata = metadata


def _context_options() -> dict[str, object]:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "compare_server_default": True,
        "include_schemas": True,
        "version_table_schema": settings.db_schema,
    }


def _log_url() -> None:
    if context.get_x_argument(as_dictionary=True).get("show_url") == "1":
        url = make_url(settings.database_url).render_as_string(hide_password=True)
        logger.info("Migrating %s (environment=%s)", url, settings.environment.value)


def run_migrations_offline() -> None:
    """Emit the migration SQL without connecting."""
    _log_url()
    context.configure(
        url=settings.database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_context_options(),
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_sync(connection: Connection) -> None:
    context.configure(connection=connection, **_context_options())
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """Apply migrations over an async connection."""
    _log_url()
    engine = create_async_engine(settings.database_url, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_sync)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
