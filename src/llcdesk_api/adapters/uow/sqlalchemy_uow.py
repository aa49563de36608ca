# src/llcdesk_api/adapters/uow/sqlalchemy_uow.py
# Copyright (c) LLCDesk.
# SPDX-License-Identifier: MIT
"""SQLAlchemy-backed Unit of Work implementation.

Purpose:
    Provide a concrete implementation of the application-layer UnitOfWork
    protocol using SQLAlchemy's AsyncSession. This UoW coordinates the
    billing repositories within a single transactional scope.

Layer:
    adapters/uow

Notes:
    The same instance may be entered repeatedly, one scope after another;
    each ``async with`` opens a fresh session. The reconcilers rely on this
    to give every subject its own transaction.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from types import TracebackType
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from llcdesk_api.adapters.repositories.annual_report_obligations_repository import (
    SqlAlchemyAnnualReportObligationsRepository,
)
from llcdesk_api.adapters.repositories.billing_charges_repository import (
    SqlAlchemyBillingChargesRepository,
)
from llcdesk_api.adapters.repositories.billing_facts_repository import (
    SqlAlchemyBillingFactsRepository,
)
from llcdesk_api.application.uow import UnitOfWork
from llcdesk_api.domain.interfaces.repositories.annual_report_obligations_repository import (
    AnnualReportObligationsRepository,
)
from llcdesk_api.domain.interfaces.repositories.billing_charges_repository import (
    BillingChargesRepository,
)
from llcdesk_api.domain.interfaces.repositories.billing_facts_repository import (
    BillingFactsRepository,
)


class SqlAlchemyUnitOfWork(UnitOfWork):
    """SQLAlchemy-based UnitOfWork implementation.

    Coordinates a single AsyncSession and a set of repositories within a
    transactional context. Intended to be used via:

        async with SqlAlchemyUnitOfWork(session_factory=...) as uow:
            repo = uow.get_repository(BillingChargesRepository)
            ...
            await uow.commit()
    """

    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession],
        repo_factories: Mapping[type[Any], Callable[[AsyncSession], Any]] | None = None,
    ) -> None:
        """Initialize the UnitOfWork.

        Args:
            session_factory:
                Factory for creating new AsyncSession instances.
            repo_factories:
                Optional mapping from repository type to a factory function
                taking an AsyncSession and returning a repository instance.
                Defaults are provided for the billing repositories.
        """
        self._session_factory = session_factory
        self._session: AsyncSession | None = None

        # Interface -> implementation, plus the concrete classes as keys.
        default_factories: dict[type[Any], Callable[[AsyncSession], Any]] = {
            BillingFactsRepository: lambda s: SqlAlchemyBillingFactsRepository(session=s),
            BillingChargesRepository: lambda s: SqlAlchemyBillingChargesRepository(session=s),
            AnnualReportObligationsRepository: lambda s: (
                SqlAlchemyAnnualReportObligationsRepository(session=s)
            ),
            SqlAlchemyBillingFactsRepository: lambda s: SqlAlchemyBillingFactsRepository(
                session=s
            ),
            SqlAlchemyBillingChargesRepository: lambda s: SqlAlchemyBillingChargesRepository(
                session=s
            ),
            SqlAlchemyAnnualReportObligationsRepository: lambda s: (
                SqlAlchemyAnnualReportObligationsRepository(session=s)
            ),
        }

        self._repo_factories: dict[type[Any], Callable[[AsyncSession], Any]] = {
            **default_factories,
            **(dict(repo_factories) if repo_factories is not None else {}),
        }

        self._repos: dict[type[Any], Any] = {}
        self._committed = False
        self._rolled_back = False

    # ------------------------------------------------------------------
    # Async context manager
    # ------------------------------------------------------------------

    async def __aenter__(self) -> SqlAlchemyUnitOfWork:
        """Enter the UnitOfWork context and open a new AsyncSession.

        Raises:
            RuntimeError: If a session is already active (nested usage).
        """
        if self._session is not None:
            raise RuntimeError("UnitOfWork is already active; nested usage is not supported.")

        self._session = self._session_factory()
        self._committed = False
        self._rolled_back = False
        self._repos.clear()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool | None:
        """Exit the UnitOfWork context.

        Rolls back when an exception escaped the scope, then closes the
        session and clears cached repositories. Exceptions are propagated.
        """
        try:
            if exc_type is not None and not self._rolled_back:
                await self.rollback()
        finally:
            if self._session is not None:
                await self._session.close()
                self._session = None
            self._repos.clear()
        return None

    # ------------------------------------------------------------------
    # Transaction control
    # ------------------------------------------------------------------

    async def commit(self) -> None:
        """Commit the current transaction; no-op once committed or rolled back.

        Raises:
            RuntimeError: If called without an active session.
        """
        if self._session is None:
            raise RuntimeError("Cannot commit: UnitOfWork has no active session.")

        if self._committed or self._rolled_back:
            return

        await self._session.commit()
        self._committed = True

    async def rollback(self) -> None:
        """Roll back the current transaction; no-op without an open one."""
        if self._session is None:
            return

        if self._rolled_back or self._committed:
            return

        await self._session.rollback()
        self._rolled_back = True

    # ------------------------------------------------------------------
    # Repository resolution
    # ------------------------------------------------------------------

    def get_repository(self, repo_type: type[Any]) -> Any:
        """Return a repository instance bound to the active session.

        Instances are cached for the lifetime of the current scope.

        Raises:
            RuntimeError: If called outside of an active UnitOfWork context.
            KeyError: If no factory is registered for the given repo_type.
        """
        if self._session is None:
            raise RuntimeError(
                "get_repository() called outside of an active UnitOfWork scope. "
                "Use 'async with uow:' before requesting repositories.",
            )

        if repo_type in self._repos:
            return self._repos[repo_type]

        try:
            factory = self._repo_factories[repo_type]
        except KeyError as exc:
            raise KeyError(
                f"No repository factory registered for type {repo_type!r}.",
            ) from exc

        repo = factory(self._session)
        self._repos[repo_type] = repo
        return repo
