from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.testclient import TestClient

from llcdesk_api.adapters.routers.health_router import get_session_factory


class _Session:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.statements: list[str] = []

    async def execute(self, stmt: Any) -> None:
        if self.error is not None:
            raise self.error
        self.statements.append(str(stmt))


def _factory(session: _Session) -> Any:
    @asynccontextmanager
    async def factory() -> AsyncIterator[_Session]:
        yield session

    return factory


def test_healthz_does_not_need_a_database(client: TestClient) -> None:
    assert client.get("/healthz").json() == {"status": "ok"}


def test_readyz_ok(app: FastAPI, client: TestClient) -> None:
    session = _Session()
    app.dependency_overrides[get_session_factory] = lambda: _factory(session)

    resp = client.get("/readyz")

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["checks"][0]["name"] == "db"
    assert body["checks"][0]["status"] == "ok"
    assert session.statements == ["SELECT 1"]


def test_readyz_degraded_when_database_is_down(app: FastAPI, client: TestClient) -> None:
    session = _Session(error=ConnectionRefusedError("connection refused"))
    app.dependency_overrides[get_session_factory] = lambda: _factory(session)

    resp = client.get("/readyz")

    assert resp.status_code == 503
    body = resp.json()
    assert body["status"] == "degraded"
    assert body["checks"][0] == {
        "name": "db",
        "status": "down",
        "detail": "connection refused",
        "duration_ms": body["checks"][0]["duration_ms"],
    }
