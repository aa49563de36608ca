from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from llcdesk_api.domain.exceptions.billing import ObligationStateError
from llcdesk_api.infrastructure.http.errors import (
    error_envelope,
    handle_domain_error,
    handle_http_exception,
    handle_unhandled_exception,
)


def test_error_envelope_omits_empty_optional_keys() -> None:
    assert error_envelope(code="X", http_status=400, message="bad") == {
        "error": {"code": "X", "http_status": 400, "message": "bad"}
    }


def test_error_envelope_includes_details_and_trace_id() -> None:
    env = error_envelope(
        code="X", http_status=409, message="m", details={"a": 1}, trace_id="t-1"
    )

    assert env["error"]["details"] == {"a": 1}
    assert env["error"]["trace_id"] == "t-1"


def _app() -> FastAPI:
    app = FastAPI()
    app.add_exception_handler(ObligationStateError, handle_domain_error)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, handle_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, handle_unhandled_exception)

    @app.get("/conflict")
    async def conflict() -> None:
        raise ObligationStateError("Cannot pay a paid charge.", details={"status": "paid"})

    @app.get("/teapot")
    async def teapot() -> None:
        raise HTTPException(status_code=418, detail={"reason": "short and stout"})

    @app.get("/boom")
    async def boom() -> None:
        raise RuntimeError("secret internals")

    return app


def test_domain_error_maps_to_declared_status() -> None:
    resp = TestClient(_app()).get("/conflict")

    assert resp.status_code == 409
    assert resp.json() == {
        "error": {
            "code": "OBLIGATION_STATE_CONFLICT",
            "http_status": 409,
            "message": "Cannot pay a paid charge.",
            "details": {"status": "paid"},
        }
    }


def test_http_exception_with_structured_detail() -> None:
    resp = TestClient(_app()).get("/teapot")

    assert resp.status_code == 418
    error = resp.json()["error"]
    assert error["code"] == "HTTP_ERROR"
    assert error["details"] == {"detail": {"reason": "short and stout"}}


def test_unhandled_exception_hides_internals() -> None:
    resp = TestClient(_app(), raise_server_exceptions=False).get("/boom")

    assert resp.status_code == 500
    error = resp.json()["error"]
    assert error["code"] == "INTERNAL_ERROR"
    assert "secret" not in error["message"]
