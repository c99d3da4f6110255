"""Tests for error handling and the error envelope."""
import json
from typing import Any

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from ehs.exceptions import (
    AccountLockedError,
    AuthenticationError,
    ConflictError,
    EHSException,
    ErrorCodes,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    TenantSuspendedError,
    ValidationError,
)
from ehs.middleware.error_handler import (
    ErrorHandlerMiddleware,
    handle_ehs_exception,
    register_exception_handlers,
    status_code_for,
)
from ehs.middleware.request_id import RequestIDMiddleware


class TestStatusCodeMapping:
    """Exceptions map to HTTP status codes through their class hierarchy."""

    @pytest.mark.parametrize(
        "exc,expected",
        [
            (ValidationError("bad"), 400),
            (AuthenticationError(), 401),
            (PermissionDeniedError(), 403),
            (TenantSuspendedError(), 403),
            (NotFoundError("Chemical"), 404),
            (ConflictError("already closed"), 409),
            (RateLimitError(retry_after=30), 429),
            (AccountLockedError(retry_after=900), 429),
            (EHSException("SOMETHING_ELSE", "unknown"), 500),
        ],
    )
    def test_status_code_for(self, exc: EHSException, expected: int) -> None:
        assert status_code_for(exc) == expected

    def test_error_codes(self) -> None:
        assert TenantSuspendedError().code == ErrorCodes.TENANT_SUSPENDED.value
        assert AccountLockedError(retry_after=60).code == ErrorCodes.ACCOUNT_LOCKED.value
        assert PermissionDeniedError().code == "FORBIDDEN"
        assert AuthenticationError().code == "UNAUTHORIZED"

    def test_not_found_message(self) -> None:
        assert NotFoundError("Risk", "abc").message == "Risk 'abc' not found"
        assert NotFoundError("Risk").message == "Risk not found"

    def test_account_locked_message_rounds_up_minutes(self) -> None:
        assert "Try again in 15 minutes" in AccountLockedError(retry_after=900).message
        assert "Try again in 2 minutes" in AccountLockedError(retry_after=61).message


class TestHandleEHSException:
    """Tests for the EHS exception response builder."""

    def test_envelope(self) -> None:
        exc = ValidationError("Invalid input", details=[{"field": "title", "issue": "too short"}])

        response = handle_ehs_exception(exc, "req-123")

        assert response.status_code == 400
        body = json.loads(response.body.decode())
        assert body == {
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Invalid input",
                "details": [{"field": "title", "issue": "too short"}],
                "request_id": "req-123",
            }
        }

    def test_rate_limit_adds_retry_after(self) -> None:
        response = handle_ehs_exception(AccountLockedError(retry_after=900), None)

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "900"
        body = json.loads(response.body.decode())
        assert body["error"]["retry_after"] == 900
        assert body["error"]["code"] == "ACCOUNT_LOCKED"


@pytest.fixture
def error_client() -> TestClient:
    app = FastAPI()
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)
    register_exception_handlers(app)

    @app.get("/not-found")
    async def not_found() -> Any:
        raise NotFoundError("Incident", "123")

    @app.get("/suspended")
    async def suspended() -> Any:
        raise TenantSuspendedError()

    @app.get("/teapot")
    async def teapot() -> Any:
        raise HTTPException(status_code=418, detail="I'm a teapot")

    @app.get("/forbidden")
    async def forbidden() -> Any:
        raise HTTPException(status_code=403, detail="Nope")

    @app.get("/items")
    async def items(limit: int) -> Any:
        return {"limit": limit}

    @app.get("/boom")
    async def boom() -> Any:
        raise RuntimeError("database password is hunter2")

    return TestClient(app, raise_server_exceptions=False)


class TestErrorResponses:
    """End-to-end error envelopes."""

    def test_ehs_exception(self, error_client: TestClient) -> None:
        response = error_client.get("/not-found", headers={"X-Request-ID": "req-abc"})

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "NOT_FOUND"
        assert error["message"] == "Incident '123' not found"
        assert error["request_id"] == "req-abc"

    def test_subclass_keeps_parent_status(self, error_client: TestClient) -> None:
        response = error_client.get("/suspended")

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "TENANT_SUSPENDED"

    def test_http_exception_keeps_status(self, error_client: TestClient) -> None:
        response = error_client.get("/teapot")

        assert response.status_code == 418
        assert response.json()["error"]["code"] == "HTTP_ERROR"
        assert response.json()["error"]["message"] == "I'm a teapot"

    def test_http_exception_known_status_code(self, error_client: TestClient) -> None:
        response = error_client.get("/forbidden")

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    def test_unknown_route_is_not_found(self, error_client: TestClient) -> None:
        response = error_client.get("/does-not-exist")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_request_validation_is_400(self, error_client: TestClient) -> None:
        response = error_client.get("/items", params={"limit": "many"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"][0]["field"] == "query.limit"

    def test_unhandled_exception_hides_internals(self, error_client: TestClient) -> None:
        response = error_client.get("/boom")

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "INTERNAL_ERROR"
        assert "hunter2" not in response.text
