"""Tests for global exception handlers.

Validates status mapping for domain errors, the shape of error bodies, and
that unexpected errors never leak internals.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from throttle.core.errors import (
    AppError,
    AuthenticationAppError,
    LimiterClosedError,
    LLMAppError,
    ValidationAppError,
)
from throttle.core.exception_handlers import (
    general_exception_handler,
    setup_exception_handlers,
    status_for,
)


@pytest.fixture
def app_with_handlers() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers, raise_server_exceptions=False)


class TestAppErrorHandler:
    """Domain errors map to stable statuses and bodies."""

    @pytest.mark.parametrize(
        ("error", "status"),
        [
            (ValidationAppError(code="invalid_limiter_config", message="bad"), 400),
            (AuthenticationAppError(code="invalid_api_key", message="nope"), 403),
            (LLMAppError(code="llm_request_failed", message="upstream"), 502),
            (LimiterClosedError(code="rate_limiter_closed", message="closed"), 503),
            (AppError(code="generic", message="generic"), 400),
        ],
    )
    def test_status_mapping(self, client: TestClient, app_with_handlers: FastAPI, error, status) -> None:
        @app_with_handlers.get("/boom")
        async def boom():
            raise error

        response = client.get("/boom")

        assert response.status_code == status
        data = response.json()
        assert data["error"]["code"] == error.code
        assert data["error"]["message"] == error.message
        assert "request_id" in data["error"]
        assert status_for(error) == status

    def test_details_are_included_when_present(self, client: TestClient, app_with_handlers: FastAPI) -> None:
        @app_with_handlers.get("/details")
        async def details():
            raise ValidationAppError(
                code="invalid_limiter_config",
                message="max_operations_per_window must be an integer",
                details={"field": "max_operations_per_window", "actual_value": "'5'"},
            )

        data = client.get("/details").json()

        assert data["error"]["details"]["field"] == "max_operations_per_window"

    def test_details_omitted_when_absent(self, client: TestClient, app_with_handlers: FastAPI) -> None:
        @app_with_handlers.get("/plain")
        async def plain():
            raise ValidationAppError(code="x", message="y")

        assert "details" not in client.get("/plain").json()["error"]


class TestGeneralExceptionHandler:
    """Fallback handler for unexpected exceptions."""

    def test_unexpected_error_returns_generic_500(self, client: TestClient, app_with_handlers: FastAPI) -> None:
        @app_with_handlers.get("/crash")
        async def crash():
            raise RuntimeError("scheduler exploded: secret detail")

        response = client.get("/crash")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "internal_server_error"
        assert "secret detail" not in response.text

    def test_handler_never_leaks_stack_trace(self) -> None:
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        response = asyncio.run(general_exception_handler(request, ValueError("Test error with details")))

        text = bytes(response.body).decode()
        data = json.loads(text)
        assert data["error"]["message"] == "An unexpected error occurred. Please try again later."
        assert "Traceback" not in text
        assert "ValueError" not in text

    def test_repeated_setup_is_safe(self) -> None:
        app = FastAPI()
        setup_exception_handlers(app)
        setup_exception_handlers(app)

        assert AppError in app.exception_handlers
        assert Exception in app.exception_handlers
