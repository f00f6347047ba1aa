"""Tests for the throttled generation route and its error mapping."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from throttle.adapters.llm import AbstractLLMClient, ThrottledLLMClient, create_llm_client
from throttle.adapters.rate_limit import RateLimiter
from throttle.api.routes import generate
from throttle.core.app_factory import create_app
from throttle.core.errors import LLMAppError
from throttle.core.rate_limit import get_rate_limiter

HEADERS = {"X-API-Key": "test-api-key-123"}


@pytest.fixture
def inner() -> MagicMock:
    client = MagicMock(spec=AbstractLLMClient)
    client.generate_text = AsyncMock(return_value="Once upon a time")
    return client


@pytest.fixture
def app(fresh_shared_limiter, inner):
    app = create_app()
    app.dependency_overrides[generate.get_llm_client] = lambda: create_llm_client(inner)
    return app


def test_generates_through_shared_limiter(app, inner) -> None:
    with TestClient(app) as client:
        resp = client.post(
            "/v1/generate",
            json={"prompt": "Tell a story", "system": "Be brief.", "max_tokens": 50},
            headers=HEADERS,
        )
        stats = get_rate_limiter().get_stats()

    assert resp.status_code == 200
    assert resp.json() == {"text": "Once upon a time"}
    inner.generate_text.assert_awaited_once_with("Tell a story", system="Be brief.", max_tokens=50)
    assert stats.submitted == 1
    assert stats.completed == 1


def test_provider_failure_returns_502(app, inner) -> None:
    inner.generate_text.side_effect = LLMAppError(code="llm_request_failed", message="upstream 429")

    with TestClient(app) as client:
        resp = client.post("/v1/generate", json={"prompt": "hi"}, headers=HEADERS)
        stats = get_rate_limiter().get_stats()

    assert resp.status_code == 502
    assert resp.json()["error"]["code"] == "llm_request_failed"
    assert stats.failed == 1


def test_closed_limiter_returns_503(app, inner) -> None:
    closed = RateLimiter(1, 10)
    asyncio.run(closed.aclose(drain=False))
    app.dependency_overrides[generate.get_llm_client] = lambda: ThrottledLLMClient(inner, closed)

    with TestClient(app) as client:
        resp = client.post("/v1/generate", json={"prompt": "hi"}, headers=HEADERS)

    assert resp.status_code == 503
    assert resp.json()["error"]["code"] == "rate_limiter_closed"
    inner.generate_text.assert_not_awaited()


@patch("throttle.adapters.llm.factory.settings")
def test_unconfigured_provider_returns_400(mock_settings, fresh_shared_limiter) -> None:
    mock_settings.llm.provider = "openai"
    mock_settings.llm.api_key = None
    generate._shared_provider_client.cache_clear()
    try:
        with TestClient(create_app()) as client:
            resp = client.post("/v1/generate", json={"prompt": "hi"}, headers=HEADERS)
    finally:
        generate._shared_provider_client.cache_clear()

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "llm_missing_api_key"


@pytest.mark.parametrize(
    "body",
    [{"prompt": ""}, {"prompt": "hi", "max_tokens": 0}, {"prompt": "hi", "temperature": 2}],
)
def test_rejects_invalid_bodies(app, inner, body) -> None:
    with TestClient(app) as client:
        resp = client.post("/v1/generate", json=body, headers=HEADERS)

    assert resp.status_code == 422
    inner.generate_text.assert_not_awaited()


def test_requires_api_key(app, inner) -> None:
    with TestClient(app) as client:
        resp = client.post("/v1/generate", json={"prompt": "hi"})

    assert resp.status_code == 403
    inner.generate_text.assert_not_awaited()
