"""Tests for the limiter admin routes."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from throttle.core import rate_limit
from throttle.core.app_factory import create_app

HEADERS = {"X-API-Key": "test-api-key-123"}


@pytest.fixture
def client(fresh_shared_limiter) -> TestClient:
    return TestClient(create_app())


def test_get_returns_live_state(client: TestClient) -> None:
    resp = client.get("/v1/limiter", headers=HEADERS)

    assert resp.status_code == 200
    assert resp.json() == {
        "max_operations_per_window": 5,
        "queue_warning_threshold": 10,
        "queue_length": 0,
        "in_flight": 0,
        "submitted": 0,
        "completed": 0,
        "failed": 0,
    }


def test_patch_changes_only_given_fields(client: TestClient) -> None:
    resp = client.patch("/v1/limiter", json={"max_operations_per_window": 20}, headers=HEADERS)

    assert resp.status_code == 200
    body = resp.json()
    assert body["max_operations_per_window"] == 20
    assert body["queue_warning_threshold"] == 10
    assert rate_limit.get_rate_limiter().get_config().max_operations_per_window == 20


def test_patch_accepts_zero_to_pause_admission(client: TestClient) -> None:
    resp = client.patch(
        "/v1/limiter",
        json={"max_operations_per_window": 0, "queue_warning_threshold": 3},
        headers=HEADERS,
    )

    assert resp.status_code == 200
    assert resp.json()["max_operations_per_window"] == 0
    assert resp.json()["queue_warning_threshold"] == 3


@pytest.mark.parametrize(
    "body",
    [
        {"max_operations_per_window": "5"},
        {"max_operations_per_window": 2.5},
        {"queue_warning_threshold": True},
        {"window_seconds": 2},
    ],
)
def test_patch_rejects_non_integers_and_unknown_fields(client: TestClient, body) -> None:
    resp = client.patch("/v1/limiter", json=body, headers=HEADERS)

    assert resp.status_code == 422
    assert rate_limit.get_rate_limiter().get_config().max_operations_per_window == 5


def test_routes_require_api_key(client: TestClient) -> None:
    assert client.get("/v1/limiter").status_code == 403

    resp = client.patch("/v1/limiter", json={"max_operations_per_window": 1}, headers={"X-API-Key": "nope"})

    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "invalid_api_key"
    assert rate_limit.get_rate_limiter().get_config().max_operations_per_window == 5


def test_health_is_public_and_reports_queue(client: TestClient) -> None:
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "queue_length": 0}


def test_lifespan_closes_shared_limiter(fresh_shared_limiter) -> None:
    with TestClient(create_app()) as client:
        limiter = rate_limit.get_rate_limiter()
        assert client.get("/v1/limiter", headers=HEADERS).status_code == 200
        assert not limiter.closed

    assert limiter.closed
    assert rate_limit._limiter is None


def test_openapi_marks_admin_routes_as_secured(client: TestClient) -> None:
    schema = client.get("/openapi.json").json()

    assert "ApiKeyAuth" in schema["components"]["securitySchemes"]
    assert schema["security"] == [{"ApiKeyAuth": []}]
    assert schema["paths"]["/health"]["get"]["security"] == []
    assert {tag["name"] for tag in schema["tags"]} >= {"Limiter", "Health"}
