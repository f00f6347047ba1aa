"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set here, before any test module imports
``throttle.core.config``, so the global settings object is built from known
values and local .env files are ignored.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"

os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("LLM_MODEL", "gpt-4o-mini")
os.environ.setdefault("LLM_API_KEY", "test-key-123")
os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")
os.environ.setdefault("LIMITER_MAX_OPERATIONS_PER_WINDOW", "5")
os.environ.setdefault("LIMITER_QUEUE_WARNING_THRESHOLD", "10")
os.environ.setdefault("LIMITER_TICK_INTERVAL_SECONDS", "0.02")

import pytest  # noqa: E402

import throttle.core.rate_limit as rate_limit_module  # noqa: E402


@pytest.fixture
def fresh_shared_limiter(monkeypatch):
    """Give the test its own process-wide limiter slot."""
    monkeypatch.setattr(rate_limit_module, "_limiter", None)
    yield
    monkeypatch.setattr(rate_limit_module, "_limiter", None)
