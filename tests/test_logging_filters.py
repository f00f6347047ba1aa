"""Tests for structured logging: redaction, request ids, JSON shape."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from throttle.core.config import LogSettings
from throttle.core.logging import (
    REDACTED,
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    configure_logging,
    redact,
    set_request_id,
)


@pytest.fixture
def capture():
    """Logger wired like production, writing JSON lines to a buffer."""
    logger = logging.getLogger("test_throttle_logging")
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    def lines() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines()]

    yield logger, lines
    logger.handlers.clear()
    clear_request_id()


def test_redacts_api_keys_and_prompts(capture) -> None:
    logger, lines = capture

    logger.info(
        "llm.request",
        extra={
            "api_key": "sk-secret-123",
            "prompt": "Write the villain's backstory",
            "model": "gpt-4o-mini",
        },
    )

    output = lines()[0]
    assert output["api_key"] == REDACTED
    assert output["prompt"] == REDACTED
    assert output["model"] == "gpt-4o-mini"


def test_redacts_nested_values(capture) -> None:
    logger, lines = capture

    logger.info(
        "http.request",
        extra={"headers": {"X-API-Key": "secret-key", "user-agent": "pytest"}},
    )

    headers = lines()[0]["headers"]
    assert headers["X-API-Key"] == REDACTED
    assert headers["user-agent"] == "pytest"


def test_limiter_fields_pass_through(capture) -> None:
    logger, lines = capture

    logger.warning(
        "RateLimiter: Queue length has reached %d (threshold %d)",
        12,
        10,
        extra={"event": "rate_limiter.queue_warning", "queue_length": 12, "threshold": 10},
    )

    output = lines()[0]
    assert output["level"] == "warning"
    assert output["message"] == "RateLimiter: Queue length has reached 12 (threshold 10)"
    assert output["queue_length"] == 12
    assert output["event"] == "rate_limiter.queue_warning"
    assert "args" not in output
    assert REDACTED not in json.dumps(output)


def test_request_id_from_context(capture) -> None:
    logger, lines = capture

    set_request_id("req-42")
    logger.info("rate_limiter.queued", extra={"queue_length": 1})

    assert lines()[0]["request_id"] == "req-42"


def test_exception_info_is_serialized(capture) -> None:
    logger, lines = capture

    try:
        raise RuntimeError("tick failed")
    except RuntimeError:
        logger.exception("rate_limiter.tick_failed")

    assert "RuntimeError: tick failed" in lines()[0]["exc_info"]


def test_redact_leaves_scalars_and_sequences_intact() -> None:
    assert redact(5) == 5
    assert redact(["a", {"token": "t"}]) == ["a", {"token": REDACTED}]
    assert redact(("x",)) == ("x",)


def test_configure_logging_installs_single_root_handler() -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        configure_logging(LogSettings(level="DEBUG", format="plain"))  # type: ignore[call-arg]
        configure_logging(LogSettings(level="WARNING"))  # type: ignore[call-arg]

        assert len(root.handlers) == 1
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
