"""Tests for sensitive data filtering in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from app.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    redact,
    set_request_id,
)


@pytest.fixture
def capture() -> tuple[logging.Logger, StringIO]:
    logger = logging.getLogger("test_redaction")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    return logger, stream


def test_redacts_credentials_and_raw_identifiers(capture):
    logger, stream = capture

    logger.info(
        "rate_limit.exceeded",
        extra={
            "api_key": "sk-secret-123",
            "identifier": "user-42",
            "key_hash": "abcd1234abcd1234",
            "limit": 5,
        },
    )

    payload = json.loads(stream.getvalue())
    assert payload["message"] == "rate_limit.exceeded"
    assert payload["api_key"] == "[REDACTED]"
    assert payload["identifier"] == "[REDACTED]"
    assert payload["key_hash"] == "abcd1234abcd1234"
    assert payload["limit"] == 5


def test_redacts_nested_headers(capture):
    logger, stream = capture

    logger.info(
        "request",
        extra={"headers": {"X-API-Key": "secret-key", "user-agent": "pytest"}},
    )

    output = stream.getvalue()
    assert "secret-key" not in output
    assert "pytest" in output


def test_request_id_attached_from_context(capture):
    logger, stream = capture

    set_request_id("req-123")
    try:
        logger.info("with_request_id")
    finally:
        clear_request_id()

    assert json.loads(stream.getvalue())["request_id"] == "req-123"


def test_redact_leaves_scalars_untouched():
    assert redact(5) == 5
    assert redact(["a", {"token": "t"}]) == ["a", {"token": "[REDACTED]"}]
