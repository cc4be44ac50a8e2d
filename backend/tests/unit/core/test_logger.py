"""Unit tests for the logging utility."""

from __future__ import annotations

import json
import logging
import sys

from authcore.core.logger import JSONFormatter, configure_logging, ensure_request_id


def _record(**extra) -> logging.LogRecord:
    values = {"name": "authcore.test", "levelname": "INFO", "levelno": logging.INFO}
    values.update(msg="auth.login.succeeded", **extra)
    return logging.makeLogRecord(values)


def test_configure_logging_sets_level() -> None:
    """``configure_logging`` should set the root logger level."""

    root = logging.getLogger()
    previous = root.level
    try:
        # Act
        configure_logging("DEBUG")

        # Assert
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
    finally:
        root.setLevel(previous)


def test_json_formatter_copies_known_extra_keys() -> None:
    record = _record(identity_id="u-1", revoked_count=3, request_id="rid-1", note="x")

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "auth.login.succeeded"
    assert payload["level"] == "INFO"
    assert payload["name"] == "authcore.test"
    assert payload["request_id"] == "rid-1"
    assert payload["identity_id"] == "u-1"
    assert payload["revoked_count"] == 3
    # only whitelisted keys reach the output
    assert "note" not in payload


def test_json_formatter_includes_exception_text() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = _record(exc_info=sys.exc_info())

    payload = json.loads(JSONFormatter().format(record))

    assert "RuntimeError: boom" in payload["exc_info"]


def test_ensure_request_id_prefers_incoming_header(app) -> None:
    headers = {"X-Correlation-ID": "corr-42"}
    with app.app_context(), app.test_request_context(headers=headers):
        assert ensure_request_id() == "corr-42"
        # stable for the rest of the request
        assert ensure_request_id() == "corr-42"


def test_ensure_request_id_generates_outside_requests() -> None:
    assert ensure_request_id() != ensure_request_id()


def test_json_formatter_masks_credentials() -> None:
    record = _record(refresh_token="0192f1c2-secret", password="CorrectPass1!")

    payload = json.loads(JSONFormatter().format(record))

    assert payload["refresh_token"] == "[redacted]"
    assert payload["password"] == "[redacted]"
    assert "CorrectPass1!" not in json.dumps(payload)
