"""Structured logging configuration with request correlation."""

from __future__ import annotations

import json
import logging
import sys
import time
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from flask import Flask, g, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_HEADERS = ("X-Request-ID", "X-Correlation-ID")

# ``extra=`` keys copied onto the JSON payload when present
EXTRA_KEYS = (
    "endpoint",
    "elapsed_ms",
    "method",
    "path",
    "status_code",
    "identity_id",
    "token_id",
    "revoked_count",
    "origin_address",
    "reason",
)

# Never rendered, even if a caller passes them through ``extra=``
REDACTED_KEYS = frozenset({"password", "access_token", "refresh_token", "authorization"})
REDACTED = "[redacted]"

access_log = logging.getLogger("authcore.access")


class JSONFormatter(logging.Formatter):
    """
    Render log records as one JSON object per line.

    Only :data:`EXTRA_KEYS` are copied from ``extra=``; credentials listed in
    :data:`REDACTED_KEYS` are masked if present.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, UTC).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        for key in EXTRA_KEYS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        for key in REDACTED_KEYS:
            if hasattr(record, key):
                payload[key] = REDACTED
        return json.dumps(payload, default=str)


class RequestIdFilter(logging.Filter):
    """Ensure a ``request_id`` attribute is always present on log records."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - trivial
        if not getattr(record, "request_id", None):
            record.request_id = ensure_request_id() if has_request_context() else None
        return True


def ensure_request_id() -> str:
    """Return the current request identifier, generating one when necessary."""

    if has_request_context():
        if hasattr(g, "request_id"):
            return g.request_id  # type: ignore[no-any-return]
        for header in CORRELATION_HEADERS:
            value = request.headers.get(header)
            if value:
                g.request_id = value
                return value
        request_id = str(uuid4())
        g.request_id = request_id
        return request_id
    return str(uuid4())


def configure_logging(level: str | int = "INFO") -> None:
    """Send every logger to stdout as JSON at ``level``."""

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestIdFilter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        level = resolved if isinstance(resolved, int) else level.upper()
    root.setLevel(level)


def init_app(app: Flask) -> None:
    """Seed a request id per request, echo it back and write one access line."""

    app.logger.addFilter(RequestIdFilter())

    @app.before_request
    def _seed_request_id() -> None:  # pragma: no cover - integration glue
        # ``g`` outlives the request when an app context is already pushed
        g.pop("request_id", None)
        g.pop("current_user", None)
        ensure_request_id()
        g.request_started = time.perf_counter()

    @app.after_request
    def _log_and_tag(response):  # pragma: no cover - integration glue
        response.headers.setdefault(REQUEST_ID_HEADER, ensure_request_id())
        started = g.get("request_started")
        user = g.get("current_user")
        extra: dict[str, Any] = {
            "method": request.method,
            "path": request.path,
            "status_code": response.status_code,
            "origin_address": request.remote_addr,
        }
        if started is not None:
            extra["elapsed_ms"] = round((time.perf_counter() - started) * 1000, 2)
        if user is not None:
            extra["identity_id"] = user.id
        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        if response.status_code >= 500:
            level = logging.ERROR
        access_log.log(level, "http.request", extra=extra)
        return response


__all__ = ["configure_logging", "init_app", "ensure_request_id", "JSONFormatter"]
