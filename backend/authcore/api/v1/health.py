"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from authcore.api.deps import json_response, timing
from authcore.core.extensions import db

bp = Blueprint("health", __name__)


@bp.get("/health")
@timing
def healthcheck():
    """Report database and (when configured) Redis reachability."""

    db_status = "ok"
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:  # pragma: no cover - depends on DB backend
        current_app.logger.exception("healthcheck.db_error")
        db_status = "fail"

    payload = {
        "status": "ok",
        "db": db_status,
        "token_store": current_app.config.get("AUTH_TOKEN_STORE", "sqlalchemy"),
        "version": current_app.config.get("APP_VERSION", "dev"),
    }

    client = current_app.extensions.get("redis_client")
    if client is not None:
        try:
            client.ping()
            payload["redis"] = "ok"
        except RedisError:  # pragma: no cover - depends on Redis availability
            current_app.logger.exception("healthcheck.redis_error")
            payload["redis"] = "fail"

    if "fail" in (payload["db"], payload.get("redis")):
        payload["status"] = "degraded"
    return json_response(payload)
