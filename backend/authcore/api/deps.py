"""Shared API helpers: service wiring, auth guard and cross-cutting decorators."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from flask import Response, current_app, g, jsonify, request

from authcore.core.extensions import get_redis
from authcore.infra.redis.redis_auth_token_store import RedisAuthTokenStore
from authcore.infra.security.credential_verifier import CredentialVerifier
from authcore.infra.sqlalchemy.auth_token_store import SQLAlchemyAuthTokenStore
from authcore.infra.sqlalchemy.identity_store import SQLAlchemyIdentityStore
from authcore.services._shared.ports.auth_token_store import AuthTokenStore
from authcore.services.auth.dto import AuthTokenConfig, IdentityOut
from authcore.services.auth.service import AuthService

F = TypeVar("F", bound=Callable[..., Any])

_SERVICE_KEY = "auth_service"


def build_token_store(backend: str) -> AuthTokenStore:
    """Return the session store named by ``AUTH_TOKEN_STORE``."""

    if backend.lower() == "redis":
        return RedisAuthTokenStore(r=get_redis())
    return SQLAlchemyAuthTokenStore()


def get_auth_service() -> AuthService:
    """Return the application's :class:`AuthService`, built once per app.

    The stores hold no request state (the SQL adapters use the scoped session),
    so one instance is shared across requests.
    """

    service = current_app.extensions.get(_SERVICE_KEY)
    if service is None:
        config = current_app.config
        service = AuthService(
            identity_store=SQLAlchemyIdentityStore(),
            token_store=build_token_store(str(config.get("AUTH_TOKEN_STORE", "sqlalchemy"))),
            token_cfg=AuthTokenConfig.from_mapping(config),
            verifier=CredentialVerifier(
                method=config["PASSWORD_HASH_METHOD"],
                salt_length=int(config.get("PASSWORD_SALT_LENGTH", 16)),
            ),
        )
        current_app.extensions[_SERVICE_KEY] = service
    return service


def client_metadata() -> tuple[str | None, str | None]:
    """Return ``(origin_address, client_agent)`` for the current request."""

    agent = request.user_agent.string or None
    return request.remote_addr, agent


def current_identity() -> IdentityOut:
    """Identity resolved by :func:`require_auth` for this request."""

    return g.current_user


def require_auth(func: F) -> F:
    """Resolve the bearer token into ``g.current_user`` before the handler runs."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        header = request.headers.get("Authorization")
        g.current_user = get_auth_service().get_current_user(header)
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            current_app.logger.debug(
                "request.elapsed",
                extra={
                    "endpoint": getattr(request, "endpoint", None),
                    "elapsed_ms": round(elapsed_ms, 2),
                },
            )

    return wrapper  # type: ignore[return-value]
