"""Authentication helpers for tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from authcore.infra.jwt.token_codec import generate_access_token
from authcore.services._shared.ports.auth_token_store import InMemoryAuthTokenStore
from authcore.services._shared.ports.identity_store import InMemoryIdentityStore
from authcore.services.auth.dto import AuthTokenConfig, RegisterIn
from authcore.services.auth.service import AuthService

from tests.factories import DEFAULT_PASSWORD, TEST_VERIFIER

SECRET = "unit-test-secret-key-with-at-least-32-bytes"


def token_config(**overrides) -> AuthTokenConfig:
    """Return an :class:`AuthTokenConfig` with test defaults."""

    values = {"secret_key": SECRET}
    values.update(overrides)
    return AuthTokenConfig(**values)


def make_service(**overrides) -> AuthService:
    """Build an :class:`AuthService` wired to in-memory stores.

    Keyword arguments replace individual dependencies
    (``identity_store``, ``token_store``, ``token_cfg``, ``verifier``).
    """

    deps = {
        "identity_store": InMemoryIdentityStore(),
        "token_store": InMemoryAuthTokenStore(),
        "token_cfg": token_config(),
        "verifier": TEST_VERIFIER,
    }
    deps.update(overrides)
    return AuthService(**deps)


def register_alice(service: AuthService, **overrides):
    """Register the canonical ``alice`` account and return the auth result."""

    values = {
        "email": "alice@example.com",
        "username": "alice",
        "password": DEFAULT_PASSWORD,
        "full_name": "Alice Example",
    }
    values.update(overrides)
    return service.register(RegisterIn(**values))


def issue_token(
    identity_id: str,
    *,
    secret: str = SECRET,
    ttl: timedelta = timedelta(hours=1),
    issued_at: datetime | None = None,
    issuer: str = "backend-service",
) -> str:
    """Sign an access token for ``identity_id`` outside the service."""

    return generate_access_token(
        identity_id,
        f"{identity_id}@example.com",
        "user",
        secret,
        ttl,
        issuer=issuer,
        now=issued_at or datetime.now(UTC),
    )


def bearer(token: str) -> dict[str, str]:
    """Return request headers carrying ``token`` as a bearer credential."""

    return {"Authorization": f"Bearer {token}"}
