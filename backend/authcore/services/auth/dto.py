# authcore/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from authcore.infra.jwt.token_codec import BEARER_SCHEME, DEFAULT_ISSUER

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param identifier: Email or username.
    :type identifier: str
    :param password: Raw password (to be verified).
    :type password: str
    :param origin_address: Client address, recorded on the session.
    :type origin_address: str | None
    :param client_agent: Client ``User-Agent``, recorded on the session.
    :type client_agent: str | None
    """

    identifier: str
    password: str
    origin_address: str | None = None
    client_agent: str | None = None


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for self-service registration.

    Format rules (email shape, username charset, password strength) are
    enforced by the API schema before this DTO is built.
    """

    email: str
    username: str
    password: str
    full_name: str | None = None
    origin_address: str | None = None
    client_agent: str | None = None


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token refresh.

    :param refresh_token: Opaque refresh value issued at login.
    :type refresh_token: str
    """

    refresh_token: str


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout.

    :param refresh_token: Refresh value of the session to end.
    :type refresh_token: str
    """

    refresh_token: str


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class IdentityOut:
    """Public view of an identity (no credential material)."""

    id: str
    email: str
    username: str
    full_name: str | None
    role: str
    status: str
    last_login_at: datetime | None
    created_at: datetime


@dataclass(frozen=True, slots=True)
class AuthResultOut:
    """
    Tokens handed to the client after login, registration or refresh.

    :param access_token: Signed access token.
    :param refresh_token: Opaque refresh value.
    :param expires_in: Access-token lifetime in seconds.
    :param user: Public identity.
    :param token_type: Always ``"Bearer"``.
    """

    access_token: str
    refresh_token: str
    expires_in: int
    user: IdentityOut
    token_type: str = BEARER_SCHEME


@dataclass(frozen=True, slots=True)
class SessionOut:
    """Active session summary; token values are never exposed."""

    id: str
    origin_address: str | None
    client_agent: str | None
    created_at: datetime
    access_expires_at: datetime
    refresh_expires_at: datetime


# ------------------------------ Config DTO -------------------------------- #


@dataclass(frozen=True, slots=True)
class AuthTokenConfig:
    """
    Token emission configuration.

    :param secret_key: HMAC signing key for access tokens.
    :type secret_key: str
    :param access_expires: Access token lifetime.
    :type access_expires: timedelta
    :param refresh_expires: Refresh session lifetime; must exceed ``access_expires``.
    :type refresh_expires: timedelta
    :param issuer: ``iss`` claim written and required.
    :type issuer: str
    :raises ValueError: On an empty key, non-positive lifetimes, or a refresh
        lifetime not longer than the access lifetime.
    """

    secret_key: str
    access_expires: timedelta = timedelta(hours=1)
    refresh_expires: timedelta = timedelta(days=7)
    issuer: str = DEFAULT_ISSUER

    def __post_init__(self) -> None:
        if not self.secret_key:
            raise ValueError("secret_key must not be empty")
        if self.access_expires <= timedelta(0) or self.refresh_expires <= timedelta(0):
            raise ValueError("token lifetimes must be positive")
        if self.refresh_expires <= self.access_expires:
            raise ValueError("refresh lifetime must exceed access lifetime")

    @classmethod
    def from_mapping(cls, config) -> AuthTokenConfig:
        """Build from a Flask-style config mapping."""
        return cls(
            secret_key=config.get("JWT_SECRET_KEY", ""),
            access_expires=timedelta(seconds=int(config.get("ACCESS_TOKEN_EXPIRES_SECONDS", 3600))),
            refresh_expires=timedelta(
                seconds=int(config.get("REFRESH_TOKEN_EXPIRES_SECONDS", 604800))
            ),
            issuer=config.get("JWT_ISSUER", DEFAULT_ISSUER),
        )
