"""
Stateless access-token codec (HS256 JWT via PyJWT) and refresh-token minting.

Every function here is pure apart from reading the clock: the signing key is
passed in explicitly, so the codec can be exercised without a Flask app.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Final

import jwt

from authcore.core.ids import new_id
from authcore.services._shared.errors import (
    AuthorizationHeaderError,
    TokenExpiredError,
    TokenInvalidError,
)

ALGORITHM: Final[str] = "HS256"
DEFAULT_ISSUER: Final[str] = "backend-service"
BEARER_SCHEME: Final[str] = "Bearer"

# Claims a token must carry to be accepted
REQUIRED_CLAIMS: Final[tuple[str, ...]] = ("exp", "iat", "nbf", "iss", "sub", "user_id")


@dataclass(frozen=True, slots=True)
class Claims:
    """
    Decoded access-token payload.

    :ivar user_id: Identity id (also carried as ``sub``).
    :ivar email: Identity email at issuance time.
    :ivar role: Identity role at issuance time.
    :ivar issuer: ``iss`` claim.
    :ivar issued_at: ``iat`` as an aware UTC datetime.
    :ivar not_before: ``nbf`` as an aware UTC datetime.
    :ivar expires_at: ``exp`` as an aware UTC datetime.
    """

    user_id: str
    email: str
    role: str
    issuer: str
    issued_at: datetime
    not_before: datetime
    expires_at: datetime


def generate_access_token(
    identity_id: str,
    email: str,
    role: str,
    secret_key: str,
    ttl: timedelta,
    *,
    issuer: str = DEFAULT_ISSUER,
    now: datetime | None = None,
) -> str:
    """
    Produce a signed HS256 access token.

    :param identity_id: Subject of the token.
    :param email: Email claim.
    :param role: Role claim.
    :param secret_key: HMAC signing key.
    :param ttl: Lifetime; ``exp = now + ttl``.
    :param issuer: ``iss`` claim.
    :param now: Issue instant; defaults to the current UTC time.
    :returns: Compact JWS string.
    :raises ValueError: If ``secret_key`` is empty.
    """
    if not secret_key:
        raise ValueError("Signing key must not be empty.")
    issued = now or datetime.now(UTC)
    payload: dict[str, Any] = {
        "user_id": identity_id,
        "email": email,
        "role": role,
        "sub": identity_id,
        "iss": issuer,
        "iat": issued,
        "nbf": issued,
        "exp": issued + ttl,
    }
    return jwt.encode(payload, secret_key, algorithm=ALGORITHM)


def generate_refresh_token() -> str:
    """Return a fresh opaque refresh token (36-character UUIDv7)."""
    return new_id()


def validate_access_token(
    token: str,
    secret_key: str,
    *,
    issuer: str = DEFAULT_ISSUER,
) -> Claims:
    """
    Verify signature, algorithm, registered claims and issuer.

    Only ``HS256`` is accepted; tokens signed with any other algorithm
    (including ``none``) are rejected before the signature is checked.

    :param token: Compact JWS string.
    :param secret_key: HMAC verification key.
    :param issuer: Expected ``iss`` value.
    :returns: Decoded :class:`Claims`.
    :raises TokenExpiredError: If the token is past its ``exp``.
    :raises TokenInvalidError: For every other failure.
    """
    if not token:
        raise TokenInvalidError()
    try:
        payload = jwt.decode(
            token,
            secret_key,
            algorithms=[ALGORITHM],
            issuer=issuer,
            options={"require": list(REQUIRED_CLAIMS)},
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenExpiredError() from exc
    except jwt.InvalidTokenError as exc:
        raise TokenInvalidError() from exc

    user_id = payload.get("user_id")
    if not isinstance(user_id, str) or user_id != payload.get("sub"):
        raise TokenInvalidError()

    return Claims(
        user_id=user_id,
        email=str(payload.get("email", "")),
        role=str(payload.get("role", "")),
        issuer=str(payload["iss"]),
        issued_at=datetime.fromtimestamp(payload["iat"], tz=UTC),
        not_before=datetime.fromtimestamp(payload["nbf"], tz=UTC),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=UTC),
    )


def extract_token_from_authorization_header(value: str | None) -> str:
    """
    Pull the token out of an ``Authorization: Bearer <token>`` header.

    The header must split into exactly two space-separated parts, the first
    being ``Bearer`` and the second non-empty.

    :raises AuthorizationHeaderError: For a missing or malformed header.
    """
    if not value:
        raise AuthorizationHeaderError("Authorization header is required")
    parts = value.split(" ")
    if len(parts) != 2 or parts[0] != BEARER_SCHEME or not parts[1]:
        raise AuthorizationHeaderError()
    return parts[1]
