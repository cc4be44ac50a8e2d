"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic**: they never depend on Flask or HTTP
and serve as stable contracts between stores, adapters and services.

The translation to HTTP responses (RFC 7807) is handled by
``authcore/core/errors.py`` via ``BaseService.translate_exceptions()``.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, *markers: str) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    PostgreSQL and MySQL include the constraint name in the driver message;
    SQLite only reports ``UNIQUE constraint failed: <table>.<column>``, so
    callers pass both the constraint name and the ``table.column`` marker.

    Parameters
    ----------
    exc : IntegrityError
        The exception raised by SQLAlchemy during flush/commit.
    markers : str
        Constraint names or ``table.column`` fragments to look for.

    Returns
    -------
    bool
        True if any marker appears in the driver error message.
    """
    message = str(exc.orig).lower() if exc.orig else ""
    return any(marker.lower() in message for marker in markers)


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from stores, adapters or domain logic.
    - ``core.errors`` translates them through ``BaseService.translate_exceptions``.
    """

    pass


# --------------------------------------------------------------------------- #
# Generic domain-level errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found.

    :param entity: Entity name (e.g., "User").
    :param key: Identifier or search key.
    """

    entity: str
    key: str | int

    def __str__(self) -> str:
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "User").
    :param detail: Short human-readable explanation.
    """

    entity: str
    detail: str

    def __str__(self) -> str:
        return f"Conflict on {self.entity}: {self.detail}"


# --------------------------------------------------------------------------- #
# Authentication errors
# --------------------------------------------------------------------------- #


class AuthError(ServiceError):
    """
    Base class for authentication failures.

    Every subclass carries a stable, snake_case ``code`` and a default message
    that is safe to show to clients.
    """

    code = "auth_error"
    default_message = "Authentication failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class InvalidCredentialsError(AuthError):
    """Unknown identifier or wrong password; the two are never distinguished."""

    code = "invalid_credentials"
    default_message = "Invalid email or password"


class UserInactiveError(AuthError):
    code = "user_inactive"
    default_message = "User account is not active"


class UserNotFoundError(AuthError):
    code = "user_not_found"
    default_message = "User not found"


class AuthorizationHeaderError(AuthError):
    """Missing or malformed ``Authorization: Bearer <token>`` header."""

    code = "unauthorized"
    default_message = "Invalid authorization header format"


class TokenInvalidError(AuthError):
    code = "token_invalid"
    default_message = "Invalid token"


class TokenExpiredError(AuthError):
    code = "token_expired"
    default_message = "Token has expired"


class TokenRevokedError(AuthError):
    code = "token_revoked"
    default_message = "Token has been revoked"


class InternalAuthError(AuthError):
    """
    Base class for server-side failures during authentication.

    The message is logged but never returned to clients.
    """

    code = "internal_error"
    default_message = "Internal authentication error"


class TokenGenerationError(InternalAuthError):
    code = "token_generation_error"
    default_message = "Failed to generate token"


class TokenSaveError(InternalAuthError):
    code = "token_save_error"
    default_message = "Failed to save token"


class PasswordHashError(InternalAuthError):
    code = "password_hash_error"
    default_message = "Failed to hash password"
