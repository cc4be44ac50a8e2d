"""Base class shared by application services."""

from __future__ import annotations

from datetime import UTC, datetime

from authcore.core import errors as api_errors
from authcore.services._shared.errors import (
    AuthError,
    ConflictError,
    InternalAuthError,
    NotFoundError,
    ServiceError,
    UserInactiveError,
    UserNotFoundError,
)


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Own the clock (``now_utc``) so tests can pin time.
    * Centralize the translation of service errors into API errors.

    Notes
    -----
    Services depend on ports (stores, codecs) only; transactions are owned by
    the store adapters, one per call. The acting identity for audit fields is
    passed explicitly as ``actor_id`` to each operation.
    """

    @staticmethod
    def now_utc() -> datetime:
        """Return the current timezone-aware UTC time."""
        return datetime.now(UTC)

    # -------------------------- Error handling ------------------------------

    def translate_exceptions(self, exc: Exception) -> Exception:
        """
        Map domain/service-level errors to API-level (HTTP) errors.

        :param exc: Exception raised within the service.
        :returns: Translated exception ready to be raised or rendered.
        """
        if isinstance(exc, InternalAuthError):
            # → 500, detail stays in the logs
            return api_errors.APIError(
                message="Internal server error",
                status_code=500,
                code=exc.code,
            )

        if isinstance(exc, UserInactiveError):
            return api_errors.Forbidden(exc.message, code=exc.code)

        if isinstance(exc, UserNotFoundError):
            return api_errors.NotFound(exc.message, code=exc.code)

        if isinstance(exc, AuthError):
            # credentials and token problems → 401
            return api_errors.Unauthorized(exc.message, code=exc.code)

        if isinstance(exc, NotFoundError):
            return api_errors.NotFound(str(exc))

        if isinstance(exc, ConflictError):
            return api_errors.Conflict(str(exc))

        # Any other ServiceError subclass → 400 Bad Request
        if isinstance(exc, ServiceError):
            return api_errors.APIError(
                message=str(exc),
                status_code=400,
                code="bad_request",
            )

        # Fallback: return untouched (will bubble up to Flask handler)
        return exc
