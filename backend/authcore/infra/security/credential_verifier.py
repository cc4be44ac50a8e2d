"""Password hashing and verification backed by :mod:`werkzeug.security`."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from werkzeug.security import check_password_hash, generate_password_hash

from authcore.services._shared.errors import PasswordHashError

log = logging.getLogger(__name__)

DEFAULT_METHOD = "scrypt:32768:8:1"


@dataclass(frozen=True, slots=True)
class CredentialVerifier:
    """
    One-way salted password hashing.

    :param method: Werkzeug method string (e.g. ``"scrypt:32768:8:1"`` or
        ``"pbkdf2:sha256:600000"``). The method and salt are embedded in the
        resulting hash, so hashes produced under an older setting still verify.
    :param salt_length: Length of the random salt.
    """

    method: str = DEFAULT_METHOD
    salt_length: int = 16

    def hash(self, plaintext: str) -> str:
        """
        Hash ``plaintext`` with a fresh random salt.

        :raises PasswordHashError: For empty input or an unusable method.
        """
        if not isinstance(plaintext, str) or not plaintext:
            raise PasswordHashError("Password must be a non-empty string")
        try:
            return generate_password_hash(
                plaintext, method=self.method, salt_length=self.salt_length
            )
        except (ValueError, TypeError) as exc:
            log.error("credentials.hash_failed", extra={"reason": str(exc)})
            raise PasswordHashError() from exc

    def verify(self, plaintext: str, hashed: str) -> bool:
        """
        Check ``plaintext`` against a stored hash.

        Returns ``False`` on mismatch and on a malformed or unsupported hash;
        never raises for those cases.
        """
        if not hashed or not isinstance(plaintext, str):
            return False
        try:
            return bool(check_password_hash(hashed, plaintext))
        except (ValueError, TypeError, AttributeError):
            log.warning("credentials.malformed_hash")
            return False
