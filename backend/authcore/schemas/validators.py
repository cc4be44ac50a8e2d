"""Field validators for account credentials.

Each validator raises :class:`marshmallow.ValidationError` with a message
safe to return to the client.
"""

from __future__ import annotations

import re
import string

from marshmallow import ValidationError

EMAIL_MAX_LENGTH = 255
EMAIL_LOCAL_MAX_LENGTH = 64
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128

_USERNAME_RE = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_-]{1,28}[a-zA-Z0-9]$")
_SPECIAL_CHARS = frozenset(string.punctuation)

COMMON_PASSWORDS = frozenset(
    {
        "password",
        "12345678",
        "123456789",
        "1234567890",
        "qwerty",
        "abc123",
        "password123",
        "admin123",
        "letmein",
        "welcome",
        "monkey",
        "1234567",
        "sunshine",
        "princess",
        "dragon",
        "passw0rd",
        "master",
        "hello",
        "freedom",
        "whatever",
        "qazwsx",
        "trustno1",
        "jordan23",
        "harley",
        "shadow",
        "superman",
        "michael",
        "football",
    }
)


def validate_email_address(value: str) -> None:
    """Extra rules on top of :class:`marshmallow.fields.Email`."""
    local, _, _ = value.rpartition("@")
    if len(local) > EMAIL_LOCAL_MAX_LENGTH:
        raise ValidationError("Email local part is too long.")
    if ".." in value:
        raise ValidationError("Email must not contain consecutive dots.")


def validate_username(value: str) -> None:
    """3–30 chars, alphanumeric ends, ``_``/``-`` allowed inside but not doubled."""
    username = (value or "").strip()
    if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
        raise ValidationError(
            f"Username must be between {USERNAME_MIN_LENGTH} and "
            f"{USERNAME_MAX_LENGTH} characters."
        )
    if not _USERNAME_RE.match(username):
        raise ValidationError(
            "Username may contain letters, digits, '_' and '-', and must start "
            "and end with a letter or digit."
        )
    if "__" in username or "--" in username:
        raise ValidationError("Username must not contain consecutive '_' or '-'.")


def validate_password_strength(value: str) -> None:
    """Length bounds, four character classes and a common-password denylist."""
    password = value or ""
    if not PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH:
        raise ValidationError(
            f"Password must be between {PASSWORD_MIN_LENGTH} and "
            f"{PASSWORD_MAX_LENGTH} characters."
        )

    missing = []
    if not any(ch.isupper() for ch in password):
        missing.append("an uppercase letter")
    if not any(ch.islower() for ch in password):
        missing.append("a lowercase letter")
    if not any(ch.isdigit() for ch in password):
        missing.append("a digit")
    if not any(ch in _SPECIAL_CHARS for ch in password):
        missing.append("a special character")
    if missing:
        raise ValidationError("Password must contain " + ", ".join(missing) + ".")

    if password.lower() in COMMON_PASSWORDS:
        raise ValidationError("Password is too common.")
