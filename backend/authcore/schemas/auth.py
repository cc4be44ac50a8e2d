"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, fields, validate

from .validators import (
    EMAIL_MAX_LENGTH,
    PASSWORD_MAX_LENGTH,
    validate_email_address,
    validate_password_strength,
    validate_username,
)


class _StrictInput(Schema):
    """Base for request bodies: unknown keys are dropped."""

    class Meta:
        unknown = EXCLUDE


class RegisterSchema(_StrictInput):
    """Input payload for account registration."""

    email = fields.Email(
        required=True,
        validate=[validate.Length(max=EMAIL_MAX_LENGTH), validate_email_address],
    )
    username = fields.String(required=True, validate=validate_username)
    password = fields.String(required=True, validate=validate_password_strength)
    full_name = fields.String(load_default=None, allow_none=True, validate=validate.Length(max=255))


class LoginSchema(_StrictInput):
    """Input payload for authenticating with an email or a username."""

    identifier = fields.String(required=True, validate=validate.Length(min=1, max=255))
    password = fields.String(
        required=True, validate=validate.Length(min=1, max=PASSWORD_MAX_LENGTH)
    )


class RefreshSchema(_StrictInput):
    """Input payload for minting a new access token."""

    refresh_token = fields.String(required=True, validate=validate.Length(min=1, max=64))


class LogoutSchema(_StrictInput):
    """Input payload for ending one session."""

    refresh_token = fields.String(required=True, validate=validate.Length(min=1, max=64))


class IdentitySchema(Schema):
    """Public identity representation."""

    id = fields.String(required=True)
    email = fields.String(required=True)
    username = fields.String(required=True)
    full_name = fields.String(allow_none=True)
    role = fields.String(required=True)
    status = fields.String(required=True)
    last_login_at = fields.DateTime(allow_none=True)
    created_at = fields.DateTime(required=True)


class AuthResultSchema(Schema):
    """Token pair returned by login, register and refresh."""

    access_token = fields.String(required=True)
    refresh_token = fields.String(required=True)
    token_type = fields.String(required=True)
    expires_in = fields.Integer(required=True)
    user = fields.Nested(IdentitySchema, required=True)


class SessionSchema(Schema):
    """Active session summary."""

    id = fields.String(required=True)
    origin_address = fields.String(allow_none=True)
    client_agent = fields.String(allow_none=True)
    created_at = fields.DateTime(required=True)
    access_expires_at = fields.DateTime(required=True)
    refresh_expires_at = fields.DateTime(required=True)
