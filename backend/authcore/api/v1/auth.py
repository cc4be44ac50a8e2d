"""Authentication endpoints using the service layer."""

from __future__ import annotations

from flask import Blueprint, request

from authcore.api.deps import (
    client_metadata,
    current_identity,
    get_auth_service,
    json_response,
    require_auth,
    timing,
)
from authcore.schemas import (
    AuthResultSchema,
    IdentitySchema,
    LoginSchema,
    LogoutSchema,
    RefreshSchema,
    RegisterSchema,
    SessionSchema,
)
from authcore.services.auth.dto import LoginIn, LogoutIn, RefreshIn, RegisterIn

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshSchema()
logout_schema = LogoutSchema()
result_schema = AuthResultSchema()
identity_schema = IdentitySchema()
sessions_schema = SessionSchema(many=True)


def _body() -> dict:
    return request.get_json(silent=True) or {}


@bp.post("/register")
@timing
def register():
    """Create an account and return its first token pair."""

    data = register_schema.load(_body())
    origin, agent = client_metadata()
    result = get_auth_service().register(
        RegisterIn(**data, origin_address=origin, client_agent=agent)
    )
    return json_response({"data": result_schema.dump(result)}, status=201)


@bp.post("/login")
@timing
def login():
    """Authenticate with email or username and password."""

    data = login_schema.load(_body())
    origin, agent = client_metadata()
    result = get_auth_service().login(
        LoginIn(
            identifier=data["identifier"],
            password=data["password"],
            origin_address=origin,
            client_agent=agent,
        )
    )
    return json_response({"data": result_schema.dump(result)})


@bp.post("/refresh")
@timing
def refresh():
    """Exchange a refresh token for a new access token."""

    data = refresh_schema.load(_body())
    result = get_auth_service().refresh_token(RefreshIn(refresh_token=data["refresh_token"]))
    return json_response({"data": result_schema.dump(result)})


@bp.post("/logout")
@timing
def logout():
    """End the session holding the given refresh token (idempotent)."""

    data = logout_schema.load(_body())
    get_auth_service().logout(LogoutIn(refresh_token=data["refresh_token"]))
    return json_response({"success": True})


@bp.get("/me")
@require_auth
@timing
def me():
    """Return the authenticated identity."""

    return json_response({"data": identity_schema.dump(current_identity())})


@bp.post("/revoke-all")
@require_auth
@timing
def revoke_all():
    """Revoke every active session of the caller."""

    user = current_identity()
    count = get_auth_service().revoke_all_tokens(user.id, actor_id=user.id)
    return json_response({"success": True, "revoked": count})


@bp.get("/sessions")
@require_auth
@timing
def sessions():
    """List the caller's active sessions, newest first."""

    user = current_identity()
    items = get_auth_service().list_active_sessions(user.id)
    return json_response({"data": sessions_schema.dump(items)})
