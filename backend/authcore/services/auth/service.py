# authcore/services/auth/service.py
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime

from authcore.core.ids import new_id
from authcore.infra.jwt.token_codec import (
    extract_token_from_authorization_header,
    generate_access_token,
    generate_refresh_token,
    validate_access_token,
)
from authcore.infra.security.credential_verifier import CredentialVerifier
from authcore.models.base import new_audit, touch_audit
from authcore.services._shared.base import BaseService
from authcore.services._shared.errors import (
    InvalidCredentialsError,
    TokenExpiredError,
    TokenGenerationError,
    TokenInvalidError,
    TokenRevokedError,
    TokenSaveError,
    UserInactiveError,
    UserNotFoundError,
)
from authcore.services._shared.ports.auth_token_store import AuthTokenRecord, AuthTokenStore
from authcore.services._shared.ports.identity_store import (
    ROLE_USER,
    STATUS_ACTIVE,
    IdentityRecord,
    IdentityStore,
)
from authcore.services.auth.dto import (
    AuthResultOut,
    AuthTokenConfig,
    IdentityOut,
    LoginIn,
    LogoutIn,
    RefreshIn,
    RegisterIn,
    SessionOut,
)

log = logging.getLogger(__name__)

# Verified against when the identifier is unknown so both failure paths pay
# for one hash comparison.
_TIMING_PLACEHOLDER = "timing-placeholder-password"


class AuthService(BaseService):
    """
    Authentication lifecycle service.

    Issues signed access tokens and opaque refresh tokens, persists one
    session record per login, and revokes sessions on logout or on demand.

    State of a session as seen by this service:

    * ``ACTIVE``: stored, not revoked, refresh expiry in the future.
    * ``EXPIRED``: refresh expiry passed (judged at read time, nothing written).
    * ``REVOKED``: terminal; revocation always wins over a concurrent refresh.
    """

    def __init__(
        self,
        *,
        identity_store: IdentityStore,
        token_store: AuthTokenStore,
        token_cfg: AuthTokenConfig,
        verifier: CredentialVerifier | None = None,
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param identity_store: Account lookup and persistence.
        :param token_store: Session persistence.
        :param token_cfg: Signing key, lifetimes and issuer.
        :param verifier: Password hasher; defaults to scrypt.
        """
        self.identities = identity_store
        self.tokens = token_store
        self.cfg = token_cfg
        self.verifier = verifier or CredentialVerifier()
        self._timing_hash: str | None = None

    # ------------------------------------------------------------------ #
    # Login / Register
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn, *, actor_id: str | None = None) -> AuthResultOut:
        """
        Authenticate by email or username and open a new session.

        :param dto: Login input.
        :param actor_id: Identity recorded as session creator; defaults to the
            authenticated identity.
        :returns: Token pair and public identity.
        :raises InvalidCredentialsError: Unknown identifier or wrong password.
        :raises UserInactiveError: Credentials are right but the account is disabled.
        :raises TokenGenerationError: Signing failed.
        :raises TokenSaveError: The session could not be stored.
        """
        identity = self._resolve_identifier(dto.identifier)
        if identity is None:
            self.verifier.verify(dto.password, self._placeholder_hash())
            log.info("auth.login.failed", extra={"reason": "unknown_identifier"})
            raise InvalidCredentialsError()

        if not self.verifier.verify(dto.password, identity.password_hash):
            log.info(
                "auth.login.failed",
                extra={"reason": "bad_password", "identity_id": identity.id},
            )
            raise InvalidCredentialsError()

        if not identity.is_active:
            log.info("auth.login.inactive", extra={"identity_id": identity.id})
            raise UserInactiveError()

        now = self.now_utc()
        result = self._open_session(
            identity,
            now=now,
            origin_address=dto.origin_address,
            client_agent=dto.client_agent,
            actor_id=actor_id or identity.id,
        )

        # bookkeeping only; a failure here must not fail the login
        try:
            self.identities.update_last_login(identity.id, dto.origin_address, now)
        except Exception:
            log.warning(
                "auth.login.last_login_update_failed",
                extra={"identity_id": identity.id},
                exc_info=True,
            )
        else:
            logged_in = replace(identity, last_login_at=now, last_login_ip=dto.origin_address)
            result = replace(result, user=self._to_out(logged_in))

        log.info(
            "auth.login.succeeded",
            extra={"identity_id": identity.id, "origin_address": dto.origin_address},
        )
        return result

    def register(self, dto: RegisterIn, *, actor_id: str | None = None) -> AuthResultOut:
        """
        Create an active account with role ``"user"`` and open its first session.

        :param dto: Registration input (already format-validated).
        :param actor_id: Creator recorded in the audit trail; defaults to the
            new identity itself.
        :returns: Token pair and public identity.
        :raises PasswordHashError: Hashing failed.
        :raises ConflictError: Email or username already taken.
        """
        password_hash = self.verifier.hash(dto.password)

        now = self.now_utc()
        identity_id = new_id()
        creator = actor_id or identity_id
        identity = self.identities.save(
            IdentityRecord(
                id=identity_id,
                email=dto.email.strip().lower(),
                username=dto.username.strip(),
                password_hash=password_hash,
                full_name=dto.full_name,
                role=ROLE_USER,
                status=STATUS_ACTIVE,
                audit=new_audit(creator, now),
            )
        )
        log.info("auth.register.succeeded", extra={"identity_id": identity.id})

        return self._open_session(
            identity,
            now=now,
            origin_address=dto.origin_address,
            client_agent=dto.client_agent,
            actor_id=creator,
        )

    # ------------------------------------------------------------------ #
    # Refresh
    # ------------------------------------------------------------------ #

    def refresh_token(self, dto: RefreshIn, *, actor_id: str | None = None) -> AuthResultOut:
        """
        Mint a new access token for an active session.

        The refresh value itself is not rotated; the stored session keeps it
        and only its access token and access expiry change.

        :raises TokenInvalidError: Unknown refresh value.
        :raises TokenRevokedError: Session revoked (checked before expiry), also
            when a concurrent revocation lands before this update.
        :raises TokenExpiredError: Refresh expiry passed.
        :raises UserNotFoundError: Owner no longer exists.
        :raises UserInactiveError: Owner disabled.
        """
        record = self.tokens.find_by_refresh_token(dto.refresh_token) if dto.refresh_token else None
        if record is None:
            raise TokenInvalidError()
        if record.revoked:
            raise TokenRevokedError()

        now = self.now_utc()
        if record.is_refresh_expired(now):
            raise TokenExpiredError()

        identity = self.identities.find_by_id(record.identity_id)
        if identity is None:
            raise UserNotFoundError()
        if not identity.is_active:
            raise UserInactiveError()

        access = self._mint_access_token(identity, now)
        updated = replace(
            record,
            access_token=access,
            access_expires_at=now + self.cfg.access_expires,
            audit=touch_audit(record.audit, actor_id or identity.id, now),
        )
        saved = self._store(updated)
        if saved.revoked:
            log.warning(
                "auth.refresh.lost_to_revocation",
                extra={"identity_id": identity.id, "token_id": record.id},
            )
            raise TokenRevokedError()

        log.info(
            "auth.refresh.succeeded",
            extra={"identity_id": identity.id, "token_id": record.id},
        )
        return self._result(access, saved.refresh_token, identity)

    # ------------------------------------------------------------------ #
    # Logout / Revocation
    # ------------------------------------------------------------------ #

    def logout(self, dto: LogoutIn, *, actor_id: str | None = None) -> None:
        """
        Revoke the session holding ``dto.refresh_token``.

        Idempotent: an unknown or already revoked value is a logged no-op.
        """
        revoked = False
        if dto.refresh_token:
            revoked = self.tokens.revoke_by_refresh_token(
                dto.refresh_token, at=self.now_utc(), actor_id=actor_id
            )
        if revoked:
            log.info("auth.logout.succeeded")
        else:
            log.warning("auth.logout.noop", extra={"reason": "unknown_or_revoked"})

    def revoke_all_tokens(self, identity_id: str, *, actor_id: str | None = None) -> int:
        """
        Revoke every active session of an identity in a single store call.

        :returns: Number of sessions that changed state.
        """
        count = self.tokens.revoke_all_by_identity(
            identity_id, at=self.now_utc(), actor_id=actor_id
        )
        log.info(
            "auth.revoke_all.succeeded",
            extra={"identity_id": identity_id, "revoked_count": count},
        )
        return count

    # ------------------------------------------------------------------ #
    # Token introspection
    # ------------------------------------------------------------------ #

    def get_identity_from_token(self, access_token: str) -> IdentityOut:
        """
        Resolve the identity behind an access token.

        :raises TokenExpiredError: Token past its ``exp``.
        :raises TokenInvalidError: Bad signature, algorithm, issuer or shape.
        :raises UserNotFoundError: Subject no longer exists.
        :raises UserInactiveError: Subject disabled since issuance.
        """
        claims = validate_access_token(access_token, self.cfg.secret_key, issuer=self.cfg.issuer)
        identity = self.identities.find_by_id(claims.user_id)
        if identity is None:
            raise UserNotFoundError()
        if not identity.is_active:
            raise UserInactiveError()
        return self._to_out(identity)

    def get_current_user(self, authorization_header: str | None) -> IdentityOut:
        """Resolve the caller from an ``Authorization: Bearer <token>`` header."""
        token = extract_token_from_authorization_header(authorization_header)
        return self.get_identity_from_token(token)

    def list_active_sessions(self, identity_id: str) -> list[SessionOut]:
        """Non-revoked, unexpired sessions of an identity, newest first."""
        now = self.now_utc()
        return [
            SessionOut(
                id=r.id,
                origin_address=r.origin_address,
                client_agent=r.client_agent,
                created_at=r.audit.created_at,
                access_expires_at=r.access_expires_at,
                refresh_expires_at=r.refresh_expires_at,
            )
            for r in self.tokens.list_active_by_identity(identity_id)
            if not r.is_refresh_expired(now)
        ]

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _resolve_identifier(self, identifier: str) -> IdentityRecord | None:
        value = (identifier or "").strip()
        if not value:
            return None
        return self.identities.find_by_email(value) or self.identities.find_by_username(value)

    def _placeholder_hash(self) -> str:
        if self._timing_hash is None:
            self._timing_hash = self.verifier.hash(_TIMING_PLACEHOLDER)
        return self._timing_hash

    def _mint_access_token(self, identity: IdentityRecord, now: datetime) -> str:
        try:
            return generate_access_token(
                identity.id,
                identity.email,
                identity.role,
                self.cfg.secret_key,
                self.cfg.access_expires,
                issuer=self.cfg.issuer,
                now=now,
            )
        except Exception as exc:
            log.error(
                "auth.token.generation_failed",
                extra={"identity_id": identity.id},
                exc_info=True,
            )
            raise TokenGenerationError() from exc

    def _store(self, record: AuthTokenRecord) -> AuthTokenRecord:
        try:
            return self.tokens.save_or_update(record)
        except Exception as exc:
            log.error(
                "auth.token.save_failed",
                extra={"identity_id": record.identity_id, "token_id": record.id},
                exc_info=True,
            )
            raise TokenSaveError() from exc

    def _open_session(
        self,
        identity: IdentityRecord,
        *,
        now: datetime,
        origin_address: str | None,
        client_agent: str | None,
        actor_id: str,
    ) -> AuthResultOut:
        access = self._mint_access_token(identity, now)
        record = AuthTokenRecord(
            id=new_id(),
            identity_id=identity.id,
            access_token=access,
            refresh_token=generate_refresh_token(),
            access_expires_at=now + self.cfg.access_expires,
            refresh_expires_at=now + self.cfg.refresh_expires,
            audit=new_audit(actor_id, now),
            origin_address=origin_address,
            client_agent=client_agent,
        )
        saved = self._store(record)
        return self._result(access, saved.refresh_token, identity)

    def _result(self, access: str, refresh: str, identity: IdentityRecord) -> AuthResultOut:
        return AuthResultOut(
            access_token=access,
            refresh_token=refresh,
            expires_in=int(self.cfg.access_expires.total_seconds()),
            user=self._to_out(identity),
        )

    @staticmethod
    def _to_out(identity: IdentityRecord) -> IdentityOut:
        return IdentityOut(
            id=identity.id,
            email=identity.email,
            username=identity.username,
            full_name=identity.full_name,
            role=identity.role,
            status=identity.status,
            last_login_at=identity.last_login_at,
            created_at=identity.audit.created_at,
        )
