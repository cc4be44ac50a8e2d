"""Session store backed by the ``auth_tokens`` table."""

from __future__ import annotations

import logging
from datetime import datetime

from authcore.models.auth_token import AuthToken
from authcore.models.base import as_utc, normalize_audit
from authcore.services._shared.ports.auth_token_store import AuthTokenRecord, AuthTokenStore
from authcore.uow.sqlalchemy_uow import SQLAlchemyReadOnlyUnitOfWork, SQLAlchemyUnitOfWork

log = logging.getLogger(__name__)


def to_record(row: AuthToken) -> AuthTokenRecord:
    """Copy an ORM row into an immutable record (call inside the UoW)."""
    return AuthTokenRecord(
        id=row.id,
        identity_id=row.user_id,
        access_token=row.access_token,
        refresh_token=row.refresh_token,
        access_expires_at=as_utc(row.access_expires_at),
        refresh_expires_at=as_utc(row.refresh_expires_at),
        audit=normalize_audit(row.audit),
        origin_address=row.origin_address,
        client_agent=row.client_agent,
        revoked=bool(row.revoked),
        revoked_at=as_utc(row.revoked_at),
    )


class SQLAlchemyAuthTokenStore(AuthTokenStore):
    """
    :class:`AuthTokenStore` over Flask-SQLAlchemy.

    ``save_or_update`` reads the row ``FOR UPDATE`` before writing, so on
    PostgreSQL/MySQL a concurrent revocation either commits first (and is
    preserved) or waits for this write to finish.
    """

    def save_or_update(self, record: AuthTokenRecord) -> AuthTokenRecord:
        with SQLAlchemyUnitOfWork() as uow:
            row = uow.auth_tokens.get_for_update(record.id)
            if row is None:
                row = AuthToken(id=record.id, user_id=record.identity_id)
                self._apply(row, record)
                row.revoked = record.revoked
                row.revoked_at = record.revoked_at
                uow.auth_tokens.add(row)
            else:
                self._apply(row, record)
                if record.revoked and not row.revoked:
                    row.revoked = True
                    row.revoked_at = record.revoked_at
                uow.auth_tokens.flush()
            return to_record(row)

    @staticmethod
    def _apply(row: AuthToken, record: AuthTokenRecord) -> None:
        row.access_token = record.access_token
        row.refresh_token = record.refresh_token
        row.access_expires_at = record.access_expires_at
        row.refresh_expires_at = record.refresh_expires_at
        row.origin_address = record.origin_address
        row.client_agent = record.client_agent
        row.audit = record.audit

    def find_by_refresh_token(self, refresh_token: str) -> AuthTokenRecord | None:
        with SQLAlchemyReadOnlyUnitOfWork() as uow:
            row = uow.auth_tokens.get_by_refresh_token(refresh_token)
            return to_record(row) if row else None

    def find_by_access_token(self, access_token: str) -> AuthTokenRecord | None:
        with SQLAlchemyReadOnlyUnitOfWork() as uow:
            row = uow.auth_tokens.get_active_by_access_token(access_token)
            return to_record(row) if row else None

    def list_active_by_identity(self, identity_id: str) -> list[AuthTokenRecord]:
        with SQLAlchemyReadOnlyUnitOfWork() as uow:
            return [to_record(r) for r in uow.auth_tokens.list_active_for_user(identity_id)]

    def revoke_by_refresh_token(
        self, refresh_token: str, *, at: datetime, actor_id: str | None = None
    ) -> bool:
        with SQLAlchemyUnitOfWork() as uow:
            row = uow.auth_tokens.get_by_refresh_token(refresh_token, for_update=True)
            changed = row is not None and uow.auth_tokens.mark_revoked(
                row, at=at, actor_id=actor_id
            )
            if not changed:
                log.warning("auth_token.revoke.noop")
            return changed

    def revoke_all_by_identity(
        self, identity_id: str, *, at: datetime, actor_id: str | None = None
    ) -> int:
        with SQLAlchemyUnitOfWork() as uow:
            rows = uow.auth_tokens.list_active_for_user(identity_id, for_update=True)
            count = sum(
                1 for row in rows if uow.auth_tokens.mark_revoked(row, at=at, actor_id=actor_id)
            )
        log.info(
            "auth_token.revoke_all",
            extra={"identity_id": identity_id, "revoked_count": count},
        )
        return count
