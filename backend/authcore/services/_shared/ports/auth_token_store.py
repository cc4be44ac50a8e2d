from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Protocol

from authcore.models.base import Audit, touch_audit


@dataclass(frozen=True, slots=True)
class AuthTokenRecord:
    """
    Store-level view of one login session.

    :ivar id: UUIDv7 identifier.
    :ivar identity_id: Owner identity.
    :ivar access_token: Copy of the most recently issued access token.
    :ivar refresh_token: Opaque refresh value; unique and stable for the session.
    :ivar access_expires_at: Expiry of ``access_token`` (UTC).
    :ivar refresh_expires_at: Expiry of the refresh value (UTC).
    :ivar origin_address: Client address at login, if known.
    :ivar client_agent: Client ``User-Agent`` at login, if known.
    :ivar revoked: Terminal flag; once set, never cleared.
    :ivar revoked_at: Set exactly once, together with ``revoked``.
    :ivar audit: Audit trail.
    """

    id: str
    identity_id: str
    access_token: str
    refresh_token: str
    access_expires_at: datetime
    refresh_expires_at: datetime
    audit: Audit
    origin_address: str | None = None
    client_agent: str | None = None
    revoked: bool = False
    revoked_at: datetime | None = None

    def is_refresh_expired(self, now: datetime) -> bool:
        return now > self.refresh_expires_at


class AuthTokenStore(Protocol):
    """
    Persistence port for login sessions.

    Every write runs in its own transaction. Revocation is sticky: a write that
    carries ``revoked=False`` for a record already revoked in storage keeps it
    revoked, and the returned record reflects the stored state.
    """

    def save_or_update(self, record: AuthTokenRecord) -> AuthTokenRecord:
        """
        Insert ``record`` or overwrite the stored one with the same id.

        :returns: The record as persisted (``revoked`` may be ``True`` even if
            the caller passed ``False``).
        """

    def find_by_refresh_token(self, refresh_token: str) -> AuthTokenRecord | None:
        """Return the record with this refresh value, revoked or not."""

    def find_by_access_token(self, access_token: str) -> AuthTokenRecord | None:
        """Return the non-revoked record currently holding this access token."""

    def list_active_by_identity(self, identity_id: str) -> list[AuthTokenRecord]:
        """Non-revoked records of an identity, newest first."""

    def revoke_by_refresh_token(
        self, refresh_token: str, *, at: datetime, actor_id: str | None = None
    ) -> bool:
        """
        Revoke the matching non-revoked record.

        ``actor_id`` (default: the owner) is written to the audit trail.

        :returns: ``True`` if a record changed state.
        """

    def revoke_all_by_identity(
        self, identity_id: str, *, at: datetime, actor_id: str | None = None
    ) -> int:
        """
        Revoke every non-revoked record of an identity.

        :returns: Number of records that changed state.
        """


class InMemoryAuthTokenStore(AuthTokenStore):
    """
    Dict-backed session store for unit tests.

    .. note::
       Uses a threading lock so the sticky-revocation rule holds under
       concurrent writers.
    """

    def __init__(self) -> None:
        self._by_id: dict[str, AuthTokenRecord] = {}
        self._lock = threading.Lock()
        self.fail_writes = False

    def _check_writable(self) -> None:
        if self.fail_writes:
            raise RuntimeError("token store unavailable")

    def save_or_update(self, record: AuthTokenRecord) -> AuthTokenRecord:
        self._check_writable()
        with self._lock:
            current = self._by_id.get(record.id)
            if current is None:
                if any(r.refresh_token == record.refresh_token for r in self._by_id.values()):
                    raise ValueError("duplicate refresh token")
            elif current.revoked:
                record = replace(record, revoked=True, revoked_at=current.revoked_at)
            self._by_id[record.id] = record
            return record

    def find_by_refresh_token(self, refresh_token: str) -> AuthTokenRecord | None:
        return next((r for r in self._by_id.values() if r.refresh_token == refresh_token), None)

    def find_by_access_token(self, access_token: str) -> AuthTokenRecord | None:
        return next(
            (r for r in self._by_id.values() if r.access_token == access_token and not r.revoked),
            None,
        )

    def list_active_by_identity(self, identity_id: str) -> list[AuthTokenRecord]:
        rows = [r for r in self._by_id.values() if r.identity_id == identity_id and not r.revoked]
        return sorted(rows, key=lambda r: (r.audit.created_at, r.id), reverse=True)

    def _revoked(self, r: AuthTokenRecord, at: datetime, actor_id: str | None) -> AuthTokenRecord:
        audit = touch_audit(r.audit, actor_id or r.identity_id, at)
        return replace(r, revoked=True, revoked_at=at, audit=audit)

    def revoke_by_refresh_token(
        self, refresh_token: str, *, at: datetime, actor_id: str | None = None
    ) -> bool:
        self._check_writable()
        with self._lock:
            for rid, r in self._by_id.items():
                if r.refresh_token == refresh_token and not r.revoked:
                    self._by_id[rid] = self._revoked(r, at, actor_id)
                    return True
            return False

    def revoke_all_by_identity(
        self, identity_id: str, *, at: datetime, actor_id: str | None = None
    ) -> int:
        self._check_writable()
        count = 0
        with self._lock:
            for rid, r in list(self._by_id.items()):
                if r.identity_id == identity_id and not r.revoked:
                    self._by_id[rid] = self._revoked(r, at, actor_id)
                    count += 1
        return count
