from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Protocol

from authcore.models.base import Audit
from authcore.models.identity import ROLE_USER, STATUS_ACTIVE, STATUS_INACTIVE
from authcore.services._shared.errors import ConflictError, NotFoundError

__all__ = [
    "ROLE_USER",
    "STATUS_ACTIVE",
    "STATUS_INACTIVE",
    "IdentityRecord",
    "IdentityStore",
    "InMemoryIdentityStore",
]


@dataclass(frozen=True, slots=True)
class IdentityRecord:
    """
    Store-level view of an account.

    ``password_hash`` never leaves the service layer; public DTOs omit it.

    :ivar id: UUIDv7 identifier.
    :ivar email: Normalized (lowercase, trimmed) email.
    :ivar username: Trimmed username.
    :ivar password_hash: Stored credential hash.
    :ivar full_name: Optional display name.
    :ivar role: Role copied into access tokens.
    :ivar status: ``"active"`` or ``"inactive"``.
    :ivar last_login_at: Last successful login (UTC), if any.
    :ivar last_login_ip: Origin address of the last login, if any.
    :ivar audit: Audit trail.
    """

    id: str
    email: str
    username: str
    password_hash: str
    full_name: str | None
    role: str
    status: str
    audit: Audit
    last_login_at: datetime | None = None
    last_login_ip: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE


class IdentityStore(Protocol):
    """
    Persistence port for identities.

    Lookups return ``None`` when nothing matches; only infrastructure failures
    raise.
    """

    def find_by_id(self, identity_id: str) -> IdentityRecord | None: ...

    def find_by_email(self, email: str) -> IdentityRecord | None:
        """Case-insensitive lookup on the normalized email."""

    def find_by_username(self, username: str) -> IdentityRecord | None: ...

    def save(self, record: IdentityRecord) -> IdentityRecord:
        """
        Insert a new identity.

        :raises ConflictError: If the email or username is already taken.
        """

    def update(self, record: IdentityRecord) -> IdentityRecord:
        """Overwrite mutable fields of an existing identity."""

    def update_last_login(self, identity_id: str, origin_address: str | None, at: datetime) -> None:
        """Record a successful login. Missing identities are ignored."""


class InMemoryIdentityStore(IdentityStore):
    """
    Dict-backed identity store for unit tests.

    Mirrors the SQL adapter: emails are matched lower-cased and trimmed, and
    email/username uniqueness raises :class:`ConflictError`.
    """

    def __init__(self) -> None:
        self._by_id: dict[str, IdentityRecord] = {}
        self._lock = threading.Lock()
        self.fail_last_login = False

    @staticmethod
    def _norm_email(email: str) -> str:
        return email.strip().lower()

    def find_by_id(self, identity_id: str) -> IdentityRecord | None:
        return self._by_id.get(identity_id)

    def find_by_email(self, email: str) -> IdentityRecord | None:
        wanted = self._norm_email(email)
        return next((r for r in self._by_id.values() if r.email == wanted), None)

    def find_by_username(self, username: str) -> IdentityRecord | None:
        wanted = username.strip()
        return next((r for r in self._by_id.values() if r.username == wanted), None)

    def save(self, record: IdentityRecord) -> IdentityRecord:
        record = replace(
            record, email=self._norm_email(record.email), username=record.username.strip()
        )
        with self._lock:
            for other in self._by_id.values():
                if other.email == record.email:
                    raise ConflictError("User", "email already registered")
                if other.username == record.username:
                    raise ConflictError("User", "username already taken")
            self._by_id[record.id] = record
        return record

    def update(self, record: IdentityRecord) -> IdentityRecord:
        with self._lock:
            if record.id not in self._by_id:
                raise NotFoundError("User", record.id)
            self._by_id[record.id] = record
        return record

    def update_last_login(self, identity_id: str, origin_address: str | None, at: datetime) -> None:
        if self.fail_last_login:
            raise RuntimeError("identity store unavailable")
        with self._lock:
            current = self._by_id.get(identity_id)
            if current is not None:
                self._by_id[identity_id] = replace(
                    current, last_login_at=at, last_login_ip=origin_address
                )
