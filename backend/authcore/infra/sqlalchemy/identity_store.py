"""Identity store backed by the ``users`` table."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from authcore.models.base import as_utc, normalize_audit
from authcore.models.identity import User
from authcore.services._shared.errors import ConflictError, NotFoundError, violates
from authcore.services._shared.ports.identity_store import IdentityRecord, IdentityStore
from authcore.uow.sqlalchemy_uow import SQLAlchemyReadOnlyUnitOfWork, SQLAlchemyUnitOfWork

log = logging.getLogger(__name__)


def to_record(user: User) -> IdentityRecord:
    """Copy an ORM row into an immutable record (call inside the UoW)."""
    return IdentityRecord(
        id=user.id,
        email=user.email,
        username=user.username,
        password_hash=user.password_hash,
        full_name=user.full_name,
        role=user.role,
        status=user.status,
        audit=normalize_audit(user.audit),
        last_login_at=as_utc(user.last_login_at),
        last_login_ip=user.last_login_ip,
    )


class SQLAlchemyIdentityStore(IdentityStore):
    """
    :class:`IdentityStore` over Flask-SQLAlchemy.

    Each call runs in its own unit of work; rows are converted to records
    before the transaction ends.
    """

    def find_by_id(self, identity_id: str) -> IdentityRecord | None:
        with SQLAlchemyReadOnlyUnitOfWork() as uow:
            user = uow.users.get(identity_id)
            return to_record(user) if user else None

    def find_by_email(self, email: str) -> IdentityRecord | None:
        with SQLAlchemyReadOnlyUnitOfWork() as uow:
            user = uow.users.get_by_email(email)
            return to_record(user) if user else None

    def find_by_username(self, username: str) -> IdentityRecord | None:
        with SQLAlchemyReadOnlyUnitOfWork() as uow:
            user = uow.users.get_by_username(username)
            return to_record(user) if user else None

    def save(self, record: IdentityRecord) -> IdentityRecord:
        try:
            with SQLAlchemyUnitOfWork() as uow:
                user = User(
                    id=record.id,
                    email=record.email,
                    username=record.username,
                    password_hash=record.password_hash,
                    full_name=record.full_name,
                    role=record.role,
                    status=record.status,
                    last_login_at=record.last_login_at,
                    last_login_ip=record.last_login_ip,
                    audit=record.audit,
                )
                uow.users.add(user)
                saved = to_record(user)
        except IntegrityError as exc:
            if violates(exc, "uq_users_email", "users.email"):
                raise ConflictError("User", "email already registered") from exc
            if violates(exc, "uq_users_username", "users.username"):
                raise ConflictError("User", "username already taken") from exc
            raise
        return saved

    def update(self, record: IdentityRecord) -> IdentityRecord:
        with SQLAlchemyUnitOfWork() as uow:
            user = uow.users.get_for_update(record.id)
            if user is None:
                raise NotFoundError("User", record.id)
            user.email = record.email
            user.username = record.username
            user.password_hash = record.password_hash
            user.full_name = record.full_name
            user.role = record.role
            user.status = record.status
            user.audit = record.audit
            uow.users.flush()
            return to_record(user)

    def update_last_login(self, identity_id: str, origin_address: str | None, at: datetime) -> None:
        with SQLAlchemyUnitOfWork() as uow:
            if not uow.users.touch_last_login(identity_id, origin_address, at):
                log.warning("identity.last_login.missing", extra={"identity_id": identity_id})
