"""Reusable SQLAlchemy building blocks shared by domain models (typed 2.0).

Audit metadata is modelled as an immutable value (:class:`Audit`) that each
table maps through :func:`sqlalchemy.orm.composite`. Services create and
advance it explicitly with :func:`new_audit` / :func:`touch_audit`; nothing is
filled in by ORM events.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from authcore.core.ids import new_id


def utcnow() -> datetime:
    """Return the current timezone-aware UTC time."""
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """
    Attach UTC to naive datetimes read back from the database.

    SQLite drops offsets on ``DateTime(timezone=True)`` columns; every value the
    application writes is UTC, so labelling is lossless.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass(frozen=True, slots=True)
class Audit:
    """
    Audit trail embedded in every persisted entity.

    Field order matches the column order of the composite mapping.

    :ivar created_at: Creation instant (UTC).
    :ivar updated_at: Last modification instant (UTC).
    :ivar created_by: Identity id of the creator, if known.
    :ivar updated_by: Identity id of the last modifier, if known.
    :ivar deleted_at: Soft-deletion instant; the auth core never sets it.
    :ivar version: Starts at 1 and increments on every update.
    """

    created_at: datetime
    updated_at: datetime
    created_by: str | None = None
    updated_by: str | None = None
    deleted_at: datetime | None = None
    version: int = 1


def new_audit(actor_id: str | None, now: datetime) -> Audit:
    """Build the audit value for a freshly created entity."""
    return Audit(
        created_at=now,
        updated_at=now,
        created_by=actor_id,
        updated_by=actor_id,
        deleted_at=None,
        version=1,
    )


def touch_audit(audit: Audit, actor_id: str | None, now: datetime) -> Audit:
    """Return ``audit`` advanced for an update by ``actor_id`` at ``now``."""
    return replace(audit, updated_at=now, updated_by=actor_id, version=audit.version + 1)


def normalize_audit(audit: Audit) -> Audit:
    """Return ``audit`` with all timestamps labelled as UTC."""
    return replace(
        audit,
        created_at=as_utc(audit.created_at),
        updated_at=as_utc(audit.updated_at),
        deleted_at=as_utc(audit.deleted_at),
    )


class UUIDPKMixin:
    """Expose a time-ordered UUIDv7 primary key stored as text.

    Ids are assigned when the Python object is constructed, so callers know an
    entity's id before it is flushed.
    """

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    def __init__(self, **kwargs: object) -> None:
        kwargs.setdefault("id", new_id())
        super().__init__(**kwargs)


class AuditColumnsMixin:
    """Columns backing the :class:`Audit` composite.

    Models combine this mixin with
    ``audit: Mapped[Audit] = composite(*AUDIT_COLUMNS)``.
    """

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)


AUDIT_COLUMNS = ("created_at", "updated_at", "created_by", "updated_by", "deleted_at", "version")


class ReprMixin:
    """Provide a concise ``__repr__`` including the class name and id."""

    def __repr__(self) -> str:
        cls = self.__class__.__name__
        key = getattr(self, "id", None)
        return f"<{cls} id={key}>"
