"""Persisted authentication session (access + refresh token pair)."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, composite, mapped_column

from authcore.core.extensions import db

from .base import AUDIT_COLUMNS, Audit, AuditColumnsMixin, ReprMixin, UUIDPKMixin


class AuthToken(UUIDPKMixin, ReprMixin, AuditColumnsMixin, db.Model):
    """
    Server-side record of one login session.

    The refresh token is an opaque random value and stays stable for the life
    of the session; refreshing only replaces ``access_token`` and
    ``access_expires_at``. Rows are never deleted by the application, and once
    ``revoked`` is set it is never cleared.
    """

    __tablename__ = "auth_tokens"

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token: Mapped[str] = mapped_column(String(64), nullable=False)
    access_expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    refresh_expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    origin_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    client_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)
    revoked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    audit: Mapped[Audit] = composite(Audit, *AUDIT_COLUMNS)

    __table_args__ = (
        UniqueConstraint("refresh_token", name="uq_auth_tokens_refresh_token"),
        Index("ix_auth_tokens_user_id", "user_id"),
        Index("ix_auth_tokens_access_token_prefix", "access_token", mysql_length=255),
    )
