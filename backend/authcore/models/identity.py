"""Identity (user account) model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, composite, mapped_column, validates

from authcore.core.extensions import db

from .base import AUDIT_COLUMNS, Audit, AuditColumnsMixin, ReprMixin, UUIDPKMixin

ROLE_USER = "user"
STATUS_ACTIVE = "active"
STATUS_INACTIVE = "inactive"


class User(UUIDPKMixin, ReprMixin, AuditColumnsMixin, db.Model):
    """
    Account that can authenticate against the API.

    Fields
    ------
    email : str
        Login email. Stored normalized (lowercase, trimmed).
    username : str
        Alternative login handle. Unique per system.
    password_hash : str
        Salted slow hash produced by the credential verifier.
    full_name : str | None
        Optional display name.
    role : str
        Authorization role copied into access tokens (default ``"user"``).
    status : str
        ``"active"`` or ``"inactive"``; only active accounts receive tokens.
    last_login_at / last_login_ip : datetime | None, str | None
        Bookkeeping refreshed after each successful login.
    audit : Audit
        Composite over the audit columns.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), nullable=False)
    username: Mapped[str] = mapped_column(String(50), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    role: Mapped[str] = mapped_column(String(32), nullable=False, default=ROLE_USER)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_ACTIVE)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_login_ip: Mapped[str | None] = mapped_column(String(64), nullable=True)

    audit: Mapped[Audit] = composite(Audit, *AUDIT_COLUMNS)

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        UniqueConstraint("username", name="uq_users_username"),
        Index("ix_users_status", "status"),
    )

    # -------------------- Validators --------------------
    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        """
        Normalize and validate email.

        :raises ValueError: If email is missing or malformed.
        """
        if not value or not isinstance(value, str):
            raise ValueError("Email is required.")
        v = value.strip().lower()
        # Minimal sanity check; full validation happens at API layer.
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Email format looks invalid.")
        return v

    @validates("username")
    def _normalize_username(self, key: str, value: str) -> str:
        """Trim the username and reject blanks."""
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Username is required.")
        return value.strip()

    @validates("status")
    def _check_status(self, key: str, value: str) -> str:
        if value not in (STATUS_ACTIVE, STATUS_INACTIVE):
            raise ValueError(f"Unknown status {value!r}.")
        return value
