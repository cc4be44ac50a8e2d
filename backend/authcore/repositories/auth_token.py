"""Repository for persisted login sessions."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import select

from authcore.models.auth_token import AuthToken
from authcore.models.base import touch_audit
from authcore.repositories.base import BaseRepository


class AuthTokenRepository(BaseRepository[AuthToken]):
    """Persistence-only repository for :class:`AuthToken`."""

    model = AuthToken

    def get_by_refresh_token(
        self, refresh_token: str, *, for_update: bool = False
    ) -> AuthToken | None:
        """Return the session holding ``refresh_token`` (revoked or not).

        :param for_update: Lock the selected row (PostgreSQL/MySQL).
        """
        stmt = select(AuthToken).where(AuthToken.refresh_token == refresh_token)
        if for_update:
            stmt = stmt.with_for_update()
        return self._first(stmt)

    def get_active_by_access_token(self, access_token: str) -> AuthToken | None:
        """Return the non-revoked session whose current access token matches."""
        stmt = select(AuthToken).where(
            AuthToken.access_token == access_token,
            AuthToken.revoked.is_(False),
        )
        return self._first(stmt)

    def list_active_for_user(
        self, user_id: str, *, for_update: bool = False
    ) -> Sequence[AuthToken]:
        """Non-revoked sessions of a user, newest first.

        :param for_update: Lock the selected rows (PostgreSQL/MySQL).
        """
        stmt = (
            select(AuthToken)
            .where(AuthToken.user_id == user_id, AuthToken.revoked.is_(False))
            .order_by(AuthToken.created_at.desc(), AuthToken.id.desc())
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalars().all()

    def mark_revoked(self, token: AuthToken, *, at: datetime, actor_id: str | None) -> bool:
        """Revoke ``token`` unless it already is.

        :returns: ``True`` when the row changed state.
        """
        if token.revoked:
            return False
        token.revoked = True
        token.revoked_at = at
        token.audit = touch_audit(token.audit, actor_id or token.user_id, at)
        return True
