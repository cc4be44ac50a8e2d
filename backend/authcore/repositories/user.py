"""User repository for account lookup and bookkeeping."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select

from authcore.models.identity import User
from authcore.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    It never verifies passwords or issues tokens; that is the service's job.
    """

    model = User

    def get_by_email(self, email: str) -> User | None:
        """Fetch a user by email (case-insensitive).

        :param email: Email address to normalise and search.
        :type email: str
        :returns: User instance or ``None`` when not found.
        :rtype: User | None
        """
        return self._first(select(User).where(User.email == email.lower().strip()))

    def get_by_username(self, username: str) -> User | None:
        """Fetch a user by exact (trimmed) username."""
        return self._first(select(User).where(User.username == username.strip()))

    def touch_last_login(self, user_id: str, origin_address: str | None, at: datetime) -> bool:
        """Set ``last_login_at``/``last_login_ip`` on an existing user.

        The audit trail is left untouched: a login is not an edit of the account.

        :returns: ``False`` when the user does not exist.
        """
        user = self.get(user_id)
        if user is None:
            return False
        user.last_login_at = at
        user.last_login_ip = origin_address
        self.flush()
        return True
