"""
authcore.services._shared.ports
===============================

Collection of *ports* (hexagonal interfaces) that the authentication service
depends on, each shipped with an in-memory double for unit tests.

Modules
-------
- :mod:`identity_store`:
    Defines :class:`~.IdentityStore` and :class:`~.IdentityRecord` for account
    lookup and persistence.

- :mod:`auth_token_store`:
    Defines :class:`~.AuthTokenStore` and :class:`~.AuthTokenRecord` for login
    session persistence with sticky revocation.

Concrete adapters (SQLAlchemy, Redis) live under ``authcore.infra``.
"""

from __future__ import annotations

from .auth_token_store import AuthTokenRecord, AuthTokenStore, InMemoryAuthTokenStore
from .identity_store import IdentityRecord, IdentityStore, InMemoryIdentityStore

__all__ = [
    "AuthTokenRecord",
    "AuthTokenStore",
    "IdentityRecord",
    "IdentityStore",
    "InMemoryAuthTokenStore",
    "InMemoryIdentityStore",
]
