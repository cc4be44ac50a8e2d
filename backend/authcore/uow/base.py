"""
Abstract Unit of Work contract shared by the read-write and read-only variants.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from authcore.repositories import AuthTokenRepository, UserRepository


class UnitOfWork(ABC):
    """
    Transaction boundary around a single identity or session store call.

    Store adapters open one per operation; services never see it. Both
    repositories share the unit's session, so a revocation and the audit
    update it implies land in the same commit.

    :ivar users: Repository over the ``users`` table.
    :ivar auth_tokens: Repository over the ``auth_tokens`` table.
    """

    users: UserRepository
    auth_tokens: AuthTokenRepository

    @abstractmethod
    def __enter__(self) -> UnitOfWork: ...
    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None: ...
    @abstractmethod
    def commit(self) -> None: ...
    @abstractmethod
    def rollback(self) -> None: ...
