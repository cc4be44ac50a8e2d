"""Repository package exposing persistence-layer access for all domain models."""

from __future__ import annotations

from authcore.repositories.auth_token import AuthTokenRepository
from authcore.repositories.base import BaseRepository
from authcore.repositories.user import UserRepository

__all__ = [
    "AuthTokenRepository",
    "BaseRepository",
    "UserRepository",
]
