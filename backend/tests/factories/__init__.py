"""Factory Boy helpers wired to the project's SQLAlchemy session."""

from __future__ import annotations

import factory
from authcore.infra.security.credential_verifier import CredentialVerifier

# Cheap hashing for fixtures; matches ``TestingConfig.PASSWORD_HASH_METHOD``.
TEST_VERIFIER = CredentialVerifier(method="pbkdf2:sha256:1000")
DEFAULT_PASSWORD = "CorrectPass1!"


class SQLAlchemySession:
    """Store the session provided by the pytest fixture layer."""

    _session = None

    @classmethod
    def set(cls, session):
        """Register the SQLAlchemy session used to persist factory objects."""
        cls._session = session

    @classmethod
    def get(cls):
        """Return the registered SQLAlchemy session.

        Raises
        ------
        RuntimeError
            If factories are used without the ``session`` fixture wiring.
        """
        if cls._session is None:
            raise RuntimeError("Factories session not set. Did you pass the 'session' fixture?")
        return cls._session


class BaseFactory(factory.alchemy.SQLAlchemyModelFactory):
    """Base class configuring Factory Boy for the transactional session."""

    class Meta:
        abstract = True
        # A callable keeps Factory Boy lazy so it picks up the per-test session.
        sqlalchemy_session_factory = SQLAlchemySession.get
        sqlalchemy_session_persistence = "flush"
