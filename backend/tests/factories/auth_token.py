"""Factory Boy definition for :class:`authcore.models.auth_token.AuthToken`."""

from __future__ import annotations

from datetime import timedelta

import factory
from authcore.core.ids import new_id
from authcore.models.auth_token import AuthToken
from authcore.models.base import new_audit, utcnow

from tests.factories import BaseFactory
from tests.factories.user import UserFactory


class AuthTokenFactory(BaseFactory):
    """
    Build persisted session rows.

    ``user`` is a build-time parameter; pass ``user=<User>`` to attach the
    session to an existing account.
    """

    class Meta:
        model = AuthToken
        exclude = ("user", "now")

    now = factory.LazyFunction(utcnow)
    user = factory.SubFactory(UserFactory)

    id = factory.LazyFunction(new_id)
    user_id = factory.SelfAttribute("user.id")
    access_token = factory.Sequence(lambda n: f"access-token-{n}")
    refresh_token = factory.LazyFunction(new_id)
    access_expires_at = factory.LazyAttribute(lambda o: o.now + timedelta(hours=1))
    refresh_expires_at = factory.LazyAttribute(lambda o: o.now + timedelta(days=7))
    origin_address = "203.0.113.7"
    client_agent = "pytest-agent/1.0"
    revoked = False
    revoked_at = None
    audit = factory.LazyAttribute(lambda o: new_audit(o.user_id, o.now))
