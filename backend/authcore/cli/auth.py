"""Flask CLI commands for operating on sessions."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from authcore.api.deps import get_auth_service

LOGGER = logging.getLogger(__name__)


@click.group("auth")
def auth_cli() -> None:
    """Session administration commands."""


@auth_cli.command("revoke-all")
@click.argument("identity_id")
@click.option("--actor", "actor_id", default=None, help="Identity recorded as the revoker.")
@with_appcontext
def revoke_all_command(identity_id: str, actor_id: str | None) -> None:
    """Revoke every active session of IDENTITY_ID."""
    service = get_auth_service()
    identity = service.identities.find_by_id(identity_id)
    if identity is None:
        raise click.ClickException(f"Identity {identity_id!r} not found")
    count = service.revoke_all_tokens(identity_id, actor_id=actor_id)
    LOGGER.info("cli.revoke_all", extra={"identity_id": identity_id, "revoked_count": count})
    click.echo(f"Revoked {count} session(s) for {identity.email}")
