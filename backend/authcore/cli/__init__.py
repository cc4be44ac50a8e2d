"""Command-line interface registration for the Flask application."""

from __future__ import annotations

from flask import Flask

from .auth import auth_cli


def init_app(app: Flask) -> None:
    """Register application-specific CLI command groups.

    Parameters
    ----------
    app:
        Flask application whose CLI registry receives the ``auth`` group.
    """
    app.cli.add_command(auth_cli)
