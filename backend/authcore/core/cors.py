"""CORS policy for the authentication API."""

from __future__ import annotations

from flask import Flask
from flask_cors import CORS

from authcore.core.logger import REQUEST_ID_HEADER


def _parse_origins(raw: str | None) -> list[str]:
    return [o.strip() for o in (raw or "").split(",") if o.strip()]


def init_app(app: Flask) -> None:
    """Attach :class:`flask_cors.CORS` to ``/api/*`` routes.

    Parameters
    ----------
    app: flask.Flask
        Application whose ``CORS_ORIGINS`` and ``CORS_MAX_AGE`` settings are
        consulted.

    Notes
    -----
    Bearer tokens travel in the ``Authorization`` header, never in cookies,
    so credentials support is only enabled for an explicit origin list. A blank
    value or ``"*"`` opens the API to any origin.
    """
    origins = _parse_origins(app.config.get("CORS_ORIGINS"))
    wildcard = not origins or origins == ["*"]

    CORS(
        app,
        resources={r"/api/*": {"origins": "*" if wildcard else origins}},
        allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
        supports_credentials=not wildcard,
        max_age=app.config.get("CORS_MAX_AGE", 600),
    )
