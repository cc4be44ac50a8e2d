"""Expose the application factory at package level.

``from authcore import create_app`` is the entry point for the WSGI server
and the Flask CLI (``FLASK_APP=authcore:create_app``).
"""

from __future__ import annotations

from .factory import create_app

__all__ = ["create_app"]
