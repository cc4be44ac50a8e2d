"""Reverse-proxy awareness for client address resolution."""

from __future__ import annotations

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix


def init_app(app: Flask) -> None:
    """Wrap the WSGI app with :class:`werkzeug.middleware.proxy_fix.ProxyFix`.

    Sessions record the caller's address from ``request.remote_addr``; behind a
    load balancer that value is only correct once ``X-Forwarded-For`` has been
    applied.

    Parameters
    ----------
    app: flask.Flask
        Application to wrap.

    Notes
    -----
    Controlled by ``USE_PROXYFIX`` (default ``True``). ``PROXYFIX_HOPS`` sets how
    many proxies are trusted for each ``X-Forwarded-*`` header (default ``1``).
    """
    if not app.config.get("USE_PROXYFIX", True):
        return
    hops = int(app.config.get("PROXYFIX_HOPS", 1))
    app.wsgi_app = ProxyFix(  # type: ignore[method-assign]
        app.wsgi_app, x_for=hops, x_proto=hops, x_host=hops, x_prefix=hops
    )
