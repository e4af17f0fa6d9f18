"""Raw ASGI middleware that rewrites tenant hosts onto tenant-scoped paths.

Why raw ASGI instead of ``BaseHTTPMiddleware``
----------------------------------------------
The rewrite must change ``scope["path"]`` *before* routing happens, and it
must not buffer streaming responses.  A raw ``__call__(scope, receive, send)``
callable does both with no overhead.

Ordering
--------
Register this middleware **last** with ``app.add_middleware`` so it is the
outermost layer: every other middleware (sessions, auth cookies, CORS) then
sees the rewritten path, exactly as the router does.

Wire contract
-------------
``GET acme.<root>/p?q=1`` reaches the application as ``GET /s/acme/p?q=1``.
The original path and the slug are recorded on ``request.state`` as
``original_path`` and ``subdomain``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from starlette.datastructures import Headers

from subfolio.resolution.host import HostResolver

if TYPE_CHECKING:
    from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger(__name__)


class SubdomainRewriteMiddleware:
    """Rewrite requests on ``<slug>.<root>`` to ``<prefix>/<slug><path>``.

    Args:
        app: The downstream ASGI application.
        resolver: Configured :class:`~subfolio.resolution.host.HostResolver`.
        trust_forwarded_host: Read ``X-Forwarded-Host`` before ``Host``.  Only
            enable behind a reverse proxy that sets or strips the header.

    Example::

        app.add_middleware(
            SubdomainRewriteMiddleware,
            resolver=HostResolver("example.com"),
        )
    """

    def __init__(
        self,
        app: ASGIApp,
        resolver: HostResolver,
        trust_forwarded_host: bool = False,
    ) -> None:
        self._app = app
        self._resolver = resolver
        self._trust_forwarded = trust_forwarded_host

    def _host(self, scope: Scope) -> str | None:
        headers = Headers(scope=scope)
        if self._trust_forwarded:
            forwarded = headers.get("x-forwarded-host")
            if forwarded:
                # A proxy chain may append several hosts; the first is the client's.
                return forwarded.split(",", maxsplit=1)[0].strip()
        return headers.get("host")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Rewrite ``http`` and ``websocket`` scopes; pass everything else through."""
        if scope["type"] not in ("http", "websocket"):
            await self._app(scope, receive, send)
            return

        path: str = scope.get("path") or "/"
        host = self._host(scope)
        slug = self._resolver.candidate(host)
        if slug is None:
            await self._app(scope, receive, send)
            return

        new_path = self._resolver.tenant_path(slug, path)
        prefix = new_path[: -len(path)]
        raw_path: bytes = scope.get("raw_path") or path.encode("utf-8")

        state: dict[str, Any] = dict(scope.get("state") or {})
        state["subdomain"] = slug
        state["original_path"] = path

        rewritten = dict(scope)
        rewritten["path"] = new_path
        rewritten["raw_path"] = prefix.encode("utf-8") + raw_path
        rewritten["state"] = state
        logger.debug("Rewrote host=%r path=%r → %r", host, path, new_path)
        await self._app(rewritten, receive, send)


__all__ = ["SubdomainRewriteMiddleware"]
