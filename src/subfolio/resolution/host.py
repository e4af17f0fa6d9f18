"""Host-based tenant routing.

Derives the candidate tenant slug from the request host and maps a request
on a tenant host onto the tenant-scoped path space::

    Host: acme.example.com   GET /about?x=1  →  GET /s/acme/about?x=1
    Host: www.example.com    GET /           →  unchanged (reserved label)
    Host: example.com        GET /           →  unchanged (apex)
    Host: portfolio.dev      GET /           →  unchanged (foreign host)

Everything here is pure string manipulation: no I/O, no lookups.  Whether a
candidate slug actually belongs to a tenant is decided later, on the read
path; an unknown slug ends at the tenant-not-found response.

Hosts with more than one label in front of the root domain
(``a.b.example.com``) are governed by :class:`~subfolio.core.types.MultiLevelPolicy`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from subfolio.core.types import MultiLevelPolicy

logger = logging.getLogger(__name__)


def strip_port(host: str) -> str:
    """Return *host* lowercased and without a trailing ``:port``.

    Bracketed IPv6 literals keep their brackets::

        strip_port("Acme.Example.com:443")  # "acme.example.com"
        strip_port("[::1]:3000")            # "[::1]"
    """
    host = host.strip().lower()
    if host.startswith("["):
        end = host.find("]")
        return host[: end + 1] if end != -1 else host
    return host.split(":", maxsplit=1)[0]


class HostResolver:
    """Extract tenant slugs from hosts and compute rewritten paths.

    Args:
        root_domain: Apex domain tenants live under.  A port, when present,
            is ignored for matching (``localhost:3000`` matches
            ``acme.localhost:8080``).
        route_prefix: Path prefix of the tenant-scoped route space.
        reserved: Labels that never name a tenant.
        multi_level: Policy for hosts with several labels before the root.

    Example::

        resolver = HostResolver("example.com")
        resolver.candidate("acme.example.com")        # "acme"
        resolver.rewrite("/about", "acme.example.com") # "/s/acme/about"
        resolver.rewrite("/", "example.com")           # None
    """

    def __init__(
        self,
        root_domain: str,
        route_prefix: str = "/s",
        reserved: Iterable[str] = ("www",),
        multi_level: MultiLevelPolicy = MultiLevelPolicy.PASSTHROUGH,
    ) -> None:
        self._root = strip_port(root_domain).lstrip(".")
        if not self._root:
            msg = "root_domain must not be empty"
            raise ValueError(msg)
        self._suffix = f".{self._root}"
        self._prefix = "/" + route_prefix.strip("/")
        self._reserved = frozenset(label.lower() for label in reserved)
        self._multi_level = MultiLevelPolicy(multi_level)

    @property
    def root_domain(self) -> str:
        return self._root

    @property
    def route_prefix(self) -> str:
        return self._prefix

    def candidate(self, host: str | None) -> str | None:
        """Return the tenant slug candidate encoded in *host*, or ``None``.

        ``None`` means the request is not addressed to a tenant host: the
        host is missing, is the apex domain, lies outside the root domain,
        or names a reserved label.
        """
        if not host:
            return None
        hostname = strip_port(host)
        if not hostname.endswith(self._suffix):
            return None

        remainder = hostname[: -len(self._suffix)]
        if not remainder:
            return None

        labels = remainder.split(".")
        if len(labels) > 1:
            if self._multi_level is MultiLevelPolicy.PASSTHROUGH:
                logger.debug("Multi-level host %r passed through", hostname)
                return None
            if self._multi_level is MultiLevelPolicy.LEFTMOST:
                remainder = labels[0]

        if not remainder or remainder in self._reserved:
            return None
        return remainder

    def tenant_path(self, slug: str, path: str) -> str:
        """Return the routed path for *path* on tenant *slug* (``/s/acme/p``)."""
        return f"{self._prefix}/{slug}{path or '/'}"

    def rewrite(self, path: str, host: str | None) -> str | None:
        """Return the tenant-scoped path for *path* on *host*, or ``None``.

        ``None`` means pass the request through unmodified.  The query
        string is not part of *path* and is never touched.
        """
        slug = self.candidate(host)
        if slug is None:
            return None
        return self.tenant_path(slug, path)


__all__ = ["HostResolver", "strip_port"]
