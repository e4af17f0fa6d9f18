"""Fail-soft, schema-validated cache in front of the tenant directory.

:class:`ReadThroughCache` wraps any :class:`~subfolio.cache.store.CacheStore`
and owns three concerns the raw store does not:

Key layout
----------
``subdomain:{slug}``
    :class:`~subfolio.core.types.TenantSnapshot` of the tenant claiming
    *slug*.  Default TTL one hour.

``portfolio:tenant:{tenant_id}``
    Newest visible :class:`~subfolio.core.types.Portfolio` of a tenant.
    Default TTL five minutes.

Envelope
--------
Every value is a JSON object ``{"v": 1, "kind": "tenant"|"portfolio",
"data": {...}}``.  A payload with an unknown version, the wrong kind, or
``data`` that does not validate against the current model is logged and
treated as a miss, so entries written by an older deployment fall through to
the directory instead of being served half-parsed.

Failure policy
--------------
The cache is never authoritative.  A store error on read is logged at
WARNING and reported as a miss; a store error on write or eviction is logged
and swallowed (the method returns ``False``).  Callers never see
:class:`~subfolio.core.exceptions.CacheError`.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationError

from subfolio.core.exceptions import CacheError
from subfolio.core.types import Portfolio, TenantSnapshot

if TYPE_CHECKING:
    from subfolio.cache.store import CacheStore

logger = logging.getLogger(__name__)

#: Current envelope schema version.
ENVELOPE_VERSION = 1

#: Default TTLs (seconds).
TENANT_TTL = 3600
PORTFOLIO_TTL = 300


def tenant_key(slug: str) -> str:
    """Return the cache key for the tenant claiming *slug*."""
    return f"subdomain:{slug}"


def portfolio_key(tenant_id: str) -> str:
    """Return the cache key for the current portfolio of *tenant_id*."""
    return f"portfolio:tenant:{tenant_id}"


class Envelope(BaseModel):
    """Versioned wrapper stored around every cached value."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    v: Literal[1]
    kind: Literal["tenant", "portfolio"]
    data: dict[str, Any]


class ReadThroughCache:
    """Typed, fail-soft facade over a raw cache store.

    Args:
        store: Backing key-value store.
        tenant_ttl: Default TTL of ``subdomain:*`` entries (seconds).
        portfolio_ttl: Default TTL of ``portfolio:tenant:*`` entries (seconds).

    Example::

        cache = ReadThroughCache(InMemoryCacheStore())
        await cache.set_tenant(tenant.snapshot())
        snapshot = await cache.get_tenant("acme")
    """

    def __init__(
        self,
        store: CacheStore,
        *,
        tenant_ttl: int = TENANT_TTL,
        portfolio_ttl: int = PORTFOLIO_TTL,
    ) -> None:
        self._store = store
        self._tenant_ttl = tenant_ttl
        self._portfolio_ttl = portfolio_ttl

    @property
    def store(self) -> CacheStore:
        return self._store

    ############
    # Tenants  #
    ############

    async def get_tenant(self, slug: str) -> TenantSnapshot | None:
        """Return the cached snapshot for *slug*, or ``None`` on miss.

        Store failures and invalid payloads are both reported as a miss.
        """
        key = tenant_key(slug)
        data = await self._read(key, "tenant")
        if data is None:
            logger.debug("Cache MISS %s", key)
            return None
        try:
            snapshot = TenantSnapshot.model_validate(data)
        except ValidationError as exc:
            logger.warning("Discarding invalid cache entry %s: %s", key, exc.errors()[:1])
            return None
        if snapshot.slug != slug:
            logger.warning("Discarding cache entry %s: slug mismatch", key)
            return None
        logger.debug("Cache HIT %s", key)
        return snapshot

    async def set_tenant(self, snapshot: TenantSnapshot, ttl: int | None = None) -> bool:
        """Cache *snapshot* under its slug.  Returns ``False`` on store failure."""
        return await self._write(
            tenant_key(snapshot.slug),
            "tenant",
            snapshot.model_dump(mode="json"),
            ttl if ttl is not None else self._tenant_ttl,
        )

    async def contains_tenant(self, slug: str) -> bool:
        """Return ``True`` if a valid snapshot for *slug* is cached.

        Only an optimisation for the uniqueness pre-check: ``False`` on any
        failure, so the directory is always consulted next.
        """
        return await self.get_tenant(slug) is not None

    async def evict_tenant(self, slug: str, tenant_id: str | None = None) -> bool:
        """Remove ``subdomain:{slug}`` and, when *tenant_id* is given, its portfolio key.

        Both keys go in one ``DEL``.  Returns ``False`` when the store failed.
        """
        keys = [tenant_key(slug)]
        if tenant_id is not None:
            keys.append(portfolio_key(tenant_id))
        return await self._delete(*keys)

    ##############
    # Portfolios #
    ##############

    async def get_portfolio(self, tenant_id: str) -> Portfolio | None:
        """Return the cached current portfolio of *tenant_id*, or ``None`` on miss."""
        key = portfolio_key(tenant_id)
        data = await self._read(key, "portfolio")
        if data is None:
            logger.debug("Cache MISS %s", key)
            return None
        try:
            portfolio = Portfolio.model_validate(data)
        except ValidationError as exc:
            logger.warning("Discarding invalid cache entry %s: %s", key, exc.errors()[:1])
            return None
        if portfolio.tenant_id != tenant_id:
            logger.warning("Discarding cache entry %s: tenant mismatch", key)
            return None
        logger.debug("Cache HIT %s", key)
        return portfolio

    async def set_portfolio(
        self,
        tenant_id: str,
        portfolio: Portfolio,
        ttl: int | None = None,
    ) -> bool:
        """Cache *portfolio* as the current portfolio of *tenant_id*."""
        return await self._write(
            portfolio_key(tenant_id),
            "portfolio",
            portfolio.model_dump(mode="json"),
            ttl if ttl is not None else self._portfolio_ttl,
        )

    async def evict_portfolio(self, tenant_id: str) -> bool:
        return await self._delete(portfolio_key(tenant_id))

    ####################
    # Internal helpers #
    ####################

    async def _read(self, key: str, kind: str) -> dict[str, Any] | None:
        try:
            raw = await self._store.get(key)
        except CacheError as exc:
            logger.warning("Cache read failed for %s: %s; treating as miss", key, exc)
            return None
        if raw is None:
            return None
        try:
            envelope = Envelope.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as exc:
            logger.warning("Discarding malformed cache entry %s: %s", key, exc)
            return None
        if envelope.kind != kind:
            logger.warning(
                "Discarding cache entry %s: expected kind %r, found %r",
                key,
                kind,
                envelope.kind,
            )
            return None
        return envelope.data

    async def _write(self, key: str, kind: str, data: dict[str, Any], ttl: int) -> bool:
        payload = json.dumps(
            {"v": ENVELOPE_VERSION, "kind": kind, "data": data},
            ensure_ascii=False,
        )
        try:
            await self._store.set(key, payload, ttl=ttl)
        except CacheError as exc:
            logger.warning("Cache write failed for %s: %s; operating without cache", key, exc)
            return False
        logger.debug("Cached %s ttl=%ds", key, ttl)
        return True

    async def _delete(self, *keys: str) -> bool:
        try:
            await self._store.delete(*keys)
        except CacheError as exc:
            logger.warning("Cache eviction failed for %s: %s", ", ".join(keys), exc)
            return False
        logger.debug("Evicted %s", ", ".join(keys))
        return True


__all__ = [
    "ENVELOPE_VERSION",
    "Envelope",
    "PORTFOLIO_TTL",
    "ReadThroughCache",
    "TENANT_TTL",
    "portfolio_key",
    "tenant_key",
]
