"""Tenant read path: slug → cached snapshot → directory fallback.

::

    resolve("Acme")
        │ normalize_slug → "acme"
        ▼
    ReadThroughCache.get_tenant("acme")
        ├── HIT  ──→ TenantSnapshot
        └── MISS / cache down / stale entry
                ▼
            TenantDirectory.find_by_slug("acme")
                ├── None   ──→ None  (tenant-not-found page)
                └── Tenant ──→ snapshot → best-effort set_tenant → TenantSnapshot

Cache failures never fail a read.  Directory failures propagate.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from subfolio.core.types import TenantPage
from subfolio.utils.validation import MAX_SLUG_LEN, normalize_slug

if TYPE_CHECKING:
    from subfolio.cache.read_through import ReadThroughCache
    from subfolio.core.types import Portfolio, TenantSnapshot
    from subfolio.storage.base import TenantDirectory

logger = logging.getLogger(__name__)


class TenantResolver:
    """Resolve slugs to tenant snapshots and tenant pages.

    Args:
        directory: Authoritative tenant directory.
        cache: Read-through cache in front of the directory.
        tenant_ttl: TTL applied when a directory hit is cached.
        portfolio_ttl: TTL applied when a portfolio is cached.
    """

    def __init__(
        self,
        directory: TenantDirectory,
        cache: ReadThroughCache,
        *,
        tenant_ttl: int = 3600,
        portfolio_ttl: int = 300,
    ) -> None:
        self._directory = directory
        self._cache = cache
        self._tenant_ttl = tenant_ttl
        self._portfolio_ttl = portfolio_ttl

    async def resolve(self, slug: str) -> TenantSnapshot | None:
        """Return the snapshot of the tenant claiming *slug*, or ``None``.

        *slug* is normalised first, so ``"Acme"`` and ``"acme"`` resolve to
        the same tenant.  A slug that normalises to nothing, or that is
        longer than any stored slug can be, is ``None`` without a lookup.

        Raises:
            DirectoryError: When the directory fails on a cache miss.
        """
        key = normalize_slug(slug)
        if not key or len(key) > MAX_SLUG_LEN:
            return None

        cached = await self._cache.get_tenant(key)
        if cached is not None:
            return cached

        tenant = await self._directory.find_by_slug(key)
        if tenant is None:
            logger.debug("No tenant for slug=%s", key)
            return None

        snapshot = tenant.snapshot()
        await self._cache.set_tenant(snapshot, ttl=self._tenant_ttl)
        return snapshot

    async def current_portfolio(self, tenant_id: str) -> Portfolio | None:
        """Return the newest visible portfolio of *tenant_id*, via the cache."""
        cached = await self._cache.get_portfolio(tenant_id)
        if cached is not None and not cached.is_hidden:
            return cached

        portfolio = await self._directory.current_portfolio(tenant_id)
        if portfolio is not None:
            await self._cache.set_portfolio(tenant_id, portfolio, ttl=self._portfolio_ttl)
        return portfolio

    async def resolve_page(self, slug: str) -> TenantPage | None:
        """Return everything the tenant page needs for *slug*, or ``None``."""
        snapshot = await self.resolve(slug)
        if snapshot is None:
            return None
        portfolio = await self.current_portfolio(snapshot.tenant_id)
        return TenantPage(tenant=snapshot, portfolio=portfolio)


__all__ = ["TenantResolver"]
