"""Tenant listing and cross-tenant search."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from subfolio.core.types import SearchHit, SearchKind
from subfolio.services.common import require_profile

if TYPE_CHECKING:
    from subfolio.core.types import Identity, Tenant
    from subfolio.storage.base import TenantDirectory

logger = logging.getLogger(__name__)

#: Upper bound for a single listing or search page.
MAX_PAGE_SIZE = 100


class CatalogService:
    """Read-only views over the directory for dashboards and search.

    Matching is delegated to the directory (case-insensitive substring over
    tenant slug and display name, and over visible portfolio text).  Results
    bypass the cache.
    """

    def __init__(self, directory: TenantDirectory) -> None:
        self._directory = directory

    async def list_tenants(self, limit: int = 50, offset: int = 0) -> list[Tenant]:
        """Return a page of tenants, newest first."""
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        return list(await self._directory.list_tenants(limit=limit, offset=max(0, offset)))

    async def list_owned(self, identity: Identity | None) -> list[Tenant]:
        """Return the caller's tenants, newest first.

        Raises:
            AuthenticationError: *identity* is ``None``.
            ProfileNotFoundError: The identity has no profile.
        """
        profile = await require_profile(self._directory, identity)
        return list(await self._directory.list_by_owner(profile.id))

    async def search(
        self,
        query: str,
        kind: SearchKind = SearchKind.ALL,
        limit: int = 10,
        *,
        tenant_id: str | None = None,
    ) -> list[SearchHit]:
        """Search tenants and/or portfolios.

        Args:
            query: Free text.  Blank queries return no results.
            kind: Which result families to include.
            limit: Maximum hits *per family*.
            tenant_id: Restrict portfolio hits to one tenant.

        Returns:
            Tenant hits first, then portfolio hits.
        """
        text = query.strip()
        if not text:
            return []
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        kind = SearchKind(kind)

        hits: list[SearchHit] = []
        if kind in (SearchKind.ALL, SearchKind.TENANTS):
            for tenant in await self._directory.search_tenants(text, limit=limit):
                hits.append(
                    SearchHit(
                        type="tenant",
                        id=tenant.id,
                        slug=tenant.slug,
                        display_name=tenant.display_name,
                    )
                )
        if kind in (SearchKind.ALL, SearchKind.PORTFOLIOS):
            portfolios = await self._directory.search_portfolios(
                text, limit=limit, tenant_id=tenant_id
            )
            for portfolio in portfolios:
                hits.append(
                    SearchHit(
                        type="portfolio",
                        id=portfolio.id,
                        title=portfolio.title,
                        content=portfolio.content,
                    )
                )
        logger.debug("Search q=%r kind=%s → %d hits", text, kind.value, len(hits))
        return hits


__all__ = ["CatalogService", "MAX_PAGE_SIZE"]
