"""Portfolio update and delete with cache invalidation.

Both operations run the same checks, in order:

1. the caller is authenticated and has a profile;
2. the portfolio exists (``PortfolioNotFoundError``);
3. the caller is the portfolio's editor (``ForbiddenError``);
4. the owning tenant exists (``TenantNotFoundError``).

After the directory write both ``subdomain:<slug>`` and
``portfolio:tenant:<id>`` are evicted so the next tenant-page read sees the
new content.  An eviction failure is logged and never fails the operation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from subfolio.core.exceptions import (
    ForbiddenError,
    InvalidInputError,
    PortfolioNotFoundError,
    TenantNotFoundError,
)
from subfolio.services.common import require_profile

if TYPE_CHECKING:
    from subfolio.cache.read_through import ReadThroughCache
    from subfolio.core.types import Identity, Portfolio, PortfolioPatch, Tenant
    from subfolio.storage.base import TenantDirectory

logger = logging.getLogger(__name__)


class PortfolioService:
    """Editor-only portfolio mutations.

    Args:
        directory: Authoritative tenant directory.
        cache: Read-through cache to invalidate.
    """

    def __init__(self, directory: TenantDirectory, cache: ReadThroughCache) -> None:
        self._directory = directory
        self._cache = cache

    async def update(
        self,
        portfolio_id: str,
        patch: PortfolioPatch,
        identity: Identity | None,
    ) -> Portfolio:
        """Apply the fields explicitly set on *patch* and return the new portfolio.

        Raises:
            AuthenticationError: *identity* is ``None``.
            ProfileNotFoundError: The identity has no profile.
            PortfolioNotFoundError: No portfolio has *portfolio_id*.
            ForbiddenError: The caller is not the portfolio's editor.
            TenantNotFoundError: The owning tenant no longer exists.
            InvalidInputError: *patch* sets no field.
        """
        _, tenant = await self._authorize(portfolio_id, identity)
        changes = patch.changes()
        if not changes:
            raise InvalidInputError("No portfolio fields to update")

        updated = await self._directory.update_portfolio(portfolio_id, changes)
        await self._invalidate(tenant)
        return updated

    async def delete(self, portfolio_id: str, identity: Identity | None) -> None:
        """Delete one portfolio.  Raises exactly as :meth:`update` does."""
        _, tenant = await self._authorize(portfolio_id, identity)
        await self._directory.delete_portfolio(portfolio_id)
        await self._invalidate(tenant)

    async def _authorize(
        self,
        portfolio_id: str,
        identity: Identity | None,
    ) -> tuple[Portfolio, Tenant]:
        profile = await require_profile(self._directory, identity)

        portfolio = await self._directory.find_portfolio(portfolio_id)
        if portfolio is None:
            raise PortfolioNotFoundError(portfolio_id)
        if portfolio.editor_id != profile.id:
            logger.warning(
                "Profile %s attempted to modify portfolio %s edited by %s",
                profile.id,
                portfolio_id,
                portfolio.editor_id,
            )
            raise ForbiddenError("portfolio", portfolio_id)

        tenant = await self._directory.find_by_id(portfolio.tenant_id)
        if tenant is None:
            raise TenantNotFoundError(portfolio.tenant_id)
        return portfolio, tenant

    async def _invalidate(self, tenant: Tenant) -> None:
        if not await self._cache.evict_tenant(tenant.slug, tenant.id):
            logger.warning(
                "Portfolio change for tenant %s committed but cache eviction failed",
                tenant.slug,
            )


__all__ = ["PortfolioService"]
