"""Deletion workflow: remove a tenant, its portfolios and its cache entries."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from subfolio.core.exceptions import ForbiddenError, TenantNotFoundError
from subfolio.core.types import DeletionResult
from subfolio.services.common import require_profile

if TYPE_CHECKING:
    from subfolio.cache.read_through import ReadThroughCache
    from subfolio.core.types import Identity
    from subfolio.storage.base import TenantDirectory

logger = logging.getLogger(__name__)


class DeletionWorkflow:
    """Delete a tenant on behalf of its owner.

    Existence and ownership are read from the directory, never the cache.
    Cache keys are evicted only after the directory transaction commits.

    Args:
        directory: Authoritative tenant directory.
        cache: Read-through cache to invalidate.
    """

    def __init__(self, directory: TenantDirectory, cache: ReadThroughCache) -> None:
        self._directory = directory
        self._cache = cache

    async def delete(self, slug: str, identity: Identity | None) -> DeletionResult:
        """Delete the tenant claiming *slug*.

        Raises:
            AuthenticationError: *identity* is ``None``.
            ProfileNotFoundError: The identity has no profile.
            TenantNotFoundError: No tenant claims *slug*.
            ForbiddenError: The caller does not own the tenant.
            DirectoryError: The directory transaction failed; the cache is
                left untouched.
        """
        profile = await require_profile(self._directory, identity)

        tenant = await self._directory.find_by_slug(slug)
        if tenant is None:
            raise TenantNotFoundError(slug)
        if tenant.owner_id != profile.id:
            logger.warning(
                "Profile %s attempted to delete tenant %s owned by %s",
                profile.id,
                tenant.id,
                tenant.owner_id,
            )
            raise ForbiddenError("tenant", tenant.id)

        removed = await self._directory.delete_tenant(tenant.id)
        evicted = await self._cache.evict_tenant(tenant.slug, tenant.id)
        if not evicted:
            logger.warning(
                "Tenant %s deleted but cache eviction failed; entry expires with its TTL",
                tenant.slug,
            )
        logger.info("Deleted tenant slug=%s id=%s portfolios=%d", tenant.slug, tenant.id, removed)
        return DeletionResult(
            slug=tenant.slug,
            tenant_id=tenant.id,
            portfolios_deleted=removed,
            cache_evicted=evicted,
        )


__all__ = ["DeletionWorkflow"]
