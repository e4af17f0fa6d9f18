"""In-memory tenant directory for testing and development.

Warning:
    All records are **lost when the process exits**.  Use it only for unit
    tests, local development and demos; production deployments use
    ``SQLAlchemyDirectory``.

Design notes
------------
- O(1) lookups: ``_tenants`` (id → Tenant) and ``_slug_map`` (slug → id)
  are plain dicts.
- Every mutating method holds ``_lock`` for its full check-then-write
  sequence.  That is what makes the slug index behave like a database
  unique constraint when two provisioning calls race.
- Newest-first listings sort on ``created_at`` and fall back to insertion
  order, mirroring ``ORDER BY created_at DESC``.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
import itertools
import logging
from typing import Any

from subfolio.core.exceptions import (
    DirectoryError,
    PortfolioNotFoundError,
    SubdomainTakenError,
    TenantNotFoundError,
)
from subfolio.core.types import Portfolio, Profile, Tenant
from subfolio.storage.base import (
    MUTABLE_PORTFOLIO_FIELDS,
    MUTABLE_TENANT_FIELDS,
    TenantDirectory,
    check_mutable,
)

logger = logging.getLogger(__name__)


class InMemoryDirectory(TenantDirectory):
    """Dictionary-backed :class:`TenantDirectory`.

    Example — pytest fixture::

        @pytest.fixture
        def directory():
            d = InMemoryDirectory()
            yield d
            d.clear()
    """

    def __init__(self) -> None:
        self._profiles: dict[str, Profile] = {}
        self._external_map: dict[str, str] = {}  # external_id → profile id
        self._tenants: dict[str, Tenant] = {}
        self._slug_map: dict[str, str] = {}  # slug → tenant id
        self._portfolios: dict[str, Portfolio] = {}
        self._order: dict[str, int] = {}  # record id → insertion sequence
        self._seq = itertools.count()
        self._lock = asyncio.Lock()
        logger.debug("InMemoryDirectory initialised")

    ############
    # Profiles #
    ############

    async def find_profile_by_external_id(self, external_id: str) -> Profile | None:
        profile_id = self._external_map.get(external_id)
        if profile_id is None:
            return None
        return self._profiles[profile_id]

    async def insert_profile(self, profile: Profile) -> Profile:
        async with self._lock:
            if profile.external_id in self._external_map or profile.id in self._profiles:
                raise DirectoryError(
                    "insert_profile",
                    "profile already exists",
                    details={"external_id": profile.external_id},
                )
            self._profiles[profile.id] = profile
            self._external_map[profile.external_id] = profile.id
        return profile

    ###########
    # Tenants #
    ###########

    async def provision(self, tenant: Tenant, portfolio: Portfolio) -> tuple[Tenant, Portfolio]:
        if portfolio.tenant_id != tenant.id:
            raise DirectoryError("provision", "portfolio.tenant_id does not match tenant.id")
        async with self._lock:
            if tenant.slug in self._slug_map:
                raise SubdomainTakenError(tenant.slug)
            if tenant.id in self._tenants or portfolio.id in self._portfolios:
                raise DirectoryError("provision", "duplicate primary key")
            self._tenants[tenant.id] = tenant
            self._slug_map[tenant.slug] = tenant.id
            self._order[tenant.id] = next(self._seq)
            self._portfolios[portfolio.id] = portfolio
            self._order[portfolio.id] = next(self._seq)
        logger.info("Provisioned tenant id=%s slug=%s", tenant.id, tenant.slug)
        return tenant, portfolio

    async def find_by_slug(self, slug: str) -> Tenant | None:
        tenant_id = self._slug_map.get(slug)
        if tenant_id is None:
            return None
        return self._tenants[tenant_id]

    async def find_by_id(self, tenant_id: str) -> Tenant | None:
        return self._tenants.get(tenant_id)

    async def update_tenant(self, tenant_id: str, changes: dict[str, Any]) -> Tenant:
        check_mutable(changes, MUTABLE_TENANT_FIELDS, "tenant")
        async with self._lock:
            current = self._tenants.get(tenant_id)
            if current is None:
                raise TenantNotFoundError(tenant_id)
            updated = Tenant.model_validate(
                {**current.model_dump(), **changes, "updated_at": datetime.now(UTC)}
            )
            self._tenants[tenant_id] = updated
        logger.info("Updated tenant id=%s fields=%s", tenant_id, sorted(changes))
        return updated

    async def delete_tenant(self, tenant_id: str) -> int:
        async with self._lock:
            tenant = self._tenants.get(tenant_id)
            if tenant is None:
                raise TenantNotFoundError(tenant_id)
            owned = [pid for pid, p in self._portfolios.items() if p.tenant_id == tenant_id]
            for pid in owned:
                del self._portfolios[pid]
                self._order.pop(pid, None)
            del self._tenants[tenant_id]
            self._slug_map.pop(tenant.slug, None)
            self._order.pop(tenant_id, None)
        logger.info("Deleted tenant id=%s portfolios=%d", tenant_id, len(owned))
        return len(owned)

    async def list_tenants(self, limit: int = 50, offset: int = 0) -> list[Tenant]:
        return self._newest_first(self._tenants.values())[offset : offset + limit]

    async def list_by_owner(self, owner_id: str) -> list[Tenant]:
        return self._newest_first(t for t in self._tenants.values() if t.owner_id == owner_id)

    async def search_tenants(self, query: str, limit: int = 20) -> list[Tenant]:
        needle = query.lower()
        matches = (
            t
            for t in self._tenants.values()
            if needle in t.slug.lower() or needle in t.display_name.lower()
        )
        return self._newest_first(matches)[:limit]

    ##############
    # Portfolios #
    ##############

    async def insert_portfolio(self, portfolio: Portfolio) -> Portfolio:
        async with self._lock:
            if portfolio.tenant_id not in self._tenants:
                raise TenantNotFoundError(portfolio.tenant_id)
            if portfolio.id in self._portfolios:
                raise DirectoryError("insert_portfolio", "duplicate primary key")
            self._portfolios[portfolio.id] = portfolio
            self._order[portfolio.id] = next(self._seq)
        return portfolio

    async def find_portfolio(self, portfolio_id: str) -> Portfolio | None:
        return self._portfolios.get(portfolio_id)

    async def find_portfolios_by_tenant(
        self,
        tenant_id: str,
        *,
        include_hidden: bool = True,
    ) -> list[Portfolio]:
        return self._newest_first(
            p
            for p in self._portfolios.values()
            if p.tenant_id == tenant_id and (include_hidden or not p.is_hidden)
        )

    async def update_portfolio(self, portfolio_id: str, changes: dict[str, Any]) -> Portfolio:
        check_mutable(changes, MUTABLE_PORTFOLIO_FIELDS, "portfolio")
        async with self._lock:
            current = self._portfolios.get(portfolio_id)
            if current is None:
                raise PortfolioNotFoundError(portfolio_id)
            updated = Portfolio.model_validate(
                {**current.model_dump(), **changes, "updated_at": datetime.now(UTC)}
            )
            self._portfolios[portfolio_id] = updated
        logger.info("Updated portfolio id=%s fields=%s", portfolio_id, sorted(changes))
        return updated

    async def delete_portfolio(self, portfolio_id: str) -> None:
        async with self._lock:
            if self._portfolios.pop(portfolio_id, None) is None:
                raise PortfolioNotFoundError(portfolio_id)
            self._order.pop(portfolio_id, None)
        logger.info("Deleted portfolio id=%s", portfolio_id)

    async def search_portfolios(
        self,
        query: str,
        limit: int = 20,
        *,
        tenant_id: str | None = None,
    ) -> list[Portfolio]:
        needle = query.lower()

        def _matches(p: Portfolio) -> bool:
            fields = (p.title, p.description or "", p.content or "")
            return any(needle in f.lower() for f in fields)

        visible = (
            p
            for p in self._portfolios.values()
            if not p.is_hidden
            and (tenant_id is None or p.tenant_id == tenant_id)
            and _matches(p)
        )
        return self._newest_first(visible)[:limit]

    #################
    # Test helpers  #
    #################

    def clear(self) -> None:
        """Remove every record.  Not part of the directory interface."""
        self._profiles.clear()
        self._external_map.clear()
        self._tenants.clear()
        self._slug_map.clear()
        self._portfolios.clear()
        self._order.clear()

    def _newest_first(self, records: Any) -> list[Any]:
        return sorted(
            records,
            key=lambda r: (r.created_at, self._order.get(r.id, 0)),
            reverse=True,
        )


__all__ = ["InMemoryDirectory"]
