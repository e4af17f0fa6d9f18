"""Abstract tenant directory — the repository pattern.

``TenantDirectory`` is the single persistence contract behind every workflow.
It covers three record types that always live in the same database so that
multi-record writes can share one transaction:

* **tenants** — one row per claimed slug, unique on ``slug``;
* **portfolios** — content documents, many per tenant;
* **profiles** — users, keyed by the identity provider's stable id.

Contract
--------
- **Fully async** — every method is a coroutine.
- **Lookups return ``None``** on a miss; mutations of a missing record raise
  :class:`~subfolio.core.exceptions.TenantNotFoundError` or
  :class:`~subfolio.core.exceptions.PortfolioNotFoundError`.
- **Uniqueness is enforced here.**  A second tenant with an existing slug
  raises :class:`~subfolio.core.exceptions.SubdomainTakenError` even when two
  inserts race; the workflows' pre-checks are only an optimisation.
- **Wrap unexpected errors** in
  :class:`~subfolio.core.exceptions.DirectoryError` with the original chained.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging
from typing import TYPE_CHECKING, Any

from subfolio.core.exceptions import InvalidInputError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from subfolio.core.types import Portfolio, Profile, Tenant

logger = logging.getLogger(__name__)

#: Tenant columns ``update_tenant`` may change.  ``slug`` is immutable.
MUTABLE_TENANT_FIELDS = frozenset(
    {"display_name", "icon", "plan", "settings", "custom_domain"}
)

#: Portfolio columns ``update_portfolio`` may change.
MUTABLE_PORTFOLIO_FIELDS = frozenset(
    {"title", "description", "content", "template", "is_hidden", "media_files"}
)


class TenantDirectory(ABC):
    """Abstract base class for tenant, portfolio and profile storage."""

    #############
    # Lifecycle #
    #############

    async def initialize(self) -> None:  # noqa: B027
        """Prepare the backend (create tables, open pools).  Idempotent."""

    async def close(self) -> None:  # noqa: B027
        """Release backend resources."""

    ############
    # Profiles #
    ############

    @abstractmethod
    async def find_profile_by_external_id(self, external_id: str) -> Profile | None:
        """Return the profile linked to an identity-provider user id, if any."""

    @abstractmethod
    async def insert_profile(self, profile: Profile) -> Profile:
        """Persist a new profile.

        Raises:
            DirectoryError: When ``external_id`` is already linked.
        """

    ###########
    # Tenants #
    ###########

    @abstractmethod
    async def provision(self, tenant: Tenant, portfolio: Portfolio) -> tuple[Tenant, Portfolio]:
        """Insert *tenant* and its first *portfolio* in one transaction.

        Either both rows exist afterwards or neither does.

        Args:
            tenant: New tenant.  ``slug`` must be unused.
            portfolio: Default portfolio; ``tenant_id`` must equal ``tenant.id``.

        Returns:
            The stored tenant and portfolio.

        Raises:
            SubdomainTakenError: When the slug is already claimed.
            DirectoryError: On any other storage failure.
        """

    @abstractmethod
    async def find_by_slug(self, slug: str) -> Tenant | None:
        """Return the tenant claiming *slug*, or ``None``."""

    @abstractmethod
    async def find_by_id(self, tenant_id: str) -> Tenant | None:
        """Return the tenant with primary key *tenant_id*, or ``None``."""

    @abstractmethod
    async def update_tenant(self, tenant_id: str, changes: dict[str, Any]) -> Tenant:
        """Apply *changes* (a subset of :data:`MUTABLE_TENANT_FIELDS`).

        Raises:
            TenantNotFoundError: When no tenant has *tenant_id*.
            InvalidInputError: When *changes* names an immutable field.
        """

    @abstractmethod
    async def delete_tenant(self, tenant_id: str) -> int:
        """Delete the tenant and all of its portfolios in one transaction.

        Returns:
            Number of portfolios deleted alongside the tenant.

        Raises:
            TenantNotFoundError: When no tenant has *tenant_id*.
        """

    @abstractmethod
    async def list_tenants(self, limit: int = 50, offset: int = 0) -> Sequence[Tenant]:
        """Return tenants ordered newest first."""

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> Sequence[Tenant]:
        """Return every tenant owned by *owner_id*, newest first."""

    @abstractmethod
    async def search_tenants(self, query: str, limit: int = 20) -> Sequence[Tenant]:
        """Case-insensitive substring match over slug and display name."""

    ##############
    # Portfolios #
    ##############

    @abstractmethod
    async def insert_portfolio(self, portfolio: Portfolio) -> Portfolio:
        """Persist an additional portfolio for an existing tenant.

        Raises:
            TenantNotFoundError: When ``portfolio.tenant_id`` does not exist.
        """

    @abstractmethod
    async def find_portfolio(self, portfolio_id: str) -> Portfolio | None:
        """Return the portfolio with primary key *portfolio_id*, or ``None``."""

    @abstractmethod
    async def find_portfolios_by_tenant(
        self,
        tenant_id: str,
        *,
        include_hidden: bool = True,
    ) -> Sequence[Portfolio]:
        """Return the portfolios of *tenant_id*, newest first."""

    @abstractmethod
    async def update_portfolio(self, portfolio_id: str, changes: dict[str, Any]) -> Portfolio:
        """Apply *changes* (a subset of :data:`MUTABLE_PORTFOLIO_FIELDS`).

        Raises:
            PortfolioNotFoundError: When no portfolio has *portfolio_id*.
        """

    @abstractmethod
    async def delete_portfolio(self, portfolio_id: str) -> None:
        """Delete one portfolio.

        Raises:
            PortfolioNotFoundError: When no portfolio has *portfolio_id*.
        """

    @abstractmethod
    async def search_portfolios(
        self,
        query: str,
        limit: int = 20,
        *,
        tenant_id: str | None = None,
    ) -> Sequence[Portfolio]:
        """Case-insensitive substring match over title, description and content.

        Hidden portfolios are never returned.  *tenant_id* restricts the
        search to one tenant.
        """

    #####################################
    # Derived operations (overridable)  #
    #####################################

    async def current_portfolio(self, tenant_id: str) -> Portfolio | None:
        """Return the newest visible portfolio of *tenant_id*, if any."""
        portfolios = await self.find_portfolios_by_tenant(tenant_id, include_hidden=False)
        return portfolios[0] if portfolios else None


def check_mutable(changes: dict[str, Any], allowed: frozenset[str], record: str) -> None:
    """Raise ``InvalidInputError`` when *changes* touches a field outside *allowed*."""
    illegal = sorted(set(changes) - allowed)
    if illegal:
        raise InvalidInputError(
            f"Cannot modify {record} field(s): {', '.join(illegal)}",
            field=illegal[0],
        )


__all__ = [
    "MUTABLE_PORTFOLIO_FIELDS",
    "MUTABLE_TENANT_FIELDS",
    "TenantDirectory",
    "check_mutable",
]
