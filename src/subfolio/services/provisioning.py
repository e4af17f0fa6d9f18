"""Provisioning workflow: claim a subdomain and create its tenant.

State machine
-------------
::

    VALIDATING ──► CHECKING_UNIQUENESS ──► CREATING ──► CACHING ──► DONE
        │                  │                  │
        └──────────────────┴──────────────────┴──────► ERROR

``VALIDATING``
    All three fields are required; the icon must pass
    :func:`~subfolio.utils.validation.is_valid_icon`; the slug must already
    be in normal form (no silent correction).
``CHECKING_UNIQUENESS``
    Cache first, then the directory.  Either hit is a conflict.  This is an
    optimisation only: two concurrent claims can both pass it.
``CREATING``
    The tenant and its default portfolio are inserted in one transaction.
    The directory's unique slug index decides races; the loser gets the same
    conflict result as a pre-check hit.
``CACHING``
    Best effort.  A cache failure is logged and the run still succeeds.

Validation and conflict outcomes come back as a failed
:class:`~subfolio.core.types.ProvisioningResult` that echoes the submitted
fields.  Missing authentication, a missing profile and directory failures
raise.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from subfolio.core.exceptions import (
    AuthenticationError,
    InvalidInputError,
    SubdomainTakenError,
)
from subfolio.core.types import (
    Portfolio,
    ProvisioningResult,
    ProvisioningState,
    Tenant,
)
from subfolio.services.common import require_profile
from subfolio.utils.security import generate_id
from subfolio.utils.validation import is_valid_icon, validate_slug

if TYPE_CHECKING:
    from subfolio.cache.read_through import ReadThroughCache
    from subfolio.core.config import SubfolioConfig
    from subfolio.core.types import Identity, ProvisioningRequest
    from subfolio.storage.base import TenantDirectory

logger = logging.getLogger(__name__)

_MAX_DISPLAY_NAME_LEN = 255


class ProvisioningWorkflow:
    """Run the subdomain-claim state machine.

    Args:
        directory: Authoritative tenant directory.
        cache: Read-through cache used for the pre-check and the final write.
        config: Supplies the root domain, protocol and tenant TTL.

    Example::

        workflow = ProvisioningWorkflow(directory, cache, config)
        result = await workflow.provision(
            ProvisioningRequest(slug="acme", icon="🎨", display_name="Acme"),
            identity,
        )
        if result.ok:
            return RedirectResponse(result.redirect_url)
    """

    def __init__(
        self,
        directory: TenantDirectory,
        cache: ReadThroughCache,
        config: SubfolioConfig,
    ) -> None:
        self._directory = directory
        self._cache = cache
        self._config = config

    async def provision(
        self,
        request: ProvisioningRequest,
        identity: Identity | None,
    ) -> ProvisioningResult:
        """Claim ``request.slug`` for the caller.

        Returns:
            ``ok=True`` with ``state=DONE`` and a redirect URL on success;
            ``ok=False`` with ``state=ERROR`` on a validation failure or a
            taken slug.

        Raises:
            AuthenticationError: *identity* is ``None``.
            ProfileNotFoundError: The identity has no profile.
            DirectoryError: The directory failed for any reason other than a
                slug conflict.
        """
        if identity is None:
            raise AuthenticationError("You must be logged in to create a subdomain")

        state = ProvisioningState.VALIDATING
        try:
            self._validate(request)
        except InvalidInputError as exc:
            logger.info("Provisioning rejected slug=%r: %s", request.slug, exc.message)
            return self._failure(request, exc.code, exc.message)

        slug = request.slug
        state = self._advance(state, ProvisioningState.CHECKING_UNIQUENESS, slug)
        if await self._cache.contains_tenant(slug) or (
            await self._directory.find_by_slug(slug) is not None
        ):
            logger.info("Provisioning conflict slug=%s (pre-check)", slug)
            return self._taken(request)

        profile = await require_profile(self._directory, identity)

        state = self._advance(state, ProvisioningState.CREATING, slug)
        tenant = Tenant(
            id=generate_id("tenant"),
            slug=slug,
            display_name=request.display_name,
            icon=request.icon,
            owner_id=profile.id,
        )
        portfolio = Portfolio(
            id=generate_id("portfolio"),
            tenant_id=tenant.id,
            editor_id=profile.id,
            title=request.display_name,
            description=f"Welcome to {request.display_name}'s portfolio",
            template="default",
            is_hidden=False,
        )
        try:
            tenant, _ = await self._directory.provision(tenant, portfolio)
        except SubdomainTakenError:
            logger.info("Provisioning conflict slug=%s (unique index)", slug)
            return self._taken(request)

        state = self._advance(state, ProvisioningState.CACHING, slug)
        snapshot = tenant.snapshot()
        await self._cache.set_tenant(snapshot, ttl=self._config.cache_ttl)

        state = self._advance(state, ProvisioningState.DONE, slug)
        logger.info("Provisioned slug=%s tenant_id=%s owner=%s", slug, tenant.id, profile.id)
        return ProvisioningResult(
            ok=True,
            state=state,
            slug=slug,
            icon=request.icon,
            display_name=request.display_name,
            redirect_url=self._config.tenant_url(slug),
            tenant=snapshot,
        )

    ####################
    # Internal helpers #
    ####################

    @staticmethod
    def _validate(request: ProvisioningRequest) -> None:
        if not request.slug or not request.icon or not request.display_name:
            raise InvalidInputError("Subdomain, icon, and display name are required")
        if not is_valid_icon(request.icon):
            raise InvalidInputError(
                "Please enter a valid emoji (maximum 10 characters)", field="icon"
            )
        validate_slug(request.slug)
        if len(request.display_name) > _MAX_DISPLAY_NAME_LEN:
            raise InvalidInputError(
                f"Display name must be at most {_MAX_DISPLAY_NAME_LEN} characters",
                field="display_name",
            )

    @staticmethod
    def _advance(
        current: ProvisioningState,
        target: ProvisioningState,
        slug: str,
    ) -> ProvisioningState:
        logger.debug("Provisioning slug=%s %s → %s", slug, current.value, target.value)
        return target

    @staticmethod
    def _failure(request: ProvisioningRequest, code: str, message: str) -> ProvisioningResult:
        return ProvisioningResult(
            ok=False,
            state=ProvisioningState.ERROR,
            slug=request.slug,
            icon=request.icon,
            display_name=request.display_name,
            error_code=code,
            message=message,
        )

    def _taken(self, request: ProvisioningRequest) -> ProvisioningResult:
        exc = SubdomainTakenError(request.slug)
        return self._failure(request, exc.code, exc.message)


__all__ = ["ProvisioningWorkflow"]
