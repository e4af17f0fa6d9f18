"""Composition root and HTTP surface.

:func:`create_app` is the only place where collaborators are constructed.
Every client (directory, cache store, identity provider) is built once per
application, owned by an :class:`AppServices` container on ``app.state``,
and closed by the lifespan.  Tests pass in-memory replacements through the
same function.

Routes
------
::

    GET    /health
    GET    /s/{slug}                    tenant page (what <slug>.<root>/ rewrites to)
    POST   /api/subdomains              provisioning workflow
    DELETE /api/subdomains/{slug}       deletion workflow
    GET    /api/tenants                 newest tenants
    GET    /api/me/tenants              caller's tenants
    PATCH  /api/portfolios/{id}         portfolio update + cache invalidation
    DELETE /api/portfolios/{id}         portfolio delete + cache invalidation
    GET    /api/search?q=&type=         catalog search

Error mapping
-------------
:class:`~subfolio.core.exceptions.SubfolioError` subclasses become
``{"detail": ..., "code": ...}`` responses.  Upstream failures are logged with
their full context and answered with a generic message.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Annotated, Any

from fastapi import Depends, FastAPI, Query, Request, Response, status
from fastapi.responses import JSONResponse

from subfolio.auth.identity import IdentityProvider, JWTIdentityProvider, NullIdentityProvider
from subfolio.cache.read_through import ReadThroughCache
from subfolio.cache.store import CacheStore, InMemoryCacheStore, RedisCacheStore
from subfolio.core.config import SubfolioConfig
from subfolio.core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    DirectoryError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    SubdomainTakenError,
    SubfolioError,
    TenantNotFoundError,
)
from subfolio.core.types import (
    DeletionResult,
    Environment,
    Portfolio,
    PortfolioPatch,
    ProvisioningRequest,
    SearchKind,
    Tenant,
    TenantPage,
    TenantSnapshot,
)
from subfolio.dependencies import IdentityDep, RequiredIdentityDep, get_services
from subfolio.middleware.host_rewrite import SubdomainRewriteMiddleware
from subfolio.resolution.host import HostResolver
from subfolio.resolution.tenant import TenantResolver
from subfolio.services.catalog import CatalogService
from subfolio.services.deletion import DeletionWorkflow
from subfolio.services.portfolio import PortfolioService
from subfolio.services.provisioning import ProvisioningWorkflow
from subfolio.storage.database import SQLAlchemyDirectory

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from subfolio.storage.base import TenantDirectory

logger = logging.getLogger(__name__)

#: Message returned for every upstream failure.  Never built from the exception.
GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."

_HTTP_422_UNPROCESSABLE = 422

# Most specific first: ProfileNotFoundError is a ForbiddenError.
_STATUS_BY_ERROR: tuple[tuple[type[SubfolioError], int], ...] = (
    (InvalidInputError, _HTTP_422_UNPROCESSABLE),
    (SubdomainTakenError, status.HTTP_409_CONFLICT),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
)

_STATUS_BY_RESULT_CODE: dict[str, int] = {
    InvalidInputError.code: _HTTP_422_UNPROCESSABLE,
    SubdomainTakenError.code: status.HTTP_409_CONFLICT,
}


###############################
# Service container / wiring  #
###############################


@dataclass
class AppServices:
    """Every process-scoped collaborator of one application instance."""

    config: SubfolioConfig
    directory: TenantDirectory
    cache_store: CacheStore
    cache: ReadThroughCache
    identity_provider: IdentityProvider
    host_resolver: HostResolver
    tenants: TenantResolver
    provisioning: ProvisioningWorkflow
    deletion: DeletionWorkflow
    portfolios: PortfolioService
    catalog: CatalogService

    @classmethod
    def build(
        cls,
        config: SubfolioConfig,
        *,
        directory: TenantDirectory | None = None,
        cache_store: CacheStore | None = None,
        identity_provider: IdentityProvider | None = None,
    ) -> AppServices:
        """Construct the collaborators described by *config*.

        Explicit arguments win over configuration, which is how tests swap
        in :class:`~subfolio.storage.memory.InMemoryDirectory` and friends.

        Raises:
            ConfigurationError: A production config without ``redis_url`` and
                no explicit *cache_store*.
        """
        if directory is None:
            directory = SQLAlchemyDirectory(
                config.database_url,
                pool_size=config.database_pool_size,
                max_overflow=config.database_max_overflow,
                echo=config.database_echo,
            )
        if cache_store is None:
            if config.redis_url:
                cache_store = RedisCacheStore.from_config(config)
            elif config.environment == Environment.PRODUCTION:
                raise ConfigurationError("redis_url", "required when environment='production'")
            else:
                logger.warning("redis_url not set; using the in-process cache store")
                cache_store = InMemoryCacheStore()
        if identity_provider is None:
            if config.jwt_secret:
                identity_provider = JWTIdentityProvider.from_config(config)
            else:
                logger.warning("jwt_secret not set; every request is anonymous")
                identity_provider = NullIdentityProvider()

        cache = ReadThroughCache(
            cache_store,
            tenant_ttl=config.cache_ttl,
            portfolio_ttl=config.portfolio_cache_ttl,
        )
        return cls(
            config=config,
            directory=directory,
            cache_store=cache_store,
            cache=cache,
            identity_provider=identity_provider,
            host_resolver=HostResolver(
                config.root_domain,
                route_prefix=config.tenant_route_prefix,
                reserved=config.reserved_subdomains,
                multi_level=config.multi_level_subdomains,
            ),
            tenants=TenantResolver(
                directory,
                cache,
                tenant_ttl=config.cache_ttl,
                portfolio_ttl=config.portfolio_cache_ttl,
            ),
            provisioning=ProvisioningWorkflow(directory, cache, config),
            deletion=DeletionWorkflow(directory, cache),
            portfolios=PortfolioService(directory, cache),
            catalog=CatalogService(directory),
        )

    async def initialize(self) -> None:
        await self.directory.initialize()
        logger.info("Directory initialised: %s", type(self.directory).__name__)

    async def close(self) -> None:
        """Close the directory and the cache store.  Both are always attempted."""
        try:
            await self.directory.close()
        finally:
            await self.cache_store.close()
        logger.info("subfolio services shut down cleanly")


ServicesDep = Annotated[AppServices, Depends(get_services)]


##################
# Error handlers #
##################


def _status_for(exc: SubfolioError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _upstream_response(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Upstream failure on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": GENERIC_ERROR_MESSAGE, "code": DirectoryError.code},
    )


async def _handle_subfolio_error(request: Request, exc: SubfolioError) -> JSONResponse:
    status_code = _status_for(exc)
    if status_code >= 500:
        return _upstream_response(request, exc)
    body: dict[str, Any] = {"detail": exc.message, "code": exc.code}
    if isinstance(exc, InvalidInputError) and exc.field:
        body["field"] = exc.field
    return JSONResponse(status_code=status_code, content=body)


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    return _upstream_response(request, exc)


##########
# Routes #
##########


def _register_routes(app: FastAPI, services: AppServices) -> None:
    prefix = services.config.tenant_route_prefix

    @app.get("/health", tags=["meta"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    # The trailing-slash variant is what "<slug>.<root>/" rewrites to; a
    # slash redirect there would send the client a tenant-prefixed Location.
    @app.get(prefix + "/{slug}", response_model=TenantPage, tags=["tenants"])
    @app.get(prefix + "/{slug}/", response_model=TenantPage, include_in_schema=False)
    async def tenant_page(slug: str, svc: ServicesDep) -> TenantPage:
        page = await svc.tenants.resolve_page(slug)
        if page is None:
            raise TenantNotFoundError(slug)
        return page

    @app.post("/api/subdomains", tags=["subdomains"], status_code=status.HTTP_201_CREATED)
    async def create_subdomain(
        body: ProvisioningRequest,
        identity: IdentityDep,
        svc: ServicesDep,
    ) -> JSONResponse:
        result = await svc.provisioning.provision(body, identity)
        payload = result.model_dump(mode="json")
        if not result.ok:
            code = _STATUS_BY_RESULT_CODE.get(result.error_code or "", status.HTTP_400_BAD_REQUEST)
            return JSONResponse(status_code=code, content=payload)
        return JSONResponse(
            status_code=status.HTTP_201_CREATED,
            content=payload,
            headers={"Location": result.redirect_url or ""},
        )

    @app.delete("/api/subdomains/{slug}", response_model=DeletionResult, tags=["subdomains"])
    async def delete_subdomain(
        slug: str,
        identity: RequiredIdentityDep,
        svc: ServicesDep,
    ) -> DeletionResult:
        return await svc.deletion.delete(slug, identity)

    @app.get("/api/tenants", response_model=list[TenantSnapshot], tags=["tenants"])
    async def list_tenants(
        svc: ServicesDep,
        limit: Annotated[int, Query(ge=1, le=100)] = 50,
        offset: Annotated[int, Query(ge=0)] = 0,
    ) -> list[TenantSnapshot]:
        tenants = await svc.catalog.list_tenants(limit=limit, offset=offset)
        return [t.snapshot() for t in tenants]

    @app.get("/api/me/tenants", response_model=list[Tenant], tags=["tenants"])
    async def my_tenants(identity: RequiredIdentityDep, svc: ServicesDep) -> list[Tenant]:
        return await svc.catalog.list_owned(identity)

    @app.patch("/api/portfolios/{portfolio_id}", response_model=Portfolio, tags=["portfolios"])
    async def update_portfolio(
        portfolio_id: str,
        patch: PortfolioPatch,
        identity: RequiredIdentityDep,
        svc: ServicesDep,
    ) -> Portfolio:
        return await svc.portfolios.update(portfolio_id, patch, identity)

    @app.delete(
        "/api/portfolios/{portfolio_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        tags=["portfolios"],
    )
    async def delete_portfolio(
        portfolio_id: str,
        identity: RequiredIdentityDep,
        svc: ServicesDep,
    ) -> Response:
        await svc.portfolios.delete(portfolio_id, identity)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.get("/api/search", tags=["search"])
    async def search(
        svc: ServicesDep,
        q: str = "",
        type: SearchKind = SearchKind.ALL,  # noqa: A002
        limit: Annotated[int, Query(ge=1, le=100)] = 10,
        tenant_id: str | None = None,
    ) -> dict[str, Any]:
        hits = await svc.catalog.search(q, type, limit, tenant_id=tenant_id)
        return {"results": [h.model_dump(mode="json", exclude_none=True) for h in hits]}


######################
# Application factory #
######################


def create_app(
    config: SubfolioConfig | None = None,
    *,
    directory: TenantDirectory | None = None,
    cache_store: CacheStore | None = None,
    identity_provider: IdentityProvider | None = None,
) -> FastAPI:
    """Build a fully wired FastAPI application.

    Args:
        config: Settings; read from the environment when ``None``.
        directory: Tenant directory override.
        cache_store: Cache store override.
        identity_provider: Identity provider override.

    Example::

        app = create_app(SubfolioConfig(root_domain="example.com"))

    Example — tests::

        app = create_app(
            config,
            directory=InMemoryDirectory(),
            cache_store=InMemoryCacheStore(),
            identity_provider=NullIdentityProvider(),
        )
    """
    config = config or SubfolioConfig()
    services = AppServices.build(
        config,
        directory=directory,
        cache_store=cache_store,
        identity_provider=identity_provider,
    )

    @asynccontextmanager
    async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
        await services.initialize()
        try:
            yield
        finally:
            await services.close()

    app = FastAPI(title="subfolio", lifespan=_lifespan)
    app.state.services = services
    app.add_exception_handler(SubfolioError, _handle_subfolio_error)
    app.add_exception_handler(Exception, _handle_unexpected_error)
    _register_routes(app, services)

    # Added last so it is the outermost layer and runs before anything that
    # reads apex-scoped cookies.
    app.add_middleware(
        SubdomainRewriteMiddleware,
        resolver=services.host_resolver,
        trust_forwarded_host=config.trust_forwarded_host,
    )
    logger.info("subfolio app created root_domain=%s", config.root_domain)
    return app


__all__ = ["AppServices", "GENERIC_ERROR_MESSAGE", "create_app"]
