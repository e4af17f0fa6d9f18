"""Shared pytest fixtures for the subfolio test suite.

Hierarchy
---------
config                  SubfolioConfig for root domain example.com
directory               fresh InMemoryDirectory per test
cache_store             fresh InMemoryCacheStore per test
cache                   ReadThroughCache over cache_store
alice / bob             Profiles seeded into directory
alice_identity / ...    Identities mapped to those profiles
stranger_identity       Authenticated identity with no profile row
tenants                 TenantResolver (read path)
provisioning            ProvisioningWorkflow
deletion                DeletionWorkflow
portfolios              PortfolioService
catalog                 CatalogService
acme                    Tenant "acme" provisioned for alice
sqlite_directory        SQLAlchemyDirectory backed by SQLite :memory:
app                     create_app() wired to the in-memory collaborators
http_client             httpx.AsyncClient → app
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from httpx import ASGITransport, AsyncClient
import pytest
import pytest_asyncio

from subfolio.api import create_app
from subfolio.auth.identity import IdentityProvider
from subfolio.cache.read_through import ReadThroughCache
from subfolio.cache.store import InMemoryCacheStore
from subfolio.core.config import SubfolioConfig
from subfolio.core.types import Identity, Profile, ProvisioningRequest, Tenant
from subfolio.resolution.tenant import TenantResolver
from subfolio.services.catalog import CatalogService
from subfolio.services.deletion import DeletionWorkflow
from subfolio.services.portfolio import PortfolioService
from subfolio.services.provisioning import ProvisioningWorkflow
from subfolio.storage.database import SQLAlchemyDirectory
from subfolio.storage.memory import InMemoryDirectory

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.requests import HTTPConnection


class HeaderIdentityProvider(IdentityProvider):
    """Test identity provider: the caller is whoever ``X-Test-User`` names."""

    async def authenticate(self, request: HTTPConnection) -> Identity | None:
        user = request.headers.get("x-test-user")
        return Identity(external_id=user) if user else None


##########
# Config #
##########


@pytest.fixture
def config() -> SubfolioConfig:
    return SubfolioConfig(
        root_domain="example.com",
        database_url="sqlite+aiosqlite:///:memory:",
    )


####################
# Stores and cache #
####################


@pytest.fixture
def directory() -> InMemoryDirectory:
    return InMemoryDirectory()


@pytest.fixture
def cache_store() -> InMemoryCacheStore:
    return InMemoryCacheStore()


@pytest.fixture
def cache(cache_store: InMemoryCacheStore) -> ReadThroughCache:
    return ReadThroughCache(cache_store)


@pytest_asyncio.fixture
async def sqlite_directory() -> AsyncIterator[SQLAlchemyDirectory]:
    d = SQLAlchemyDirectory("sqlite+aiosqlite:///:memory:")
    await d.initialize()
    yield d
    await d.close()


############
# Profiles #
############


@pytest_asyncio.fixture
async def alice(directory: InMemoryDirectory) -> Profile:
    return await directory.insert_profile(
        Profile(id="profile-alice", external_id="idp-alice", email="alice@example.com")
    )


@pytest_asyncio.fixture
async def bob(directory: InMemoryDirectory) -> Profile:
    return await directory.insert_profile(
        Profile(id="profile-bob", external_id="idp-bob", email="bob@example.com")
    )


@pytest.fixture
def alice_identity(alice: Profile) -> Identity:
    return Identity(external_id=alice.external_id, email=alice.email)


@pytest.fixture
def bob_identity(bob: Profile) -> Identity:
    return Identity(external_id=bob.external_id, email=bob.email)


@pytest.fixture
def stranger_identity() -> Identity:
    return Identity(external_id="idp-nobody")


############
# Services #
############


@pytest.fixture
def tenants(directory: InMemoryDirectory, cache: ReadThroughCache) -> TenantResolver:
    return TenantResolver(directory, cache)


@pytest.fixture
def provisioning(
    directory: InMemoryDirectory,
    cache: ReadThroughCache,
    config: SubfolioConfig,
) -> ProvisioningWorkflow:
    return ProvisioningWorkflow(directory, cache, config)


@pytest.fixture
def deletion(directory: InMemoryDirectory, cache: ReadThroughCache) -> DeletionWorkflow:
    return DeletionWorkflow(directory, cache)


@pytest.fixture
def portfolios(directory: InMemoryDirectory, cache: ReadThroughCache) -> PortfolioService:
    return PortfolioService(directory, cache)


@pytest.fixture
def catalog(directory: InMemoryDirectory) -> CatalogService:
    return CatalogService(directory)


@pytest_asyncio.fixture
async def acme(
    provisioning: ProvisioningWorkflow,
    directory: InMemoryDirectory,
    alice_identity: Identity,
) -> Tenant:
    result = await provisioning.provision(
        ProvisioningRequest(slug="acme", icon="🎨", display_name="Acme Studio"),
        alice_identity,
    )
    assert result.ok, result.message
    tenant = await directory.find_by_slug("acme")
    assert tenant is not None
    return tenant


##########################
# ASGI app + HTTP client #
##########################


@pytest.fixture
def app(config: SubfolioConfig, directory: InMemoryDirectory, cache_store: InMemoryCacheStore):
    return create_app(
        config,
        directory=directory,
        cache_store=cache_store,
        identity_provider=HeaderIdentityProvider(),
    )


@pytest_asyncio.fixture
async def http_client(app) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://example.com",
    ) as client:
        yield client
