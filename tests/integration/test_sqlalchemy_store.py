"""Integration tests — SQLAlchemyDirectory against SQLite in-memory.

Mirrors the InMemoryDirectory unit tests so both backends are held to the
same contract, plus the ORM-specific paths (JSON columns, tz coercion,
IntegrityError mapping).
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest
import pytest_asyncio

from subfolio.core.exceptions import (
    DirectoryError,
    InvalidInputError,
    PortfolioNotFoundError,
    SubdomainTakenError,
    TenantNotFoundError,
)
from subfolio.core.types import MediaCategory, MediaFile, Portfolio, Profile, Tenant
from subfolio.storage.database import SQLAlchemyDirectory

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

pytestmark = pytest.mark.integration

_T0 = datetime(2024, 1, 1, tzinfo=UTC)


def _tenant(slug: str = "acme", tid: str | None = None, owner: str = "p1", **kw) -> Tenant:
    return Tenant(
        id=tid or f"tenant-{slug}",
        slug=slug,
        display_name=kw.pop("display_name", slug.title()),
        owner_id=owner,
        **kw,
    )


def _portfolio(tenant: Tenant, pid: str | None = None, **kw) -> Portfolio:
    return Portfolio(
        id=pid or f"portfolio-{tenant.slug}",
        tenant_id=tenant.id,
        editor_id=tenant.owner_id,
        title=kw.pop("title", tenant.display_name),
        **kw,
    )


@pytest.fixture
async def store(sqlite_directory):
    await sqlite_directory.insert_profile(Profile(id="p1", external_id="idp-1", email="a@b.co"))
    await sqlite_directory.insert_profile(Profile(id="p2", external_id="idp-2", email="c@d.co"))
    return sqlite_directory


class TestLifecycle:
    async def test_initialize_is_idempotent(self, store):
        await store.initialize()
        assert await store.find_profile_by_external_id("idp-1") is not None


class TestProfiles:
    async def test_round_trip(self, store):
        profile = await store.find_profile_by_external_id("idp-1")
        assert profile.id == "p1"
        assert profile.email == "a@b.co"
        assert profile.created_at.tzinfo is not None

    async def test_missing(self, store):
        assert await store.find_profile_by_external_id("nope") is None

    async def test_duplicate_external_id(self, store):
        with pytest.raises(DirectoryError):
            await store.insert_profile(Profile(id="p3", external_id="idp-1", email="x@y.co"))


class TestProvision:
    async def test_inserts_both_rows(self, store):
        t = _tenant(settings={"theme": "dark"})
        p = _portfolio(t)
        await store.provision(t, p)
        found = await store.find_by_slug("acme")
        assert found == t
        assert found.settings == {"theme": "dark"}
        assert found.created_at.tzinfo is not None
        assert (await store.find_portfolio(p.id)).title == "Acme"

    async def test_duplicate_slug_maps_to_conflict(self, store):
        t = _tenant()
        await store.provision(t, _portfolio(t))
        other = _tenant(tid="tenant-other", owner="p2")
        with pytest.raises(SubdomainTakenError):
            await store.provision(other, _portfolio(other, pid="portfolio-other"))
        assert await store.find_by_id("tenant-other") is None
        assert await store.find_portfolio("portfolio-other") is None

    async def test_duplicate_primary_key_is_directory_error(self, store):
        t = _tenant()
        await store.provision(t, _portfolio(t))
        again = _tenant(slug="fresh", tid=t.id)
        with pytest.raises(DirectoryError) as exc_info:
            await store.provision(again, _portfolio(again, pid="p-fresh"))
        assert not isinstance(exc_info.value, SubdomainTakenError)

    async def test_mismatched_portfolio(self, store):
        t = _tenant()
        with pytest.raises(DirectoryError):
            await store.provision(t, Portfolio(id="x", tenant_id="other", editor_id="p1", title="x"))


class TestTenants:
    async def test_update(self, store):
        t = _tenant()
        await store.provision(t, _portfolio(t))
        updated = await store.update_tenant(t.id, {"display_name": "Acme 2", "plan": "pro"})
        assert updated.display_name == "Acme 2"
        assert (await store.find_by_id(t.id)).plan == "pro"

    async def test_update_slug_rejected(self, store):
        t = _tenant()
        await store.provision(t, _portfolio(t))
        with pytest.raises(InvalidInputError):
            await store.update_tenant(t.id, {"slug": "other"})

    async def test_update_missing(self, store):
        with pytest.raises(TenantNotFoundError):
            await store.update_tenant("ghost", {"plan": "pro"})

    async def test_delete_counts_portfolios(self, store):
        t = _tenant()
        await store.provision(t, _portfolio(t))
        await store.insert_portfolio(_portfolio(t, pid="second"))
        assert await store.delete_tenant(t.id) == 2
        assert await store.find_by_slug("acme") is None
        assert await store.find_portfolios_by_tenant(t.id) == []

    async def test_delete_missing(self, store):
        with pytest.raises(TenantNotFoundError):
            await store.delete_tenant("ghost")

    async def test_listing_newest_first(self, store):
        for i in range(3):
            t = _tenant(f"t{i}", owner="p1" if i != 1 else "p2", created_at=_T0 + timedelta(days=i))
            await store.provision(t, _portfolio(t))
        assert [t.slug for t in await store.list_tenants()] == ["t2", "t1", "t0"]
        assert [t.slug for t in await store.list_tenants(limit=1, offset=1)] == ["t1"]
        assert [t.slug for t in await store.list_by_owner("p1")] == ["t2", "t0"]

    async def test_search_tenants(self, store):
        t = _tenant("acme", display_name="Acme Design Studio")
        await store.provision(t, _portfolio(t))
        assert await store.search_tenants("DESIGN") == [t]
        assert await store.search_tenants("zzz") == []

    async def test_search_escapes_wildcards(self, store):
        t = _tenant("acme", display_name="Acme")
        await store.provision(t, _portfolio(t))
        assert await store.search_tenants("%") == []


class TestPortfolios:
    async def test_insert_requires_tenant(self, store):
        with pytest.raises(TenantNotFoundError):
            await store.insert_portfolio(_portfolio(_tenant()))

    async def test_media_files_round_trip(self, store):
        t = _tenant()
        media = MediaFile(
            id="m1",
            url="https://cdn.example.com/a.mp4",
            storage_path="acme/a.mp4",
            category=MediaCategory.VIDEO,
            name="a.mp4",
        )
        await store.provision(t, _portfolio(t, media_files=[media]))
        found = await store.find_portfolio("portfolio-acme")
        assert found.media_files == [media]

    async def test_current_portfolio_skips_hidden(self, store):
        t = _tenant()
        await store.provision(t, _portfolio(t, pid="first", created_at=_T0))
        await store.insert_portfolio(
            _portfolio(t, pid="hidden", is_hidden=True, created_at=_T0 + timedelta(days=1))
        )
        assert (await store.current_portfolio(t.id)).id == "first"
        assert len(await store.find_portfolios_by_tenant(t.id, include_hidden=False)) == 1

    async def test_update(self, store):
        t = _tenant()
        await store.provision(t, _portfolio(t))
        updated = await store.update_portfolio("portfolio-acme", {"content": "hello"})
        assert updated.content == "hello"
        assert (await store.find_portfolio("portfolio-acme")).content == "hello"

    async def test_update_missing(self, store):
        with pytest.raises(PortfolioNotFoundError):
            await store.update_portfolio("ghost", {"content": "x"})

    async def test_delete(self, store):
        t = _tenant()
        await store.provision(t, _portfolio(t))
        await store.delete_portfolio("portfolio-acme")
        with pytest.raises(PortfolioNotFoundError):
            await store.delete_portfolio("portfolio-acme")

    async def test_search_visible_only(self, store):
        t = _tenant()
        await store.provision(t, _portfolio(t, content="Watercolour landscapes"))
        await store.insert_portfolio(
            _portfolio(t, pid="secret", content="Watercolour drafts", is_hidden=True)
        )
        hits = await store.search_portfolios("WATERCOLOUR")
        assert [p.id for p in hits] == ["portfolio-acme"]
        assert await store.search_portfolios("watercolour", tenant_id="other") == []


class TestReadFailures:
    @pytest_asyncio.fixture
    async def uninitialised(self) -> AsyncIterator[SQLAlchemyDirectory]:
        d = SQLAlchemyDirectory("sqlite+aiosqlite:///:memory:")
        yield d
        await d.close()

    @pytest.mark.parametrize(
        ("operation", "args"),
        [
            ("find_profile_by_external_id", ("idp-1",)),
            ("find_by_slug", ("acme",)),
            ("find_by_id", ("tenant-acme",)),
            ("list_tenants", ()),
            ("list_by_owner", ("p1",)),
            ("search_tenants", ("ac",)),
            ("find_portfolio", ("portfolio-acme",)),
            ("find_portfolios_by_tenant", ("tenant-acme",)),
            ("search_portfolios", ("ac",)),
        ],
    )
    async def test_driver_error_becomes_directory_error(self, uninitialised, operation, args):
        with pytest.raises(DirectoryError) as exc_info:
            await getattr(uninitialised, operation)(*args)
        assert exc_info.value.operation == operation
        assert exc_info.value.code == "upstream_error"
