"""Integration tests — DeletionWorkflow."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from subfolio.cache.read_through import ReadThroughCache
from subfolio.core.exceptions import (
    AuthenticationError,
    CacheError,
    DirectoryError,
    ForbiddenError,
    ProfileNotFoundError,
    TenantNotFoundError,
)
from subfolio.core.types import Portfolio, ProvisioningRequest
from subfolio.services.deletion import DeletionWorkflow

pytestmark = pytest.mark.integration


class _EvictFailingStore:
    async def get(self, key):
        return None

    async def set(self, key, value, ttl=None):
        return None

    async def delete(self, *keys):
        raise CacheError("delete", ",".join(keys))

    async def close(self):
        return None


class TestOwnerDeletes:
    async def test_result(self, deletion, acme, alice_identity):
        result = await deletion.delete("acme", alice_identity)
        assert result.slug == "acme"
        assert result.tenant_id == acme.id
        assert result.portfolios_deleted == 1
        assert result.cache_evicted is True
        assert result.message == "Domain deleted successfully"

    async def test_tenant_and_portfolios_gone(self, deletion, directory, acme, alice_identity):
        await directory.insert_portfolio(
            Portfolio(id="second", tenant_id=acme.id, editor_id=acme.owner_id, title="Extra")
        )
        result = await deletion.delete("acme", alice_identity)
        assert result.portfolios_deleted == 2
        assert await directory.find_by_slug("acme") is None
        assert await directory.find_portfolios_by_tenant(acme.id) == []

    async def test_cache_entries_evicted(
        self, deletion, tenants, cache_store, acme, alice_identity
    ):
        await tenants.resolve_page("acme")
        assert sorted(cache_store.keys()) == [f"portfolio:tenant:{acme.id}", "subdomain:acme"]
        await deletion.delete("acme", alice_identity)
        assert cache_store.keys() == []

    async def test_resolve_after_delete(self, deletion, tenants, acme, alice_identity):
        assert await tenants.resolve("acme") is not None
        await deletion.delete("acme", alice_identity)
        assert await tenants.resolve("acme") is None

    async def test_slug_can_be_claimed_again(
        self, deletion, provisioning, acme, alice_identity, bob_identity
    ):
        await deletion.delete("acme", alice_identity)
        result = await provisioning.provision(
            ProvisioningRequest(slug="acme", icon="🚀", display_name="Bob's Acme"), bob_identity
        )
        assert result.ok is True


class TestRefusals:
    async def test_anonymous(self, deletion, acme):
        with pytest.raises(AuthenticationError):
            await deletion.delete("acme", None)

    async def test_no_profile(self, deletion, acme, stranger_identity):
        with pytest.raises(ProfileNotFoundError):
            await deletion.delete("acme", stranger_identity)

    async def test_unknown_slug(self, deletion, alice_identity):
        with pytest.raises(TenantNotFoundError):
            await deletion.delete("ghost", alice_identity)

    async def test_non_owner(self, deletion, directory, acme, bob_identity):
        with pytest.raises(ForbiddenError) as exc_info:
            await deletion.delete("acme", bob_identity)
        assert not isinstance(exc_info.value, ProfileNotFoundError)
        assert await directory.find_by_slug("acme") is not None

    async def test_ownership_read_from_directory_not_cache(
        self, deletion, cache, acme, bob_identity
    ):
        forged = acme.snapshot().model_copy(update={"owner_id": "profile-bob"})
        await cache.set_tenant(forged)
        with pytest.raises(ForbiddenError):
            await deletion.delete("acme", bob_identity)


class TestFailures:
    async def test_directory_failure_keeps_cache(
        self, deletion, directory, tenants, cache_store, acme, alice_identity
    ):
        await tenants.resolve("acme")
        boom = AsyncMock(side_effect=DirectoryError("delete_tenant", "deadlock"))
        with patch.object(directory, "delete_tenant", boom), pytest.raises(DirectoryError):
            await deletion.delete("acme", alice_identity)
        assert "subdomain:acme" in cache_store.keys()
        assert await directory.find_by_slug("acme") is not None

    async def test_eviction_failure_still_deletes(self, directory, acme, alice_identity):
        workflow = DeletionWorkflow(directory, ReadThroughCache(_EvictFailingStore()))
        result = await workflow.delete("acme", alice_identity)
        assert result.cache_evicted is False
        assert await directory.find_by_slug("acme") is None
