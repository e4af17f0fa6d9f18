"""E2E test — one tenant from claim to deletion, checked at every step over HTTP."""

from __future__ import annotations

import pytest

pytestmark = pytest.mark.e2e

ALICE = {"X-Test-User": "idp-alice"}
BOB = {"X-Test-User": "idp-bob"}
TENANT_HOST = {"Host": "studio.example.com"}


async def _page(client):
    return await client.get("/", headers=TENANT_HOST)


async def test_full_lifecycle(http_client, cache_store, alice, bob):
    # Nothing is served before the claim.
    assert (await _page(http_client)).status_code == 404

    created = await http_client.post(
        "/api/subdomains",
        json={"slug": "studio", "icon": "🎨", "display_name": "Studio"},
        headers=ALICE,
    )
    assert created.status_code == 201
    tenant_id = created.json()["tenant"]["tenant_id"]

    page = await _page(http_client)
    assert page.status_code == 200
    portfolio_id = page.json()["portfolio"]["id"]
    assert page.json()["portfolio"]["content"] is None

    # Only the editor may change the portfolio.
    denied = await http_client.patch(
        f"/api/portfolios/{portfolio_id}", json={"content": "defaced"}, headers=BOB
    )
    assert denied.status_code == 403

    edited = await http_client.patch(
        f"/api/portfolios/{portfolio_id}", json={"content": "Selected works"}, headers=ALICE
    )
    assert edited.status_code == 200
    assert edited.json()["content"] == "Selected works"

    # The edit is visible immediately, not after the cache TTL.
    assert (await _page(http_client)).json()["portfolio"]["content"] == "Selected works"

    empty = await http_client.patch(f"/api/portfolios/{portfolio_id}", json={}, headers=ALICE)
    assert empty.status_code == 422

    unknown_field = await http_client.patch(
        f"/api/portfolios/{portfolio_id}", json={"tenant_id": "other"}, headers=ALICE
    )
    assert unknown_field.status_code == 422

    # Only the owner may delete the tenant.
    assert (await http_client.delete("/api/subdomains/studio", headers=BOB)).status_code == 403
    assert (await http_client.delete("/api/subdomains/studio")).status_code == 401

    deleted = await http_client.delete("/api/subdomains/studio", headers=ALICE)
    assert deleted.status_code == 200
    assert deleted.json() == {
        "slug": "studio",
        "tenant_id": tenant_id,
        "portfolios_deleted": 1,
        "cache_evicted": True,
        "message": "Domain deleted successfully",
    }

    assert (await _page(http_client)).status_code == 404
    assert cache_store.keys() == []
    assert (await http_client.delete("/api/subdomains/studio", headers=ALICE)).status_code == 404


async def test_portfolio_delete_over_http(http_client, acme, bob, directory):
    (portfolio,) = await directory.find_portfolios_by_tenant(acme.id)

    assert (
        await http_client.delete(f"/api/portfolios/{portfolio.id}", headers=BOB)
    ).status_code == 403
    response = await http_client.delete(f"/api/portfolios/{portfolio.id}", headers=ALICE)
    assert response.status_code == 204

    page = await http_client.get("/", headers={"Host": "acme.example.com"})
    assert page.status_code == 200
    assert page.json()["portfolio"] is None

    again = await http_client.delete(f"/api/portfolios/{portfolio.id}", headers=ALICE)
    assert again.status_code == 404
    assert again.json()["code"] == "portfolio_not_found"


async def test_hidden_portfolio_not_served(http_client, acme, directory):
    (portfolio,) = await directory.find_portfolios_by_tenant(acme.id)
    response = await http_client.patch(
        f"/api/portfolios/{portfolio.id}", json={"is_hidden": True}, headers=ALICE
    )
    assert response.status_code == 200
    page = await http_client.get("/s/acme")
    assert page.json()["portfolio"] is None
