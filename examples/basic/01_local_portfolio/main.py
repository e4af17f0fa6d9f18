"""
Basic Example 1 — Local Portfolio Host
=======================================
Run subfolio locally with no database server, no Redis and no identity
provider, then claim a subdomain and browse it through the Host header.

What you'll learn
-----------------
- Build the app with create_app() and in-memory collaborators
- Plug in a custom IdentityProvider
- Seed a profile at startup by wrapping the app's lifespan
- How <slug>.<root> is rewritten onto /s/<slug>

Run
---
    pip install subfolio
    uvicorn main:app --reload --port 8000

Test
----
    # Claim "acme" as the seeded demo user
    curl -X POST http://localhost:8000/api/subdomains \\
         -H "X-Demo-User: demo" -H "Content-Type: application/json" \\
         -d '{"slug": "acme", "icon": "🎨", "display_name": "Acme Studio"}'

    # Visit the tenant site (simulating acme.localhost:8000)
    curl http://localhost:8000/ -H "Host: acme.localhost:8000"

    # Same page through the prefixed route
    curl http://localhost:8000/s/acme

    # Claiming it again → 409
    curl -X POST http://localhost:8000/api/subdomains \\
         -H "X-Demo-User: demo" -H "Content-Type: application/json" \\
         -d '{"slug": "acme", "icon": "🎨", "display_name": "Again"}'

    # Unknown subdomain → 404
    curl http://localhost:8000/ -H "Host: ghost.localhost:8000"
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.requests import HTTPConnection

from subfolio import SubfolioConfig, create_app
from subfolio.auth.identity import IdentityProvider
from subfolio.cache.store import InMemoryCacheStore
from subfolio.core.types import Identity, Profile
from subfolio.storage.memory import InMemoryDirectory

# ── 1. Configuration ──────────────────────────────────────────────────────────
#
# root_domain may carry a port in development; it is ignored when matching
# hosts, so acme.localhost:8000 resolves to "acme".
#
config = SubfolioConfig(root_domain="localhost:8000")


# ── 2. Identity ───────────────────────────────────────────────────────────────
#
# Production deployments verify JWTs with JWTIdentityProvider.  For a local
# demo we trust a header.  Never do this behind a public endpoint.
#
class DemoHeaderIdentity(IdentityProvider):
    async def authenticate(self, request: HTTPConnection) -> Identity | None:
        user = request.headers.get("x-demo-user")
        return Identity(external_id=user) if user else None


# ── 3. App ────────────────────────────────────────────────────────────────────
#
# Everything that would normally come from SQL and Redis is swapped for its
# in-memory counterpart through create_app()'s keyword arguments.
#
directory = InMemoryDirectory()
app = create_app(
    config,
    directory=directory,
    cache_store=InMemoryCacheStore(),
    identity_provider=DemoHeaderIdentity(),
)

# ── 4. Seed data ──────────────────────────────────────────────────────────────
#
# Profiles are created by the OAuth callback in a real deployment.  Here we
# insert one after the built-in lifespan has initialised the services.
#
_base_lifespan = app.router.lifespan_context


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with _base_lifespan(app):
        await directory.insert_profile(
            Profile(id="profile-demo", external_id="demo", email="demo@example.com")
        )
        print("✅ Seeded profile 'demo'; send X-Demo-User: demo to act as it")
        yield


app.router.lifespan_context = lifespan
