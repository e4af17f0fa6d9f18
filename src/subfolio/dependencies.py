"""FastAPI dependencies for the caller identity and the service container.

Every collaborator is built once by :func:`subfolio.api.create_app` and stored
on ``app.state.services``.  Route handlers reach it only through these
dependencies, never through module-level clients, so a test can build an app
around an in-memory directory and cache without patching anything.

Annotated shorthand::

    @app.delete("/api/subdomains/{slug}")
    async def delete_subdomain(
        slug: str,
        identity: RequiredIdentityDep,
        svc: Annotated[AppServices, Depends(get_services)],
    ):
        return await svc.deletion.delete(slug, identity)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated

from fastapi import Depends, Request

from subfolio.core.exceptions import AuthenticationError
from subfolio.core.types import Identity

if TYPE_CHECKING:
    from subfolio.api import AppServices


def get_services(request: Request) -> AppServices:
    """Return the :class:`~subfolio.api.AppServices` of the running app."""
    return request.app.state.services


async def get_identity(request: Request) -> Identity | None:
    """Return the caller's identity, or ``None`` for anonymous requests.

    Anonymous requests are not an error here; workflows decide whether they
    need a caller.
    """
    return await get_services(request).identity_provider.authenticate(request)


async def require_identity(
    identity: Annotated[Identity | None, Depends(get_identity)],
) -> Identity:
    """Return the caller's identity, rejecting anonymous requests with 401."""
    if identity is None:
        raise AuthenticationError()
    return identity


#: Caller identity or ``None``.
IdentityDep = Annotated[Identity | None, Depends(get_identity)]

#: Caller identity; 401 when absent.
RequiredIdentityDep = Annotated[Identity, Depends(require_identity)]


__all__ = [
    "IdentityDep",
    "RequiredIdentityDep",
    "get_identity",
    "get_services",
    "require_identity",
]
