"""Helpers shared by the write workflows."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from subfolio.core.exceptions import AuthenticationError, ProfileNotFoundError

if TYPE_CHECKING:
    from subfolio.core.types import Identity, Profile
    from subfolio.storage.base import TenantDirectory

logger = logging.getLogger(__name__)


async def require_profile(
    directory: TenantDirectory,
    identity: Identity | None,
    *,
    unauthenticated_message: str = "You must be logged in",
) -> Profile:
    """Return the profile behind *identity*, failing closed.

    Raises:
        AuthenticationError: When *identity* is ``None``.
        ProfileNotFoundError: When the identity has no profile row.  A
            profile is never created here.
    """
    if identity is None:
        raise AuthenticationError(unauthenticated_message)
    profile = await directory.find_profile_by_external_id(identity.external_id)
    if profile is None:
        logger.warning("Authenticated identity has no profile external_id=%s", identity.external_id)
        raise ProfileNotFoundError(identity.external_id)
    return profile


__all__ = ["require_profile"]
