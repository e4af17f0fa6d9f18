"""Identity-provider adapters.

Authentication itself (OAuth flows, sessions, refresh) is delegated to an
external identity provider.  This module only answers one question per
request: *which provider user is calling?*

:class:`JWTIdentityProvider` verifies the provider-issued access token and
reads the stable user id from its ``sub`` claim.  The token is taken from an
``Authorization: Bearer`` header or, failing that, from the session cookie.

Security notes
--------------
* Verification failures are logged at ``WARNING`` for operators and surface
  to callers only as "unauthenticated".  Raw tokens are never logged and
  claims pass through ``mask_sensitive_data`` first.
* The accepted algorithm comes from configuration, never from the token
  header.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging
from typing import TYPE_CHECKING, Any

from jose import JWTError, jwt

from subfolio.core.types import Identity
from subfolio.utils.security import mask_sensitive_data

if TYPE_CHECKING:
    from starlette.requests import HTTPConnection

    from subfolio.core.config import SubfolioConfig

logger = logging.getLogger(__name__)


class IdentityProvider(ABC):
    """Map an incoming request to the calling user, if any."""

    @abstractmethod
    async def authenticate(self, request: HTTPConnection) -> Identity | None:
        """Return the caller's identity, or ``None`` for anonymous requests."""


class NullIdentityProvider(IdentityProvider):
    """Treat every request as anonymous.

    Used when no token secret is configured; every write operation then
    fails with 401.
    """

    async def authenticate(self, request: HTTPConnection) -> Identity | None:
        return None


class JWTIdentityProvider(IdentityProvider):
    """Verify provider-issued JWT access tokens with python-jose.

    Args:
        secret: Signing secret (HS*) or public key (RS*/ES*).
        algorithm: Accepted signing algorithm.
        audience: Required ``aud`` claim; ``None`` disables the check.
        cookie_name: Cookie read when no ``Authorization`` header is sent.

    Raises:
        ValueError: When *secret* is empty or shorter than 32 characters.

    Example::

        provider = JWTIdentityProvider(secret=os.environ["SUBFOLIO_JWT_SECRET"])
        identity = await provider.authenticate(request)
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        audience: str | None = "authenticated",
        cookie_name: str | None = "sb-access-token",
    ) -> None:
        if not secret:
            raise ValueError("JWTIdentityProvider requires a non-empty secret.")
        if len(secret) < 32:
            raise ValueError(
                "JWT secret must be at least 32 characters long for adequate security."
            )
        self._secret = secret
        self._algorithm = algorithm
        self._audience = audience
        self._cookie_name = cookie_name
        logger.debug("JWTIdentityProvider algorithm=%r audience=%r", algorithm, audience)

    @classmethod
    def from_config(cls, config: SubfolioConfig) -> JWTIdentityProvider:
        if not config.jwt_secret:
            msg = "JWTIdentityProvider.from_config requires config.jwt_secret"
            raise ValueError(msg)
        return cls(
            secret=config.jwt_secret,
            algorithm=config.jwt_algorithm,
            audience=config.jwt_audience,
            cookie_name=config.session_cookie_name,
        )

    def _token(self, request: HTTPConnection) -> str | None:
        auth_header = request.headers.get("authorization")
        if auth_header:
            parts = auth_header.split(maxsplit=1)
            if len(parts) == 2 and parts[0].lower() == "bearer" and parts[1].strip():
                return parts[1].strip()
            logger.debug("Ignoring non-Bearer Authorization header")
            return None
        if self._cookie_name:
            return request.cookies.get(self._cookie_name) or None
        return None

    def decode(self, token: str) -> Identity | None:
        """Verify *token* and return its identity, or ``None`` when invalid."""
        options: dict[str, Any] = {}
        if self._audience is None:
            options["verify_aud"] = False
        try:
            claims: dict[str, Any] = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience,
                options=options,
            )
        except JWTError as exc:
            logger.warning("Access token rejected: %s", exc)
            return None

        subject = claims.get("sub")
        if not subject:
            logger.warning("Access token has no 'sub' claim: %s", mask_sensitive_data(claims))
            return None
        email = claims.get("email")
        return Identity(external_id=str(subject), email=str(email) if email else None)

    async def authenticate(self, request: HTTPConnection) -> Identity | None:
        token = self._token(request)
        if token is None:
            return None
        return self.decode(token)


__all__ = [
    "IdentityProvider",
    "JWTIdentityProvider",
    "NullIdentityProvider",
]
