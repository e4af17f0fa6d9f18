"""Caller identification via an external identity provider."""

from subfolio.auth.identity import IdentityProvider, JWTIdentityProvider, NullIdentityProvider

__all__ = [
    "IdentityProvider",
    "JWTIdentityProvider",
    "NullIdentityProvider",
]
