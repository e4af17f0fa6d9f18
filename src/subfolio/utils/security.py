"""Security utilities for subfolio.

All functions use Python's ``secrets`` module which is backed by the operating
system's cryptographically secure random number generator.  Do **not** replace
calls here with ``random``.
"""

from __future__ import annotations

import secrets
from typing import Any


def generate_id(prefix: str) -> str:
    """Generate a cryptographically secure, URL-safe opaque record ID.

    The generated ID is an internal primary key, never a slug.

    Args:
        prefix: Short record-type marker (``"tenant"``, ``"portfolio"``,
            ``"profile"``).

    Returns:
        A string of the form ``"{prefix}-{random}"`` where ``random`` is 16
        URL-safe base64 characters.

    Example::

        generate_id("tenant")     # "tenant-aB3xYz9mQp2sKl7n"
        generate_id("portfolio")  # "portfolio-Kl7nMf4wTv1cBz8p"
    """
    return f"{prefix}-{secrets.token_urlsafe(12)}"


def mask_sensitive_data(
    data: dict[str, Any],
    sensitive_keys: frozenset[str] | None = None,
) -> dict[str, Any]:
    """Return a shallow copy of *data* with sensitive values redacted.

    Used before logging token claims.  Keys are compared case-insensitively.

    Example::

        mask_sensitive_data({"sub": "u1", "access_token": "abc"})
        # {"sub": "u1", "access_token": "***"}
    """
    keys = sensitive_keys or frozenset(
        {"access_token", "refresh_token", "token", "password", "secret", "authorization"}
    )
    return {k: ("***" if k.lower() in keys else v) for k, v in data.items()}


__all__ = [
    "generate_id",
    "mask_sensitive_data",
]
