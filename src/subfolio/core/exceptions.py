"""Custom exceptions for subfolio.

All exceptions derive from ``SubfolioError`` so callers can catch the entire
family with a single ``except SubfolioError`` clause while still being able to
handle individual sub-types for fine-grained error recovery.

Exception hierarchy::

    SubfolioError
    ├── InvalidInputError            validation  (422)
    ├── SubdomainTakenError          conflict    (409)
    ├── NotFoundError                            (404)
    │   ├── TenantNotFoundError
    │   └── PortfolioNotFoundError
    ├── AuthenticationError          no identity (401)
    ├── ForbiddenError               authorization (403)
    │   └── ProfileNotFoundError
    ├── DirectoryError               upstream    (500, generic message)
    ├── CacheError                   never surfaced to clients
    └── ConfigurationError           startup only

Design decisions:
    - Every exception carries a structured ``details`` dict that is safe to
      log.  It must never contain raw secrets or tokens.
    - ``code`` is a stable, machine-readable status string the HTTP layer
      returns next to the human message so a UI can tell a taken subdomain
      apart from a malformed one.
    - Error messages are operator-focused.  Client-facing messages for
      upstream failures are built by the HTTP layer, never from ``str(exc)``.
"""

from __future__ import annotations

from typing import Any


class SubfolioError(Exception):
    """Base exception for all subfolio errors.

    Attributes:
        message: Human-readable description of the error.
        details: Supplementary key-value context.  Safe to log.
        code: Stable machine-readable error code.
    """

    code: str = "error"

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.details: dict[str, Any] = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return ``human-readable`` string."""
        if self.details:
            return f"{self.message} | details={self.details}"
        return self.message

    def __repr__(self) -> str:
        """Return ``repr`` string for debugging purpose."""
        return f"{type(self).__name__}(message={self.message!r})"


class InvalidInputError(SubfolioError):
    """Raised when a caller submits a missing or malformed field.

    Attributes:
        field: Name of the offending field (``None`` when several are
            missing at once).
    """

    code = "invalid_input"

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.field = field


class SubdomainTakenError(SubfolioError):
    """Raised when a slug is already claimed by another tenant.

    Raised both by the optimistic pre-check and by the directory when its
    unique index rejects an insert.  The latter is the authoritative signal.

    Attributes:
        slug: The contested slug.
    """

    code = "subdomain_taken"

    def __init__(
        self,
        slug: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__("This subdomain is already taken", details)
        self.slug = slug


class NotFoundError(SubfolioError):
    """Base class for missing tenants and portfolios."""

    code = "not_found"


class TenantNotFoundError(NotFoundError):
    """Raised when no tenant matches a slug or id.

    Attributes:
        identifier: The slug or id that was looked up.
    """

    code = "tenant_not_found"

    def __init__(
        self,
        identifier: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        message = f"Tenant not found: {identifier!r}" if identifier else "Tenant not found"
        super().__init__(message, details)
        self.identifier = identifier


class PortfolioNotFoundError(NotFoundError):
    """Raised when no portfolio matches an id.

    Attributes:
        portfolio_id: The id that was looked up.
    """

    code = "portfolio_not_found"

    def __init__(
        self,
        portfolio_id: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(f"Portfolio not found: {portfolio_id!r}", details)
        self.portfolio_id = portfolio_id


class AuthenticationError(SubfolioError):
    """Raised when an operation requires an authenticated caller and has none."""

    code = "unauthenticated"

    def __init__(
        self,
        message: str = "Authentication required",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)


class ForbiddenError(SubfolioError):
    """Raised when the caller is authenticated but does not own the resource.

    Attributes:
        resource: Resource type (``"tenant"``, ``"portfolio"``).
        resource_id: Identifier of the protected resource.
    """

    code = "forbidden"

    def __init__(
        self,
        resource: str,
        resource_id: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message or f"Caller may not modify {resource} {resource_id!r}",
            details,
        )
        self.resource = resource
        self.resource_id = resource_id


class ProfileNotFoundError(ForbiddenError):
    """Raised when an authenticated identity has no profile row.

    Workflows fail closed on this condition; a profile is never created
    implicitly.

    Attributes:
        external_id: The identity provider's user id.
    """

    code = "user_not_found"

    def __init__(
        self,
        external_id: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__("profile", external_id, "User not found", details)
        self.external_id = external_id


class DirectoryError(SubfolioError):
    """Raised when the tenant directory fails unexpectedly.

    Attributes:
        operation: The directory operation that failed (``"insert"``,
            ``"delete_tenant"``, ...).
    """

    code = "upstream_error"

    def __init__(
        self,
        operation: str,
        reason: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(f"Directory operation {operation!r} failed: {reason}", details)
        self.operation = operation
        self.reason = reason


class CacheError(SubfolioError):
    """Raised by cache stores on connection or protocol failure.

    Never reaches a client: the read-through layer converts it into a miss
    on reads and a no-op on writes.

    Attributes:
        operation: The cache command (``"get"``, ``"set"``, ``"delete"``).
        key: The cache key involved.
    """

    code = "cache_error"

    def __init__(
        self,
        operation: str,
        key: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(f"Cache {operation} failed for key {key!r}", details)
        self.operation = operation
        self.key = key


class ConfigurationError(SubfolioError):
    """Raised when the application is wired with inconsistent settings.

    Attributes:
        parameter: The name of the invalid setting.
        reason: Why the current value is invalid.
    """

    code = "configuration_error"

    def __init__(
        self,
        parameter: str,
        reason: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(f"Invalid configuration for {parameter!r}: {reason}", details)
        self.parameter = parameter
        self.reason = reason


__all__ = [
    "AuthenticationError",
    "CacheError",
    "ConfigurationError",
    "DirectoryError",
    "ForbiddenError",
    "InvalidInputError",
    "NotFoundError",
    "PortfolioNotFoundError",
    "ProfileNotFoundError",
    "SubdomainTakenError",
    "SubfolioError",
    "TenantNotFoundError",
]
