"""Domain types, enumerations, and data models for subfolio.

This module is the single source of truth for the package's domain
vocabulary.  Other modules import *from* this module, never the reverse,
to keep the dependency graph acyclic.

Design notes
------------
* Enumerations use :class:`~enum.StrEnum` so values serialise to plain
  strings in JSON, logs, and database rows without extra conversion.
* :class:`Tenant`, :class:`Portfolio` and :class:`Profile` are Pydantic
  ``frozen=True`` models.  Updates produce copies via :meth:`model_copy`.
* :class:`TenantSnapshot` is the projection stored in the cache under
  ``subdomain:<slug>`` and returned by the read path.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

#: Icon shown for tenants that never chose one.
DEFAULT_ICON = "📄"


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Environment(StrEnum):
    """Deployment environment; selects the public URL protocol."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"


class MultiLevelPolicy(StrEnum):
    """How the host resolver treats hosts with several labels before the root.

    PASSTHROUGH
        ``a.b.example.com`` is not a tenant host; the request is forwarded
        unmodified.
    LEFTMOST
        Only the leftmost label (``a``) is the candidate slug.
    FULL
        Everything left of the root domain (``a.b``) is the candidate.
        Such a candidate can never match a stored slug, so the request ends
        at the tenant-not-found page.
    """

    PASSTHROUGH = "passthrough"
    LEFTMOST = "leftmost"
    FULL = "full"


class MediaCategory(StrEnum):
    """Kind of attachment stored in a portfolio's media list."""

    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"


class ProvisioningState(StrEnum):
    """States of the provisioning workflow.

    Transitions
    -----------
    ``VALIDATING`` → ``CHECKING_UNIQUENESS`` → ``CREATING`` → ``CACHING`` →
    ``DONE``.  ``ERROR`` is reachable from every step.
    """

    VALIDATING = "validating"
    CHECKING_UNIQUENESS = "checking_uniqueness"
    CREATING = "creating"
    CACHING = "caching"
    DONE = "done"
    ERROR = "error"


class SearchKind(StrEnum):
    """Result families returned by catalog search."""

    ALL = "all"
    TENANTS = "tenants"
    PORTFOLIOS = "portfolios"


def _now() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Domain models
# ---------------------------------------------------------------------------


class Profile(BaseModel):
    """A user known to the directory, linked to an identity-provider account.

    Attributes:
        id: Directory primary key.
        external_id: Stable user id issued by the identity provider.
        email: Contact address.
        name: Optional display name.
        avatar_url: Optional avatar location.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, max_length=255)
    external_id: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=320)
    name: str | None = Field(default=None, max_length=255)
    avatar_url: str | None = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class Tenant(BaseModel):
    """Immutable tenant record.

    Attributes:
        id: Opaque unique identifier.
        slug: Claimed subdomain label.  Unique and never renamed.
        display_name: Name shown on the tenant page.
        icon: Short emoji/glyph string (``None`` = use :data:`DEFAULT_ICON`).
        owner_id: :class:`Profile` id of the owner.
        plan: Subscription plan name.
        settings: Application-defined key-value store.
        custom_domain: Stored for later use; not routed.
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "examples": [
                {
                    "id": "tenant-aB3xYz9mQp2sKl7n",
                    "slug": "acme",
                    "display_name": "Acme Studio",
                    "icon": "🎨",
                    "owner_id": "profile-Kl7nMf4wTv1cBz8p",
                    "plan": "free",
                }
            ]
        },
    )

    id: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=63)
    display_name: str = Field(..., min_length=1, max_length=255)
    icon: str | None = Field(default=None, max_length=10)
    owner_id: str = Field(..., min_length=1, max_length=255)
    plan: str = Field(default="free", max_length=50)
    settings: dict[str, Any] = Field(default_factory=dict)
    custom_domain: str | None = Field(default=None, max_length=255)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Tenant):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def snapshot(self) -> TenantSnapshot:
        """Return the cacheable projection of this tenant."""
        return TenantSnapshot(
            tenant_id=self.id,
            slug=self.slug,
            display_name=self.display_name,
            icon=self.icon or DEFAULT_ICON,
            owner_id=self.owner_id,
            created_at=self.created_at,
        )


class MediaFile(BaseModel):
    """One attachment in a portfolio's ordered media list."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    storage_path: str = Field(..., min_length=1)
    category: MediaCategory
    name: str = Field(..., min_length=1, max_length=255)
    size: int = Field(default=0, ge=0)


class Portfolio(BaseModel):
    """Content document published by a tenant.

    Attributes:
        id: Opaque unique identifier.
        tenant_id: Owning :class:`Tenant` id.
        editor_id: :class:`Profile` id allowed to modify this portfolio.
        is_hidden: Hidden portfolios are never served on the tenant page.
        media_files: Ordered attachments.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, max_length=255)
    tenant_id: str = Field(..., min_length=1, max_length=255)
    editor_id: str = Field(..., min_length=1, max_length=255)
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    content: str | None = None
    template: str = Field(default="default", max_length=50)
    is_hidden: bool = False
    media_files: list[MediaFile] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @property
    def published(self) -> bool:
        return not self.is_hidden


class PortfolioPatch(BaseModel):
    """Partial portfolio update.

    Only fields the caller explicitly set are applied; use
    ``model_dump(exclude_unset=True)`` to obtain them.  ``content`` and
    ``description`` may be set to ``None`` to clear them.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    content: str | None = None
    is_hidden: bool | None = None
    media_files: list[MediaFile] | None = None

    def changes(self) -> dict[str, Any]:
        """Return the explicitly-set fields, dropping ``None`` for non-nullable ones."""
        data = self.model_dump(exclude_unset=True)
        for key in ("title", "is_hidden", "media_files"):
            if key in data and data[key] is None:
                del data[key]
        return data


class TenantSnapshot(BaseModel):
    """Cached projection of a tenant, stored under ``subdomain:<slug>``.

    Every field is required so an entry written by an older schema fails
    validation on read and falls back to the directory.
    """

    model_config = ConfigDict(frozen=True)

    tenant_id: str = Field(..., min_length=1)
    slug: str = Field(..., min_length=1)
    display_name: str = Field(..., min_length=1)
    icon: str = Field(..., min_length=1)
    owner_id: str = Field(..., min_length=1)
    created_at: datetime


class TenantPage(BaseModel):
    """What the tenant page renderer receives for a resolved slug."""

    model_config = ConfigDict(frozen=True)

    tenant: TenantSnapshot
    portfolio: Portfolio | None = None


class Identity(BaseModel):
    """Authenticated caller as reported by the identity provider.

    Attributes:
        external_id: Stable user id from the provider (``sub`` claim).
        email: Address carried by the token, when present.
    """

    model_config = ConfigDict(frozen=True)

    external_id: str = Field(..., min_length=1)
    email: str | None = None


class ProvisioningRequest(BaseModel):
    """Raw form input for claiming a subdomain.  Validated by the workflow."""

    model_config = ConfigDict(frozen=True)

    slug: str = ""
    icon: str = ""
    display_name: str = ""


class ProvisioningResult(BaseModel):
    """Outcome of a provisioning run.

    Failed runs echo the submitted fields back so a form can be re-rendered.
    """

    model_config = ConfigDict(frozen=True)

    ok: bool
    state: ProvisioningState
    slug: str = ""
    icon: str = ""
    display_name: str = ""
    error_code: str | None = None
    message: str | None = None
    redirect_url: str | None = None
    tenant: TenantSnapshot | None = None


class DeletionResult(BaseModel):
    """Outcome of a tenant deletion."""

    model_config = ConfigDict(frozen=True)

    slug: str
    tenant_id: str
    portfolios_deleted: int = Field(default=0, ge=0)
    cache_evicted: bool = True
    message: str = "Domain deleted successfully"


class SearchHit(BaseModel):
    """One catalog search result."""

    model_config = ConfigDict(frozen=True)

    type: str
    id: str
    slug: str | None = None
    display_name: str | None = None
    title: str | None = None
    content: str | None = None


__all__ = [
    "DEFAULT_ICON",
    "DeletionResult",
    "Environment",
    "Identity",
    "MediaCategory",
    "MediaFile",
    "MultiLevelPolicy",
    "Portfolio",
    "PortfolioPatch",
    "Profile",
    "ProvisioningRequest",
    "ProvisioningResult",
    "ProvisioningState",
    "SearchHit",
    "SearchKind",
    "Tenant",
    "TenantPage",
    "TenantSnapshot",
]
