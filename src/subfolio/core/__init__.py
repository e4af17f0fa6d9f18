"""Core abstractions — types, config, and exceptions."""

from subfolio.core.config import SubfolioConfig
from subfolio.core.exceptions import (
    AuthenticationError,
    CacheError,
    ConfigurationError,
    DirectoryError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    PortfolioNotFoundError,
    ProfileNotFoundError,
    SubdomainTakenError,
    SubfolioError,
    TenantNotFoundError,
)
from subfolio.core.types import (
    DEFAULT_ICON,
    DeletionResult,
    Environment,
    Identity,
    MediaCategory,
    MediaFile,
    MultiLevelPolicy,
    Portfolio,
    PortfolioPatch,
    Profile,
    ProvisioningRequest,
    ProvisioningResult,
    ProvisioningState,
    SearchHit,
    SearchKind,
    Tenant,
    TenantPage,
    TenantSnapshot,
)

__all__ = [
    # Config
    "SubfolioConfig",
    # Exceptions
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
    # Types
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
