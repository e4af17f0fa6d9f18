"""Utility functions — slug and icon validation, id generation, and DB compatibility."""

from subfolio.utils.db_compat import DbDialect, detect_dialect
from subfolio.utils.security import generate_id, mask_sensitive_data
from subfolio.utils.validation import (
    is_normalized_slug,
    is_valid_icon,
    normalize_slug,
    validate_slug,
)

__all__ = [
    # DB compatibility
    "DbDialect",
    "detect_dialect",
    # Security
    "generate_id",
    "mask_sensitive_data",
    # Validation
    "is_normalized_slug",
    "is_valid_icon",
    "normalize_slug",
    "validate_slug",
]
