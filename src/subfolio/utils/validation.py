"""Slug and icon validation utilities.

Every slug that reaches the tenant directory or a cache key passes through
these helpers first.

Security model
--------------
- Input length is capped *before* any regex runs to prevent ReDoS attacks
  on pathologically long strings.
- ``normalize_slug`` is lossy and used only on the read path, where any
  host label must map to *some* lookup key.  The write path uses
  ``validate_slug``, which rejects rather than corrects.
"""

from __future__ import annotations

import functools
import logging
import re

from subfolio.core.exceptions import InvalidInputError

logger = logging.getLogger(__name__)

################################
# Compiled regular expressions #
################################

# Anything that may not appear in a stored slug.
_SLUG_STRIP_RE = re.compile(r"[^a-z0-9-]")

# Hard cap applied before any regex to prevent ReDoS.
_MAX_INPUT_LEN: int = 512

#: Maximum slug length (one DNS label).
MAX_SLUG_LEN: int = 63

#: Maximum icon length in UTF-16 code units.
MAX_ICON_LEN: int = 10

# Pictographic code-point blocks.
_EMOJI_RANGES: tuple[tuple[int, int], ...] = (
    (0x00A9, 0x00A9),
    (0x00AE, 0x00AE),
    (0x203C, 0x203C),
    (0x2049, 0x2049),
    (0x2122, 0x2122),
    (0x2139, 0x2139),
    (0x2194, 0x21AA),
    (0x231A, 0x23FF),
    (0x24C2, 0x24C2),
    (0x25AA, 0x27BF),
    (0x2934, 0x2935),
    (0x2B05, 0x2B55),
    (0x3030, 0x3030),
    (0x303D, 0x303D),
    (0x3297, 0x3299),
    (0x1F000, 0x1FAFF),
)


@functools.lru_cache(maxsize=1)
def _emoji_pattern() -> re.Pattern[str]:
    """Compile the emoji pattern on first use."""
    body = "".join(
        re.escape(chr(lo)) if lo == hi else f"{re.escape(chr(lo))}-{re.escape(chr(hi))}"
        for lo, hi in _EMOJI_RANGES
    )
    return re.compile(f"[{body}]")


####################
# Slug validation  #
####################


def normalize_slug(value: str) -> str:
    """Lowercase *value* and drop every character outside ``[a-z0-9-]``.

    Idempotent: ``normalize_slug(normalize_slug(s)) == normalize_slug(s)``
    and any string already over ``[a-z0-9-]`` is returned unchanged.

    Examples::

        normalize_slug("Acme")       # "acme"
        normalize_slug("my_site!")   # "mysite"
        normalize_slug("acme-2")     # "acme-2"
    """
    return _SLUG_STRIP_RE.sub("", value.lower())


def is_normalized_slug(value: str) -> bool:
    """Return ``True`` if *value* is a storable slug.

    A storable slug equals its own normalisation and is 1-63 characters.
    """
    if not value or not isinstance(value, str):
        return False
    if len(value) > MAX_SLUG_LEN:
        return False
    return normalize_slug(value) == value


def validate_slug(value: str) -> str:
    """Return *value* unchanged if it is a storable slug, else raise.

    Raises:
        InvalidInputError: When *value* is empty, too long, or contains any
            character ``normalize_slug`` would change.

    Example::

        validate_slug("acme-corp")  # "acme-corp"
        validate_slug("Acme")       # raises InvalidInputError
    """
    if not value:
        raise InvalidInputError("Subdomain is required", field="slug")
    if len(value) > MAX_SLUG_LEN:
        raise InvalidInputError(
            f"Subdomain must be at most {MAX_SLUG_LEN} characters",
            field="slug",
            details={"length": len(value)},
        )
    if len(value) > _MAX_INPUT_LEN or normalize_slug(value) != value:
        raise InvalidInputError(
            "Subdomain can only have lowercase letters, numbers, and hyphens. "
            "Please try again.",
            field="slug",
        )
    return value


####################
# Icon validation  #
####################


def _icon_length(icon: str) -> int:
    """Length in UTF-16 code units, the unit browsers count form input in."""
    return len(icon.encode("utf-16-le")) // 2


def is_valid_icon(icon: str) -> bool:
    """Return ``True`` if *icon* is an acceptable tenant icon.

    Length is counted in UTF-16 code units, so an emoji outside the BMP
    costs two and a ZWJ family sequence such as 👨‍👩‍👧‍👦 costs eleven.

    Rules, in order:
        1. Empty or longer than 10 units → rejected.
        2. Contains an emoji → accepted.
        3. Otherwise any 1-10 unit string is accepted.  A pattern that
           cannot be compiled or evaluated is logged and falls through to
           this rule.

    Examples::

        is_valid_icon("🎨")           # True
        is_valid_icon("abc")          # True
        is_valid_icon("🎨" * 6)       # False
    """
    length = _icon_length(icon)
    if length < 1 or length > MAX_ICON_LEN:
        return False
    try:
        if _emoji_pattern().search(icon) is not None:
            return True
    except re.error:
        logger.warning("Emoji pattern unavailable; falling back to length-only icon check")
    return True


__all__ = [
    "MAX_ICON_LEN",
    "MAX_SLUG_LEN",
    "is_normalized_slug",
    "is_valid_icon",
    "normalize_slug",
    "validate_slug",
]
