"""
Input normalization helpers shared by routers and services.
"""

import re
from typing import Optional


def clean_optional_text(value: Optional[str]) -> Optional[str]:
    """
    Trim a free-text value; blank strings become None.

    Used for lots and override columns, where "" and NULL mean the same thing.
    """
    if value is None:
        return None
    value = value.strip()
    return value or None


def escape_like_pattern(value: str) -> str:
    """
    Escape special characters in LIKE patterns.

    SQL LIKE uses % and _ as wildcards. This function escapes them
    so user input matches literally.

    Args:
        value: The search string to escape

    Returns:
        The escaped string safe for use in LIKE patterns
    """
    if not value:
        return value

    # Escape the escape character first, then the wildcards
    value = value.replace("\\", "\\\\")
    value = value.replace("%", "\\%")
    value = value.replace("_", "\\_")
    return value


def sanitize_search_term(term: str, max_length: int = 100) -> str:
    """
    Sanitize search term for safe use in queries.

    Args:
        term: The search term to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized search term
    """
    if not term:
        return ""

    term = term.strip()

    if len(term) > max_length:
        term = term[:max_length]

    # Remove null bytes and other control characters
    term = re.sub(r"[\x00-\x1f\x7f-\x9f]", "", term)

    return term
