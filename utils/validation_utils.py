"""
utils/validation_utils.py

Purpose: Input validation

- Email and phone patterns for the user record
- Lenient integer parsing for query parameters
"""

import re
from typing import Optional

from utils.constants import MAX_PAGE


EMAIL_PATTERN = re.compile(r"\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,3})+", re.ASCII)
PHONE_PATTERN = re.compile(r"[0-9]{10,}")

# Same patterns for the MongoDB $jsonSchema validator (PCRE). "(?!\n)$" stops
# $ from matching before a trailing newline.
STORED_EMAIL_PATTERN = r"^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,3})+(?!\n)$"
STORED_PHONE_PATTERN = r"^[0-9]{10,}(?!\n)$"

LEADING_INT_PATTERN = re.compile(r"^\s*([+-]?\d+)")


def is_valid_email(email: str) -> bool:
    """
    Checks an (already lowercased) email against the accepted pattern.

    Example: jane.doe@example.com
    """
    if not email:
        return False
    return EMAIL_PATTERN.fullmatch(email) is not None


def is_valid_phone(phone: str) -> bool:
    """
    Phone numbers are digits only, at least 10 of them.
    """
    if not phone:
        return False
    return PHONE_PATTERN.fullmatch(phone) is not None


def parse_int(value: Optional[str]) -> Optional[int]:
    """
    Parses the leading integer of a query string value.

    "3" -> 3, "3abc" -> 3, "abc" -> None, None -> None

    Args:
        value: Raw query parameter

    Returns:
        Parsed integer or None when there is no leading integer
    """
    if value is None:
        return None

    match = LEADING_INT_PATTERN.match(value)
    if not match:
        return None
    try:
        return int(match.group(1))
    except ValueError:
        # more digits than int() will convert
        return None


def normalize_page(value: Optional[str], default: int = 1, maximum: int = MAX_PAGE) -> int:
    """
    Page number from a query value; anything missing or below 1 becomes `default`.

    Capped at `maximum` so the skip offset stays within a 64-bit integer.
    """
    page = parse_int(value)
    if page is None or page < 1:
        return default
    return min(page, maximum)


def normalize_limit(value: Optional[str], default: int, maximum: int) -> int:
    """
    Page size from a query value, falling back to `default` and clamped to `maximum`.
    """
    limit = parse_int(value)
    if limit is None or limit < 1:
        return default
    return min(limit, maximum)
