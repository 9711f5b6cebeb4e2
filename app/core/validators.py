"""
Input Validators

This module provides validation functions for the values a client can send
to the attribution endpoints.

Security Considerations:
- Link ids are parsed as UUIDs before any store lookup (no free-form ids reach SQL)
- Referrers must be absolute URLs so analytics never stores arbitrary text
- The client's network address is never taken from the request body
"""

import re
from typing import Optional
from urllib.parse import urlparse
from uuid import UUID

COUNTRY_CODE_LENGTH = 2
SESSION_ID_MAX_LENGTH = 255

_UUID_RE = re.compile(
    r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"
)


def parse_link_id(link_id: object) -> Optional[UUID]:
    """
    Parse a link id in canonical 8-4-4-4-12 hexadecimal UUID form.

    Hyphen-less, braced and ``urn:uuid:`` spellings are rejected so that a
    link has exactly one valid spelling in URLs.

    Args:
        link_id: Raw value from the path or request body

    Returns:
        The parsed UUID, or None if the value is not a canonical UUID
    """
    if isinstance(link_id, UUID):
        return link_id
    if not link_id or not isinstance(link_id, str):
        return None

    if not _UUID_RE.fullmatch(link_id):
        return None

    return UUID(link_id)


def is_valid_referrer(referrer: str) -> bool:
    """
    Check that a referrer is an absolute URL or the empty string.

    Any scheme is accepted (``android-app://`` referrers exist), but both a
    scheme and a network location are required.
    """
    if referrer == "":
        return True

    try:
        parsed = urlparse(referrer)
    except ValueError:
        return False

    return bool(parsed.scheme and parsed.netloc)


def normalize_referrer(referrer: Optional[str]) -> Optional[str]:
    """Return a header referrer if it is a non-empty absolute URL, None otherwise."""
    if not referrer or not is_valid_referrer(referrer):
        return None

    return referrer


def normalize_country_code(country: Optional[str]) -> Optional[str]:
    """
    Return the country code if it is exactly two characters, None otherwise.

    Used for the redirect query string, where a bad value is dropped rather
    than failing the redirect.
    """
    if country is None or len(country) != COUNTRY_CODE_LENGTH:
        return None

    return country
