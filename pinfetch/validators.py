"""
Pinterest URL validation and parsing.

Accepted shapes:
  - https://pinterest.com/pin/123456/
  - https://www.pinterest.com/pin/123456/
  - https://pinterest.co.uk/pin/123456/   (and other country TLDs)
  - https://pin.it/AbCdEfG               (short links)
"""

import re
from typing import Any, Optional, Tuple

MAX_URL_LENGTH = 2048

PIN_URL_RE = re.compile(
    r"^https?://(www\.)?pinterest(\.[a-z]{2,3}){1,2}/pin/[a-zA-Z0-9_-]+/?(\?.*)?$"
)
SHORT_LINK_RE = re.compile(r"^https?://pin\.it/[a-zA-Z0-9_-]+/?(\?.*)?$")

SHORT_LINK_MARKER_RE = re.compile(r"pin\.it/", re.IGNORECASE)
PIN_ID_RE = re.compile(r"/pin/([a-zA-Z0-9_-]+)/?")

INVALID_URL_MESSAGE = (
    "Invalid Pinterest URL. Supported formats:\n"
    "  • https://pinterest.com/pin/<id>/\n"
    "  • https://www.pinterest.com/pin/<id>/\n"
    "  • https://pin.it/<shortcode>"
)


def validate_pinterest_url(url: Any) -> Tuple[Optional[str], Optional[str]]:
    """
    Validate a user-supplied URL.

    Returns (trimmed_url, None) when valid, (None, error_message) otherwise.
    """
    if not url or not isinstance(url, str):
        return None, 'Field "url" is required and must be a string.'

    trimmed = url.strip()
    if len(trimmed) > MAX_URL_LENGTH:
        return None, f"URL exceeds maximum length of {MAX_URL_LENGTH} characters."

    if not (PIN_URL_RE.match(trimmed) or SHORT_LINK_RE.match(trimmed)):
        return None, INVALID_URL_MESSAGE

    return trimmed, None


def is_short_link(url: str) -> bool:
    return bool(SHORT_LINK_MARKER_RE.search(url))


def extract_pin_id(url: str) -> Optional[str]:
    """
    Pull the pin identifier out of a canonical pin URL.
    e.g. https://www.pinterest.com/pin/774124931181173/ → "774124931181173"
    """
    match = PIN_ID_RE.search(url)
    return match.group(1) if match else None
