"""
Input validators shared by schemas and services.
"""

import re
from urllib.parse import urlparse

from shared.config.constants import Limits

# Hosts that must never appear in stored image or logo URLs
BLOCKED_HOST_PREFIXES = (
    "localhost",
    "127.",
    "0.0.0.0",
    "10.",
    "192.168.",
    "169.254.",
    "[::1]",
    "metadata.google",
)

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def validate_image_url(url: str | None) -> str | None:
    """
    Validate an image/logo URL. Empty values become None.

    Raises:
        ValueError: If the URL is not http(s), has no host, points at an
            internal address or is too long.
    """
    if url is None:
        return None
    url = url.strip()
    if not url:
        return None

    parsed = urlparse(url)
    if parsed.scheme.lower() not in ("http", "https"):
        raise ValueError("Only HTTP/HTTPS URLs are allowed")

    host = parsed.netloc.lower()
    if not host:
        raise ValueError("URL has no host")
    if host.startswith(BLOCKED_HOST_PREFIXES):
        raise ValueError("Internal URLs are not allowed")

    if len(url) > Limits.MAX_URL_LENGTH:
        raise ValueError(f"URL too long (max {Limits.MAX_URL_LENGTH} characters)")

    return url


def normalize_notes(notes: str | None) -> str | None:
    """Strip notes; blank notes are the same as no notes."""
    if notes is None:
        return None
    notes = notes.strip()
    return notes or None


def validate_hhmm(value: str | None) -> str | None:
    """
    Validate a "HH:MM" 24h time string.

    Raises:
        ValueError: If malformed.
    """
    if value is None:
        return None
    if not _HHMM.match(value):
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    return value
