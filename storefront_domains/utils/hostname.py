"""Hostname normalization and validation utilities."""

import re
from typing import Tuple

# Alphanumeric labels with inner hyphens, ending in an alphabetic TLD
HOSTNAME_REGEX = re.compile(
    r"^(?:[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,63}$"
)


def normalize_hostname(value: str) -> str:
    """
    Normalize a user or request supplied hostname.

    Strips whitespace, lowercases and drops a single trailing root dot.

    Args:
        value: Raw hostname

    Returns:
        Normalized hostname (may be empty)
    """
    host = (value or "").strip().lower()
    if host.endswith("."):
        host = host[:-1]
    return host


def normalize_host_header(value: str) -> str:
    """
    Normalize a Host header or public identifier.

    Like normalize_hostname, but also removes a port suffix.

    Args:
        value: Raw Host header value or slug

    Returns:
        Normalized identifier
    """
    host = (value or "").strip()
    if ":" in host and not host.startswith("["):
        host = host.rsplit(":", 1)[0]
    return normalize_hostname(host)


def validate_hostname(hostname: str) -> Tuple[bool, str | None]:
    """
    Validate hostname format.

    Args:
        hostname: Already normalized hostname

    Returns:
        Tuple of (is_valid, error_message)
        If valid, error_message is None
    """
    if not hostname:
        return False, "Domain is required"

    if len(hostname) > 253:
        return False, "Domain is too long (max 253 characters)"

    if not HOSTNAME_REGEX.match(hostname):
        return False, "Invalid domain format"

    return True, None


def is_under_zone(hostname: str, zone: str) -> bool:
    """Check whether hostname equals zone or sits below it."""
    zone = normalize_hostname(zone)
    return hostname == zone or hostname.endswith(f".{zone}")
