"""
Input Validators and Sanitizers

This module provides validation and sanitization functions for user inputs.
Every check here runs before anything is persisted.

Security Considerations:
- Only http/https targets are accepted
- Script-injection patterns are rejected
- Internal/local targets are rejected in production
- Length limits prevent DoS attacks
"""

import ipaddress
import re
from typing import Optional
from urllib.parse import urlparse

from shortlink.core.exceptions import InvalidAliasError, InvalidURLError, ValidationError

MAX_URL_LENGTH = 2048
ALLOWED_SCHEMES = {"http", "https"}

MALICIOUS_PATTERNS = [
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"data:", re.IGNORECASE),
    re.compile(r"vbscript:", re.IGNORECASE),
    re.compile(r"onload=", re.IGNORECASE),
    re.compile(r"onerror=", re.IGNORECASE),
]

ALIAS_MIN_LENGTH = 3
ALIAS_MAX_LENGTH = 20
ALIAS_PATTERN = re.compile(r"^[a-zA-Z0-9-]+$")
RESERVED_ALIASES = frozenset({"api", "admin", "analytics", "health", "shorten", "redirect"})

# Redirect path segments: generated codes and aliases share this format
SHORT_CODE_PATTERN = re.compile(r"^[a-zA-Z0-9-]{3,20}$")


def _is_internal_host(hostname: str) -> bool:
    if hostname == "localhost" or hostname.endswith(".localhost"):
        return True
    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return (
        address.is_private
        or address.is_loopback
        or address.is_unspecified
        or address.is_link_local
    )


def validate_url(url: str, allow_internal: bool = True) -> str:
    """
    Validate a target URL for format and safety.

    Args:
        url: The URL string to validate
        allow_internal: Accept localhost/private-network hosts (disabled in production)

    Returns:
        The URL, unchanged

    Raises:
        InvalidURLError: With a reason naming the failed check
    """
    if not url or not isinstance(url, str):
        raise InvalidURLError(str(url), reason="URL is required")

    if len(url) > MAX_URL_LENGTH:
        raise InvalidURLError(url[:64] + "...", reason=f"URL exceeds {MAX_URL_LENGTH} characters")

    try:
        result = urlparse(url)
        hostname = result.hostname
        # Accessing .port validates the port component
        _ = result.port
    except ValueError:
        raise InvalidURLError(url, reason="Invalid URL format. Must include http:// or https://")

    if result.scheme.lower() not in ALLOWED_SCHEMES or not result.netloc or not hostname:
        raise InvalidURLError(url, reason="Invalid URL format. Must include http:// or https://")

    if hostname != "localhost" and "." not in hostname and ":" not in hostname:
        raise InvalidURLError(url, reason="Invalid URL format. Must include http:// or https://")

    if any(pattern.search(url) for pattern in MALICIOUS_PATTERNS):
        raise InvalidURLError(url, reason="URL contains potentially malicious content")

    if not allow_internal and _is_internal_host(hostname):
        raise InvalidURLError(url, reason="Local/internal URLs are not allowed in production")

    return url


def is_valid_url(url: str, allow_internal: bool = True) -> bool:
    """Boolean form of validate_url()."""
    try:
        validate_url(url, allow_internal=allow_internal)
    except InvalidURLError:
        return False
    return True


def validate_alias(alias: str) -> str:
    """
    Validate a user-supplied alias.

    Raises:
        InvalidAliasError: On length, character set or reserved-word violations
    """
    if not alias or not isinstance(alias, str):
        raise InvalidAliasError(str(alias), reason="Alias is required")

    if len(alias) < ALIAS_MIN_LENGTH or len(alias) > ALIAS_MAX_LENGTH:
        raise InvalidAliasError(
            alias,
            reason=f"Alias must be between {ALIAS_MIN_LENGTH} and {ALIAS_MAX_LENGTH} characters"
        )

    if not ALIAS_PATTERN.match(alias):
        raise InvalidAliasError(alias, reason="Alias can only contain letters, numbers, and hyphens")

    if alias.lower() in RESERVED_ALIASES:
        raise InvalidAliasError(alias, reason="This alias is reserved")

    return alias


def validate_expiration_days(expires_in_days: Optional[int]) -> Optional[int]:
    """Reject negative expiry offsets; None means the link never expires."""
    if expires_in_days is None:
        return None
    if isinstance(expires_in_days, bool) or not isinstance(expires_in_days, int) or expires_in_days < 0:
        raise ValidationError("Expiration must be a non-negative number of days")
    return expires_in_days


def sanitize_short_code(short_code: str) -> Optional[str]:
    """
    Sanitize and validate short code format.

    Short codes contain only letters, digits and hyphens and are 3-20
    characters long. Anything else cannot exist in the store.

    Args:
        short_code: The short code to sanitize

    Returns:
        Sanitized short code if valid, None otherwise
    """
    if not short_code or not isinstance(short_code, str):
        return None

    short_code = short_code.strip()

    if not SHORT_CODE_PATTERN.match(short_code):
        return None

    return short_code
