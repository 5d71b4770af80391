"""
Custom Exceptions

This module defines the error taxonomy of the link service.

- ValidationError: bad input, rejected before anything is persisted
- ResolutionError: a short code that cannot be redirected (not found,
  expired or inactive); carries the code and a machine-readable reason
- DatabaseError: the store failed; surfaced to callers since the store
  is the source of truth

Cache failures have no exception here: they never leave the cache layer.
"""

from typing import Optional


class URLShortenerException(Exception):
    """Base exception for the link service."""
    pass


class ValidationError(URLShortenerException):
    """Raised when user input fails validation."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidURLError(ValidationError):
    """Raised when URL validation fails."""

    def __init__(self, url: str, reason: str = "Invalid URL format"):
        self.url = url
        self.reason = reason
        super().__init__(f"{reason}: {url}")


class InvalidAliasError(ValidationError):
    """Raised when a custom alias fails validation."""

    def __init__(self, alias: str, reason: str = "Invalid alias"):
        self.alias = alias
        self.reason = reason
        super().__init__(f"{reason}: '{alias}'")


class AliasAlreadyExistsError(InvalidAliasError):
    """Raised when a custom alias is already taken by an active link."""

    def __init__(self, alias: str):
        super().__init__(alias, reason="Custom alias already exists")


class ResolutionError(URLShortenerException):
    """Base class for short codes that cannot be resolved to a target URL."""

    reason = "NotFound"

    def __init__(self, short_code: str, message: str):
        self.short_code = short_code
        super().__init__(message)


class ShortCodeNotFoundError(ResolutionError):
    """Raised when a short code does not match any (active) record."""

    reason = "NotFound"

    def __init__(self, short_code: str):
        super().__init__(short_code, f"Short code '{short_code}' not found")


class LinkExpiredError(ResolutionError):
    """Raised when a link's expiry has passed."""

    reason = "Expired"

    def __init__(self, short_code: str):
        super().__init__(short_code, f"Short code '{short_code}' has expired")


class LinkInactiveError(ResolutionError):
    """Raised when a link has been deactivated."""

    reason = "Inactive"

    def __init__(self, short_code: str):
        super().__init__(short_code, f"Short code '{short_code}' is not active")


class DatabaseError(URLShortenerException):
    """Raised when database operations fail."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")


class ShortCodeConflictError(DatabaseError):
    """Raised when an insert violates the unique short code constraint."""

    def __init__(self, short_code: str, original_error: Optional[Exception] = None):
        self.short_code = short_code
        super().__init__(f"short code '{short_code}' already exists", original_error=original_error)
