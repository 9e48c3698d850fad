"""
Custom Exception Classes for the Sankshep Client

This module defines custom exceptions for better error handling and
categorization of failures across the application.
"""


class SankshepError(Exception):
    """Base exception for all Sankshep client errors."""
    pass


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(SankshepError):
    """Raised when configuration validation fails or required settings are missing."""
    pass


# =============================================================================
# Feed Errors
# =============================================================================

class FeedError(SankshepError):
    """Base exception for feed acquisition errors."""
    pass


class UpstreamUnavailableError(FeedError):
    """Raised when the publishing API returns a non-success status or cannot be reached."""

    def __init__(self, message: str, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class CategoryNotFoundError(FeedError):
    """Raised when the requested category is missing from the category list."""
    pass


# =============================================================================
# Content Errors
# =============================================================================

class ContentError(SankshepError):
    """Base exception for content normalization errors."""
    pass


class InvalidUrlError(ContentError):
    """Raised when an outbound source link fails URL validation."""
    pass


# =============================================================================
# Identity Errors
# =============================================================================

class IdentityError(SankshepError):
    """Base exception for identity store errors."""
    pass


class AuthenticationError(IdentityError):
    """Raised when the identity provider rejects a sign-in or sign-up."""
    pass


class ProfileNotFoundError(IdentityError):
    """Raised when a signed-in user has no profile record."""
    pass


class ValidationError(IdentityError):
    """Raised when sign-up input is incomplete or inconsistent."""
    pass


class PersistenceError(IdentityError):
    """Base exception for persisted key-value store errors."""
    pass


class PersistenceReadError(PersistenceError):
    """Raised when the persisted role cannot be read."""
    pass


class PersistenceWriteError(PersistenceError):
    """Raised when the persisted role cannot be written or removed."""
    pass
