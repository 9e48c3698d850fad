"""
Configuration Validation for the Sankshep Client

This module contains configuration validation logic.
Kept apart from settings.py so settings stay a plain constants module.
"""

from urllib.parse import urlparse

from utils.exceptions import ConfigurationError


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value or "")
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_settings(require_identity: bool = True):
    """
    Validate that all required settings are properly configured.

    Args:
        require_identity: When False, the Firebase credentials are not required
            (feed-only runs).

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    # Import settings here to avoid circular imports
    from config import settings

    errors = []

    if not _is_http_url(settings.PUBLISHING_API_BASE_URL):
        errors.append(f"PUBLISHING_API_BASE_URL must be an http(s) URL, got {settings.PUBLISHING_API_BASE_URL!r}")

    if require_identity:
        required_vars = [
            ("FIREBASE_API_KEY", settings.FIREBASE_API_KEY),
            ("FIREBASE_DATABASE_URL", settings.FIREBASE_DATABASE_URL),
        ]
        for var_name, var_value in required_vars:
            if not var_value:
                errors.append(f"Missing required environment variable: {var_name}")

        if settings.FIREBASE_DATABASE_URL and not _is_http_url(settings.FIREBASE_DATABASE_URL):
            errors.append("FIREBASE_DATABASE_URL must be an http(s) URL")

    for name in ("DOCTOR_FEED_CATEGORY", "NON_DOCTOR_FEED_CATEGORY", "ROLE_STORAGE_KEY"):
        if not str(getattr(settings, name) or "").strip():
            errors.append(f"{name} must not be empty")

    # Validate numeric settings are within reasonable bounds
    numeric_validations = [
        ("SUMMARY_WORD_LIMIT", settings.SUMMARY_WORD_LIMIT, 1, 500),
        ("CATEGORIES_PER_PAGE", settings.CATEGORIES_PER_PAGE, 1, 100),
        ("HTTP_TIMEOUT", settings.HTTP_TIMEOUT, 1, 300),
    ]

    for name, value, min_val, max_val in numeric_validations:
        if value < min_val or value > max_val:
            errors.append(f"{name} must be between {min_val} and {max_val}, got {value}")

    # Raise all errors at once
    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigurationError(error_msg)

    return True


def get_config_summary() -> dict:
    """
    Returns a summary of current configuration (without sensitive values).
    Useful for logging startup state.
    """
    # Import settings here to avoid circular imports
    from config import settings

    return {
        "publishing_api": {
            "base_url": settings.PUBLISHING_API_BASE_URL,
            "timeout": settings.HTTP_TIMEOUT,
        },
        "feeds": {
            "doctor": settings.DOCTOR_FEED_CATEGORY,
            "non_doctor": settings.NON_DOCTOR_FEED_CATEGORY,
            "summary_words": settings.SUMMARY_WORD_LIMIT,
        },
        "identity": {
            "firebase_configured": bool(settings.FIREBASE_API_KEY and settings.FIREBASE_DATABASE_URL),
            "role_store": str(settings.ROLE_STORE_FILE),
            "auth_state": str(settings.AUTH_STATE_FILE),
        },
    }
