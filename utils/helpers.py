"""
Helper Utility Module

This module provides small helper functions used throughout the Sankshep client.
"""

from typing import Any


def safe_get(data: Any, *keys, default: Any = None) -> Any:
    """
    Safely get a value from nested dictionaries and lists.

    Args:
        data: The structure to search
        *keys: The keys (or list indexes) to follow
        default: Default value if a key doesn't exist

    Returns:
        The value at the specified keys or the default value
    """
    for key in keys:
        try:
            data = data[key]
        except (KeyError, TypeError, IndexError):
            return default
    return data
