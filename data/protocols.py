"""
Data Layer Protocol Definitions

This module defines typing.Protocol interfaces for data layer operations.
These protocols enable dependency injection for persisted state,
making services testable without touching the filesystem.

Protocols defined:
- KeyValueStore: Interface for the persisted key-value slot(s)
"""

from typing import Protocol, Optional


class KeyValueStore(Protocol):
    """Protocol for a small persisted string key-value store.

    Implementations raise PersistenceReadError / PersistenceWriteError
    when the backing storage cannot be used.
    """

    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when the key is absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        ...

    def remove(self, key: str) -> None:
        """Delete a key. Removing an absent key is not an error."""
        ...
