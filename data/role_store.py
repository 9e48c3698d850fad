"""
Persisted State Module

This module stores the small amount of state that survives process restarts:
a JSON object on disk holding the user's role under a single key.
The authenticated session itself is persisted by the identity provider.
"""

import json
import os
from typing import Dict, Optional

from utils.exceptions import PersistenceReadError, PersistenceWriteError
from utils.logger import get_logger

logger = get_logger(__name__)


class JsonFileStore:
    """Key-value store backed by one JSON file."""

    def __init__(self, path: str):
        self.path = str(path)

    def _load(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceReadError(f"Cannot read persisted state {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise PersistenceReadError(f"Persisted state {self.path} is not a JSON object")
        return data

    def _save(self, data: Dict[str, str]) -> None:
        tmp_path = f"{self.path}.tmp"
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(data, f)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise PersistenceWriteError(f"Cannot write persisted state {self.path}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        value = self._load().get(key)
        if value is not None and not isinstance(value, str):
            raise PersistenceReadError(f"Persisted value for {key!r} is not a string")
        return value

    def set(self, key: str, value: str) -> None:
        try:
            data = self._load()
        except PersistenceReadError as e:
            # An unreadable file is replaced rather than blocking sign-in.
            logger.warning(f"Discarding unreadable persisted state: {e}")
            data = {}
        data[key] = value
        self._save(data)
        logger.debug(f"Persisted {key}")

    def remove(self, key: str) -> None:
        try:
            data = self._load()
        except PersistenceReadError as e:
            logger.warning(f"Discarding unreadable persisted state: {e}")
            data = {}
        if key in data:
            del data[key]
        self._save(data)
        logger.debug(f"Removed persisted {key}")


class MemoryStore:
    """In-process key-value store, used when nothing should touch disk."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)
