"""
Category Resolver Module

Maps a human-readable category name to the publishing API's numeric id.
The full category list is fetched in one call; successful lookups are
remembered for the life of the resolver.
"""

from typing import Dict, Optional

from data.models import Category
from services.protocols import PublishingAPI
from utils.exceptions import CategoryNotFoundError, UpstreamUnavailableError
from utils.logger import get_logger

logger = get_logger(__name__)


def category_not_found_message(name: str) -> str:
    label = name.strip()
    return f"{label[:1].upper()}{label[1:]} category not found."


class CategoryResolver:
    """Resolves category names against the publishing API."""

    def __init__(self, api: PublishingAPI):
        self.api = api
        self._cache: Dict[str, Category] = {}

    def resolve_category(self, name: str) -> Category:
        """
        Find a category by case-insensitive exact name match.

        Args:
            name: Category name, e.g. "doctor".

        Returns:
            Category: The matching category.

        Raises:
            UpstreamUnavailableError: If the category list cannot be fetched.
            CategoryNotFoundError: If no category has that name.
        """
        key = name.strip().casefold()
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        match: Optional[Category] = None
        for raw in self.api.get_categories():
            raw_name = raw.get('name') if isinstance(raw, dict) else None
            if isinstance(raw_name, str) and raw_name.strip().casefold() == key:
                raw_id = raw.get('id')
                if isinstance(raw_id, bool) or not isinstance(raw_id, (int, str)) or not str(raw_id).isdecimal():
                    logger.error(f"Category {raw_name!r} has an unusable id: {raw_id!r}")
                    raise UpstreamUnavailableError("Failed to fetch categories. Unexpected response shape.")
                match = Category(id=int(raw_id), name=raw_name)
                break

        if match is None:
            logger.warning(f"Category {name!r} not found in category list")
            raise CategoryNotFoundError(category_not_found_message(name))

        logger.info(f"Resolved category {name!r} to id {match.id}")
        self._cache[key] = match
        return match

    def resolve_category_id(self, name: str) -> int:
        """Return only the numeric id of the named category."""
        return self.resolve_category(name).id
