"""
Publishing Client Module

This module talks to the read-only publishing API (WordPress REST, wp/v2).
It fetches the category list and the posts of a category with their featured
media embedded in the same response.
"""

from typing import Any, Dict, List, Optional

import requests

from config import settings
from utils.exceptions import UpstreamUnavailableError
from utils.logger import get_logger

logger = get_logger(__name__)


class PublishingClient:
    """HTTP client for the publishing API."""

    def __init__(self, base_url: Optional[str] = None, session: Optional[requests.Session] = None,
                 timeout: Optional[int] = None):
        """
        Initialize the publishing client.

        Args:
            base_url: API root, defaults to settings.PUBLISHING_API_BASE_URL.
            session: Injected requests session (tests pass a mock).
            timeout: Per-request timeout in seconds.
        """
        self.base_url = (base_url or settings.PUBLISHING_API_BASE_URL).rstrip('/')
        self.timeout = timeout or settings.HTTP_TIMEOUT
        self.session = session or requests.Session()
        self.session.headers.update(settings.REQUEST_HEADERS)

    def _get_json(self, path: str, what: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        url = f"{self.base_url}/{path}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Network error fetching {what}: {e}")
            raise UpstreamUnavailableError(f"Failed to fetch {what}. {e}") from e

        if not response.ok:
            logger.error(f"Publishing API returned {response.status_code} for {url}")
            raise UpstreamUnavailableError(
                f"Failed to fetch {what}. Status: {response.status_code}",
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Invalid JSON in {what} response: {e}")
            raise UpstreamUnavailableError(f"Failed to fetch {what}. Invalid response body.") from e

        if not isinstance(data, list):
            raise UpstreamUnavailableError(f"Failed to fetch {what}. Unexpected response shape.")
        return data

    def get_categories(self) -> List[Dict[str, Any]]:
        """
        Fetch the full category list in one request.

        Returns:
            List[Dict[str, Any]]: Raw category objects with at least ``id`` and ``name``.

        Raises:
            UpstreamUnavailableError: On network failure or non-success status.
        """
        categories = self._get_json("categories", "categories", params={"per_page": settings.CATEGORIES_PER_PAGE})
        logger.info(f"Fetched {len(categories)} categories")
        return categories

    def get_posts(self, category_id: int) -> List[Dict[str, Any]]:
        """
        Fetch the posts of one category with embedded media.

        Args:
            category_id: Numeric category identifier.

        Returns:
            List[Dict[str, Any]]: Raw post objects.

        Raises:
            UpstreamUnavailableError: On network failure or non-success status.
        """
        # ``_embed`` is a valueless flag; requests renders an empty value as "_embed="
        posts = self._get_json("posts", "posts", params={"_embed": "", "categories": category_id})
        logger.info(f"Fetched {len(posts)} posts for category {category_id}")
        return posts
