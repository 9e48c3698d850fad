"""
Feed Service Module

This module drives one feed screen: it resolves the feed's category, fetches
its posts, normalizes and shuffles them, and publishes the resulting
FeedViewModel to the screen. It also exposes the refresh and retry actions and
the guarded "open source" action.
"""

import random
from typing import Callable, List, Optional

from data.models import FeedViewModel, Post, PostCard, Screen
from services.category_resolver import CategoryResolver
from services.content_normalizer import normalize_post, shuffle_posts, to_card, validate_source_link
from services.protocols import NavigationSink, PublishingAPI, Unsubscribe
from utils.exceptions import FeedError, InvalidUrlError
from utils.logger import get_logger

logger = get_logger(__name__)

GENERIC_ERROR_MESSAGE = "Something went wrong"

FeedListener = Callable[[FeedViewModel], None]


class FeedService:
    """Fetches, normalizes and publishes a category feed."""

    def __init__(self, category_resolver: CategoryResolver, api: PublishingAPI,
                 navigator: Optional[NavigationSink] = None, rng: Optional[random.Random] = None,
                 summary_word_limit: Optional[int] = None):
        """
        Initialize the feed service.

        Args:
            category_resolver: Resolver shared across feed screens.
            api: Publishing API client.
            navigator: Navigation sink used by open_source.
            rng: Random source for shuffling (tests pass a seeded one).
            summary_word_limit: Override for card summaries.
        """
        self.category_resolver = category_resolver
        self.api = api
        self.navigator = navigator
        self.rng = rng
        self.summary_word_limit = summary_word_limit
        self._view_model = FeedViewModel.loading()
        self._listeners: List[FeedListener] = []
        self._category_name: Optional[str] = None
        self._generation = 0
        self._closed = False

    @property
    def view_model(self) -> FeedViewModel:
        return self._view_model

    @property
    def category_name(self) -> Optional[str]:
        return self._category_name

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: FeedListener) -> Unsubscribe:
        """Register a listener notified with every new view model."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, view_model: FeedViewModel) -> None:
        self._view_model = view_model
        for listener in list(self._listeners):
            listener(view_model)

    def _is_stale(self, token: int) -> bool:
        return self._closed or token != self._generation

    def _normalize(self, raw_posts) -> List[Post]:
        posts = []
        seen_ids = set()
        for raw in raw_posts:
            try:
                post = normalize_post(raw)
            except (ValueError, TypeError) as e:
                logger.warning(f"Skipping malformed post: {e}")
                continue
            if post.id in seen_ids:
                logger.warning(f"Skipping duplicate post id {post.id}")
                continue
            seen_ids.add(post.id)
            posts.append(post)
        return posts

    def _run(self, category_name: str, is_refreshing: bool) -> FeedViewModel:
        if self._closed:
            logger.debug("Ignoring fetch on a closed feed")
            return self._view_model

        self._generation += 1
        token = self._generation
        self._category_name = category_name
        fade_in_count = self._view_model.fade_in_count
        self._publish(FeedViewModel.loading(is_refreshing=is_refreshing, fade_in_count=fade_in_count))

        try:
            category_id = self.category_resolver.resolve_category_id(category_name)
            raw_posts = self.api.get_posts(category_id)
            posts = self._normalize(raw_posts)
        except FeedError as e:
            if self._is_stale(token):
                logger.debug(f"Dropping stale feed failure: {e}")
                return self._view_model
            logger.error(f"Feed fetch failed for {category_name!r}: {e}")
            self._publish(FeedViewModel.failed(str(e), fade_in_count=fade_in_count))
            return self._view_model
        except Exception as e:
            if self._is_stale(token):
                return self._view_model
            logger.error(f"Unexpected error fetching feed {category_name!r}: {e}", exc_info=True)
            self._publish(FeedViewModel.failed(GENERIC_ERROR_MESSAGE, fade_in_count=fade_in_count))
            return self._view_model

        if self._is_stale(token):
            logger.debug(f"Dropping stale feed result for {category_name!r}")
            return self._view_model

        shuffled = shuffle_posts(posts, self.rng)
        logger.info(f"Feed {category_name!r} ready with {len(shuffled)} posts")
        self._publish(FeedViewModel.ready(shuffled, fade_in_count=fade_in_count + 1))
        return self._view_model

    def fetch(self, category_name: str) -> FeedViewModel:
        """
        Load the feed for a category.

        Args:
            category_name: Human-readable category name.

        Returns:
            FeedViewModel: READY with shuffled posts, or FAILED with a message.
        """
        return self._run(category_name, is_refreshing=False)

    def refresh(self) -> FeedViewModel:
        """Re-run the last fetch, flagging the loading state as a refresh."""
        if self._category_name is None:
            logger.warning("Refresh requested before any fetch")
            return self._view_model
        return self._run(self._category_name, is_refreshing=True)

    def retry(self) -> FeedViewModel:
        """Manual retry after a failure; re-invokes fetch for the last category."""
        if self._category_name is None:
            logger.warning("Retry requested before any fetch")
            return self._view_model
        return self.fetch(self._category_name)

    def close(self) -> None:
        """Tear down the feed screen. Later fetch completions are ignored."""
        self._closed = True
        self._listeners.clear()
        logger.debug("Feed closed")

    def cards(self) -> List[PostCard]:
        """Render-ready cards for the posts currently displayed."""
        return [to_card(post, self.summary_word_limit) for post in self._view_model.posts]

    def open_source(self, post_id: int) -> bool:
        """
        Navigate to a post's source link in the source viewer.

        Returns:
            bool: True if navigation happened, False if the action is disabled
            (unknown post, missing or invalid link, no navigator).
        """
        post = next((p for p in self._view_model.posts if p.id == post_id), None)
        if post is None:
            logger.warning(f"Post {post_id} is not in the current feed")
            return False
        if self.navigator is None:
            logger.warning("No navigator attached; source link disabled")
            return False

        try:
            url = validate_source_link(post.source_url)
        except InvalidUrlError as e:
            logger.warning(f"Source link disabled for post {post_id}: {e}")
            return False

        self.navigator.navigate(Screen.SOURCE_VIEWER, {"url": url})
        return True
