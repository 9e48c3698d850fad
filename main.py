"""
Sankshep Client

This is the main entry point for the Sankshep client. It resolves the user's
session and role, routes to the matching home screen, and loads that role's
content feed from the publishing API, printing it as text.

Version: 1.0
"""

import sys
import argparse
import logging
from typing import List, Optional

from config import settings
from config.validators import validate_settings, get_config_summary
from data.models import FeedStatus, PostCard, Screen
from data.role_store import JsonFileStore
from services.category_resolver import CategoryResolver
from services.feed_service import FeedService
from services.firebase_provider import FirebaseIdentityProvider
from services.identity_service import IdentityService
from services.navigation import Navigator
from services.publishing_client import PublishingClient
from services.session_resolver import SessionResolver
from utils.exceptions import IdentityError, SankshepError
from utils.logger import get_logger, setup_file_logging

# Set up logging
logger = get_logger(__name__)

HOME_FEED_CATEGORIES = {
    Screen.DOCTOR_HOME: lambda: settings.DOCTOR_FEED_CATEGORY,
    Screen.NON_DOCTOR_HOME: lambda: settings.NON_DOCTOR_FEED_CATEGORY,
}


def render_cards(cards: List[PostCard]) -> str:
    """Format feed cards as plain text blocks."""
    blocks = []
    for card in cards:
        lines = [card.title, card.summary, f"Published on: {card.published_on.isoformat()}"]
        lines.append(f"Image: {card.media_url}" if card.has_image else "No image available")
        if card.can_open_source:
            lines.append(f"Source: {card.source_tag} <{card.source_url}>")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


class SankshepApp:
    """
    Headless client application.

    Wires the identity store, session resolver, and feed services together
    and runs one launch: resolve the session, then load the home feed.
    """

    def __init__(self, identity: Optional[IdentityService] = None,
                 publishing_client: Optional[PublishingClient] = None,
                 navigator: Optional[Navigator] = None,
                 validate: bool = True):
        """
        Initialize the application.

        Args:
            identity: Identity store, built from settings when omitted.
            publishing_client: Publishing API client, built from settings when omitted.
            navigator: Navigation sink, a fresh Navigator when omitted.
            validate: Whether to validate settings on startup.
        """
        if validate:
            validate_settings(require_identity=identity is None)

        self.identity = identity or IdentityService(
            FirebaseIdentityProvider(token_store=JsonFileStore(settings.AUTH_STATE_FILE)),
            JsonFileStore(settings.ROLE_STORE_FILE)
        )
        self.publishing_client = publishing_client or PublishingClient()
        self.navigator = navigator or Navigator()
        self.category_resolver = CategoryResolver(self.publishing_client)
        self.output: List[str] = []

    def feed_category_for(self, screen: Optional[Screen]) -> Optional[str]:
        category = HOME_FEED_CATEGORIES.get(screen)
        return category() if category else None

    def open_feed(self, category_name: str, refresh_passes: int = 0) -> FeedService:
        """Load a feed screen, applying any requested refreshes."""
        feed = FeedService(self.category_resolver, self.publishing_client, self.navigator)
        view_model = feed.fetch(category_name)
        for _ in range(refresh_passes):
            view_model = feed.refresh()
        if view_model.status is FeedStatus.FAILED:
            logger.error(f"Error: {view_model.error_message}")
        return feed

    def run(self, email: Optional[str] = None, password: Optional[str] = None,
            sign_out: bool = False, category: Optional[str] = None, refresh_passes: int = 0) -> bool:
        """
        Run one launch of the client.

        Args:
            email: Sign in with this account before loading the feed.
            password: Password for ``email``.
            sign_out: Sign out (clearing the stored role) first.
            category: Feed category override.
            refresh_passes: Number of refreshes after the first fetch.

        Returns:
            bool: True if a feed was loaded, False otherwise.
        """
        with SessionResolver(self.identity, self.navigator):
            try:
                if sign_out:
                    self.identity.sign_out()
                if email:
                    self.identity.sign_in(email, password or "")
            except IdentityError as e:
                logger.error(f"Identity error: {e}")
                return False

            screen = self.navigator.current
            category_name = category or self.feed_category_for(screen)
            if category_name is None:
                logger.warning(f"Routed to {screen.value if screen else 'nothing'}; sign-in required")
                return False

            feed = self.open_feed(category_name, refresh_passes)
            try:
                if feed.view_model.status is not FeedStatus.READY:
                    return False
                self.output.append(render_cards(feed.cards()))
                return True
            finally:
                feed.close()


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Sankshep Client')
    parser.add_argument('--log-file', type=str, default=None, help='Log file path')
    parser.add_argument('--log-level', type=str, choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        default='INFO', help='Logging level')
    parser.add_argument('--category', type=str, default=None,
                        help='Feed category to load instead of the role default')
    parser.add_argument('--sign-in', dest='email', type=str, default=None, help='Sign in with this email')
    parser.add_argument('--password', type=str, default=None, help='Password for --sign-in')
    parser.add_argument('--sign-out', action='store_true', help='Sign out and clear the stored role first')
    parser.add_argument('--refresh', type=int, default=0, help='Number of refreshes after the first fetch')
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point for the application."""
    # Parse command line arguments
    args = parse_arguments(argv)

    # Set up logging
    log_level = getattr(logging, args.log_level)
    setup_file_logging(args.log_file, log_level)

    logger.info("Starting Sankshep client")
    logger.debug(f"Configuration: {get_config_summary()}")

    try:
        app = SankshepApp()
        success = app.run(
            email=args.email,
            password=args.password,
            sign_out=args.sign_out,
            category=args.category,
            refresh_passes=max(args.refresh, 0),
        )
        for block in app.output:
            print(block)
        exit_code = 0 if success else 1

    except SankshepError as e:
        logger.error(f"Sankshep client error: {e}")
        exit_code = 2
    except Exception as e:
        logger.error(f"Unhandled exception in Sankshep client: {e}", exc_info=True)
        exit_code = 2

    logger.info(f"Sankshep client finished with exit code {exit_code}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
