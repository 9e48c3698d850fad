"""
Shared Test Fixtures for the Sankshep Client

This module provides common fixtures used across all test modules.
Fixtures include mocks for settings, logging, HTTP responses, fake
collaborators (identity provider, publishing API), and payload factories.
"""

import pytest
from unittest.mock import MagicMock, patch
from typing import Optional, Dict, Any, List
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.protocols import AuthUser
from utils.exceptions import AuthenticationError, UpstreamUnavailableError


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture
def mock_settings():
    """
    Mock the settings module with test configuration values.

    This fixture patches the config.settings module with safe test values,
    preventing tests from reaching real endpoints or credentials.

    Returns:
        MagicMock: A mock settings object with default test values.
    """
    with patch('config.settings') as mock_settings_module:
        mock_settings_module.PUBLISHING_API_BASE_URL = "https://cms.example.com/wp-json/wp/v2"
        mock_settings_module.HTTP_TIMEOUT = 5
        mock_settings_module.CATEGORIES_PER_PAGE = 100
        mock_settings_module.DOCTOR_FEED_CATEGORY = "doctor"
        mock_settings_module.NON_DOCTOR_FEED_CATEGORY = "non doctor"
        mock_settings_module.SUMMARY_WORD_LIMIT = 60
        mock_settings_module.SUMMARY_ELLIPSIS = "..."
        mock_settings_module.ALLOWED_LINK_SCHEMES = ("http", "https")
        mock_settings_module.FIREBASE_API_KEY = "test-firebase-key"
        mock_settings_module.FIREBASE_DATABASE_URL = "https://test-project.firebaseio.com"
        mock_settings_module.IDENTITY_TOOLKIT_URL = "https://identitytoolkit.example.com/v1"
        mock_settings_module.SECURE_TOKEN_URL = "https://securetoken.example.com/v1"
        mock_settings_module.AUTH_STATE_FILE = "/tmp/test_auth_state.json"
        mock_settings_module.ROLE_STORAGE_KEY = "userRole"
        mock_settings_module.ROLE_STORE_FILE = "/tmp/test_persisted_state.json"
        mock_settings_module.USER_AGENT = "Test User Agent"
        mock_settings_module.REQUEST_HEADERS = {'User-Agent': 'Test User Agent'}
        yield mock_settings_module


# =============================================================================
# Logging Fixtures
# =============================================================================

@pytest.fixture
def capture_logs():
    """
    Capture log messages for assertion in tests.

    Records emitted by the application loggers propagate to the root logger,
    where this handler collects them.

    Returns:
        list: A list that will contain captured log records.
    """
    import logging

    class LogCapture(logging.Handler):
        def __init__(self):
            super().__init__()
            self.records = []

        def emit(self, record):
            self.records.append(record)

    handler = LogCapture()
    handler.setLevel(logging.DEBUG)

    root_logger = logging.getLogger()
    app_logger = logging.getLogger("sankshep")
    original_level = app_logger.level
    app_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(handler)

    yield handler.records

    root_logger.removeHandler(handler)
    app_logger.setLevel(original_level)


# =============================================================================
# HTTP Response Fixtures
# =============================================================================

@pytest.fixture
def mock_http_response():
    """
    Factory fixture for creating mock HTTP responses.

    Usage:
        def test_http_request(mock_http_response):
            response = mock_http_response(status_code=200, json_data=[{'id': 1}])

    Returns:
        callable: A factory function for creating mock responses.
    """
    def _create_response(
        status_code: int = 200,
        json_data: Any = None,
        headers: Optional[Dict[str, str]] = None,
        url: str = 'https://example.com'
    ) -> MagicMock:
        mock_response = MagicMock()
        mock_response.status_code = status_code
        mock_response.url = url
        mock_response.headers = headers or {'Content-Type': 'application/json'}
        mock_response.ok = 200 <= status_code < 300

        if json_data is not None:
            mock_response.json.return_value = json_data
        else:
            mock_response.json.side_effect = ValueError("No JSON data")

        return mock_response

    return _create_response


@pytest.fixture
def mock_session():
    """A MagicMock standing in for requests.Session."""
    session = MagicMock()
    session.headers = {}
    return session


# =============================================================================
# Payload Factories
# =============================================================================

@pytest.fixture
def category_payloads() -> List[Dict[str, Any]]:
    """Category list as returned by GET /categories."""
    return [
        {'id': 3, 'name': 'Uncategorized', 'slug': 'uncategorized'},
        {'id': 7, 'name': 'Doctor', 'slug': 'doctor'},
        {'id': 9, 'name': 'Non Doctor', 'slug': 'non-doctor'},
    ]


@pytest.fixture
def post_payload_factory():
    """
    Factory fixture for raw post payloads as returned by GET /posts?_embed.

    Returns:
        callable: Builds one post dict; pass media_url=None for no featured media.
    """
    def _create_post(
        post_id: int = 1,
        date: str = '2024-03-05T09:30:00',
        title: str = 'Turmeric &amp; Inflammation',
        excerpt: str = '<p>A short <strong>study</strong> summary.</p>\n',
        content: str = '<p>Full body.</p>',
        source_tag: Optional[str] = 'PubMed',
        source_link: Optional[str] = 'https://pubmed.ncbi.nlm.nih.gov/12345/',
        media_url: Optional[str] = 'https://cdn.example.com/img-300x200.jpg'
    ) -> Dict[str, Any]:
        post = {
            'id': post_id,
            'date': date,
            'title': {'rendered': title},
            'excerpt': {'rendered': excerpt},
            'content': {'rendered': content},
            'meta': {},
        }
        if source_tag is not None:
            post['meta']['Source_Tag'] = source_tag
        if source_link is not None:
            post['meta']['Source_Link'] = source_link
        if media_url is not None:
            post['_embedded'] = {
                'wp:featuredmedia': [
                    {'media_details': {'sizes': {'medium': {'source_url': media_url}}}}
                ]
            }
        return post

    return _create_post


@pytest.fixture
def post_payloads(post_payload_factory) -> List[Dict[str, Any]]:
    """Ten distinct post payloads."""
    return [post_payload_factory(post_id=i, title=f'Post {i}') for i in range(1, 11)]


# =============================================================================
# Fake Collaborators
# =============================================================================

class FakePublishingAPI:
    """
    In-memory PublishingAPI.

    Set ``categories_error`` / ``posts_error`` to an exception to simulate
    upstream failures; ``calls`` records the order of requests.
    """

    def __init__(self, categories=None, posts=None):
        self.categories = categories or []
        self.posts = posts or []
        self.categories_error = None
        self.posts_error = None
        self.calls = []

    def get_categories(self):
        self.calls.append(('categories',))
        if self.categories_error:
            raise self.categories_error
        return list(self.categories)

    def get_posts(self, category_id):
        self.calls.append(('posts', category_id))
        if self.posts_error:
            raise self.posts_error
        return list(self.posts)


@pytest.fixture
def fake_api(category_payloads, post_payloads):
    """FakePublishingAPI preloaded with categories and ten posts."""
    return FakePublishingAPI(categories=category_payloads, posts=post_payloads)


@pytest.fixture
def upstream_500():
    return UpstreamUnavailableError("Failed to fetch posts. Status: 500", status_code=500)


class FakeIdentityProvider:
    """
    In-memory IdentityProvider.

    Accounts are registered with ``add_account``; profiles live in ``profiles``.
    """

    def __init__(self):
        self._user = None
        self._listeners = []
        self.accounts = {}
        self.profiles = {}
        self.events = []

    def add_account(self, email, password, uid, profile=None):
        self.accounts[email] = (password, uid)
        if profile is not None:
            self.profiles[uid] = profile

    def current_user(self):
        return self._user

    def add_state_listener(self, listener):
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def listener_count(self):
        return len(self._listeners)

    def _set_user(self, user):
        self._user = user
        self.events.append(user)
        for listener in list(self._listeners):
            listener(user)

    def sign_in_with_password(self, email, password):
        account = self.accounts.get(email)
        if account is None or account[0] != password:
            raise AuthenticationError("The email or password is incorrect.")
        user = AuthUser(uid=account[1], email=email, id_token=f"token-{account[1]}")
        self._set_user(user)
        return user

    def create_user(self, email, password):
        if email in self.accounts:
            raise AuthenticationError("The email address is already in use by another account.")
        uid = f"uid-{len(self.accounts) + 1}"
        self.accounts[email] = (password, uid)
        user = AuthUser(uid=uid, email=email, id_token=f"token-{uid}")
        self._set_user(user)
        return user

    def sign_out(self):
        if self._user is not None:
            self._set_user(None)

    def get_profile(self, user):
        return self.profiles.get(user.uid)

    def put_profile(self, user, record):
        self.profiles[user.uid] = dict(record)


@pytest.fixture
def fake_provider():
    """FakeIdentityProvider with one doctor and one non-doctor account."""
    provider = FakeIdentityProvider()
    provider.add_account('doc@example.com', 'secret', 'uid-doc',
                         {'name': 'Dr. A', 'email': 'doc@example.com', 'isDoctor': True,
                          'placeOfPractice': 'Pune'})
    provider.add_account('reader@example.com', 'secret', 'uid-reader',
                         {'name': 'B', 'email': 'reader@example.com', 'isDoctor': False})
    provider.add_account('ghost@example.com', 'secret', 'uid-ghost')
    return provider


@pytest.fixture
def memory_store():
    from data.role_store import MemoryStore
    return MemoryStore()


@pytest.fixture
def identity(fake_provider, memory_store):
    from services.identity_service import IdentityService
    return IdentityService(fake_provider, memory_store, role_key='userRole')


@pytest.fixture
def navigator():
    from services.navigation import Navigator
    return Navigator()
