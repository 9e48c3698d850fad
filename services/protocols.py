"""
Service Protocol Definitions

This module defines typing.Protocol interfaces for the collaborators used by the
Sankshep client core. These protocols enable loose coupling, dependency
injection, and easier testing.

Protocols defined:
- NavigationSink: Interface for the screen stack the core drives
- IdentityProvider: Interface for the authentication backend
- PublishingAPI: Interface for the read-only publishing endpoints
"""

from dataclasses import dataclass
from typing import Protocol, Optional, List, Dict, Any, Callable

from data.models import Screen


@dataclass(frozen=True)
class AuthUser:
    """Authenticated account as reported by the identity provider."""
    uid: str
    email: Optional[str] = None
    id_token: Optional[str] = None


AuthStateListener = Callable[[Optional[AuthUser]], None]
Unsubscribe = Callable[[], None]


class NavigationSink(Protocol):
    """Protocol defining the navigation operations the core may request.

    The core never assumes which concrete UI these map to.
    """

    def reset(self, screen: Screen) -> None:
        """Replace the entire history with a single entry."""
        ...

    def navigate(self, screen: Screen, params: Optional[Dict[str, Any]] = None) -> None:
        """Push a new entry."""
        ...

    def go_back(self) -> bool:
        """Pop the current entry. Returns False when already at the root."""
        ...


class IdentityProvider(Protocol):
    """Protocol defining the interface for an authentication backend.

    Implementations should provide methods for:
    - Email/password sign-in, account creation and sign-out
    - Push notification of auth-state changes
    - Reading and writing the signed-in user's profile record
    """

    def current_user(self) -> Optional[AuthUser]:
        """Return the signed-in account, or None."""
        ...

    def add_state_listener(self, listener: AuthStateListener) -> Unsubscribe:
        """Register a listener called with the current user on every auth-state change.

        Returns:
            A callable that removes the listener.
        """
        ...

    def sign_in_with_password(self, email: str, password: str) -> AuthUser:
        """Authenticate an existing account.

        Raises:
            AuthenticationError: If the credentials are rejected.
        """
        ...

    def create_user(self, email: str, password: str) -> AuthUser:
        """Create and sign in a new account.

        Raises:
            AuthenticationError: If the account cannot be created.
        """
        ...

    def sign_out(self) -> None:
        """Forget the current account."""
        ...

    def get_profile(self, user: AuthUser) -> Optional[Dict[str, Any]]:
        """Return the stored profile record for a user, or None."""
        ...

    def put_profile(self, user: AuthUser, record: Dict[str, Any]) -> None:
        """Store the profile record for a user."""
        ...


class PublishingAPI(Protocol):
    """Protocol defining the read-only publishing endpoints."""

    def get_categories(self) -> List[Dict[str, Any]]:
        """Return the complete category list.

        Raises:
            UpstreamUnavailableError: On network failure or non-success status.
        """
        ...

    def get_posts(self, category_id: int) -> List[Dict[str, Any]]:
        """Return posts in a category with embedded media metadata.

        Raises:
            UpstreamUnavailableError: On network failure or non-success status.
        """
        ...
