"""
Session Resolver Module

Decides which screen the user lands on. It runs once when mounted and again on
every auth-state change pushed by the identity store, and applies its decision
as a navigation reset so the target becomes the only history entry.

When a newer resolution starts before an older one finishes, the older one is
discarded (last write wins). Nothing is applied after unmount.
"""

from typing import Optional

from data.models import Role, RouteDecision
from services.identity_service import IdentityService
from services.protocols import NavigationSink, Unsubscribe
from utils.logger import get_logger

logger = get_logger(__name__)


def decide_route(signed_in: bool, role: Optional[Role]) -> RouteDecision:
    """
    Map (signed_in, role) to a route.

    Anything other than a known role routes to Login; a role is never guessed.
    """
    if not signed_in:
        return RouteDecision.LOGIN
    if role is Role.DOCTOR:
        return RouteDecision.DOCTOR_HOME
    if role is Role.NON_DOCTOR:
        return RouteDecision.NON_DOCTOR_HOME
    return RouteDecision.LOGIN


class SessionResolver:
    """Routes the app according to session and persisted role."""

    def __init__(self, identity: IdentityService, navigator: NavigationSink):
        self.identity = identity
        self.navigator = navigator
        self._unsubscribe: Optional[Unsubscribe] = None
        self._generation = 0
        self._torn_down = False
        self.last_decision: Optional[RouteDecision] = None

    @property
    def mounted(self) -> bool:
        return self._unsubscribe is not None

    def mount(self) -> RouteDecision:
        """Subscribe to auth-state changes and resolve the current session."""
        self._torn_down = False
        if self._unsubscribe is None:
            self._unsubscribe = self.identity.on_session_change(self._on_session_change)
            logger.debug("Session resolver mounted")
        return self.resolve()

    def unmount(self) -> None:
        """Release the auth-state subscription. Pending resolutions are dropped."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
            self._generation += 1
            self._torn_down = True
            logger.debug("Session resolver unmounted")

    def __enter__(self):
        self.mount()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.unmount()
        return False

    def _on_session_change(self, session) -> None:
        logger.info(f"Auth state changed (signed_in={session.signed_in})")
        self.resolve()

    def _read_role(self) -> Optional[Role]:
        try:
            return self.identity.read_role()
        except Exception as e:
            logger.error(f"Error retrieving user role: {e}")
            return None

    def resolve(self) -> RouteDecision:
        """
        Decide the target screen and reset navigation to it.

        Returns:
            RouteDecision: The decision. If this resolution was superseded or the
            resolver was unmounted meanwhile, the decision is returned but not applied.
        """
        self._generation += 1
        token = self._generation

        session = self.identity.current_session(include_role=False)
        role = self._read_role() if session.signed_in else None
        decision = decide_route(session.signed_in, role)

        if token != self._generation or self._torn_down:
            logger.debug(f"Discarding superseded resolution ({decision.name})")
            return decision

        self.last_decision = decision
        self.navigator.reset(decision.screen)
        logger.info(f"Session resolved to {decision.screen.value}")
        return decision
