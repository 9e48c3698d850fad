"""
Identity Service Module

This module adapts the identity provider and the persisted role slot into the
Identity Store the rest of the client uses. It owns every write of the role:
sign-in and sign-up persist it, sign-out removes it.

Auth-state changes raised by the provider while a sign-in or sign-up is still
persisting the role are held back and delivered once the role is stored, so
subscribers never observe a signed-in user whose role is not yet written.
"""

from contextlib import contextmanager
from typing import Callable, List, Optional

from config import settings
from data.models import Role, Session, UserProfile
from data.protocols import KeyValueStore
from services.protocols import AuthUser, IdentityProvider, Unsubscribe
from utils.exceptions import (
    PersistenceError, PersistenceReadError, PersistenceWriteError, ProfileNotFoundError, ValidationError
)
from utils.logger import get_logger

logger = get_logger(__name__)

SessionListener = Callable[[Session], None]


def session_for(user: Optional[AuthUser], role: Optional[Role] = None) -> Session:
    if user is None:
        return Session.signed_out()
    return Session(signed_in=True, user_id=user.uid, email=user.email, role=role)


class IdentityService:
    """Identity Store: auth session plus the persisted role slot."""

    def __init__(self, provider: IdentityProvider, store: KeyValueStore, role_key: Optional[str] = None):
        self.provider = provider
        self.store = store
        self.role_key = role_key or settings.ROLE_STORAGE_KEY
        self._listeners: List[SessionListener] = []
        self._provider_unsubscribe: Optional[Unsubscribe] = None
        self._holding = 0
        self._held_change = False

    # -------------------------------------------------------------------------
    # Session stream
    # -------------------------------------------------------------------------

    def on_session_change(self, listener: SessionListener) -> Unsubscribe:
        """
        Subscribe to auth-state changes.

        The listener receives a Session without a role; readers that need the
        role call read_role(). The provider subscription is shared and released
        when the last listener unsubscribes.

        Returns:
            Unsubscribe: Callable releasing this listener.
        """
        self._listeners.append(listener)
        if self._provider_unsubscribe is None:
            self._provider_unsubscribe = self.provider.add_state_listener(self._on_provider_change)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
            if not self._listeners and self._provider_unsubscribe is not None:
                self._provider_unsubscribe()
                self._provider_unsubscribe = None

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _on_provider_change(self, user: Optional[AuthUser]) -> None:
        if self._holding:
            self._held_change = True
            return
        self._emit(session_for(user))

    def _emit(self, session: Session) -> None:
        for listener in list(self._listeners):
            listener(session)

    @contextmanager
    def _hold_changes(self):
        self._holding += 1
        try:
            yield
        finally:
            self._holding -= 1
            if not self._holding and self._held_change:
                self._held_change = False
                self._emit(session_for(self.provider.current_user()))

    def current_session(self, include_role: bool = True) -> Session:
        """Return the current session, including the role when asked and readable."""
        user = self.provider.current_user()
        if user is None:
            return Session.signed_out()
        if not include_role:
            return session_for(user)
        try:
            role = self.read_role()
        except PersistenceReadError as e:
            logger.warning(f"Role unavailable for current session: {e}")
            role = None
        return session_for(user, role)

    # -------------------------------------------------------------------------
    # Persisted slot
    # -------------------------------------------------------------------------

    def get_persisted(self, key: str) -> Optional[str]:
        try:
            return self.store.get(key)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceReadError(f"Failed to read {key!r}: {e}") from e

    def set_persisted(self, key: str, value: str) -> None:
        try:
            self.store.set(key, value)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceWriteError(f"Failed to write {key!r}: {e}") from e

    def remove_persisted(self, key: str) -> None:
        try:
            self.store.remove(key)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceWriteError(f"Failed to remove {key!r}: {e}") from e

    def read_role(self) -> Optional[Role]:
        """
        Read the persisted role.

        Returns:
            Optional[Role]: The role, Role.UNKNOWN for a garbled value, or None.

        Raises:
            PersistenceReadError: If the slot cannot be read.
        """
        return Role.parse(self.get_persisted(self.role_key))

    def _persist_role(self, role: Role) -> None:
        self.set_persisted(self.role_key, role.value)
        logger.info(f"Persisted role {role.value}")

    # -------------------------------------------------------------------------
    # Account flows
    # -------------------------------------------------------------------------

    def _abandon_sign_in(self, user: AuthUser) -> None:
        """
        Undo a half-finished sign-in: the provider is signed out and any role
        left by a previous account is cleared, so the held auth event resolves
        to Login. Cleanup failures are logged; the original error is re-raised
        by the caller.
        """
        logger.warning(f"Sign-in for user {user.uid} did not complete, signing out")
        try:
            self.remove_persisted(self.role_key)
        except PersistenceWriteError as e:
            logger.error(f"Failed to clear stale role: {e}")
        try:
            self.provider.sign_out()
        except PersistenceWriteError as e:
            logger.error(f"Failed to sign out after incomplete sign-in: {e}")

    def sign_in(self, email: str, password: str) -> Session:
        """
        Sign in and persist the role from the user's profile.

        Raises:
            AuthenticationError: If the credentials are rejected.
            ProfileNotFoundError: If the account has no profile record.
            PersistenceWriteError: If the role cannot be stored.
        """
        with self._hold_changes():
            user = self.provider.sign_in_with_password(email, password)
            try:
                record = self.provider.get_profile(user)
                if not record:
                    logger.warning(f"No profile record for user {user.uid}")
                    raise ProfileNotFoundError("User data not found.")

                role = Role.from_is_doctor(UserProfile.from_record(record).is_doctor)
                self._persist_role(role)
            except Exception:
                self._abandon_sign_in(user)
                raise

        logger.info(f"Signed in {email} as {role.value}")
        return session_for(user, role)

    def sign_up(self, profile: UserProfile, password: str, confirm_password: Optional[str] = None) -> Session:
        """
        Create an account, store its profile and persist the role.

        Raises:
            ValidationError: If passwords differ or a doctor has no place of practice.
            AuthenticationError: If the account cannot be created.
            PersistenceWriteError: If the role cannot be stored.
        """
        if confirm_password is not None and password != confirm_password:
            raise ValidationError("Passwords do not match!")
        if profile.is_doctor and not (profile.place_of_practice or "").strip():
            raise ValidationError("Please enter your place of practice.")

        with self._hold_changes():
            user = self.provider.create_user(profile.email, password)
            try:
                self.provider.put_profile(user, profile.to_record())
                role = Role.from_is_doctor(profile.is_doctor)
                self._persist_role(role)
            except Exception:
                self._abandon_sign_in(user)
                raise

        logger.info(f"Signed up {profile.email} as {role.value}")
        return session_for(user, role)

    def sign_out(self) -> None:
        """
        Clear the persisted role, then sign out.

        Raises:
            PersistenceWriteError: If the role cannot be removed; the user stays signed in.
        """
        try:
            self.remove_persisted(self.role_key)
        except PersistenceWriteError as e:
            logger.error(f"Failed to log out: {e}")
            raise
        self.provider.sign_out()
        logger.info("Signed out")
