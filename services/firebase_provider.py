"""
Firebase Identity Provider Module

This module implements the IdentityProvider protocol over Firebase's REST
endpoints: the Identity Toolkit for email/password accounts, the Secure Token
service for restoring a saved session, and the Realtime Database for the
/users/{uid} profile records.

When a token store is given, the refresh token of the signed-in user is kept
there (separate from the persisted role) so the next launch starts signed in.
"""

from typing import Any, Dict, List, Optional

import requests

from config import settings
from data.protocols import KeyValueStore
from services.protocols import AuthStateListener, AuthUser, Unsubscribe
from utils.exceptions import AuthenticationError, IdentityError, PersistenceError, PersistenceWriteError
from utils.logger import get_logger

logger = get_logger(__name__)

# Identity Toolkit error codes mapped to the messages shown to users
AUTH_ERROR_MESSAGES = {
    "EMAIL_NOT_FOUND": "There is no user record corresponding to this email.",
    "INVALID_PASSWORD": "The password is invalid.",
    "INVALID_LOGIN_CREDENTIALS": "The email or password is incorrect.",
    "USER_DISABLED": "The user account has been disabled.",
    "EMAIL_EXISTS": "The email address is already in use by another account.",
    "INVALID_EMAIL": "The email address is badly formatted.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts. Try again later.",
}

# Keys of the saved session in the token store
REFRESH_TOKEN_KEY = "refreshToken"
USER_ID_KEY = "uid"
EMAIL_KEY = "email"


class FirebaseIdentityProvider:
    """Email/password authentication and profile storage through Firebase REST APIs."""

    def __init__(self, api_key: Optional[str] = None, database_url: Optional[str] = None,
                 session: Optional[requests.Session] = None, toolkit_url: Optional[str] = None,
                 timeout: Optional[int] = None, token_store: Optional[KeyValueStore] = None,
                 secure_token_url: Optional[str] = None):
        """
        Initialize the provider.

        Args:
            api_key: Firebase web API key, defaults to settings.FIREBASE_API_KEY.
            database_url: Realtime Database root URL.
            session: Injected requests session (tests pass a mock).
            toolkit_url: Identity Toolkit root URL.
            timeout: Per-request timeout in seconds.
            token_store: Where the refresh token is saved between launches; the
                session is kept in memory only when omitted.
            secure_token_url: Secure Token service root URL.
        """
        self.api_key = api_key if api_key is not None else settings.FIREBASE_API_KEY
        self.database_url = (database_url if database_url is not None else settings.FIREBASE_DATABASE_URL).rstrip('/')
        self.toolkit_url = (toolkit_url or settings.IDENTITY_TOOLKIT_URL).rstrip('/')
        self.timeout = timeout or settings.HTTP_TIMEOUT
        self.session = session or requests.Session()
        self.secure_token_url = (secure_token_url or settings.SECURE_TOKEN_URL).rstrip('/')
        self.token_store = token_store
        self._user: Optional[AuthUser] = None
        self._listeners: List[AuthStateListener] = []

        if self.token_store is not None:
            self._restore_session()

    # -------------------------------------------------------------------------
    # Auth state
    # -------------------------------------------------------------------------

    def current_user(self) -> Optional[AuthUser]:
        return self._user

    def add_state_listener(self, listener: AuthStateListener) -> Unsubscribe:
        """Register a listener for later auth-state changes (not called on registration)."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_user(self, user: Optional[AuthUser]) -> None:
        self._user = user
        for listener in list(self._listeners):
            listener(user)

    # -------------------------------------------------------------------------
    # Saved session
    # -------------------------------------------------------------------------

    def _restore_session(self) -> None:
        """
        Exchange a saved refresh token for a fresh ID token.

        A rejected token is forgotten; a network failure keeps it for the next
        launch. Either way the provider starts signed out.
        """
        try:
            refresh_token = self.token_store.get(REFRESH_TOKEN_KEY)
            email = self.token_store.get(EMAIL_KEY)
        except PersistenceError as e:
            logger.warning(f"Saved session unreadable, starting signed out: {e}")
            return
        if not refresh_token:
            return

        try:
            response = self.session.post(
                f"{self.secure_token_url}/token",
                params={"key": self.api_key},
                data={"grant_type": "refresh_token", "refresh_token": refresh_token},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.warning(f"Could not reach the token service, starting signed out: {e}")
            return

        if not response.ok:
            logger.warning(f"Saved session rejected (status {response.status_code}), starting signed out")
            try:
                self._forget_session()
            except PersistenceWriteError as e:
                logger.error(f"Failed to clear rejected session: {e}")
            return

        try:
            data = response.json()
        except ValueError:
            logger.warning("Token service returned an unreadable response, starting signed out")
            return
        uid = data.get("user_id") if isinstance(data, dict) else None
        if not uid:
            logger.warning("Token service response did not include a user id, starting signed out")
            return

        self._user = AuthUser(uid=uid, email=email, id_token=data.get("id_token"))
        self._save_session(data.get("refresh_token") or refresh_token, self._user)
        logger.info(f"Restored Firebase session for {email or uid}")

    def _save_session(self, refresh_token: Optional[str], user: AuthUser) -> None:
        if self.token_store is None or not refresh_token:
            return
        try:
            self.token_store.set(REFRESH_TOKEN_KEY, refresh_token)
            self.token_store.set(USER_ID_KEY, user.uid)
            if user.email:
                self.token_store.set(EMAIL_KEY, user.email)
        except PersistenceWriteError as e:
            logger.warning(f"Session will not survive a restart: {e}")

    def _forget_session(self) -> None:
        if self.token_store is None:
            return
        for key in (REFRESH_TOKEN_KEY, USER_ID_KEY, EMAIL_KEY):
            self.token_store.remove(key)

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    def _accounts_call(self, action: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.toolkit_url}/accounts:{action}"
        try:
            response = self.session.post(url, params={"key": self.api_key}, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Network error during {action}: {e}")
            raise AuthenticationError(f"Unable to reach the sign-in service: {e}") from e

        if not response.ok:
            code = ""
            try:
                code = response.json().get("error", {}).get("message", "")
            except (ValueError, AttributeError):
                pass
            # Codes may carry a detail suffix, e.g. "TOO_MANY_ATTEMPTS_TRY_LATER : ..."
            code = code.split(" ")[0] if code else ""
            message = AUTH_ERROR_MESSAGES.get(code, f"Authentication failed ({code or response.status_code}).")
            logger.warning(f"{action} rejected: {code or response.status_code}")
            raise AuthenticationError(message)

        return response.json()

    def _user_from(self, data: Dict[str, Any]) -> AuthUser:
        uid = data.get("localId")
        if not uid:
            raise AuthenticationError("Authentication response did not include a user id.")
        return AuthUser(uid=uid, email=data.get("email"), id_token=data.get("idToken"))

    def sign_in_with_password(self, email: str, password: str) -> AuthUser:
        data = self._accounts_call("signInWithPassword", {
            "email": email, "password": password, "returnSecureToken": True
        })
        user = self._user_from(data)
        logger.info(f"Signed in to Firebase as {user.email}")
        self._save_session(data.get("refreshToken"), user)
        self._set_user(user)
        return user

    def create_user(self, email: str, password: str) -> AuthUser:
        data = self._accounts_call("signUp", {
            "email": email, "password": password, "returnSecureToken": True
        })
        user = self._user_from(data)
        logger.info(f"Created Firebase account {user.email}")
        self._save_session(data.get("refreshToken"), user)
        self._set_user(user)
        return user

    def sign_out(self) -> None:
        """
        Forget the saved session, then sign out.

        Raises:
            PersistenceWriteError: If the saved session cannot be removed; the
                user stays signed in.
        """
        if self._user is None:
            return
        self._forget_session()
        self._set_user(None)

    # -------------------------------------------------------------------------
    # Profiles
    # -------------------------------------------------------------------------

    def _profile_url(self, user: AuthUser) -> str:
        return f"{self.database_url}/users/{user.uid}.json"

    def _auth_params(self, user: AuthUser) -> Dict[str, str]:
        return {"auth": user.id_token} if user.id_token else {}

    def get_profile(self, user: AuthUser) -> Optional[Dict[str, Any]]:
        """
        Read /users/{uid}.

        Returns:
            Optional[Dict[str, Any]]: The record, or None when absent.

        Raises:
            IdentityError: If the database cannot be read.
        """
        try:
            response = self.session.get(self._profile_url(user), params=self._auth_params(user),
                                        timeout=self.timeout)
        except requests.RequestException as e:
            raise IdentityError(f"Failed to fetch user data: {e}") from e
        if not response.ok:
            raise IdentityError(f"Failed to fetch user data. Status: {response.status_code}")

        record = response.json()
        return record if isinstance(record, dict) else None

    def put_profile(self, user: AuthUser, record: Dict[str, Any]) -> None:
        """
        Write /users/{uid}.

        Raises:
            IdentityError: If the database rejects the write.
        """
        try:
            response = self.session.put(self._profile_url(user), params=self._auth_params(user),
                                        json=record, timeout=self.timeout)
        except requests.RequestException as e:
            raise IdentityError(f"Failed to update data: {e}") from e
        if not response.ok:
            raise IdentityError(f"Failed to update data. Status: {response.status_code}")
        logger.info(f"Stored profile for user {user.uid}")
