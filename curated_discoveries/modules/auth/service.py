"""
Session/profile provider.

`SessionProvider` is the single source of truth for who is signed in and what
their profile row looks like. It wraps one Supabase client:

- `initialize()` subscribes to the client's auth event stream and restores any
  persisted session, then loads the matching profile.
- `sign_in`, `sign_up`, `sign_out` and `refresh_profile` change identity in
  response to direct calls.
- Auth events arriving outside those calls (token refresh, sign-out in another
  tab, user updates) re-derive the state the same way.

Each change produces a new immutable `SessionState` and is pushed to every
subscriber. `loading` covers session resolution and `profile_loading` covers
the profile fetch, so a consumer can see a session whose profile is not
loaded yet.

HTTP requests build a short-lived provider per request with
`restore_from_token`, which resolves the bearer token instead of a persisted
session.
"""

import hashlib
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from supabase import Client
from postgrest.exceptions import APIError

from curated_discoveries.core.exceptions import (
    AuthError, ConflictError, CuratedError, RemoteServiceError, ValidationError, map_remote_error
)
from curated_discoveries.core.validation import (
    normalize_email, normalize_full_name, normalize_username, validate_password
)
from curated_discoveries.modules.auth.schemas import (
    AuthSession, AuthUser, SessionState, SessionStatus, SignUpResult
)
from curated_discoveries.modules.profiles.schemas import ProfileResponse
from curated_discoveries.modules.profiles.service import ProfileService

logger = logging.getLogger(__name__)

Listener = Callable[[SessionState], None]

# In-memory cache for token -> user lookups to reduce Supabase auth calls (many parallel requests with same token)
_AUTH_USER_CACHE: Dict[str, Tuple[AuthUser, float]] = {}
_AUTH_CACHE_TTL_SEC = 60
_AUTH_CACHE_MAX_SIZE = 500

PROFILE_REFRESH_EVENTS = ("SIGNED_IN", "USER_UPDATED")


def clear_auth_cache():
    _AUTH_USER_CACHE.clear()


def _token_cache_key(access_token: str) -> str:
    return hashlib.sha256(access_token.encode()).hexdigest()


def evict_token(access_token: str):
    """Forget a cached token lookup so the next request re-checks it remotely"""
    _AUTH_USER_CACHE.pop(_token_cache_key(access_token), None)


class SessionProvider:
    def __init__(self, supabase: Client, admin_client: Optional[Client] = None):
        self.supabase = supabase
        self.admin_client = admin_client
        self.profiles = ProfileService(supabase)
        self._state = SessionState()
        self._listeners: List[Listener] = []
        self._subscription = None
        self._closed = False

    # -- read side -----------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def user(self) -> Optional[AuthUser]:
        return self._state.user

    @property
    def session(self) -> Optional[AuthSession]:
        return self._state.session

    @property
    def profile(self) -> Optional[ProfileResponse]:
        return self._state.profile

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def profile_loading(self) -> bool:
        return self._state.profile_loading

    @property
    def is_authenticated(self) -> bool:
        return self._state.user is not None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener for state changes. Returns the matching unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -- lifecycle -----------------------------------------------------------

    def initialize(self) -> SessionState:
        """Subscribe to auth events, then restore the persisted session and its profile."""
        self._set_state(status=SessionStatus.LOADING, loading=True, error=None)
        if self._subscription is None:
            self._subscription = self.supabase.auth.on_auth_state_change(self._on_auth_event)
        try:
            session = self.supabase.auth.get_session()
        except Exception as e:
            logger.error(f"Failed to restore session: {e}")
            return self._clear(error="Could not restore your session")
        return self._apply_session(session, refresh_profile=True)

    def restore_from_token(self, access_token: str, load_profile: bool = True) -> SessionState:
        """Bootstrap from a bearer token. Uses a short TTL cache to reduce auth API calls."""
        self._set_state(status=SessionStatus.LOADING, loading=True, error=None)
        user = self._resolve_token(access_token)
        session = AuthSession(access_token=access_token, user=user)
        self._set_state(
            status=SessionStatus.AUTHENTICATED,
            user=user,
            session=session,
            profile=None,
            loading=False,
        )
        if load_profile:
            self._load_profile(user.id)
        return self._state

    def close(self):
        """Stop reacting to auth events and drop listeners."""
        self._closed = True
        if self._subscription is not None:
            try:
                self._subscription.unsubscribe()
            except Exception as e:
                logger.warning(f"Failed to unsubscribe from auth events: {e}")
            self._subscription = None
        self._listeners.clear()

    # -- operations ----------------------------------------------------------

    def sign_in(self, email: str, password: str) -> SessionState:
        email = normalize_email(email)
        if not password:
            raise ValidationError("password", "Password is required")

        self._set_state(status=SessionStatus.LOADING, loading=True, error=None)
        try:
            response = self.supabase.auth.sign_in_with_password({
                "email": email,
                "password": password,
            })
        except Exception as e:
            error = self._auth_failure(e, "sign_in")
            self._settle_failure(error)
            raise error

        if not response.user or not response.session:
            error = AuthError()
            self._settle_failure(error)
            raise error

        logger.info(f"User {response.user.id} signed in")
        return self._apply_session(response.session, refresh_profile=False)

    def sign_up(self, email: str, password: str, full_name: str, username: str) -> SignUpResult:
        """Create the auth identity, then the profile row.

        When the profile insert fails the new identity is deleted again. If that
        compensating delete fails too, the identity is left for the
        reconciliation job.
        """
        email = normalize_email(email)
        validate_password(password)
        full_name = normalize_full_name(full_name)
        username = normalize_username(username)

        self._set_state(status=SessionStatus.LOADING, loading=True, error=None)
        try:
            if self.profiles.username_taken(username):
                raise ConflictError("Username already taken, please try another one", field="username")
            response = self.supabase.auth.sign_up({
                "email": email,
                "password": password,
                "options": {
                    "data": {
                        "full_name": full_name,
                        "username": username,
                    }
                },
            })
        except CuratedError as e:
            self._settle_failure(e)
            raise
        except Exception as e:
            error = self._auth_failure(e, "sign_up")
            self._settle_failure(error)
            raise error

        if not response.user:
            error = RemoteServiceError("sign_up")
            self._settle_failure(error)
            raise error

        user_id = str(response.user.id)
        try:
            profile = self.profiles.create_profile(user_id, username, full_name, email)
        except Exception as e:
            error = map_remote_error(e, "create_profile", "Username")
            logger.error(f"Profile creation failed for new identity {user_id}, rolling back")
            self.delete_identity(user_id)
            self._clear(error=error.message)
            raise error

        logger.info(f"User {user_id} signed up as {username}")
        if response.session:
            self._apply_session(response.session, refresh_profile=False, profile=profile)
        else:
            # email confirmation pending; no session until the link is followed
            self._clear()

        return SignUpResult(
            user_id=user_id,
            email=email,
            username=username,
            confirmation_required=response.session is None,
            profile=profile,
        )

    def sign_out(self) -> SessionState:
        """Invalidate the remote session and clear local identity state.

        Local state is cleared even when the remote call fails.
        """
        session = self._state.session
        self._set_state(status=SessionStatus.LOADING, loading=True, error=None)
        error = None
        try:
            if session is not None and session.refresh_token is None:
                # token-restored session: nothing persisted client-side, revoke by JWT
                self.supabase.auth.admin.sign_out(session.access_token)
            else:
                self.supabase.auth.sign_out()
        except Exception as e:
            logger.error(f"Remote sign out failed: {e}")
            error = "Sign out could not be confirmed with the server"
        if session is not None:
            evict_token(session.access_token)
            logger.info(f"User {session.user.id} signed out")
        return self._clear(error=error)

    def refresh_profile(self) -> Optional[ProfileResponse]:
        """Re-fetch the profile row for the current user, e.g. after they edit it."""
        user = self._state.user
        if user is None:
            return None
        self._load_profile(user.id)
        return self._state.profile

    def delete_identity(self, user_id: str) -> bool:
        """Delete an auth identity with the service role client. Returns False when it could not."""
        if self.admin_client is None:
            logger.error(f"No service role client configured; identity {user_id} left for reconciliation")
            return False
        try:
            self.admin_client.auth.admin.delete_user(user_id)
        except Exception as e:
            logger.error(f"Compensating delete failed for identity {user_id}: {e}; left for reconciliation")
            return False
        logger.info(f"Deleted identity {user_id} after failed sign up")
        return True

    # -- internals -----------------------------------------------------------

    def _on_auth_event(self, event: Any, session: Any):
        if self._closed:
            return
        event = getattr(event, "value", event)
        logger.debug(f"Auth event received: {event}")
        if event == "SIGNED_OUT":
            self._clear()
            return
        self._set_state(status=SessionStatus.LOADING, loading=True)
        try:
            self._apply_session(session, refresh_profile=event in PROFILE_REFRESH_EVENTS)
        except CuratedError as e:
            logger.error(f"Failed to apply auth event {event}: {e.message}")
            self._settle_failure(e)

    def _apply_session(
        self,
        session: Any,
        refresh_profile: bool,
        profile: Optional[ProfileResponse] = None,
    ) -> SessionState:
        if session is None or getattr(session, "user", None) is None:
            return self._clear()

        auth_session = session if isinstance(session, AuthSession) else AuthSession.from_supabase(session)
        user = auth_session.user
        previous = self._state.user
        if profile is None and previous is not None and previous.id == user.id:
            profile = self._state.profile

        self._set_state(
            status=SessionStatus.AUTHENTICATED,
            user=user,
            session=auth_session,
            profile=profile,
            loading=False,
        )
        if refresh_profile or profile is None:
            self._load_profile(user.id)
        return self._state

    def _load_profile(self, user_id: str):
        self._set_state(profile_loading=True)
        try:
            profile = self.profiles.find_profile(user_id)
        except CuratedError as e:
            logger.error(f"Error fetching profile for {user_id}: {e.message}")
            self._set_state(profile_loading=False)
            return
        # the user may have changed while the fetch was in flight
        if self._state.user is None or self._state.user.id != user_id:
            self._set_state(profile_loading=False)
            return
        self._set_state(profile=profile, profile_loading=False)

    def _resolve_token(self, access_token: str) -> AuthUser:
        cache_key = _token_cache_key(access_token)
        now = time.monotonic()
        if cache_key in _AUTH_USER_CACHE:
            user, expiry = _AUTH_USER_CACHE[cache_key]
            if now < expiry:
                return user
            del _AUTH_USER_CACHE[cache_key]
        try:
            response = self.supabase.auth.get_user(access_token)
        except Exception as e:
            logger.info(f"Token rejected: {e}")
            error = AuthError("Invalid or expired token")
            self._settle_failure(error)
            raise error
        if not response or not response.user:
            error = AuthError("Invalid or expired token")
            self._settle_failure(error)
            raise error
        user = AuthUser.from_supabase(response.user)
        if len(_AUTH_USER_CACHE) < _AUTH_CACHE_MAX_SIZE:
            _AUTH_USER_CACHE[cache_key] = (user, now + _AUTH_CACHE_TTL_SEC)
        return user

    def _auth_failure(self, exc: Exception, operation: str) -> CuratedError:
        if isinstance(exc, APIError):
            return map_remote_error(exc, operation, "Profile")
        message = str(exc).lower()
        logger.info(f"Auth {operation} rejected: {exc}")
        if "already registered" in message or "already exists" in message:
            return ConflictError("An account with this email already exists", field="email")
        if "not confirmed" in message:
            return AuthError("Please confirm your email before signing in")
        if "invalid" in message or "credentials" in message:
            return AuthError()
        if "password" in message:
            return ValidationError("password", "Password does not meet the requirements")
        return RemoteServiceError(operation)

    def _settle_failure(self, error: CuratedError):
        status = SessionStatus.AUTHENTICATED if self._state.user else SessionStatus.ANONYMOUS
        self._set_state(status=status, loading=False, profile_loading=False, error=error.message)

    def _clear(self, error: Optional[str] = None) -> SessionState:
        return self._set_state(
            status=SessionStatus.ANONYMOUS,
            user=None,
            session=None,
            profile=None,
            loading=False,
            profile_loading=False,
            error=error,
        )

    def _set_state(self, **changes) -> SessionState:
        self._state = self._state.model_copy(update=changes)
        state = self._state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Session listener failed")
        return state
