"""Per-browser session context, the confirmation gate and view-scoped resources."""

from __future__ import annotations

import enum
import logging
from threading import Lock
from typing import Any, Callable, Dict, Optional

from taskboard.backend.identity import IdentityService
from taskboard.backend.realtime import ChangeEvent, Subscription
from taskboard.errors import AuthRequiredFailure
from taskboard.models import Session

logger = logging.getLogger(__name__)

LOGIN = "login"
SIGNUP = "signup"
VERIFY = "verify"
TASKS = "tasks"
MARKDOWN_EDITOR = "markdown_editor"
HOME = "home"


class AuthState(enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    UNVERIFIED = "unverified"
    VERIFIED = "verified"


def auth_state_of(session: Optional[Session]) -> AuthState:
    if session is None:
        return AuthState.UNAUTHENTICATED
    if not session.is_confirmed:
        return AuthState.UNVERIFIED
    return AuthState.VERIFIED


# view -> {state: where to send that state instead}
_REDIRECTS: Dict[str, Dict[AuthState, str]] = {
    TASKS: {AuthState.UNAUTHENTICATED: LOGIN, AuthState.UNVERIFIED: VERIFY},
    VERIFY: {AuthState.UNAUTHENTICATED: LOGIN, AuthState.VERIFIED: TASKS},
    LOGIN: {AuthState.UNVERIFIED: VERIFY, AuthState.VERIFIED: TASKS},
    SIGNUP: {AuthState.UNVERIFIED: VERIFY, AuthState.VERIFIED: TASKS},
}


def redirect_for(state: AuthState, view: str) -> Optional[str]:
    """Return the view a session in ``state`` must be sent to, or None to stay."""
    return _REDIRECTS.get(view, {}).get(state)


class SessionContext:
    """Holds one browser's session from sign-in to sign-out.

    Pages receive the context explicitly. It listens for auth state changes
    from the backend; when one concerns this user the session is re-read on
    next access, so a sign-out or confirmation elsewhere is picked up.
    """

    def __init__(self, identity: IdentityService):
        self.identity = identity
        self._session: Optional[Session] = None
        self._dirty = False
        self._lock = Lock()
        self._watch: Optional[Subscription] = None

    def _on_auth_event(self, event: ChangeEvent) -> None:
        with self._lock:
            if self._session is not None and event.record_id == self._session.user_id:
                self._dirty = True

    @property
    def session(self) -> Optional[Session]:
        with self._lock:
            dirty, current = self._dirty, self._session
            self._dirty = False
        if dirty and current is not None:
            fresh = self.identity.get_session(current.access_token)
            with self._lock:
                if self._session is current:
                    self._session = fresh
            if fresh is None:
                logger.info("session for %s ended elsewhere", current.email)
                self._stop_watch()
        with self._lock:
            return self._session

    @property
    def state(self) -> AuthState:
        return auth_state_of(self.session)

    def establish(self, session: Session) -> None:
        with self._lock:
            self._session = session
            self._dirty = False
        if self._watch is None or not self._watch.active:
            self._watch = self.identity.on_auth_state_change(self._on_auth_event)

    def teardown(self) -> None:
        """Sign out and forget the session."""
        with self._lock:
            current, self._session = self._session, None
            self._dirty = False
        self._stop_watch()
        if current is not None:
            self.identity.sign_out(current.access_token)
            logger.info("signed out %s", current.email)

    def _stop_watch(self) -> None:
        if self._watch is not None:
            self._watch.unsubscribe()
            self._watch = None

    def require(self, state: AuthState = AuthState.VERIFIED) -> Session:
        """Return the session if it has reached ``state``, else raise AuthRequiredFailure."""
        session = self.session
        current = auth_state_of(session)
        if current == AuthState.UNAUTHENTICATED:
            raise AuthRequiredFailure(redirect_to=LOGIN)
        if state == AuthState.VERIFIED and current != AuthState.VERIFIED:
            raise AuthRequiredFailure("Email verification required", redirect_to=VERIFY)
        return session


class ViewResources:
    """Resources owned by one view, released when another view is entered.

    Each resource needs a ``stop()`` method.
    """

    def __init__(self) -> None:
        self.current_view: Optional[str] = None
        self._held: Dict[str, Dict[str, Any]] = {}

    def enter(self, view: str) -> None:
        if view == self.current_view:
            return
        for other in [v for v in self._held if v != view]:
            self.release(other)
        self.current_view = view

    def acquire(self, view: str, key: str, factory: Callable[[], Any]) -> Any:
        held = self._held.setdefault(view, {})
        if key not in held:
            held[key] = factory()
        return held[key]

    def release(self, view: str) -> None:
        for key, resource in self._held.pop(view, {}).items():
            resource.stop()
            logger.debug("released %s of view %s", key, view)

    def held(self, view: str) -> Dict[str, Any]:
        return dict(self._held.get(view, {}))
