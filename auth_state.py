"""Session/role resolution.

A ``SessionResolver`` watches the auth client's session-change stream and
derives a coarse ``(status, role)`` pair from it. The role comes from the
metadata recorded at signup, so resolving it never needs a profile lookup.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from errors import BackendError

logger = logging.getLogger(__name__)


class AuthStatus(str, Enum):
    LOADING = "loading"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


class Role(str, Enum):
    STUDENT = "student"
    EMPLOYER = "employer"

    @classmethod
    def parse(cls, value) -> Optional["Role"]:
        try:
            return cls(value)
        except ValueError:
            return None


class AuthEvent(str, Enum):
    INITIAL_SESSION = "initial_session"
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"
    TOKEN_REFRESHED = "token_refreshed"


def role_of(session) -> Optional[Role]:
    if session is None:
        return None
    metadata = getattr(session.user, "user_metadata", None) or {}
    return Role.parse(metadata.get("role"))


@dataclass(frozen=True)
class AuthState:
    status: AuthStatus
    session: Any = None
    role: Optional[Role] = None
    error: Optional[str] = None

    @property
    def user(self):
        return self.session.user if self.session is not None else None

    @property
    def loading(self) -> bool:
        return self.status is AuthStatus.LOADING


class SessionResolver:
    def __init__(self, client):
        self.client = client
        self.session = None
        self.error = None
        self._loading = True
        self._active = True
        self._subscription = None

    def start(self):
        self.listen()
        self.initialize()
        return self

    def listen(self):
        if self._subscription is None:
            self._subscription = self.client.on_auth_state_change(self._on_auth_state_change)

    def initialize(self):
        """Fetch the initial session; failures are kept as a message, not retried."""
        try:
            session = self.client.get_session()
        except BackendError as e:
            if self._active:
                logger.warning("Auth initialization failed: %s", e)
                self.error = str(e) or "Auth initialization failed"
                self._loading = False
            return
        if self._active:
            self.session = session
            self._loading = False

    def stop(self):
        self._active = False
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def clear_error(self):
        self.error = None

    def _on_auth_state_change(self, event, session):
        if not self._active:
            return
        self.session = session
        self._loading = False
        if event in (AuthEvent.SIGNED_IN, AuthEvent.SIGNED_OUT):
            self.error = None
        logger.debug("Auth event %s, status now %s", event.value, self.status.value)

    @property
    def status(self) -> AuthStatus:
        if self._loading:
            return AuthStatus.LOADING
        if self.session is None:
            return AuthStatus.UNAUTHENTICATED
        return AuthStatus.AUTHENTICATED

    @property
    def role(self) -> Optional[Role]:
        return role_of(self.session)

    @property
    def state(self) -> AuthState:
        return AuthState(self.status, self.session, self.role, self.error)
