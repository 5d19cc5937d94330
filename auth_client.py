import logging

from auth_state import AuthEvent, Role

logger = logging.getLogger(__name__)

TOKEN_KEY = "access_token"


class Subscription:
    def __init__(self, listeners, listener):
        self._listeners = listeners
        self._listener = listener

    def unsubscribe(self):
        if self._listener in self._listeners:
            self._listeners.remove(self._listener)


class AuthClient:
    """Per-browser view of the auth service.

    ``storage`` is a mapping that persists the access token between visits
    (the Flask cookie session); it is the only local state the client keeps.
    """

    def __init__(self, service, storage):
        self.service = service
        self.storage = storage
        self._listeners = []

    def on_auth_state_change(self, listener):
        self._listeners.append(listener)
        return Subscription(self._listeners, listener)

    def _emit(self, event, session):
        for listener in list(self._listeners):
            listener(event, session)

    def get_session(self):
        token = self.storage.get(TOKEN_KEY)
        if not token:
            return None

        session = self.service.get_session(token)
        if session is None:
            self.storage.pop(TOKEN_KEY, None)
            return None

        if self.service.needs_refresh(session):
            session = self.service.refresh_session(token)
            self.storage[TOKEN_KEY] = session.access_token
            logger.debug("Refreshed session for user %s", session.user_id)
            self._emit(AuthEvent.TOKEN_REFRESHED, session)
        return session

    def sign_up(self, email, password, role):
        session = self.service.sign_up(email, password, {"role": Role(role).value})
        self._store(session)
        self._emit(AuthEvent.SIGNED_IN, session)
        return session

    def sign_in(self, email, password):
        session = self.service.sign_in(email, password)
        self._store(session)
        self._emit(AuthEvent.SIGNED_IN, session)
        return session

    def sign_out(self):
        self.service.sign_out(self.storage.get(TOKEN_KEY))
        self.storage.pop(TOKEN_KEY, None)
        self._emit(AuthEvent.SIGNED_OUT, None)

    def _store(self, session):
        self.storage[TOKEN_KEY] = session.access_token
