"""Per-request auth context.

The process-wide ``AuthService`` and ``Backend`` live in ``app.extensions``.
Each request gets its own ``AuthClient`` (backed by the cookie session),
``SessionResolver`` and ``CancelSignal``, kept on ``flask.g`` and torn down
when the request ends.
"""

from flask import current_app, g, redirect, session

from auth_client import AuthClient
from auth_state import SessionResolver
from loaders import CancelSignal
from route_guard import dashboard_for


def open_request_context():
    g.auth_client = AuthClient(current_app.extensions["auth"], session)
    g.resolver = SessionResolver(g.auth_client).start()
    g.cancel_signal = CancelSignal()


def close_request_context(exc=None):
    signal = g.pop("cancel_signal", None)
    if signal is not None:
        signal.cancel()
    resolver = g.pop("resolver", None)
    if resolver is not None:
        resolver.stop()
    g.pop("auth_client", None)


def auth_client():
    return g.auth_client


def auth_state():
    return g.resolver.state


def caller_id():
    user = auth_state().user
    return user.id if user is not None else None


def backend():
    return current_app.extensions["backend"].as_caller(caller_id())


def view_signal():
    return g.cancel_signal


def require_role(role):
    """Blueprint hook: only users with ``role`` may render the section."""

    def check():
        state = auth_state()
        if state.role is not role:
            return redirect(dashboard_for(state.role))
        return None

    return check
