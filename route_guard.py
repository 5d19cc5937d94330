"""Redirect decisions gating screens by auth status and role.

``decide`` is a pure function of the resolved auth state and the requested
path. It either allows the screen or names exactly one redirect target, and
every target it names is itself allowed for the same state.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Union

from auth_state import AuthStatus, Role

HOME = "/"
STUDENT_ROOT = "/student"
EMPLOYER_ROOT = "/employer"


class GuardState(Enum):
    LOADING = "loading"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED_NO_ROLE = "authenticated_no_role"
    AUTHENTICATED_STUDENT = "authenticated_student"
    AUTHENTICATED_EMPLOYER = "authenticated_employer"


@dataclass(frozen=True)
class Allow:
    pass


@dataclass(frozen=True)
class Redirect:
    target: str


Decision = Union[Allow, Redirect]


def guard_state(state) -> GuardState:
    if state.status is AuthStatus.LOADING:
        return GuardState.LOADING
    if state.status is AuthStatus.UNAUTHENTICATED:
        return GuardState.UNAUTHENTICATED
    if state.role is Role.STUDENT:
        return GuardState.AUTHENTICATED_STUDENT
    if state.role is Role.EMPLOYER:
        return GuardState.AUTHENTICATED_EMPLOYER
    return GuardState.AUTHENTICATED_NO_ROLE


def dashboard_for(role) -> str:
    if role is Role.STUDENT:
        return STUDENT_ROOT
    if role is Role.EMPLOYER:
        return EMPLOYER_ROOT
    return HOME


def _segments(path):
    return [segment for segment in (path or "").split("?", 1)[0].split("/") if segment]


def is_home(path):
    segments = _segments(path)
    return not segments or segments[0] == "index"


def is_login_page(path):
    segments = _segments(path)
    return bool(segments) and segments[0] == "login"


def in_section(path, section):
    segments = _segments(path)
    return bool(segments) and segments[0] == section


def decide(state, path) -> Decision:
    current = guard_state(state)

    if current is GuardState.LOADING:
        return Allow()

    if current is GuardState.UNAUTHENTICATED:
        if not is_login_page(path) and not is_home(path):
            return Redirect(HOME)
        return Allow()

    if is_login_page(path):
        return Redirect(dashboard_for(state.role))

    if current is GuardState.AUTHENTICATED_STUDENT and in_section(path, "employer"):
        return Redirect(STUDENT_ROOT)

    if current is GuardState.AUTHENTICATED_EMPLOYER and in_section(path, "student"):
        return Redirect(EMPLOYER_ROOT)

    return Allow()
