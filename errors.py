"""Backend failures surfaced to screens.

Every error carries a message that can be shown to the user as-is.
"""


class BackendError(Exception):
    default_message = "Something went wrong"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def __str__(self):
        return self.message


class AuthError(BackendError):
    """Bad credentials or an expired session. Requires signing in again."""

    default_message = "Authentication failed"


class PermissionDenied(BackendError):
    """A row-level policy blocked the read or write."""

    default_message = "You do not have permission to do that"


class AlreadyApplied(BackendError):
    default_message = "You have already applied for this position"


class NotFound(BackendError):
    default_message = "Not found"


class TransientError(BackendError):
    """The backend could not be reached. The user may retry manually."""

    default_message = "Network error, please try again"


class Cancelled(Exception):
    """The view that issued a fetch went away before the result arrived."""
