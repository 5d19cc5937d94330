import logging
from dataclasses import dataclass
from typing import Any, Optional

from errors import BackendError, Cancelled

logger = logging.getLogger(__name__)


class CancelSignal:
    """Cancellation flag tied to the lifetime of the view that fetches.

    The request teardown cancels it. Fetches run synchronously inside the
    request, so a cancelled signal is only observed by work that outlives
    the view, such as a fetch started with a signal from a finished request.
    """

    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def raise_if_cancelled(self):
        if self.cancelled:
            raise Cancelled()


@dataclass
class Loaded:
    data: Any
    error: Optional[str] = None


def load(fetch, *args, default=None, fallback="Failed to load data", **kwargs) -> Loaded:
    """Run a backend fetch for a screen.

    Failures become a readable message in ``Loaded.error``; a fetch whose
    view was cancelled resolves to ``default`` with no error.
    """
    try:
        return Loaded(fetch(*args, **kwargs))
    except Cancelled:
        logger.debug("Discarding result of cancelled fetch %s", getattr(fetch, "__name__", fetch))
        return Loaded(default)
    except BackendError as e:
        logger.warning("%s: %s", fallback, e)
        return Loaded(default, str(e) or fallback)
