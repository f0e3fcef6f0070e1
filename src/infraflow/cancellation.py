"""
Cooperative cancellation for long-running pipeline phases.

Any object with an ``is_set()`` method works as a token; a
``threading.Event`` is the usual choice. Phases poll the token between
steps and hand back what they have built so far instead of raising.
"""

from typing import Optional, Protocol


class CancelToken(Protocol):
    """Protocol for cancellation signals."""

    def is_set(self) -> bool:
        """Return True once cancellation has been requested."""
        ...


def is_cancelled(token: Optional[CancelToken]) -> bool:
    """Return True if a token was given and has been set."""
    return token is not None and token.is_set()
