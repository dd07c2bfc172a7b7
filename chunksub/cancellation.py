"""Cooperative cancellation flag shared between a run and its controller."""

import threading

from .exceptions import CancelledByUser


class CancellationToken:
    """Flag that can be set from another thread or a signal handler.

    The orchestrator only polls it at chunk boundaries; setting it never
    interrupts a provider call that is already in flight.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request that the run stops before its next chunk."""
        self._event.set()

    def reset(self) -> None:
        """Clear the flag so the token can guard a new run."""
        self._event.clear()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise ``CancelledByUser`` if cancellation was requested."""
        if self.cancelled:
            raise CancelledByUser("Caption generation cancelled by user")
