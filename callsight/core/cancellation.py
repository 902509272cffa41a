"""
Cooperative cancellation for batch runs.

The token is the only sleep primitive used by the pipeline, so every
suspension point can be interrupted by cancel().
"""

import logging
import threading

from ..exceptions import OperationCancelled

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    Thread-safe cancellation flag with an interruptible sleep.

    Usage:
        token = CancellationToken()
        worker = threading.Thread(target=orchestrator.run, args=(items,))
        ...
        token.cancel()
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        if not self._event.is_set():
            logger.info("Cancellation requested")
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled("Operation cancelled")

    def sleep(self, seconds: float) -> bool:
        """
        Wait for `seconds` unless cancelled first.

        Returns:
            True if the full delay elapsed, False if cancelled
        """
        if seconds <= 0:
            return not self._event.is_set()
        return not self._event.wait(timeout=seconds)
