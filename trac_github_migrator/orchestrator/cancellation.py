"""Cooperative cancellation for long running migrations."""

import logging
import signal
import threading
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    A flag that a migration loop samples between units of work.

    Setting the token never interrupts work in progress; the loop decides
    when to look at it.
    """

    def __init__(self):
        self._event = threading.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = 'cancelled') -> None:
        """Request cancellation."""
        if not self._event.is_set():
            self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def install_signal_handlers(
        self,
        signals: Iterable[int] = (signal.SIGINT, signal.SIGTERM)
    ) -> None:
        """Route the given signals to cancel() instead of raising."""
        def _handler(signum, frame):
            name = signal.Signals(signum).name
            logger.warning(f"Received {name}. Finishing the current ticket and shutting down...")
            self.cancel(name)

        for signum in signals:
            signal.signal(signum, _handler)


__all__ = ['CancellationToken']
