"""Timer-based debouncing of queue drains."""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Calls a function once a quiet period has elapsed since the last trigger.

    Every ``trigger()`` re-arms the timer, so a burst of triggers results in
    a single call. A timer that fires after it was superseded, cancelled or
    closed does nothing.
    """

    def __init__(self, callback: Callable[[], None], delay_ms: int = 100):
        """
        Initialize the debouncer.

        Args:
            callback: Function to call when the quiet period elapses
            delay_ms: Quiet period in milliseconds
        """
        self.callback = callback
        self.delay_ms = delay_ms
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._closed = False
        self._lock = threading.Lock()

    def trigger(self) -> bool:
        """
        (Re)arm the timer.

        Returns:
            False if the debouncer is closed
        """
        with self._lock:
            if self._closed:
                return False
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            timer = threading.Timer(self.delay_ms / 1000.0, self._fire, args=(self._generation,))
            timer.daemon = True
            self._timer = timer
            timer.start()
            return True

    def _fire(self, generation: int) -> None:
        with self._lock:
            if self._closed or self._timer is None or generation != self._generation:
                return
            self._timer = None
        try:
            self.callback()
        except Exception:
            logger.exception("Debounced callback failed")

    def cancel(self) -> bool:
        """
        Cancel a pending call.

        Returns:
            True if a call was pending
        """
        with self._lock:
            if self._timer is None:
                return False
            self._timer.cancel()
            self._timer = None
            self._generation += 1
            return True

    def close(self) -> None:
        """Cancel any pending call and refuse further triggers."""
        self.cancel()
        with self._lock:
            self._closed = True

    @property
    def pending(self) -> bool:
        """Whether a call is scheduled."""
        with self._lock:
            return self._timer is not None
