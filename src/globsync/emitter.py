"""Asynchronous publication of watcher events to subscribers."""

import logging
import threading
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Union

from .models import EventType

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


class EventEmitter:
    """
    Delivers events to listeners on a dedicated dispatcher thread.

    Delivery is ordered and never happens inside the ``emit()`` call. Once
    closed, no further event reaches a listener; events already scheduled
    are dropped unless the emitter was closed with ``drain=True``.
    """

    def __init__(self, thread_name: str = "globsync-events"):
        self._listeners: Dict[EventType, List[Listener]] = defaultdict(list)
        self._dispatcher = ThreadPoolExecutor(max_workers=1, thread_name_prefix=thread_name)
        self._closed = False
        self._draining = False
        self._lock = threading.Lock()

    def on(self, event: Union[EventType, str], listener: Listener) -> Listener:
        """
        Subscribe a listener.

        Args:
            event: EventType or its string value (e.g. ``"copy"``)
            listener: Called with the event payload

        Returns:
            The listener
        """
        with self._lock:
            self._listeners[EventType(event)].append(listener)
        return listener

    def off(self, event: Union[EventType, str], listener: Listener) -> bool:
        """
        Unsubscribe a listener.

        Returns:
            True if the listener was subscribed
        """
        with self._lock:
            listeners = self._listeners.get(EventType(event), [])
            if listener in listeners:
                listeners.remove(listener)
                return True
            return False

    def emit(self, event: EventType, payload: Any = None) -> bool:
        """
        Schedule delivery of an event.

        Returns:
            False if the emitter is closed
        """
        with self._lock:
            if self._closed:
                return False
            try:
                self._dispatcher.submit(self._deliver, event, payload)
            except RuntimeError:
                # Dispatcher already shut down
                return False
            return True

    def _deliver(self, event: EventType, payload: Any) -> None:
        with self._lock:
            if self._closed and not self._draining:
                return
            listeners = list(self._listeners.get(event, []))

        for listener in listeners:
            try:
                listener(payload)
            except Exception:
                logger.exception(f"Listener for {event.value!r} failed")

    def listener_count(self, event: Union[EventType, str]) -> int:
        with self._lock:
            return len(self._listeners.get(EventType(event), []))

    def close(self, drain: bool = False) -> None:
        """
        Stop accepting events.

        Args:
            drain: Deliver the events already scheduled instead of dropping them
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._draining = drain
        self._dispatcher.shutdown(wait=False, cancel_futures=not drain)

    @property
    def closed(self) -> bool:
        return self._closed
