"""Tests for event emitter module."""

import threading
import time

import pytest

from src.globsync.emitter import EventEmitter
from src.globsync.models import CopyEvent, EventType


@pytest.fixture
def emitter():
    emitter = EventEmitter()
    yield emitter
    emitter.close()


def wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class TestEventEmitter:
    """Tests for EventEmitter class."""

    def test_delivers_payload(self, emitter):
        received = []
        emitter.on(EventType.COPY, received.append)

        assert emitter.emit(EventType.COPY, CopyEvent("a/x.txt", "b/x.txt")) is True

        assert wait_until(lambda: received == [CopyEvent("a/x.txt", "b/x.txt")])

    def test_string_event_names(self, emitter):
        received = []
        emitter.on("watch-ready", received.append)

        emitter.emit(EventType.WATCH_READY)

        assert wait_until(lambda: received == [None])
        assert emitter.listener_count("watch-ready") == 1

    def test_unknown_event_name_rejected(self, emitter):
        with pytest.raises(ValueError):
            emitter.on("renamed", lambda payload: None)

    def test_delivery_is_ordered(self, emitter):
        received = []
        emitter.on(EventType.REMOVE, received.append)

        for i in range(50):
            emitter.emit(EventType.REMOVE, i)

        assert wait_until(lambda: len(received) == 50)
        assert received == list(range(50))

    def test_emit_does_not_run_listener_inline(self, emitter):
        release = threading.Event()
        emitter_thread = threading.current_thread()
        seen_threads = []

        def listener(payload):
            seen_threads.append(threading.current_thread())
            release.wait(2.0)

        emitter.on(EventType.COPY, listener)
        assert emitter.emit(EventType.COPY, "x") is True
        release.set()

        assert wait_until(lambda: len(seen_threads) == 1)
        assert seen_threads[0] is not emitter_thread

    def test_off(self, emitter):
        received = []
        emitter.on(EventType.COPY, received.append)

        assert emitter.off(EventType.COPY, received.append) is True
        assert emitter.off(EventType.COPY, received.append) is False

        emitter.emit(EventType.COPY, "x")
        time.sleep(0.1)
        assert received == []

    def test_failing_listener_does_not_block_others(self, emitter):
        received = []

        def failing(payload):
            raise RuntimeError("listener failure")

        emitter.on(EventType.COPY, failing)
        emitter.on(EventType.COPY, received.append)

        emitter.emit(EventType.COPY, "x")

        assert wait_until(lambda: received == ["x"])

    def test_no_delivery_after_close(self):
        emitter = EventEmitter()
        received = []
        emitter.on(EventType.COPY, received.append)

        emitter.close()

        assert emitter.closed is True
        assert emitter.emit(EventType.COPY, "x") is False
        time.sleep(0.1)
        assert received == []

    def test_close_with_drain_delivers_scheduled_events(self):
        emitter = EventEmitter()
        received = []
        gate = threading.Event()

        emitter.on(EventType.WATCH_READY, lambda payload: gate.wait(2.0))
        emitter.on(EventType.WATCH_ERROR, received.append)

        emitter.emit(EventType.WATCH_READY)
        emitter.emit(EventType.WATCH_ERROR, "setup failed")
        emitter.close(drain=True)
        gate.set()

        assert wait_until(lambda: received == ["setup failed"])

    def test_close_is_idempotent(self):
        emitter = EventEmitter()
        emitter.close()
        emitter.close()
        assert emitter.closed is True
