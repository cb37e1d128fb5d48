"""Execution of pending actions against the destination, with retries."""

import errno
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .config import WatchOptions
from .exceptions import DestinationError
from .models import ActionKind, CopyEvent, EventType, RemoveEvent, WatchErrorEvent

logger = logging.getLogger(__name__)

# Vanished files and OS-level locks (anti-virus, indexers).
TRANSIENT_ERRNOS = frozenset({errno.ENOENT, errno.EPERM, errno.EACCES, errno.EBUSY})


def is_transient_error(error: Optional[BaseException]) -> bool:
    """Check whether an error is worth retrying."""
    return isinstance(error, OSError) and error.errno in TRANSIENT_ERRNOS


@dataclass(frozen=True)
class ActionResult:
    """
    Outcome of one action.

    Attributes:
        path: Normalized source path
        kind: The action that was executed
        destination: Destination path, None if it could not be computed
        skipped: True if the path is outside the destination's scope
        error: The failure, if any
    """
    path: str
    kind: ActionKind
    destination: Optional[str] = None
    skipped: bool = False
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RetryCounters:
    """Consecutive transient failures per path."""

    def __init__(self):
        self._counts: Dict[str, int] = {}
        self._lock = threading.Lock()

    def get(self, path: str) -> int:
        with self._lock:
            return self._counts.get(path, 0)

    def increment(self, path: str) -> int:
        with self._lock:
            count = self._counts.get(path, 0) + 1
            self._counts[path] = count
            return count

    def reset(self, path: str) -> None:
        with self._lock:
            self._counts.pop(path, None)

    def clear(self) -> None:
        with self._lock:
            self._counts.clear()

    def __contains__(self, path: str) -> bool:
        with self._lock:
            return path in self._counts

    def __len__(self) -> int:
        with self._lock:
            return len(self._counts)


class SyncExecutor:
    """
    Applies queued actions to the destination tree.

    Actions run on a bounded thread pool. Results are settled by the caller
    (the watcher's coordinator) in queue order: successes are published as
    ``copy``/``remove`` events, transient failures are re-queued until the
    retry ceiling, everything else is published as ``watch-error``.
    """

    def __init__(
        self,
        options: WatchOptions,
        emit: Callable[[EventType, object], object],
        max_workers: int = 5,
        max_retries: int = 10,
    ):
        """
        Initialize the executor.

        Args:
            options: Watch options providing translation and collaborators
            emit: Publishes an event, e.g. ``EventEmitter.emit``
            max_workers: Maximum actions in flight at once
            max_retries: Consecutive transient failures tolerated per path
        """
        self.options = options
        self.emit = emit
        self.max_retries = max_retries
        self.retry_counters = RetryCounters()
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="globsync-sync")

    def execute(self, path: str, kind: ActionKind) -> ActionResult:
        """
        Run one action synchronously. Never raises.

        Args:
            path: Normalized source path
            kind: Action to apply

        Returns:
            The outcome
        """
        try:
            destination = self.options.translate(path)
        except Exception as e:
            error = DestinationError(f"Cannot compute destination of {path}: {e}")
            error.__cause__ = e
            return ActionResult(path, kind, error=error)

        if destination == path:
            return ActionResult(path, kind, destination, skipped=True)

        try:
            if kind is ActionKind.REMOVE:
                self.options.remove(destination)
            else:
                self.options.copy(path, destination, self.options.copy_options)
        except Exception as e:
            return ActionResult(path, kind, destination, error=e)

        return ActionResult(path, kind, destination)

    def submit(self, path: str, kind: ActionKind) -> "Future[ActionResult]":
        """Run one action on the pool."""
        return self._pool.submit(self.execute, path, kind)

    def run_round(
        self,
        entries: Sequence[Tuple[str, ActionKind]],
        on_complete: Callable[[List[ActionResult]], None],
    ) -> bool:
        """
        Run a batch of actions and report once all of them have settled.

        Actions are submitted in order. ``on_complete`` is called with the
        results in the same order, on the thread that finished last.

        Returns:
            False if the pool is shut down; ``on_complete`` is not called then
        """
        if not entries:
            on_complete([])
            return True

        results: List[Optional[ActionResult]] = [None] * len(entries)
        remaining = [len(entries)]
        lock = threading.Lock()

        def settle(index: int, future: "Future[ActionResult]") -> None:
            if future.cancelled():
                path, kind = entries[index]
                result = ActionResult(path, kind, error=RuntimeError("action cancelled"))
            else:
                result = future.result()
            with lock:
                results[index] = result
                remaining[0] -= 1
                done = remaining[0] == 0
            if done:
                on_complete(list(results))

        futures = []
        try:
            for path, kind in entries:
                futures.append(self.submit(path, kind))
        except RuntimeError:
            logger.debug("Executor shut down while submitting a round")
            for future in futures:
                future.cancel()
            return False

        for index, future in enumerate(futures):
            future.add_done_callback(lambda f, i=index: settle(i, f))
        return True

    def settle(self, result: ActionResult, requeue: Callable[[str, ActionKind], bool]) -> bool:
        """
        Publish the outcome of a watch-triggered action.

        Args:
            result: The outcome
            requeue: Puts a failed action back into the pending queue

        Returns:
            True if the action was scheduled for a retry
        """
        if result.skipped:
            return False

        if result.ok:
            self.retry_counters.reset(result.path)
            self._emit_success(result)
            return False

        attempts = self.retry_counters.get(result.path)
        if is_transient_error(result.error) and attempts < self.max_retries:
            if not requeue(result.path, result.kind):
                logger.debug(f"Not retrying {result.path}: a newer action is pending")
                self.retry_counters.reset(result.path)
                return False
            self.retry_counters.increment(result.path)
            logger.warning(
                f"Retrying {result.kind.value} of {result.path} "
                f"({attempts + 1}/{self.max_retries}): {result.error}"
            )
            return True

        self.retry_counters.reset(result.path)
        self._emit_failure(result)
        return False

    def settle_initial(self, result: ActionResult) -> None:
        """Publish the outcome of an initial copy. Initial copies are never retried."""
        if result.skipped:
            return
        if result.ok:
            self._emit_success(result)
        else:
            self._emit_failure(result)

    def _emit_success(self, result: ActionResult) -> None:
        if result.kind is ActionKind.REMOVE:
            logger.debug(f"Removed {result.destination}")
            self.emit(EventType.REMOVE, RemoveEvent(result.destination))
        else:
            logger.debug(f"Copied {result.path} -> {result.destination}")
            self.emit(EventType.COPY, CopyEvent(result.path, result.destination))

    def _emit_failure(self, result: ActionResult) -> None:
        logger.error(f"Failed to {result.kind.value} {result.path}: {result.error}")
        self.emit(EventType.WATCH_ERROR, WatchErrorEvent.from_exception(result.error, result.path))

    def shutdown(self, wait: bool = False) -> None:
        """Stop accepting actions and drop those not yet started."""
        self._pool.shutdown(wait=wait, cancel_futures=True)
        self.retry_counters.clear()
