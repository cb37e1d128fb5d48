"""Watcher orchestrator: keeps a destination tree in sync with a glob."""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, List, Optional, Tuple, Union

from .classifier import ChangeClassifier
from .config import SyncConfig, WatchOptions
from .debouncer import Debouncer
from .emitter import EventEmitter, Listener
from .exceptions import (
    WatchInstallError,
    WatchSetupError,
    WatcherAlreadyOpenError,
    WatcherClosedError,
)
from .executor import ActionResult, SyncExecutor
from .fs_watcher import DirectoryWatchPool
from .matcher import PathMatcher
from .models import (
    ActionKind,
    ClassifiedChange,
    EventType,
    RawFSEvent,
    WatchErrorEvent,
    WatcherState,
)
from .paths import normalize_path, parent_path
from .queue import PendingActionQueue
from .walker import walk

logger = logging.getLogger(__name__)


class Watcher:
    """
    Mirrors the files matched by a glob into a destination and keeps them live.

    State machine: UNOPENED -> OPENING -> READY <-> DRAINING -> CLOSED.

    Every mutation of the watch registry, the snapshots and the pending
    queue runs on one coordinator thread. The watchdog observer, the
    debounce timer and finished copies only submit work to it.

    Events (subscribe with ``on``): ``watch-ready``, ``copy``, ``remove``,
    ``watch-error``. They are delivered on a separate dispatcher thread and
    never after ``close()``.
    """

    def __init__(self, options: WatchOptions, config: Optional[SyncConfig] = None):
        """
        Initialize the watcher. Nothing is watched until ``open()``.

        Args:
            options: What to mirror and where
            config: Engine tunables
        """
        self.options = options
        self.config = config or SyncConfig()

        self._matcher = PathMatcher(options.source)
        self._classifier = ChangeClassifier(options.dereference)
        self._emitter = EventEmitter()
        self._queue = PendingActionQueue()

        self._coordinator: Optional[ThreadPoolExecutor] = None
        self._watches: Optional[DirectoryWatchPool] = None
        self._debouncer: Optional[Debouncer] = None
        self._executor: Optional[SyncExecutor] = None
        self._retry_timer: Optional[threading.Timer] = None

        self._state = WatcherState.UNOPENED
        self._state_lock = threading.Lock()
        self._installed = False
        self._became_ready = False
        self._initial_copy_count = 0
        self._ready_event = threading.Event()
        self._idle_event = threading.Event()

        self._dirty: set = set()
        self._dirty_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def on(self, event: Union[EventType, str], listener: Listener) -> Listener:
        """Subscribe a listener to ``watch-ready``, ``copy``, ``remove`` or ``watch-error``."""
        return self._emitter.on(event, listener)

    def off(self, event: Union[EventType, str], listener: Listener) -> bool:
        """Unsubscribe a listener."""
        return self._emitter.off(event, listener)

    def open(self) -> "Watcher":
        """
        Walk the base directory, install the watches and start mirroring.

        Returns once every directory is watched. Initial copies continue in
        the background; ``watch-ready`` fires when they have all settled.

        Returns:
            self

        Raises:
            WatcherClosedError: If the watcher was closed
            WatcherAlreadyOpenError: If open() was already called
            WatchSetupError: If the base directory cannot be walked
        """
        with self._state_lock:
            if self._state is WatcherState.CLOSED:
                raise WatcherClosedError("Watcher is closed")
            if self._state is not WatcherState.UNOPENED:
                raise WatcherAlreadyOpenError("Watcher is already open")
            self._state = WatcherState.OPENING

        logger.info(f"Opening watcher: {self.options.source} -> {self.options.out_dir}")

        self._coordinator = ThreadPoolExecutor(max_workers=1, thread_name_prefix="globsync-coordinator")
        self._watches = DirectoryWatchPool(self._on_raw_event, self.config.join_timeout_s)
        self._debouncer = Debouncer(self._on_debounce_timer, self.config.debounce_ms)
        self._executor = SyncExecutor(
            self.options,
            self._emitter.emit,
            max_workers=self.config.max_concurrency,
            max_retries=self.config.max_retries,
        )

        try:
            self._watches.start()
            self._coordinator.submit(self._open).result()
        except OSError as e:
            error = WatchSetupError(f"Cannot watch {self.options.base_dir}: {e}")
            logger.error(str(error))
            self._emitter.emit(EventType.WATCH_ERROR, WatchErrorEvent.from_exception(error, self.options.base_dir))
            self._close(drain_events=True)
            raise error from e

        return self

    def close(self) -> None:
        """
        Stop watching. Idempotent, callable from any state and any thread.

        Cancels the debounce timer and releases every directory watch even
        while a drain is running. Copies already in flight may complete, but
        no event is delivered after this returns.
        """
        self._close(drain_events=False)

    def wait_ready(self, timeout: Optional[float] = None) -> bool:
        """
        Block until ``watch-ready`` has been emitted.

        Returns:
            True if the watcher became ready, False on timeout or close
        """
        self._ready_event.wait(timeout)
        return self._became_ready and self._state is not WatcherState.CLOSED

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the pending queue has been fully drained.

        Returns:
            True if the watcher is idle, False on timeout or close
        """
        return self._idle_event.wait(timeout) and self._state is not WatcherState.CLOSED

    @property
    def state(self) -> WatcherState:
        return self._state

    @property
    def is_ready(self) -> bool:
        """Whether the watcher is operational (READY or DRAINING)."""
        return self._state in (WatcherState.READY, WatcherState.DRAINING)

    @property
    def is_idle(self) -> bool:
        """Whether the watcher is READY with nothing pending."""
        return self._state is WatcherState.READY and len(self._queue) == 0

    def watched_directories(self) -> List[str]:
        """Get the directories currently watched."""
        if self._watches is None:
            return []
        return self._watches.directories()

    def pending_actions(self) -> List[Tuple[str, ActionKind]]:
        """Get a copy of the pending queue in drain order."""
        return self._queue.items()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # ------------------------------------------------------------------
    # Coordination
    # ------------------------------------------------------------------

    def _is_closed(self) -> bool:
        return self._state is WatcherState.CLOSED

    def _set_state(self, state: WatcherState) -> bool:
        """Transition unless closed. Returns False if the watcher is closed."""
        with self._state_lock:
            if self._state is WatcherState.CLOSED:
                return False
            self._state = state
            return True

    def _submit(self, fn: Callable[..., Any], *args) -> Optional[Future]:
        """Run fn on the coordinator thread."""
        coordinator = self._coordinator
        if coordinator is None or self._is_closed():
            return None
        try:
            return coordinator.submit(self._run_guarded, fn, *args)
        except RuntimeError:
            # Coordinator shut down by close()
            return None

    def _run_guarded(self, fn: Callable[..., Any], *args) -> None:
        if self._is_closed():
            return
        try:
            fn(*args)
        except Exception as e:
            logger.exception(f"Unexpected error in {getattr(fn, '__name__', fn)}")
            self._report_error(e)

    def _report_error(self, error: BaseException, path: Optional[str] = None) -> None:
        if path:
            logger.error(f"Watch error at {path}: {error}")
        else:
            logger.error(f"Watch error: {error}")
        self._emitter.emit(EventType.WATCH_ERROR, WatchErrorEvent.from_exception(error, path))

    def _close(self, drain_events: bool) -> None:
        with self._state_lock:
            if self._state is WatcherState.CLOSED:
                return
            self._state = WatcherState.CLOSED

        logger.info(f"Closing watcher: {self.options.source}")

        if self._debouncer is not None:
            self._debouncer.close()
        retry_timer = self._retry_timer
        if retry_timer is not None:
            retry_timer.cancel()
        if self._watches is not None:
            released = self._watches.stop_all()
            logger.debug(f"Released {released} directory watch(es)")
        if self._executor is not None:
            self._executor.shutdown(wait=False)
        if self._coordinator is not None:
            self._coordinator.shutdown(wait=False, cancel_futures=True)
        self._emitter.close(drain=drain_events)

        self._queue.clear()
        self._ready_event.set()
        self._idle_event.set()

    # ------------------------------------------------------------------
    # Directory tracking (coordinator thread)
    # ------------------------------------------------------------------

    def _open(self) -> None:
        files, installed = self._add_directory(self.options.base_dir)
        # Catch entries created between the walk and the watch installation
        for directory in installed:
            self._refresh_directory(directory)
        self._installed = True

        if self.options.initial_copy:
            for path in files:
                self._initial_copy_count += 1
                future = self._executor.submit(path, ActionKind.ADD)
                future.add_done_callback(lambda f: self._submit(self._on_initial_copy_done, f))

        logger.info(
            f"Watching {len(self._watches)} directories under {self.options.base_dir} "
            f"({self._initial_copy_count} initial copies)"
        )
        self._emit_ready_if_ready()

    def _is_mirrored(self, path: str, is_directory: bool) -> bool:
        if is_directory and not self.options.include_empty_dirs:
            return False
        return self._matcher.matches(path)

    def _add_directory(self, directory: str) -> Tuple[List[str], List[str]]:
        """
        Watch a directory and everything beneath it.

        Used for the initial walk and for directories appearing later.

        Returns:
            (mirrored entries found, directories newly watched)

        Raises:
            OSError: If ``directory`` itself cannot be read
        """
        mirrored: List[str] = []
        installed: List[str] = []

        for path, snapshot in walk(directory, self.options.dereference, on_error=self._on_walk_error):
            if path in self._watches:
                continue
            try:
                self._watches.add(path, snapshot)
            except OSError as e:
                self._report_error(WatchInstallError(f"Cannot watch {path}: {e}"), path)
                continue
            installed.append(path)

            for child in sorted(snapshot):
                if self._is_mirrored(child, snapshot[child].is_directory):
                    mirrored.append(child)

        return mirrored, installed

    def _remove_directory(self, directory: str) -> None:
        """Stop watching a directory and queue removals for its last known contents, children first."""
        watch = self._watches.remove(directory)
        snapshot = watch.snapshot if watch is not None else {}

        entries = sorted(snapshot)
        for path in entries:
            if snapshot[path].is_directory:
                self._remove_directory(path)
        for path in entries:
            if not snapshot[path].is_directory and self._matcher.matches(path):
                self._enqueue(path, ActionKind.REMOVE)

        if self._is_mirrored(directory, True):
            self._enqueue(directory, ActionKind.REMOVE)

    def _on_walk_error(self, directory: str, error: OSError) -> None:
        self._report_error(WatchInstallError(f"Cannot read {directory}: {error}"), directory)

    def _on_raw_event(self, raw_event: RawFSEvent) -> None:
        """Observer thread: mark the affected directories for a refresh."""
        logger.debug(f"Raw event: {raw_event.event_type} {raw_event.src_path}")

        directories = [raw_event.directory]
        if raw_event.dest_path:
            dest_directory = parent_path(normalize_path(raw_event.dest_path))
            if dest_directory != raw_event.directory:
                directories.append(dest_directory)

        for directory in directories:
            with self._dirty_lock:
                if directory in self._dirty:
                    continue
                self._dirty.add(directory)
            self._submit(self._refresh_directory, directory)

    def _refresh_directory(self, directory: str) -> None:
        with self._dirty_lock:
            self._dirty.discard(directory)

        watch = self._watches.get(directory)
        if watch is None:
            return

        try:
            current, changes = self._classifier.classify(directory, watch.snapshot)
        except OSError as e:
            self._report_error(e, directory)
            return

        self._watches.update_snapshot(directory, current)
        for change in changes:
            self._apply_change(change)

    def _apply_change(self, change: ClassifiedChange) -> None:
        path = change.path

        if change.kind is ActionKind.REMOVE:
            if change.is_directory:
                self._remove_directory(path)
            elif self._matcher.matches(path):
                self._enqueue(path, ActionKind.REMOVE)
            return

        if not change.is_directory:
            if self._matcher.matches(path):
                self._enqueue(path, change.kind)
            return

        # A directory appeared
        if self._is_mirrored(path, True):
            self._enqueue(path, ActionKind.ADD)
        try:
            mirrored, installed = self._add_directory(path)
        except OSError as e:
            self._report_error(WatchInstallError(f"Cannot watch {path}: {e}"), path)
            return
        for child in mirrored:
            self._enqueue(child, ActionKind.ADD)
        # Catch entries created between the walk and the watch installation
        for directory in installed:
            self._refresh_directory(directory)

    # ------------------------------------------------------------------
    # Queue and drain (coordinator thread)
    # ------------------------------------------------------------------

    def _enqueue(self, path: str, kind: ActionKind) -> None:
        if self._is_closed():
            return
        merged = self._queue.push(path, kind)
        logger.debug(f"Queued {kind.value} {path} (pending: {merged.value if merged else 'none'})")
        self._idle_event.clear()
        if self._state is WatcherState.READY:
            self._debouncer.trigger()

    def _on_debounce_timer(self) -> None:
        self._submit(self._on_debounce)

    def _on_debounce(self) -> None:
        if self._state is not WatcherState.READY:
            return
        if self._set_state(WatcherState.DRAINING):
            self._start_round()

    def _start_round(self) -> None:
        if self._is_closed():
            return

        entries = self._queue.take_all()
        if not entries:
            if self._set_state(WatcherState.READY):
                self._idle_event.set()
            return

        logger.debug(f"Draining {len(entries)} pending action(s)")
        self._executor.run_round(entries, lambda results: self._submit(self._finish_round, results))

    def _finish_round(self, results: List[ActionResult]) -> None:
        retried = False
        for result in results:
            if self._executor.settle(result, self._queue.requeue):
                retried = True

        if retried and self.config.retry_delay_ms > 0:
            timer = threading.Timer(self.config.retry_delay_ms / 1000.0, self._submit, args=(self._start_round,))
            timer.daemon = True
            self._retry_timer = timer
            timer.start()
        else:
            self._start_round()

    def _on_initial_copy_done(self, future: Future) -> None:
        if not future.cancelled():
            self._executor.settle_initial(future.result())
        self._initial_copy_count -= 1
        self._emit_ready_if_ready()

    def _emit_ready_if_ready(self) -> None:
        if self._state is not WatcherState.OPENING:
            return
        if not self._installed or self._initial_copy_count > 0:
            return
        if not self._set_state(WatcherState.READY):
            return

        logger.info("Watcher ready")
        self._became_ready = True
        self._ready_event.set()
        self._emitter.emit(EventType.WATCH_READY)

        if len(self._queue):
            self._debouncer.trigger()
        else:
            self._idle_event.set()
