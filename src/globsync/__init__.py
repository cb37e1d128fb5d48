"""
globsync Package

Mirrors the files matched by a glob pattern into a destination directory
and keeps the mirror live by watching the source tree.

Features:
- Glob matching with ``*``, ``?``, ``[...]``, ``**`` and ``{a,b}``
- One OS watch per directory, snapshot diffing into add/change/remove
- Per-path coalescing of pending actions
- Debounced, bounded-concurrency replay with retries for transient errors
- Asynchronous ``watch-ready`` / ``copy`` / ``remove`` / ``watch-error`` events
"""

from .models import (
    ActionKind,
    WatcherState,
    EventType,
    EntryInfo,
    DirectorySnapshot,
    RawFSEvent,
    ClassifiedChange,
    CopyEvent,
    RemoveEvent,
    WatchErrorEvent,
)

from .config import SyncConfig, WatchOptions

from .exceptions import (
    GlobSyncError,
    WatcherError,
    WatcherClosedError,
    WatcherAlreadyOpenError,
    WatchSetupError,
    WatchInstallError,
    DestinationError,
    CleanError,
)

from .paths import normalize_path, glob_base, make_translator
from .matcher import PathMatcher
from .walker import scan_directory, walk
from .fs_watcher import DirectoryWatchPool, DirectoryEventHandler, DirectoryWatch
from .classifier import ChangeClassifier, diff_snapshots
from .queue import PendingActionQueue, merge_actions
from .debouncer import Debouncer
from .file_ops import CopyOptions, copy_file, remove_file
from .executor import SyncExecutor, ActionResult, RetryCounters, is_transient_error
from .emitter import EventEmitter
from .watcher import Watcher
from .api import watch, clean_destination


__all__ = [
    # Models
    "ActionKind",
    "WatcherState",
    "EventType",
    "EntryInfo",
    "DirectorySnapshot",
    "RawFSEvent",
    "ClassifiedChange",
    "CopyEvent",
    "RemoveEvent",
    "WatchErrorEvent",
    # Config
    "SyncConfig",
    "WatchOptions",
    # Exceptions
    "GlobSyncError",
    "WatcherError",
    "WatcherClosedError",
    "WatcherAlreadyOpenError",
    "WatchSetupError",
    "WatchInstallError",
    "DestinationError",
    "CleanError",
    # Components
    "normalize_path",
    "glob_base",
    "make_translator",
    "PathMatcher",
    "scan_directory",
    "walk",
    "DirectoryWatchPool",
    "DirectoryEventHandler",
    "DirectoryWatch",
    "ChangeClassifier",
    "diff_snapshots",
    "PendingActionQueue",
    "merge_actions",
    "Debouncer",
    "CopyOptions",
    "copy_file",
    "remove_file",
    "SyncExecutor",
    "ActionResult",
    "RetryCounters",
    "is_transient_error",
    "EventEmitter",
    # Orchestrator
    "Watcher",
    "watch",
    "clean_destination",
]

__version__ = "0.1.0"
