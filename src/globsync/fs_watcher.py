"""Per-directory filesystem watches using the watchdog library."""

import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import ObservedWatch

from .models import DirectorySnapshot, RawFSEvent

logger = logging.getLogger(__name__)

# Access-only notifications never change a snapshot.
IGNORED_EVENT_TYPES = frozenset({"opened", "closed_no_write"})


class DirectoryEventHandler(FileSystemEventHandler):
    """Handler for one watched directory that converts watchdog events to RawFSEvent."""

    def __init__(self, directory: str, callback: Callable[[RawFSEvent], None]):
        super().__init__()
        self.directory = directory
        self.callback = callback

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type in IGNORED_EVENT_TYPES:
            return

        dest_path = getattr(event, "dest_path", "") or None
        raw_event = RawFSEvent(
            event_type=event.event_type,
            directory=self.directory,
            src_path=os.fsdecode(event.src_path),
            dest_path=os.fsdecode(dest_path) if dest_path else None,
            is_directory=event.is_directory,
        )
        self.callback(raw_event)


@dataclass
class DirectoryWatch:
    """
    One live directory: its OS watch handle and last known snapshot.

    Attributes:
        path: Normalized directory path
        handle: The watchdog watch scheduled for the directory
        snapshot: Last observed entries of the directory
    """
    path: str
    handle: ObservedWatch
    snapshot: DirectorySnapshot = field(default_factory=dict)


class DirectoryWatchPool:
    """
    Registry of per-directory watches sharing one watchdog observer.

    Each directory is scheduled non-recursively, so a notification always
    identifies exactly one directory whose snapshot must be refreshed.
    """

    def __init__(
        self,
        event_callback: Callable[[RawFSEvent], None],
        join_timeout_s: float = 5.0,
    ):
        """
        Initialize the watch pool.

        Args:
            event_callback: Callback for raw notifications, called on the
                observer thread
            join_timeout_s: How long stop_all() waits for the observer thread
        """
        self.event_callback = event_callback
        self.join_timeout_s = join_timeout_s
        self._observer = Observer()
        self._watches: Dict[str, DirectoryWatch] = {}
        self._lock = threading.RLock()

    def start(self) -> None:
        """Start the observer thread."""
        self._observer.start()

    def add(self, directory: str, snapshot: DirectorySnapshot) -> bool:
        """
        Start watching a directory.

        Args:
            directory: Normalized directory path
            snapshot: The directory's current entries

        Returns:
            True if a watch was installed, False if the directory was
            already watched (its snapshot is replaced)

        Raises:
            OSError: If the OS refuses the watch
        """
        with self._lock:
            existing = self._watches.get(directory)
            if existing is not None:
                existing.snapshot = snapshot
                return False

            handler = DirectoryEventHandler(directory, self.event_callback)
            handle = self._observer.schedule(handler, os.path.abspath(directory), recursive=False)
            self._watches[directory] = DirectoryWatch(directory, handle, snapshot)
            logger.debug(f"Watching directory: {directory}")
            return True

    def remove(self, directory: str) -> Optional[DirectoryWatch]:
        """
        Stop watching a directory.

        Returns:
            The removed watch with its last snapshot, or None if the
            directory was not watched
        """
        with self._lock:
            watch = self._watches.pop(directory, None)
            if watch is None:
                return None
            try:
                self._observer.unschedule(watch.handle)
            except (KeyError, OSError) as e:
                # The OS may already have dropped the watch of a deleted directory
                logger.debug(f"Unscheduling {directory} failed: {e}")
            logger.debug(f"Stopped watching directory: {directory}")
            return watch

    def get(self, directory: str) -> Optional[DirectoryWatch]:
        with self._lock:
            return self._watches.get(directory)

    def update_snapshot(self, directory: str, snapshot: DirectorySnapshot) -> bool:
        """
        Replace the snapshot of a watched directory.

        Returns:
            False if the directory is not watched
        """
        with self._lock:
            watch = self._watches.get(directory)
            if watch is None:
                return False
            watch.snapshot = snapshot
            return True

    def stop_all(self) -> int:
        """
        Release every watch and stop the observer.

        Returns:
            Number of watches released
        """
        with self._lock:
            count = len(self._watches)
            self._watches.clear()

        self._observer.unschedule_all()
        self._observer.stop()
        if self._observer.is_alive() and threading.current_thread() is not self._observer:
            self._observer.join(timeout=self.join_timeout_s)
        return count

    def directories(self) -> List[str]:
        """Get the watched directories in the order they were added."""
        with self._lock:
            return list(self._watches.keys())

    def __contains__(self, directory: str) -> bool:
        with self._lock:
            return directory in self._watches

    def __len__(self) -> int:
        with self._lock:
            return len(self._watches)
