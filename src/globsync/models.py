"""Data models for the globsync package."""

import os
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional


class ActionKind(Enum):
    """Kinds of pending actions against the destination tree."""
    ADD = "add"
    CHANGE = "change"
    REMOVE = "remove"


class WatcherState(Enum):
    """Lifecycle states of a Watcher."""
    UNOPENED = "unopened"
    OPENING = "opening"
    READY = "ready"
    DRAINING = "draining"
    CLOSED = "closed"


class EventType(Enum):
    """Events a Watcher publishes to its subscribers."""
    WATCH_READY = "watch-ready"
    COPY = "copy"
    REMOVE = "remove"
    WATCH_ERROR = "watch-error"


@dataclass(frozen=True)
class EntryInfo:
    """
    Last observed metadata of one directory entry.

    Attributes:
        is_directory: Whether the entry is a directory
        mtime_ns: Modification time in nanoseconds
        size: Size in bytes (0 for directories)
    """
    is_directory: bool
    mtime_ns: int = 0
    size: int = 0

    @classmethod
    def from_stat(cls, st: os.stat_result, is_directory: bool) -> "EntryInfo":
        """Create from an ``os.stat_result``."""
        return cls(
            is_directory=is_directory,
            mtime_ns=st.st_mtime_ns,
            size=0 if is_directory else st.st_size,
        )


# Normalized child path -> metadata, for the entries of one directory.
DirectorySnapshot = Dict[str, EntryInfo]


@dataclass
class RawFSEvent:
    """
    Raw notification from a per-directory watch.

    Attributes:
        event_type: watchdog event type (created, deleted, modified, moved, closed)
        directory: Normalized path of the watched directory that reported it
        src_path: Path reported by the OS
        dest_path: Destination path for move events
        is_directory: Whether the event concerns a directory
        timestamp: Unix timestamp when the event was received
    """
    event_type: str
    directory: str
    src_path: str
    dest_path: Optional[str] = None
    is_directory: bool = False
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class ClassifiedChange:
    """A logical change found by diffing a directory against its snapshot."""
    path: str
    kind: ActionKind
    is_directory: bool = False


@dataclass(frozen=True)
class CopyEvent:
    """Payload of a ``copy`` event."""
    src_path: str
    dst_path: str

    def to_dict(self) -> dict:
        return {"src_path": self.src_path, "dst_path": self.dst_path}


@dataclass(frozen=True)
class RemoveEvent:
    """Payload of a ``remove`` event. ``path`` is the destination path."""
    path: str

    def to_dict(self) -> dict:
        return {"path": self.path}


@dataclass(frozen=True)
class WatchErrorEvent:
    """
    Payload of a ``watch-error`` event.

    Attributes:
        message: Human readable description
        path: The source path or directory concerned, if any
        error: The underlying exception, if any
    """
    message: str
    path: Optional[str] = None
    error: Optional[BaseException] = field(default=None, compare=False)

    @classmethod
    def from_exception(cls, error: BaseException, path: Optional[str] = None) -> "WatchErrorEvent":
        """Create from an exception."""
        return cls(message=str(error) or type(error).__name__, path=path, error=error)

    def to_dict(self) -> dict:
        return {"message": self.message, "path": self.path}
