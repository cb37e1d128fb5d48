"""Directory snapshots and recursive tree walking."""

import logging
import os
from typing import Callable, Iterator, Optional, Set, Tuple

from .models import DirectorySnapshot, EntryInfo
from .paths import join_path

logger = logging.getLogger(__name__)


def scan_directory(directory: str, dereference: bool = False) -> DirectorySnapshot:
    """
    Take a snapshot of one directory's entries.

    Args:
        directory: Normalized directory path
        dereference: Follow symbolic links when classifying entries

    Returns:
        Mapping of normalized child path to EntryInfo. Empty if the
        directory does not exist (anymore) or is not a directory.

    Raises:
        OSError: If the directory exists but cannot be read
    """
    snapshot: DirectorySnapshot = {}
    try:
        entries = os.scandir(directory)
    except (FileNotFoundError, NotADirectoryError):
        return snapshot

    with entries:
        for entry in entries:
            path = join_path(directory, entry.name)
            try:
                is_directory = entry.is_dir(follow_symlinks=dereference)
                st = entry.stat(follow_symlinks=dereference)
            except FileNotFoundError:
                if not (dereference and entry.is_symlink()):
                    # Vanished between listing and stat
                    continue
                # Dangling link: report the link itself
                is_directory = False
                st = entry.stat(follow_symlinks=False)
            snapshot[path] = EntryInfo.from_stat(st, is_directory)

    return snapshot


def walk(
    root: str,
    dereference: bool = False,
    on_error: Optional[Callable[[str, OSError], None]] = None,
) -> Iterator[Tuple[str, DirectorySnapshot]]:
    """
    Walk a directory tree depth-first, parents before children.

    Children are visited in sorted order so that the walk is deterministic.
    A symlinked directory is an opaque leaf unless ``dereference`` is set;
    with dereferencing, a directory already visited through another link is
    not entered twice.

    Args:
        root: Normalized root directory
        dereference: Follow symbolic links into linked directories
        on_error: Called with (directory, error) when a subdirectory cannot
            be read. Without a handler, the error propagates.

    Yields:
        (directory, snapshot) for the root and every directory beneath it.
        Nothing if the root does not exist or is not a directory.

    Raises:
        OSError: If the root itself cannot be read
    """
    if not os.path.isdir(root):
        return

    visited: Set[str] = set()
    yield from _walk(root, dereference, on_error, visited, is_root=True)


def _walk(directory, dereference, on_error, visited, is_root=False):
    real = os.path.realpath(directory)
    if real in visited:
        logger.debug(f"Skipping already visited directory: {directory}")
        return
    visited.add(real)

    try:
        snapshot = scan_directory(directory, dereference)
    except OSError as e:
        if is_root or on_error is None:
            raise
        on_error(directory, e)
        return

    yield directory, snapshot

    for path in sorted(snapshot):
        if snapshot[path].is_directory:
            yield from _walk(path, dereference, on_error, visited)
