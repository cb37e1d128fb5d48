"""Classification of directory changes into add/change/remove operations."""

import logging
from typing import List, Tuple

from .models import ActionKind, ClassifiedChange, DirectorySnapshot
from .walker import scan_directory

logger = logging.getLogger(__name__)


def diff_snapshots(previous: DirectorySnapshot, current: DirectorySnapshot) -> List[ClassifiedChange]:
    """
    Compare two snapshots of the same directory.

    Rules:
    - present now, absent before -> ADD
    - absent now, present before -> REMOVE
    - present in both, a file whose mtime or size differs -> CHANGE
    - present in both, a directory -> ignored (children report themselves)
    - present in both but switched between file and directory -> REMOVE
      of the old entry, then ADD of the new one

    Args:
        previous: Last known snapshot
        current: Fresh snapshot

    Returns:
        Changes ordered by path, removals of vanished entries last
    """
    changes: List[ClassifiedChange] = []

    for path in sorted(current):
        info = current[path]
        old = previous.get(path)
        if old is None:
            changes.append(ClassifiedChange(path, ActionKind.ADD, info.is_directory))
        elif old.is_directory != info.is_directory:
            changes.append(ClassifiedChange(path, ActionKind.REMOVE, old.is_directory))
            changes.append(ClassifiedChange(path, ActionKind.ADD, info.is_directory))
        elif info.is_directory:
            continue
        elif old.mtime_ns != info.mtime_ns or old.size != info.size:
            changes.append(ClassifiedChange(path, ActionKind.CHANGE, False))

    for path in sorted(previous):
        if path not in current:
            changes.append(ClassifiedChange(path, ActionKind.REMOVE, previous[path].is_directory))

    return changes


class ChangeClassifier:
    """
    Turns a "something changed under this directory" signal into changes.

    Re-stats the directory's children and diffs them against the snapshot
    held by the directory's watch.
    """

    def __init__(self, dereference: bool = False):
        self.dereference = dereference

    def classify(
        self, directory: str, previous: DirectorySnapshot
    ) -> Tuple[DirectorySnapshot, List[ClassifiedChange]]:
        """
        Classify the current state of a directory.

        Args:
            directory: Normalized directory path
            previous: The directory's last snapshot

        Returns:
            (current snapshot, changes). A directory that no longer exists
            has an empty snapshot, so all its entries are reported removed.

        Raises:
            OSError: If the directory exists but cannot be read
        """
        current = scan_directory(directory, self.dereference)
        changes = diff_snapshots(previous, current)
        if changes:
            logger.debug(f"Classified {len(changes)} change(s) in {directory}")
        return current, changes
