"""Pending action queue with per-path coalescing."""

import threading
from collections import OrderedDict
from typing import Dict, List, Optional, Tuple

from .models import ActionKind

_ADD = ActionKind.ADD
_CHANGE = ActionKind.CHANGE
_REMOVE = ActionKind.REMOVE

# (existing, new) -> merged; None means no pending action remains.
_TRANSITIONS: Dict[Tuple[Optional[ActionKind], ActionKind], Optional[ActionKind]] = {
    (None, _ADD): _ADD,
    (None, _CHANGE): _CHANGE,
    (None, _REMOVE): _REMOVE,
    (_ADD, _ADD): _ADD,
    (_ADD, _CHANGE): _ADD,
    (_ADD, _REMOVE): None,
    (_CHANGE, _ADD): _CHANGE,
    (_CHANGE, _CHANGE): _CHANGE,
    (_CHANGE, _REMOVE): _REMOVE,
    (_REMOVE, _ADD): _CHANGE,
    (_REMOVE, _CHANGE): _CHANGE,
    (_REMOVE, _REMOVE): _REMOVE,
}


def merge_actions(existing: Optional[ActionKind], new: ActionKind) -> Optional[ActionKind]:
    """
    Merge a newly classified action into the one already pending for a path.

    Args:
        existing: The pending action, or None
        new: The newly classified action

    Returns:
        The action that should be pending afterwards, or None if the two
        cancel out (a file added and removed before being copied)
    """
    return _TRANSITIONS[(existing, new)]


class PendingActionQueue:
    """
    Insertion-ordered map of path -> pending action.

    Holds at most one action per path. A merged entry keeps its position;
    an entry created (or re-created after cancelling out) goes to the end.
    """

    def __init__(self):
        self._pending: "OrderedDict[str, ActionKind]" = OrderedDict()
        self._lock = threading.Lock()

    def push(self, path: str, kind: ActionKind) -> Optional[ActionKind]:
        """
        Merge an action for a path into the queue.

        Args:
            path: Normalized source path
            kind: Newly classified action

        Returns:
            The action now pending for the path, or None
        """
        with self._lock:
            merged = merge_actions(self._pending.get(path), kind)
            if merged is None:
                self._pending.pop(path, None)
            else:
                self._pending[path] = merged
            return merged

    def requeue(self, path: str, kind: ActionKind) -> bool:
        """
        Put back an action that failed, unless a newer one is pending.

        Returns:
            True if the action was queued
        """
        with self._lock:
            if path in self._pending:
                return False
            self._pending[path] = kind
            return True

    def take_all(self) -> List[Tuple[str, ActionKind]]:
        """Remove and return every pending action in queue order."""
        with self._lock:
            entries = list(self._pending.items())
            self._pending.clear()
            return entries

    def get(self, path: str) -> Optional[ActionKind]:
        with self._lock:
            return self._pending.get(path)

    def items(self) -> List[Tuple[str, ActionKind]]:
        """Return a copy of the pending actions in queue order."""
        with self._lock:
            return list(self._pending.items())

    def clear(self) -> None:
        with self._lock:
            self._pending.clear()

    def __contains__(self, path: str) -> bool:
        with self._lock:
            return path in self._pending

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)
