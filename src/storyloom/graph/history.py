"""Bounded undo/redo history of passage snapshots."""

from __future__ import annotations

import copy
from collections import deque

from storyloom.graph.graph import Snapshot

MAX_HISTORY = 50


class HistoryBuffer:
    """Two stacks of graph snapshots with a fixed capacity.

    Every snapshot is deep-copied on the way in, so no caller can alter a
    stored snapshot after the fact.

    Args:
        capacity: Maximum number of undo (and redo) snapshots kept. The
            oldest snapshot is dropped once the capacity is exceeded.
    """

    def __init__(self, capacity: int = MAX_HISTORY) -> None:
        if capacity < 1:
            raise ValueError(f"History capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self._undo: deque[Snapshot] = deque(maxlen=capacity)
        self._redo: deque[Snapshot] = deque(maxlen=capacity)

    def push(self, snapshot: Snapshot) -> None:
        """Record the state from before an edit. Clears the redo stack."""
        self._undo.append(copy.deepcopy(snapshot))
        self._redo.clear()

    def undo(self, current: Snapshot) -> Snapshot | None:
        """Step back one edit.

        Args:
            current: The state being replaced; it becomes redoable.

        Returns:
            The snapshot to install, or None if there is nothing to undo.
        """
        if not self._undo:
            return None
        self._redo.append(copy.deepcopy(current))
        return self._undo.pop()

    def redo(self, current: Snapshot) -> Snapshot | None:
        """Re-apply one undone edit.

        Args:
            current: The state being replaced; it becomes undoable again.

        Returns:
            The snapshot to install, or None if there is nothing to redo.
        """
        if not self._redo:
            return None
        self._undo.append(copy.deepcopy(current))
        return self._redo.pop()

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def clear(self) -> None:
        """Forget all history."""
        self._undo.clear()
        self._redo.clear()

    def __len__(self) -> int:
        return len(self._undo)

    def __repr__(self) -> str:
        return (
            f"HistoryBuffer(undo={len(self._undo)}, redo={len(self._redo)}, "
            f"capacity={self.capacity})"
        )
