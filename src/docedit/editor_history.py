"""Bounded undo/redo history of editor states."""

from collections import deque
from typing import Deque

from docedit.editor_state import EditorState


class EditorHistory:
    """
    Undo and redo stacks.

    Each entry is the state before one document-changing transaction.  When the undo
    stack is full the oldest entry is discarded.
    """

    def __init__(self, depth: int = 100) -> None:
        """
        Initialize the history.

        Args:
            depth: Maximum number of undo steps kept; 0 disables undo
        """
        self._depth = max(0, depth)
        self._undo: Deque[EditorState] = deque(maxlen=self._depth)
        self._redo: Deque[EditorState] = deque(maxlen=self._depth)

    @property
    def depth(self) -> int:
        """Maximum number of undo steps kept."""
        return self._depth

    def can_undo(self) -> bool:
        """True if there is a step to undo."""
        return bool(self._undo)

    def can_redo(self) -> bool:
        """True if there is an undone step to redo."""
        return bool(self._redo)

    def record(self, previous: EditorState) -> None:
        """
        Record the state before a new transaction; this discards anything that could be redone.

        Args:
            previous: The state the transaction was applied to
        """
        if self._depth == 0:
            return

        self._undo.append(previous)
        self._redo.clear()

    def undo(self, current: EditorState) -> EditorState | None:
        """
        Step back one transaction.

        Args:
            current: The current state, kept for redo

        Returns:
            The state to restore, or None if there is nothing to undo
        """
        if not self._undo:
            return None

        self._redo.append(current)
        return self._undo.pop()

    def redo(self, current: EditorState) -> EditorState | None:
        """
        Step forward one undone transaction.

        Args:
            current: The current state, kept for undo

        Returns:
            The state to restore, or None if there is nothing to redo
        """
        if not self._redo:
            return None

        self._undo.append(current)
        return self._redo.pop()

    def clear(self) -> None:
        """Forget all history."""
        self._undo.clear()
        self._redo.clear()
