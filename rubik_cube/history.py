from __future__ import annotations

from typing import List, Optional

from .moves import Move


class MoveHistory:
    """Undo/redo stacks of the turns the user made by hand."""

    def __init__(self, limit: int = 500) -> None:
        self.limit = limit
        self.done: List[Move] = []
        self.undone: List[Move] = []

    @property
    def can_undo(self) -> bool:
        return bool(self.done)

    @property
    def can_redo(self) -> bool:
        return bool(self.undone)

    def record(self, move: Move) -> None:
        self.done.append(move)
        if len(self.done) > self.limit:
            del self.done[0]
        self.undone.clear()

    def peek_undo(self) -> Optional[Move]:
        return self.done[-1].inverse() if self.done else None

    def peek_redo(self) -> Optional[Move]:
        return self.undone[-1] if self.undone else None

    def undo(self) -> Optional[Move]:
        """Pop the last turn; returns the move that reverts it."""
        if not self.done:
            return None
        move = self.done.pop()
        self.undone.append(move)
        return move.inverse()

    def redo(self) -> Optional[Move]:
        if not self.undone:
            return None
        move = self.undone.pop()
        self.done.append(move)
        return move

    def clear(self) -> None:
        self.done.clear()
        self.undone.clear()
