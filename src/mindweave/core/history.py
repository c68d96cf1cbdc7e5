"""snapshot-based undo/redo.

the history stores whole document snapshots and never looks at how a
change was made. HistoryRecorder decides when a document is worth a new
entry, keyed on its modified_at timestamp.
"""

from __future__ import annotations

import logging
from typing import Optional

from .models import Document


# --- configuration ---

MAX_UNDO_HISTORY = 50


class HistoryManager:
    """linear past / present / future stack of document snapshots."""

    def __init__(self, max_history: int = MAX_UNDO_HISTORY):
        self.max_history = max_history
        self.past: list[Document] = []
        self.present: Optional[Document] = None
        self.future: list[Document] = []

    def record(self, snapshot: Document) -> None:
        """make snapshot the present; the old present joins the past."""
        if self.present is not None:
            self.past.append(self.present)
            if len(self.past) > self.max_history:
                self.past.pop(0)
        self.present = snapshot
        # a new action invalidates everything that was undone
        self.future.clear()

    def undo(self) -> Optional[Document]:
        """step back. returns the new present, or None if there is no past."""
        if not self.past:
            return None
        if self.present is not None:
            self.future.insert(0, self.present)
        self.present = self.past.pop()
        logging.debug(f"undo: {len(self.past)} back, {len(self.future)} forward")
        return self.present

    def redo(self) -> Optional[Document]:
        """step forward. returns the new present, or None if there is no future."""
        if not self.future:
            return None
        if self.present is not None:
            self.past.append(self.present)
        self.present = self.future.pop(0)
        logging.debug(f"redo: {len(self.past)} back, {len(self.future)} forward")
        return self.present

    def can_undo(self) -> bool:
        return len(self.past) > 0

    def can_redo(self) -> bool:
        return len(self.future) > 0

    def clear(self) -> None:
        self.past.clear()
        self.present = None
        self.future.clear()


class HistoryRecorder:
    """pushes a fresh snapshot into a history whenever a document changes.

    "changed" means a different document id or a different modified_at than
    the last one seen, so observing an unchanged document is free.
    """

    def __init__(self, history: HistoryManager):
        self.history = history
        self._last_seen: Optional[tuple[str, int]] = None

    def observe(self, document: Document) -> bool:
        """record document if it changed since the last call. returns True if recorded."""
        key = (document.id, document.modified_at)
        if key == self._last_seen:
            return False
        self.history.record(document.clone())
        self._last_seen = key
        return True

    def sync(self, document: Document) -> None:
        """mark document as seen without recording it (after undo/redo)."""
        self._last_seen = (document.id, document.modified_at)

    def reset(self) -> None:
        """forget the last seen document so the next observe always records."""
        self._last_seen = None
