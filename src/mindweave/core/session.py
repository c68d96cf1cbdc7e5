"""editor session: one live document with its selection, history and clipboard.

the engine itself is pure; the session is the host that keeps the current
document, records history after every settled change and tells listeners
when modified_at moves.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from .engine import MindMapEngine
from .history import MAX_UNDO_HISTORY, HistoryManager, HistoryRecorder
from .models import Document, LayoutDirection, Node
from .selection import Selection
from .tree import NodeIndex

Listener = Callable[[Document], None]


class EditorSession:
    """the editing state a ui (or the api server) works against."""

    def __init__(
        self,
        document: Optional[Document] = None,
        engine: Optional[MindMapEngine] = None,
        max_history: int = MAX_UNDO_HISTORY,
    ):
        self.engine = engine or MindMapEngine()
        self.history = HistoryManager(max_history)
        self.recorder = HistoryRecorder(self.history)
        self.selection = Selection()
        self.clipboard: Optional[Node] = None
        self.document: Optional[Document] = None
        self._listeners: list[Listener] = []
        if document is not None:
            self.load(document)

    # --- change notification ---

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """call listener with the document after every change. returns an unsubscribe."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.document)

    def _apply(self, document: Document) -> bool:
        """adopt the engine's result. returns False when nothing changed."""
        if document is self.document:
            return False
        self.document = document
        self.selection.prune(document)
        self.recorder.observe(document)
        self._notify()
        return True

    def _require(self) -> Document:
        if self.document is None:
            raise RuntimeError("no document loaded")
        return self.document

    # --- lifecycle ---

    def new(
        self,
        title: str,
        layout_direction: LayoutDirection | str = LayoutDirection.HORIZONTAL,
    ) -> Document:
        """start a fresh document; history starts over."""
        document = self.engine.create_document(title, layout_direction)
        self.history.clear()
        self.recorder.reset()
        self._apply(document)
        self.selection.select(document.root.id)
        return document

    def load(self, document: Document, relayout: bool = False) -> Document:
        """replace the current document (open file, restore autosave)."""
        loaded = self.engine.load_document(document, relayout=relayout)
        self.history.clear()
        self.recorder.reset()
        self.selection.clear()
        self._apply(loaded)
        self.selection.select(loaded.root.id)
        return loaded

    # --- mutations ---

    def add_child(self, parent_id: str, content: str) -> Optional[str]:
        """add a child and select it. returns the new id, or None on no-op."""
        before = self._require()
        after = self.engine.add_child(before, parent_id, content)
        if not self._apply(after):
            return None
        new_id = NodeIndex(after.root).get(parent_id).children[-1].id
        self.selection.select(new_id)
        return new_id

    def add_children(
        self,
        parent_id: str,
        contents: Iterable[str],
        ai_generated: bool = False,
        provider_id: Optional[str] = None,
    ) -> list[str]:
        """batch insert (e.g. ai suggestions). returns the new ids."""
        contents = list(contents)
        after = self.engine.add_children(
            self._require(),
            parent_id,
            contents,
            ai_generated=ai_generated,
            provider_id=provider_id,
        )
        if not self._apply(after):
            return []
        children = NodeIndex(after.root).get(parent_id).children
        return [c.id for c in children[len(children) - len(contents):]]

    def add_sibling(self, node_id: str, content: str) -> Optional[str]:
        """add a sibling of node_id and select it."""
        parent = NodeIndex(self._require().root).parent_of(node_id)
        if parent is None:
            return None
        return self.add_child(parent.id, content)

    def delete_node(self, node_id: str) -> bool:
        return self._apply(self.engine.delete_node(self._require(), node_id))

    def delete_batch(self, node_ids: Iterable[str]) -> bool:
        """delete several subtrees as one history entry."""
        return self._apply(self.engine.delete_batch(self._require(), node_ids))

    def delete_selected(self) -> bool:
        """delete every selected node. the root is skipped."""
        changed = self.delete_batch(self.selection.targets())
        if changed:
            self.selection.clear()
        return changed

    def move_node(self, node_id: str, new_parent_id: str, position: Optional[int] = None) -> bool:
        """drop node_id onto new_parent_id. the dragged id is passed in, never stored."""
        return self._apply(
            self.engine.move_node(self._require(), node_id, new_parent_id, position)
        )

    def update_node(self, node_id: str, changes: Optional[dict] = None, **fields) -> bool:
        return self._apply(
            self.engine.update_node(self._require(), node_id, changes, **fields)
        )

    def toggle_collapse(self, node_id: str) -> bool:
        return self._apply(self.engine.toggle_collapse(self._require(), node_id))

    def apply_style(self, style_fields: dict, node_ids: Optional[Iterable[str]] = None) -> bool:
        """style the given nodes, or the current selection when none are given."""
        targets = list(node_ids) if node_ids is not None else self.selection.targets()
        return self._apply(
            self.engine.batch_apply_style(self._require(), targets, style_fields)
        )

    def update_document(self, **fields) -> bool:
        return self._apply(self.engine.update_document(self._require(), **fields))

    def relayout(self) -> bool:
        """clear the sizing cache and lay everything out again."""
        self.engine.sizer.clear()
        return self._apply(self.engine.apply_layout(self._require()))

    # --- relationships and boundaries ---

    def add_relationship(self, from_node_id: str, to_node_id: str, **attrs) -> bool:
        return self._apply(
            self.engine.add_relationship(self._require(), from_node_id, to_node_id, **attrs)
        )

    def remove_relationship(self, relationship_id: str) -> bool:
        return self._apply(self.engine.remove_relationship(self._require(), relationship_id))

    def add_boundary(self, node_ids: Iterable[str], **attrs) -> bool:
        return self._apply(self.engine.add_boundary(self._require(), node_ids, **attrs))

    def remove_boundary(self, boundary_id: str) -> bool:
        return self._apply(self.engine.remove_boundary(self._require(), boundary_id))

    # --- clipboard ---

    def copy(self, node_id: str) -> bool:
        node = self.engine.copy_node(self._require(), node_id)
        if node is None:
            return False
        self.clipboard = node
        return True

    def paste(self, parent_id: str) -> Optional[str]:
        """paste the clipboard under parent_id and select the pasted root."""
        if self.clipboard is None:
            return None
        after = self.engine.paste_node(self._require(), parent_id, self.clipboard)
        if not self._apply(after):
            return None
        new_id = NodeIndex(after.root).get(parent_id).children[-1].id
        self.selection.select(new_id)
        return new_id

    # --- history ---

    def undo(self) -> bool:
        snapshot = self.history.undo()
        if snapshot is None:
            logging.debug("undo: nothing to undo")
            return False
        self._restore(snapshot)
        return True

    def redo(self) -> bool:
        snapshot = self.history.redo()
        if snapshot is None:
            logging.debug("redo: nothing to redo")
            return False
        self._restore(snapshot)
        return True

    def can_undo(self) -> bool:
        return self.history.can_undo()

    def can_redo(self) -> bool:
        return self.history.can_redo()

    def _restore(self, snapshot: Document) -> None:
        # the live document must not alias the stored snapshot
        self.document = self.engine.load_document(snapshot)
        self.recorder.sync(self.document)
        self.selection.prune(self.document)
        self._notify()
