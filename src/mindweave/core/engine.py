"""document mutation engine.

every operation takes a document and returns the resulting document. the
input is never modified: a real change works on a clone, re-derives node
kinds, re-lays out and bumps modified_at. an operation that changes nothing
(unknown id, cycle, root guard, identical values) returns the very same
object it was given, so callers can test `new is old`.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Container, Iterable, Optional

from .layout import LayoutConfig, LayoutEngine
from .models import (
    EDITABLE_NODE_FIELDS,
    SIZE_AFFECTING_STYLE_FIELDS,
    Document,
    LayoutDirection,
    Node,
    NodeBoundary,
    NodeRelationship,
    NodeStyle,
    generate_id,
    now_ms,
    parse_direction,
)
from .sizing import NodeSizer
from .tree import NodeIndex, derive_kinds, find_tree_errors, iter_visible


class MindMapEngine:
    """authoritative mutation api over mind map documents."""

    def __init__(self, sizer: Optional[NodeSizer] = None, config: Optional[LayoutConfig] = None):
        self.sizer = sizer or NodeSizer()
        self.layout_engine = LayoutEngine(self.sizer, config)

    # --- document lifecycle ---

    def create_document(
        self,
        title: str,
        layout_direction: LayoutDirection | str = LayoutDirection.HORIZONTAL,
    ) -> Document:
        """new document holding only a root whose content is the title."""
        document = Document.create(title, parse_direction(layout_direction))
        self.layout_engine.layout(document.root, document.layout_direction)
        return document

    def load_document(self, document: Document, relayout: bool = False) -> Document:
        """independent copy of an external document, ready for editing.

        positions are part of a snapshot, so layout only runs when asked or
        when some visible node has never been laid out. raises ValueError
        when node ids are not unique. relationships and boundaries that
        point at missing nodes are dropped.
        """
        loaded = document.clone()
        derive_kinds(loaded.root)
        errors = find_tree_errors(loaded.root)
        if errors:
            raise ValueError(f"invalid document: {'; '.join(errors)}")
        _prune_references(loaded, NodeIndex(loaded.root))
        needs_layout = relayout or any(
            n.position is None or n.size is None for n in iter_visible(loaded.root)
        )
        if needs_layout:
            self.layout_engine.layout(loaded.root, loaded.layout_direction)
        return loaded

    def apply_layout(self, document: Document) -> Document:
        """re-run layout (e.g. after clearing the sizing cache)."""
        work = document.clone()
        self.layout_engine.layout(work.root, work.layout_direction)
        before = [(n.position, n.size) for n in document.root.walk()]
        after = [(n.position, n.size) for n in work.root.walk()]
        if before == after:
            return document
        work.touch()
        return work

    def update_document(
        self,
        document: Document,
        title: Optional[str] = None,
        layout_direction: Optional[LayoutDirection | str] = None,
        theme: Optional[str] = None,
        edge_style: Optional[str] = None,
    ) -> Document:
        """change document-level fields; no-op if nothing differs."""
        changes = {}
        if title is not None and title != document.title:
            changes["title"] = title
        if layout_direction is not None:
            direction = parse_direction(layout_direction)
            if direction != document.layout_direction:
                changes["layout_direction"] = direction
        if theme is not None and theme != document.theme:
            changes["theme"] = theme
        if edge_style is not None and edge_style != document.edge_style:
            changes["edge_style"] = edge_style
        if not changes:
            return document

        if "theme" in changes:
            self.sizer.clear()
        work = replace(document.clone(), **changes)
        return self._commit(work)

    # --- insertion ---

    def add_child(
        self,
        document: Document,
        parent_id: str,
        content: str,
        node_id: Optional[str] = None,
        ai_generated: bool = False,
        provider_id: Optional[str] = None,
    ) -> Document:
        """append a new leaf under parent_id. node_id lets callers pick the id."""
        return self.add_children(
            document,
            parent_id,
            [content],
            node_ids=[node_id] if node_id else None,
            ai_generated=ai_generated,
            provider_id=provider_id,
        )

    def add_children(
        self,
        document: Document,
        parent_id: str,
        contents: Iterable[str],
        node_ids: Optional[list[str]] = None,
        ai_generated: bool = False,
        provider_id: Optional[str] = None,
    ) -> Document:
        """append one leaf per content string, in order, as one change.

        this is also the entry point for ai-generated batches.
        """
        contents = list(contents)
        if not contents:
            return document

        work = document.clone()
        index = NodeIndex(work.root)
        parent = index.get(parent_id)
        if parent is None:
            logging.debug(f"add_children: parent {parent_id} not found")
            return document

        wanted_ids = list(node_ids or [])
        for i, content in enumerate(contents):
            requested = wanted_ids[i] if i < len(wanted_ids) else None
            if requested and requested in index:
                logging.debug(f"add_children: id {requested} already in use, drawing a new one")
                requested = None
            node = Node.create(
                content,
                node_id=requested or _fresh_id(index),
                ai_generated=ai_generated,
                ai_provider_id=provider_id,
            )
            parent.children.append(node)
            index.attach(node, parent)

        return self._commit(work)

    def add_sibling(
        self,
        document: Document,
        node_id: str,
        content: str,
        new_node_id: Optional[str] = None,
    ) -> Document:
        """append a new leaf to node_id's parent. the root has no siblings."""
        parent = NodeIndex(document.root).parent_of(node_id)
        if parent is None:
            logging.debug(f"add_sibling: {node_id} is the root or unknown")
            return document
        return self.add_child(document, parent.id, content, node_id=new_node_id)

    def paste_node(
        self,
        document: Document,
        parent_id: str,
        clipboard: Node,
        node_id: Optional[str] = None,
    ) -> Document:
        """insert a copy of a clipboard subtree with fresh ids and timestamps."""
        work = document.clone()
        index = NodeIndex(work.root)
        parent = index.get(parent_id)
        if parent is None:
            logging.debug(f"paste_node: parent {parent_id} not found")
            return document

        pasted = clipboard.clone()
        taken = set(index.ids())
        now = now_ms()
        for i, node in enumerate(pasted.walk()):
            if i == 0 and node_id and node_id not in taken:
                node.id = node_id
            else:
                node.id = _fresh_id(taken)
            taken.add(node.id)
            node.metadata = replace(node.metadata, created_at=now, modified_at=now)
            node.position = None
            node.size = None

        parent.children.append(pasted)
        return self._commit(work)

    def copy_node(self, document: Document, node_id: str) -> Optional[Node]:
        """independent copy of a subtree for the clipboard."""
        node = NodeIndex(document.root).get(node_id)
        if node is None:
            return None
        return node.clone()

    # --- removal ---

    def delete_node(self, document: Document, node_id: str) -> Document:
        """remove node_id and its whole subtree. the root cannot be deleted."""
        return self.delete_batch(document, [node_id])

    def delete_batch(self, document: Document, node_ids: Iterable[str]) -> Document:
        """remove several subtrees as one change.

        each target is re-resolved against the live index, so targets that
        already went away with an earlier target's subtree are skipped.
        """
        work = document.clone()
        index = NodeIndex(work.root)
        removed = 0
        for node_id in node_ids:
            node = index.get(node_id)
            parent = index.parent_of(node_id)
            if node is None or parent is None:
                logging.debug(f"delete: skipping {node_id} (root, unknown or already removed)")
                continue
            parent.children = [c for c in parent.children if c is not node]
            for gone in node.walk():
                self.sizer.invalidate(gone.id)
            index.detach(node)
            removed += 1

        if not removed:
            return document
        _prune_references(work, index)
        return self._commit(work)

    # --- restructuring ---

    def move_node(
        self,
        document: Document,
        node_id: str,
        new_parent_id: str,
        position: Optional[int] = None,
    ) -> Document:
        """reparent node_id under new_parent_id (at `position`, default last).

        refuses to move the root, to move a node under itself, and to move a
        node under one of its own descendants.
        """
        if node_id == new_parent_id:
            return document

        work = document.clone()
        index = NodeIndex(work.root)
        node = index.get(node_id)
        old_parent = index.parent_of(node_id)
        new_parent = index.get(new_parent_id)
        if node is None or new_parent is None or old_parent is None:
            logging.debug(f"move_node: {node_id} -> {new_parent_id} refused (unknown id or root)")
            return document
        if index.is_descendant(new_parent_id, node_id):
            logging.debug(f"move_node: {new_parent_id} is inside {node_id}, would create a cycle")
            return document

        before = [c.id for c in new_parent.children]
        old_parent.children = [c for c in old_parent.children if c is not node]
        if position is None:
            new_parent.children.append(node)
        else:
            slot = min(max(position, 0), len(new_parent.children))
            new_parent.children.insert(slot, node)

        if old_parent is new_parent and [c.id for c in new_parent.children] == before:
            return document

        index.reparent(node, new_parent)
        return self._commit(work)

    def toggle_collapse(self, document: Document, node_id: str) -> Document:
        """flip a node's collapsed flag; its subtree leaves or re-enters layout."""
        work = document.clone()
        node = NodeIndex(work.root).get(node_id)
        if node is None:
            return document
        node.collapsed = not node.collapsed
        return self._commit(work)

    # --- editing ---

    def update_node(
        self,
        document: Document,
        node_id: str,
        changes: Optional[dict] = None,
        **fields,
    ) -> Document:
        """shallow-merge editable fields into a node.

        `style` may be a partial dict and is merged into the current style.
        only bumps modified_at when at least one value actually differs.
        """
        changes = {**(changes or {}), **fields}
        unknown = set(changes) - set(EDITABLE_NODE_FIELDS)
        if unknown:
            raise ValueError(f"unknown node field(s): {', '.join(sorted(unknown))}")

        work = document.clone()
        node = NodeIndex(work.root).get(node_id)
        if node is None:
            logging.debug(f"update_node: {node_id} not found")
            return document

        changed = False
        for name, value in changes.items():
            value = _coerce_field(node, name, value)
            if value == getattr(node, name):
                continue
            if name == "content" or (
                name == "style" and _size_changed(node.style, value)
            ):
                self.sizer.invalidate(node.id)
            setattr(node, name, value)
            changed = True

        if not changed:
            return document
        node.metadata = replace(node.metadata, modified_at=now_ms())
        return self._commit(work)

    def batch_apply_style(
        self,
        document: Document,
        node_ids: Iterable[str],
        style_fields: dict,
    ) -> Document:
        """merge the same partial style into every listed node (root included)."""
        work = document.clone()
        index = NodeIndex(work.root)
        now = now_ms()
        changed = False
        for node_id in node_ids:
            node = index.get(node_id)
            if node is None:
                continue
            style = node.style.merged(style_fields)
            if style == node.style:
                continue
            if _size_changed(node.style, style):
                self.sizer.invalidate(node.id)
            node.style = style
            node.metadata = replace(node.metadata, modified_at=now)
            changed = True

        if not changed:
            return document
        return self._commit(work)

    # --- relationships and boundaries ---

    def add_relationship(
        self,
        document: Document,
        from_node_id: str,
        to_node_id: str,
        relationship_id: Optional[str] = None,
        **attrs,
    ) -> Document:
        """connect two existing, distinct nodes with a relationship line."""
        index = NodeIndex(document.root)
        if from_node_id == to_node_id or from_node_id not in index or to_node_id not in index:
            logging.debug(f"add_relationship: {from_node_id} -> {to_node_id} refused")
            return document
        taken = {r.id for r in document.relationships}
        relationship = NodeRelationship(
            id=relationship_id if relationship_id and relationship_id not in taken else _fresh_id(taken),
            from_node_id=from_node_id,
            to_node_id=to_node_id,
            **attrs,
        )
        work = replace(document.clone(), relationships=document.relationships + (relationship,))
        return self._commit(work)

    def remove_relationship(self, document: Document, relationship_id: str) -> Document:
        kept = tuple(r for r in document.relationships if r.id != relationship_id)
        if len(kept) == len(document.relationships):
            return document
        return self._commit(replace(document.clone(), relationships=kept))

    def add_boundary(
        self,
        document: Document,
        node_ids: Iterable[str],
        boundary_id: Optional[str] = None,
        **attrs,
    ) -> Document:
        """group existing nodes inside a boundary. unknown ids are left out of scope."""
        index = NodeIndex(document.root)
        scope = tuple(dict.fromkeys(nid for nid in node_ids if nid in index))
        if not scope:
            logging.debug("add_boundary: no known node ids in scope")
            return document
        taken = {b.id for b in document.boundaries}
        boundary = NodeBoundary(
            id=boundary_id if boundary_id and boundary_id not in taken else _fresh_id(taken),
            scope=scope,
            **attrs,
        )
        work = replace(document.clone(), boundaries=document.boundaries + (boundary,))
        return self._commit(work)

    def remove_boundary(self, document: Document, boundary_id: str) -> Document:
        kept = tuple(b for b in document.boundaries if b.id != boundary_id)
        if len(kept) == len(document.boundaries):
            return document
        return self._commit(replace(document.clone(), boundaries=kept))

    # --- internals ---

    def _commit(self, work: Document) -> Document:
        derive_kinds(work.root)
        self.layout_engine.layout(work.root, work.layout_direction)
        work.touch()
        return work


def _fresh_id(taken: Container[str]) -> str:
    node_id = generate_id()
    while node_id in taken:
        node_id = generate_id()
    return node_id


def _coerce_field(node: Node, name: str, value):
    if name == "content" and not isinstance(value, str):
        raise ValueError(f"content must be a string, got {type(value).__name__}")
    if name == "style":
        return value if isinstance(value, NodeStyle) else node.style.merged(value)
    converter = EDITABLE_NODE_FIELDS[name]
    if value is None or converter is None:
        return value
    if isinstance(value, (dict, list, tuple)):
        return converter(value)
    return value


def _size_changed(old: NodeStyle, new: NodeStyle) -> bool:
    return any(getattr(old, f) != getattr(new, f) for f in SIZE_AFFECTING_STYLE_FIELDS)


def _prune_references(document: Document, index: NodeIndex) -> None:
    """drop relationships and boundary scope entries that name missing nodes."""
    document.relationships = tuple(
        r for r in document.relationships if r.from_node_id in index and r.to_node_id in index
    )
    boundaries = []
    for boundary in document.boundaries:
        scope = tuple(nid for nid in boundary.scope if nid in index)
        if scope:
            boundaries.append(boundary if scope == boundary.scope else replace(boundary, scope=scope))
    document.boundaries = tuple(boundaries)
