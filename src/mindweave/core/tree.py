"""indexed lookups over a node tree.

every id-based operation goes through NodeIndex instead of searching the tree.
"""

from __future__ import annotations

from typing import Iterator, Optional

from .models import Node, NodeKind


class NodeIndex:
    """id -> node and id -> parent maps for one tree, in document order."""

    def __init__(self, root: Node):
        self.root = root
        self._nodes: dict[str, Node] = {}
        self._parents: dict[str, Optional[Node]] = {}
        self._index(root, None)

    def _index(self, root: Node, parent: Optional[Node]) -> None:
        stack: list[tuple[Node, Optional[Node]]] = [(root, parent)]
        while stack:
            node, node_parent = stack.pop()
            self._nodes[node.id] = node
            self._parents[node.id] = node_parent
            stack.extend((child, node) for child in reversed(node.children))

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def get(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def parent_of(self, node_id: str) -> Optional[Node]:
        """parent node, or None for the root and for unknown ids."""
        return self._parents.get(node_id)

    def ids(self) -> list[str]:
        """all ids in document order (root first, pre-order)."""
        return list(self._nodes)

    def is_root(self, node_id: str) -> bool:
        return node_id == self.root.id

    def ancestors(self, node_id: str) -> Iterator[Node]:
        """parent, grandparent, ... up to the root. stops if an id repeats."""
        seen = {node_id}
        current = self._parents.get(node_id)
        while current is not None and current.id not in seen:
            seen.add(current.id)
            yield current
            current = self._parents.get(current.id)

    def is_descendant(self, node_id: str, ancestor_id: str) -> bool:
        """true if node_id lies strictly below ancestor_id."""
        return any(a.id == ancestor_id for a in self.ancestors(node_id))

    def depth(self, node_id: str) -> int:
        return sum(1 for _ in self.ancestors(node_id))

    def path_to(self, node_id: str) -> list[str]:
        """ids from root to node_id inclusive; empty for unknown ids."""
        if node_id not in self._nodes:
            return []
        path = [node_id] + [a.id for a in self.ancestors(node_id)]
        return list(reversed(path))

    # --- incremental maintenance ---

    def attach(self, node: Node, parent: Node) -> None:
        """register a subtree that was just appended under parent."""
        self._index(node, parent)

    def detach(self, node: Node) -> None:
        """forget a subtree that was just removed from the tree."""
        for descendant in node.walk():
            self._nodes.pop(descendant.id, None)
            self._parents.pop(descendant.id, None)

    def reparent(self, node: Node, parent: Node) -> None:
        self._parents[node.id] = parent


def derive_kinds(root: Node) -> None:
    """recompute every node's kind from parent presence and child count."""
    root.kind = NodeKind.ROOT
    for node in root.walk():
        for child in node.children:
            child.kind = NodeKind.BRANCH if child.children else NodeKind.LEAF


def iter_visible(root: Node) -> Iterator[Node]:
    """pre-order walk that does not descend into collapsed nodes."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        if not node.collapsed:
            stack.extend(reversed(node.children))


def find_tree_errors(root: Node) -> list[str]:
    """describe every structural invariant violation; empty when consistent."""
    errors = []
    seen: set[str] = set()
    if root.kind != NodeKind.ROOT:
        errors.append(f"root {root.id} has kind {root.kind.value}")
    for node in root.walk():
        if node.id in seen:
            errors.append(f"duplicate id {node.id}")
        seen.add(node.id)
        for child in node.children:
            expected = NodeKind.BRANCH if child.children else NodeKind.LEAF
            if child.kind != expected:
                errors.append(
                    f"node {child.id} has kind {child.kind.value}, expected {expected.value}"
                )
    return errors
