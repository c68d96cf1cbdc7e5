"""single and multi selection state."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .models import Document
from .tree import NodeIndex


@dataclass
class Selection:
    """primary selection plus an ordered multi-selection.

    the root may be the primary selection but never part of multi_ids.
    """

    primary_id: Optional[str] = None
    multi_ids: list[str] = field(default_factory=list)

    def select(self, node_id: Optional[str]) -> None:
        self.primary_id = node_id
        self.multi_ids = []

    def toggle_multi(self, node_id: str, root_id: str) -> None:
        """add or remove node_id from the multi-selection (ctrl+click)."""
        if node_id == root_id:
            self.select(node_id)
            return

        if node_id in self.multi_ids:
            self.multi_ids.remove(node_id)
            if not self.multi_ids:
                self.primary_id = None
            elif self.primary_id == node_id:
                self.primary_id = self.multi_ids[-1]
        else:
            self.multi_ids.append(node_id)
            self.primary_id = node_id

    def select_all(self, document: Document) -> None:
        """multi-select every non-root node in document order."""
        self.multi_ids = [n.id for n in document.root.walk() if n is not document.root]
        self.primary_id = self.multi_ids[-1] if self.multi_ids else None

    def clear(self) -> None:
        self.primary_id = None
        self.multi_ids = []

    def prune(self, document: Document) -> None:
        """forget ids that no longer exist in document."""
        index = NodeIndex(document.root)
        self.multi_ids = [nid for nid in self.multi_ids if nid in index]
        if self.primary_id is not None and self.primary_id not in index:
            self.primary_id = self.multi_ids[-1] if self.multi_ids else None

    def is_selected(self, node_id: str) -> bool:
        return node_id == self.primary_id or node_id in self.multi_ids

    def targets(self) -> list[str]:
        """ids a batch operation should act on."""
        if self.multi_ids:
            return list(self.multi_ids)
        if self.primary_id is not None:
            return [self.primary_id]
        return []

    def to_dict(self) -> dict:
        return {"primary_id": self.primary_id, "multi_ids": list(self.multi_ids)}
