"""automatic tree layout.

two passes over the tree: subtree extents bottom-up, then positions
top-down. horizontal grows rightward with siblings stacked vertically;
vertical is the same algorithm with the axes swapped.

positions are top-left corners. the root is placed at (0, 0).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .models import LayoutDirection, Measurement, Node, Position
from .sizing import NodeSizer
from .tree import iter_visible


@dataclass(frozen=True)
class LayoutConfig:
    level_spacing: float = 80     # gap between a parent and its children
    sibling_spacing: float = 20   # gap between adjacent sibling subtrees


@dataclass(frozen=True)
class Bounds:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def to_dict(self) -> dict:
        return {
            "min_x": self.min_x,
            "min_y": self.min_y,
            "max_x": self.max_x,
            "max_y": self.max_y,
            "width": self.width,
            "height": self.height,
        }


@dataclass
class _Extent:
    """subtree extent. depth runs parent -> child, breadth runs across siblings."""

    depth: float
    breadth: float
    children_breadth: float = 0.0


class LayoutEngine:
    """computes every node's position in place."""

    def __init__(self, sizer: Optional[NodeSizer] = None, config: Optional[LayoutConfig] = None):
        self.sizer = sizer or NodeSizer()
        self.config = config or LayoutConfig()

    def layout(self, root: Node, direction: LayoutDirection) -> None:
        """lay out the whole tree. free-form documents are left untouched."""
        if direction == LayoutDirection.FREE:
            return

        horizontal = direction == LayoutDirection.HORIZONTAL
        extents = self._measure_subtrees(root, horizontal)

        root_extent = extents[root.id]
        root_breadth = _breadth(root.size, horizontal)
        slot_start = -(root_extent.breadth - root_breadth) / 2
        self._place(root, slot_start, horizontal, extents)

    # --- pass 1: subtree extents (post-order) ---

    def _measure_subtrees(self, root: Node, horizontal: bool) -> dict[str, _Extent]:
        extents: dict[str, _Extent] = {}
        # children always come after their parent, so reversed order is post-order
        for node in reversed(list(iter_visible(root))):
            node.size = self.sizer.size_of(node)
            own_depth = _depth(node.size, horizontal)
            own_breadth = _breadth(node.size, horizontal)

            if not node.children or node.collapsed:
                if node.collapsed:
                    _hide_descendants(node)
                extents[node.id] = _Extent(depth=own_depth, breadth=own_breadth)
                continue

            child_extents = [extents[c.id] for c in node.children]
            children_breadth = sum(e.breadth for e in child_extents)
            children_breadth += (len(child_extents) - 1) * self.config.sibling_spacing
            extents[node.id] = _Extent(
                depth=own_depth + self.config.level_spacing + max(e.depth for e in child_extents),
                breadth=max(own_breadth, children_breadth),
                children_breadth=children_breadth,
            )
        return extents

    # --- pass 2: positions (pre-order) ---

    def _place(
        self,
        root: Node,
        slot_start: float,
        horizontal: bool,
        extents: dict[str, _Extent],
    ) -> None:
        """place each node centered in its slot [slot_start, slot_start + extent.breadth)."""
        stack = [(root, 0.0, slot_start)]
        while stack:
            node, depth_pos, start = stack.pop()
            extent = extents[node.id]
            own_breadth = _breadth(node.size, horizontal)
            breadth_pos = start + (extent.breadth - own_breadth) / 2
            node.position = _position(depth_pos, breadth_pos, horizontal)

            if not node.children or node.collapsed:
                continue

            child_depth = depth_pos + _depth(node.size, horizontal) + self.config.level_spacing
            cursor = start + (extent.breadth - extent.children_breadth) / 2
            for child in node.children:
                stack.append((child, child_depth, cursor))
                cursor += extents[child.id].breadth + self.config.sibling_spacing


def _depth(size: Measurement, horizontal: bool) -> float:
    return size.width if horizontal else size.height


def _breadth(size: Measurement, horizontal: bool) -> float:
    return size.height if horizontal else size.width


def _position(depth_pos: float, breadth_pos: float, horizontal: bool) -> Position:
    if horizontal:
        return Position(x=depth_pos, y=breadth_pos)
    return Position(x=breadth_pos, y=depth_pos)


def _hide_descendants(node: Node) -> None:
    """clear positions under a collapsed node so stale ones are never rendered."""
    for child in node.children:
        for hidden in child.walk():
            hidden.position = None
            hidden.size = None


def get_bounds(root: Node) -> Optional[Bounds]:
    """bounding box of every laid-out node, or None if nothing is laid out."""
    boxes = [
        (n.position.x, n.position.y, n.position.x + n.size.width, n.position.y + n.size.height)
        for n in root.walk()
        if n.position is not None and n.size is not None
    ]
    if not boxes:
        return None
    return Bounds(
        min_x=min(b[0] for b in boxes),
        min_y=min(b[1] for b in boxes),
        max_x=max(b[2] for b in boxes),
        max_y=max(b[3] for b in boxes),
    )


def get_node_center(node: Node) -> Optional[Position]:
    """center point of a laid-out node (edge anchors for the renderer)."""
    if node.position is None or node.size is None:
        return None
    return Position(
        x=node.position.x + node.size.width / 2,
        y=node.position.y + node.size.height / 2,
    )
