"""node sizing: wrapped lines and bounding boxes from content + font metrics.

glyph widths are estimated, not rasterized. wide (east asian) glyphs are
weighted against narrow (latin) ones so mixed-script labels wrap sensibly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from wcwidth import wcwidth

from .models import Measurement, Node, NodeKind


# --- configuration ---

PADDING_X = 16
PADDING_Y = 8
LINE_HEIGHT = 1.4           # line box height as a multiple of font size
NARROW_GLYPH_RATIO = 0.6    # advance of a narrow glyph, in ems
WIDE_GLYPH_RATIO = 1.0      # advance of a wide (cjk, fullwidth) glyph, in ems


@dataclass(frozen=True)
class SizeBounds:
    min_width: float
    max_width: float
    min_height: float
    max_height: float


ROOT_BOUNDS = SizeBounds(min_width=160, max_width=360, min_height=56, max_height=400)
BRANCH_BOUNDS = SizeBounds(min_width=120, max_width=300, min_height=40, max_height=320)
LEAF_BOUNDS = SizeBounds(min_width=100, max_width=280, min_height=36, max_height=280)

BOUNDS_BY_KIND = {
    NodeKind.ROOT: ROOT_BOUNDS,
    NodeKind.BRANCH: BRANCH_BOUNDS,
    NodeKind.LEAF: LEAF_BOUNDS,
}


def glyph_width(char: str, font_size: float) -> float:
    """estimated horizontal advance of one character."""
    cells = wcwidth(char)
    if cells == 0:
        return 0.0  # combining marks, zero-width joiners
    if cells == 2:
        return font_size * WIDE_GLYPH_RATIO
    # cells == 1, or -1 for control characters
    return font_size * NARROW_GLYPH_RATIO


def text_width(text: str, font_size: float) -> float:
    return sum(glyph_width(c, font_size) for c in text)


def wrap_text(content: str, font_size: float, budget: float) -> list[str]:
    """break content into lines no wider than budget.

    explicit newlines are hard breaks. a line always receives at least one
    glyph, so a budget smaller than any glyph still terminates.
    """
    lines = []
    for paragraph in content.split("\n"):
        line = ""
        line_width = 0.0
        for char in paragraph:
            advance = glyph_width(char, font_size)
            if line and line_width + advance > budget:
                lines.append(line)
                line, line_width = "", 0.0
            line += char
            line_width += advance
        lines.append(line)
    return lines


def measure(
    content: str,
    font_size: float,
    max_width: float,
    bounds: Optional[SizeBounds] = None,
) -> Measurement:
    """measure content; never fails, empty content is one empty line."""
    bounds = bounds or LEAF_BOUNDS
    budget = max_width - 2 * PADDING_X
    lines = wrap_text(content, font_size, budget)

    longest = max(text_width(line, font_size) for line in lines)
    width = max(bounds.min_width, min(longest + 2 * PADDING_X, max_width))

    height = len(lines) * font_size * LINE_HEIGHT + 2 * PADDING_Y
    height = min(max(bounds.min_height, height), bounds.max_height)

    return Measurement(width=width, height=height, lines=tuple(lines))


class NodeSizer:
    """memoizing measurer, keyed by node id, content, font size and kind.

    callers invalidate a node when its content or font changes, or clear
    everything on bulk changes such as a theme switch.
    """

    def __init__(self, bounds_by_kind: Optional[dict[NodeKind, SizeBounds]] = None):
        self.bounds_by_kind = bounds_by_kind or BOUNDS_BY_KIND
        self._cache: dict[str, tuple[tuple, Measurement]] = {}
        self.hits = 0
        self.misses = 0

    def size_of(self, node: Node) -> Measurement:
        """measured box for node, from cache when the key still matches."""
        bounds = self.bounds_by_kind[node.kind]
        key = (node.content, node.style.font_size, node.kind)
        cached = self._cache.get(node.id)
        if cached is not None and cached[0] == key:
            self.hits += 1
            return cached[1]

        self.misses += 1
        result = measure(node.content, node.style.font_size, bounds.max_width, bounds)
        self._cache[node.id] = (key, result)
        return result

    def invalidate(self, node_id: str) -> None:
        self._cache.pop(node_id, None)

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)
