"""tests for node sizing."""

import pytest

from mindweave.core.models import Node, NodeStyle
from mindweave.core.sizing import (
    LEAF_BOUNDS,
    PADDING_X,
    NodeSizer,
    SizeBounds,
    glyph_width,
    measure,
    wrap_text,
)

OPEN = SizeBounds(min_width=0, max_width=10_000, min_height=0, max_height=10_000)


class TestGlyphWidth:
    """tests for glyph width estimation."""

    def test_wide_glyphs_are_wider(self):
        """cjk glyphs advance further than latin ones."""
        assert glyph_width("中", 10) > glyph_width("a", 10)
        assert glyph_width("a", 10) == pytest.approx(6.0)
        assert glyph_width("中", 10) == pytest.approx(10.0)

    def test_combining_mark_is_zero_width(self):
        assert glyph_width("\u0301", 10) == 0.0


class TestWrapText:
    """tests for wrap_text."""

    def test_wraps_at_budget(self):
        """a line breaks when the next glyph would overflow."""
        assert wrap_text("abcdef", 10, 12) == ["ab", "cd", "ef"]

    def test_wide_glyphs_wrap_sooner(self):
        """the same budget holds fewer wide glyphs."""
        assert wrap_text("ab", 10, 15) == ["ab"]
        assert wrap_text("中文", 10, 15) == ["中", "文"]

    def test_explicit_newlines_are_hard_breaks(self):
        assert wrap_text("a\nb", 10, 1000) == ["a", "b"]
        assert wrap_text("a\n", 10, 1000) == ["a", ""]

    def test_too_narrow_budget_still_progresses(self):
        """every line gets at least one glyph."""
        assert wrap_text("abc", 14, -5) == ["a", "b", "c"]

    def test_empty_content_is_one_empty_line(self):
        assert wrap_text("", 14, 100) == [""]


class TestMeasure:
    """tests for measure."""

    def test_dimensions(self):
        """width is the longest line plus padding, height counts lines."""
        result = measure("abcdef", 10, 12 + 2 * PADDING_X, OPEN)
        assert result.lines == ("ab", "cd", "ef")
        assert result.width == pytest.approx(12 + 2 * PADDING_X)
        assert result.height == pytest.approx(3 * 10 * 1.4 + 16)

    def test_empty_content_uses_minimums(self):
        result = measure("", 14, 280)
        assert result.lines == ("",)
        assert result.width == LEAF_BOUNDS.min_width
        assert result.height == LEAF_BOUNDS.min_height

    def test_zero_width_budget_falls_back_to_minimum(self):
        """degenerate budgets never raise."""
        result = measure("abc", 14, 0)
        assert result.width == LEAF_BOUNDS.min_width
        assert len(result.lines) == 3

    def test_height_is_capped(self):
        result = measure("word " * 500, 14, LEAF_BOUNDS.max_width)
        assert result.height == LEAF_BOUNDS.max_height

    def test_width_never_exceeds_max(self):
        result = measure("x" * 200, 14, LEAF_BOUNDS.max_width)
        assert result.width <= LEAF_BOUNDS.max_width


class TestNodeSizer:
    """tests for the memoizing sizer."""

    def test_memoizes_by_node(self):
        sizer = NodeSizer()
        node = Node.create("hello")
        first = sizer.size_of(node)
        second = sizer.size_of(node)
        assert first is second
        assert (sizer.hits, sizer.misses) == (1, 1)

    def test_content_change_remeasures(self):
        """a stale key is never served."""
        sizer = NodeSizer()
        node = Node.create("short")
        sizer.size_of(node)
        node.content = "a much longer label that needs wrapping over lines"
        result = sizer.size_of(node)
        assert sizer.misses == 2
        assert len(result.lines) > 1

    def test_font_size_change_remeasures(self):
        sizer = NodeSizer()
        node = Node.create("hello")
        small = sizer.size_of(node)
        node.style = NodeStyle(font_size=40)
        assert sizer.size_of(node).height > small.height

    def test_invalidate_and_clear(self):
        sizer = NodeSizer()
        a, b = Node.create("a"), Node.create("b")
        sizer.size_of(a)
        sizer.size_of(b)
        sizer.invalidate(a.id)
        assert len(sizer) == 1
        sizer.clear()
        assert len(sizer) == 0
