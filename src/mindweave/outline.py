"""ascii outline of a document: tree structure plus laid-out boxes at a glance."""

from __future__ import annotations

from typing import Optional

from rich.text import Text

from .core.models import Document, Node, NodeKind
from .core.selection import Selection


def render_outline(
    document: Document,
    selection: Optional[Selection] = None,
    show_geometry: bool = True,
) -> Text:
    """render the tree as styled ascii, one node per line."""
    lines: list[tuple[str, Node]] = []
    _render_node(document.root, lines)

    text = Text()
    text.append(f"{document.title}  ({document.layout_direction.value})\n", style="bold")
    for line, node in lines:
        if show_geometry:
            line += _geometry(node)
        if selection is not None and selection.is_selected(node.id):
            style = "bold cyan"
        elif node.kind == NodeKind.ROOT:
            style = "bold"
        elif node.metadata.ai_generated:
            style = "magenta"
        else:
            style = ""
        text.append(line + "\n", style=style)
    return text


def _render_node(node: Node, lines: list[tuple[str, Node]]) -> None:
    """render a node and its visible descendants, one line each, in document order."""
    stack = [(node, "", True, 0)]
    while stack:
        current, prefix, is_last, depth = stack.pop()
        connector = "" if depth == 0 else ("└─" if is_last else "├─")
        marker = "[+]" if current.collapsed and current.children else ""
        lines.append((f"{prefix}{connector}{marker}[{_label(current)}]", current))

        if current.collapsed:
            continue
        child_prefix = prefix + ("  " if is_last else "│ ") if depth > 0 else ""
        last = len(current.children) - 1
        for i, child in reversed(list(enumerate(current.children))):
            stack.append((child, child_prefix, i == last, depth + 1))


def _label(node: Node) -> str:
    """first line of content, trimmed for the outline."""
    first = node.content.split("\n")[0].strip()
    if len(first) > 30:
        return first[:27] + "..."
    return first


def _geometry(node: Node) -> str:
    if node.position is None or node.size is None:
        return ""
    return (
        f"  @({node.position.x:.0f}, {node.position.y:.0f})"
        f" {node.size.width:.0f}x{node.size.height:.0f}"
    )
