"""core data model for mindweave.

a document is one rooted tree of positioned, variable-size nodes.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, replace, fields
from enum import Enum
from typing import Optional


# --- configuration ---

DEFAULT_FONT_FAMILY = "Microsoft YaHei, sans-serif"
DEFAULT_THEME = "ai-blue"
DEFAULT_EDGE_STYLE = "curve"


class NodeKind(Enum):
    ROOT = "root"       # no parent
    BRANCH = "branch"   # has children
    LEAF = "leaf"       # no children


class LayoutDirection(Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    FREE = "free"       # manual positioning, never auto-laid out


@dataclass(frozen=True)
class Position:
    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, d: dict) -> Position:
        return cls(x=d.get("x", 0.0), y=d.get("y", 0.0))


@dataclass(frozen=True)
class Measurement:
    """measured box of a node: wrapped lines plus width/height."""

    width: float
    height: float
    lines: tuple[str, ...] = ("",)

    def to_dict(self) -> dict:
        return {"width": self.width, "height": self.height, "lines": list(self.lines)}

    @classmethod
    def from_dict(cls, d: dict) -> Measurement:
        return cls(
            width=d["width"],
            height=d["height"],
            lines=tuple(d.get("lines", [""])),
        )


@dataclass(frozen=True)
class NodeStyle:
    """visual style. only font_size and font_family affect sizing."""

    background_color: str = "#f3f4f6"
    border_color: str = "#d1d5db"
    border_width: int = 1
    text_color: str = "#1f2937"
    font_size: int = 14
    font_weight: int = 400
    font_family: str = DEFAULT_FONT_FAMILY
    font_style: str = "normal"          # normal | italic
    text_decoration: str = "none"       # none | underline
    text_align: str = "center"          # left | center | right
    shape: str = "rounded"              # rounded | rectangle | ellipse

    def merged(self, changes: dict) -> NodeStyle:
        """return a copy with `changes` applied. unknown keys raise ValueError."""
        unknown = set(changes) - STYLE_FIELDS
        if unknown:
            raise ValueError(f"unknown style field(s): {', '.join(sorted(unknown))}")
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, d: dict) -> NodeStyle:
        return cls(**{k: v for k, v in d.items() if k in STYLE_FIELDS})


STYLE_FIELDS = frozenset(f.name for f in fields(NodeStyle))
SIZE_AFFECTING_STYLE_FIELDS = frozenset({"font_size", "font_family"})

ROOT_STYLE = NodeStyle(
    background_color="#3b82f6",
    border_color="#1d4ed8",
    border_width=2,
    text_color="#ffffff",
    font_size=18,
    font_weight=600,
)
NODE_STYLE = NodeStyle()
AI_NODE_STYLE = NodeStyle(
    background_color="#dbeafe",
    border_color="#3b82f6",
    border_width=2,
    text_color="#1e3a8a",
    font_weight=500,
)


@dataclass(frozen=True)
class NodeMetadata:
    created_at: int
    modified_at: int
    ai_generated: bool = False
    ai_provider_id: Optional[str] = None
    expand_level: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "created_at": self.created_at,
            "modified_at": self.modified_at,
            "ai_generated": self.ai_generated,
            "ai_provider_id": self.ai_provider_id,
            "expand_level": self.expand_level,
        }

    @classmethod
    def from_dict(cls, d: dict) -> NodeMetadata:
        now = now_ms()
        return cls(
            created_at=d.get("created_at", now),
            modified_at=d.get("modified_at", now),
            ai_generated=d.get("ai_generated", False),
            ai_provider_id=d.get("ai_provider_id"),
            expand_level=d.get("expand_level"),
        )


# --- enrichment ---

@dataclass(frozen=True)
class NodeHyperlink:
    url: str
    type: str = "url"   # url | email | topic | file
    title: Optional[str] = None
    target_node_id: Optional[str] = None  # for type == "topic"

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "type": self.type,
            "title": self.title,
            "target_node_id": self.target_node_id,
        }

    @classmethod
    def from_dict(cls, d: dict) -> NodeHyperlink:
        return cls(
            url=d["url"],
            type=d.get("type", "url"),
            title=d.get("title"),
            target_node_id=d.get("target_node_id"),
        )


@dataclass(frozen=True)
class NodeNotes:
    content: str
    format: str = "text"    # text | markdown | html
    last_modified: int = 0

    def to_dict(self) -> dict:
        return {"content": self.content, "format": self.format, "last_modified": self.last_modified}

    @classmethod
    def from_dict(cls, d: dict) -> NodeNotes:
        return cls(
            content=d["content"],
            format=d.get("format", "text"),
            last_modified=d.get("last_modified", 0),
        )


@dataclass(frozen=True)
class NodeLabel:
    id: str
    text: str
    color: str
    background_color: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "color": self.color,
            "background_color": self.background_color,
        }

    @classmethod
    def from_dict(cls, d: dict) -> NodeLabel:
        return cls(
            id=d["id"],
            text=d["text"],
            color=d["color"],
            background_color=d.get("background_color"),
        )


@dataclass(frozen=True)
class NodeMarker:
    id: str
    type: str           # priority | progress | risk | emotion | custom
    value: str | int    # priority 1-5, progress 0-100, ...
    icon: Optional[str] = None
    color: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "value": self.value,
            "icon": self.icon,
            "color": self.color,
        }

    @classmethod
    def from_dict(cls, d: dict) -> NodeMarker:
        return cls(
            id=d["id"],
            type=d["type"],
            value=d["value"],
            icon=d.get("icon"),
            color=d.get("color"),
        )


@dataclass(frozen=True)
class NodeTask:
    enabled: bool = True
    status: str = "not-started"     # not-started | in-progress | completed | cancelled
    priority: Optional[str] = None  # low | medium | high
    start_date: Optional[int] = None
    due_date: Optional[int] = None
    assignees: tuple[str, ...] = ()
    progress: Optional[int] = None  # 0-100

    def to_dict(self) -> dict:
        return {
            "enabled": self.enabled,
            "status": self.status,
            "priority": self.priority,
            "start_date": self.start_date,
            "due_date": self.due_date,
            "assignees": list(self.assignees),
            "progress": self.progress,
        }

    @classmethod
    def from_dict(cls, d: dict) -> NodeTask:
        return cls(
            enabled=d.get("enabled", True),
            status=d.get("status", "not-started"),
            priority=d.get("priority"),
            start_date=d.get("start_date"),
            due_date=d.get("due_date"),
            assignees=tuple(d.get("assignees", ())),
            progress=d.get("progress"),
        )


@dataclass(frozen=True)
class NodeImage:
    id: str
    url: str            # external url or data: uri
    width: float
    height: float
    alignment: str = "center"   # left | center | right
    size: str = "medium"        # thumbnail | small | medium | large | original

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "width": self.width,
            "height": self.height,
            "alignment": self.alignment,
            "size": self.size,
        }

    @classmethod
    def from_dict(cls, d: dict) -> NodeImage:
        return cls(
            id=d["id"],
            url=d["url"],
            width=d.get("width", 0),
            height=d.get("height", 0),
            alignment=d.get("alignment", "center"),
            size=d.get("size", "medium"),
        )


@dataclass(frozen=True)
class NodeAttachment:
    id: str
    name: str
    url: str
    size: int = 0       # bytes
    mime_type: str = "application/octet-stream"
    title: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "size": self.size,
            "mime_type": self.mime_type,
            "title": self.title,
        }

    @classmethod
    def from_dict(cls, d: dict) -> NodeAttachment:
        return cls(
            id=d["id"],
            name=d["name"],
            url=d["url"],
            size=d.get("size", 0),
            mime_type=d.get("mime_type", "application/octet-stream"),
            title=d.get("title"),
        )


# --- document-level annotations ---

@dataclass(frozen=True)
class NodeBoundary:
    """visual grouping drawn around the nodes in scope."""

    id: str
    scope: tuple[str, ...]
    color: str = "#3b82f6"
    shape: str = "rounded"      # rounded | rectangle
    label: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "scope": list(self.scope),
            "color": self.color,
            "shape": self.shape,
            "label": self.label,
        }

    @classmethod
    def from_dict(cls, d: dict) -> NodeBoundary:
        return cls(
            id=d["id"],
            scope=tuple(d.get("scope", ())),
            color=d.get("color", "#3b82f6"),
            shape=d.get("shape", "rounded"),
            label=d.get("label"),
        )


@dataclass(frozen=True)
class NodeRelationship:
    """cross-tree connector between two nodes."""

    id: str
    from_node_id: str
    to_node_id: str
    type: str = "dashed"    # solid | dashed | dotted
    color: str = "#6b7280"
    label: Optional[str] = None
    arrow: str = "end"      # none | start | end | both

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "from_node_id": self.from_node_id,
            "to_node_id": self.to_node_id,
            "type": self.type,
            "color": self.color,
            "label": self.label,
            "arrow": self.arrow,
        }

    @classmethod
    def from_dict(cls, d: dict) -> NodeRelationship:
        return cls(
            id=d["id"],
            from_node_id=d["from_node_id"],
            to_node_id=d["to_node_id"],
            type=d.get("type", "dashed"),
            color=d.get("color", "#6b7280"),
            label=d.get("label"),
            arrow=d.get("arrow", "end"),
        )


@dataclass
class Node:
    """single node in the mind map tree."""

    id: str
    content: str
    kind: NodeKind = NodeKind.LEAF
    style: NodeStyle = NODE_STYLE
    children: list[Node] = field(default_factory=list)
    collapsed: bool = False
    metadata: NodeMetadata = field(default_factory=lambda: NodeMetadata(now_ms(), now_ms()))

    # set by the layout engine; None until laid out, or while hidden under a collapsed ancestor
    position: Optional[Position] = None
    size: Optional[Measurement] = None

    # enrichment
    icon: Optional[str] = None
    hyperlink: Optional[NodeHyperlink] = None
    notes: Optional[NodeNotes] = None
    labels: tuple[NodeLabel, ...] = ()
    markers: tuple[NodeMarker, ...] = ()
    task: Optional[NodeTask] = None
    images: tuple[NodeImage, ...] = ()
    attachments: tuple[NodeAttachment, ...] = ()

    @classmethod
    def create(
        cls,
        content: str,
        node_id: Optional[str] = None,
        ai_generated: bool = False,
        ai_provider_id: Optional[str] = None,
    ) -> Node:
        """create a fresh leaf node."""
        now = now_ms()
        return cls(
            id=node_id or generate_id(),
            content=content,
            style=AI_NODE_STYLE if ai_generated else NODE_STYLE,
            metadata=NodeMetadata(
                created_at=now,
                modified_at=now,
                ai_generated=ai_generated,
                ai_provider_id=ai_provider_id,
            ),
        )

    @classmethod
    def create_root(cls, content: str) -> Node:
        """create a root node for a new document."""
        node = cls.create(content)
        node.kind = NodeKind.ROOT
        node.style = ROOT_STYLE
        return node

    def clone(self) -> Node:
        """structural deep copy of this subtree.

        value fields are frozen and shared; nodes and children lists are new.
        """
        copy = replace(self, children=[])
        stack = [(self, copy)]
        while stack:
            source, target = stack.pop()
            target.children = [replace(child, children=[]) for child in source.children]
            stack.extend(zip(source.children, target.children))
        return copy

    def walk(self):
        """yield this node and its descendants in document (pre-)order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def to_dict(self, include_children: bool = True) -> dict:
        """serialize to dict for json. without children, "children" is an empty list."""
        d = self._own_dict()
        if not include_children:
            return d
        stack = [(self, d)]
        while stack:
            node, out = stack.pop()
            out["children"] = [child._own_dict() for child in node.children]
            stack.extend(zip(node.children, out["children"]))
        return d

    def _own_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "kind": self.kind.value,
            "style": self.style.to_dict(),
            "children": [],
            "collapsed": self.collapsed,
            "metadata": self.metadata.to_dict(),
            "position": self.position.to_dict() if self.position else None,
            "size": self.size.to_dict() if self.size else None,
            "icon": self.icon,
            "hyperlink": self.hyperlink.to_dict() if self.hyperlink else None,
            "notes": self.notes.to_dict() if self.notes else None,
            "labels": [label.to_dict() for label in self.labels],
            "markers": [marker.to_dict() for marker in self.markers],
            "task": self.task.to_dict() if self.task else None,
            "images": [image.to_dict() for image in self.images],
            "attachments": [attachment.to_dict() for attachment in self.attachments],
        }

    @classmethod
    def from_dict(cls, d: dict) -> Node:
        """deserialize from dict. missing optional keys fall back to defaults."""
        root = cls._from_own_dict(d)
        stack = [(d, root)]
        while stack:
            source, node = stack.pop()
            child_dicts = source.get("children") or []
            node.children = [cls._from_own_dict(c) for c in child_dicts]
            stack.extend(zip(child_dicts, node.children))
        return root

    @classmethod
    def _from_own_dict(cls, d: dict) -> Node:
        return cls(
            id=d["id"],
            content=d.get("content", ""),
            kind=NodeKind(d.get("kind", "leaf")),
            style=NodeStyle.from_dict(d.get("style") or {}),
            collapsed=d.get("collapsed", False),
            metadata=NodeMetadata.from_dict(d.get("metadata") or {}),
            position=Position.from_dict(d["position"]) if d.get("position") else None,
            size=Measurement.from_dict(d["size"]) if d.get("size") else None,
            icon=d.get("icon"),
            hyperlink=NodeHyperlink.from_dict(d["hyperlink"]) if d.get("hyperlink") else None,
            notes=NodeNotes.from_dict(d["notes"]) if d.get("notes") else None,
            labels=tuple(NodeLabel.from_dict(x) for x in d.get("labels", [])),
            markers=tuple(NodeMarker.from_dict(x) for x in d.get("markers", [])),
            task=NodeTask.from_dict(d["task"]) if d.get("task") else None,
            images=tuple(NodeImage.from_dict(x) for x in d.get("images", [])),
            attachments=tuple(NodeAttachment.from_dict(x) for x in d.get("attachments", [])),
        )


def _tuple_of(value_type):
    def convert(items):
        return tuple(x if isinstance(x, value_type) else value_type.from_dict(x) for x in items)
    return convert


# fields update_node may touch, and how to coerce a plain dict value into them
EDITABLE_NODE_FIELDS = {
    "content": None,
    "style": None,      # partial dict merged into NodeStyle
    "icon": None,
    "hyperlink": NodeHyperlink.from_dict,
    "notes": NodeNotes.from_dict,
    "labels": _tuple_of(NodeLabel),
    "markers": _tuple_of(NodeMarker),
    "task": NodeTask.from_dict,
    "images": _tuple_of(NodeImage),
    "attachments": _tuple_of(NodeAttachment),
}


@dataclass
class Document:
    """a whole mind map: owns its root and, through it, every node."""

    id: str
    title: str
    root: Node
    layout_direction: LayoutDirection = LayoutDirection.HORIZONTAL
    theme: str = DEFAULT_THEME
    edge_style: str = DEFAULT_EDGE_STYLE   # curve | straight | orthogonal
    created_at: int = field(default_factory=lambda: now_ms())
    modified_at: int = field(default_factory=lambda: now_ms())
    relationships: tuple[NodeRelationship, ...] = ()
    boundaries: tuple[NodeBoundary, ...] = ()

    @classmethod
    def create(
        cls,
        title: str,
        layout_direction: LayoutDirection = LayoutDirection.HORIZONTAL,
    ) -> Document:
        """create an unlaid-out document whose root carries the title."""
        now = now_ms()
        return cls(
            id=generate_id(),
            title=title,
            root=Node.create_root(title),
            layout_direction=layout_direction,
            created_at=now,
            modified_at=now,
        )

    def clone(self) -> Document:
        """independent snapshot of the document (see Node.clone)."""
        return replace(self, root=self.root.clone())

    def touch(self) -> None:
        """bump modified_at; strictly increasing even within one millisecond."""
        self.modified_at = max(now_ms(), self.modified_at + 1)

    def to_dict(self) -> dict:
        """serialize to dict for json."""
        return {
            "id": self.id,
            "title": self.title,
            "root": self.root.to_dict(),
            "layout_direction": self.layout_direction.value,
            "theme": self.theme,
            "edge_style": self.edge_style,
            "created_at": self.created_at,
            "modified_at": self.modified_at,
            "relationships": [r.to_dict() for r in self.relationships],
            "boundaries": [b.to_dict() for b in self.boundaries],
        }

    @classmethod
    def from_dict(cls, d: dict) -> Document:
        """deserialize from dict."""
        now = now_ms()
        return cls(
            id=d.get("id") or generate_id(),
            title=d.get("title", ""),
            root=Node.from_dict(d["root"]),
            layout_direction=parse_direction(d.get("layout_direction", "horizontal")),
            theme=d.get("theme", DEFAULT_THEME),
            edge_style=d.get("edge_style", DEFAULT_EDGE_STYLE),
            created_at=d.get("created_at", now),
            modified_at=d.get("modified_at", now),
            relationships=tuple(
                NodeRelationship.from_dict(x) for x in d.get("relationships", [])
            ),
            boundaries=tuple(NodeBoundary.from_dict(x) for x in d.get("boundaries", [])),
        )


def parse_direction(value: str | LayoutDirection) -> LayoutDirection:
    """coerce a direction string; raises ValueError for unknown names."""
    if isinstance(value, LayoutDirection):
        return value
    try:
        return LayoutDirection(value.lower())
    except ValueError:
        raise ValueError(f"unknown layout direction: {value}") from None


def generate_id() -> str:
    """generate a short unique id."""
    return uuid.uuid4().hex[:8]


def now_ms() -> int:
    """current wall-clock time in integer milliseconds."""
    return time.time_ns() // 1_000_000
