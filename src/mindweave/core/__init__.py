"""core primitives: document model, sizing, layout, mutation, history, selection."""

from .models import (
    Document,
    LayoutDirection,
    Measurement,
    Node,
    NodeAttachment,
    NodeBoundary,
    NodeImage,
    NodeKind,
    NodeRelationship,
    NodeStyle,
    NodeMetadata,
    Position,
)
from .sizing import NodeSizer, SizeBounds, measure
from .layout import Bounds, LayoutConfig, LayoutEngine, get_bounds
from .engine import MindMapEngine
from .history import MAX_UNDO_HISTORY, HistoryManager, HistoryRecorder
from .selection import Selection
from .session import EditorSession
from .tree import NodeIndex, derive_kinds, find_tree_errors

__all__ = [
    # models
    "Document",
    "LayoutDirection",
    "Measurement",
    "Node",
    "NodeAttachment",
    "NodeBoundary",
    "NodeImage",
    "NodeKind",
    "NodeRelationship",
    "NodeStyle",
    "NodeMetadata",
    "Position",
    # sizing + layout
    "NodeSizer",
    "SizeBounds",
    "measure",
    "Bounds",
    "LayoutConfig",
    "LayoutEngine",
    "get_bounds",
    # mutation + history
    "MindMapEngine",
    "MAX_UNDO_HISTORY",
    "HistoryManager",
    "HistoryRecorder",
    "Selection",
    "EditorSession",
    # tree utilities
    "NodeIndex",
    "derive_kinds",
    "find_tree_errors",
]
