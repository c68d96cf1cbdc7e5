"""pytest fixtures for mindweave tests."""

import pytest

from mindweave.core.engine import MindMapEngine
from mindweave.core.session import EditorSession


@pytest.fixture
def engine():
    """engine with a fresh sizing cache."""
    return MindMapEngine()


@pytest.fixture
def doc(engine):
    """document holding only the root "Topic"."""
    return engine.create_document("Topic")


@pytest.fixture
def tree(engine, doc):
    """root -> a (a1, a2), b, c with predictable ids."""
    root_id = doc.root.id
    doc = engine.add_children(doc, root_id, ["A", "B", "C"], node_ids=["a", "b", "c"])
    doc = engine.add_children(doc, "a", ["A1", "A2"], node_ids=["a1", "a2"])
    return doc


@pytest.fixture
def session():
    """session with a new document titled "Topic"."""
    s = EditorSession()
    s.new("Topic")
    return s
