"""tests for the node index."""

from mindweave.core.models import Node
from mindweave.core.tree import NodeIndex


def _node(node_id, *children):
    node = Node.create(node_id, node_id=node_id)
    node.children.extend(children)
    return node


class TestNodeIndex:
    """tests for NodeIndex lookups."""

    def test_ancestry(self, tree):
        index = NodeIndex(tree.root)
        assert index.is_descendant("a1", "a")
        assert index.is_descendant("a1", tree.root.id)
        assert not index.is_descendant("a", "a1")
        assert index.depth("a1") == 2
        assert index.path_to("a2") == [tree.root.id, "a", "a2"]
        assert index.path_to("missing") == []

    def test_repeated_ids_terminate(self):
        """a tree that reuses an id still answers ancestry questions."""
        root = _node("a", _node("b", _node("a")), _node("c"))
        index = NodeIndex(root)
        assert index.is_descendant("b", "c") is False
        assert index.depth("b") <= 2
        assert len(index.path_to("b")) <= 3
