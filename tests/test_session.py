"""tests for the editor session."""

import pytest

from mindweave.core.models import Document, NodeKind
from mindweave.core.session import EditorSession
from mindweave.core.tree import NodeIndex


class TestLifecycle:
    """tests for new / load."""

    def test_new_selects_root(self, session):
        assert session.document.root.content == "Topic"
        assert session.selection.primary_id == session.document.root.id
        assert not session.can_undo()

    def test_load_is_a_copy(self):
        doc = Document.create("Loaded")
        session = EditorSession(doc)
        assert session.document is not doc
        assert session.document.root.position is not None
        assert doc.root.position is None

    def test_no_document(self):
        session = EditorSession()
        with pytest.raises(RuntimeError):
            session.add_child("x", "y")

    def test_reload_same_document_records_again(self):
        """history restarts on load even when the document key is unchanged."""
        session = EditorSession()
        doc = session.new("Topic")
        session.load(doc)
        assert session.history.present is not None
        session.add_child(session.document.root.id, "A")
        assert session.can_undo()


class TestMutations:
    """tests for session mutations."""

    def test_add_child_selects_new_node(self, session):
        new_id = session.add_child(session.document.root.id, "A")
        assert new_id is not None
        assert session.selection.primary_id == new_id
        assert session.can_undo()

    def test_noop_returns_none(self, session):
        assert session.add_child("missing", "A") is None
        assert not session.can_undo()

    def test_add_sibling(self, session):
        a = session.add_child(session.document.root.id, "A")
        b = session.add_sibling(a, "B")
        assert [c.id for c in session.document.root.children] == [a, b]
        assert session.add_sibling(session.document.root.id, "x") is None

    def test_add_children_returns_ids(self, session):
        ids = session.add_children(session.document.root.id, ["x", "y"], ai_generated=True)
        children = session.document.root.children
        assert ids == [c.id for c in children]
        assert all(c.metadata.ai_generated for c in children)

    def test_delete_selected(self, session):
        root_id = session.document.root.id
        a = session.add_child(root_id, "A")
        b = session.add_child(root_id, "B")
        session.add_child(root_id, "C")
        session.selection.toggle_multi(a, root_id)
        session.selection.toggle_multi(b, root_id)

        assert session.delete_selected() is True
        assert [c.content for c in session.document.root.children] == ["C"]
        assert session.selection.targets() == []

    def test_delete_prunes_selection(self, session):
        a = session.add_child(session.document.root.id, "A")
        assert session.selection.primary_id == a
        session.delete_node(a)
        assert session.selection.primary_id is None

    def test_apply_style_uses_selection(self, session):
        root_id = session.document.root.id
        a = session.add_child(root_id, "A")
        b = session.add_child(root_id, "B")
        session.selection.select(a)
        assert session.apply_style({"font_weight": 700}) is True
        index = NodeIndex(session.document.root)
        assert index.get(a).style.font_weight == 700
        assert index.get(b).style.font_weight == 400

    def test_move_and_collapse(self, session):
        root_id = session.document.root.id
        a = session.add_child(root_id, "A")
        b = session.add_child(root_id, "B")
        assert session.move_node(b, a) is True
        assert NodeIndex(session.document.root).get(a).kind == NodeKind.BRANCH
        assert session.move_node(a, b) is False
        assert session.toggle_collapse(a) is True

    def test_update_document(self, session):
        assert session.update_document(title="Renamed") is True
        assert session.document.title == "Renamed"
        assert session.update_document(title="Renamed") is False


class TestNotifications:
    """tests for change listeners."""

    def test_listener_called_on_change(self, session):
        seen = []
        unsubscribe = session.subscribe(seen.append)
        session.add_child(session.document.root.id, "A")
        assert seen == [session.document]

        session.add_child("missing", "B")
        assert len(seen) == 1

        unsubscribe()
        session.add_child(session.document.root.id, "C")
        assert len(seen) == 1

    def test_listener_called_on_undo(self, session):
        session.add_child(session.document.root.id, "A")
        seen = []
        session.subscribe(seen.append)
        session.undo()
        assert len(seen) == 1


class TestUndoRedo:
    """tests for session history."""

    def test_undo_redo_add(self, session):
        root_id = session.document.root.id
        session.add_child(root_id, "A")
        session.add_child(root_id, "B")

        assert session.undo() is True
        assert [c.content for c in session.document.root.children] == ["A"]
        assert session.undo() is True
        assert session.document.root.children == []
        assert session.undo() is False

        assert session.redo() is True
        assert [c.content for c in session.document.root.children] == ["A"]

    def test_undo_does_not_record(self, session):
        """restoring a snapshot never pushes a new history entry."""
        session.add_child(session.document.root.id, "A")
        session.undo()
        assert session.can_redo()
        assert len(session.history.past) == 0

    def test_edit_after_undo_clears_redo(self, session):
        root_id = session.document.root.id
        session.add_child(root_id, "A")
        session.undo()
        session.add_child(root_id, "B")
        assert not session.can_redo()
        assert [c.content for c in session.document.root.children] == ["B"]

    def test_restored_document_is_not_the_snapshot(self, session):
        session.add_child(session.document.root.id, "A")
        session.undo()
        assert session.document is not session.history.present

    def test_undo_prunes_selection(self, session):
        new_id = session.add_child(session.document.root.id, "A")
        session.undo()
        assert session.selection.primary_id != new_id


class TestClipboard:
    """tests for copy / paste."""

    def test_copy_paste(self, session):
        root_id = session.document.root.id
        a = session.add_child(root_id, "A")
        session.add_child(a, "A1")
        b = session.add_child(root_id, "B")

        assert session.copy(a) is True
        pasted = session.paste(b)
        node = NodeIndex(session.document.root).get(pasted)
        assert node.content == "A"
        assert node.children[0].content == "A1"
        assert pasted != a
        assert session.selection.primary_id == pasted

    def test_paste_without_clipboard(self, session):
        assert session.paste(session.document.root.id) is None
        assert session.copy("missing") is False

