"""tests for snapshot undo/redo."""

from mindweave.core.history import MAX_UNDO_HISTORY, HistoryManager, HistoryRecorder
from mindweave.core.models import Document


def _snapshots(n):
    doc = Document.create("s0")
    out = [doc]
    for i in range(1, n):
        doc = doc.clone()
        doc.title = f"s{i}"
        doc.touch()
        out.append(doc)
    return out


class TestHistoryManager:
    """tests for HistoryManager."""

    def test_empty(self):
        history = HistoryManager()
        assert history.present is None
        assert not history.can_undo()
        assert not history.can_redo()
        assert history.undo() is None
        assert history.redo() is None

    def test_scenario_undo_redo(self):
        """s0 -> s1 -> s2, undo twice, redo once."""
        s0, s1, s2 = _snapshots(3)
        history = HistoryManager()
        for s in (s0, s1, s2):
            history.record(s)

        assert history.undo() is s1
        assert history.undo() is s0
        assert history.future == [s1, s2]
        assert history.redo() is s1
        assert history.present is s1
        assert history.past == [s0]
        assert history.future == [s2]

    def test_round_trip(self):
        """n records, n-1 undos, n-1 redos land back on the last snapshot."""
        snaps = _snapshots(8)
        history = HistoryManager()
        for s in snaps:
            history.record(s)
        for _ in range(7):
            history.undo()
        assert history.present is snaps[0]
        assert not history.can_undo()
        for _ in range(7):
            history.redo()
        assert history.present is snaps[-1]
        assert not history.can_redo()

    def test_record_clears_future(self):
        """a new action after undo drops the redo branch."""
        s0, s1, s2 = _snapshots(3)
        history = HistoryManager()
        history.record(s0)
        history.record(s1)
        history.undo()
        assert history.can_redo()
        history.record(s2)
        assert not history.can_redo()
        assert history.past == [s0]

    def test_capacity_drops_oldest(self):
        snaps = _snapshots(MAX_UNDO_HISTORY + 5)
        history = HistoryManager()
        for s in snaps:
            history.record(s)
        assert len(history.past) == MAX_UNDO_HISTORY
        assert history.past[0] is snaps[4]
        assert history.present is snaps[-1]

    def test_custom_capacity(self):
        history = HistoryManager(max_history=2)
        for s in _snapshots(5):
            history.record(s)
        assert len(history.past) == 2

    def test_clear(self):
        history = HistoryManager()
        for s in _snapshots(3):
            history.record(s)
        history.undo()
        history.clear()
        assert history.present is None
        assert history.past == [] and history.future == []


class TestHistoryRecorder:
    """tests for HistoryRecorder."""

    def test_records_changes_only(self):
        """observing an unchanged document does not add an entry."""
        s0, s1 = _snapshots(2)
        history = HistoryManager()
        recorder = HistoryRecorder(history)

        assert recorder.observe(s0) is True
        assert recorder.observe(s0) is False
        assert recorder.observe(s1) is True
        assert len(history.past) == 1

    def test_records_a_copy(self):
        s0 = Document.create("s0")
        history = HistoryManager()
        HistoryRecorder(history).observe(s0)
        assert history.present is not s0
        s0.root.content = "mutated"
        assert history.present.root.content == "s0"

    def test_sync_skips_recording(self):
        s0, s1 = _snapshots(2)
        history = HistoryManager()
        recorder = HistoryRecorder(history)
        recorder.observe(s0)
        recorder.sync(s1)
        assert recorder.observe(s1) is False
        assert history.past == []

    def test_different_document_same_timestamp(self):
        a = Document.create("a")
        b = Document.create("b")
        b.modified_at = a.modified_at
        history = HistoryManager()
        recorder = HistoryRecorder(history)
        recorder.observe(a)
        assert recorder.observe(b) is True
