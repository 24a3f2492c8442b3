"""
Tests historique undo/redo — bornes, inverse, indépendance des snapshots
"""
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from theme_builder.core.schemas import BuilderSnapshot, ThemeBlock
from theme_builder.history import HistoryManager


def _state(n: int) -> BuilderSnapshot:
    return BuilderSnapshot(blocks=[ThemeBlock(id=f"b{i}", type="text") for i in range(n)])


def test_bound_evicts_oldest():
    h = HistoryManager()
    for i in range(51):
        h.push(_state(i))
    assert h.undo_depth == 50
    assert len(h.oldest().blocks) == 1


def test_custom_capacity():
    h = HistoryManager(max_size=3)
    for i in range(10):
        h.push(_state(i))
    assert h.undo_depth == 3


def test_undo_redo_inverse():
    h = HistoryManager()
    h.push(_state(1))
    h.push(_state(2))
    back = h.undo()
    assert len(back.blocks) == 1
    forward = h.redo()
    assert forward == _state(2)


def test_push_after_undo_clears_redo():
    h = HistoryManager()
    h.push(_state(1))
    h.push(_state(2))
    h.undo()
    assert h.can_redo()
    h.push(_state(3))
    assert not h.can_redo()


def test_undo_requires_two_entries():
    h = HistoryManager()
    assert h.undo() is None
    h.push(_state(0))
    assert not h.can_undo()
    assert h.undo() is None


def test_redo_empty_returns_none():
    assert HistoryManager().redo() is None


def test_snapshots_independent_of_live_state():
    h = HistoryManager()
    live = _state(1)
    h.push(live)
    h.push(_state(2))
    live.blocks[0].props["staticText"] = "modifié"
    assert h.undo().blocks[0].props == {}


def test_returned_state_is_a_copy():
    h = HistoryManager()
    h.push(_state(1))
    h.push(_state(2))
    first = h.undo()
    first.blocks.clear()
    assert len(h.redo().blocks) == 2
    assert len(h.undo().blocks) == 1


def test_clear():
    h = HistoryManager()
    h.push(_state(1))
    h.push(_state(2))
    h.clear()
    assert h.undo_depth == 0 and h.redo_depth == 0
