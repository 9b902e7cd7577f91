"""Tests for doctree.tree.cycle — both strategies over both stores."""

import pytest

from doctree.tree.builder import build_forest
from doctree.tree.cycle import STRATEGIES, CycleGuard, creates_cycle
from doctree.tree.models import NodePatch


@pytest.fixture
def layout(service, owner):
    """
    f1/
      f2/
        d1
    f3/
      f4/
    """
    f1 = service.create(owner, {"kind": "folder", "title": "f1"})
    f2 = service.create(owner, {"kind": "folder", "title": "f2", "parent": f1.id})
    d1 = service.create(owner, {"kind": "file", "title": "d1", "parent": f2.id})
    f3 = service.create(owner, {"kind": "folder", "title": "f3"})
    f4 = service.create(owner, {"kind": "folder", "title": "f4", "parent": f3.id})
    return {"f1": f1.id, "f2": f2.id, "d1": d1.id, "f3": f3.id, "f4": f4.id}


CASES = [
    # (node, candidate parent, expected)
    ("f1", None, False),
    ("d1", None, False),
    ("f1", "f1", True),
    ("f1", "f2", True),
    ("f1", "d1", True),
    ("f2", "d1", True),
    ("f2", "f1", False),
    ("d1", "f1", False),
    ("f1", "f3", False),
    ("f3", "f2", False),
    ("f4", "f1", False),
    ("f3", "f4", True),
]


@pytest.mark.parametrize("strategy", STRATEGIES)
@pytest.mark.parametrize("node,candidate,expected", CASES)
def test_guard(store, layout, owner, strategy, node, candidate, expected):
    guard = CycleGuard(store, strategy=strategy)
    candidate_id = layout[candidate] if candidate else None
    assert guard.would_create_cycle(owner, layout[node], candidate_id) is expected


@pytest.mark.parametrize("node,candidate,expected", CASES)
def test_strategies_agree(store, layout, owner, node, candidate, expected):
    candidate_id = layout[candidate] if candidate else None
    results = {
        strategy: CycleGuard(store, strategy=strategy).would_create_cycle(
            owner, layout[node], candidate_id
        )
        for strategy in STRATEGIES
    }
    assert results == {"forest": expected, "closure": expected}


@pytest.mark.parametrize("strategy", STRATEGIES)
def test_self_parent_always_cycle(store, owner, strategy):
    guard = CycleGuard(store, strategy=strategy)
    assert guard.would_create_cycle(owner, "anything", "anything") is True


@pytest.mark.parametrize("strategy", STRATEGIES)
def test_other_owner_sees_no_descendants(store, layout, strategy):
    guard = CycleGuard(store, strategy=strategy)
    assert guard.would_create_cycle("bob", layout["f1"], layout["f2"]) is False


@pytest.mark.parametrize("strategy", STRATEGIES)
def test_unknown_candidate_is_not_a_cycle(store, layout, owner, strategy):
    guard = CycleGuard(store, strategy=strategy)
    assert guard.would_create_cycle(owner, layout["f1"], "does-not-exist") is False


@pytest.mark.parametrize("strategy", STRATEGIES)
def test_stored_cycle_terminates(store, layout, owner, strategy):
    # Corrupt the store directly; the guard must still answer.
    store.update_partial(owner, layout["f1"], NodePatch(parent=layout["f2"]))
    guard = CycleGuard(store, strategy=strategy)
    assert guard.would_create_cycle(owner, layout["f3"], layout["f1"]) is False
    assert guard.would_create_cycle(owner, layout["f2"], layout["f1"]) is True


def test_unknown_strategy_rejected(memory_store):
    with pytest.raises(ValueError, match="Unknown cycle strategy"):
        CycleGuard(memory_store, strategy="magic")


def test_strategy_property(memory_store):
    assert CycleGuard(memory_store).strategy == "forest"
    assert CycleGuard(memory_store, strategy="closure").strategy == "closure"


class TestCreatesCycle:

    def test_against_forest(self, node_factory):
        forest = build_forest([
            node_factory("a", kind="folder"),
            node_factory("b", kind="folder", parent="a"),
            node_factory("c", parent="b"),
        ])
        assert creates_cycle(forest, "a", "c") is True
        assert creates_cycle(forest, "a", "a") is True
        assert creates_cycle(forest, "c", "a") is False
        assert creates_cycle(forest, "a", None) is False
