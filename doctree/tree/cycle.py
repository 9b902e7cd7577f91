"""
DocTree Cycle Guard — Would moving a node under a new parent create a cycle?

Rules, in order:
    candidate parent is None          → never a cycle (root is always safe)
    candidate parent is the node      → cycle
    otherwise                         → cycle iff the candidate is a
                                        descendant of the node

Strategies:
    "forest"   canonical; fresh snapshot → build_forest → descend from node
    "closure"  NodeStore.is_descendant (recursive CTE / parent walk)

Both must agree; the test-suite runs the same fixtures through each.
"""

from __future__ import annotations

import logging
from typing import Optional

from doctree.tree.builder import Forest, build_forest
from doctree.tree.store import NodeStore

logger = logging.getLogger("doctree.tree.cycle")

STRATEGIES = ("forest", "closure")


def creates_cycle(forest: Forest, node_id: str, candidate_parent_id: Optional[str]) -> bool:
    """In-memory check against an already built forest."""
    if candidate_parent_id is None:
        return False
    if candidate_parent_id == node_id:
        return True
    return forest.is_descendant(node_id, candidate_parent_id)


class CycleGuard:
    """Owner-scoped cycle check backed by a NodeStore snapshot."""

    def __init__(self, store: NodeStore, strategy: str = "forest"):
        if strategy not in STRATEGIES:
            raise ValueError(f"Unknown cycle strategy '{strategy}'. Use one of {STRATEGIES}")
        self._store = store
        self._strategy = strategy

    @property
    def strategy(self) -> str:
        return self._strategy

    def would_create_cycle(
        self,
        owner: str,
        node_id: str,
        candidate_parent_id: Optional[str],
    ) -> bool:
        if candidate_parent_id is None:
            return False
        if candidate_parent_id == node_id:
            return True

        if self._strategy == "closure":
            result = self._store.is_descendant(owner, node_id, candidate_parent_id)
        else:
            forest = build_forest(self._store.list_all(owner))
            result = creates_cycle(forest, node_id, candidate_parent_id)

        if result:
            logger.debug(
                f"Cycle: '{candidate_parent_id}' lies below '{node_id}' "
                f"(owner={owner}, strategy={self._strategy})"
            )
        return result
