"""
DocTree Tree Builder — Flat parent-pointer records → arena forest.

The forest never links node objects to each other. It keeps:
    nodes     id → node
    children  folder id → ordered child ids
    roots     ordered root ids

Sibling order is input order; the store decides it (whole-tree snapshots
come ordered by (parent, kind, title), folder listings by (kind, title)).

Unreachable nodes: a node whose parent is missing from the input, or is not
a folder, is not attached anywhere. It and everything below it are omitted
from every tree view and listed in ``Forest.unreachable``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from doctree.tree.models import AnyNode, NodeKind

logger = logging.getLogger("doctree.tree.builder")


class Forest:
    """Arena of one owner's nodes with index-based child lists."""

    def __init__(self) -> None:
        self.nodes: Dict[str, AnyNode] = {}
        self.children: Dict[str, List[str]] = {}
        self.roots: List[str] = []
        self.unreachable: List[str] = []

    # -------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------

    def get(self, node_id: str) -> Optional[AnyNode]:
        return self.nodes.get(node_id)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def children_of(self, node_id: str) -> List[AnyNode]:
        """Direct children of a folder, in attachment order. Empty for files."""
        return [self.nodes[cid] for cid in self.children.get(node_id, [])]

    def root_nodes(self) -> List[AnyNode]:
        return [self.nodes[rid] for rid in self.roots]

    # -------------------------------------------------------------------
    # Traversal
    # -------------------------------------------------------------------

    def walk(self, start: Optional[str] = None) -> Iterator[Tuple[int, AnyNode]]:
        """
        Pre-order (folder before its children) iteration yielding (depth, node).
        ``start`` restricts the walk to one subtree, root included.
        """
        if start is None:
            stack = [(0, rid) for rid in reversed(self.roots)]
        elif start in self.nodes:
            stack = [(0, start)]
        else:
            return

        seen: Set[str] = set()
        while stack:
            depth, node_id = stack.pop()
            if node_id in seen:
                continue
            seen.add(node_id)
            yield depth, self.nodes[node_id]
            for child_id in reversed(self.children.get(node_id, [])):
                stack.append((depth + 1, child_id))

    def descendant_ids(self, node_id: str) -> Set[str]:
        """Ids reachable by following child links one or more times."""
        return {node.id for _, node in self.walk(node_id)} - {node_id}

    def is_descendant(self, ancestor_id: str, candidate_id: str) -> bool:
        """True when ``candidate_id`` is ``ancestor_id`` or lies below it."""
        if ancestor_id == candidate_id:
            return ancestor_id in self.nodes
        return any(node.id == candidate_id for _, node in self.walk(ancestor_id))

    def path_of(self, node_id: str, separator: str = "/") -> Optional[str]:
        """
        Title path from the root, e.g. "Projects/2024/notes.md".
        None when the node is absent or unreachable.
        """
        if node_id not in self.nodes or node_id in self._unreachable_set:
            return None
        titles: List[str] = []
        seen: Set[str] = set()
        current: Optional[str] = node_id
        while current is not None and current not in seen:
            seen.add(current)
            node = self.nodes[current]
            titles.append(node.title)
            current = node.parent
        titles.reverse()
        return separator.join(titles)

    @property
    def _unreachable_set(self) -> Set[str]:
        return set(self.unreachable)

    # -------------------------------------------------------------------
    # Materialization
    # -------------------------------------------------------------------

    def materialize(self, include_content: bool = False) -> List[Dict[str, Any]]:
        """
        Nested JSON-ready view of the reachable forest. Folders carry a
        ``children`` list; files carry ``content`` only when asked.
        """
        def _serialize(node_id: str, trail: Set[str]) -> Dict[str, Any]:
            node = self.nodes[node_id]
            data = node.model_dump(mode="json")
            if node.kind == NodeKind.FOLDER:
                data.pop("content", None)
                data["children"] = [
                    _serialize(cid, trail | {node_id})
                    for cid in self.children.get(node_id, [])
                    if cid not in trail
                ]
            elif not include_content:
                data.pop("content", None)
            return data

        return [_serialize(rid, set()) for rid in self.roots]


def build_forest(nodes: Iterable[AnyNode]) -> Forest:
    """
    Build a forest from flat records.

    Two passes: register every node, then attach each one to the root list
    or to its parent folder's child list. Nodes whose parent does not
    resolve to a folder stay unattached and end up in ``Forest.unreachable``.
    """
    forest = Forest()
    ordered: List[AnyNode] = []
    for node in nodes:
        forest.nodes[node.id] = node
        if node.kind == NodeKind.FOLDER:
            forest.children[node.id] = []
        ordered.append(node)

    for node in ordered:
        if node.parent is None:
            forest.roots.append(node.id)
            continue
        parent = forest.nodes.get(node.parent)
        if parent is not None and parent.kind == NodeKind.FOLDER:
            forest.children[parent.id].append(node.id)

    reachable = {node.id for _, node in forest.walk()}
    forest.unreachable = [node.id for node in ordered if node.id not in reachable]
    if forest.unreachable:
        logger.warning(
            f"{len(forest.unreachable)} node(s) unreachable from any root; "
            f"omitted from tree view: {forest.unreachable[:10]}"
        )
    return forest


def flatten(forest: Forest) -> List[AnyNode]:
    """Pre-order list of every reachable node, folders before their children."""
    return [node for _, node in forest.walk()]
