"""
DocTree Integrity Audit — NetworkX check of a stored hierarchy.

Edges run parent → child. Reports:
    cycles        parent-pointer loops (should never exist at rest)
    dangling      nodes whose parent id does not resolve for the owner
    bad_parents   nodes whose parent is a file
    unreachable   nodes not reachable from any root through folder links
                  (includes everything below a dangling or bad parent)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List

import networkx as nx
from pydantic import BaseModel, Field

from doctree.engine.errors import TreeIntegrityError
from doctree.tree.models import AnyNode, NodeKind

logger = logging.getLogger("doctree.tree.integrity")


class IntegrityReport(BaseModel):
    owner: str
    node_count: int = 0
    cycles: List[List[str]] = Field(default_factory=list)
    dangling: List[str] = Field(default_factory=list)
    bad_parents: List[str] = Field(default_factory=list)
    unreachable: List[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not (self.cycles or self.dangling or self.bad_parents or self.unreachable)

    def summary(self) -> Dict[str, Any]:
        return {
            "owner": self.owner,
            "nodes": self.node_count,
            "cycles": len(self.cycles),
            "dangling": len(self.dangling),
            "bad_parents": len(self.bad_parents),
            "unreachable": len(self.unreachable),
        }

    def raise_for_errors(self) -> None:
        if not self.ok:
            raise TreeIntegrityError(
                f"Tree for owner '{self.owner}' violates integrity: {self.summary()}",
                owner=self.owner,
                report=self.model_dump(),
            )


def parent_graph(nodes: Iterable[AnyNode]) -> nx.DiGraph:
    """DiGraph with one vertex per node and a parent → child edge per resolved link."""
    graph = nx.DiGraph()
    node_list = list(nodes)
    for node in node_list:
        graph.add_node(node.id, kind=node.kind, title=node.title)
    for node in node_list:
        if node.parent is not None and graph.has_node(node.parent):
            graph.add_edge(node.parent, node.id)
    return graph


def audit_nodes(owner: str, nodes: Iterable[AnyNode]) -> IntegrityReport:
    node_list = [n for n in nodes if n.owner == owner]
    by_id = {n.id: n for n in node_list}
    graph = parent_graph(node_list)

    report = IntegrityReport(owner=owner, node_count=len(node_list))

    if not nx.is_directed_acyclic_graph(graph):
        report.cycles = [sorted(cycle) for cycle in nx.simple_cycles(graph)]

    for node in node_list:
        if node.parent is None:
            continue
        parent = by_id.get(node.parent)
        if parent is None:
            report.dangling.append(node.id)
        elif parent.kind != NodeKind.FOLDER:
            report.bad_parents.append(node.id)

    # Only folder → child links count for reachability
    tree_graph = nx.DiGraph()
    tree_graph.add_nodes_from(graph.nodes)
    tree_graph.add_edges_from(
        (u, v) for u, v in graph.edges if graph.nodes[u]["kind"] == NodeKind.FOLDER
    )
    reachable = set()
    for node in node_list:
        if node.parent is None:
            reachable.add(node.id)
            reachable |= nx.descendants(tree_graph, node.id)
    report.unreachable = [n.id for n in node_list if n.id not in reachable]

    if report.ok:
        logger.debug(f"Integrity OK for owner '{owner}' ({len(node_list)} nodes)")
    else:
        logger.warning(f"Integrity problems for owner '{owner}': {report.summary()}")
    return report
