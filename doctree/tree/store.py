"""
DocTree Node Store — The persistence contract consumed by the tree engine.

Every call is owner-scoped: a node owned by someone else behaves exactly
like a missing one.

Implementations:
    MemoryNodeStore  dict-backed, thread-safe; used by tests and scripting
    SqlNodeStore     SQLAlchemy ``tree_nodes`` table (SQLite / PostgreSQL)

Ordering:
    list_all       (parent asc with root first, kind asc, title asc)
    list_children  (kind asc, title asc)
    list_recent    created_at desc

Deleting a folder removes its whole subtree; that cascade belongs to the
store, not to the engine.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Set, Union

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from doctree.db.base import as_utc, next_timestamp, utcnow
from doctree.db.models import NodeRecord, new_node_id
from doctree.db.session import session_scope
from doctree.engine.errors import PersistenceError
from doctree.tree.models import AnyNode, NodeKind, NodePatch, node_from_dict

logger = logging.getLogger("doctree.tree.store")


def _normalize_content(kind: Union[NodeKind, str], content: Optional[str]) -> Optional[str]:
    """Files always hold a string; an empty folder content means none."""
    if kind == NodeKind.FILE:
        return content if content is not None else ""
    return content or None


class NodeStore(ABC):
    """Owner-scoped record access for the tree engine."""

    @abstractmethod
    def list_all(self, owner: str) -> List[AnyNode]:
        """Every node of ``owner`` ordered (parent, kind, title)."""

    @abstractmethod
    def list_recent(self, owner: str) -> List[AnyNode]:
        """Every node of ``owner``, newest first."""

    @abstractmethod
    def list_children(self, owner: str, parent_id: Optional[str]) -> List[AnyNode]:
        """Direct children of ``parent_id`` (root level when None), ordered (kind, title)."""

    @abstractmethod
    def get_by_id(self, owner: str, node_id: str) -> Optional[AnyNode]:
        """The node, or None when absent or owned by someone else."""

    @abstractmethod
    def insert(
        self,
        owner: str,
        kind: Union[NodeKind, str],
        title: str,
        content: Optional[str] = None,
        parent: Optional[str] = None,
    ) -> AnyNode:
        """Persist a new node and return it with id and timestamps."""

    @abstractmethod
    def update_partial(self, owner: str, node_id: str, patch: NodePatch) -> Optional[AnyNode]:
        """
        Apply only the fields set on ``patch`` and advance ``updated_at``.
        None when id+owner does not match a node.
        """

    @abstractmethod
    def delete(self, owner: str, node_id: str) -> bool:
        """Remove the node (and its subtree). True if a row was removed."""

    @abstractmethod
    def is_descendant(self, owner: str, ancestor_id: str, candidate_id: str) -> bool:
        """
        True when ``candidate_id`` is ``ancestor_id`` or reachable below it
        through parent links.
        """


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------

class MemoryNodeStore(NodeStore):
    """Dict-backed store. Each public call holds one re-entrant lock."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._nodes: Dict[str, AnyNode] = {}

    def _owned(self, owner: str) -> List[AnyNode]:
        return [n for n in self._nodes.values() if n.owner == owner]

    def list_all(self, owner: str) -> List[AnyNode]:
        with self._lock:
            return sorted(
                self._owned(owner),
                key=lambda n: (n.parent is not None, n.parent or "", n.kind, n.title),
            )

    def list_recent(self, owner: str) -> List[AnyNode]:
        with self._lock:
            return sorted(self._owned(owner), key=lambda n: n.created_at, reverse=True)

    def list_children(self, owner: str, parent_id: Optional[str]) -> List[AnyNode]:
        with self._lock:
            return sorted(
                (n for n in self._owned(owner) if n.parent == parent_id),
                key=lambda n: (n.kind, n.title),
            )

    def get_by_id(self, owner: str, node_id: str) -> Optional[AnyNode]:
        with self._lock:
            node = self._nodes.get(node_id)
            if node is None or node.owner != owner:
                return None
            return node

    def insert(
        self,
        owner: str,
        kind: Union[NodeKind, str],
        title: str,
        content: Optional[str] = None,
        parent: Optional[str] = None,
    ) -> AnyNode:
        kind = NodeKind(kind)
        now = utcnow()
        node = node_from_dict({
            "id": new_node_id(),
            "owner": owner,
            "kind": kind.value,
            "title": title,
            "content": _normalize_content(kind, content),
            "parent": parent,
            "created_at": now,
            "updated_at": now,
        })
        with self._lock:
            self._nodes[node.id] = node
        return node

    def update_partial(self, owner: str, node_id: str, patch: NodePatch) -> Optional[AnyNode]:
        with self._lock:
            existing = self.get_by_id(owner, node_id)
            if existing is None:
                return None
            data = existing.model_dump()
            data.update(patch.supplied())
            data["updated_at"] = next_timestamp(existing.updated_at)
            updated = node_from_dict(data)
            self._nodes[node_id] = updated
            return updated

    def delete(self, owner: str, node_id: str) -> bool:
        with self._lock:
            if self.get_by_id(owner, node_id) is None:
                return False
            doomed = self._subtree_ids(owner, node_id)
            for doomed_id in doomed:
                del self._nodes[doomed_id]
            logger.debug(f"Deleted {len(doomed)} node(s) rooted at '{node_id}'")
            return True

    def _subtree_ids(self, owner: str, root_id: str) -> Set[str]:
        by_parent: Dict[str, List[str]] = {}
        for node in self._owned(owner):
            if node.parent is not None:
                by_parent.setdefault(node.parent, []).append(node.id)
        collected: Set[str] = set()
        stack = [root_id]
        while stack:
            current = stack.pop()
            if current in collected:
                continue
            collected.add(current)
            stack.extend(by_parent.get(current, []))
        return collected

    def is_descendant(self, owner: str, ancestor_id: str, candidate_id: str) -> bool:
        with self._lock:
            seen: Set[str] = set()
            current = self.get_by_id(owner, candidate_id)
            while current is not None and current.id not in seen:
                if current.id == ancestor_id:
                    return True
                seen.add(current.id)
                if current.parent is None:
                    return False
                current = self.get_by_id(owner, current.parent)
            return False

    def __len__(self) -> int:
        return len(self._nodes)


# ---------------------------------------------------------------------------
# SQLAlchemy store
# ---------------------------------------------------------------------------

def _record_to_node(record: NodeRecord) -> AnyNode:
    return node_from_dict({
        "id": record.id,
        "owner": record.owner,
        "kind": record.kind,
        "title": record.title,
        "content": record.content,
        "parent": record.parent,
        "created_at": as_utc(record.created_at),
        "updated_at": as_utc(record.updated_at),
    })


class SqlNodeStore(NodeStore):
    """
    ``tree_nodes`` table access. One session (one transaction) per call.
    Driver and constraint failures surface as PersistenceError.

    Usage:
        factory = init_db("sqlite:///doctree.db", create_tables=True)
        store = SqlNodeStore(factory)
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(
        self, operation: str, owner: str, node_id: Optional[str] = None
    ) -> Iterator[Session]:
        try:
            with session_scope(self._session_factory) as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"Store {operation} failed for owner '{owner}': {e}")
            raise PersistenceError(
                f"Store {operation} failed: {str(e).splitlines()[0]}",
                owner=owner, node_id=node_id, operation=operation,
                db_error=e.__class__.__name__,
            ) from e

    def list_all(self, owner: str) -> List[AnyNode]:
        stmt = (
            select(NodeRecord)
            .where(NodeRecord.owner == owner)
            .order_by(
                NodeRecord.parent.asc().nulls_first(),
                NodeRecord.kind.asc(),
                NodeRecord.title.asc(),
            )
        )
        with self._session("list_all", owner) as session:
            return [_record_to_node(r) for r in session.scalars(stmt)]

    def list_recent(self, owner: str) -> List[AnyNode]:
        stmt = (
            select(NodeRecord)
            .where(NodeRecord.owner == owner)
            .order_by(NodeRecord.created_at.desc())
        )
        with self._session("list_recent", owner) as session:
            return [_record_to_node(r) for r in session.scalars(stmt)]

    def list_children(self, owner: str, parent_id: Optional[str]) -> List[AnyNode]:
        parent_clause = (
            NodeRecord.parent.is_(None) if parent_id is None else NodeRecord.parent == parent_id
        )
        stmt = (
            select(NodeRecord)
            .where(NodeRecord.owner == owner, parent_clause)
            .order_by(NodeRecord.kind.asc(), NodeRecord.title.asc())
        )
        with self._session("list_children", owner, parent_id) as session:
            return [_record_to_node(r) for r in session.scalars(stmt)]

    def get_by_id(self, owner: str, node_id: str) -> Optional[AnyNode]:
        stmt = select(NodeRecord).where(NodeRecord.id == node_id, NodeRecord.owner == owner)
        with self._session("get", owner, node_id) as session:
            record = session.scalars(stmt).first()
            return _record_to_node(record) if record is not None else None

    def insert(
        self,
        owner: str,
        kind: Union[NodeKind, str],
        title: str,
        content: Optional[str] = None,
        parent: Optional[str] = None,
    ) -> AnyNode:
        kind = NodeKind(kind)
        now = utcnow()
        record = NodeRecord(
            id=new_node_id(),
            owner=owner,
            kind=kind.value,
            title=title,
            content=_normalize_content(kind, content),
            parent=parent,
            created_at=now,
            updated_at=now,
        )
        with self._session("insert", owner) as session:
            session.add(record)
            session.flush()
            return _record_to_node(record)

    def update_partial(self, owner: str, node_id: str, patch: NodePatch) -> Optional[AnyNode]:
        stmt = (
            select(NodeRecord)
            .where(NodeRecord.id == node_id, NodeRecord.owner == owner)
            .with_for_update()
        )
        with self._session("update", owner, node_id) as session:
            record = session.scalars(stmt).first()
            if record is None:
                return None
            for name, value in patch.supplied().items():
                setattr(record, name, value)
            record.updated_at = next_timestamp(record.updated_at)
            session.flush()
            return _record_to_node(record)

    def delete(self, owner: str, node_id: str) -> bool:
        stmt = delete(NodeRecord).where(NodeRecord.id == node_id, NodeRecord.owner == owner)
        with self._session("delete", owner, node_id) as session:
            result = session.execute(stmt)
            return result.rowcount > 0

    def is_descendant(self, owner: str, ancestor_id: str, candidate_id: str) -> bool:
        """
        Recursive CTE walking parent links upward from the candidate.
        UNION (not UNION ALL) stops on a stored cycle.
        """
        nodes = NodeRecord.__table__
        ancestry = (
            select(nodes.c.id, nodes.c.parent_id)
            .where(nodes.c.id == candidate_id, nodes.c.owner == owner)
            .cte("ancestry", recursive=True)
        )
        prev = ancestry.alias("prev")
        up = nodes.alias("up")
        ancestry = ancestry.union(
            select(up.c.id, up.c.parent_id)
            .where(up.c.id == prev.c.parent_id, up.c.owner == owner)
        )
        stmt = select(func.count()).select_from(ancestry).where(ancestry.c.id == ancestor_id)
        with self._session("is_descendant", owner, candidate_id) as session:
            return session.scalar(stmt) > 0
