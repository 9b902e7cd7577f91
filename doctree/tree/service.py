"""
DocTree Tree Service — Safe create/update/move/delete over a NodeStore.

Composes the validator, the cycle guard and the store:

    intent → validate → (parent change? cycle guard + parent check) → store

Parent-changing mutations run under a per-owner lock so the existence fetch,
the cycle check and the write see one consistent snapshot; two concurrent
moves for the same owner cannot both pass against stale state.

Errors are raised, never returned:
    NodeNotFoundError       node (or requested parent) absent for this owner
    NodeValidationError     structural rule violated
    CircularReferenceError  new parent lies inside the node's own subtree
    PersistenceError        store failed, or returned nothing on an expected write
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from doctree.engine.errors import (
    CircularReferenceError,
    DocTreeError,
    NodeNotFoundError,
    NodeValidationError,
    PersistenceError,
)
from doctree.engine.logging import log, log_node_operation, log_tree_event
from doctree.tree.builder import Forest, build_forest
from doctree.tree.cycle import CycleGuard
from doctree.tree.integrity import IntegrityReport, audit_nodes
from doctree.tree.models import AnyNode, NodeCreate, NodeKind, NodePatch
from doctree.tree.store import NodeStore
from doctree.tree.validator import validate_create, validate_update

logger = logging.getLogger("doctree.tree.service")

IntentT = TypeVar("IntentT", bound=BaseModel)


def _coerce_intent(
    model: Type[IntentT],
    data: Union[IntentT, Dict[str, Any]],
    owner: str,
    operation: str,
    node_id: Optional[str] = None,
) -> IntentT:
    """Dict payloads → intent model; malformed payloads become NodeValidationError."""
    if isinstance(data, model):
        return data
    try:
        return model(**data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        raise NodeValidationError(
            f"invalid {field or 'payload'}: {first.get('msg', 'invalid value')}",
            owner=owner, node_id=node_id, field=field, operation=operation,
        ) from e


class TreeService:
    """
    Owner-scoped document tree operations.

    Usage:
        service = TreeService(MemoryNodeStore())
        notes = service.create("alice", NodeCreate(kind="folder", title="Notes"))
        service.move("alice", doc.id, notes.id)
    """

    def __init__(self, store: NodeStore, cycle_strategy: str = "forest"):
        self._store = store
        self._guard = CycleGuard(store, strategy=cycle_strategy)
        # owner → [lock, holders]; entries are dropped once nobody holds or waits
        self._owner_locks: Dict[str, list] = {}
        self._locks_guard = threading.Lock()

    @property
    def store(self) -> NodeStore:
        return self._store

    @property
    def guard(self) -> CycleGuard:
        return self._guard

    @contextmanager
    def _owner_lock(self, owner: str) -> Iterator[None]:
        with self._locks_guard:
            entry = self._owner_locks.get(owner)
            if entry is None:
                entry = self._owner_locks[owner] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._owner_locks[owner]

    # -------------------------------------------------------------------
    # Read path
    # -------------------------------------------------------------------

    def get(self, owner: str, node_id: str) -> AnyNode:
        node = self._store.get_by_id(owner, node_id)
        if node is None:
            raise NodeNotFoundError(
                f"Node '{node_id}' not found", owner=owner, node_id=node_id, operation="get"
            )
        return node

    def list_children(self, owner: str, parent_id: Optional[str] = None) -> List[AnyNode]:
        """Folder listing ordered (kind, title). Root level when parent_id is None."""
        if parent_id is not None:
            self._require_folder(owner, parent_id, operation="list")
        return self._store.list_children(owner, parent_id)

    def list_recent(self, owner: str) -> List[AnyNode]:
        return self._store.list_recent(owner)

    def tree(self, owner: str) -> Forest:
        """Whole-tree view built from a fresh snapshot."""
        forest = build_forest(self._store.list_all(owner))
        if forest.unreachable:
            log(log_tree_event(
                "unreachable_nodes",
                owner=owner,
                details={"node_ids": forest.unreachable},
            ))
        return forest

    def would_create_cycle(
        self, owner: str, node_id: str, candidate_parent_id: Optional[str]
    ) -> bool:
        return self._guard.would_create_cycle(owner, node_id, candidate_parent_id)

    def audit(self, owner: str) -> IntegrityReport:
        report = audit_nodes(owner, self._store.list_all(owner))
        if not report.ok:
            log(log_tree_event("integrity_violation", owner=owner, details=report.summary(),
                               level="ERROR"))
        return report

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------

    def create(self, owner: str, data: Union[NodeCreate, Dict[str, Any]]) -> AnyNode:
        start = time.monotonic()
        try:
            data = _coerce_intent(NodeCreate, data, owner, "create")
            error = validate_create(data)
            if error:
                raise error.with_context(owner=owner, operation="create")

            with self._owner_lock(owner):
                if data.parent is not None:
                    self._require_folder(owner, data.parent, operation="create")
                node = self._store.insert(
                    owner,
                    kind=data.kind,
                    title=data.title,
                    content=data.content if data.kind == NodeKind.FILE else None,
                    parent=data.parent,
                )
        except DocTreeError as e:
            self._log_failure("create", owner, None, start, e)
            raise

        logger.info(f"Created {node.kind} '{node.title}' ({node.id}) for owner '{owner}'")
        log(log_node_operation(
            "create", owner, node.id, True, self._elapsed(start),
            kind=node.kind, parent_id=node.parent,
        ))
        return node

    def move(self, owner: str, node_id: str, new_parent_id: Optional[str]) -> AnyNode:
        """
        Re-parent a node. Moving to the current parent is a no-op: the node
        comes back unchanged and ``updated_at`` does not advance.
        """
        start = time.monotonic()
        try:
            with self._owner_lock(owner):
                existing = self.get(owner, node_id)
                if existing.parent == new_parent_id:
                    return existing
                self._check_new_parent(owner, existing, new_parent_id, operation="move")
                updated = self._store.update_partial(
                    owner, node_id, NodePatch(parent=new_parent_id)
                )
                if updated is None:
                    raise PersistenceError(
                        f"Store returned no row moving node '{node_id}'",
                        owner=owner, node_id=node_id, operation="move",
                    )
        except DocTreeError as e:
            self._log_failure("move", owner, node_id, start, e)
            raise

        logger.info(f"Moved '{node_id}' under '{new_parent_id}' for owner '{owner}'")
        log(log_node_operation(
            "move", owner, node_id, True, self._elapsed(start),
            fields_changed=["parent"], parent_id=new_parent_id,
        ))
        return updated

    def update(
        self,
        owner: str,
        node_id: str,
        patch: Union[NodePatch, Dict[str, Any]],
    ) -> AnyNode:
        """
        Apply a partial update. Fields not supplied are untouched; supplied
        fields equal to the stored value are ignored. Nothing to change →
        the stored node is returned without advancing ``updated_at``.
        """
        start = time.monotonic()
        try:
            patch = _coerce_intent(NodePatch, patch, owner, "update", node_id=node_id)
            with self._owner_lock(owner):
                existing = self.get(owner, node_id)

                error = validate_update(patch, existing.kind)
                if error:
                    raise error.with_context(owner=owner, node_id=node_id, operation="update")

                changes = patch.changes_against(existing)
                if not changes:
                    return existing

                if "parent" in changes:
                    self._check_new_parent(owner, existing, changes["parent"], operation="update")

                updated = self._store.update_partial(owner, node_id, NodePatch(**changes))
                if updated is None:
                    raise PersistenceError(
                        f"Store returned no row updating node '{node_id}'",
                        owner=owner, node_id=node_id, operation="update",
                    )
        except DocTreeError as e:
            self._log_failure("update", owner, node_id, start, e)
            raise

        logger.info(f"Updated '{node_id}' ({sorted(changes)}) for owner '{owner}'")
        log(log_node_operation(
            "update", owner, node_id, True, self._elapsed(start),
            fields_changed=sorted(changes),
        ))
        return updated

    def delete(self, owner: str, node_id: str) -> None:
        """Delete a node; folders take their whole subtree with them (store cascade)."""
        start = time.monotonic()
        try:
            with self._owner_lock(owner):
                removed = self._store.delete(owner, node_id)
            if not removed:
                raise NodeNotFoundError(
                    f"Node '{node_id}' not found", owner=owner, node_id=node_id,
                    operation="delete",
                )
        except DocTreeError as e:
            self._log_failure("delete", owner, node_id, start, e)
            raise

        logger.info(f"Deleted '{node_id}' for owner '{owner}'")
        log(log_node_operation("delete", owner, node_id, True, self._elapsed(start)))

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------

    def _check_new_parent(
        self,
        owner: str,
        node: AnyNode,
        new_parent_id: Optional[str],
        operation: str,
    ) -> None:
        if self._guard.would_create_cycle(owner, node.id, new_parent_id):
            log(log_tree_event(
                "move_rejected", owner=owner, node_id=node.id,
                details={"reason": "circular_reference", "parent_id": new_parent_id},
            ))
            raise CircularReferenceError(
                f"Cannot move '{node.title}': circular reference detected",
                owner=owner, node_id=node.id, parent_id=new_parent_id, operation=operation,
            )
        if new_parent_id is not None:
            self._require_folder(owner, new_parent_id, operation=operation)

    def _require_folder(self, owner: str, folder_id: str, operation: str) -> AnyNode:
        parent = self._store.get_by_id(owner, folder_id)
        if parent is None:
            raise NodeNotFoundError(
                f"Parent folder '{folder_id}' not found",
                owner=owner, node_id=folder_id, operation=operation,
            )
        if parent.kind != NodeKind.FOLDER:
            raise NodeValidationError(
                "parent must be a folder",
                owner=owner, node_id=folder_id, field="parent", operation=operation,
            )
        return parent

    @staticmethod
    def _elapsed(start: float) -> float:
        return round((time.monotonic() - start) * 1000, 3)

    def _log_failure(
        self,
        operation: str,
        owner: str,
        node_id: Optional[str],
        start: float,
        error: DocTreeError,
    ) -> None:
        logger.info(f"{operation} rejected for owner '{owner}': {error.error_type}: {error.message}")
        log(log_node_operation(
            operation, owner, node_id, False, self._elapsed(start),
            error=error.error_type,
        ))
