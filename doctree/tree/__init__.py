"""
DocTree Document Tree Engine.

Flat parent-pointer records → forest; validation, cycle checks and safe
moves over an owner-scoped NodeStore.
"""

from doctree.tree.builder import Forest, build_forest, flatten
from doctree.tree.cycle import CycleGuard, creates_cycle
from doctree.tree.integrity import IntegrityReport, audit_nodes
from doctree.tree.models import (
    FileNode,
    FolderNode,
    Node,
    NodeCreate,
    NodeKind,
    NodePatch,
)
from doctree.tree.service import TreeService
from doctree.tree.store import MemoryNodeStore, NodeStore, SqlNodeStore
from doctree.tree.validator import validate_create, validate_update

__all__ = [
    "Forest",
    "build_forest",
    "flatten",
    "CycleGuard",
    "creates_cycle",
    "IntegrityReport",
    "audit_nodes",
    "FileNode",
    "FolderNode",
    "Node",
    "NodeCreate",
    "NodeKind",
    "NodePatch",
    "TreeService",
    "MemoryNodeStore",
    "NodeStore",
    "SqlNodeStore",
    "validate_create",
    "validate_update",
]
