"""
DocTree Error Hierarchy — Structured exceptions for the document tree engine.

Every error carries a human-readable message plus free-form context
(owner, node_id, ...) and serializes to JSON for the operation log.
``status_code`` tells outer layers (HTTP, CLI) how to surface it.

Hierarchy:
    DocTreeError
    ├── NodeNotFoundError        — id/owner mismatch or absent
    ├── NodeValidationError      — structural invariant violated by input
    ├── CircularReferenceError   — move would create a cycle
    ├── PersistenceError         — store failed or returned nothing on a write
    ├── TreeIntegrityError       — stored hierarchy violates an invariant
    └── DocTreeConfigError       — invalid doctree.yaml
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class DocTreeError(Exception):
    """
    Base error for all DocTree failures.
    All context is serializable to JSON.
    """

    status_code: int = 500

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.owner: Optional[str] = context.get("owner")
        self.node_id: Optional[str] = context.get("node_id")
        self.operation: Optional[str] = context.get("operation")
        self.error_type: str = self.__class__.__name__
        self.context: Dict[str, Any] = context
        self.timestamp: str = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def with_context(self, **context: Any) -> "DocTreeError":
        """Attach call-site context (owner, node_id, operation) and return self."""
        self.context.update(context)
        self.owner = context.get("owner", self.owner)
        self.node_id = context.get("node_id", self.node_id)
        self.operation = context.get("operation", self.operation)
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error to a JSON-compatible dict."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "status_code": self.status_code,
            "owner": self.owner,
            "node_id": self.node_id,
            "operation": self.operation,
            "timestamp": self.timestamp,
            "context": {
                k: str(v) for k, v in self.context.items()
                if k not in ("owner", "node_id", "operation")
            },
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    def __repr__(self) -> str:
        parts = [f"{self.error_type}: {self.message}"]
        if self.node_id:
            parts.append(f"node_id={self.node_id}")
        if self.owner:
            parts.append(f"owner={self.owner}")
        return " | ".join(parts)


class NodeNotFoundError(DocTreeError):
    """Node absent, or owned by someone else (cross-owner access is invisible)."""

    status_code = 404


class NodeValidationError(DocTreeError):
    """
    Input violates a structural rule (blank title, folder content, ...).
    ``field`` names the offending input field when there is one.
    """

    status_code = 400

    def __init__(self, message: str, **context: Any):
        self.field: Optional[str] = context.get("field")
        super().__init__(message, **context)

    @property
    def reason(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["field"] = self.field
        return d


class CircularReferenceError(DocTreeError):
    """Moving the node under the requested parent would create a cycle."""

    status_code = 400

    def __init__(self, message: str, **context: Any):
        self.parent_id: Optional[str] = context.get("parent_id")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["parent_id"] = self.parent_id
        return d


class PersistenceError(DocTreeError):
    """
    The store raised a driver or constraint error, or returned no row on a
    write expected to succeed. Not a normal not-found; the core never retries.
    """

    status_code = 500


class TreeIntegrityError(DocTreeError):
    """Stored hierarchy violates one of the tree invariants."""

    status_code = 500

    def __init__(self, message: str, **context: Any):
        self.report: Optional[Dict[str, Any]] = context.get("report")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["report"] = self.report
        return d


class DocTreeConfigError(DocTreeError):
    """Configuration error — invalid doctree.yaml."""

    status_code = 500
