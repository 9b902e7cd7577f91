"""DocTree Engine — configuration, errors, structured logging."""

from doctree.engine.errors import (  # noqa: F401
    CircularReferenceError,
    DocTreeConfigError,
    DocTreeError,
    NodeNotFoundError,
    NodeValidationError,
    PersistenceError,
    TreeIntegrityError,
)

__all__ = [
    "DocTreeError",
    "NodeNotFoundError",
    "NodeValidationError",
    "CircularReferenceError",
    "PersistenceError",
    "TreeIntegrityError",
    "DocTreeConfigError",
]
