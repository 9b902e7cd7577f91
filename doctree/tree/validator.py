"""
DocTree Node Validator — Structural rules for create/update payloads.

Pure functions: no I/O, no side effects. Each returns the first violation
as a NodeValidationError (not raised) or None.
"""

from __future__ import annotations

from typing import Optional, Union

from doctree.engine.errors import NodeValidationError
from doctree.tree.models import MAX_TITLE_LENGTH, NodeCreate, NodeKind, NodePatch


def _check_title(title: Optional[str]) -> Optional[NodeValidationError]:
    if title is None or not title.strip():
        return NodeValidationError("title is required", field="title")
    if len(title) > MAX_TITLE_LENGTH:
        return NodeValidationError(
            f"title must be at most {MAX_TITLE_LENGTH} characters",
            field="title",
            length=len(title),
        )
    return None


def validate_create(data: NodeCreate) -> Optional[NodeValidationError]:
    """
    - title: required, non-blank after trimming, ≤255 characters
    - folder: content must not be provided (an empty string counts as absent)
    """
    error = _check_title(data.title)
    if error:
        return error

    if data.kind == NodeKind.FOLDER and data.content:
        return NodeValidationError("folder cannot have content", field="content")

    return None


def validate_update(
    patch: NodePatch,
    existing_kind: Union[NodeKind, str],
) -> Optional[NodeValidationError]:
    """
    - content supplied on a folder (even empty) is rejected
    - content supplied on a file must be a string
    - title rules apply when title is supplied
    """
    supplied = patch.model_fields_set

    if "content" in supplied:
        if existing_kind == NodeKind.FOLDER:
            return NodeValidationError("cannot update content of a folder", field="content")
        if patch.content is None:
            return NodeValidationError("file content must be a string", field="content")

    if "title" in supplied:
        error = _check_title(patch.title)
        if error:
            return error

    return None
