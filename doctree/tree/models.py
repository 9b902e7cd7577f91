"""
DocTree Node Models — Pydantic definitions for files, folders and intents.

Node is a tagged variant on ``kind``:
    FileNode    content is a string (possibly empty)
    FolderNode  content is always None; children exist only in built forests

Intents:
    NodeCreate  payload for a create-intent
    NodePatch   partial update; only fields explicitly set are applied
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

MAX_TITLE_LENGTH = 255


class NodeKind(str, Enum):
    FILE = "file"
    FOLDER = "folder"


class NodeBase(BaseModel):
    """Fields shared by every stored node. Immutable: stores rebuild on write."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Opaque id, unique per store")
    owner: str = Field(description="Owning principal; every lookup is scoped by it")
    title: str = Field(description="Display title")
    parent: Optional[str] = Field(default=None, description="Parent folder id, None at root")
    created_at: datetime
    updated_at: datetime

    @property
    def is_folder(self) -> bool:
        return self.kind == NodeKind.FOLDER


class FileNode(NodeBase):
    kind: Literal["file"] = "file"
    content: str = ""


class FolderNode(NodeBase):
    kind: Literal["folder"] = "folder"
    content: None = None


Node = Annotated[Union[FileNode, FolderNode], Field(discriminator="kind")]

_node_adapter: TypeAdapter = TypeAdapter(Node)


def node_from_dict(data: Dict[str, Any]) -> Union[FileNode, FolderNode]:
    """Validate a flat record dict into the matching node variant."""
    return _node_adapter.validate_python(data)


class NodeCreate(BaseModel):
    """
    Create-intent payload. Structural rules (title length, folder content)
    are checked by the validator, not by the model.
    """

    kind: NodeKind
    title: str = ""
    content: Optional[str] = None
    parent: Optional[str] = None


class NodePatch(BaseModel):
    """
    Partial update. ``model_fields_set`` tells supplied fields apart from
    defaults, so ``NodePatch(parent=None)`` means "move to root" while
    ``NodePatch()`` changes nothing.
    """

    title: Optional[str] = None
    content: Optional[str] = None
    parent: Optional[str] = None

    def supplied(self) -> Dict[str, Any]:
        """Only the fields the caller set explicitly."""
        return {name: getattr(self, name) for name in self.model_fields_set}

    def is_empty(self) -> bool:
        return not self.model_fields_set

    def changes_against(self, node: Union[FileNode, FolderNode]) -> Dict[str, Any]:
        """Supplied fields whose value differs from ``node``."""
        return {
            name: value for name, value in self.supplied().items()
            if getattr(node, name) != value
        }


AnyNode = Union[FileNode, FolderNode]
NodeList = List[AnyNode]
