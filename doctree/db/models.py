"""
DocTree Node table — flat parent-pointer records for every file and folder.

Folder deletion cascades to the whole subtree through the self-referential
foreign key. Check constraints mirror the content invariants:
folders never carry content, files always do (possibly empty).
"""

from __future__ import annotations

import uuid

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, String, Text

from doctree.db.base import Base, TimestampMixin


def new_node_id() -> str:
    return uuid.uuid4().hex


class NodeRecord(Base, TimestampMixin):
    __tablename__ = "tree_nodes"

    id = Column(String(32), primary_key=True, default=new_node_id)
    owner = Column(String(255), nullable=False, index=True)
    kind = Column(String(10), nullable=False)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=True)
    parent = Column(
        "parent_id",
        String(32),
        ForeignKey("tree_nodes.id", ondelete="CASCADE"),
        nullable=True,
    )

    __table_args__ = (
        CheckConstraint("kind IN ('file', 'folder')", name="ck_tree_nodes_kind"),
        CheckConstraint(
            "(kind = 'folder' AND content IS NULL) OR (kind = 'file' AND content IS NOT NULL)",
            name="ck_tree_nodes_content",
        ),
        Index("ix_tree_nodes_owner_parent", "owner", "parent_id"),
    )

    def __repr__(self) -> str:
        return f"<NodeRecord(id='{self.id}', kind='{self.kind}', title='{self.title}')>"
