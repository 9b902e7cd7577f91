"""DocTree persistence — SQLAlchemy base, session helpers and the node table."""

from doctree.db.base import Base, TimestampMixin  # noqa: F401
from doctree.db.models import NodeRecord  # noqa: F401
from doctree.db.session import init_db, session_scope  # noqa: F401

__all__ = ["Base", "TimestampMixin", "NodeRecord", "init_db", "session_scope"]
