"""
DocTree Database Session Management.

Single entry point for DB initialisation plus a context manager for
transactional access.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator

import sqlalchemy
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from doctree.db.base import Base

logger = logging.getLogger("doctree.db.session")


def create_db_engine(db_url: str, echo: bool = False) -> Engine:
    """
    Build an engine for ``db_url``.

    SQLite does not enforce foreign keys unless asked on every connection;
    folder deletes rely on ``ON DELETE CASCADE``, so a ``connect`` listener
    turns the pragma on.
    """
    engine = create_engine(db_url, echo=echo)

    if engine.dialect.name == "sqlite":
        @sqlalchemy.event.listens_for(engine, "connect")
        def enable_foreign_keys(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def init_db(db_url: str, create_tables: bool = False, echo: bool = False) -> sessionmaker:
    """
    Initialise the node database.

    Args:
        db_url:        SQLAlchemy URL (sqlite:///doctree.db, postgresql://...).
        create_tables: Run Base.metadata.create_all() — used by ``doctree init``
                       and tests.
        echo:          Echo SQL statements.

    Returns:
        A ``sessionmaker`` bound to the new engine.
    """
    # Register the node table on Base.metadata
    import doctree.db.models  # noqa: F401

    engine = create_db_engine(db_url, echo=echo)
    if create_tables:
        Base.metadata.create_all(engine)
        logger.info(f"Created tables on {engine.url.render_as_string(hide_password=True)}")
    return sessionmaker(bind=engine, expire_on_commit=False)


@contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Context manager for DB sessions with auto-commit/rollback.

    Usage:
        with session_scope(factory) as session:
            session.execute(...)
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
