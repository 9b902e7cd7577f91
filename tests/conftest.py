"""
DocTree Test Suite — Shared fixtures and configuration.

Run:  pytest tests/ -v
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Optional

import pytest

from doctree.tree.models import node_from_dict
from doctree.tree.service import TreeService
from doctree.tree.store import MemoryNodeStore, SqlNodeStore

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Global state isolation
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_globals():
    """Reset config and log-queue singletons between tests."""
    import doctree.engine.config as cfg_mod
    import doctree.engine.logging as log_mod

    cfg_mod._config = None
    yield
    cfg_mod._config = None
    log_mod.shutdown_logging()


# ---------------------------------------------------------------------------
# Stores and service
# ---------------------------------------------------------------------------

@pytest.fixture
def owner():
    return "alice"


@pytest.fixture
def memory_store():
    return MemoryNodeStore()


@pytest.fixture
def sql_store(tmp_path):
    from doctree.db.session import init_db

    factory = init_db(f"sqlite:///{tmp_path / 'nodes.db'}", create_tables=True)
    return SqlNodeStore(factory)


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Every store contract test runs against both implementations."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def service(store):
    return TreeService(store)


@pytest.fixture
def scenario(service, owner):
    """
    f1/            (root)
      f2/
        d1         (file)
    """
    f1 = service.create(owner, {"kind": "folder", "title": "f1"})
    f2 = service.create(owner, {"kind": "folder", "title": "f2", "parent": f1.id})
    d1 = service.create(owner, {"kind": "file", "title": "d1", "content": "hello", "parent": f2.id})
    return SimpleNamespace(f1=f1, f2=f2, d1=d1)


# ---------------------------------------------------------------------------
# Flat record factory for builder / integrity tests
# ---------------------------------------------------------------------------

def make_node(
    node_id: str,
    kind: str = "file",
    parent: Optional[str] = None,
    title: Optional[str] = None,
    content: Optional[str] = None,
    owner: str = "alice",
    offset: int = 0,
):
    stamp = BASE_TIME + timedelta(seconds=offset)
    return node_from_dict({
        "id": node_id,
        "owner": owner,
        "kind": kind,
        "title": title or node_id,
        "content": (content or "") if kind == "file" else None,
        "parent": parent,
        "created_at": stamp,
        "updated_at": stamp,
    })


@pytest.fixture
def node_factory():
    return make_node
