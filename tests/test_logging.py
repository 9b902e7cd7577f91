"""Unit tests for doctree.engine.logging — FileLogger, AsyncLogQueue, entry builders."""

import json

import pytest

from doctree.engine import logging as log_mod
from doctree.engine.logging import (
    OBJECT_TYPE_CATEGORIES,
    AsyncLogQueue,
    FileLogger,
    LogEntry,
    get_log_queue,
    init_logging,
    log,
    log_node_operation,
    log_system_event,
    log_tree_event,
    shutdown_logging,
)


def _read_entries(directory):
    files = list(directory.glob("*.jsonl"))
    assert len(files) == 1
    return [json.loads(line) for line in files[0].read_text().splitlines()]


class TestObjectTypeCategories:

    def test_types(self):
        assert set(OBJECT_TYPE_CATEGORIES) == {"nodes", "tree", "system"}
        assert "integrity" in OBJECT_TYPE_CATEGORIES["tree"]


class TestLogEntry:

    def test_to_json(self):
        entry = LogEntry("nodes", "execution", {"node_id": "n1"})
        assert json.loads(entry.to_json()) == {"node_id": "n1"}


class TestFileLogger:

    def test_creates_category_directories(self, tmp_path):
        FileLogger(log_dir=str(tmp_path / "logs"))
        for obj_type, categories in OBJECT_TYPE_CATEGORIES.items():
            for cat in categories:
                assert (tmp_path / "logs" / obj_type / cat).is_dir()

    def test_write_batch_appends(self, tmp_path):
        file_logger = FileLogger(log_dir=str(tmp_path / "logs"))
        file_logger.write_batch([LogEntry("nodes", "execution", {"event": "node_create"})])
        file_logger.write_batch([LogEntry("nodes", "execution", {"event": "node_move"})])
        entries = _read_entries(tmp_path / "logs" / "nodes" / "execution")
        assert entries == [{"event": "node_create"}, {"event": "node_move"}]

    def test_write_batch_groups_by_file(self, tmp_path):
        file_logger = FileLogger(log_dir=str(tmp_path / "logs"))
        file_logger.write_batch([
            LogEntry("nodes", "execution", {"n": 1}),
            LogEntry("tree", "integrity", {"n": 2}),
            LogEntry("nodes", "execution", {"n": 3}),
        ])
        assert _read_entries(tmp_path / "logs" / "nodes" / "execution") == [{"n": 1}, {"n": 3}]
        assert _read_entries(tmp_path / "logs" / "tree" / "integrity") == [{"n": 2}]


class TestAsyncLogQueue:

    def test_stop_drains(self, tmp_path):
        queue = AsyncLogQueue(FileLogger(log_dir=str(tmp_path / "logs")), flush_interval_ms=10)
        queue.start()
        for i in range(5):
            assert queue.push(LogEntry("system", "execution", {"i": i}))
        queue.stop()
        entries = _read_entries(tmp_path / "logs" / "system" / "execution")
        assert sorted(e["i"] for e in entries) == [0, 1, 2, 3, 4]
        assert queue.pending_count == 0

    def test_full_queue_drops(self, tmp_path):
        queue = AsyncLogQueue(FileLogger(log_dir=str(tmp_path / "logs")), max_queue_size=2)
        assert queue.push(LogEntry("system", "execution", {}))
        assert queue.push(LogEntry("system", "execution", {}))
        assert queue.push(LogEntry("system", "execution", {})) is False
        assert queue.dropped_count == 1
        assert queue.pending_count == 2


class TestBuilders:

    def test_node_operation_success(self):
        entry = log_node_operation(
            "move", "alice", "n1", True, 1.5, fields_changed=["parent"], parent_id="p1",
        )
        assert (entry.object_type, entry.category) == ("nodes", "execution")
        assert entry.data["event"] == "node_move"
        assert entry.data["level"] == "INFO"
        assert entry.data["owner"] == "alice"
        assert entry.data["fields_changed"] == ["parent"]
        assert entry.data["parent_id"] == "p1"
        assert "error" not in entry.data

    def test_node_operation_failure(self):
        entry = log_node_operation(
            "create", "alice", None, False, 0.2, error="NodeValidationError",
        )
        assert entry.data["level"] == "ERROR"
        assert entry.data["success"] is False
        assert entry.data["error"] == "NodeValidationError"
        assert "node_id" not in entry.data

    @pytest.mark.parametrize("event,category", [
        ("unreachable_nodes", "integrity"),
        ("integrity_violation", "integrity"),
        ("move_rejected", "execution"),
    ])
    def test_tree_event_category(self, event, category):
        entry = log_tree_event(event, owner="alice", details={"x": 1})
        assert entry.object_type == "tree"
        assert entry.category == category
        assert entry.data["details"] == {"x": 1}
        assert entry.data["level"] == "WARNING"

    def test_system_event(self):
        entry = log_system_event("schema_created", details={"database": "sqlite://"})
        assert (entry.object_type, entry.category) == ("system", "execution")
        assert entry.data["event"] == "schema_created"
        assert "owner" not in entry.data


class TestGlobalQueue:

    def test_log_before_init(self):
        assert get_log_queue() is None
        assert log(log_system_event("ignored")) is False

    def test_init_log_shutdown(self, tmp_path):
        queue = init_logging(log_dir=str(tmp_path / "logs"), flush_interval_ms=10)
        assert get_log_queue() is queue
        assert log(log_system_event("startup")) is True
        shutdown_logging()
        assert log_mod._global_queue is None
        entries = _read_entries(tmp_path / "logs" / "system" / "execution")
        assert entries[0]["event"] == "startup"

    def test_service_operations_are_logged(self, tmp_path, memory_store, owner):
        from doctree.engine.errors import CircularReferenceError
        from doctree.tree.service import TreeService

        init_logging(log_dir=str(tmp_path / "logs"), flush_interval_ms=10)
        service = TreeService(memory_store)
        folder = service.create(owner, {"kind": "folder", "title": "f"})
        with pytest.raises(CircularReferenceError):
            service.move(owner, folder.id, folder.id)
        shutdown_logging()

        node_entries = _read_entries(tmp_path / "logs" / "nodes" / "execution")
        events = [(e["event"], e["success"]) for e in node_entries]
        assert ("node_create", True) in events
        assert ("node_move", False) in events
        tree_entries = _read_entries(tmp_path / "logs" / "tree" / "execution")
        assert tree_entries[0]["event"] == "move_rejected"
