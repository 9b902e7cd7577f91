"""
DocTree Logging — Structured JSONL operation log with an async queue.

Implements:
- FileLogger: per-object-type, per-category log files (daily files)
- AsyncLogQueue: in-memory queue with background flush (100ms / 50 entries)
- Log entry builders for node operations, tree events and system events

Layout: {log_dir}/{object_type}/{category}/{YYYY-MM-DD}.jsonl
"""

from __future__ import annotations

import json
import logging
import threading
import time
from collections import defaultdict
from datetime import date, datetime, timezone
from pathlib import Path
from queue import Empty, Full, Queue
from typing import Any, Dict, List, Optional

logger = logging.getLogger("doctree.engine.logging")

# Valid object types and their permitted categories
OBJECT_TYPE_CATEGORIES = {
    "nodes": ["execution", "performance"],
    "tree": ["execution", "integrity"],
    "system": ["execution"],
}


class LogEntry:
    """A structured log entry destined for a specific file."""

    __slots__ = ("object_type", "category", "data")

    def __init__(self, object_type: str, category: str, data: Dict[str, Any]):
        self.object_type = object_type
        self.category = category
        self.data = data

    def to_json(self) -> str:
        return json.dumps(self.data, default=str, separators=(",", ":"))


class FileLogger:
    """
    Writes structured JSON log entries to per-object-type, per-category files.
    Thread-safe — uses a lock per file path.
    """

    def __init__(self, log_dir: str = ".doctree/logs"):
        self._log_dir = Path(log_dir)
        self._file_locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)
        self._ensure_directories()

    def _ensure_directories(self) -> None:
        for obj_type, categories in OBJECT_TYPE_CATEGORIES.items():
            for cat in categories:
                (self._log_dir / obj_type / cat).mkdir(parents=True, exist_ok=True)

    def write_batch(self, entries: List[LogEntry]) -> None:
        """Write a batch of entries, grouped by target file."""
        grouped: Dict[str, List[LogEntry]] = defaultdict(list)
        for entry in entries:
            file_path = str(self._resolve_path(entry.object_type, entry.category))
            grouped[file_path].append(entry)

        for file_path, batch in grouped.items():
            with self._file_locks[file_path]:
                with open(file_path, "a", encoding="utf-8") as f:
                    for entry in batch:
                        f.write(entry.to_json())
                        f.write("\n")

    def _resolve_path(self, object_type: str, category: str) -> Path:
        today = date.today().isoformat()
        directory = self._log_dir / object_type / category
        directory.mkdir(parents=True, exist_ok=True)
        return directory / f"{today}.jsonl"


class AsyncLogQueue:
    """
    In-memory queue with a background flush thread.

    Entries are pushed non-blocking. The flush thread writes to the
    FileLogger every flush_interval_ms or once flush_batch_size entries
    accumulate, whichever comes first.
    """

    def __init__(
        self,
        file_logger: FileLogger,
        flush_interval_ms: int = 100,
        flush_batch_size: int = 50,
        max_queue_size: int = 10000,
    ):
        self._logger = file_logger
        self._flush_interval = flush_interval_ms / 1000.0
        self._flush_batch_size = flush_batch_size
        self._queue: Queue[LogEntry] = Queue(maxsize=max_queue_size)
        self._running = False
        self._flush_thread: Optional[threading.Thread] = None
        self._dropped_count = 0

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._flush_thread = threading.Thread(
            target=self._flush_loop,
            name="doctree-log-flush",
            daemon=True,
        )
        self._flush_thread.start()
        logger.debug("Async log queue started")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the flush thread and drain remaining entries."""
        self._running = False
        if self._flush_thread and self._flush_thread.is_alive():
            self._flush_thread.join(timeout=timeout)
        self._drain()
        logger.debug(f"Async log queue stopped (dropped: {self._dropped_count})")

    def push(self, entry: LogEntry) -> bool:
        """Queue an entry. Returns False if dropped (queue full)."""
        try:
            self._queue.put_nowait(entry)
            return True
        except Full:
            self._dropped_count += 1
            return False

    def _flush_loop(self) -> None:
        while self._running:
            batch = self._collect_batch()
            if batch:
                try:
                    self._logger.write_batch(batch)
                except OSError as e:
                    logger.error(f"Log flush error: {e}")
            else:
                time.sleep(self._flush_interval)

    def _collect_batch(self) -> List[LogEntry]:
        batch: List[LogEntry] = []
        deadline = time.monotonic() + self._flush_interval

        while len(batch) < self._flush_batch_size:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            try:
                batch.append(self._queue.get(timeout=min(remaining, 0.01)))
            except Empty:
                if batch:
                    break

        return batch

    def _drain(self) -> None:
        batch: List[LogEntry] = []
        while not self._queue.empty():
            try:
                batch.append(self._queue.get_nowait())
            except Empty:
                break
        if batch:
            try:
                self._logger.write_batch(batch)
            except OSError as e:
                logger.error(f"Log drain error: {e}")

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()

    @property
    def dropped_count(self) -> int:
        return self._dropped_count


# ---------------------------------------------------------------------------
# Log Entry Builders
# ---------------------------------------------------------------------------

def _base_entry(
    event: str,
    level: str,
    owner: Optional[str] = None,
    node_id: Optional[str] = None,
    **extra: Any,
) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": level,
        "event": event,
    }
    if owner is not None:
        entry["owner"] = owner
    if node_id is not None:
        entry["node_id"] = node_id
    entry.update(extra)
    return entry


def log_node_operation(
    operation: str,
    owner: str,
    node_id: Optional[str],
    success: bool,
    duration_ms: float,
    kind: Optional[str] = None,
    fields_changed: Optional[List[str]] = None,
    parent_id: Optional[str] = None,
    error: Optional[str] = None,
) -> LogEntry:
    """Build a node mutation entry (create/update/move/delete)."""
    data = _base_entry(
        event=f"node_{operation}",
        level="INFO" if success else "ERROR",
        owner=owner,
        node_id=node_id,
        operation=operation,
        success=success,
        duration_ms=duration_ms,
    )
    if kind:
        data["kind"] = kind
    if fields_changed:
        data["fields_changed"] = fields_changed
    if parent_id is not None:
        data["parent_id"] = parent_id
    if error:
        data["error"] = error
    return LogEntry("nodes", "execution", data)


def log_tree_event(
    event: str,
    owner: str,
    node_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    level: str = "WARNING",
) -> LogEntry:
    """Build a tree event entry (rejected move, unreachable nodes, audit result)."""
    data = _base_entry(event=event, level=level, owner=owner, node_id=node_id)
    if details:
        data["details"] = details
    category = "integrity" if event.startswith("integrity") or event == "unreachable_nodes" else "execution"
    return LogEntry("tree", category, data)


def log_system_event(
    event: str,
    level: str = "INFO",
    details: Optional[Dict[str, Any]] = None,
) -> LogEntry:
    """Build a system event entry (startup, shutdown, schema creation)."""
    data = _base_entry(event=event, level=level)
    if details:
        data["details"] = details
    return LogEntry("system", "execution", data)


# ---------------------------------------------------------------------------
# Convenience: Global Log Queue Singleton
# ---------------------------------------------------------------------------

_global_queue: Optional[AsyncLogQueue] = None


def init_logging(
    log_dir: str = ".doctree/logs",
    flush_interval_ms: int = 100,
    flush_batch_size: int = 50,
    max_queue_size: int = 10000,
    level: str = "INFO",
) -> AsyncLogQueue:
    """Initialize the global async log queue and the stdlib logger level."""
    global _global_queue
    logging.getLogger("doctree").setLevel(level)
    file_logger = FileLogger(log_dir=log_dir)
    _global_queue = AsyncLogQueue(
        file_logger=file_logger,
        flush_interval_ms=flush_interval_ms,
        flush_batch_size=flush_batch_size,
        max_queue_size=max_queue_size,
    )
    _global_queue.start()
    return _global_queue


def get_log_queue() -> Optional[AsyncLogQueue]:
    return _global_queue


def log(entry: LogEntry) -> bool:
    """Push a log entry to the global queue. Non-blocking; False before init."""
    if _global_queue is None:
        return False
    return _global_queue.push(entry)


def shutdown_logging() -> None:
    """Flush and stop the global log queue."""
    global _global_queue
    if _global_queue:
        _global_queue.stop()
        _global_queue = None
