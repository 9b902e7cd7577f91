"""
DocTree Configuration — Load and validate doctree.yaml.

Usage:
    from doctree.engine.config import load_config, get_config
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ValidationError, field_validator

from doctree.engine.errors import DocTreeConfigError

CONFIG_FILENAME = "doctree.yaml"


# ---------------------------------------------------------------------------
# Pydantic models for doctree.yaml
# ---------------------------------------------------------------------------

class DatabaseConfig(BaseModel):
    url: str = "sqlite:///doctree.db"
    echo: bool = False


class LogAsyncQueueConfig(BaseModel):
    flush_interval_ms: int = 100
    flush_batch_size: int = 50
    max_queue_size: int = 10000


class LoggingConfig(BaseModel):
    level: str = "INFO"
    directory: str = ".doctree/logs"
    async_queue: LogAsyncQueueConfig = LogAsyncQueueConfig()

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"logging.level must be a standard level name, got '{v}'")
        return v


class TreeConfig(BaseModel):
    cycle_strategy: str = "forest"
    default_owner: Optional[str] = None

    @field_validator("cycle_strategy")
    @classmethod
    def validate_strategy(cls, v: str) -> str:
        if v not in ("forest", "closure"):
            raise ValueError(f"cycle_strategy must be forest/closure, got '{v}'")
        return v


class DocTreeConfig(BaseModel):
    """Root model for doctree.yaml."""
    name: str = "DocTree"
    environment: str = "dev"

    database: DatabaseConfig = DatabaseConfig()
    logging: LoggingConfig = LoggingConfig()
    tree: TreeConfig = TreeConfig()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        if v not in ("dev", "staging", "prod"):
            raise ValueError(f"environment must be dev/staging/prod, got '{v}'")
        return v


# ---------------------------------------------------------------------------
# Config Loading Functions
# ---------------------------------------------------------------------------

_config: Optional[DocTreeConfig] = None


def _find_project_root() -> Path:
    """Find the project root by looking for doctree.yaml."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        if (parent / CONFIG_FILENAME).exists():
            return parent
    return current


def load_config(config_path: Optional[str] = None) -> DocTreeConfig:
    """
    Load and validate doctree.yaml.

    Args:
        config_path: Explicit path to doctree.yaml. If None, auto-discovers.

    Returns:
        Validated DocTreeConfig instance (defaults when the file is missing).

    Raises:
        DocTreeConfigError: unreadable YAML or invalid values.
    """
    global _config

    if config_path is None:
        config_path = str(_find_project_root() / CONFIG_FILENAME)

    path = Path(config_path)
    if not path.exists():
        _config = DocTreeConfig()
        return _config

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise DocTreeConfigError(f"Cannot parse {path}: {e}", config_path=str(path)) from e

    if not isinstance(raw, dict):
        raise DocTreeConfigError(f"{path} must contain a mapping", config_path=str(path))

    # Top-level "doctree" key carries name/environment
    head = raw.get("doctree", {}) or {}
    config_data = {
        "name": head.get("name", raw.get("name", "DocTree")),
        "environment": head.get("environment", raw.get("environment", "dev")),
        "database": raw.get("database", {}) or {},
        "logging": raw.get("logging", {}) or {},
        "tree": raw.get("tree", {}) or {},
    }

    try:
        _config = DocTreeConfig(**config_data)
    except ValidationError as e:
        raise DocTreeConfigError(
            f"Invalid configuration in {path}: {e}", config_path=str(path)
        ) from e
    return _config


def get_config() -> DocTreeConfig:
    """Get the currently loaded config, loading if necessary."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def resolve_owner(explicit: Optional[str] = None) -> Optional[str]:
    """Owner precedence: explicit → tree.default_owner → $DOCTREE_OWNER."""
    if explicit:
        return explicit
    configured = get_config().tree.default_owner
    if configured:
        return configured
    return os.environ.get("DOCTREE_OWNER") or None
