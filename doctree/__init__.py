"""
DocTree — Owner-scoped document tree engine.
Version: 1.0

Files and folders in arbitrary nesting, stored as flat parent-pointer
records and materialized as a forest on read.
"""

__version__ = "1.0.0"
__all__ = ["engine", "db", "tree", "cli"]
