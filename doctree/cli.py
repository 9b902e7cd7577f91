"""
DocTree CLI — Manage an owner's document tree from the command line.

Commands:
- doctree init     — Create the node table
- doctree tree     — Print the whole tree (or JSON with --json)
- doctree ls       — List one folder (root when omitted)
- doctree show     — Show one node with its path and content
- doctree mkdir    — Create a folder
- doctree add      — Create a file
- doctree edit     — Change title and/or content
- doctree mv       — Move a node under another folder or to the root
- doctree rm       — Delete a node (folders take their subtree)
- doctree check    — Audit the stored hierarchy

Global options --config and --owner precede the command.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from doctree.engine.config import DocTreeConfig, load_config, resolve_owner
from doctree.engine.errors import DocTreeError
from doctree.engine.logging import init_logging, log, log_system_event, shutdown_logging

logger = logging.getLogger("doctree.cli")


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="doctree",
        description="DocTree — owner-scoped document tree",
    )
    parser.add_argument("--config", default=None, help="Path to doctree.yaml (default: auto-discover)")
    parser.add_argument("--owner", default=None, help="Owner to act as (default: tree.default_owner / $DOCTREE_OWNER)")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init", help="Create the node table")

    tree_parser = subparsers.add_parser("tree", help="Print the whole tree")
    tree_parser.add_argument("--json", action="store_true", help="Emit nested JSON")
    tree_parser.add_argument("--content", action="store_true", help="Include file content in JSON")

    ls_parser = subparsers.add_parser("ls", help="List a folder")
    ls_parser.add_argument("folder_id", nargs="?", help="Folder id (default: root level)")

    show_parser = subparsers.add_parser("show", help="Show one node")
    show_parser.add_argument("node_id", help="Node id")

    mkdir_parser = subparsers.add_parser("mkdir", help="Create a folder")
    mkdir_parser.add_argument("title", help="Folder title")
    mkdir_parser.add_argument("--parent", help="Parent folder id (default: root)")

    add_parser = subparsers.add_parser("add", help="Create a file")
    add_parser.add_argument("title", help="File title")
    add_parser.add_argument("--parent", help="Parent folder id (default: root)")
    content_group = add_parser.add_mutually_exclusive_group()
    content_group.add_argument("--content", default=None, help="Inline content")
    content_group.add_argument("--from-file", default=None, help="Read content from a local file")

    edit_parser = subparsers.add_parser("edit", help="Change title and/or content")
    edit_parser.add_argument("node_id", help="Node id")
    edit_parser.add_argument("--title", default=None, help="New title")
    edit_parser.add_argument("--content", default=None, help="New content (files only)")

    mv_parser = subparsers.add_parser("mv", help="Move a node")
    mv_parser.add_argument("node_id", help="Node id")
    target = mv_parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--to", dest="parent_id", help="Destination folder id")
    target.add_argument("--root", action="store_true", help="Move to the root level")

    rm_parser = subparsers.add_parser("rm", help="Delete a node")
    rm_parser.add_argument("node_id", help="Node id")

    subparsers.add_parser("check", help="Audit the stored hierarchy")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        config = load_config(args.config)
    except DocTreeError as e:
        print(f"[ERROR] {e.message}")
        return 1

    owner = None
    if args.command != "init":
        owner = resolve_owner(args.owner)
        if not owner:
            print("[ERROR] No owner: pass --owner, set tree.default_owner or $DOCTREE_OWNER")
            return 1

    handlers = {
        "tree": cmd_tree,
        "ls": cmd_ls,
        "show": cmd_show,
        "mkdir": cmd_mkdir,
        "add": cmd_add,
        "edit": cmd_edit,
        "mv": cmd_mv,
        "rm": cmd_rm,
        "check": cmd_check,
    }

    init_logging(
        log_dir=config.logging.directory,
        flush_interval_ms=config.logging.async_queue.flush_interval_ms,
        flush_batch_size=config.logging.async_queue.flush_batch_size,
        max_queue_size=config.logging.async_queue.max_queue_size,
        level=config.logging.level,
    )
    try:
        if args.command == "init":
            return cmd_init(args, config)
        service = _build_service(config)
        return handlers[args.command](args, service, owner)
    except DocTreeError as e:
        print(f"[ERROR] {e.message}")
        return 1
    finally:
        shutdown_logging()


def _build_service(config: DocTreeConfig):
    from doctree.db.session import init_db
    from doctree.tree.service import TreeService
    from doctree.tree.store import SqlNodeStore

    factory = init_db(config.database.url, create_tables=False, echo=config.database.echo)
    return TreeService(SqlNodeStore(factory), cycle_strategy=config.tree.cycle_strategy)


def _describe(node) -> str:
    suffix = "/" if node.kind == "folder" else ""
    return f"{node.title}{suffix}  [{node.id}]"


def cmd_init(args: argparse.Namespace, config: DocTreeConfig) -> int:
    """Create the node table (idempotent)."""
    from doctree.db.session import init_db

    try:
        init_db(config.database.url, create_tables=True, echo=config.database.echo)
    except Exception as e:
        print(f"[ERROR] Cannot initialise database: {e}")
        return 1

    log(log_system_event("schema_created", details={"database": config.database.url}))
    print(f"[OK] Node table ready ({config.database.url})")
    return 0


def cmd_tree(args: argparse.Namespace, service, owner: str) -> int:
    forest = service.tree(owner)
    if args.json:
        print(json.dumps(forest.materialize(include_content=args.content), indent=2))
        return 0

    if not forest.roots:
        print("(empty)")
    for depth, node in forest.walk():
        print(f"{'  ' * depth}{_describe(node)}")
    if forest.unreachable:
        print(f"[WARN] {len(forest.unreachable)} unreachable node(s) omitted; run 'doctree check'")
    return 0


def cmd_ls(args: argparse.Namespace, service, owner: str) -> int:
    children = service.list_children(owner, args.folder_id)
    if not children:
        print("(empty)")
    for node in children:
        print(_describe(node))
    return 0


def cmd_show(args: argparse.Namespace, service, owner: str) -> int:
    node = service.get(owner, args.node_id)
    path = service.tree(owner).path_of(node.id)
    print(f"id:         {node.id}")
    print(f"kind:       {node.kind}")
    print(f"title:      {node.title}")
    print(f"path:       {path or '(unreachable)'}")
    print(f"parent:     {node.parent or '(root)'}")
    print(f"created_at: {node.created_at.isoformat()}")
    print(f"updated_at: {node.updated_at.isoformat()}")
    if node.kind == "file":
        print("-" * 40)
        print(node.content)
    return 0


def cmd_mkdir(args: argparse.Namespace, service, owner: str) -> int:
    node = service.create(owner, {"kind": "folder", "title": args.title, "parent": args.parent})
    print(f"[OK] Created folder {_describe(node)}")
    return 0


def cmd_add(args: argparse.Namespace, service, owner: str) -> int:
    content = args.content
    if args.from_file:
        source = Path(args.from_file)
        if not source.exists():
            print(f"[ERROR] File not found: {source}")
            return 1
        content = source.read_text(encoding="utf-8")

    node = service.create(
        owner,
        {"kind": "file", "title": args.title, "content": content, "parent": args.parent},
    )
    print(f"[OK] Created file {_describe(node)}")
    return 0


def cmd_edit(args: argparse.Namespace, service, owner: str) -> int:
    patch = {}
    if args.title is not None:
        patch["title"] = args.title
    if args.content is not None:
        patch["content"] = args.content
    if not patch:
        print("[ERROR] Nothing to change: pass --title and/or --content")
        return 1

    node = service.update(owner, args.node_id, patch)
    print(f"[OK] Updated {_describe(node)}")
    return 0


def cmd_mv(args: argparse.Namespace, service, owner: str) -> int:
    new_parent = None if args.root else args.parent_id
    node = service.move(owner, args.node_id, new_parent)
    print(f"[OK] Moved {_describe(node)} to {new_parent or '(root)'}")
    return 0


def cmd_rm(args: argparse.Namespace, service, owner: str) -> int:
    service.delete(owner, args.node_id)
    print(f"[OK] Deleted {args.node_id}")
    return 0


def cmd_check(args: argparse.Namespace, service, owner: str) -> int:
    report = service.audit(owner)
    summary = report.summary()
    if report.ok:
        print(f"[OK] {summary['nodes']} node(s), no integrity problems")
        return 0

    print(f"[ERROR] Integrity problems for owner '{owner}':")
    for key in ("cycles", "dangling", "bad_parents", "unreachable"):
        if summary[key]:
            print(f"  {key}: {getattr(report, key)}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
