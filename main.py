#!/usr/bin/env python3
"""
Trellis - Versioned Content Tree

Command line entry point. Each command opens the configured DuckDB database,
runs one lifecycle operation on a content kind and prints the result as JSON.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from trellis.config import config
from trellis.database import DatabaseManager
from trellis.errors import NotFound, TrellisError
from trellis.lifecycle import ContentLifecycleEngine, ContentRegistry
from trellis.models import ChildItem, Content, UpdateRequest


def setup_logging():
    """Configure logging for the application."""
    level = getattr(logging, config.get("logging.level", "INFO").upper())
    format_str = config.get("logging.format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    log_file = config.log_filename

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.StreamHandler(sys.stderr),
            logging.FileHandler(log_file)
        ]
    )


def parse_child_item(value: str) -> ChildItem:
    """Parse a child reference written as KIND:ID."""
    kind, sep, ref = value.partition(":")
    if not sep or not kind or not ref:
        raise argparse.ArgumentTypeError(f"Expected KIND:ID, got '{value}'")
    return ChildItem(content_ref=ref, ref_kind=kind)


def parse_properties(value: str) -> Dict[str, Any]:
    """Parse a JSON object given on the command line."""
    try:
        properties = json.loads(value)
    except json.JSONDecodeError as e:
        raise argparse.ArgumentTypeError(f"Invalid JSON: {e}")
    if not isinstance(properties, dict):
        raise argparse.ArgumentTypeError("Properties must be a JSON object")
    return properties


def print_result(result: Any):
    """Print a model, a list of models or plain data as JSON."""
    if isinstance(result, BaseModel):
        print(result.model_dump_json(indent=2))
    elif isinstance(result, list):
        print(json.dumps(
            [item.model_dump(mode="json") if isinstance(item, BaseModel) else item for item in result],
            indent=2
        ))
    else:
        print(json.dumps(result, indent=2))


async def create_command(engine: ContentLifecycleEngine, args) -> Content:
    content = Content(
        name=args.name,
        properties=args.properties or {},
        parent_id=args.parent,
        child_items=args.child or [],
    )
    saved = await engine.execute_create(content)
    if saved.parent_id:
        parent = await engine.get_content(saved.parent_id)
        await engine.update_has_children(parent)
    return saved


async def update_command(engine: ContentLifecycleEngine, args):
    current = await engine.get_content(args.id)
    request = UpdateRequest(
        name=args.name if args.name is not None else current.name,
        properties=args.properties if args.properties is not None else current.properties,
        child_items=args.child if args.child is not None else current.child_items,
        apply_changes=True,
        request_publish=args.publish,
    )
    return await engine.update_and_publish(args.id, request)


async def show_command(engine: ContentLifecycleEngine, args):
    if args.published:
        populated = await engine.get_populated_published_by_id(args.id)
        collection = engine.published.collection
    else:
        populated = await engine.get_populated_by_id(args.id)
        collection = engine.contents.collection
    if populated is None:
        raise NotFound(collection, args.id)
    return populated


async def run_command(args) -> Any:
    """
    Run the selected command against the configured database.

    Args:
        args: Parsed command line arguments

    Returns:
        The command's result
    """
    with DatabaseManager(args.database) as database:
        registry = ContentRegistry(
            database,
            kinds=config.content_kinds,
            serialize_publish=config.serialize_publish,
        )
        engine = registry.get_engine(args.kind)

        if args.command == "create":
            return await create_command(engine, args)
        if args.command == "update":
            return await update_command(engine, args)
        if args.command == "publish":
            return await engine.update_and_publish(args.id, UpdateRequest(request_publish=True))
        if args.command == "delete":
            return await engine.execute_delete(args.id)
        if args.command == "show":
            return await show_command(engine, args)
        if args.command == "tree":
            return await engine.get_children(args.parent)
        if args.command == "versions":
            return await engine.list_versions(args.id)
        if args.command == "reconcile":
            return await engine.reconcile_publish_gaps()
        raise ValueError(f"Unknown command: {args.command}")


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Trellis - Versioned Content Tree",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py create --name Home                          # Create a root page
  python main.py create --name About --parent <id>           # Create a child page
  python main.py update <id> --child block:<id> --publish    # Edit and publish
  python main.py --kind block show <id>                      # Show a block with its children
  python main.py delete <id>                                 # Soft-delete a page and its subtree
        """
    )

    parser.add_argument(
        "--database",
        default=config.database_filename,
        help=f"DuckDB database file (default: {config.database_filename})"
    )

    parser.add_argument(
        "--kind",
        default="page",
        help="Content kind to operate on (default: page)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="Trellis 0.1.0"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create", help="Create a content node")
    create.add_argument("--name", required=True, help="Node name")
    create.add_argument("--parent", help="Parent node id (omit for a root node)")
    create.add_argument("--properties", type=parse_properties, help="Properties as a JSON object")
    create.add_argument("--child", type=parse_child_item, action="append", help="Child reference KIND:ID (repeatable)")

    update = subparsers.add_parser("update", help="Edit a content node, optionally publishing it")
    update.add_argument("id", help="Node id")
    update.add_argument("--name", help="New name")
    update.add_argument("--properties", type=parse_properties, help="New properties as a JSON object")
    update.add_argument("--child", type=parse_child_item, action="append", help="Child reference KIND:ID (repeatable)")
    update.add_argument("--publish", action="store_true", help="Publish after applying the changes")

    publish = subparsers.add_parser("publish", help="Publish a node with unpublished changes")
    publish.add_argument("id", help="Node id")

    delete = subparsers.add_parser("delete", help="Soft-delete a node and its descendants")
    delete.add_argument("id", help="Node id")

    show = subparsers.add_parser("show", help="Show a node with its children resolved")
    show.add_argument("id", help="Node id")
    show.add_argument("--published", action="store_true", help="Show the published snapshot instead")

    tree = subparsers.add_parser("tree", help="List the live children of a node")
    tree.add_argument("--parent", help="Parent node id (omit to list root nodes)")

    versions = subparsers.add_parser("versions", help="List the version history of a node")
    versions.add_argument("id", help="Node id")

    subparsers.add_parser("reconcile", help="Republish nodes marked published without a snapshot")

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    args = parse_arguments(argv)
    setup_logging()

    try:
        result = asyncio.run(run_command(args))
    except (KeyError, TrellisError) as e:
        logging.error(f"{args.command} failed: {e}")
        print(f"\n{args.command} failed: {e}", file=sys.stderr)
        sys.exit(1)

    print_result(result)


if __name__ == "__main__":
    main()
