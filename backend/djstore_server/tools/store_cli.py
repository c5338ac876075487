"""
Admin CLI for DJStore.

This tool inspects and maintains a store database offline:
- stats: Row counts per collection and the last issued id
- dump: Print one collection as JSON, in key order
- leaderboard: Print the DJ leaderboard, best average first
- init-dj: Create an empty leaderboard entry for a DJ
- backup: Copy the database with the SQLite backup API

Usage:
    djstore stats
    djstore dump events
    djstore leaderboard --min-rating 4
    djstore init-dj 42 "DJ Bob"
    djstore backup /backups/djstore.db

Invariants:
    - Store errors give exit code 1 with the message on stderr
    - Only init-dj creates a missing store; the other commands fail with
      STORE_NOT_FOUND instead
    - JSON output is deterministic (sorted keys)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from ..bootstrap import open_store, setup_logging
from ..config import StoreConfig
from ..errors import StoreError
from ..store import COLLECTION_NAMES, DjStore

logger = logging.getLogger(__name__)

# Commands that need an existing store and never create one
READ_ONLY_COMMANDS = frozenset({"stats", "dump", "leaderboard", "backup"})


class StoreCLI:
    """CLI commands over an open store.

    Example:
        >>> cli = StoreCLI(store)
        >>> print(await cli.stats())
    """

    def __init__(self, store: DjStore) -> None:
        self.store = store

    async def stats(self) -> str:
        return json.dumps(await self.store.stats(), indent=2, sort_keys=True)

    async def dump(self, collection_name: str) -> str:
        """Rows of one collection as a JSON array.

        Args:
            collection_name: Name such as "users" or "playlists"

        Returns:
            JSON string representation
        """
        collection = self.store.collection(collection_name)
        rows = [row.to_dict() for row in collection.values()]
        return json.dumps(rows, indent=2, sort_keys=True)

    async def leaderboard(self, min_rating: float | None = None) -> str:
        if min_rating is None:
            entries = await self.store.get_leaderboard()
        else:
            matching = await self.store.search_djs("", min_rating, "")
            entries = sorted(matching, key=lambda e: (-e.avg_rating, e.dj_id))
        return json.dumps([e.to_dict() for e in entries], indent=2, sort_keys=True)

    async def init_dj(self, dj_id: int, dj_name: str) -> str:
        entry = await self.store.init_leaderboard_entry(dj_id, dj_name)
        return json.dumps(entry.to_dict(), indent=2, sort_keys=True)

    async def backup(self, dest_path: str) -> str:
        dest = await self.store.backup(dest_path)
        return f"Backup written to {dest}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="DJStore admin tool")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("stats", help="Show row counts per collection")

    dump_parser = subparsers.add_parser("dump", help="Print a collection as JSON")
    dump_parser.add_argument("collection", choices=sorted(COLLECTION_NAMES.values()))

    leaderboard_parser = subparsers.add_parser("leaderboard", help="Print the DJ leaderboard")
    leaderboard_parser.add_argument(
        "--min-rating", type=float, default=None, help="Only DJs with at least this average"
    )

    init_parser = subparsers.add_parser("init-dj", help="Create a leaderboard entry")
    init_parser.add_argument("dj_id", type=int)
    init_parser.add_argument("dj_name")

    backup_parser = subparsers.add_parser("backup", help="Copy the store database")
    backup_parser.add_argument("dest", help="Destination file")

    return parser


async def run(args: argparse.Namespace, config: StoreConfig) -> str:
    """Execute one parsed command and return its output."""
    store = await open_store(config, create=args.command not in READ_ONLY_COMMANDS)
    cli = StoreCLI(store)

    commands: dict[str, Any] = {
        "stats": lambda: cli.stats(),
        "dump": lambda: cli.dump(args.collection),
        "leaderboard": lambda: cli.leaderboard(args.min_rating),
        "init-dj": lambda: cli.init_dj(args.dj_id, args.dj_name),
        "backup": lambda: cli.backup(args.dest),
    }
    return await commands[args.command]()


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = StoreConfig.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(config)

    try:
        output = asyncio.run(run(args, config))
    except StoreError as e:
        print(f"Error [{e.code}]: {e.message}", file=sys.stderr)
        return 1

    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
