#!/usr/bin/env python3
"""Catwatch — Chat Admin.

Inspect and edit the notification chat list without going through
the bot.

Usage:
    python scripts/manage_chats.py list
    python scripts/manage_chats.py add <chat_id> [name]
    python scripts/manage_chats.py remove <chat_id>
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from catwatch.config import load_config
from catwatch.database.db import Database
from catwatch.notifier.subscribers import SubscriberDirectory


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage Catwatch notification chats")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="show registered chats")

    add = sub.add_parser("add", help="register a chat")
    add.add_argument("chat_id")
    add.add_argument("name", nargs="?", default="manual")

    remove = sub.add_parser("remove", help="unregister a chat")
    remove.add_argument("chat_id")

    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    config = load_config()
    async with Database(config.store.database_path) as db:
        directory = SubscriberDirectory(db, config.telegram.fallback_chat_id)

        if args.command == "add":
            await directory.add(args.chat_id, args.name)
            print(f"✅ Added chat {args.chat_id} ({args.name})")
            return 0

        if args.command == "remove":
            if await directory.remove(args.chat_id):
                print(f"✅ Removed chat {args.chat_id}")
                return 0
            print(f"⚠️  Chat {args.chat_id} was not registered")
            return 1

        subscribers = await directory.list_subscribers()
        if not subscribers:
            print("No chats registered and no TELEGRAM_CHAT_ID fallback set.")
            return 0
        print(f"{len(subscribers)} chat(s) will be notified:")
        for s in subscribers:
            added = f"  added {s.added_at}" if s.added_at else ""
            print(f"  {s.chat_id:>16}  {s.name or '-'}{added}")
        return 0


def main() -> None:
    sys.exit(asyncio.run(run(_parse_args(sys.argv[1:]))))


if __name__ == "__main__":
    main()
