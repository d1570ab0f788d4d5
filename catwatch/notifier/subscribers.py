"""Catwatch — Subscriber Directory.

Read side for the pipeline (list_subscribers) and write side for the bot
commands and admin script. When nobody has subscribed yet, the statically
configured chat id is used so a fresh deployment still delivers.
"""

from __future__ import annotations

import aiosqlite

from catwatch.database import queries
from catwatch.database.db import Database
from catwatch.database.models import Subscriber
from catwatch.errors import StoreError
from catwatch.utils.logger import get_logger

logger = get_logger(__name__)


class SubscriberDirectory:
    """Registered Telegram chats, backed by the SQLite store.

    Attributes:
        db: Active Database instance.
        fallback_chat_id: Chat used when no subscriber is registered.
    """

    def __init__(self, db: Database, fallback_chat_id: str = "") -> None:
        self.db = db
        self.fallback_chat_id = fallback_chat_id

    async def list_subscribers(self) -> list[Subscriber]:
        """All registered chats, or the fallback chat if there are none.

        Raises:
            StoreError: If the subscriber table cannot be read.
        """
        try:
            rows = await queries.list_subscribers(self.db)
        except aiosqlite.Error as e:
            raise StoreError(f"Could not read subscribers: {e}") from e

        subscribers = [Subscriber.from_db_row(r) for r in rows]
        if subscribers:
            return subscribers

        if self.fallback_chat_id:
            logger.info("No registered chats, using configured chat %s", self.fallback_chat_id)
            return [Subscriber(chat_id=self.fallback_chat_id, name="default")]

        logger.warning("No registered chats and no fallback chat configured")
        return []

    async def add(self, chat_id: str | int, name: str = "") -> None:
        await queries.upsert_subscriber(self.db, str(chat_id), name)
        logger.info("Added chat %s (%s) to notification list", chat_id, name)

    async def remove(self, chat_id: str | int) -> bool:
        removed = await queries.delete_subscriber(self.db, str(chat_id))
        if removed:
            logger.info("Removed chat %s from notification list", chat_id)
        return removed

    async def is_subscribed(self, chat_id: str | int) -> bool:
        return await queries.subscriber_exists(self.db, str(chat_id))
