"""Catwatch — SQLite Connection Manager.

Async SQLite connection management using aiosqlite. The database holds
two things: the per-query seen-sets used for novelty detection and the
registered Telegram subscribers.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import aiosqlite

from catwatch.utils.logger import get_logger

logger = get_logger(__name__)

# ── Schema Definitions ────────────────────────────────────
SCHEMA_SQL = """
-- ═══ Seen Sets ═══
-- One row per monitored query fingerprint. expires_at (unix seconds)
-- slides forward on every write; an expired set counts as empty.
CREATE TABLE IF NOT EXISTS seen_sets (
    set_key     TEXT    PRIMARY KEY,
    expires_at  REAL    NOT NULL,
    updated_at  DATETIME DEFAULT (datetime('now'))
);

-- ═══ Seen Records ═══
-- Members of each seen-set: record ids already announced.
CREATE TABLE IF NOT EXISTS seen_records (
    set_key     TEXT    NOT NULL,
    record_id   TEXT    NOT NULL,
    added_at    DATETIME DEFAULT (datetime('now')),
    PRIMARY KEY (set_key, record_id)
);

-- ═══ Subscribers ═══
-- Telegram chats that receive notifications.
CREATE TABLE IF NOT EXISTS subscribers (
    chat_id     TEXT    PRIMARY KEY,
    name        TEXT    DEFAULT '',
    added_at    DATETIME DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_seen_sets_expires ON seen_sets(expires_at);
"""


class Database:
    """Async SQLite database connection manager.

    Attributes:
        db_path: Resolved path to the SQLite file, or ":memory:".
    """

    def __init__(self, db_path: str) -> None:
        """Initialize the database manager.

        Args:
            db_path: Path to the SQLite file; parent directories are created
                on initialize(). ":memory:" keeps everything in RAM.
        """
        self.db_path = db_path if db_path == ":memory:" else str(Path(db_path).resolve())
        self._connection: Optional[aiosqlite.Connection] = None
        logger.debug("Database manager initialized with path: %s", self.db_path)

    async def initialize(self) -> None:
        """Open the connection, set pragmas and create the schema."""
        if self._connection is not None:
            return

        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        logger.info("Connecting to database: %s", self.db_path)
        self._connection = await aiosqlite.connect(self.db_path)

        if self.db_path != ":memory:":
            await self._connection.execute("PRAGMA journal_mode=WAL")
        self._connection.row_factory = aiosqlite.Row

        await self._connection.executescript(SCHEMA_SQL)
        await self._connection.commit()

        logger.info("Database initialized — all tables ready")

    async def get_connection(self) -> aiosqlite.Connection:
        """Return the active connection, initializing it on first use."""
        if self._connection is None:
            await self.initialize()
        assert self._connection is not None
        return self._connection

    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            logger.info("Database connection closed")

    async def __aenter__(self) -> "Database":
        await self.initialize()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
