"""Catwatch — Database Query Operations.

All async read/write operations. Every function:
  - Uses parameterized queries (? placeholders, never f-strings for SQL)
  - Takes the Database instance and obtains the connection from it
  - Commits after writes
  - Returns plain Python values (dicts, not Row objects)
  - Logs at DEBUG level

Time is passed in explicitly as unix seconds so callers (and tests)
control the clock.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable

from catwatch.database.db import Database
from catwatch.utils.logger import get_logger

logger = get_logger(__name__)


def _row_to_dict(row: Any) -> dict[str, Any]:
    return dict(row)


# ═══════════════════════════════════════════════════════════
# Seen-Set Operations
# ═══════════════════════════════════════════════════════════


async def is_member(db: Database, set_key: str, record_id: str, now: float) -> bool:
    """Check whether record_id is in a live (non-expired) seen-set.

    Args:
        db: Active database instance.
        set_key: Seen-set name (query fingerprint).
        record_id: Record id to probe.
        now: Current unix time.

    Returns:
        True if the id was committed and the set has not expired.
    """
    conn = await db.get_connection()
    cursor = await conn.execute(
        """
        SELECT 1 FROM seen_records r
        JOIN seen_sets s ON s.set_key = r.set_key
        WHERE r.set_key = ? AND r.record_id = ? AND s.expires_at > ?
        LIMIT 1
        """,
        (set_key, record_id, now),
    )
    row = await cursor.fetchone()
    await cursor.close()
    logger.debug("is_member(%s, %s) = %s", set_key, record_id, row is not None)
    return row is not None


async def add_members(
    db: Database,
    set_key: str,
    record_ids: Iterable[str],
    now: float,
    ttl_seconds: float,
) -> int:
    """Insert ids into a seen-set and slide the set's expiry forward.

    Runs as one transaction. When the set had already expired, its old
    members are dropped first, mirroring a key-level TTL.

    Args:
        db: Active database instance.
        set_key: Seen-set name.
        record_ids: Ids to add; already present ids are ignored.
        now: Current unix time.
        ttl_seconds: New lifetime of the whole set, counted from now.

    Returns:
        Number of ids that were not yet members.
    """
    ids = list(dict.fromkeys(record_ids))
    conn = await db.get_connection()
    try:
        cursor = await conn.execute(
            "SELECT expires_at FROM seen_sets WHERE set_key = ?",
            (set_key,),
        )
        row = await cursor.fetchone()
        await cursor.close()
        if row is not None and row["expires_at"] <= now:
            await conn.execute("DELETE FROM seen_records WHERE set_key = ?", (set_key,))
            logger.debug("Seen-set %s had expired, cleared before write", set_key)

        before = conn.total_changes
        await conn.executemany(
            "INSERT OR IGNORE INTO seen_records (set_key, record_id) VALUES (?, ?)",
            [(set_key, rid) for rid in ids],
        )
        inserted = conn.total_changes - before

        await conn.execute(
            """
            INSERT INTO seen_sets (set_key, expires_at, updated_at)
            VALUES (?, ?, datetime('now'))
            ON CONFLICT(set_key) DO UPDATE SET
                expires_at = excluded.expires_at,
                updated_at = excluded.updated_at
            """,
            (set_key, now + ttl_seconds),
        )
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise

    logger.debug("add_members(%s): %d new of %d", set_key, inserted, len(ids))
    return inserted


async def count_members(db: Database, set_key: str, now: float) -> int:
    """Number of ids in a live seen-set (0 if missing or expired)."""
    conn = await db.get_connection()
    cursor = await conn.execute(
        """
        SELECT COUNT(*) AS n FROM seen_records r
        JOIN seen_sets s ON s.set_key = r.set_key
        WHERE r.set_key = ? AND s.expires_at > ?
        """,
        (set_key, now),
    )
    row = await cursor.fetchone()
    await cursor.close()
    return int(row["n"]) if row else 0


async def purge_expired_sets(db: Database, now: float) -> int:
    """Delete every expired seen-set together with its members.

    Returns:
        Number of seen-sets removed.
    """
    conn = await db.get_connection()
    try:
        await conn.execute(
            """
            DELETE FROM seen_records WHERE set_key IN (
                SELECT set_key FROM seen_sets WHERE expires_at <= ?
            )
            """,
            (now,),
        )
        cursor = await conn.execute("DELETE FROM seen_sets WHERE expires_at <= ?", (now,))
        removed = cursor.rowcount
        await cursor.close()
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise

    logger.debug("purge_expired_sets: %d sets removed", removed)
    return removed


# ═══════════════════════════════════════════════════════════
# Subscriber Operations
# ═══════════════════════════════════════════════════════════


async def upsert_subscriber(db: Database, chat_id: str, name: str) -> None:
    """Register a chat, or refresh its name if already registered."""
    conn = await db.get_connection()
    added_at = datetime.now(timezone.utc).isoformat(timespec="seconds")
    await conn.execute(
        """
        INSERT INTO subscribers (chat_id, name, added_at) VALUES (?, ?, ?)
        ON CONFLICT(chat_id) DO UPDATE SET name = excluded.name
        """,
        (chat_id, name, added_at),
    )
    await conn.commit()
    logger.debug("Upserted subscriber %s (%s)", chat_id, name)


async def delete_subscriber(db: Database, chat_id: str) -> bool:
    """Remove a chat. Returns True if it was registered."""
    conn = await db.get_connection()
    cursor = await conn.execute("DELETE FROM subscribers WHERE chat_id = ?", (chat_id,))
    removed = cursor.rowcount > 0
    await cursor.close()
    await conn.commit()
    logger.debug("delete_subscriber(%s) = %s", chat_id, removed)
    return removed


async def subscriber_exists(db: Database, chat_id: str) -> bool:
    conn = await db.get_connection()
    cursor = await conn.execute(
        "SELECT 1 FROM subscribers WHERE chat_id = ? LIMIT 1",
        (chat_id,),
    )
    row = await cursor.fetchone()
    await cursor.close()
    return row is not None


async def list_subscribers(db: Database) -> list[dict[str, Any]]:
    """All registered chats, oldest first."""
    conn = await db.get_connection()
    cursor = await conn.execute(
        "SELECT chat_id, name, added_at FROM subscribers ORDER BY added_at, chat_id"
    )
    rows = await cursor.fetchall()
    await cursor.close()
    return [_row_to_dict(r) for r in rows]
