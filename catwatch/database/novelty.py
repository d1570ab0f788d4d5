"""Catwatch — Novelty Store.

Remembers which record ids have already been announced for a monitored
query. Each query gets its own seen-set, named by a fingerprint of the
query URL, with a sliding expiry: every successful commit pushes the
whole set's expiry `retention_days` into the future.

The store is deliberately write-late: the pipeline probes with is_new()
before notifying and commits only afterwards, so a crash in between
re-announces rather than loses records.
"""

from __future__ import annotations

import hashlib
import time
from typing import Callable, Iterable

import aiosqlite

from catwatch.database import queries
from catwatch.database.db import Database
from catwatch.errors import StoreError
from catwatch.utils.logger import get_logger

logger = get_logger(__name__)

_SECONDS_PER_DAY = 24 * 60 * 60


def fingerprint(url: str) -> str:
    """Derive the seen-set name for a query URL.

    Args:
        url: The configured listing URL including its query string.

    Returns:
        A stable key such as "seen:cats:1a2b3c4d".
    """
    digest = hashlib.md5(url.encode("utf-8")).hexdigest()[:8]
    return f"seen:cats:{digest}"


class NoveltyStore:
    """Seen-set persistence with sliding expiry.

    Attributes:
        db: Active Database instance.
        retention_seconds: Lifetime applied to a set on every commit.
    """

    def __init__(
        self,
        db: Database,
        retention_days: int = 90,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.db = db
        self.retention_seconds = retention_days * _SECONDS_PER_DAY
        self._clock = clock

    async def is_new(self, key: str, record_id: str) -> bool:
        """Single membership probe. Never mutates the store.

        Raises:
            StoreError: If the database cannot be read.
        """
        try:
            return not await queries.is_member(self.db, key, record_id, self._clock())
        except (aiosqlite.Error, ValueError) as e:
            raise StoreError(f"Membership check failed for {key}/{record_id}: {e}") from e

    async def filter_new(self, key: str, record_ids: Iterable[str]) -> list[str]:
        """Return the ids that are new, preserving input order."""
        fresh: list[str] = []
        for rid in record_ids:
            if await self.is_new(key, rid):
                fresh.append(rid)
        return fresh

    async def commit(self, key: str, record_ids: Iterable[str]) -> bool:
        """Add ids to the set in one batch and re-apply the expiry.

        Returns:
            True on success. An empty batch is a no-op and leaves the
            expiry untouched.

        Raises:
            StoreError: If the write fails.
        """
        ids = list(record_ids)
        if not ids:
            return True
        try:
            inserted = await queries.add_members(
                self.db, key, ids, self._clock(), self.retention_seconds,
            )
        except (aiosqlite.Error, ValueError) as e:
            raise StoreError(f"Commit of {len(ids)} ids to {key} failed: {e}") from e

        logger.info(
            "Committed %d ids to %s (%d newly stored, expiry %d days)",
            len(ids), key, inserted, self.retention_seconds // _SECONDS_PER_DAY,
        )
        return True

    async def size(self, key: str) -> int:
        """Number of live ids in a seen-set."""
        try:
            return await queries.count_members(self.db, key, self._clock())
        except aiosqlite.Error as e:
            raise StoreError(f"Size lookup failed for {key}: {e}") from e

    async def purge_expired(self) -> int:
        """Drop seen-sets whose retention window has lapsed."""
        try:
            removed = await queries.purge_expired_sets(self.db, self._clock())
        except aiosqlite.Error as e:
            raise StoreError(f"Purge of expired seen-sets failed: {e}") from e
        if removed:
            logger.info("Purged %d expired seen-set(s)", removed)
        return removed
