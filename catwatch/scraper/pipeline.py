"""Catwatch — Check Pipeline.

Runs one complete check of the monitored listing:

  fetch page 1 → extract → plan pages → fetch/extract pages 2..N
  → merge/dedupe → eligibility filter → novelty check → notify → commit

Failure policy:
  - page 1 cannot be fetched        → run fails, nothing is written
  - a later page cannot be fetched  → run continues with what it has
  - no records at all               → run succeeds with a warning
  - store unreadable/unwritable     → run fails
  - individual deliveries fail      → logged, run succeeds
"""

from __future__ import annotations

import asyncio
import time
from typing import Optional

from catwatch.config import AppConfig
from catwatch.database.models import Record, RunResult
from catwatch.database.novelty import NoveltyStore, fingerprint
from catwatch.errors import FetchError, StoreError
from catwatch.notifier.dispatcher import NotificationDispatcher
from catwatch.notifier.subscribers import SubscriberDirectory
from catwatch.scraper.client import ListingClient
from catwatch.scraper.eligibility import EligibilityFilter
from catwatch.scraper.list_scraper import ListScraper
from catwatch.scraper.pagination import page_url, plan_pages
from catwatch.utils.logger import get_logger

logger = get_logger(__name__)

NO_RECORDS_WARNING = "No cat IDs found"


def merge_records(pages: list[list[Record]]) -> list[Record]:
    """Concatenate pages, keeping the first occurrence of every id."""
    merged: list[Record] = []
    seen: set[str] = set()
    for records in pages:
        for record in records:
            if record.record_id not in seen:
                seen.add(record.record_id)
                merged.append(record)
    return merged


class CheckPipeline:
    """One-shot ingestion pipeline for the configured listing.

    Attributes:
        config: Full application configuration.
        store: Seen-set persistence.
        directory: Source of notification destinations.
        dispatcher: Sends notification rounds.
    """

    def __init__(
        self,
        config: AppConfig,
        store: NoveltyStore,
        directory: SubscriberDirectory,
        dispatcher: NotificationDispatcher,
        client: Optional[ListingClient] = None,
    ) -> None:
        self.config = config
        self.store = store
        self.directory = directory
        self.dispatcher = dispatcher
        self._client = client
        self._scraper = ListScraper(config.listing)
        self._filter = EligibilityFilter(config.filters)

    @property
    def novelty_key(self) -> str:
        return fingerprint(self.config.listing.check_url)

    async def run(self) -> RunResult:
        """Run one check and summarize it.

        Returns:
            RunResult; ok=False only for run-level failures.
        """
        start = time.monotonic()
        logger.info("═══ Check Starting: %s ═══", self.config.listing.check_url)

        client = self._client or ListingClient(self.config.listing)
        try:
            result = await self._run(client)
        finally:
            if self._client is None:
                await client.close()

        elapsed = time.monotonic() - start
        logger.info("═══ Check Complete ═══")
        logger.info(
            "  OK: %s | Total: %d | Pages: %d | Found: %d | New: %d | Time: %.1fs",
            result.ok, result.total_cats, result.total_pages,
            result.found, result.new, elapsed,
        )
        if result.warning:
            logger.warning("  Warning: %s", result.warning)
        if result.error:
            logger.error("  Error: %s", result.error)
        return result

    async def _run(self, client: ListingClient) -> RunResult:
        listing = self.config.listing
        warnings: list[str] = []

        # ── Step 1: First page (fatal on failure) ────────
        try:
            first_html = await client.fetch(listing.check_url)
        except FetchError as e:
            logger.error("First page fetch failed: %s", e)
            return RunResult(ok=False, error=str(e))

        first = self._scraper.parse_page(first_html, first_page=True)
        total_cats = first.page_info.total_count if first.page_info else 0
        total_pages = plan_pages(first.page_info, listing.page_size)
        logger.info(
            "Page 1/%d: %d records (declared total %d)",
            total_pages, len(first.records), total_cats,
        )
        if not first.records:
            self._scraper.debug_dump(first_html, "first_page_empty")
        if total_cats == 0:
            logger.debug("Declared total unavailable, treating listing as one page")

        # ── Step 2: Remaining pages (degrade on failure) ─
        pages: list[list[Record]] = [first.records]
        for page in range(2, total_pages + 1):
            if listing.page_delay_seconds > 0:
                await asyncio.sleep(listing.page_delay_seconds)
            url = page_url(listing.check_url, page, listing.page_param)
            try:
                html = await client.fetch(url)
            except FetchError as e:
                message = f"Stopped at page {page} of {total_pages}: {e}"
                logger.warning(message)
                warnings.append(message)
                break

            parsed = self._scraper.parse_page(html)
            if not parsed.records:
                logger.warning("Page %d/%d had no records", page, total_pages)
            else:
                logger.info("Page %d/%d: %d records", page, total_pages, len(parsed.records))
            pages.append(parsed.records)

        # ── Step 3: Merge ────────────────────────────────
        records = merge_records(pages)
        if not records:
            logger.warning("WARNING: %s. HTML structure may have changed.", NO_RECORDS_WARNING)
            warnings.append(NO_RECORDS_WARNING)
            return RunResult(
                ok=True,
                total_cats=total_cats,
                total_pages=total_pages,
                warning="; ".join(warnings),
            )

        # ── Step 4: Eligibility ──────────────────────────
        eligible = self._filter.apply(records).eligible

        result = RunResult(
            ok=True,
            total_cats=total_cats,
            total_pages=total_pages,
            found=len(records),
        )

        # ── Steps 5-7: Novelty → notify → commit ─────────
        try:
            new_records = await self._new_records(eligible)
            result.new = len(new_records)
            if new_records:
                error = await self._notify_and_commit(new_records)
                if error:
                    result.ok = False
                    result.error = error
        except StoreError as e:
            logger.error("Novelty store failure: %s", e)
            result.ok = False
            result.error = str(e)

        if warnings:
            result.warning = "; ".join(warnings)
        return result

    async def _new_records(self, eligible: list[Record]) -> list[Record]:
        key = self.novelty_key
        fresh_ids = set(await self.store.filter_new(key, [r.record_id for r in eligible]))
        new_records = [r for r in eligible if r.record_id in fresh_ids]
        logger.info(
            "Novelty: %d new of %d eligible (set %s)", len(new_records), len(eligible), key,
        )
        return new_records

    async def _notify_and_commit(self, new_records: list[Record]) -> Optional[str]:
        """Notify, then commit the new ids unless nothing could be delivered.

        Returns:
            A run-level error message, or None on success.
        """
        subscribers = await self.directory.list_subscribers()
        if not subscribers:
            return f"{len(new_records)} new records but no chat to notify"

        report = await self.dispatcher.dispatch(new_records, subscribers)
        if report.delivered == 0 and report.failed > 0:
            # Keep the ids new so the next run tries again
            return f"All {report.failed} notification deliveries failed"

        await self.store.commit(self.novelty_key, [r.record_id for r in new_records])
        if report.failed:
            logger.warning(
                "%d of %d deliveries failed, ids committed anyway",
                report.failed, report.failed + report.delivered,
            )
        return None
