"""Catwatch — Main Runner.

Long-running mode: one process holds the database, the pipeline, the
Telegram bot and an APScheduler instance.

Jobs:
  - check cycle: once at startup, then every `scan_interval_seconds`
  - seen-set maintenance: daily at `maintenance_hour`

Bot updates are polled in the same loop, so /start, /status and /stop
work without a public webhook.

Usage:
    python -m catwatch.main
    python scripts/run.py
"""

from __future__ import annotations

import asyncio
import signal
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from telegram import Update
from telegram.ext import Application

from catwatch.config import AppConfig, load_config
from catwatch.database.db import Database
from catwatch.database.models import RunResult
from catwatch.database.novelty import NoveltyStore
from catwatch.errors import StoreError
from catwatch.notifier.commands import CommandHandler
from catwatch.notifier.dispatcher import NotificationDispatcher
from catwatch.notifier.subscribers import SubscriberDirectory
from catwatch.notifier.telegram_bot import TelegramNotifier
from catwatch.scraper.pipeline import CheckPipeline
from catwatch.utils.logger import get_logger, set_console_level

logger = get_logger(__name__)


class CatWatcher:
    """Owns every long-lived resource of the watcher process.

    Attributes:
        config: Application configuration, loaded on start() when None.
        db: Open database while running.
    """

    def __init__(self, config: Optional[AppConfig] = None) -> None:
        self.config = config
        self.db: Optional[Database] = None
        self._store: Optional[NoveltyStore] = None
        self._telegram: Optional[TelegramNotifier] = None
        self._pipeline: Optional[CheckPipeline] = None
        self._tg_app: Optional[Application] = None
        self._scheduler: Optional[AsyncIOScheduler] = None

        self._running = False
        self._cycle_count = 0
        self._cycle_lock = asyncio.Lock()

    async def start(self) -> None:
        """Bring everything up, run a first check, then idle until stop()."""
        self._running = True
        try:
            if self.config is None:
                self.config = load_config()
            set_console_level(self.config.log_level)

            directory = await self._open_components()
            await self._start_polling(directory)
            self._schedule_jobs()

            logger.info("── First check ──")
            await self.run_check_cycle()

            logger.info("Watching (Ctrl+C to stop)")
            while self._running:
                await asyncio.sleep(1)
        except Exception:
            logger.exception("Watcher crashed")
        finally:
            await self.shutdown()

    async def _open_components(self) -> SubscriberDirectory:
        cfg = self.config
        self.db = Database(cfg.store.database_path)
        await self.db.initialize()
        logger.info("Database open at %s", cfg.store.database_path)

        self._telegram = TelegramNotifier(cfg.telegram)
        if not await self._telegram.initialize():
            logger.error("Could not reach Telegram, notifications will fail until it recovers")

        directory = SubscriberDirectory(self.db, cfg.telegram.fallback_chat_id)
        self._store = NoveltyStore(self.db, retention_days=cfg.store.retention_days)
        self._pipeline = CheckPipeline(
            cfg,
            store=self._store,
            directory=directory,
            dispatcher=NotificationDispatcher(cfg.telegram, self._telegram, cfg.listing.check_url),
        )
        return directory

    async def _start_polling(self, directory: SubscriberDirectory) -> None:
        """Build the PTB Application on the shared bot and start polling."""
        self._tg_app = Application.builder().bot(self._telegram.bot).build()
        CommandHandler(directory).register(self._tg_app)

        await self._tg_app.initialize()
        await self._tg_app.start()
        # my_chat_member updates are only delivered when asked for
        await self._tg_app.updater.start_polling(allowed_updates=Update.ALL_TYPES)
        logger.info("Polling Telegram for commands")

    def _schedule_jobs(self) -> None:
        server = self.config.server
        scheduler = AsyncIOScheduler()
        scheduler.add_job(
            self.run_check_cycle,
            IntervalTrigger(seconds=server.scan_interval_seconds),
            id="check_cycle",
            name=f"check every {server.scan_interval_seconds}s",
            max_instances=1,
            misfire_grace_time=60,
        )
        scheduler.add_job(
            self._run_maintenance,
            CronTrigger(hour=server.maintenance_hour, minute=0),
            id="maintenance",
            name=f"purge expired seen-sets at {server.maintenance_hour}:00",
            max_instances=1,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info("Scheduled: %s", ", ".join(job.name for job in scheduler.get_jobs()))

    async def run_check_cycle(self) -> Optional[RunResult]:
        """Run one check; returns None when a previous one is still running."""
        if self._cycle_lock.locked():
            logger.warning("Check #%d still in progress, skipping this tick", self._cycle_count)
            return None

        async with self._cycle_lock:
            self._cycle_count += 1
            logger.info(
                "── Check #%d (%s) ──",
                self._cycle_count, datetime.now().strftime("%H:%M:%S"),
            )
            began = time.monotonic()
            try:
                result = await self._pipeline.run()
            except Exception as e:
                logger.exception("Check #%d raised", self._cycle_count)
                result = RunResult(ok=False, error=str(e))

            logger.info(
                "Check #%d finished in %.1fs: ok=%s found=%d new=%d",
                self._cycle_count, time.monotonic() - began,
                result.ok, result.found, result.new,
            )
            return result

    async def _run_maintenance(self) -> None:
        try:
            removed = await self._store.purge_expired()
        except StoreError as e:
            logger.error("Seen-set purge failed: %s", e)
            return
        logger.info("Purged %d expired seen-sets", removed)

    def stop(self) -> None:
        self._running = False

    async def shutdown(self) -> None:
        """Release everything start() acquired, in reverse order."""
        self._running = False

        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)

        if self._tg_app is not None:
            try:
                if self._tg_app.updater and self._tg_app.updater.running:
                    await self._tg_app.updater.stop()
                if self._tg_app.running:
                    await self._tg_app.stop()
                await self._tg_app.shutdown()
            except Exception as e:
                logger.warning("Telegram polling did not stop cleanly: %s", e)
        elif self._telegram is not None:
            await self._telegram.close()

        if self.db is not None:
            await self.db.close()

        logger.info("Watcher stopped after %d checks", self._cycle_count)


def main() -> None:
    for directory in ("data", "logs"):
        Path(directory).mkdir(exist_ok=True)

    watcher = CatWatcher()

    def _request_stop(signum, _frame):
        logger.info("Got %s, stopping", signal.Signals(signum).name)
        watcher.stop()

    for signum in (signal.SIGINT, signal.SIGTERM):
        signal.signal(signum, _request_stop)

    try:
        asyncio.run(watcher.start())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
