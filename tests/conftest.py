"""Shared fixtures for the catwatch test suite.

Nothing here touches the network: listing pages are served through
respx and the Telegram bot is an AsyncMock.
"""

from __future__ import annotations

import os
import tempfile

# Keep test runs from writing into the project's logs/ directory.
os.environ.setdefault("CATWATCH_LOG_DIR", tempfile.mkdtemp(prefix="catwatch-logs-"))

import pytest

from catwatch.config import (
    AppConfig,
    FilterConfig,
    ListingConfig,
    ServerConfig,
    StoreConfig,
    TelegramConfig,
)

CHECK_URL = "https://shelter.test/katten?leeftijd=0-2"
SITE_ORIGIN = "https://shelter.test"


@pytest.fixture()
def config(tmp_path) -> AppConfig:
    """AppConfig with every delay set to zero and a per-test database."""
    return AppConfig(
        listing=ListingConfig(
            check_url=CHECK_URL,
            site_origin=SITE_ORIGIN,
            collection="katten",
            page_size=16,
            timeout_seconds=5,
            retry_backoff_seconds=0,
            page_delay_seconds=0,
        ),
        filters=FilterConfig(min_age_months=6, exclude_grouped=True),
        telegram=TelegramConfig(
            bot_token="123456:TEST-TOKEN",
            fallback_chat_id="1001",
            max_notifications=30,
            message_delay_seconds=0,
            retry_backoff_seconds=0,
        ),
        store=StoreConfig(database_path=str(tmp_path / "catwatch.db"), retention_days=90),
        server=ServerConfig(cron_secret="s3cret"),
    )


@pytest.fixture(autouse=True)
def _debug_dumps_to_tmp(tmp_path, monkeypatch):
    """Redirect empty-page debug dumps away from the project tree."""
    monkeypatch.setattr("catwatch.scraper.list_scraper.DEBUG_DIR", tmp_path / "debug")
