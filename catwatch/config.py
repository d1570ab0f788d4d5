"""Catwatch — Configuration Loader.

Loads and validates application configuration from config/settings.yaml.
Resolves environment variables referenced via ${VAR_NAME} syntax and
returns a frozen AppConfig that is built once at startup and passed
explicitly into the pipeline, the trigger API and the scheduler.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from catwatch.utils.logger import get_logger

logger = get_logger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_SETTINGS = PROJECT_ROOT / "config" / "settings.yaml"

ENV_REFERENCE = re.compile(r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::-(?P<default>[^}]*))?}")

DEFAULT_CHECK_URL = (
    "https://www.adopteereendier.be/katten?gedragkinderen=6%2C14&leeftijd=0-2&regio="
)
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# ═══════════════════════════════════════════════════════════
# Configuration dataclasses
# ═══════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ListingConfig:
    """Where and how the listing source is scraped."""

    check_url: str = DEFAULT_CHECK_URL
    site_origin: str = "https://www.adopteereendier.be"
    collection: str = "katten"
    page_size: int = 16
    page_param: str = "page"
    timeout_seconds: float = 15.0
    retry_backoff_seconds: float = 2.0
    page_delay_seconds: float = 1.0
    user_agents: list[str] = field(default_factory=lambda: [DEFAULT_USER_AGENT])

@dataclass(frozen=True)
class FilterConfig:
    """Eligibility rules applied to every extracted record."""

    min_age_months: int = 6
    exclude_grouped: bool = True

@dataclass(frozen=True)
class TelegramConfig:
    """Telegram delivery settings."""

    bot_token: str
    fallback_chat_id: str = ""
    max_notifications: int = 30
    message_delay_seconds: float = 0.5
    retry_backoff_seconds: float = 2.0
    timeout_seconds: float = 15.0

@dataclass(frozen=True)
class StoreConfig:
    """SQLite store holding seen-sets and subscribers."""

    database_path: str = "data/catwatch.db"
    retention_days: int = 90

@dataclass(frozen=True)
class ServerConfig:
    """Inbound trigger and scheduling settings."""

    cron_secret: str = ""
    host: str = "0.0.0.0"
    port: int = 8000
    scan_interval_seconds: int = 900
    maintenance_hour: int = 3

@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration container."""

    listing: ListingConfig
    filters: FilterConfig
    telegram: TelegramConfig
    store: StoreConfig
    server: ServerConfig
    log_level: str = "INFO"

# ═══════════════════════════════════════════════════════════
# Reading settings.yaml
# ═══════════════════════════════════════════════════════════


def _expand_env(value: Any) -> Any:
    """Substitute ${NAME} and ${NAME:-default} in every string of a YAML tree.

    Raises:
        ValueError: If NAME is unset and the reference has no default.
    """
    if isinstance(value, dict):
        return {key: _expand_env(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand_env(item) for item in value]
    if not isinstance(value, str):
        return value

    def _lookup(match: re.Match) -> str:
        name, default = match.group("name"), match.group("default")
        resolved = os.environ.get(name, default)
        if resolved is None:
            raise ValueError(f"settings.yaml references ${{{name}}} but {name} is not set (check .env)")
        return resolved

    return ENV_REFERENCE.sub(_lookup, value)


def _read_settings(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise FileNotFoundError(f"No settings file at {path}")
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a YAML mapping")
    return data


def _require(data: dict[str, Any], section: str, *keys: str) -> None:
    absent = [key for key in keys if key not in data]
    if absent:
        raise ValueError(f"[{section}] is missing: {', '.join(absent)}")


# ═══════════════════════════════════════════════════════════
# Section builders
# ═══════════════════════════════════════════════════════════


def _listing(data: dict[str, Any]) -> ListingConfig:
    _require(data, "listing", "check_url", "site_origin")

    page_size = int(data.get("page_size", 16))
    if page_size <= 0:
        raise ValueError(f"listing.page_size must be positive, got {page_size}")

    return ListingConfig(
        check_url=data["check_url"],
        site_origin=str(data["site_origin"]).rstrip("/"),
        collection=data.get("collection", "katten"),
        page_size=page_size,
        page_param=data.get("page_param", "page"),
        timeout_seconds=float(data.get("timeout_seconds", 15)),
        retry_backoff_seconds=float(data.get("retry_backoff_seconds", 2)),
        page_delay_seconds=float(data.get("page_delay_seconds", 1)),
        user_agents=list(data.get("user_agents") or [DEFAULT_USER_AGENT]),
    )


_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off", ""}


def _flag(value: Any, key: str) -> bool:
    """YAML booleans pass through; strings from ${VAR} expansion are parsed."""
    if isinstance(value, bool):
        return value
    word = str(value).strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ValueError(f"{key} must be true or false, got {value!r}")


def _filters(data: dict[str, Any]) -> FilterConfig:
    return FilterConfig(
        min_age_months=int(data.get("min_age_months", 6)),
        exclude_grouped=_flag(data.get("exclude_grouped", True), "filters.exclude_grouped"),
    )


def _telegram(data: dict[str, Any]) -> TelegramConfig:
    _require(data, "telegram", "bot_token")
    return TelegramConfig(
        bot_token=data["bot_token"],
        fallback_chat_id=str(data.get("chat_id") or ""),
        max_notifications=int(data.get("max_notifications", 30)),
        message_delay_seconds=float(data.get("message_delay_seconds", 0.5)),
        retry_backoff_seconds=float(data.get("retry_backoff_seconds", 2)),
        timeout_seconds=float(data.get("timeout_seconds", 15)),
    )


def _store(data: dict[str, Any]) -> StoreConfig:
    _require(data, "store", "path")
    return StoreConfig(
        database_path=data["path"],
        retention_days=int(data.get("retention_days", 90)),
    )


def _server(data: dict[str, Any]) -> ServerConfig:
    return ServerConfig(
        cron_secret=str(data.get("cron_secret") or ""),
        host=data.get("host", "0.0.0.0"),
        port=int(data.get("port", 8000)),
        scan_interval_seconds=int(data.get("scan_interval_seconds", 900)),
        maintenance_hour=int(data.get("maintenance_hour", 3)),
    )


def load_config(
    settings_path: Optional[Path] = None,
    env_path: Optional[Path] = None,
) -> AppConfig:
    """Build the AppConfig from settings.yaml and the environment.

    Args:
        settings_path: settings.yaml to read (default: config/settings.yaml).
        env_path: .env file loaded before expansion (default: project root .env).
            Variables already in the environment win over the file.

    Raises:
        FileNotFoundError: If the settings file is missing.
        ValueError: On a missing section or key, an invalid value, or an
            unset environment variable without default.
    """
    load_dotenv(env_path or PROJECT_ROOT / ".env")

    path = settings_path or DEFAULT_SETTINGS
    settings = _expand_env(_read_settings(path))
    _require(settings, "settings", "listing", "telegram", "store")

    config = AppConfig(
        listing=_listing(settings["listing"]),
        filters=_filters(settings.get("filters") or {}),
        telegram=_telegram(settings["telegram"]),
        store=_store(settings["store"]),
        server=_server(settings.get("server") or {}),
        log_level=(settings.get("logging") or {}).get("level", "INFO"),
    )

    logger.info("Settings loaded from %s", path)
    logger.debug(
        "Watching %s (min age %d months, exclude grouped=%s), db %s",
        config.listing.check_url, config.filters.min_age_months,
        config.filters.exclude_grouped, config.store.database_path,
    )
    return config
