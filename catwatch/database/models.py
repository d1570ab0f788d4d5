"""Catwatch — Data Models.

Dataclasses for everything that flows through one pipeline run:
records scraped from the listing, page metadata, subscribers, and the
summary objects each stage hands to the next.

Records are rebuilt from live HTML on every run and never persisted;
only their ids end up in the seen-set.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


# ═══════════════════════════════════════════════════════════
# Scraper Models
# ═══════════════════════════════════════════════════════════


@dataclass
class Record:
    """One adoptable animal as seen on a listing page.

    Two records with the same record_id are the same animal, whatever
    the other fields say on a later page load.

    Attributes:
        record_id: Numeric id from the detail URL, as a string.
        display_name: Animal name (or "Katten 1234" when none was found).
        detail_url: Canonical absolute URL of the detail page.
        age_text: Age exactly as printed on the card.
        age_in_months: Parsed age; 0 when age_text could not be parsed.
        image_url: Absolute photo URL, if the card had one.
        description: Best-effort card text without the name and age.
    """

    record_id: str
    display_name: str
    detail_url: str
    age_text: str = ""
    age_in_months: int = 0
    image_url: Optional[str] = None
    description: str = ""


@dataclass
class PageInfo:
    """Declared size of the whole listing, read from page 1.

    Attributes:
        total_count: Declared number of records across all pages, 0 if unknown.
        total_pages: Pages to fetch, derived from total_count and page size.
    """

    total_count: int = 0
    total_pages: int = 1

    @classmethod
    def from_total(cls, total_count: int, page_size: int) -> "PageInfo":
        """Build a PageInfo whose page count is ceil(total / page_size), at least 1."""
        total_count = max(0, total_count)
        pages = math.ceil(total_count / page_size) if page_size > 0 else 1
        return cls(total_count=total_count, total_pages=max(1, pages))


@dataclass
class ParsedPage:
    """Extractor output for one listing page.

    page_info is only populated for the first page.
    """

    records: list[Record] = field(default_factory=list)
    page_info: Optional[PageInfo] = None


# ═══════════════════════════════════════════════════════════
# Subscriber Model
# ═══════════════════════════════════════════════════════════


@dataclass
class Subscriber:
    """A Telegram chat that receives notifications.

    Attributes:
        chat_id: Telegram chat id as a string (groups are negative).
        name: Chat title or type, for display only.
        added_at: ISO timestamp of registration, empty for the fallback chat.
    """

    chat_id: str
    name: str = ""
    added_at: str = ""

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "Subscriber":
        return cls(
            chat_id=str(row["chat_id"]),
            name=row.get("name", "") or "",
            added_at=row.get("added_at", "") or "",
        )


# ═══════════════════════════════════════════════════════════
# Stage Reports
# ═══════════════════════════════════════════════════════════


@dataclass
class EligibilityReport:
    """Result of applying the eligibility rules to a record set.

    removed_by_age and removed_as_grouped are counted independently:
    a record failing both rules shows up in both counters.
    """

    eligible: list[Record] = field(default_factory=list)
    removed_by_age: int = 0
    removed_as_grouped: int = 0


@dataclass
class DispatchReport:
    """Outcome of one notification round.

    Attributes:
        records_attempted: Records for which at least one send was tried.
        overflow: New records not individually announced because of the cap.
        delivered: Successful (record or summary, chat) sends.
        failed: Failed (record or summary, chat) sends, after retry.
        failures: Human-readable failure descriptions.
    """

    records_attempted: int = 0
    overflow: int = 0
    delivered: int = 0
    failed: int = 0
    failures: list[str] = field(default_factory=list)


@dataclass
class RunResult:
    """Summary of one pipeline run, returned to the trigger.

    Attributes:
        ok: False only for run-level failures (first page, store).
        total_cats: Declared total from the listing counter.
        total_pages: Pages the planner asked for.
        found: Unique records extracted across all fetched pages.
        new: Eligible records not seen before in this query's seen-set.
        warning: Non-fatal condition worth alerting on.
        error: Run-level failure message.
        timestamp: ISO-8601 UTC completion time.
    """

    ok: bool
    total_cats: int = 0
    total_pages: int = 0
    found: int = 0
    new: int = 0
    warning: Optional[str] = None
    error: Optional[str] = None
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the response body shape used by the trigger endpoint."""
        body: dict[str, Any] = {
            "ok": self.ok,
            "totalCats": self.total_cats,
            "totalPages": self.total_pages,
            "found": self.found,
            "new": self.new,
            "timestamp": self.timestamp,
        }
        if self.warning:
            body["warning"] = self.warning
        if self.error:
            body["error"] = self.error
        return body
