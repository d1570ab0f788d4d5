"""Catwatch — Telegram Message Formatters.

Builds the HTML-mode Telegram messages for a notification round. HTML
is used rather than MarkdownV2 because only &, < and > need escaping.

A round to one chat looks like:
  header  → "🐱 3 new cats available for adoption!"
  records → one photo-with-caption (or text) per record
  overflow→ "…and 5 more" with a link to the listing
"""

from __future__ import annotations

from catwatch.database.models import Record

# Telegram limits
CAPTION_LIMIT = 1024
_DESCRIPTION_LIMIT = 300


def _e(text: str) -> str:
    """Escape HTML special characters for Telegram HTML parse mode."""
    if not text:
        return ""
    return str(text).replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _link(text: str, url: str) -> str:
    safe_url = url.replace("&", "&amp;").replace('"', "&quot;")
    return f'<a href="{safe_url}">{_e(text)}</a>'


def _bold(text: str) -> str:
    return f"<b>{_e(text)}</b>"


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1].rstrip() + "…"


def format_header(count: int) -> str:
    """Opening message announcing how many new records were found."""
    noun = "cat" if count == 1 else "cats"
    return f"🐱 {_bold(f'{count} new {noun} available for adoption!')}"


def format_record(record: Record) -> str:
    """Caption / text body for a single record.

    Name (linked), age, and a shortened description, one per line. The
    result always fits in a photo caption.
    """
    lines = [f"<b>{_link(record.display_name, record.detail_url)}</b>"]
    if record.age_text:
        lines.append(f"🎂 {_e(record.age_text)}")
    if record.description:
        lines.append("")
        lines.append(_e(_truncate(record.description, _DESCRIPTION_LIMIT)))

    text = "\n".join(lines)
    if len(text) > CAPTION_LIMIT:
        text = "\n".join(lines[:2])
    return text


def format_overflow(overflow: int, listing_url: str) -> str:
    """Closing note for records beyond the per-run cap."""
    noun = "cat" if overflow == 1 else "cats"
    return f"<i>…and {overflow} more {noun}.</i> {_link('See the full listing', listing_url)}"
