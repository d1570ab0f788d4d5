"""Catwatch — Listing Page Scraper.

Parses one listing page into Record objects with selectolax. The markup
of the source is not under our control, so every field is read through
an ordered list of (predicate, extractor) rules: the first rule whose
predicate holds for a card supplies the value. Each rule can be tested
on its own, and adding a fallback means appending a pair.

Cards are discovered from anchors pointing at /{collection}/{id}[/slug].
Extraction never raises for malformed markup; a page without matches
simply yields no records.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import urljoin, urlsplit

from selectolax.parser import HTMLParser, Node

from catwatch.config import ListingConfig
from catwatch.database.models import PageInfo, ParsedPage, Record
from catwatch.utils.logger import get_logger

logger = get_logger(__name__)

# Debug dump directory for pages that yield nothing
DEBUG_DIR = Path(__file__).resolve().parent.parent.parent / "logs" / "debug"

# ── Age parsing ──────────────────────────────────────────
_YEAR_UNITS = r"(?:jaren|jaar|jr\.?|years?)"
_MONTH_UNITS = r"(?:maanden|maand|mnd\.?|months?)"
# Decimal comma or point: "1,5 jaar", "0.5 year"
_AMOUNT = r"\d+(?:[.,]\d+)?"
_YEARS_RE = re.compile(rf"(?<!\d)(?<!\d[.,])({_AMOUNT})\s*{_YEAR_UNITS}(?![a-z])", re.IGNORECASE)
_MONTHS_RE = re.compile(rf"(?<!\d)(?<!\d[.,])({_AMOUNT})\s*{_MONTH_UNITS}(?![a-z])", re.IGNORECASE)
_AGE_SPAN_RE = re.compile(
    rf"(?<!\d)(?<!\d[.,]){_AMOUNT}\s*(?:{_YEAR_UNITS}|{_MONTH_UNITS})(?![a-z])"
    rf"(?:\s*(?:en|and|,|&)?\s*{_AMOUNT}\s*{_MONTH_UNITS}(?![a-z]))?",
    re.IGNORECASE,
)

# ── Page total ───────────────────────────────────────────
_COUNT_SELECTORS = (
    ".results-count",
    ".result-count",
    ".search-results__count",
    ".total-results",
    "[data-total]",
)
_COUNT_TEXT_RE = re.compile(
    r"(\d[\d.]*)\s+(?:katten|dieren|resultaten|results|cats)\b", re.IGNORECASE,
)
_COUNT_OF_RE = re.compile(r"\b(?:van|of)\s+(\d[\d.]*)", re.IGNORECASE)

# ── Card scoping ─────────────────────────────────────────
_HEADINGS = "h1, h2, h3, h4, h5, h6"
_NAME_CLASS_PARTS = {"name", "naam", "title", "titel"}
_AGE_CLASS_PARTS = {"age", "leeftijd"}
_CARD_TAGS = {"article", "li"}
_CARD_CLASS_PARTS = {"card", "item", "result", "animal", "dier", "tile"}
_MAX_SCOPE_DEPTH = 6
_LAZY_IMAGE_ATTRS = ("data-src", "data-lazy-src", "data-original", "data-srcset", "srcset")


def parse_age_months(text: str) -> int:
    """Convert a free-form age such as "1 jaar en 3 maanden" to months.

    Years and months found in the same text are summed. Decimal amounts
    ("1,5 jaar") are rounded to the nearest whole month. Anything that
    does not contain a number followed by a known unit yields 0.

    Args:
        text: Age text from a listing card.

    Returns:
        Total age in months, or 0 when unparsable.
    """
    if not text:
        return 0
    years = sum(_amount(m) for m in _YEARS_RE.findall(text))
    months = sum(_amount(m) for m in _MONTHS_RE.findall(text))
    return int(round(years * 12 + months))


def _amount(text: str) -> float:
    return float(text.replace(",", "."))


def _parse_count(text: str) -> int:
    """First integer in text, allowing '.' thousands separators."""
    match = re.search(r"\d[\d.]*", text or "")
    if not match:
        return 0
    digits = match.group(0).replace(".", "")
    return int(digits) if digits else 0


def _counter_total(text: str) -> int:
    """Total from a counter element's text.

    Range counters ("Toon 1-16 van 60 katten") start with the range, so
    "<n> katten" and "van/of <n>" are tried before the first integer.
    """
    match = _COUNT_TEXT_RE.search(text) or _COUNT_OF_RE.search(text)
    if match:
        return _parse_count(match.group(1))
    return _parse_count(text)


def _text(node: Optional[Node]) -> str:
    """Whitespace-collapsed text of a node, or empty string."""
    if node is None:
        return ""
    return " ".join(node.text(separator=" ").split())


def _attr(node: Optional[Node], name: str) -> str:
    if node is None:
        return ""
    val = node.attributes.get(name)
    return val.strip() if val else ""


def _class_parts(node: Node) -> set[str]:
    """Class names split on '-' and '_' too, so 'card__age' gives {'card', 'age'}."""
    parts: set[str] = set()
    for token in _attr(node, "class").lower().split():
        parts.add(token)
        parts.update(p for p in re.split(r"[-_]+", token) if p)
    return parts


# ═══════════════════════════════════════════════════════════
# Card model & field rules
# ═══════════════════════════════════════════════════════════


@dataclass
class _Card:
    """One candidate record: its anchor, markup scope and identity."""

    anchor: Node
    scope: Node
    record_id: str
    slug: str
    collection: str

    def first_with_class(self, wanted: set[str]) -> Optional[Node]:
        for node in self.scope.css("[class]"):
            if _class_parts(node) & wanted and _text(node):
                return node
        return None

    def scope_text(self) -> str:
        return _text(self.scope)


Predicate = Callable[[_Card], bool]
Extractor = Callable[[_Card], str]


def _first_rule(rules: list[tuple[Predicate, Extractor]], card: _Card) -> str:
    """Evaluate rules top to bottom; the first matching predicate wins."""
    for predicate, extract in rules:
        if predicate(card):
            return extract(card)
    return ""


# ── Name rules ───────────────────────────────────────────


def _name_element(card: _Card) -> Optional[Node]:
    for node in card.scope.css(_HEADINGS):
        if _text(node):
            return node
    return card.first_with_class(_NAME_CLASS_PARTS)


def _name_attribute(card: _Card) -> str:
    title = _attr(card.anchor, "title")
    if title:
        return title
    return _attr(card.scope.css_first("img[alt]"), "alt")


NAME_RULES: list[tuple[Predicate, Extractor]] = [
    (lambda c: _name_element(c) is not None, lambda c: _text(_name_element(c))),
    (lambda c: bool(_name_attribute(c)), _name_attribute),
    (lambda c: True, lambda c: f"{c.collection.capitalize()} {c.record_id}"),
]


# ── Age rules ────────────────────────────────────────────


def _age_element(card: _Card) -> Optional[Node]:
    return card.first_with_class(_AGE_CLASS_PARTS)


def _age_span(text: str) -> str:
    match = _AGE_SPAN_RE.search(text)
    return match.group(0) if match else ""


AGE_RULES: list[tuple[Predicate, Extractor]] = [
    (lambda c: _age_element(c) is not None, lambda c: _text(_age_element(c))),
    (lambda c: bool(_age_span(c.scope_text())), lambda c: _age_span(c.scope_text())),
]


# ── Image rules ──────────────────────────────────────────


def _first_image(card: _Card) -> Optional[Node]:
    return card.scope.css_first("img")


def _usable_src(value: str) -> bool:
    return bool(value) and not value.startswith("data:")


def _lazy_src(card: _Card) -> str:
    img = _first_image(card)
    for name in _LAZY_IMAGE_ATTRS:
        value = _attr(img, name)
        if _usable_src(value):
            # srcset: "url 1x, url 2x" → first url
            return value.split(",")[0].split()[0]
    return ""


IMAGE_RULES: list[tuple[Predicate, Extractor]] = [
    (lambda c: _usable_src(_attr(_first_image(c), "src")), lambda c: _attr(_first_image(c), "src")),
    (lambda c: bool(_lazy_src(c)), _lazy_src),
]


# ═══════════════════════════════════════════════════════════
# Scraper
# ═══════════════════════════════════════════════════════════


class ListScraper:
    """Parses listing pages into Records.

    Attributes:
        config: Listing configuration (collection name, site origin, page size).
    """

    def __init__(self, config: ListingConfig) -> None:
        self.config = config
        collection = re.escape(config.collection.strip("/"))
        self._href_re = re.compile(rf"/{collection}/(\d+)(?:/([^/?#]+))?")

    # ── Public API ───────────────────────────────────────

    def parse_page(self, html: str, first_page: bool = False) -> ParsedPage:
        """Extract records (and, for page 1, the declared total) from markup.

        Args:
            html: Raw page markup.
            first_page: Whether to read the total-count counter.

        Returns:
            ParsedPage with unique records in document order.
        """
        if not html or not html.strip():
            return ParsedPage(records=[], page_info=PageInfo() if first_page else None)

        tree = HTMLParser(html)
        records = self._extract_records(tree)
        page_info = self._extract_page_info(tree) if first_page else None

        logger.debug(
            "Parsed page: %d records%s",
            len(records),
            f", declared total {page_info.total_count}" if page_info else "",
        )
        return ParsedPage(records=records, page_info=page_info)

    # ── Records ──────────────────────────────────────────

    def _match_href(self, href: str) -> Optional[tuple[str, str]]:
        path = urlsplit(href).path if "://" in href or href.startswith("//") else href
        match = self._href_re.search(path)
        if not match:
            return None
        return match.group(1), match.group(2) or ""

    def _extract_records(self, tree: HTMLParser) -> list[Record]:
        records: list[Record] = []
        seen: set[str] = set()

        for anchor in tree.css("a[href]"):
            matched = self._match_href(_attr(anchor, "href"))
            if matched is None:
                continue
            record_id, slug = matched
            if record_id in seen:
                continue
            seen.add(record_id)

            try:
                card = _Card(
                    anchor=anchor,
                    scope=self._card_scope(anchor, record_id),
                    record_id=record_id,
                    slug=slug,
                    collection=self.config.collection,
                )
                records.append(self._build_record(card))
            except Exception as e:
                logger.warning("Failed to parse listing card %s: %s", record_id, e)
                records.append(self._bare_record(record_id, slug))

        return records

    def _links_other_record(self, node: Node, record_id: str) -> bool:
        for a in node.css("a[href]"):
            matched = self._match_href(_attr(a, "href"))
            if matched is not None and matched[0] != record_id:
                return True
        return False

    def _card_scope(self, anchor: Node, record_id: str) -> Node:
        """Widen from the anchor to its card container.

        Climbs ancestors until reaching an article/li or a card-like class,
        and never into an ancestor that also links another record.
        """
        scope = anchor
        node = anchor
        for _ in range(_MAX_SCOPE_DEPTH):
            parent = node.parent
            if parent is None or parent.tag in ("body", "html", "-undef"):
                break
            if self._links_other_record(parent, record_id):
                break
            scope = parent
            if parent.tag in _CARD_TAGS or _class_parts(parent) & _CARD_CLASS_PARTS:
                break
            node = parent
        return scope

    def _detail_url(self, record_id: str, slug: str) -> str:
        base = f"{self.config.site_origin}/{self.config.collection}/{record_id}"
        return f"{base}/{slug}" if slug else base

    def _absolute(self, url: str) -> Optional[str]:
        if not url:
            return None
        return urljoin(self.config.site_origin + "/", url)

    def _build_record(self, card: _Card) -> Record:
        name = _first_rule(NAME_RULES, card)
        age_text = _first_rule(AGE_RULES, card)
        image = _first_rule(IMAGE_RULES, card)

        return Record(
            record_id=card.record_id,
            display_name=name,
            detail_url=self._detail_url(card.record_id, card.slug),
            age_text=age_text,
            age_in_months=parse_age_months(age_text),
            image_url=self._absolute(image),
            description=_strip_description(card.scope_text(), name, age_text),
        )

    def _bare_record(self, record_id: str, slug: str) -> Record:
        return Record(
            record_id=record_id,
            display_name=f"{self.config.collection.capitalize()} {record_id}",
            detail_url=self._detail_url(record_id, slug),
        )

    # ── Page total ───────────────────────────────────────

    def _extract_page_info(self, tree: HTMLParser) -> PageInfo:
        total = 0
        for selector in _COUNT_SELECTORS:
            node = tree.css_first(selector)
            if node is None:
                continue
            total = _parse_count(_attr(node, "data-total")) or _counter_total(_text(node))
            if total:
                break

        if not total:
            root = tree.body or tree.root
            match = _COUNT_TEXT_RE.search(_text(root)) if root is not None else None
            if match:
                total = _parse_count(match.group(1))

        if not total:
            logger.debug("No declared total found, assuming a single page")
        return PageInfo.from_total(total, self.config.page_size)

    # ── Diagnostics ──────────────────────────────────────

    def debug_dump(self, html: str, label: str) -> Optional[Path]:
        """Save page markup under logs/debug/ for manual inspection.

        Returns:
            The written path, or None if it could not be written.
        """
        try:
            DEBUG_DIR.mkdir(parents=True, exist_ok=True)
            path = DEBUG_DIR / f"{label}.html"
            path.write_text(html, encoding="utf-8")
            logger.debug("Saved debug dump to %s", path)
            return path
        except OSError as e:
            logger.warning("Failed to save debug dump: %s", e)
            return None


def _strip_description(text: str, name: str, age_text: str) -> str:
    """Card text minus the name and age, with leftover separators trimmed."""
    for part in (name, age_text):
        if part:
            text = text.replace(part, " ")
    text = " ".join(text.split())
    return text.strip(" -–|•·,:")
