"""Tests for the listing page extractor and age parsing.

Pages are small hand-written fragments shaped like the adoption site's
result grid: one <li> card per animal, linking /katten/<id>/<slug>.
"""

from __future__ import annotations

import pytest

from catwatch.config import ListingConfig
from catwatch.scraper.list_scraper import ListScraper, parse_age_months

ORIGIN = "https://shelter.test"


def _card(record_id: str, name: str = "", age: str = "", body: str = "", img: str = "") -> str:
    name_html = f'<h3 class="animal-card__name">{name}</h3>' if name else ""
    age_html = f'<span class="animal-card__age">{age}</span>' if age else ""
    img_html = img or f'<img src="/media/{record_id}.jpg" alt="{name}">'
    return (
        '<li class="animal-card">'
        f'<a href="/katten/{record_id}/{(name or "kat").lower()}">{img_html}</a>'
        f"{name_html}{age_html}<p>{body}</p>"
        "</li>"
    )


def _page(*cards: str, header: str = "") -> str:
    return (
        "<html><body>"
        f"{header}"
        f'<ul class="results">{"".join(cards)}</ul>'
        "</body></html>"
    )


def _declared_total(scraper: ListScraper, html: str) -> int:
    return scraper.parse_page(html, first_page=True).page_info.total_count


@pytest.fixture()
def scraper() -> ListScraper:
    return ListScraper(ListingConfig(site_origin=ORIGIN, collection="katten", page_size=16))


# ---------------------------------------------------------------------------
# Age parsing
# ---------------------------------------------------------------------------

class TestParseAgeMonths:
    @pytest.mark.parametrize(
        "text, months",
        [
            ("1 jaar en 3 maanden", 15),
            ("1 year 3 months", 15),
            ("5 maanden", 5),
            ("2 jaar", 24),
            ("3 jaren", 36),
            ("1 maand", 1),
            ("2 jr.", 24),
            ("1,5 jaar", 18),
            ("0,4 jaar", 5),
            ("0.5 year", 6),
            ("2,5 maanden", 2),
        ],
    )
    def test_known_formats(self, text: str, months: int) -> None:
        assert parse_age_months(text) == months

    @pytest.mark.parametrize("text", ["", "onbekend", "10 weken", "jong"])
    def test_unparsable_is_zero(self, text: str) -> None:
        assert parse_age_months(text) == 0


# ---------------------------------------------------------------------------
# Record extraction
# ---------------------------------------------------------------------------

class TestParsePage:
    def test_extracts_full_card(self, scraper: ListScraper) -> None:
        html = _page(_card("1234", "Minou", "1 jaar en 3 maanden", "Lieve poes, houdt van knuffelen."))
        [record] = scraper.parse_page(html).records

        assert record.record_id == "1234"
        assert record.display_name == "Minou"
        assert record.detail_url == f"{ORIGIN}/katten/1234/minou"
        assert record.age_text == "1 jaar en 3 maanden"
        assert record.age_in_months == 15
        assert record.image_url == f"{ORIGIN}/media/1234.jpg"
        assert record.description == "Lieve poes, houdt van knuffelen."

    def test_keeps_document_order(self, scraper: ListScraper) -> None:
        html = _page(_card("3", "C"), _card("1", "A"), _card("2", "B"))
        assert [r.record_id for r in scraper.parse_page(html).records] == ["3", "1", "2"]

    def test_duplicate_ids_collapse_to_first(self, scraper: ListScraper) -> None:
        html = _page(_card("7", "First", "2 jaar"), _card("7", "Second", "3 jaar"))
        records = scraper.parse_page(html).records

        assert len(records) == 1
        assert records[0].display_name == "First"
        assert records[0].age_in_months == 24

    def test_ignores_links_outside_collection(self, scraper: ListScraper) -> None:
        html = _page(
            _card("5", "Kat"),
            '<li><a href="/honden/99/rex">Rex</a></li>',
            '<li><a href="/katten/nieuws">Nieuws</a></li>',
        )
        assert [r.record_id for r in scraper.parse_page(html).records] == ["5"]

    def test_absolute_hrefs(self, scraper: ListScraper) -> None:
        html = _page(
            '<li class="animal-card">'
            f'<a href="{ORIGIN}/katten/42/garfield"><h3>Garfield</h3></a>'
            "</li>"
        )
        [record] = scraper.parse_page(html).records
        assert record.record_id == "42"
        assert record.detail_url == f"{ORIGIN}/katten/42/garfield"

    def test_url_without_slug(self, scraper: ListScraper) -> None:
        html = _page('<li><a href="/katten/88"><h3>Zorro</h3></a></li>')
        [record] = scraper.parse_page(html).records
        assert record.detail_url == f"{ORIGIN}/katten/88"


class TestFieldFallbacks:
    def test_name_from_anchor_title(self, scraper: ListScraper) -> None:
        html = _page('<li><a href="/katten/10/felix" title="Felix"><img src="/x.jpg"></a></li>')
        assert scraper.parse_page(html).records[0].display_name == "Felix"

    def test_name_from_image_alt(self, scraper: ListScraper) -> None:
        html = _page('<li><a href="/katten/11/tijger"><img src="/x.jpg" alt="Tijger"></a></li>')
        assert scraper.parse_page(html).records[0].display_name == "Tijger"

    def test_name_falls_back_to_collection_and_id(self, scraper: ListScraper) -> None:
        html = _page('<li><a href="/katten/77"><img src="/x.jpg"></a></li>')
        assert scraper.parse_page(html).records[0].display_name == "Katten 77"

    def test_age_from_card_text(self, scraper: ListScraper) -> None:
        html = _page(_card("12", "Bo", body="Kater van 2 jaar, gecastreerd"))
        record = scraper.parse_page(html).records[0]
        assert record.age_text == "2 jaar"
        assert record.age_in_months == 24

    def test_decimal_age_is_not_split(self, scraper: ListScraper) -> None:
        html = _page(_card("16", "Pip", body="Kitten van 0,4 jaar"))
        record = scraper.parse_page(html).records[0]
        assert record.age_text == "0,4 jaar"
        assert record.age_in_months == 5

    def test_missing_age_is_zero(self, scraper: ListScraper) -> None:
        record = scraper.parse_page(_page(_card("13", "Nala"))).records[0]
        assert record.age_text == ""
        assert record.age_in_months == 0

    def test_lazy_image_attribute(self, scraper: ListScraper) -> None:
        img = '<img src="data:image/gif;base64,R0lGOD" data-src="/media/lazy.jpg" alt="Luna">'
        record = scraper.parse_page(_page(_card("14", "Luna", img=img))).records[0]
        assert record.image_url == f"{ORIGIN}/media/lazy.jpg"

    def test_no_image(self, scraper: ListScraper) -> None:
        html = _page('<li><a href="/katten/15/mo"><h3>Mo</h3></a></li>')
        assert scraper.parse_page(html).records[0].image_url is None

    def test_card_scope_does_not_leak_between_records(self, scraper: ListScraper) -> None:
        html = (
            "<html><body><div>"
            '<a href="/katten/1"><h3>One</h3><span class="age">8 maanden</span></a>'
            '<a href="/katten/2"><h3>Two</h3><span class="age">2 jaar</span></a>'
            "</div></body></html>"
        )
        one, two = scraper.parse_page(html).records
        assert (one.display_name, one.age_in_months) == ("One", 8)
        assert (two.display_name, two.age_in_months) == ("Two", 24)


# ---------------------------------------------------------------------------
# Declared total
# ---------------------------------------------------------------------------

class TestPageInfo:
    def test_counter_element(self, scraper: ListScraper) -> None:
        html = _page(_card("1", "A"), header='<p class="results-count">42 katten gevonden</p>')
        info = scraper.parse_page(html, first_page=True).page_info

        assert info is not None
        assert info.total_count == 42
        assert info.total_pages == 3

    def test_data_total_attribute(self, scraper: ListScraper) -> None:
        html = _page(_card("1", "A"), header='<div data-total="60"></div>')
        assert _declared_total(scraper, html) == 60

    def test_text_fallback_with_thousands_separator(self, scraper: ListScraper) -> None:
        html = "<html><body><div>Er zijn 1.234 katten beschikbaar</div></body></html>"
        assert _declared_total(scraper, html) == 1234

    @pytest.mark.parametrize(
        "counter",
        ["Toon 1-16 van 60 katten", "Toon 1 - 16 van 60", "Showing 1-16 of 60 results"],
    )
    def test_range_counter(self, scraper: ListScraper, counter: str) -> None:
        html = _page(_card("1", "A"), header=f'<p class="results-count">{counter}</p>')
        info = scraper.parse_page(html, first_page=True).page_info

        assert info.total_count == 60
        assert info.total_pages == 4

    def test_no_counter_means_one_page(self, scraper: ListScraper) -> None:
        info = scraper.parse_page(_page(_card("1", "A")), first_page=True).page_info
        assert info is not None
        assert (info.total_count, info.total_pages) == (0, 1)

    def test_later_pages_skip_page_info(self, scraper: ListScraper) -> None:
        html = _page(_card("1", "A"), header='<p class="results-count">42 katten</p>')
        assert scraper.parse_page(html).page_info is None


class TestDegenerateMarkup:
    @pytest.mark.parametrize(
        "html",
        [
            "",
            "   ",
            "<html><body><p>Geen resultaten</p></body></html>",
            "<div><a href='/katten/abc'>x</a><p>unclosed",
            "<<<>>>",
        ],
    )
    def test_yields_no_records(self, scraper: ListScraper, html: str) -> None:
        parsed = scraper.parse_page(html, first_page=True)
        assert parsed.records == []
        assert parsed.page_info is not None
        assert parsed.page_info.total_pages == 1

    def test_debug_dump_writes_file(self, scraper: ListScraper, tmp_path) -> None:
        path = scraper.debug_dump("<html></html>", "empty")
        assert path is not None
        assert path.read_text(encoding="utf-8") == "<html></html>"
