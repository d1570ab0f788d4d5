"""Tests for page planning and follow-up page URLs."""

from __future__ import annotations

import pytest

from catwatch.database.models import PageInfo
from catwatch.scraper.pagination import page_url, plan_pages


class TestPlanPages:
    @pytest.mark.parametrize(
        "total, expected",
        [(60, 4), (64, 4), (65, 5), (16, 1), (1, 1), (0, 1)],
    )
    def test_ceil_of_total_over_page_size(self, total: int, expected: int) -> None:
        assert plan_pages(PageInfo(total_count=total), 16) == expected

    def test_missing_page_info_is_one_page(self) -> None:
        assert plan_pages(None, 16) == 1

    def test_from_total_never_below_one(self) -> None:
        assert PageInfo.from_total(-5, 16).total_pages == 1
        assert PageInfo.from_total(10, 0).total_pages == 1


class TestPageUrl:
    BASE = "https://shelter.test/katten?gedragkinderen=6%2C14&leeftijd=0-2&regio="

    def test_first_page_is_unchanged(self) -> None:
        assert page_url(self.BASE, 1) == self.BASE

    def test_later_page_adds_parameter(self) -> None:
        url = page_url(self.BASE, 3)
        assert url.endswith("page=3")
        assert "gedragkinderen=6%2C14" in url
        assert "leeftijd=0-2" in url

    def test_existing_page_parameter_is_replaced(self) -> None:
        url = page_url("https://shelter.test/katten?page=1&x=y", 2)
        assert "page=2" in url
        assert "page=1" not in url

    def test_custom_parameter_name(self) -> None:
        assert "p=4" in page_url("https://shelter.test/katten", 4, page_param="p")
