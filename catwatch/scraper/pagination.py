"""Catwatch — Pagination Planner.

Turns the declared total from page 1 into the number of pages to fetch,
and builds the URL of each follow-up page.
"""

from __future__ import annotations

import httpx

from catwatch.database.models import PageInfo


def plan_pages(page_info: PageInfo | None, page_size: int) -> int:
    """Number of pages covering the declared total.

    Args:
        page_info: Page-1 metadata, or None when nothing was declared.
        page_size: Records per listing page.

    Returns:
        max(1, ceil(total_count / page_size)).
    """
    if page_info is None:
        return 1
    return PageInfo.from_total(page_info.total_count, page_size).total_pages


def page_url(base_url: str, page: int, page_param: str = "page") -> str:
    """URL of listing page `page`, keeping every other query parameter.

    Page 1 is the configured URL unchanged.
    """
    if page <= 1:
        return base_url
    return str(httpx.URL(base_url).copy_set_param(page_param, str(page)))
