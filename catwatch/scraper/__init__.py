"""Catwatch — Scraper Package.

Turns the monitored listing into eligible, new records. Components:
  - ListingClient: Async HTTP client with one-retry policy
  - ListScraper: Listing page record extractor
  - EligibilityFilter: Age and grouped-adoption rules
  - CheckPipeline: One complete check run
"""

from catwatch.scraper.client import ListingClient
from catwatch.scraper.eligibility import EligibilityFilter
from catwatch.scraper.list_scraper import ListScraper
from catwatch.scraper.pipeline import CheckPipeline

__all__ = [
    "ListingClient",
    "ListScraper",
    "EligibilityFilter",
    "CheckPipeline",
]
