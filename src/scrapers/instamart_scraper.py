# src/scrapers/instamart_scraper.py

"""Scraper for Swiggy Instamart listings."""

from src.scrapers.base_scraper import BaseScraper


class InstamartScraper(BaseScraper):
    """Scraper for Swiggy Instamart listings."""

    def __init__(self) -> None:
        super().__init__("instamart")

    def _get_homepage(self) -> str:
        """Return the Instamart homepage URL."""
        return "https://www.swiggy.com/instamart"
