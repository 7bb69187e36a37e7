# src/scrapers/zepto_scraper.py

"""Scraper for Zepto quick-commerce listings."""

from src.scrapers.base_scraper import BaseScraper


class ZeptoScraper(BaseScraper):
    """Scraper for Zepto quick-commerce listings."""

    def __init__(self) -> None:
        super().__init__("zepto")

    def _get_homepage(self) -> str:
        """Return the Zepto homepage URL."""
        return "https://www.zeptonow.com/"
