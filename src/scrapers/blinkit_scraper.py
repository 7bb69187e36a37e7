# src/scrapers/blinkit_scraper.py

"""Scraper for blinkit.com quick-commerce listings."""

from src.scrapers.base_scraper import BaseScraper


class BlinkitScraper(BaseScraper):
    """Scraper for blinkit.com quick-commerce listings."""

    def __init__(self) -> None:
        super().__init__("blinkit")

    def _get_homepage(self) -> str:
        """Return the Blinkit homepage URL."""
        return "https://blinkit.com/"
