# src/scrapers/flipkart_scraper.py

"""Scraper for flipkart.com product pages."""

from src.scrapers.base_scraper import BaseScraper


class FlipkartScraper(BaseScraper):
    """Scraper for flipkart.com product pages."""

    def __init__(self) -> None:
        super().__init__("flipkart")

    def _get_homepage(self) -> str:
        """Return the Flipkart homepage URL."""
        return "https://www.flipkart.com/"
