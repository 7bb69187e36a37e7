# src/scrapers/amazon_scraper.py

"""Scraper for amazon.in product pages."""

from bs4 import BeautifulSoup

from src.scrapers.base_scraper import BaseScraper


class AmazonScraper(BaseScraper):
    """Scraper for amazon.in product pages."""

    def __init__(self) -> None:
        super().__init__("amazon")

    def _get_homepage(self) -> str:
        """Return the Amazon.in homepage URL."""
        return "https://www.amazon.in/"

    def _find_price_text(self, soup: BeautifulSoup) -> str | None:
        """Skip the buy box when the listing is marked unavailable."""
        selector = self.selectors.get("unavailable")
        if selector:
            badge = soup.select_one(selector)
            if badge and "unavailable" in badge.get_text().lower():
                self.logger.info("[amazon] Listing is currently unavailable")
                return None
        return super()._find_price_text(soup)
