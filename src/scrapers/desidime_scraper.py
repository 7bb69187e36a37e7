# src/scrapers/desidime_scraper.py

"""Scraper for desidime.com deal pages."""

from src.scrapers.base_scraper import BaseScraper


class DesidimeScraper(BaseScraper):
    """Scraper for desidime.com deal pages."""

    def __init__(self) -> None:
        super().__init__("desidime")

    def _get_homepage(self) -> str:
        """Return the Desidime homepage URL."""
        return "https://www.desidime.com/"
