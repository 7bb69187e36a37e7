# tests/test_registry.py

"""Tests for URL-to-platform dispatch and scraper loading."""

import unittest
from unittest.mock import patch

from src.models.errors import ConfigError
from src.scrapers.amazon_scraper import AmazonScraper
from src.scrapers.base_scraper import BaseScraper
from src.scrapers.registry import load_scraper, platform_label, resolve_platform


class TestResolvePlatform(unittest.TestCase):
    """resolve_platform maps URLs to platform ids."""

    def test_supported_urls(self) -> None:
        """Each supported host resolves to its platform."""
        cases = {
            "https://www.amazon.in/product/123": "amazon",
            "https://amazon.com/dp/B08N5WRWNW": "amazon",
            "https://WWW.AMAZON.IN/product/123": "amazon",
            "https://www.flipkart.com/product/p/itmxyz": "flipkart",
            "https://www.FlipKart.com/product": "flipkart",
            "https://blinkit.com/prn/product/123": "blinkit",
            "https://www.zepto.com/product/123": "zepto",
            "https://www.swiggy.com/instamart/item/123": "instamart",
            "https://desidime.com/deals/product-123": "desidime",
        }
        for url, expected in cases.items():
            with self.subTest(url=url):
                self.assertEqual(resolve_platform(url), expected)

    def test_unsupported_urls(self) -> None:
        """Unknown hosts and junk raise ConfigError."""
        for url in (
            "https://www.myntra.com/product/123",
            "https://www.example.com",
            "not-a-url",
            "",
        ):
            with self.subTest(url=url):
                with self.assertRaises(ConfigError):
                    resolve_platform(url)


class TestLoadScraper(unittest.TestCase):
    """load_scraper instantiates the registered variant."""

    @patch("src.scrapers.base_scraper.curl_requests.Session")
    def test_every_platform_loads(self, _mock_session: object) -> None:
        """Every registry entry imports and reports its own platform."""
        for platform_id in (
            "amazon", "flipkart", "blinkit", "zepto", "instamart", "desidime",
        ):
            with self.subTest(platform=platform_id):
                scraper = load_scraper(platform_id)
                self.assertIsInstance(scraper, BaseScraper)
                self.assertEqual(scraper.platform, platform_id)
                self.assertTrue(scraper.selectors.get("price"))

    @patch("src.scrapers.base_scraper.curl_requests.Session")
    def test_amazon_class(self, _mock_session: object) -> None:
        """amazon maps to AmazonScraper."""
        self.assertIsInstance(load_scraper("amazon"), AmazonScraper)

    def test_unknown_platform(self) -> None:
        """An unregistered platform raises ConfigError."""
        with self.assertRaises(ConfigError):
            load_scraper("myntra")


class TestPlatformLabel(unittest.TestCase):
    """platform_label renders display names."""

    def test_known(self) -> None:
        """Registered ids map to their labels."""
        self.assertEqual(platform_label("desidime"), "DesiDime")

    def test_unknown_falls_back_to_id(self) -> None:
        """Unknown ids are echoed back."""
        self.assertEqual(platform_label("myntra"), "myntra")


if __name__ == "__main__":
    unittest.main()
