# src/config/settings.py

"""Central configuration for the price_watcher service."""

import logging
import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger("price_watcher.settings")


def _env_positive_int(name: str, default: int) -> int:
    """Read a positive integer from the environment, else *default*."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(
            "Ignoring non-numeric %s=%r, using %d", name, raw, default,
        )
        return default
    if value <= 0:
        logger.warning(
            "Ignoring non-positive %s=%d, using %d", name, value, default,
        )
        return default
    return value


class Settings:
    """Central configuration for the price_watcher service."""

    # --- Scheduling ---
    SCRAPING_INTERVAL: int = _env_positive_int("SCRAPING_INTERVAL", 3600)
    WORKER_POOL_SIZE: int = _env_positive_int("WORKER_POOL_SIZE", 5)
    PRICE_HISTORY_DAYS: int = _env_positive_int("PRICE_HISTORY_DAYS", 30)
    SHUTDOWN_TIMEOUT: int = _env_positive_int("SHUTDOWN_TIMEOUT", 30)

    # --- Scraping ---
    REQUEST_TIMEOUT: int = _env_positive_int("REQUEST_TIMEOUT", 15)
    DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "INR")
    CAPTCHA_KEYWORDS: list[str] = [
        "captcha",
        "verify you are human",
        "unusual traffic",
        "automated requests",
    ]

    # --- Notifications ---
    TELEGRAM_TOKEN: str = os.getenv("TELEGRAM_TOKEN", "")
    TELEGRAM_CHAT_ID: str = os.getenv("TELEGRAM_CHAT_ID", "")
    TELEGRAM_API_URL: str = "https://api.telegram.org"

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "en-IN,en;q=0.9",
        "sec-ch-ua": (
            '"Google Chrome";v="131", '
            '"Chromium";v="131", '
            '"Not_A Brand";v="24"'
        ),
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
        "sec-fetch-dest": "document",
        "sec-fetch-mode": "navigate",
        "sec-fetch-site": "none",
        "sec-fetch-user": "?1",
        "Upgrade-Insecure-Requests": "1",
    }

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    SELECTORS_PATH: Path = BASE_DIR / "src" / "config" / "selectors.json"
    LOGS_DIR: Path = BASE_DIR / "logs"
    PRICE_DB_PATH: Path = Path(
        os.getenv(
            "PRICE_DB_PATH",
            str(BASE_DIR / "data" / "price_watcher.db"),
        )
    )

    # --- Platforms (matched against the product URL, in order) ---
    AVAILABLE_PLATFORMS: list[dict[str, str]] = [
        {
            "id": "amazon",
            "label": "Amazon",
            "match": "amazon",
            "scraper": "src.scrapers.amazon_scraper.AmazonScraper",
        },
        {
            "id": "flipkart",
            "label": "Flipkart",
            "match": "flipkart",
            "scraper": "src.scrapers.flipkart_scraper.FlipkartScraper",
        },
        {
            "id": "blinkit",
            "label": "Blinkit",
            "match": "blinkit",
            "scraper": "src.scrapers.blinkit_scraper.BlinkitScraper",
        },
        {
            "id": "zepto",
            "label": "Zepto",
            "match": "zepto",
            "scraper": "src.scrapers.zepto_scraper.ZeptoScraper",
        },
        {
            "id": "instamart",
            "label": "Instamart",
            "match": "instamart",
            "scraper": "src.scrapers.instamart_scraper.InstamartScraper",
        },
        {
            "id": "desidime",
            "label": "DesiDime",
            "match": "desidime",
            "scraper": "src.scrapers.desidime_scraper.DesidimeScraper",
        },
    ]
