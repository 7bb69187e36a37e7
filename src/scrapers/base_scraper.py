# src/scrapers/base_scraper.py

"""Abstract base class for all platform price scrapers."""

import json
import logging
import re
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Any

import cloudscraper  # type: ignore[import-untyped]
from bs4 import BeautifulSoup
from curl_cffi import requests as curl_requests

from src.config.settings import Settings
from src.models.errors import FetchError, FetchErrorKind

# Optional rupee sign, Indian or western digit grouping, optional paise
_PRICE_RE = re.compile(r"₹?\s*([0-9][0-9,]*(?:\.[0-9]{1,2})?)")


def extract_price(text: str | None) -> Decimal:
    """Extract a price from a string like '₹10,99,999.00'.

    Raises:
        FetchError: ``PARSE_FAILED`` when *text* holds no number.
    """
    if not text:
        raise FetchError(
            FetchErrorKind.PARSE_FAILED, "no price found in empty text",
        )
    match = _PRICE_RE.search(text)
    if match is None:
        raise FetchError(
            FetchErrorKind.PARSE_FAILED, f"no price found in text: {text!r}",
        )
    digits = match.group(1).replace(",", "")
    try:
        return Decimal(digits).quantize(Decimal("0.01"))
    except InvalidOperation as exc:
        raise FetchError(
            FetchErrorKind.PARSE_FAILED, f"failed to parse price: {digits!r}",
        ) from exc


class BaseScraper(ABC):
    """Fetch one product page and pull its current price out of it.

    Each call makes a single attempt: a failed fetch surfaces as a
    :class:`FetchError` and the monitor simply tries again next cycle.
    """

    # Cloudflare challenge page markers (checked before keyword scan)
    _CF_CHALLENGE_MARKERS: list[str] = [
        "challenges.cloudflare.com",
        "cdn-cgi/challenge-platform",
        "just a moment",
        "cf-turnstile",
        "cf_chl_opt",
    ]

    def __init__(self, platform: str) -> None:
        self.platform = platform
        self.logger = logging.getLogger(f"price_watcher.{platform}")
        self.settings = Settings()
        self.selectors: dict[str, str] = self._load_selectors()
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )
        self._request_timeout: int = self.settings.REQUEST_TIMEOUT

    def _load_selectors(self) -> dict[str, str]:
        """Load CSS selectors for this platform from selectors.json."""
        with open(self.settings.SELECTORS_PATH, encoding="utf-8") as f:
            all_selectors: dict[str, Any] = json.load(f)
        result: dict[str, str] = all_selectors.get(self.platform, {})
        return result

    def _validate_response(self, text: str) -> bool:
        """Check for Cloudflare challenge pages and CAPTCHA indicators."""
        lower = text.lower()

        for marker in self._CF_CHALLENGE_MARKERS:
            if marker in lower:
                self.logger.warning(
                    "[%s] Cloudflare challenge detected (marker: '%s')",
                    self.platform,
                    marker,
                )
                return False

        # Skip the keyword scan on real pages to avoid false positives
        has_body_content = "<body" in lower and len(text) > 5000
        if not has_body_content:
            for keyword in self.settings.CAPTCHA_KEYWORDS:
                if keyword in lower:
                    self.logger.warning(
                        "[%s] CAPTCHA keyword '%s' detected",
                        self.platform,
                        keyword,
                    )
                    return False
        return True

    def _fetch_get(self, url: str, headers: dict[str, str]) -> str | None:
        """GET through the impersonating session, ``None`` when blocked."""
        try:
            resp = self.session.get(
                url, headers=headers, timeout=self._request_timeout,
            )
        except Exception as exc:
            self.logger.warning(
                "[%s] Request error for %s: %s", self.platform, url, exc,
            )
            return None
        if resp.status_code == 404:
            raise FetchError(
                FetchErrorKind.NOT_FOUND, "product page returned 404", url,
            )
        if resp.status_code != 200:
            self.logger.warning(
                "[%s] HTTP %d for %s", self.platform, resp.status_code, url,
            )
            return None
        if not self._validate_response(resp.text):
            return None
        return resp.text

    def _get_page(self, url: str) -> BeautifulSoup:
        """Fetch a page, falling back to cloudscraper when blocked.

        Raises:
            FetchError: ``NETWORK_FAILED`` when both transports fail.
        """
        headers: dict[str, str] = {
            **self.settings.DEFAULT_HEADERS,
            "Referer": self._get_homepage(),
        }

        # Primary: curl_cffi (browser-impersonating TLS)
        text = self._fetch_get(url, headers)
        if text is not None:
            return BeautifulSoup(text, "lxml")

        # Fallback: cloudscraper (JS challenge solver)
        self.logger.info(
            "[%s] curl_cffi blocked, falling back to cloudscraper",
            self.platform,
        )
        try:
            _cs: Any = cloudscraper
            scraper: Any = _cs.create_scraper()
            fallback_resp: Any = scraper.get(
                url, headers=headers, timeout=self._request_timeout,
            )
        except Exception as exc:
            raise FetchError(
                FetchErrorKind.NETWORK_FAILED,
                f"cloudscraper fallback failed: {exc}",
                url,
            ) from exc
        if fallback_resp.status_code != 200:
            raise FetchError(
                FetchErrorKind.NETWORK_FAILED,
                f"HTTP {fallback_resp.status_code} after fallback",
                url,
            )
        return BeautifulSoup(str(fallback_resp.text), "lxml")

    def _find_price_text(self, soup: BeautifulSoup) -> str | None:
        """Return the raw text of the first matching price element."""
        for key in ("price", "price_fallback"):
            selector = self.selectors.get(key)
            if not selector:
                continue
            element = soup.select_one(selector)
            if element is not None:
                text = element.get_text(strip=True)
                if text:
                    return text
        return None

    def fetch_price(self, url: str) -> tuple[Decimal, str]:
        """Fetch *url* and return its current ``(price, currency)``.

        Raises:
            FetchError: page unreachable, price element missing, or
                price text unparseable.
        """
        self.logger.debug("[%s] Fetching %s", self.platform, url)
        soup = self._get_page(url)
        raw = self._find_price_text(soup)
        if raw is None:
            raise FetchError(
                FetchErrorKind.NOT_FOUND,
                f"price not found on {self.platform} page",
                url,
            )
        price = extract_price(raw)
        if price <= 0:
            raise FetchError(
                FetchErrorKind.PARSE_FAILED,
                f"non-positive price {price} parsed from {raw!r}",
                url,
            )
        return price, self.settings.DEFAULT_CURRENCY

    @abstractmethod
    def _get_homepage(self) -> str:
        """Return the homepage URL for the Referer header."""
        ...
