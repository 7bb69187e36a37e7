# src/scrapers/registry.py

"""URL-to-platform dispatch and scraper loading."""

import importlib
from typing import Any

from src.config.settings import Settings
from src.models.errors import ConfigError
from src.scrapers.base_scraper import BaseScraper


def resolve_platform(url: str) -> str:
    """Return the platform id whose match substring appears in *url*.

    Platforms are tried in registry order, case-insensitively.

    Raises:
        ConfigError: no registered platform matches.
    """
    lowered = url.lower()
    for platform in Settings.AVAILABLE_PLATFORMS:
        if platform["match"] in lowered:
            return platform["id"]
    raise ConfigError(f"unsupported platform for URL: {url}")


def platform_label(platform_id: str) -> str:
    """Human-readable platform name, falling back to the id."""
    for platform in Settings.AVAILABLE_PLATFORMS:
        if platform["id"] == platform_id:
            return platform["label"]
    return platform_id


def _load_scraper_class(dotted_path: str) -> type[Any]:
    """Dynamically import a scraper class from its dotted module path."""
    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls: type[Any] = getattr(module, class_name)
    return cls


def load_scraper(platform_id: str) -> BaseScraper:
    """Instantiate the scraper registered for *platform_id*.

    Raises:
        ConfigError: *platform_id* is not registered.
    """
    for platform in Settings.AVAILABLE_PLATFORMS:
        if platform["id"] == platform_id:
            scraper: BaseScraper = _load_scraper_class(platform["scraper"])()
            return scraper
    raise ConfigError(f"no scraper registered for platform: {platform_id}")
