# src/models/errors.py

"""Error taxonomy for price_watcher."""

from enum import Enum


class PriceWatcherError(Exception):
    """Base class for every error raised by price_watcher."""


class StoreError(PriceWatcherError):
    """The durable layer failed to read or write."""


class ConfigError(PriceWatcherError):
    """Invalid configuration, e.g. a URL on an unsupported platform."""


class ProductNotFoundError(PriceWatcherError):
    """No tracked product has the requested id."""

    def __init__(self, product_id: str) -> None:
        super().__init__(f"product not found: {product_id}")
        self.product_id = product_id


class FetchErrorKind(Enum):
    """Why a price could not be retrieved."""

    NOT_FOUND = "not_found"
    PARSE_FAILED = "parse_failed"
    NETWORK_FAILED = "network_failed"


class FetchError(PriceWatcherError):
    """Price retrieval failed for a single URL."""

    def __init__(
        self,
        kind: FetchErrorKind,
        message: str,
        url: str = "",
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.url = url

    def __str__(self) -> str:
        base = super().__str__()
        if self.url:
            return f"{base} ({self.kind.value}: {self.url})"
        return f"{base} ({self.kind.value})"


class NotifyError(PriceWatcherError):
    """An alert message could not be delivered."""
