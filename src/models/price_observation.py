# src/models/price_observation.py

"""Temporal price records: observations and the alerts they triggered."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class PriceObservation:
    """A single successful price fetch for a product."""

    product_id: str
    price: Decimal
    currency: str
    observed_at: datetime


@dataclass(frozen=True)
class AlertRecord:
    """Audit trail entry for a delivered new-low alert."""

    product_id: str
    old_price: Decimal
    new_price: Decimal
    currency: str
    message: str
    sent_at: datetime
