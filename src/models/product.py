# src/models/product.py

"""Tracked product model shared by the store, the scrapers and the monitor."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class Product:
    """A product whose price is watched on one platform."""

    id: str
    name: str
    url: str
    platform: str
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)
