# src/storage/price_history_db.py

"""SQLite-backed product catalog and append-only price history."""

import logging
import re
import sqlite3
import threading
import uuid
from collections.abc import Iterator
from contextlib import contextmanager, suppress
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from src.config.settings import Settings
from src.models.errors import ProductNotFoundError, StoreError
from src.models.price_observation import AlertRecord, PriceObservation
from src.models.product import Product
from src.scrapers.registry import resolve_platform

logger = logging.getLogger("price_watcher.store")

# Amazon / Flipkart tracking params that vary per session
_TRACKING_PARAMS: frozenset[str] = frozenset({
    "ref", "ref_", "dib", "dib_tag", "qid", "sr", "spc",
    "sp_csd", "xpid", "aref", "sp_cr", "psc", "th",
    "keywords", "pd_rd_i", "pd_rd_r", "pd_rd_w",
    "pd_rd_wg", "pf_rd_i", "pf_rd_m", "pf_rd_p",
    "pf_rd_r", "pf_rd_s", "pf_rd_t", "tag", "linkcode",
    "lid", "marketplace", "srno", "otracker", "otracker1",
    "fm", "iid", "ppt", "ppn", "ssid", "affid", "affextparam1",
    "utm_source", "utm_medium", "utm_campaign", "utm_term",
    "utm_content",
})

_CENT = Decimal("0.01")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS products (
    id         TEXT PRIMARY KEY,
    name       TEXT NOT NULL,
    url        TEXT NOT NULL UNIQUE,
    platform   TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS price_history (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    product_id  TEXT    NOT NULL
                REFERENCES products(id) ON DELETE CASCADE,
    price       REAL    NOT NULL,
    currency    TEXT    NOT NULL DEFAULT 'INR',
    observed_at TEXT    NOT NULL
);

CREATE TABLE IF NOT EXISTS alerts (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    product_id TEXT    NOT NULL
               REFERENCES products(id) ON DELETE CASCADE,
    old_price  REAL    NOT NULL,
    new_price  REAL    NOT NULL,
    currency   TEXT    NOT NULL DEFAULT 'INR',
    message    TEXT    NOT NULL,
    sent_at    TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_price_history_product_date
    ON price_history(product_id, observed_at);
CREATE INDEX IF NOT EXISTS idx_products_platform
    ON products(platform);
"""


def normalize_url(raw_url: str) -> str:
    """Strip tracking/session query params to get a stable product URL."""
    parsed = urlparse(raw_url.strip())

    # Strip Amazon path-based tracking (e.g. /ref=sr_1_243)
    path = re.sub(r"/ref=[^/]*", "", parsed.path)

    params = parse_qs(parsed.query, keep_blank_values=True)
    cleaned = {
        k: v for k, v in params.items()
        if k.lower() not in _TRACKING_PARAMS
    }
    new_query = urlencode(cleaned, doseq=True) if cleaned else ""
    return urlunparse((
        parsed.scheme,
        parsed.netloc,
        path,
        parsed.params,
        new_query,
        "",  # drop fragment
    ))


def _to_decimal(value: float) -> Decimal:
    """Convert a stored REAL back to a two-place Decimal."""
    return Decimal(str(value)).quantize(_CENT)


def _row_to_product(row: tuple[str, str, str, str, str, str]) -> Product:
    return Product(
        id=row[0],
        name=row[1],
        url=row[2],
        platform=row[3],
        created_at=datetime.fromisoformat(row[4]),
        updated_at=datetime.fromisoformat(row[5]),
    )


class PriceHistoryDB:
    """SQLite store for tracked products, observations and alerts.

    A single connection is shared by every worker thread; a lock
    serialises access so each public call is independent and safe
    to issue concurrently.  Every ``sqlite3.Error`` is re-raised as
    :class:`StoreError`.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        path = db_path or Settings.PRICE_DB_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(str(path), check_same_thread=False)
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA foreign_keys=ON")
            self._conn.executescript(_SCHEMA)
        except sqlite3.Error as exc:
            raise StoreError(f"failed to open database {path}: {exc}") from exc
        logger.debug("PriceHistoryDB opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    @contextmanager
    def _transaction(self, action: str) -> Iterator[sqlite3.Cursor]:
        """Serialise access; wrap sqlite and row-decoding errors in StoreError."""
        with self._lock:
            try:
                cur = self._conn.cursor()
                yield cur
                self._conn.commit()
            except (sqlite3.Error, ValueError) as exc:
                with suppress(sqlite3.Error):
                    self._conn.rollback()
                raise StoreError(f"failed to {action}: {exc}") from exc

    # ── Catalog ──────────────────────────────────────────

    def create_product(self, name: str, url: str) -> Product:
        """Start tracking a product; the platform is derived from *url*.

        Raises:
            ConfigError: the URL belongs to no supported platform.
            StoreError: the URL is already tracked or the write failed.
        """
        platform = resolve_platform(url)
        now = datetime.now()
        product = Product(
            id=str(uuid.uuid4()),
            name=name.strip(),
            url=normalize_url(url),
            platform=platform,
            created_at=now,
            updated_at=now,
        )
        try:
            with self._transaction("create product") as cur:
                cur.execute(
                    "INSERT INTO products "
                    "(id, name, url, platform, created_at, updated_at) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (
                        product.id,
                        product.name,
                        product.url,
                        product.platform,
                        now.isoformat(),
                        now.isoformat(),
                    ),
                )
        except StoreError as exc:
            if isinstance(exc.__cause__, sqlite3.IntegrityError):
                raise StoreError(
                    f"product already tracked: {product.url}"
                ) from exc.__cause__
            raise
        logger.info(
            "Tracking %s (%s) as %s", product.name, product.platform, product.id,
        )
        return product

    def list_products(self) -> list[Product]:
        """Return every tracked product, newest first."""
        with self._transaction("list products") as cur:
            rows = cur.execute(
                "SELECT id, name, url, platform, created_at, updated_at "
                "FROM products ORDER BY created_at DESC, rowid DESC",
            ).fetchall()
            return [_row_to_product(r) for r in rows]

    def list_products_by_platform(self, platform: str) -> list[Product]:
        """Return tracked products on one platform."""
        with self._transaction("list products by platform") as cur:
            rows = cur.execute(
                "SELECT id, name, url, platform, created_at, updated_at "
                "FROM products WHERE platform = ? "
                "ORDER BY created_at DESC, rowid DESC",
                (platform,),
            ).fetchall()
            return [_row_to_product(r) for r in rows]

    def get_product(self, product_id: str) -> Product | None:
        """Look up one product by id."""
        with self._transaction("get product") as cur:
            row = cur.execute(
                "SELECT id, name, url, platform, created_at, updated_at "
                "FROM products WHERE id = ?",
                (product_id,),
            ).fetchone()
            return _row_to_product(row) if row else None

    def delete_product(self, product_id: str) -> None:
        """Stop tracking a product, cascading its history and alerts.

        Raises:
            ProductNotFoundError: no product has this id.
        """
        with self._transaction("delete product") as cur:
            cur.execute("DELETE FROM products WHERE id = ?", (product_id,))
            deleted = cur.rowcount
        if deleted == 0:
            raise ProductNotFoundError(product_id)
        logger.info("Deleted product %s", product_id)

    # ── Observations ─────────────────────────────────────

    def record_observation(
        self,
        product_id: str,
        price: Decimal,
        currency: str,
        observed_at: datetime | None = None,
    ) -> PriceObservation:
        """Append a price observation for a product."""
        ts = observed_at or datetime.now()
        with self._transaction("record observation") as cur:
            cur.execute(
                "INSERT INTO price_history "
                "(product_id, price, currency, observed_at) "
                "VALUES (?, ?, ?, ?)",
                (product_id, float(price), currency, ts.isoformat()),
            )
        logger.debug(
            "Recorded %s %s for %s at %s", price, currency, product_id, ts,
        )
        return PriceObservation(
            product_id=product_id,
            price=price,
            currency=currency,
            observed_at=ts,
        )

    def latest_price(self, product_id: str) -> Decimal | None:
        """Price of the most recent observation, ``None`` if never observed."""
        with self._transaction("get latest price") as cur:
            row = cur.execute(
                "SELECT price FROM price_history WHERE product_id = ? "
                "ORDER BY observed_at DESC, id DESC LIMIT 1",
                (product_id,),
            ).fetchone()
        return _to_decimal(row[0]) if row else None

    def window_minimum(
        self,
        product_id: str,
        window_days: int,
        now: datetime | None = None,
    ) -> Decimal | None:
        """Lowest observed price in the trailing *window_days*.

        Returns ``None`` when the window holds no observations.
        """
        cutoff = (now or datetime.now()) - timedelta(days=window_days)
        with self._transaction("get window minimum") as cur:
            row = cur.execute(
                "SELECT MIN(price) FROM price_history "
                "WHERE product_id = ? AND observed_at >= ?",
                (product_id, cutoff.isoformat()),
            ).fetchone()
        if row is None or row[0] is None:
            return None
        return _to_decimal(row[0])

    def get_price_history(self, product_id: str) -> list[PriceObservation]:
        """Return all observations for a product, oldest first."""
        with self._transaction("get price history") as cur:
            rows = cur.execute(
                "SELECT product_id, price, currency, observed_at "
                "FROM price_history WHERE product_id = ? "
                "ORDER BY observed_at ASC, id ASC",
                (product_id,),
            ).fetchall()
            return [
                PriceObservation(
                    product_id=r[0],
                    price=_to_decimal(r[1]),
                    currency=r[2],
                    observed_at=datetime.fromisoformat(r[3]),
                )
                for r in rows
            ]

    # ── Alerts ───────────────────────────────────────────

    def record_alert(
        self,
        product_id: str,
        old_price: Decimal,
        new_price: Decimal,
        currency: str,
        message: str,
        sent_at: datetime | None = None,
    ) -> AlertRecord:
        """Append an audit record for a delivered alert."""
        ts = sent_at or datetime.now()
        with self._transaction("record alert") as cur:
            cur.execute(
                "INSERT INTO alerts "
                "(product_id, old_price, new_price, currency, message, sent_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    product_id,
                    float(old_price),
                    float(new_price),
                    currency,
                    message,
                    ts.isoformat(),
                ),
            )
        return AlertRecord(
            product_id=product_id,
            old_price=old_price,
            new_price=new_price,
            currency=currency,
            message=message,
            sent_at=ts,
        )

    def get_alerts(self, product_id: str | None = None) -> list[AlertRecord]:
        """Return alert records, newest first, optionally for one product."""
        query = (
            "SELECT product_id, old_price, new_price, currency, message, "
            "sent_at FROM alerts"
        )
        params: tuple[str, ...] = ()
        if product_id is not None:
            query += " WHERE product_id = ?"
            params = (product_id,)
        query += " ORDER BY sent_at DESC, id DESC"
        with self._transaction("get alerts") as cur:
            rows = cur.execute(query, params).fetchall()
            return [
                AlertRecord(
                    product_id=r[0],
                    old_price=_to_decimal(r[1]),
                    new_price=_to_decimal(r[2]),
                    currency=r[3],
                    message=r[4],
                    sent_at=datetime.fromisoformat(r[5]),
                )
                for r in rows
            ]
