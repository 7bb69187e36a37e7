# src/cli/runner.py

"""Headless commands: run the monitor daemon and manage the catalog."""

import asyncio
import logging
import os
import signal

from rich.console import Console
from rich.table import Table

from src.config.settings import Settings
from src.models.errors import (
    ConfigError,
    FetchError,
    PriceWatcherError,
    ProductNotFoundError,
    StoreError,
)
from src.notifications.telegram_notifier import TelegramNotifier
from src.scrapers.registry import platform_label
from src.services.alert_policy import format_price
from src.services.price_monitor import PriceMonitor
from src.storage.price_history_db import PriceHistoryDB

logger = logging.getLogger("price_watcher.cli")

# Stderr console for status messages so stdout stays clean
_err = Console(stderr=True)


# ── Daemon ───────────────────────────────────────────────

async def run_monitor() -> int:
    """Run the monitor until SIGINT/SIGTERM, then stop gracefully.

    When in-flight work outlives ``SHUTDOWN_TIMEOUT`` the process exits
    with status 1 straight away: fetch threads still blocked on the
    network would otherwise hold ``asyncio.run`` open for up to two more
    ``REQUEST_TIMEOUT`` periods.
    """
    store = PriceHistoryDB()
    monitor = PriceMonitor(store, TelegramNotifier())

    loop = asyncio.get_running_loop()
    shutdown = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown.set)

    monitor.start()
    _err.print(
        f"[bold]Price watcher running[/bold] "
        f"[dim]every {Settings.SCRAPING_INTERVAL}s, "
        f"{Settings.WORKER_POOL_SIZE} workers, Ctrl+C to stop[/dim]"
    )
    await shutdown.wait()

    _err.print("[dim]Shutting down...[/dim]")
    try:
        await asyncio.wait_for(
            monitor.stop(), timeout=Settings.SHUTDOWN_TIMEOUT,
        )
    except asyncio.TimeoutError:
        logger.error(
            "Monitor did not stop within %ds, abandoning in-flight work",
            Settings.SHUTDOWN_TIMEOUT,
        )
        _err.print("[red]Shutdown timed out, in-flight work abandoned[/red]")
        for handler in logging.getLogger("price_watcher").handlers:
            handler.flush()
        os._exit(1)
        return 1
    store.close()
    _err.print("[green]✓ Stopped[/green]")
    return 0


# ── Catalog commands ─────────────────────────────────────

def add_product(name: str, url: str) -> int:
    """Start tracking a product."""
    store = PriceHistoryDB()
    try:
        product = store.create_product(name, url)
    except ConfigError as exc:
        _err.print(f"[red]Unsupported platform: {exc}[/red]")
        return 1
    except StoreError as exc:
        logger.error("Add failed: %s", exc)
        _err.print(f"[red]{exc}[/red]")
        return 1
    finally:
        store.close()

    _err.print(
        f"[green]✓ Tracking {product.name}[/green] "
        f"[dim]({platform_label(product.platform)}, id={product.id})[/dim]"
    )
    return 0


def remove_product(product_id: str) -> int:
    """Stop tracking a product and drop its history."""
    store = PriceHistoryDB()
    try:
        store.delete_product(product_id)
    except ProductNotFoundError:
        _err.print(f"[red]Product not found: {product_id}[/red]")
        return 1
    except StoreError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1
    finally:
        store.close()
    _err.print(f"[green]✓ Removed {product_id}[/green]")
    return 0


def list_products(platform: str | None = None) -> int:
    """Render the catalog with each product's latest and lowest price.

    Only products on *platform* are shown when it is given.
    """
    store = PriceHistoryDB()
    try:
        products = (
            store.list_products()
            if platform is None
            else store.list_products_by_platform(platform)
        )
        table = Table(
            title="Tracked Products",
            show_lines=True,
            title_style="bold cyan",
        )
        table.add_column("ID", style="dim", overflow="fold")
        table.add_column("Name", max_width=40)
        table.add_column("Platform", style="magenta")
        table.add_column("Latest", justify="right", style="green")
        table.add_column(
            f"Low ({Settings.PRICE_HISTORY_DAYS}d)", justify="right",
        )
        for p in products:
            latest = store.latest_price(p.id)
            low = store.window_minimum(p.id, Settings.PRICE_HISTORY_DAYS)
            table.add_row(
                p.id,
                p.name,
                platform_label(p.platform),
                format_price(latest) if latest is not None else "—",
                format_price(low) if low is not None else "—",
            )
    except StoreError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1
    finally:
        store.close()

    if not products:
        _err.print("[yellow]No products tracked yet.[/yellow]")
        return 0
    Console().print(table)
    return 0


def show_history(product_id: str) -> int:
    """Print a product's price observations and alerts."""
    store = PriceHistoryDB()
    try:
        product = store.get_product(product_id)
        if product is None:
            _err.print(f"[red]Product not found: {product_id}[/red]")
            return 1
        history = store.get_price_history(product_id)
        alerts = store.get_alerts(product_id)
    except StoreError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1
    finally:
        store.close()

    table = Table(
        title=f"Price History: {product.name}",
        title_style="bold cyan",
    )
    table.add_column("Observed", style="dim")
    table.add_column("Price", justify="right", style="green")
    table.add_column("Currency")
    for obs in history:
        table.add_row(
            obs.observed_at.strftime("%Y-%m-%d %H:%M:%S"),
            format_price(obs.price),
            obs.currency,
        )
    Console().print(table)
    _err.print(f"[dim]{len(alerts)} alert(s) sent for this product[/dim]")
    return 0


# ── On-demand check ──────────────────────────────────────

async def check_now(product_id: str) -> int:
    """Fetch one product's price immediately and apply the alert rules."""
    store = PriceHistoryDB()
    monitor = PriceMonitor(store, TelegramNotifier())
    try:
        result = await monitor.check_product(product_id)
    except ProductNotFoundError:
        _err.print(f"[red]Product not found: {product_id}[/red]")
        return 1
    except FetchError as exc:
        _err.print(f"[red]Fetch failed: {exc}[/red]")
        return 1
    except PriceWatcherError as exc:
        logger.error("Check failed for %s: %s", product_id, exc)
        _err.print(f"[red]{exc}[/red]")
        return 1
    finally:
        store.close()

    suffix = " [bold]· alert sent[/bold]" if result.alert_sent else ""
    _err.print(
        f"[green]✓ {result.product.name}: "
        f"{format_price(result.price)} {result.currency}[/green]{suffix}"
    )
    return 0
