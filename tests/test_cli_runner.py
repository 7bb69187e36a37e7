# tests/test_cli_runner.py

"""Tests for the headless CLI commands."""

import asyncio
import io
import os
import signal
import unittest
from decimal import Decimal
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from rich.console import Console

from src.cli import runner
from src.models.errors import FetchError, FetchErrorKind, ProductNotFoundError
from src.services.price_monitor import CheckResult
from src.storage.price_history_db import PriceHistoryDB

AMAZON_URL = "https://www.amazon.in/Echo-Dot/dp/B09B8X9RGM"


class _RunnerTestCase(unittest.TestCase):
    """Wires the autouse temp DB path into a unittest-style class."""

    db_path: Path

    @pytest.fixture(autouse=True)
    def _db_path(self, isolated_db_path: Path) -> None:
        self.db_path = isolated_db_path

    def _store(self) -> PriceHistoryDB:
        return PriceHistoryDB(db_path=self.db_path)


class TestCatalogCommands(_RunnerTestCase):
    """add / list / remove / history exit codes and side effects."""

    def test_add_product(self) -> None:
        """A supported URL is stored and exits 0."""
        self.assertEqual(runner.add_product("Echo Dot", AMAZON_URL), 0)
        store = self._store()
        try:
            products = store.list_products()
        finally:
            store.close()
        self.assertEqual([p.name for p in products], ["Echo Dot"])
        self.assertEqual(products[0].platform, "amazon")

    def test_add_unsupported_platform(self) -> None:
        """Unknown hosts exit 1 without storing anything."""
        self.assertEqual(
            runner.add_product("Shirt", "https://www.myntra.com/1"), 1,
        )

    def test_add_duplicate(self) -> None:
        """Adding the same URL twice fails the second time."""
        self.assertEqual(runner.add_product("A", AMAZON_URL), 0)
        self.assertEqual(runner.add_product("B", AMAZON_URL), 1)

    def test_list_empty_and_populated(self) -> None:
        """list exits 0 whether or not products exist."""
        self.assertEqual(runner.list_products(), 0)
        runner.add_product("Echo Dot", AMAZON_URL)
        self.assertEqual(runner.list_products(), 0)

    def test_list_filtered_by_platform(self) -> None:
        """--platform narrows the table to one platform."""
        runner.add_product("Echo Dot", AMAZON_URL)
        runner.add_product(
            "Amul Milk", "https://blinkit.com/prn/amul-milk/prid/1",
        )
        out = io.StringIO()
        console = Console(file=out, width=200)
        with patch("src.cli.runner.Console", return_value=console):
            self.assertEqual(runner.list_products("blinkit"), 0)
        rendered = out.getvalue()
        self.assertIn("Amul Milk", rendered)
        self.assertNotIn("Echo Dot", rendered)

    def test_remove_product(self) -> None:
        """remove deletes the product; unknown ids exit 1."""
        store = self._store()
        try:
            product = store.create_product("Echo Dot", AMAZON_URL)
        finally:
            store.close()
        self.assertEqual(runner.remove_product(product.id), 0)
        self.assertEqual(runner.remove_product(product.id), 1)

    def test_show_history(self) -> None:
        """history renders known products and rejects unknown ones."""
        store = self._store()
        try:
            product = store.create_product("Echo Dot", AMAZON_URL)
            store.record_observation(product.id, Decimal("4499.00"), "INR")
        finally:
            store.close()
        self.assertEqual(runner.show_history(product.id), 0)
        self.assertEqual(runner.show_history("missing"), 1)


class TestCheckNow(unittest.IsolatedAsyncioTestCase):
    """The on-demand check command."""

    def _monitor_with(self, **behaviour: object) -> MagicMock:
        monitor = MagicMock()
        monitor.check_product = AsyncMock(**behaviour)
        return monitor

    async def test_success(self) -> None:
        """A successful check exits 0."""
        product = MagicMock()
        product.name = "Echo Dot"
        monitor = self._monitor_with(
            return_value=CheckResult(product, Decimal("10.00"), "INR"),
        )
        with (
            patch("src.cli.runner.TelegramNotifier"),
            patch("src.cli.runner.PriceMonitor", return_value=monitor),
        ):
            self.assertEqual(await runner.check_now("p1"), 0)
        monitor.check_product.assert_awaited_once_with("p1")

    async def test_failures_exit_nonzero(self) -> None:
        """Unknown products and fetch failures exit 1."""
        for exc in (
            ProductNotFoundError("p1"),
            FetchError(FetchErrorKind.NOT_FOUND, "no price element"),
        ):
            with self.subTest(exc=type(exc).__name__):
                monitor = self._monitor_with(side_effect=exc)
                with (
                    patch("src.cli.runner.TelegramNotifier"),
                    patch("src.cli.runner.PriceMonitor", return_value=monitor),
                ):
                    self.assertEqual(await runner.check_now("p1"), 1)


class TestRunMonitor(unittest.IsolatedAsyncioTestCase):
    """The daemon command's signal-driven shutdown."""

    async def test_sigterm_stops_gracefully(self) -> None:
        """SIGTERM triggers stop() and a zero exit code."""
        monitor = MagicMock()
        monitor.start.side_effect = lambda: os.kill(
            os.getpid(), signal.SIGTERM,
        )
        monitor.stop = AsyncMock()
        with (
            patch("src.cli.runner.TelegramNotifier"),
            patch("src.cli.runner.PriceMonitor", return_value=monitor),
        ):
            code = await asyncio.wait_for(runner.run_monitor(), timeout=5)
        self.assertEqual(code, 0)
        monitor.stop.assert_awaited_once()

    async def test_shutdown_timeout(self) -> None:
        """A stop() that outlives SHUTDOWN_TIMEOUT exits the process with 1."""

        async def hang() -> None:
            await asyncio.sleep(60)

        monitor = MagicMock()
        monitor.start.side_effect = lambda: os.kill(
            os.getpid(), signal.SIGTERM,
        )
        monitor.stop = AsyncMock(side_effect=hang)
        with (
            patch("src.cli.runner.TelegramNotifier"),
            patch("src.cli.runner.PriceMonitor", return_value=monitor),
            patch("src.config.settings.Settings.SHUTDOWN_TIMEOUT", 0.05),
            patch("src.cli.runner.os._exit") as hard_exit,
        ):
            code = await asyncio.wait_for(runner.run_monitor(), timeout=5)
        hard_exit.assert_called_once_with(1)
        self.assertEqual(code, 1)
        monitor.stop.assert_awaited_once()

    async def test_graceful_stop_does_not_force_exit(self) -> None:
        """A clean stop returns normally without a hard exit."""
        monitor = MagicMock()
        monitor.start.side_effect = lambda: os.kill(
            os.getpid(), signal.SIGTERM,
        )
        monitor.stop = AsyncMock()
        with (
            patch("src.cli.runner.TelegramNotifier"),
            patch("src.cli.runner.PriceMonitor", return_value=monitor),
            patch("src.cli.runner.os._exit") as hard_exit,
        ):
            code = await asyncio.wait_for(runner.run_monitor(), timeout=5)
        hard_exit.assert_not_called()
        self.assertEqual(code, 0)


if __name__ == "__main__":
    unittest.main()
