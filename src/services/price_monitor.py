# src/services/price_monitor.py

"""Periodic price monitoring: scheduling, worker fan-out and alerting."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from src.config.settings import Settings
from src.models.errors import (
    ConfigError,
    FetchError,
    NotifyError,
    ProductNotFoundError,
    StoreError,
)
from src.models.product import Product
from src.notifications.telegram_notifier import TelegramNotifier
from src.scrapers.base_scraper import BaseScraper
from src.scrapers.registry import load_scraper
from src.services.alert_policy import (
    AlertDecision,
    decide_alert,
    render_alert_message,
)
from src.storage.price_history_db import PriceHistoryDB

logger = logging.getLogger("price_watcher.monitor")


class MonitorState(Enum):
    """Lifecycle of a :class:`PriceMonitor`."""

    STOPPED = "stopped"
    RUNNING = "running"
    STOPPING = "stopping"


@dataclass
class CheckResult:
    """Outcome of one successful fetch-and-decide for a product."""

    product: Product
    price: Decimal
    currency: str
    decision: AlertDecision | None = None
    alert_sent: bool = False


@dataclass
class CycleResult:
    """Summary of a single pass over the product catalog."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    alerts: int = 0
    not_dispatched: int = 0
    aborted: bool = False
    errors: list[str] = field(
        default_factory=lambda: list[str]()
    )


class PriceMonitor:
    """Owns the fetch schedule, the worker pool and the stop signal.

    ``start()`` must be called from inside a running event loop and at
    most once per instance.  Blocking collaborator calls (scraping,
    SQLite, Telegram) run in worker threads via ``asyncio.to_thread``.

    Within a cycle each product goes to exactly one worker.  There is
    no locking across cycles or between a cycle and
    :meth:`check_product`: two concurrent checks of the same product
    can both read the same previous price before either records its
    observation, so one of them decides against stale history.
    """

    def __init__(
        self,
        store: PriceHistoryDB,
        notifier: TelegramNotifier,
        interval: float | None = None,
        pool_size: int | None = None,
        window_days: int | None = None,
        scraper_loader: Callable[[str], BaseScraper] = load_scraper,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.interval = (
            Settings.SCRAPING_INTERVAL if interval is None else interval
        )
        self.pool_size = (
            Settings.WORKER_POOL_SIZE if pool_size is None else pool_size
        )
        self.window_days = (
            Settings.PRICE_HISTORY_DAYS if window_days is None else window_days
        )
        if self.interval <= 0:
            raise ConfigError(f"interval must be positive, got {self.interval}")
        if self.pool_size <= 0:
            raise ConfigError(
                f"pool size must be positive, got {self.pool_size}"
            )
        if self.window_days <= 0:
            raise ConfigError(
                f"window days must be positive, got {self.window_days}"
            )
        self._scraper_loader = scraper_loader
        self._state = MonitorState.STOPPED
        self._started = False
        self._stop_event = asyncio.Event()
        self._scheduler_task: asyncio.Task[None] | None = None
        self._cycles: set[asyncio.Task[CycleResult]] = set()

    @property
    def state(self) -> MonitorState:
        """Current lifecycle state."""
        return self._state

    # ── Lifecycle ────────────────────────────────────────

    def start(self) -> None:
        """Run one cycle immediately, then one every ``interval`` seconds."""
        if self._started:
            raise RuntimeError("PriceMonitor can only be started once")
        self._started = True
        self._state = MonitorState.RUNNING
        logger.info(
            "Starting price monitor (interval=%ss, workers=%d, window=%dd)",
            self.interval,
            self.pool_size,
            self.window_days,
        )
        self._launch_cycle()
        self._scheduler_task = asyncio.create_task(
            self._schedule_loop(), name="price-monitor-scheduler",
        )

    async def stop(self) -> None:
        """Signal workers, cancel future cycles and wait for in-flight work.

        A no-op when the monitor is not running.
        """
        if self._state is not MonitorState.RUNNING:
            return
        logger.info("Stopping price monitor...")
        self._state = MonitorState.STOPPING
        self._stop_event.set()
        if self._scheduler_task is not None:
            await self._scheduler_task
        if self._cycles:
            await asyncio.gather(*list(self._cycles), return_exceptions=True)
        self._state = MonitorState.STOPPED
        logger.info("Price monitor stopped")

    async def _schedule_loop(self) -> None:
        """Fire a cycle each time the interval elapses without a stop."""
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self.interval,
                )
            except asyncio.TimeoutError:
                self._launch_cycle()

    def _launch_cycle(self) -> None:
        task = asyncio.create_task(self.run_cycle(), name="price-cycle")
        self._cycles.add(task)
        task.add_done_callback(self._cycle_done)

    def _cycle_done(self, task: asyncio.Task[CycleResult]) -> None:
        self._cycles.discard(task)
        if task.cancelled():
            logger.warning("Price cycle %s was cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Price cycle %s crashed", task.get_name(), exc_info=exc,
            )

    # ── Fetch cycle ──────────────────────────────────────

    async def run_cycle(self) -> CycleResult:
        """Fetch every tracked product once across the worker pool.

        The catalog is read once up front; products added while the
        cycle runs wait for the next one.  A catalog read failure
        aborts this cycle only.
        """
        logger.info("Starting price scraping cycle")
        try:
            products = await asyncio.to_thread(self.store.list_products)
        except StoreError as exc:
            logger.error("Failed to get products: %s", exc, exc_info=True)
            return CycleResult(aborted=True, errors=[str(exc)])
        except Exception as exc:
            logger.error(
                "Unexpected error listing products, cycle aborted",
                exc_info=True,
            )
            return CycleResult(aborted=True, errors=[str(exc)])

        result = CycleResult(total=len(products))
        if not products:
            logger.info("No products to scrape")
            return result

        queue: asyncio.Queue[Product] = asyncio.Queue(maxsize=len(products))
        for product in products:
            queue.put_nowait(product)

        worker_count = min(self.pool_size, len(products))
        workers = [
            asyncio.create_task(
                self._worker(queue, result), name=f"price-worker-{i}",
            )
            for i in range(worker_count)
        ]
        await asyncio.gather(*workers)

        result.not_dispatched = queue.qsize()
        if result.not_dispatched:
            logger.warning(
                "Cycle interrupted by stop, %d products not dispatched",
                result.not_dispatched,
            )
        logger.info(
            "Price scraping completed: %d ok, %d failed, %d alerts",
            result.succeeded,
            result.failed,
            result.alerts,
        )
        return result

    async def _worker(
        self,
        queue: asyncio.Queue[Product],
        result: CycleResult,
    ) -> None:
        """Drain the queue until it is empty or a stop is signalled."""
        while not self._stop_event.is_set():
            try:
                product = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                check = await self._process_product(product)
            except (FetchError, StoreError, ConfigError) as exc:
                result.failed += 1
                result.errors.append(f"{product.name}: {exc}")
                logger.warning(
                    "Failed to scrape price for %s (%s): %s",
                    product.name,
                    product.url,
                    exc,
                )
            except Exception as exc:
                result.failed += 1
                result.errors.append(f"{product.name}: {exc}")
                logger.error(
                    "Unexpected error for %s (%s)",
                    product.name,
                    product.url,
                    exc_info=True,
                )
            else:
                result.succeeded += 1
                if check.alert_sent:
                    result.alerts += 1
            finally:
                queue.task_done()

    # ── Per-product work ─────────────────────────────────

    async def _process_product(self, product: Product) -> CheckResult:
        """Fetch the product's price, then decide and record off-loop."""
        logger.info(
            "Scraping price for product: %s (%s)",
            product.name,
            product.platform,
        )
        scraper = self._scraper_loader(product.platform)
        price, currency = await asyncio.to_thread(
            scraper.fetch_price, product.url,
        )
        check = await asyncio.to_thread(
            self._decide_and_record, product, price, currency,
        )
        logger.info(
            "Successfully scraped price for %s: %s %s",
            product.name,
            price,
            currency,
        )
        return check

    def _decide_and_record(
        self,
        product: Product,
        price: Decimal,
        currency: str,
    ) -> CheckResult:
        """Run the alert decision, then always record the observation.

        History is read before the new observation is written so the
        fresh price never takes part in its own decision.
        """
        check = CheckResult(product=product, price=price, currency=currency)
        try:
            self._alert_if_new_low(check)
        except Exception:
            logger.error(
                "Alert path failed for %s (%s), recording observation anyway",
                product.name,
                product.id,
                exc_info=True,
            )
            self.store.record_observation(product.id, price, currency)
            raise
        self.store.record_observation(product.id, price, currency)
        return check

    def _alert_if_new_low(self, check: CheckResult) -> None:
        product = check.product
        try:
            previous = self.store.latest_price(product.id)
            window_min = self.store.window_minimum(product.id, self.window_days)
        except StoreError as exc:
            logger.error(
                "Failed to read price history for %s (%s): %s",
                product.name,
                product.id,
                exc,
            )
            return

        check.decision = decide_alert(check.price, previous, window_min)
        logger.debug(
            "Decision for %s: %s", product.name, check.decision.reason.value,
        )
        if not check.decision.fire or previous is None:
            return

        message = render_alert_message(
            product, previous, check.price, window_min, self.window_days,
        )
        try:
            self.notifier.notify(message)
        except NotifyError as exc:
            logger.error(
                "Failed to send alert for %s (%s): %s",
                product.name,
                product.url,
                exc,
            )
            return
        check.alert_sent = True
        logger.info(
            "Alert sent for %s: price dropped from %s to %s",
            product.name,
            previous,
            check.price,
        )

        try:
            self.store.record_alert(
                product.id, previous, check.price, check.currency, message,
            )
        except StoreError as exc:
            logger.error("Failed to store alert for %s: %s", product.id, exc)

    # ── On-demand trigger ────────────────────────────────

    async def check_product(self, product_id: str) -> CheckResult:
        """Fetch and evaluate a single product right now.

        Runs independently of any scheduled cycle.

        Raises:
            ProductNotFoundError: no tracked product has *product_id*.
            FetchError: the price could not be fetched.
            StoreError: the catalog or the observation write failed.
        """
        products = await asyncio.to_thread(self.store.list_products)
        for product in products:
            if product.id == product_id:
                return await self._process_product(product)
        raise ProductNotFoundError(product_id)
