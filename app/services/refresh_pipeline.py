"""Periodic refresh pipeline: fetch -> build -> publish.

State machine per cycle: Idle -> Fetching -> Building -> Publishing -> Idle.

Single-writer rules:
- only this pipeline replaces the candle series and publishes snapshots
- at most one cycle is in flight; a timer tick that lands while a cycle is
  running is coalesced (counted and dropped), never queued

Availability beats freshness: if the upstream fails, the cycle still
publishes a snapshot built from the last good series (or a synthetic one
when nothing was ever fetched). No exception escapes a cycle.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, TypeVar

from app.clients.failover import FailoverMarketData
from app.clients.protocol import MarketDataSource
from app.clients.synthetic import SyntheticMarketData
from app.config import Settings
from app.services.publisher import Publisher
from core.exceptions import DataIntegrityError, MarketDataError
from core.models.candle import CandleSeries
from core.models.snapshot import OrderBookSummary, Snapshot
from core.snapshot_builder import SnapshotBuilder

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PipelineState(str, Enum):
    """Refresh cycle states."""

    IDLE = "Idle"
    FETCHING = "Fetching"
    BUILDING = "Building"
    PUBLISHING = "Publishing"


class RefreshPipeline:
    """Owns the candle series and drives one snapshot per timer tick."""

    def __init__(
        self,
        source: MarketDataSource,
        publisher: Publisher,
        settings: Settings,
        builder: SnapshotBuilder | None = None,
        fallback_source: SyntheticMarketData | None = None,
    ):
        self.source = source
        self.publisher = publisher
        self.settings = settings
        self.builder = builder or SnapshotBuilder(settings.indicator_config())
        self.fallback_source = fallback_source or SyntheticMarketData(
            base_price=settings.fallback_price
        )

        self._series = CandleSeries(capacity=settings.candle_limit)
        self._series_is_synthetic = False
        self._last_price: float | None = None

        self._state = PipelineState.IDLE
        self._in_flight = False
        self._timer_task: asyncio.Task | None = None
        self._cycle_tasks: set[asyncio.Task] = set()

        # Statistics
        self.cycles_completed = 0
        self.ticks_coalesced = 0
        self.upstream_failures = 0
        self.last_error: str | None = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()

    @property
    def series(self) -> CandleSeries:
        """Current candle series (do not mutate)."""
        return self._series

    @property
    def last_price(self) -> float | None:
        return self._last_price

    def get_stats(self) -> dict:
        """Pipeline statistics for the status endpoint."""
        return {
            "state": self._state.value,
            "running": self.is_running,
            "cycles_completed": self.cycles_completed,
            "ticks_coalesced": self.ticks_coalesced,
            "upstream_failures": self.upstream_failures,
            "last_error": self.last_error,
            "candles": len(self._series),
            "synthetic_series": self._series_is_synthetic,
            "subscribers": self.publisher.subscriber_count,
        }

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    @property
    def fetch_budget(self) -> float:
        """Upper bound for one upstream call (a failover chain bounds each source)."""
        if isinstance(self.source, FailoverMarketData):
            return self.source.total_timeout
        return self.settings.fetch_timeout

    async def _bounded(self, what: str, call: Awaitable[T]) -> T | None:
        """Await an upstream call within the fetch budget; None on failure."""
        budget = self.fetch_budget
        try:
            return await asyncio.wait_for(call, timeout=budget)
        except asyncio.TimeoutError:
            message = f"{what} timed out after {budget}s"
        except MarketDataError as e:
            message = f"{what} unavailable: {e}"
        except DataIntegrityError as e:
            message = f"{what} rejected: {e}"
        except Exception as e:
            message = f"{what} failed unexpectedly: {e!r}"

        logger.warning(message)
        self.upstream_failures += 1
        self.last_error = message
        return None

    async def _fetch_price(self) -> float | None:
        """Fresh price, else last known price, else None."""
        price = await self._bounded(
            "price", self.source.get_current_price(self.settings.symbol)
        )
        if price is not None and price > 0:
            self._last_price = price
            return price

        if self._last_price is not None:
            logger.info(f"Reusing last known price {self._last_price}")
        return self._last_price

    def _fallback_price(self) -> float:
        """Last close of a real series, else the configured fallback price."""
        if self._series.last is not None and not self._series_is_synthetic:
            return self._series.last.close
        return self.settings.fallback_price

    async def _refresh_series(self, price: float | None) -> None:
        """Replace the series with a fresh batch, keeping the old one on failure."""
        settings = self.settings
        candles = await self._bounded(
            "candles",
            self.source.get_recent_candles(
                settings.symbol, settings.interval, settings.candle_limit
            ),
        )

        if candles:
            try:
                self._series = CandleSeries.from_candles(candles, capacity=settings.candle_limit)
                self._series_is_synthetic = False
                logger.info(f"Fetched {len(candles)} {settings.interval} candles")
                return
            except DataIntegrityError as e:
                logger.warning(f"Candle batch rejected, keeping previous series: {e}")
                self.last_error = str(e)

        if len(self._series) and not self._series_is_synthetic:
            logger.info(f"Reusing last good series ({len(self._series)} candles)")
            return

        logger.info("No real candles available, generating synthetic series")
        self._series = CandleSeries.from_candles(
            self.fallback_source.generate_candles(
                price if price is not None else settings.fallback_price,
                settings.interval,
                settings.candle_limit,
            ),
            capacity=settings.candle_limit,
        )
        self._series_is_synthetic = True

    async def _fetch_order_book(self, price: float) -> OrderBookSummary:
        book = await self._bounded(
            "order book",
            self.source.get_order_book(self.settings.symbol, self.settings.order_book_depth),
        )
        if book is not None:
            return book
        return self.fallback_source.generate_order_book(price, self.settings.order_book_depth)

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    async def run_cycle(self) -> Snapshot | None:
        """
        Run one refresh cycle.

        Returns:
            The published Snapshot, or None if the call was coalesced into
            a cycle already in flight (or the cycle failed unexpectedly)
        """
        if self._in_flight:
            self.ticks_coalesced += 1
            logger.debug("Refresh already in flight, tick coalesced")
            return None

        self._in_flight = True
        try:
            self._state = PipelineState.FETCHING
            price = await self._fetch_price()
            await self._refresh_series(price)
            if price is None:
                price = self._fallback_price()
            order_book = await self._fetch_order_book(price)

            self._state = PipelineState.BUILDING
            snapshot = self.builder.build(
                self._series,
                current_price=price,
                symbol=self.settings.display_symbol,
                order_book=order_book,
            )

            self._state = PipelineState.PUBLISHING
            delivered = await self.publisher.publish(snapshot)

            self.cycles_completed += 1
            ind = snapshot.indicators
            logger.info(
                f"Snapshot #{self.cycles_completed} published to {delivered} subscriber(s) | "
                f"price={price:.4f} ema7={ind.ema7:.4f} psar={ind.psar.position.value}"
            )
            return snapshot
        except Exception as e:
            logger.error(f"Refresh cycle failed: {e}", exc_info=True)
            self.last_error = str(e)
            return None
        finally:
            self._state = PipelineState.IDLE
            self._in_flight = False

    # ------------------------------------------------------------------
    # Timer
    # ------------------------------------------------------------------

    def tick(self) -> asyncio.Task | None:
        """Spawn a cycle unless one is already running."""
        if self._in_flight:
            self.ticks_coalesced += 1
            logger.debug("Refresh already in flight, tick coalesced")
            return None
        task = asyncio.create_task(self.run_cycle())
        self._cycle_tasks.add(task)
        task.add_done_callback(self._cycle_tasks.discard)
        return task

    async def _timer_loop(self) -> None:
        while True:
            self.tick()
            await asyncio.sleep(self.settings.refresh_interval)

    async def start(self) -> None:
        """Start the timer; the first cycle runs immediately."""
        if self.is_running:
            return
        logger.info(
            f"Starting refresh pipeline for {self.settings.symbol} "
            f"{self.settings.interval} every {self.settings.refresh_interval}s"
        )
        self._timer_task = asyncio.create_task(self._timer_loop())

    async def stop(self) -> None:
        """Stop the timer and wait for any in-flight cycle."""
        if self._timer_task:
            self._timer_task.cancel()
            try:
                await self._timer_task
            except asyncio.CancelledError:
                pass
            self._timer_task = None

        if self._cycle_tasks:
            await asyncio.gather(*self._cycle_tasks, return_exceptions=True)

        await self.source.close()
        logger.info("Refresh pipeline stopped")
