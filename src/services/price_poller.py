from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Tuple

from src.core.errors import PositionNotFoundError, PriceUnavailableError
from src.core.pnl import compute_pnl
from src.core.position_store import PositionStore
from src.core.threshold_evaluator import evaluate
from src.logger.console_logger import Logger
from src.models.position import Position, utcnow
from src.models.results import CycleResult, DispatchResult, Evaluation, FetchResult, RefreshResult


class PriceSource(Protocol):
    async def fetch_price(self, market_id: str, outcome: str) -> Optional[float]: ...


class AlertDispatcher(Protocol):
    async def dispatch(self, message: str, subject: str = "") -> DispatchResult: ...


@dataclass
class PricePollerService:
    """Refreshes prices for every tracked position and fires threshold alerts.

    One cycle runs FETCH_ALL -> UPDATE_STORE -> RE-READ -> EVALUATE_EACH ->
    DISPATCH_AND_LATCH. Cycles and single-position refreshes never overlap;
    a cycle requested while another is in flight is queued once and every
    caller arriving meanwhile shares that queued run.
    """

    store: PositionStore
    market: PriceSource
    dispatcher: AlertDispatcher
    logger: Logger

    fetch_timeout_seconds: float = 10.0
    poll_interval_seconds: float = 60.0
    latch_policy: str = "attempted"

    _cycle_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)
    _queued: Optional["asyncio.Future[CycleResult]"] = field(default=None, init=False, repr=False)
    _running: bool = field(default=False, init=False)
    _stop_event: Optional[asyncio.Event] = field(default=None, init=False, repr=False)
    _cycles_run: int = field(default=0, init=False)

    async def start(self) -> None:
        if self.poll_interval_seconds <= 0:
            self.logger.log_info("Timed polling disabled (POLL_INTERVAL_SECONDS=0)")
            return

        self._running = True
        self._stop_event = asyncio.Event()
        self.logger.log_info(f"Starting price poller | interval={self.poll_interval_seconds:.0f}s")

        while self._running:
            started = time.monotonic()
            try:
                await self.run_cycle()
            except Exception as e:
                self.logger.log_error(f"poll cycle error: {e}")
            elapsed = time.monotonic() - started

            sleep_for = max(0.0, self.poll_interval_seconds - elapsed)

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=sleep_for)
            except asyncio.TimeoutError:
                pass

    def stop(self) -> None:
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()
        self.logger.log_info("Stopping price poller...")

    @property
    def cycles_run(self) -> int:
        return self._cycles_run

    async def run_cycle(self) -> CycleResult:
        if self._queued is not None:
            return await asyncio.shield(self._queued)

        if self._cycle_lock.locked():
            self._queued = asyncio.ensure_future(self._run_queued_cycle())
            return await asyncio.shield(self._queued)

        async with self._cycle_lock:
            return await self._execute_cycle()

    async def refresh_position(self, position_id: str) -> RefreshResult:
        async with self._cycle_lock:
            position = self.store.get(position_id)
            if position is None:
                raise PositionNotFoundError(position_id)

            fetched = await self._fetch_one(position)
            if not fetched.ok:
                self.logger.log_warning(f"Price refresh failed for #{position_id[:8]}: {fetched.error}")
                raise PriceUnavailableError(position.market_id, position.outcome)

            if self.store.record_price(position_id, fetched.price) is None:
                raise PositionNotFoundError(position_id)

            fresh = self.store.get(position_id)
            if fresh is None:
                raise PositionNotFoundError(position_id)
            self._log_price(fresh)

            evaluation, _ = await self._evaluate_and_notify(fresh)

            final = self.store.get(position_id) or fresh
            return RefreshResult(position=final, price=fetched.price, evaluation=evaluation)

    async def _run_queued_cycle(self) -> CycleResult:
        async with self._cycle_lock:
            self._queued = None
            return await self._execute_cycle()

    async def _execute_cycle(self) -> CycleResult:
        started = time.monotonic()
        self._cycles_run += 1

        positions = self.store.list()
        if not positions:
            self.logger.log_debug("No positions to poll")
            return CycleResult(total=0, updated=0, alerts_fired=0, timestamp=utcnow())

        # FETCH_ALL
        fetched: List[FetchResult] = await asyncio.gather(*(self._fetch_one(p) for p in positions))

        # UPDATE_STORE
        priced = set()
        for result in fetched:
            if not result.ok:
                self.logger.log_warning(f"No price for #{result.position_id[:8]}: {result.error}")
                continue
            if self.store.record_price(result.position_id, result.price) is not None:
                priced.add(result.position_id)

        # RE-READ / EVALUATE_EACH / DISPATCH_AND_LATCH
        alerts_fired = 0
        for position in self.store.list():
            if position.id in priced:
                self._log_price(position)
            _, latched = await self._evaluate_and_notify(position)
            if latched:
                alerts_fired += 1

        elapsed = time.monotonic() - started
        self.logger.log_cycle_summary(len(positions), len(priced), alerts_fired, elapsed)
        return CycleResult(total=len(positions), updated=len(priced), alerts_fired=alerts_fired, timestamp=utcnow())

    async def _fetch_one(self, position: Position) -> FetchResult:
        try:
            price = await asyncio.wait_for(
                self.market.fetch_price(position.market_id, position.outcome),
                timeout=self.fetch_timeout_seconds,
            )
        except asyncio.TimeoutError:
            return FetchResult(position_id=position.id, error=f"timed out after {self.fetch_timeout_seconds:g}s")
        except Exception as e:
            return FetchResult(position_id=position.id, error=str(e) or type(e).__name__)

        if price is None:
            return FetchResult(position_id=position.id, error="price unavailable")
        return FetchResult(position_id=position.id, price=float(price))

    async def _evaluate_and_notify(self, position: Position) -> Tuple[Evaluation, bool]:
        evaluation = evaluate(position)
        if evaluation.trigger is None:
            return evaluation, False

        level = position.take_profit if evaluation.trigger == "take_profit" else position.stop_loss
        self.logger.log_alert_triggered(position.id, evaluation.trigger, float(position.current_price or 0.0), level)

        try:
            result = await self.dispatcher.dispatch(evaluation.message, evaluation.subject)
        except Exception as e:
            self.logger.log_error(f"Alert dispatch failed for #{position.id[:8]}: {e}; will retry next cycle")
            return evaluation, False

        if self.latch_policy == "delivered" and not result.any_delivered:
            self.logger.log_warning(f"Alert for #{position.id[:8]} not delivered on any channel; will retry next cycle")
            return evaluation, False

        # Persist the latch right after dispatch; a crash before this write re-sends once.
        if self.store.latch_alert(position.id, evaluation.trigger) is None:
            self.logger.log_warning(f"Position #{position.id[:8]} removed before its alert could be latched")
            return evaluation, False

        self.logger.log_alert_latched(position.id, evaluation.trigger)
        return evaluation, True

    def _log_price(self, position: Position) -> None:
        if position.current_price is None:
            return
        pnl = compute_pnl(position)
        self.logger.log_price_update(position.id, position.market_question, position.current_price, pnl.percent, pnl.absolute)
