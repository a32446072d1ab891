from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from src.core.polymarket_client import MarketInfo
from src.models.results import ChannelResult, DispatchResult


@dataclass
class StubLogger:
    infos: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    alerts: List[Tuple[str, str]] = field(default_factory=list)
    latched: List[Tuple[str, str]] = field(default_factory=list)
    cycles: List[Tuple[int, int, int]] = field(default_factory=list)

    def log_debug(self, message: str) -> None:
        pass

    def log_info(self, message: str) -> None:
        self.infos.append(message)

    def log_warning(self, message: str) -> None:
        self.warnings.append(message)

    def log_error(self, message: str) -> None:
        self.errors.append(message)

    def log_price_update(self, position_id: str, question: str, price: float, pnl_percent: float, pnl_absolute: float) -> None:
        pass

    def log_alert_triggered(self, position_id: str, kind: str, price: float, level: float) -> None:
        self.alerts.append((position_id, kind))

    def log_alert_latched(self, position_id: str, kind: str) -> None:
        self.latched.append((position_id, kind))

    def log_cycle_summary(self, total: int, updated: int, alerts_fired: int, elapsed: float) -> None:
        self.cycles.append((total, updated, alerts_fired))


class StubMarket:
    """Prices keyed by market id; an Exception value is raised, None means unavailable."""

    def __init__(self, prices: Optional[Dict[str, object]] = None, delay: float = 0.0):
        self.prices: Dict[str, object] = dict(prices or {})
        self.delay = delay
        self.calls: List[Tuple[str, str]] = []
        self.questions: Dict[str, str] = {}

    async def fetch_price(self, market_id: str, outcome: str) -> Optional[float]:
        self.calls.append((market_id, outcome))
        if self.delay:
            await asyncio.sleep(self.delay)
        value = self.prices.get(market_id)
        if isinstance(value, Exception):
            raise value
        return value  # type: ignore[return-value]

    async def fetch_market_info(self, market_id: str) -> Optional[MarketInfo]:
        question = self.questions.get(market_id)
        if question is None:
            return None
        return MarketInfo(question=question, outcomes=["YES", "NO"])


class StubDispatcher:
    def __init__(self, fail: bool = False, outcome: str = "delivered", delay: float = 0.0):
        self.fail = fail
        self.outcome = outcome
        self.delay = delay
        self.messages: List[Tuple[str, str]] = []

    async def dispatch(self, message: str, subject: str = "") -> DispatchResult:
        self.messages.append((message, subject))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("dispatch exploded")
        return DispatchResult(channels=[ChannelResult(channel="stub", outcome=self.outcome)])  # type: ignore[arg-type]
