from __future__ import annotations

import asyncio
import hashlib
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import requests

from src.core.rate_limiter import AsyncRateLimiter


@dataclass(frozen=True)
class MarketInfo:
    question: str
    outcomes: List[str]


def extract_market_id(url: str) -> Optional[str]:
    """Market identifier from a market URL, or the input itself if it is a bare id.

    ``https://polymarket.com/event/<id>`` and ``.../market/<id>`` yield ``<id>``;
    a single-segment path yields that segment.
    """
    value = (url or "").strip()
    if not value:
        return None

    parsed = urlparse(value)
    if not parsed.scheme or not parsed.netloc:
        if "/" in value or " " in value:
            return None
        return value

    parts = [p for p in parsed.path.split("/") if p]
    if len(parts) >= 2 and parts[0] in {"event", "market"}:
        return parts[1]
    if len(parts) == 1:
        return parts[0]
    return None


def outcome_index(outcome: str) -> int:
    # Multi-outcome markets are not mapped; anything but NO is the first token.
    return 1 if outcome.strip().upper() == "NO" else 0


@dataclass
class PolymarketClientService:
    host: str = "https://clob.polymarket.com"
    request_timeout: float = 10.0
    mock_mode: bool = False

    rate_limiter: AsyncRateLimiter = field(default_factory=lambda: AsyncRateLimiter(max_calls=5, period_seconds=1.0))

    _mock_prices: Dict[str, float] = field(default_factory=dict, init=False, repr=False)
    _rng: random.Random = field(default_factory=lambda: random.Random(1337), init=False, repr=False)

    async def fetch_price(self, market_id: str, outcome: str) -> Optional[float]:
        """Current price in [0, 1] for one side of a market, or None if unavailable.

        Network and HTTP errors propagate to the caller.
        """
        if self.mock_mode:
            return self._mock_price(market_id, outcome)

        token_id = f"{market_id}-{outcome_index(outcome)}"
        book = await self._get_json("/book", params={"token_id": token_id}, allow_missing=True)
        if book is not None:
            return _valid_price(_price_from_book(book))

        market = await self._get_json(f"/markets/{market_id}", allow_missing=True)
        if market is None:
            return None
        return _valid_price(_price_from_market(market, outcome))

    async def fetch_market_info(self, market_id: str) -> Optional[MarketInfo]:
        if self.mock_mode:
            return MarketInfo(question=f"Mock Market {market_id}", outcomes=["YES", "NO"])

        data = await self._get_json(f"/markets/{market_id}", allow_missing=True)
        if not isinstance(data, dict):
            return None

        outcomes: List[str] = []
        for o in data.get("outcomes") or data.get("tokens") or []:
            if isinstance(o, dict):
                label = o.get("outcome") or o.get("id")
                if label:
                    outcomes.append(str(label))
            elif o:
                outcomes.append(str(o))

        return MarketInfo(
            question=str(data.get("question") or data.get("title") or market_id),
            outcomes=outcomes or ["YES", "NO"],
        )

    async def _get_json(self, path: str, *, params: Optional[Dict[str, Any]] = None, allow_missing: bool = False) -> Any:
        def _do() -> Any:
            resp = requests.get(
                f"{self.host}{path}",
                params=params,
                headers={"Accept": "application/json"},
                timeout=self.request_timeout,
            )
            if allow_missing and not resp.ok:
                return None
            resp.raise_for_status()
            return resp.json()

        async with self.rate_limiter:
            return await asyncio.to_thread(_do)

    def _mock_price(self, market_id: str, outcome: str) -> float:
        key = f"{market_id}:{outcome.upper()}"
        price = self._mock_prices.get(key)
        if price is None:
            seed = int(hashlib.sha256(key.encode("utf-8")).hexdigest()[:8], 16)
            price = random.Random(seed).uniform(0.05, 0.95)
        else:
            price += self._rng.gauss(0.0, 0.02)

        price = round(max(0.001, min(0.999, price)), 4)
        self._mock_prices[key] = price
        return price


def _valid_price(price: Optional[float]) -> Optional[float]:
    if price is None:
        return None
    if not (0.0 <= price <= 1.0):
        return None
    return price


def _levels(side: Any) -> List[float]:
    if not isinstance(side, list):
        return []

    out: List[float] = []
    for level in side:
        raw = level.get("price") if isinstance(level, dict) else (level[0] if isinstance(level, (list, tuple)) and level else None)
        try:
            out.append(float(raw))
        except (TypeError, ValueError):
            continue
    return out


def _price_from_book(book: Any) -> Optional[float]:
    if not isinstance(book, dict):
        return None

    bids = _levels(book.get("bids"))
    asks = _levels(book.get("asks"))

    if bids and asks:
        return (max(bids) + min(asks)) / 2
    if bids:
        return max(bids)
    if asks:
        return min(asks)
    return None


def _price_from_market(market: Any, outcome: str) -> Optional[float]:
    if not isinstance(market, dict):
        return None

    if market.get("price") is not None:
        try:
            return float(market["price"])
        except (TypeError, ValueError):
            return None

    wanted = outcome.strip().upper()
    for o in market.get("outcomes") or market.get("tokens") or []:
        if not isinstance(o, dict):
            continue
        if str(o.get("outcome") or "").strip().upper() != wanted:
            continue
        try:
            return float(o["price"])
        except (KeyError, TypeError, ValueError):
            return None

    return None
