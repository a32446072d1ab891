from __future__ import annotations

from typing import Optional, Protocol

from fastapi import Request

from src.core.polymarket_client import MarketInfo
from src.core.position_store import PositionStore
from src.logger.console_logger import Logger
from src.services.price_poller import PricePollerService


class MarketClient(Protocol):
    async def fetch_price(self, market_id: str, outcome: str) -> Optional[float]: ...

    async def fetch_market_info(self, market_id: str) -> Optional[MarketInfo]: ...


def get_store(request: Request) -> PositionStore:
    return request.app.state.store


def get_poller(request: Request) -> PricePollerService:
    return request.app.state.poller


def get_market(request: Request) -> MarketClient:
    return request.app.state.market


def get_logger(request: Request) -> Logger:
    return request.app.state.logger
