"""Positions router: list, add, edit and remove tracked positions."""

from __future__ import annotations

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from src.api.dependencies import MarketClient, get_logger, get_market, get_poller, get_store
from src.api.schemas import PositionCreate, PositionUpdate
from src.api.serializers import position_payload
from src.core.polymarket_client import extract_market_id
from src.core.position_store import PositionStore
from src.logger.console_logger import Logger
from src.models.position import AlertsSent, utcnow
from src.services.price_poller import PricePollerService

router = APIRouter(tags=["positions"])


@router.get("/positions")
async def list_positions(store: PositionStore = Depends(get_store)):
    return {"positions": [position_payload(p) for p in store.list()]}


@router.post("/positions", status_code=201)
async def add_position(
    req: PositionCreate,
    store: PositionStore = Depends(get_store),
    market: MarketClient = Depends(get_market),
    poller: PricePollerService = Depends(get_poller),
    logger: Logger = Depends(get_logger),
):
    """Start tracking a position; the market question and first price are looked up."""
    market_id = extract_market_id(req.market_url)
    if not market_id:
        raise HTTPException(status_code=400, detail="Invalid market URL")

    question = (req.market_question or "").strip()
    if not question:
        question = await _lookup_question(market, market_id, poller.fetch_timeout_seconds, logger)

    price = await _initial_price(market, market_id, req.outcome, poller.fetch_timeout_seconds, logger)

    position = store.create(
        market_id=market_id,
        outcome=req.outcome,
        market_url=req.market_url,
        market_question=question,
        entry_price=req.entry_price,
        quantity=req.quantity,
        take_profit=req.take_profit if req.take_profit is not None else 1.0,
        stop_loss=req.stop_loss if req.stop_loss is not None else 0.0,
        current_price=price,
        last_updated=utcnow() if price is not None else None,
    )
    logger.log_info(f"➕ Tracking {position.market_question} ({position.outcome}) #{position.id[:8]}")
    return {"position": position_payload(position)}


@router.put("/positions")
async def update_position(
    req: PositionUpdate,
    store: PositionStore = Depends(get_store),
):
    if not req.id:
        raise HTTPException(status_code=400, detail="Position ID is required")

    fields = req.model_dump(exclude_unset=True, exclude_none=True, exclude={"id", "alerts_sent"})
    if req.alerts_sent is not None:
        fields["alerts_sent"] = AlertsSent(
            take_profit=bool(req.alerts_sent.take_profit),
            stop_loss=bool(req.alerts_sent.stop_loss),
        )

    position = store.update(req.id, **fields)
    if position is None:
        raise HTTPException(status_code=404, detail="Position not found")
    return {"position": position_payload(position)}


@router.delete("/positions")
async def delete_position(
    id: Optional[str] = None,
    store: PositionStore = Depends(get_store),
):
    if not id:
        raise HTTPException(status_code=400, detail="Position ID is required")

    if not store.delete(id):
        raise HTTPException(status_code=404, detail="Position not found")
    return {"success": True}


async def _lookup_question(market: MarketClient, market_id: str, timeout: float, logger: Logger) -> str:
    try:
        info = await asyncio.wait_for(market.fetch_market_info(market_id), timeout=timeout)
    except Exception as e:
        logger.log_warning(f"Market info lookup failed for {market_id}: {str(e) or type(e).__name__}")
        return market_id
    return info.question if info is not None and info.question else market_id


async def _initial_price(market: MarketClient, market_id: str, outcome: str, timeout: float, logger: Logger) -> Optional[float]:
    try:
        price = await asyncio.wait_for(market.fetch_price(market_id, outcome), timeout=timeout)
    except Exception as e:
        logger.log_warning(f"Initial price fetch failed for {market_id}: {str(e) or type(e).__name__}")
        return None
    if price is None or not (0.0 <= price <= 1.0):
        return None
    return float(price)
