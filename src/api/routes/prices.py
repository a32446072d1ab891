"""Prices router: full poll cycles and single-position refreshes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from src.api.dependencies import get_poller, get_store
from src.api.schemas import PriceRefreshRequest
from src.api.serializers import position_payload
from src.core.errors import PositionNotFoundError, PriceUnavailableError
from src.core.position_store import PositionStore
from src.services.price_poller import PricePollerService

router = APIRouter(prefix="/prices", tags=["prices"])


@router.api_route("/poll", methods=["GET", "POST"])
async def poll_prices(poller: PricePollerService = Depends(get_poller)):
    result = await poller.run_cycle()
    message = "Prices updated successfully" if result.total else "No positions to poll"
    return {
        "message": message,
        "updated": result.updated,
        "total": result.total,
        "alerts": result.alerts_fired,
        "timestamp": result.timestamp.isoformat().replace("+00:00", "Z"),
    }


@router.post("/update")
async def update_price(
    req: PriceRefreshRequest,
    poller: PricePollerService = Depends(get_poller),
):
    if not req.position_id:
        raise HTTPException(status_code=400, detail="Position ID is required")

    try:
        result = await poller.refresh_position(req.position_id)
    except PositionNotFoundError:
        raise HTTPException(status_code=404, detail="Position not found")
    except PriceUnavailableError:
        raise HTTPException(status_code=500, detail="Failed to fetch price")

    return {
        "success": True,
        "position": position_payload(result.position),
        "price": result.price,
        "alert": result.evaluation.trigger,
    }


health_router = APIRouter(tags=["health"])


@health_router.get("/health")
async def health(store: PositionStore = Depends(get_store)):
    return {"status": "ok", "positions": len(store)}
