"""FastAPI application factory for the position tracker."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from src.api.dependencies import MarketClient
from src.api.routes import positions, prices
from src.core.errors import PositionStoreError, TrackerError
from src.core.position_store import PositionStore
from src.logger.console_logger import Logger
from src.services.price_poller import PricePollerService


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(x) for x in err.get("loc", ()) if x not in ("body", "query"))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


def create_app(
    store: PositionStore,
    poller: PricePollerService,
    market: MarketClient,
    logger: Logger,
    *,
    run_poller: bool = True,
) -> FastAPI:
    """Wire explicitly constructed components into an app.

    The store is opened when the app starts and closed when it stops; the
    timed poller runs alongside the app when ``run_poller`` is set.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store.open()
        logger.log_info(f"Loaded {len(store)} positions from {store.path}")

        task: Optional[asyncio.Task] = None
        if run_poller:
            task = asyncio.create_task(poller.start())
        try:
            yield
        finally:
            if task is not None:
                poller.stop()
                await task
            store.close()

    app = FastAPI(
        title="Polymarket Position Tracker",
        description="Tracks prediction-market positions and alerts on take-profit/stop-loss.",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.store = store
    app.state.poller = poller
    app.state.market = market
    app.state.logger = logger

    @app.exception_handler(HTTPException)
    async def _http_error(request: Request, exc: HTTPException):
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse({"error": _validation_message(exc)}, status_code=400)

    @app.exception_handler(PositionStoreError)
    async def _store_error(request: Request, exc: PositionStoreError):
        logger.log_error(f"Persistence failure on {request.method} {request.url.path}: {exc}")
        return JSONResponse({"error": "Failed to persist positions"}, status_code=500)

    @app.exception_handler(TrackerError)
    async def _tracker_error(request: Request, exc: TrackerError):
        logger.log_error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse({"error": str(exc)}, status_code=500)

    app.include_router(positions.router)
    app.include_router(prices.router)
    app.include_router(prices.health_router)

    return app
