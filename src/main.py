from __future__ import annotations

import asyncio
import os
import sys
from typing import Tuple


if __package__ is None or __package__ == "":
    # Allow running via: python src/main.py
    sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from src.connectors.email_connector import EmailConnector
from src.connectors.telegram_connector import TelegramConnector
from src.core.config import AppConfig
from src.core.polymarket_client import PolymarketClientService
from src.core.position_store import PositionStore
from src.core.rate_limiter import AsyncRateLimiter
from src.logger.console_logger import ConsoleLogger
from src.services.notification_dispatcher import NotificationDispatcher
from src.services.price_poller import PricePollerService


def build_components(cfg: AppConfig) -> Tuple[PositionStore, PolymarketClientService, PricePollerService, ConsoleLogger]:
    logger = ConsoleLogger(log_dir=cfg.log_dir, log_level=cfg.log_level)

    store = PositionStore(path=cfg.positions_file)

    market = PolymarketClientService(
        host=cfg.polymarket_host,
        request_timeout=cfg.price_fetch_timeout_seconds,
        mock_mode=cfg.mock_mode,
        rate_limiter=AsyncRateLimiter(max_calls=cfg.market_rps, period_seconds=1.0),
    )

    dispatcher = NotificationDispatcher(
        channels=[
            EmailConnector(api_key=cfg.resend_api_key, to=cfg.alert_email_to, from_email=cfg.resend_from_email),
            TelegramConnector(bot_token=cfg.telegram_bot_token, chat_id=cfg.telegram_chat_id),
        ],
        logger=logger,
    )
    configured = [c.name for c in dispatcher.channels if c.configured]
    if configured:
        logger.log_info(f"Alert channels: {', '.join(configured)}")
    else:
        logger.log_warning("No alert channels configured (set RESEND_API_KEY/ALERT_EMAIL_TO or TELEGRAM_BOT_TOKEN/TELEGRAM_CHAT_ID)")

    poller = PricePollerService(
        store=store,
        market=market,
        dispatcher=dispatcher,
        logger=logger,
        fetch_timeout_seconds=cfg.price_fetch_timeout_seconds,
        poll_interval_seconds=cfg.poll_interval_seconds,
        latch_policy=cfg.alert_latch_policy,
    )

    return store, market, poller, logger


async def poll_once_main(cfg: AppConfig) -> None:
    """Single poll cycle, for running from cron instead of the timer loop."""
    store, _, poller, logger = build_components(cfg)

    store.open()
    try:
        result = await poller.run_cycle()
        logger.log_info(f"updated={result.updated} total={result.total} alerts={result.alerts_fired}")
    finally:
        store.close()


def server_main(cfg: AppConfig) -> None:
    import uvicorn

    from src.api.app import create_app

    store, market, poller, logger = build_components(cfg)
    app = create_app(store, poller, market, logger, run_poller=cfg.poll_interval_seconds > 0)

    logger.log_info(f"Serving on http://{cfg.host}:{cfg.port} | mock={cfg.mock_mode}")
    uvicorn.run(app, host=cfg.host, port=cfg.port, log_level=cfg.log_level.lower())


def main() -> None:
    cfg = AppConfig.load()
    cfg.validate()

    mode = os.getenv("TRACKER_MODE", "SERVER").strip().upper()
    if mode in {"POLL_ONCE", "POLL", "CRON"}:
        asyncio.run(poll_once_main(cfg))
        return

    server_main(cfg)


if __name__ == "__main__":
    main()
