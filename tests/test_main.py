import asyncio
import dataclasses
import json

from src.core.config import AppConfig
from src.core.position_store import PositionStore
from src.main import build_components, poll_once_main


def _config(tmp_path) -> AppConfig:
    cfg = AppConfig.load(dotenv_path=str(tmp_path / "missing.env"))
    return dataclasses.replace(
        cfg,
        positions_file=str(tmp_path / "positions.json"),
        log_dir=str(tmp_path / "logs"),
        mock_mode=True,
        telegram_bot_token="",
        telegram_chat_id="",
        resend_api_key="",
        alert_email_to="",
    )


def test_build_components_wires_shared_store(tmp_path) -> None:
    store, market, poller, _ = build_components(_config(tmp_path))

    assert poller.store is store
    assert poller.market is market
    assert market.mock_mode is True
    assert store.path.endswith("positions.json")


def test_poll_once_prices_positions_in_mock_mode(tmp_path) -> None:
    cfg = _config(tmp_path)
    seed = PositionStore(path=cfg.positions_file)
    seed.open()
    p = seed.create(
        market_id="abc",
        outcome="YES",
        market_url="https://x/event/abc",
        market_question="Q?",
        entry_price=0.5,
        quantity=1.0,
    )
    seed.close()

    asyncio.run(poll_once_main(cfg))

    with open(cfg.positions_file, "r", encoding="utf-8") as f:
        raw = json.load(f)
    assert raw[0]["id"] == p.id
    assert 0.0 <= raw[0]["currentPrice"] <= 1.0
