from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


LATCH_POLICIES = {"attempted", "delivered"}


def _getenv_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _getenv_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return float(raw)


def _getenv_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return int(raw)


@dataclass(frozen=True)
class AppConfig:
    """Config for the position tracker process."""

    positions_file: str

    polymarket_host: str
    market_rps: int
    price_fetch_timeout_seconds: float
    mock_mode: bool

    poll_interval_seconds: float
    alert_latch_policy: str

    telegram_bot_token: str
    telegram_chat_id: str
    resend_api_key: str
    alert_email_to: str
    resend_from_email: str

    host: str
    port: int

    log_level: str
    log_dir: str

    @classmethod
    def load(cls, dotenv_path: Optional[str] = None) -> "AppConfig":
        load_dotenv(dotenv_path=dotenv_path)

        return cls(
            positions_file=os.getenv("POSITIONS_FILE", os.path.join("data", "positions.json")),
            polymarket_host=os.getenv("POLYMARKET_HOST", "https://clob.polymarket.com"),
            market_rps=_getenv_int("MARKET_RPS", 5),
            price_fetch_timeout_seconds=_getenv_float("PRICE_FETCH_TIMEOUT_SECONDS", 10.0),
            mock_mode=_getenv_bool("MOCK_MODE", False),
            poll_interval_seconds=_getenv_float("POLL_INTERVAL_SECONDS", 60.0),
            alert_latch_policy=os.getenv("ALERT_LATCH_POLICY", "attempted").strip().lower(),
            telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN", ""),
            telegram_chat_id=os.getenv("TELEGRAM_CHAT_ID", ""),
            resend_api_key=os.getenv("RESEND_API_KEY", ""),
            alert_email_to=os.getenv("ALERT_EMAIL_TO", ""),
            resend_from_email=os.getenv("RESEND_FROM_EMAIL", "onboarding@resend.dev"),
            host=os.getenv("HOST", "127.0.0.1"),
            port=_getenv_int("PORT", 8000),
            log_level=os.getenv("LOG_LEVEL", "info"),
            log_dir=os.getenv("LOG_DIR", "logs"),
        )

    def validate(self) -> None:
        if not self.positions_file:
            raise ValueError("POSITIONS_FILE must not be empty")
        if self.poll_interval_seconds < 0:
            raise ValueError("POLL_INTERVAL_SECONDS must be >= 0")
        if self.price_fetch_timeout_seconds <= 0:
            raise ValueError("PRICE_FETCH_TIMEOUT_SECONDS must be > 0")
        if self.market_rps < 0:
            raise ValueError("MARKET_RPS must be >= 0")
        if self.alert_latch_policy not in LATCH_POLICIES:
            raise ValueError(f"ALERT_LATCH_POLICY must be one of {sorted(LATCH_POLICIES)}")
        if not (0 < self.port < 65536):
            raise ValueError("PORT must be between 1 and 65535")
        if self.log_level.strip().lower() not in {"debug", "info", "warning", "error"}:
            raise ValueError("LOG_LEVEL must be one of debug, info, warning, error")
