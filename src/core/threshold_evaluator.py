from __future__ import annotations

import math

from src.core.pnl import compute_pnl
from src.models.position import AlertKind, Position
from src.models.results import Evaluation


_HEADERS = {
    "take_profit": ("🎯 TAKE PROFIT ALERT", "Target Price"),
    "stop_loss": ("🛑 STOP LOSS ALERT", "Stop Loss"),
}


def evaluate(position: Position) -> Evaluation:
    """Decide whether a threshold condition newly applies to ``position``.

    The absolute condition is re-checked on every call; only the latch flags
    in ``alerts_sent`` keep an already-alerted condition from firing again.
    Take-profit wins when both conditions hold at once.
    """
    price = position.current_price
    if price is None:
        return Evaluation()

    if price >= position.take_profit and not position.alerts_sent.take_profit:
        return _triggered(position, "take_profit")

    if price <= position.stop_loss and not position.alerts_sent.stop_loss:
        return _triggered(position, "stop_loss")

    return Evaluation()


def _triggered(position: Position, kind: AlertKind) -> Evaluation:
    return Evaluation(trigger=kind, message=format_alert_message(position, kind), subject=alert_subject(position))


def alert_subject(position: Position) -> str:
    return f"Polymarket Alert: {position.market_question}"


def format_alert_message(position: Position, kind: AlertKind) -> str:
    header, level_label = _HEADERS[kind]
    level = position.take_profit if kind == "take_profit" else position.stop_loss
    pnl = compute_pnl(position)
    percent = "n/a" if math.isnan(pnl.percent) else f"{pnl.percent:.2f}%"

    return (
        f"{header}: {position.market_question}\n\n"
        f"Current Price: ${pnl.effective_price:.4f}\n"
        f"{level_label}: ${level:.4f}\n"
        f"PnL: {percent} (${pnl.absolute:.2f})\n"
        f"Quantity: {position.quantity:g} shares\n"
        f"Market: {position.market_url}"
    )
