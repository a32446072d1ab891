from dataclasses import replace
from datetime import datetime, timezone

from src.core.threshold_evaluator import alert_subject, evaluate
from src.models.position import AlertsSent, Position


def _position(current=None, tp: float = 0.80, sl: float = 0.20, alerts: AlertsSent = AlertsSent()) -> Position:
    return Position(
        id="p1",
        market_id="abc",
        outcome="YES",
        market_url="https://x/event/abc",
        market_question="Will it happen?",
        entry_price=0.40,
        quantity=100.0,
        take_profit=tp,
        stop_loss=sl,
        created_at=datetime.now(timezone.utc),
        current_price=current,
        alerts_sent=alerts,
    )


def test_no_evaluation_without_price() -> None:
    assert evaluate(_position(current=None, tp=0.0, sl=1.0)).trigger is None


def test_take_profit_at_and_above_threshold() -> None:
    assert evaluate(_position(current=0.80)).trigger == "take_profit"
    assert evaluate(_position(current=0.85)).trigger == "take_profit"


def test_stop_loss_at_and_below_threshold() -> None:
    assert evaluate(_position(current=0.20)).trigger == "stop_loss"
    assert evaluate(_position(current=0.05)).trigger == "stop_loss"


def test_between_thresholds_is_quiet() -> None:
    assert evaluate(_position(current=0.50)).trigger is None


def test_latched_flag_suppresses_trigger() -> None:
    p = _position(current=0.85)
    first = evaluate(p)
    assert first.trigger == "take_profit"

    latched = replace(p, alerts_sent=p.alerts_sent.latch("take_profit"))
    assert evaluate(latched).trigger is None


def test_crossed_thresholds_fire_take_profit_first_then_stop_loss() -> None:
    p = _position(current=0.95, tp=0.5, sl=0.9)
    assert evaluate(p).trigger == "take_profit"

    after_tp = replace(p, alerts_sent=AlertsSent(take_profit=True))
    assert evaluate(after_tp).trigger == "stop_loss"

    both = replace(p, alerts_sent=AlertsSent(take_profit=True, stop_loss=True))
    assert evaluate(both).trigger is None


def test_stop_loss_still_fires_after_take_profit_latched() -> None:
    p = _position(current=0.10, alerts=AlertsSent(take_profit=True))
    assert evaluate(p).trigger == "stop_loss"


def test_message_contains_prices_and_pnl() -> None:
    result = evaluate(_position(current=0.85))
    assert "TAKE PROFIT ALERT: Will it happen?" in result.message
    assert "Current Price: $0.8500" in result.message
    assert "Target Price: $0.8000" in result.message
    assert "PnL: 112.50% ($45.00)" in result.message
    assert "Market: https://x/event/abc" in result.message
    assert result.subject == alert_subject(_position()) == "Polymarket Alert: Will it happen?"


def test_stop_loss_message_names_stop_level() -> None:
    result = evaluate(_position(current=0.10))
    assert "STOP LOSS ALERT" in result.message
    assert "Stop Loss: $0.2000" in result.message
