from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional


AlertKind = Literal["take_profit", "stop_loss"]

ALERT_KINDS: tuple[AlertKind, ...] = ("take_profit", "stop_loss")

IMMUTABLE_FIELDS = frozenset({"id", "market_id", "outcome", "created_at"})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_dt(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc)
    if isinstance(value, str):
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        parsed = datetime.fromisoformat(value)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    raise ValueError(f"unsupported timestamp: {value!r}")


def _format_dt(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class AlertsSent:
    """Latch flags. Once a flag is True it stays True."""

    take_profit: bool = False
    stop_loss: bool = False

    def is_set(self, kind: AlertKind) -> bool:
        return bool(getattr(self, kind))

    def latch(self, kind: AlertKind) -> "AlertsSent":
        if kind not in ALERT_KINDS:
            raise ValueError(f"unknown alert kind: {kind}")
        return AlertsSent(
            take_profit=self.take_profit or kind == "take_profit",
            stop_loss=self.stop_loss or kind == "stop_loss",
        )

    def merge(self, other: "AlertsSent") -> "AlertsSent":
        return AlertsSent(
            take_profit=self.take_profit or other.take_profit,
            stop_loss=self.stop_loss or other.stop_loss,
        )

    def to_dict(self) -> Dict[str, bool]:
        return {"takeProfit": self.take_profit, "stopLoss": self.stop_loss}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "AlertsSent":
        data = data or {}
        return cls(
            take_profit=bool(data.get("takeProfit", False)),
            stop_loss=bool(data.get("stopLoss", False)),
        )


@dataclass(frozen=True)
class Position:
    id: str
    market_id: str
    outcome: str
    market_url: str
    market_question: str
    entry_price: float
    quantity: float
    take_profit: float
    stop_loss: float
    created_at: datetime
    current_price: Optional[float] = None
    last_updated: Optional[datetime] = None
    alerts_sent: AlertsSent = field(default_factory=AlertsSent)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "marketId": self.market_id,
            "marketUrl": self.market_url,
            "marketQuestion": self.market_question,
            "outcome": self.outcome,
            "entryPrice": self.entry_price,
            "quantity": self.quantity,
            "takeProfit": self.take_profit,
            "stopLoss": self.stop_loss,
            "alertsSent": self.alerts_sent.to_dict(),
            "createdAt": _format_dt(self.created_at),
        }
        if self.current_price is not None:
            out["currentPrice"] = self.current_price
        if self.last_updated is not None:
            out["lastUpdated"] = _format_dt(self.last_updated)
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Position":
        current = data.get("currentPrice")
        created = _parse_dt(data.get("createdAt"))
        return cls(
            id=str(data["id"]),
            market_id=str(data["marketId"]),
            outcome=str(data["outcome"]),
            market_url=str(data.get("marketUrl") or ""),
            market_question=str(data.get("marketQuestion") or data["marketId"]),
            entry_price=float(data["entryPrice"]),
            quantity=float(data["quantity"]),
            take_profit=float(data.get("takeProfit", 1.0)),
            stop_loss=float(data.get("stopLoss", 0.0)),
            created_at=created if created is not None else utcnow(),
            current_price=float(current) if current is not None else None,
            last_updated=_parse_dt(data.get("lastUpdated")),
            alerts_sent=AlertsSent.from_dict(data.get("alertsSent")),
        )
