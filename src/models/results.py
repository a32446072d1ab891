from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Literal, Optional

from src.models.position import AlertKind, Position


ChannelOutcome = Literal["delivered", "failed", "skipped"]


@dataclass(frozen=True)
class PnL:
    # percent is NaN when entry_price is 0.
    percent: float
    absolute: float
    effective_price: float


@dataclass(frozen=True)
class Evaluation:
    trigger: Optional[AlertKind] = None
    message: str = ""
    subject: str = ""


@dataclass(frozen=True)
class ChannelResult:
    channel: str
    outcome: ChannelOutcome
    error: Optional[str] = None


@dataclass(frozen=True)
class DispatchResult:
    channels: List[ChannelResult] = field(default_factory=list)

    @property
    def attempted(self) -> bool:
        return any(c.outcome != "skipped" for c in self.channels)

    @property
    def any_delivered(self) -> bool:
        return any(c.outcome == "delivered" for c in self.channels)


@dataclass(frozen=True)
class FetchResult:
    position_id: str
    price: Optional[float] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.price is not None


@dataclass(frozen=True)
class CycleResult:
    total: int
    updated: int
    alerts_fired: int
    timestamp: datetime


@dataclass(frozen=True)
class RefreshResult:
    position: Position
    price: float
    evaluation: Evaluation
