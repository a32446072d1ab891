"""Request bodies for the position and price endpoints."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", allow_inf_nan=False)


class AlertsSentUpdate(_CamelModel):
    take_profit: Optional[bool] = Field(default=None, alias="takeProfit")
    stop_loss: Optional[bool] = Field(default=None, alias="stopLoss")


class PositionCreate(_CamelModel):
    market_url: str = Field(alias="marketUrl", min_length=1)
    outcome: str = Field(min_length=1)
    entry_price: float = Field(alias="entryPrice", ge=0, le=1)
    quantity: float = Field(ge=0)
    take_profit: Optional[float] = Field(default=None, alias="takeProfit", ge=0, le=1)
    stop_loss: Optional[float] = Field(default=None, alias="stopLoss", ge=0, le=1)
    market_question: Optional[str] = Field(default=None, alias="marketQuestion")


class PositionUpdate(_CamelModel):
    # Market identity (marketId, outcome) and bookkeeping fields are not editable.
    id: Optional[str] = None
    market_url: Optional[str] = Field(default=None, alias="marketUrl")
    market_question: Optional[str] = Field(default=None, alias="marketQuestion")
    entry_price: Optional[float] = Field(default=None, alias="entryPrice", ge=0, le=1)
    quantity: Optional[float] = Field(default=None, ge=0)
    take_profit: Optional[float] = Field(default=None, alias="takeProfit", ge=0, le=1)
    stop_loss: Optional[float] = Field(default=None, alias="stopLoss", ge=0, le=1)
    alerts_sent: Optional[AlertsSentUpdate] = Field(default=None, alias="alertsSent")


class PriceRefreshRequest(_CamelModel):
    position_id: Optional[str] = Field(default=None, alias="positionId")
