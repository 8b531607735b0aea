from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from portfolio_consultant.schemas.stock_alerts import StockAlertRead


class PortfolioItemCreate(BaseModel):
    stock_alert_id: int
    bought_price: float = Field(..., gt=0)
    quantity: float = Field(..., gt=0)
    notify_target1: bool = True
    notify_target2: bool = True
    notify_target3: bool = True
    custom_target_percent: Optional[float] = Field(None, gt=0)


class SellRequest(BaseModel):
    sold_price: float = Field(..., gt=0)


class PortfolioItemRead(BaseModel):
    id: int
    user_id: int
    stock_alert_id: int
    bought_price: float
    quantity: float
    notify_target1: bool
    notify_target2: bool
    notify_target3: bool
    custom_target_percent: Optional[float] = None
    sold: bool
    sold_price: Optional[float] = None
    sold_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PositionPerformance(BaseModel):
    invested: float
    value: float
    gain_loss: float
    percent_gain_loss: float


class PortfolioItemDetail(PortfolioItemRead):
    stock_alert: Optional[StockAlertRead] = None
    performance: Optional[PositionPerformance] = None


class PortfolioStats(BaseModel):
    active_positions: int
    current_value: float
    total_invested: float
    total_gain_loss: float
    percent_gain_loss: float
    closed_profit: float


class MonthlyPurchases(BaseModel):
    month: str
    count: int


class PortfolioMetrics(BaseModel):
    total_alerts_bought: int
    buy_zone_percentage: int
    high_risk_percentage: int
    above_buy_zone_percentage: int
    monthly_purchases: List[MonthlyPurchases]


__all__ = [
    "PortfolioItemCreate",
    "SellRequest",
    "PortfolioItemRead",
    "PortfolioItemDetail",
    "PositionPerformance",
    "PortfolioStats",
    "PortfolioMetrics",
    "MonthlyPurchases",
]
