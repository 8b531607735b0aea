from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

AlertStatus = Literal["active", "closed", "cancelled"]


class StockAlertBase(BaseModel):
    symbol: str = Field(..., min_length=1, max_length=16)
    company_name: str = Field(..., min_length=1, max_length=255)
    current_price: float = Field(..., gt=0)
    buy_zone_min: float = Field(..., gt=0)
    buy_zone_max: float = Field(..., gt=0)
    target1: float = Field(..., gt=0)
    target2: float = Field(..., gt=0)
    target3: float = Field(..., gt=0)
    technical_reasons: List[str] = Field(default_factory=list)
    chart_image_url: Optional[str] = Field(None, max_length=512)


class StockAlertCreate(StockAlertBase):
    status: AlertStatus = "active"


class StockAlertUpdate(BaseModel):
    symbol: Optional[str] = Field(None, min_length=1, max_length=16)
    company_name: Optional[str] = Field(None, min_length=1, max_length=255)
    current_price: Optional[float] = Field(None, gt=0)
    buy_zone_min: Optional[float] = Field(None, gt=0)
    buy_zone_max: Optional[float] = Field(None, gt=0)
    target1: Optional[float] = Field(None, gt=0)
    target2: Optional[float] = Field(None, gt=0)
    target3: Optional[float] = Field(None, gt=0)
    technical_reasons: Optional[List[str]] = None
    chart_image_url: Optional[str] = Field(None, max_length=512)
    status: Optional[AlertStatus] = None


class PriceUpdate(BaseModel):
    current_price: float = Field(..., gt=0)


class StockAlertRead(StockAlertBase):
    id: int
    status: AlertStatus
    max_price: Optional[float] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TargetBuckets(BaseModel):
    target1: List[StockAlertRead] = Field(default_factory=list)
    target2: List[StockAlertRead] = Field(default_factory=list)
    target3: List[StockAlertRead] = Field(default_factory=list)


class AlertTriggerRead(BaseModel):
    user_id: int
    stock_alert_id: int
    trigger_type: str
    message: str


class PriceUpdateResult(BaseModel):
    alert: StockAlertRead
    triggers: List[AlertTriggerRead] = Field(default_factory=list)


class TechnicalReasonCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=64)


class TechnicalReasonRead(TechnicalReasonCreate):
    id: int

    model_config = ConfigDict(from_attributes=True)


__all__ = [
    "AlertStatus",
    "StockAlertCreate",
    "StockAlertUpdate",
    "StockAlertRead",
    "PriceUpdate",
    "PriceUpdateResult",
    "TargetBuckets",
    "AlertTriggerRead",
    "TechnicalReasonCreate",
    "TechnicalReasonRead",
]
