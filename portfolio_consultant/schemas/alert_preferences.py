from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AlertPreferenceFields(BaseModel):
    target_one: bool = True
    target_two: bool = True
    target_three: bool = True
    percent_change: Optional[float] = Field(None, gt=0)
    custom_target_price: Optional[float] = Field(None, gt=0)
    notify_web: bool = True
    notify_email: bool = False
    notify_sms: bool = False


class AlertPreferenceUpsert(AlertPreferenceFields):
    stock_alert_id: int


class AlertPreferenceUpdate(BaseModel):
    target_one: Optional[bool] = None
    target_two: Optional[bool] = None
    target_three: Optional[bool] = None
    percent_change: Optional[float] = Field(None, gt=0)
    custom_target_price: Optional[float] = Field(None, gt=0)
    notify_web: Optional[bool] = None
    notify_email: Optional[bool] = None
    notify_sms: Optional[bool] = None


class AlertPreferenceRead(AlertPreferenceFields):
    id: int
    user_id: int
    stock_alert_id: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


__all__ = [
    "AlertPreferenceUpsert",
    "AlertPreferenceUpdate",
    "AlertPreferenceRead",
]
