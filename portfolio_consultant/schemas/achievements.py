from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class BadgeRead(BaseModel):
    name: str
    description: str
    threshold: int


class UserAchievementRead(BaseModel):
    id: int
    user_id: int
    badge_name: str
    description: str
    earned_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProgressResult(BaseModel):
    progress_id: int
    completed: bool
    new_achievements: List[UserAchievementRead] = Field(default_factory=list)


class SuccessCardGenerate(BaseModel):
    stock_alert_id: int
    target_hit: Literal[1, 2, 3]


class SuccessCardShare(BaseModel):
    platform: str = Field(..., min_length=1, max_length=32)


class SuccessCardRead(BaseModel):
    id: int
    user_id: int
    stock_alert_id: int
    percent_gained: float
    days_to_target: int
    target_hit: int
    image_url: str
    shared: bool
    shared_platform: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


__all__ = [
    "BadgeRead",
    "UserAchievementRead",
    "ProgressResult",
    "SuccessCardGenerate",
    "SuccessCardShare",
    "SuccessCardRead",
]
