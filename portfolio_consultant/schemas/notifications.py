from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict


class NotificationRead(BaseModel):
    id: int
    user_id: int
    category: str
    title: str
    message: str
    link_url: Optional[str] = None
    related_id: Optional[int] = None
    icon: Optional[str] = None
    important: bool
    read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationStats(BaseModel):
    total_unread: int
    category_counts: Dict[str, int]


__all__ = ["NotificationRead", "NotificationStats"]
