from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SystemEventRead(BaseModel):
    id: int
    level: str
    category: str
    message: str
    user_id: Optional[int] = None
    details: Optional[str] = None
    correlation_id: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SystemEventsCleanupRequest(BaseModel):
    max_days: int = Field(30, ge=0, le=3650)
    dry_run: bool = False

    def max_days_delta(self) -> timedelta:
        return timedelta(days=int(self.max_days))


class SystemEventsCleanupResponse(BaseModel):
    deleted: int
    remaining: int


__all__ = [
    "SystemEventRead",
    "SystemEventsCleanupRequest",
    "SystemEventsCleanupResponse",
]
