from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CoachingSessionCreate(BaseModel):
    date: datetime
    duration_minutes: int = Field(60, ge=15, le=240)
    notes: Optional[str] = None


class CoachingSessionRead(BaseModel):
    id: int
    user_id: int
    date: datetime
    duration_minutes: int
    status: str
    notes: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AvailabilitySlot(BaseModel):
    date: datetime
    available: bool


class GroupSessionCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    coach: str = Field(..., min_length=1, max_length=128)
    date: datetime
    max_participants: int = Field(..., ge=1)
    price: float = Field(0.0, ge=0.0)
    description: str = ""
    zoom_link: Optional[str] = Field(None, max_length=512)


class GroupSessionRead(BaseModel):
    id: int
    title: str
    coach: str
    date: datetime
    participants: int
    max_participants: int
    price: float
    description: str
    zoom_link: Optional[str] = None
    status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class GroupRegistrationRead(BaseModel):
    id: int
    user_id: int
    session_id: int
    payment_status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class GroupRegistrationDetail(BaseModel):
    session: GroupSessionRead
    registration: GroupRegistrationRead


__all__ = [
    "CoachingSessionCreate",
    "CoachingSessionRead",
    "AvailabilitySlot",
    "GroupSessionCreate",
    "GroupSessionRead",
    "GroupRegistrationRead",
    "GroupRegistrationDetail",
]
