from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ContentType = Literal["course", "article", "video"]
ContentTier = Literal["free", "paid", "premium"]
ContentLevel = Literal["beginner", "intermediate", "advanced"]


class EducationContentBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    type: ContentType
    category: str = Field("general", max_length=64)
    content_url: str = Field(..., max_length=512)
    image_url: str = Field("", max_length=512)
    tier: ContentTier = "free"
    level: ContentLevel = "beginner"


class EducationContentCreate(EducationContentBase):
    pass


class EducationContentUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    type: Optional[ContentType] = None
    category: Optional[str] = Field(None, max_length=64)
    content_url: Optional[str] = Field(None, max_length=512)
    image_url: Optional[str] = Field(None, max_length=512)
    tier: Optional[ContentTier] = None
    level: Optional[ContentLevel] = None


class EducationContentRead(EducationContentBase):
    id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProgressUpdate(BaseModel):
    percent_complete: float = Field(0.0, ge=0.0, le=100.0)
    completed: Optional[bool] = None
    notes: Optional[str] = None


class ProgressRead(BaseModel):
    id: int
    user_id: int
    content_id: int
    completed: bool
    percent_complete: float
    notes: Optional[str] = None
    last_accessed_at: datetime

    model_config = ConfigDict(from_attributes=True)


__all__ = [
    "EducationContentCreate",
    "EducationContentUpdate",
    "EducationContentRead",
    "ProgressUpdate",
    "ProgressRead",
]
