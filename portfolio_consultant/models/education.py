from __future__ import annotations

from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from portfolio_consultant.db.base import Base
from portfolio_consultant.db.types import UTCDateTime


class EducationContent(Base):
    __tablename__ = "education_content"

    __table_args__ = (
        CheckConstraint(
            "tier IN ('free', 'paid', 'premium')", name="ck_education_content_tier"
        ),
        Index("ix_education_content_tier", "tier"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text(), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    category: Mapped[str] = mapped_column(String(64), nullable=False, default="general")
    content_url: Mapped[str] = mapped_column(String(512), nullable=False)
    image_url: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    tier: Mapped[str] = mapped_column(String(16), nullable=False, default="free")
    level: Mapped[str] = mapped_column(String(16), nullable=False, default="beginner")
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=lambda: datetime.now(UTC)
    )


class EducationProgress(Base):
    __tablename__ = "education_progress"

    __table_args__ = (
        UniqueConstraint("user_id", "content_id", name="ux_education_progress_user_content"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    content_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("education_content.id", ondelete="CASCADE"), nullable=False
    )
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    percent_complete: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    notes: Mapped[Optional[str]] = mapped_column(Text())
    last_accessed_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=lambda: datetime.now(UTC)
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=lambda: datetime.now(UTC)
    )


__all__ = ["EducationContent", "EducationProgress"]
