from __future__ import annotations

from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from portfolio_consultant.db.base import Base
from portfolio_consultant.db.types import UTCDateTime


class UserNotification(Base):
    __tablename__ = "user_notifications"

    __table_args__ = (
        Index("ix_user_notifications_user_read", "user_id", "read"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text(), nullable=False)
    link_url: Mapped[Optional[str]] = mapped_column(String(512))
    related_id: Mapped[Optional[int]] = mapped_column(Integer)
    icon: Mapped[Optional[str]] = mapped_column(String(32))
    important: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=lambda: datetime.now(UTC)
    )


__all__ = ["UserNotification"]
