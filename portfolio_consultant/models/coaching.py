from __future__ import annotations

from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import (
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


class CoachingSession(Base):
    __tablename__ = "coaching_sessions"

    __table_args__ = (
        CheckConstraint(
            "status IN ('scheduled', 'completed', 'cancelled')",
            name="ck_coaching_sessions_status",
        ),
        Index("ix_coaching_sessions_user_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="scheduled")
    notes: Mapped[Optional[str]] = mapped_column(Text())
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=lambda: datetime.now(UTC)
    )


class GroupCoachingSession(Base):
    __tablename__ = "group_coaching_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    coach: Mapped[str] = mapped_column(String(128), nullable=False)
    date: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    participants: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_participants: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    description: Mapped[str] = mapped_column(Text(), nullable=False, default="")
    zoom_link: Mapped[Optional[str]] = mapped_column(String(512))
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="scheduled")
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=lambda: datetime.now(UTC)
    )


class GroupSessionRegistration(Base):
    __tablename__ = "group_session_registrations"

    __table_args__ = (
        UniqueConstraint(
            "user_id", "session_id", name="ux_group_session_registrations_user_session"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    session_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("group_coaching_sessions.id", ondelete="CASCADE"),
        nullable=False,
    )
    payment_status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="pending"
    )
    payment_intent_id: Mapped[Optional[str]] = mapped_column(String(64))
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=lambda: datetime.now(UTC)
    )


__all__ = ["CoachingSession", "GroupCoachingSession", "GroupSessionRegistration"]
