from __future__ import annotations

from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
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


class AlertPreference(Base):
    __tablename__ = "alert_preferences"

    __table_args__ = (
        UniqueConstraint(
            "user_id", "stock_alert_id", name="ux_alert_preferences_user_stock"
        ),
        Index("ix_alert_preferences_stock_alert_id", "stock_alert_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    stock_alert_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("stock_alerts.id", ondelete="CASCADE"), nullable=False
    )
    target_one: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    target_two: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    target_three: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    percent_change: Mapped[Optional[float]] = mapped_column(Float)
    custom_target_price: Mapped[Optional[float]] = mapped_column(Float)
    notify_web: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notify_email: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notify_sms: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=lambda: datetime.now(UTC)
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )


class AlertTriggerEvent(Base):
    """A trigger that has already been delivered to a user."""

    __tablename__ = "alert_trigger_events"

    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "stock_alert_id",
            "trigger_type",
            name="ux_alert_trigger_events_user_stock_type",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    stock_alert_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("stock_alerts.id", ondelete="CASCADE"), nullable=False
    )
    trigger_type: Mapped[str] = mapped_column(String(16), nullable=False)
    message: Mapped[str] = mapped_column(Text(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=lambda: datetime.now(UTC)
    )


__all__ = ["AlertPreference", "AlertTriggerEvent"]
