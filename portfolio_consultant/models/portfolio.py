from __future__ import annotations

from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import Boolean, Float, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column

from portfolio_consultant.db.base import Base
from portfolio_consultant.db.types import UTCDateTime


class PortfolioItem(Base):
    __tablename__ = "portfolio_items"

    __table_args__ = (
        Index("ix_portfolio_items_user_id", "user_id"),
        Index("ix_portfolio_items_stock_alert_id", "stock_alert_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    # Resolved by lookup; alerts may be deleted while positions remain.
    stock_alert_id: Mapped[int] = mapped_column(Integer, nullable=False)
    bought_price: Mapped[float] = mapped_column(Float, nullable=False)
    quantity: Mapped[float] = mapped_column(Float, nullable=False)
    notify_target1: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notify_target2: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notify_target3: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    custom_target_percent: Mapped[Optional[float]] = mapped_column(Float)
    sold: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sold_price: Mapped[Optional[float]] = mapped_column(Float)
    sold_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime())
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=lambda: datetime.now(UTC)
    )


__all__ = ["PortfolioItem"]
