from __future__ import annotations

from datetime import UTC, datetime
from typing import List, Optional

from sqlalchemy import JSON, CheckConstraint, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from portfolio_consultant.db.base import Base
from portfolio_consultant.db.types import UTCDateTime


class StockAlert(Base):
    __tablename__ = "stock_alerts"

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'closed', 'cancelled')",
            name="ck_stock_alerts_status",
        ),
        Index("ix_stock_alerts_symbol", "symbol"),
        Index("ix_stock_alerts_status", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    symbol: Mapped[str] = mapped_column(String(16), nullable=False)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    current_price: Mapped[float] = mapped_column(Float, nullable=False)
    buy_zone_min: Mapped[float] = mapped_column(Float, nullable=False)
    buy_zone_max: Mapped[float] = mapped_column(Float, nullable=False)
    target1: Mapped[float] = mapped_column(Float, nullable=False)
    target2: Mapped[float] = mapped_column(Float, nullable=False)
    target3: Mapped[float] = mapped_column(Float, nullable=False)
    technical_reasons: Mapped[List[str]] = mapped_column(
        JSON, nullable=False, default=list
    )
    chart_image_url: Mapped[Optional[str]] = mapped_column(String(512))
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active")
    # Highest price observed since the alert was published.
    max_price: Mapped[Optional[float]] = mapped_column(Float)

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=lambda: datetime.now(UTC)
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )


class TechnicalReason(Base):
    __tablename__ = "technical_reasons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)


__all__ = ["StockAlert", "TechnicalReason"]
