from __future__ import annotations

import calendar
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy.orm import Session

from portfolio_consultant.core.time_utils import to_utc, utc_now
from portfolio_consultant.models import PortfolioItem, StockAlert


class ItemAlreadySoldError(Exception):
    """Raised when selling a position that has already been closed."""


def _alerts_by_id(db: Session, alert_ids) -> Dict[int, StockAlert]:
    ids = {int(i) for i in alert_ids}
    if not ids:
        return {}
    rows = db.query(StockAlert).filter(StockAlert.id.in_(ids)).all()
    return {row.id: row for row in rows}


def create_item(db: Session, user_id: int, values: Mapping[str, Any]) -> PortfolioItem:
    alert_id = int(values["stock_alert_id"])
    if db.get(StockAlert, alert_id) is None:
        raise LookupError("Stock alert not found.")
    if values["bought_price"] <= 0 or values["quantity"] <= 0:
        raise ValueError("Bought price and quantity must be positive.")

    item = PortfolioItem(user_id=user_id, **dict(values))
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def list_items(db: Session, user_id: int) -> List[PortfolioItem]:
    return (
        db.query(PortfolioItem)
        .filter(PortfolioItem.user_id == user_id)
        .order_by(PortfolioItem.created_at.desc(), PortfolioItem.id.desc())
        .all()
    )


def list_items_with_alerts(
    db: Session, user_id: int
) -> List[Tuple[PortfolioItem, Optional[StockAlert]]]:
    items = list_items(db, user_id)
    alerts = _alerts_by_id(db, (item.stock_alert_id for item in items))
    return [(item, alerts.get(item.stock_alert_id)) for item in items]


def sell_item(db: Session, item: PortfolioItem, sold_price: float) -> PortfolioItem:
    if sold_price <= 0:
        raise ValueError("Sold price must be positive.")
    if item.sold:
        raise ItemAlreadySoldError("Portfolio item has already been sold.")

    # Conditional on the stored row still being unsold.
    updated = (
        db.query(PortfolioItem)
        .filter(PortfolioItem.id == item.id, PortfolioItem.sold.is_(False))
        .update(
            {
                PortfolioItem.sold: True,
                PortfolioItem.sold_price: sold_price,
                PortfolioItem.sold_at: utc_now(),
            },
            synchronize_session=False,
        )
    )
    if updated == 0:
        db.rollback()
        raise ItemAlreadySoldError("Portfolio item has already been sold.")
    db.commit()
    db.refresh(item)
    return item


def position_performance(
    item: PortfolioItem, alert: Optional[StockAlert]
) -> Optional[Dict[str, float]]:
    """Invested amount, value and gain for one position.

    Sold positions are valued at their sale price; open positions at the
    alert's current price. Returns None when an open position's alert is gone.
    """

    invested = item.bought_price * item.quantity
    if item.sold and item.sold_price is not None:
        value = item.sold_price * item.quantity
    elif alert is not None:
        value = alert.current_price * item.quantity
    else:
        return None

    gain = value - invested
    percent = gain / invested * 100.0 if invested > 0 else 0.0
    return {
        "invested": invested,
        "value": value,
        "gain_loss": gain,
        "percent_gain_loss": percent,
    }


def portfolio_stats(db: Session, user_id: int) -> Dict[str, float | int]:
    items = list_items(db, user_id)
    active = [item for item in items if not item.sold]
    alerts = _alerts_by_id(db, (item.stock_alert_id for item in active))

    current_value = 0.0
    total_invested = 0.0
    for item in active:
        alert = alerts.get(item.stock_alert_id)
        if alert is None:
            continue
        current_value += alert.current_price * item.quantity
        total_invested += item.bought_price * item.quantity

    total_gain_loss = current_value - total_invested
    percent_gain_loss = (
        total_gain_loss / total_invested * 100.0 if total_invested > 0 else 0.0
    )

    closed_profit = 0.0
    for item in items:
        if item.sold and item.sold_price:
            closed_profit += (item.sold_price - item.bought_price) * item.quantity

    return {
        "active_positions": len(active),
        "current_value": current_value,
        "total_invested": total_invested,
        "total_gain_loss": total_gain_loss,
        "percent_gain_loss": percent_gain_loss,
        "closed_profit": closed_profit,
    }


def _round_percent(count: int, total: int) -> int:
    if total <= 0:
        return 0
    # Half-up rounding.
    return int(count * 100 / total + 0.5)


def _last_six_months(now: datetime) -> List[Tuple[int, int]]:
    months: List[Tuple[int, int]] = []
    year, month = now.year, now.month
    for _ in range(6):
        months.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    months.reverse()
    return months


def monthly_purchases(
    items: List[PortfolioItem], now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    now = to_utc(now) if now is not None else utc_now()
    counts: Dict[Tuple[int, int], int] = {}
    for item in items:
        created = to_utc(item.created_at)
        key = (created.year, created.month)
        counts[key] = counts.get(key, 0) + 1
    return [
        {"month": calendar.month_abbr[month], "count": counts.get((year, month), 0)}
        for year, month in _last_six_months(now)
    ]


def portfolio_metrics(
    db: Session, user_id: int, now: Optional[datetime] = None
) -> Dict[str, Any]:
    items = list_items(db, user_id)
    alerts = _alerts_by_id(db, (item.stock_alert_id for item in items))

    in_zone = below_zone = above_zone = 0
    for item in items:
        alert = alerts.get(item.stock_alert_id)
        if alert is None:
            continue
        if alert.buy_zone_min <= item.bought_price <= alert.buy_zone_max:
            in_zone += 1
        elif item.bought_price < alert.buy_zone_min:
            below_zone += 1
        else:
            above_zone += 1

    total = len(items)
    return {
        "total_alerts_bought": total,
        "buy_zone_percentage": _round_percent(in_zone, total),
        "high_risk_percentage": _round_percent(below_zone, total),
        "above_buy_zone_percentage": _round_percent(above_zone, total),
        "monthly_purchases": monthly_purchases(items, now),
    }


__all__ = [
    "ItemAlreadySoldError",
    "create_item",
    "list_items",
    "list_items_with_alerts",
    "monthly_purchases",
    "portfolio_metrics",
    "portfolio_stats",
    "position_performance",
    "sell_item",
]
