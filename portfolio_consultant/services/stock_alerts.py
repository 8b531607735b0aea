from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping

from sqlalchemy.orm import Session

from portfolio_consultant.models import StockAlert, TechnicalReason, User
from portfolio_consultant.services.notifications import notify_users

logger = logging.getLogger(__name__)

DEFAULT_TECHNICAL_REASONS = (
    "Support Level",
    "Resistance Level",
    "Oversold RSI",
    "Overbought RSI",
    "Moving Average Crossover",
    "MACD Crossover",
    "Earnings Beat",
    "Revenue Growth",
    "Bullish Pattern",
    "Bearish Pattern",
    "Breakout Pattern",
    "Upward Trend",
    "Downward Trend",
    "Volume Increase",
    "Sector Momentum",
)

# Proximity window, as a percentage of the target, for the nearing-targets scan.
NEAR_TARGET_MIN_PERCENT = 95.0
NEAR_TARGET_MAX_PERCENT = 100.0

TargetBuckets = Dict[str, List[StockAlert]]


class AlertValidationError(ValueError):
    """Raised when buy zone or target ordering is inconsistent."""


def _newest_first(query):
    return query.order_by(StockAlert.created_at.desc(), StockAlert.id.desc())


def validate_alert_levels(values: Mapping[str, Any]) -> None:
    if values["buy_zone_max"] <= values["buy_zone_min"]:
        raise AlertValidationError("Buy zone max must be greater than buy zone min.")
    if not values["target1"] < values["target2"] < values["target3"]:
        raise AlertValidationError(
            "Targets must be strictly increasing: target1 < target2 < target3."
        )


def list_alerts(db: Session) -> List[StockAlert]:
    return _newest_first(db.query(StockAlert)).all()


def alerts_in_buy_zone(db: Session) -> List[StockAlert]:
    return _newest_first(
        db.query(StockAlert).filter(
            StockAlert.status != "closed",
            StockAlert.current_price >= StockAlert.buy_zone_min,
            StockAlert.current_price <= StockAlert.buy_zone_max,
        )
    ).all()


def closed_alerts(db: Session) -> List[StockAlert]:
    return _newest_first(db.query(StockAlert).filter(StockAlert.status == "closed")).all()


def high_risk_reward_alerts(db: Session) -> List[StockAlert]:
    """Open alerts currently trading below their buy zone."""

    return _newest_first(
        db.query(StockAlert).filter(
            StockAlert.status != "closed",
            StockAlert.current_price < StockAlert.buy_zone_min,
        )
    ).all()


def alerts_hitting_targets(db: Session) -> TargetBuckets:
    buckets: TargetBuckets = {"target1": [], "target2": [], "target3": []}
    for alert in list_alerts(db):
        if alert.current_price >= alert.target1:
            buckets["target1"].append(alert)
        if alert.current_price >= alert.target2:
            buckets["target2"].append(alert)
        if alert.current_price >= alert.target3:
            buckets["target3"].append(alert)
    return buckets


def _percent_of(price: float, target: float) -> float | None:
    if target <= 0:
        return None
    return price / target * 100.0


def _within_near_window(price: float, target: float) -> bool:
    pct = _percent_of(price, target)
    return pct is not None and NEAR_TARGET_MIN_PERCENT <= pct < NEAR_TARGET_MAX_PERCENT


def nearing_target_buckets(alert: StockAlert) -> List[str]:
    """Return the target buckets ``alert`` is approaching.

    Each bucket is gated on the previous level: target1 requires the price
    to be above the buy zone, target2 requires target1 to be reached, and
    target3 requires target2 to be reached.
    """

    price = alert.current_price
    buckets: List[str] = []
    if price > alert.buy_zone_max and _within_near_window(price, alert.target1):
        buckets.append("target1")
    if price >= alert.target1 and _within_near_window(price, alert.target2):
        buckets.append("target2")
    if price >= alert.target2 and _within_near_window(price, alert.target3):
        buckets.append("target3")
    return buckets


def alerts_nearing_targets(db: Session) -> TargetBuckets:
    buckets: TargetBuckets = {"target1": [], "target2": [], "target3": []}
    open_alerts = _newest_first(db.query(StockAlert).filter(StockAlert.status != "closed"))
    for alert in open_alerts.all():
        for name in nearing_target_buckets(alert):
            buckets[name].append(alert)
    return buckets


def create_alert(db: Session, values: Mapping[str, Any]) -> StockAlert:
    """Publish a new alert and notify every paying member."""

    validate_alert_levels(values)

    alert = StockAlert(**dict(values))
    alert.symbol = alert.symbol.strip().upper()
    db.add(alert)
    db.commit()
    db.refresh(alert)

    members = db.query(User).filter(User.tier != "free", User.disabled.is_(False)).all()
    notified = notify_users(
        db,
        members,
        category="stock_alert",
        title=f"New Stock Alert: {alert.symbol}",
        message=(
            f"{alert.company_name} ({alert.symbol}) has a buy zone of "
            f"${alert.buy_zone_min:.2f} - ${alert.buy_zone_max:.2f}."
        ),
        link_url=f"/alerts/{alert.id}",
        related_id=alert.id,
        icon="trending-up",
    )
    logger.info(
        "Stock alert published",
        extra={
            "extra": {
                "stock_alert_id": alert.id,
                "symbol": alert.symbol,
                "notified_users": notified,
            }
        },
    )
    return alert


def update_alert(db: Session, alert: StockAlert, changes: Mapping[str, Any]) -> StockAlert:
    # Only the chart image may be cleared; other columns are required.
    changes = {
        field: value
        for field, value in changes.items()
        if value is not None or field == "chart_image_url"
    }
    merged = {
        "buy_zone_min": changes.get("buy_zone_min", alert.buy_zone_min),
        "buy_zone_max": changes.get("buy_zone_max", alert.buy_zone_max),
        "target1": changes.get("target1", alert.target1),
        "target2": changes.get("target2", alert.target2),
        "target3": changes.get("target3", alert.target3),
    }
    validate_alert_levels(merged)

    for field, value in changes.items():
        if field == "symbol":
            value = value.strip().upper()
        setattr(alert, field, value)
    db.add(alert)
    db.commit()
    db.refresh(alert)
    return alert


def apply_price_update(db: Session, alert: StockAlert, price: float) -> StockAlert:
    """Record a new market price for ``alert``.

    Raises the high-water mark and closes an active alert once target1 has
    been reached, either now or at any earlier price.
    """

    if price <= 0:
        raise ValueError("Price must be positive.")

    high_water = max(alert.max_price or alert.current_price, price)
    alert.current_price = price
    alert.max_price = high_water
    if alert.status == "active" and (price >= alert.target1 or high_water >= alert.target1):
        alert.status = "closed"
        logger.info(
            "Stock alert closed after reaching target1",
            extra={"extra": {"stock_alert_id": alert.id, "price": price}},
        )

    db.add(alert)
    db.commit()
    db.refresh(alert)
    return alert


def list_technical_reasons(db: Session) -> List[TechnicalReason]:
    return db.query(TechnicalReason).order_by(TechnicalReason.id.asc()).all()


def create_technical_reason(db: Session, name: str) -> TechnicalReason:
    cleaned = name.strip()
    if not cleaned:
        raise ValueError("Technical reason name is required.")
    existing = db.query(TechnicalReason).filter(TechnicalReason.name == cleaned).one_or_none()
    if existing is not None:
        raise ValueError("Technical reason already exists.")
    reason = TechnicalReason(name=cleaned)
    db.add(reason)
    db.commit()
    db.refresh(reason)
    return reason


def seed_technical_reasons(db: Session) -> int:
    """Insert any missing default technical reasons; returns how many."""

    existing = {name for (name,) in db.query(TechnicalReason.name).all()}
    added = 0
    for name in DEFAULT_TECHNICAL_REASONS:
        if name not in existing:
            db.add(TechnicalReason(name=name))
            added += 1
    if added:
        db.commit()
    return added


__all__ = [
    "AlertValidationError",
    "DEFAULT_TECHNICAL_REASONS",
    "alerts_hitting_targets",
    "alerts_in_buy_zone",
    "alerts_nearing_targets",
    "apply_price_update",
    "closed_alerts",
    "create_alert",
    "create_technical_reason",
    "high_risk_reward_alerts",
    "list_alerts",
    "list_technical_reasons",
    "nearing_target_buckets",
    "seed_technical_reasons",
    "update_alert",
    "validate_alert_levels",
]
