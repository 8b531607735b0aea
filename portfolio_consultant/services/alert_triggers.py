from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portfolio_consultant.models import (
    AlertPreference,
    AlertTriggerEvent,
    StockAlert,
    User,
    UserNotification,
)

logger = logging.getLogger(__name__)

TARGET_BAND = 0.10
CUSTOM_BAND = 0.05

_TARGET_MESSAGES = {
    "target1": (
        "{symbol} has reached its first target price of ${price:.2f} and could "
        "be a great place to take some profits."
    ),
    "target2": (
        "{symbol} has reached its second target price of ${price:.2f}. "
        "This is a major milestone!"
    ),
    "target3": (
        "{symbol} has reached its third target price of ${price:.2f}. "
        "Consider reviewing your position."
    ),
}


@dataclass(frozen=True)
class AlertTrigger:
    user_id: int
    stock_alert_id: int
    trigger_type: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _within(price: float, level: float, band: float) -> bool:
    return level * (1 - band) <= price <= level * (1 + band)


def triggers_for_preference(alert: StockAlert, pref: AlertPreference) -> List[AlertTrigger]:
    """Trigger conditions met by ``alert``'s current price for one preference."""

    price = alert.current_price
    found: List[AlertTrigger] = []

    def add(trigger_type: str, message: str) -> None:
        found.append(
            AlertTrigger(
                user_id=pref.user_id,
                stock_alert_id=alert.id,
                trigger_type=trigger_type,
                message=message,
            )
        )

    targets = (
        ("target1", pref.target_one, alert.target1),
        ("target2", pref.target_two, alert.target2),
        ("target3", pref.target_three, alert.target3),
    )
    for trigger_type, enabled, level in targets:
        if enabled and _within(price, level, TARGET_BAND):
            add(
                trigger_type,
                _TARGET_MESSAGES[trigger_type].format(symbol=alert.symbol, price=level),
            )

    if pref.percent_change and alert.buy_zone_max > 0:
        change = (price - alert.buy_zone_max) / alert.buy_zone_max * 100.0
        if change >= pref.percent_change:
            add("percent", f"{alert.symbol} has increased by {change:.1f}% from its buy zone.")

    custom = pref.custom_target_price
    if custom and _within(price, custom, CUSTOM_BAND):
        add(
            "custom",
            f"{alert.symbol} has reached your custom target price of ${custom:.2f}.",
        )

    return found


def evaluate_alert_triggers(db: Session, alert: StockAlert) -> List[AlertTrigger]:
    """Evaluate every preference on ``alert`` against its current price.

    Free-tier, disabled and missing users never trigger. Calling this twice
    for the same price yields the same list; it writes nothing.
    """

    prefs = (
        db.query(AlertPreference)
        .filter(AlertPreference.stock_alert_id == alert.id)
        .order_by(AlertPreference.id.asc())
        .all()
    )
    if not prefs:
        return []

    users = {
        user.id: user
        for user in db.query(User).filter(User.id.in_({p.user_id for p in prefs})).all()
    }

    triggers: List[AlertTrigger] = []
    for pref in prefs:
        user = users.get(pref.user_id)
        if user is None or user.tier == "free" or user.disabled:
            continue
        triggers.extend(triggers_for_preference(alert, pref))
    return triggers


def _already_delivered(db: Session, trigger: AlertTrigger) -> bool:
    return (
        db.query(AlertTriggerEvent.id)
        .filter(
            AlertTriggerEvent.user_id == trigger.user_id,
            AlertTriggerEvent.stock_alert_id == trigger.stock_alert_id,
            AlertTriggerEvent.trigger_type == trigger.trigger_type,
        )
        .first()
        is not None
    )


def dispatch_alert_triggers(db: Session, alert: StockAlert) -> List[AlertTrigger]:
    """Deliver triggers not yet sent for ``alert``; returns the new ones.

    Each (user, alert, trigger type) is delivered at most once. Delivery
    records the trigger and creates a ``target_approach`` notification.
    """

    delivered: List[AlertTrigger] = []
    for trigger in evaluate_alert_triggers(db, alert):
        if _already_delivered(db, trigger):
            continue

        db.add(
            AlertTriggerEvent(
                user_id=trigger.user_id,
                stock_alert_id=trigger.stock_alert_id,
                trigger_type=trigger.trigger_type,
                message=trigger.message,
            )
        )
        db.add(
            UserNotification(
                user_id=trigger.user_id,
                category="target_approach",
                title=f"{alert.symbol} price alert",
                message=trigger.message,
                link_url=f"/alerts/{alert.id}",
                related_id=alert.id,
                icon="target",
                important=trigger.trigger_type.startswith("target"),
            )
        )
        try:
            db.commit()
        except IntegrityError:
            # Delivered concurrently by another request.
            db.rollback()
            continue
        delivered.append(trigger)

    if delivered:
        logger.info(
            "Alert triggers delivered",
            extra={
                "extra": {
                    "stock_alert_id": alert.id,
                    "symbol": alert.symbol,
                    "count": len(delivered),
                    "types": sorted({t.trigger_type for t in delivered}),
                }
            },
        )
    return delivered


__all__ = [
    "AlertTrigger",
    "dispatch_alert_triggers",
    "evaluate_alert_triggers",
    "triggers_for_preference",
]
