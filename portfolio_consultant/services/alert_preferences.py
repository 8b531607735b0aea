from __future__ import annotations

from typing import Any, List, Mapping, Optional, Tuple

from sqlalchemy.orm import Session

from portfolio_consultant.models import AlertPreference, StockAlert


def list_preferences(db: Session, user_id: int) -> List[AlertPreference]:
    return (
        db.query(AlertPreference)
        .filter(AlertPreference.user_id == user_id)
        .order_by(AlertPreference.id.asc())
        .all()
    )


def get_preference(
    db: Session, user_id: int, stock_alert_id: int
) -> Optional[AlertPreference]:
    return (
        db.query(AlertPreference)
        .filter(
            AlertPreference.user_id == user_id,
            AlertPreference.stock_alert_id == stock_alert_id,
        )
        .one_or_none()
    )


def upsert_preference(
    db: Session, user_id: int, values: Mapping[str, Any]
) -> Tuple[AlertPreference, bool]:
    """Create or update the user's preference row for one alert.

    Returns ``(preference, created)``.
    """

    data = dict(values)
    stock_alert_id = int(data.pop("stock_alert_id"))
    if db.get(StockAlert, stock_alert_id) is None:
        raise LookupError("Stock alert not found.")

    pref = get_preference(db, user_id, stock_alert_id)
    created = pref is None
    if pref is None:
        pref = AlertPreference(user_id=user_id, stock_alert_id=stock_alert_id)
    for field, value in data.items():
        setattr(pref, field, value)

    db.add(pref)
    db.commit()
    db.refresh(pref)
    return pref, created


_FLAG_FIELDS = frozenset(
    {"target_one", "target_two", "target_three", "notify_web", "notify_email", "notify_sms"}
)


def update_preference(
    db: Session, pref: AlertPreference, changes: Mapping[str, Any]
) -> AlertPreference:
    for field, value in changes.items():
        if value is None and field in _FLAG_FIELDS:
            continue
        setattr(pref, field, value)
    db.add(pref)
    db.commit()
    db.refresh(pref)
    return pref


__all__ = [
    "get_preference",
    "list_preferences",
    "update_preference",
    "upsert_preference",
]
