from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping, Optional, Tuple

from sqlalchemy.orm import Session

from portfolio_consultant.core.time_utils import to_utc, to_utc_or_none, utc_now
from portfolio_consultant.models import Coupon, Discount, User


def normalize_code(code: str) -> str:
    return code.strip().upper()


def get_coupon_by_code(db: Session, code: str) -> Optional[Coupon]:
    return db.query(Coupon).filter(Coupon.code == normalize_code(code)).one_or_none()


def list_coupons(db: Session) -> List[Coupon]:
    return db.query(Coupon).order_by(Coupon.created_at.desc(), Coupon.id.desc()).all()


def _check_window(valid_from: Optional[datetime], valid_until: Optional[datetime]) -> None:
    if valid_from is not None and valid_until is not None and valid_until <= valid_from:
        raise ValueError("valid_until must be after valid_from.")


def create_coupon(db: Session, values: Mapping[str, Any]) -> Coupon:
    data = dict(values)
    data["code"] = normalize_code(data["code"])
    if get_coupon_by_code(db, data["code"]) is not None:
        raise ValueError("Coupon code already exists.")
    data["valid_from"] = to_utc_or_none(data.get("valid_from")) or utc_now()
    data["valid_until"] = to_utc_or_none(data.get("valid_until"))
    _check_window(data["valid_from"], data["valid_until"])

    coupon = Coupon(**data)
    db.add(coupon)
    db.commit()
    db.refresh(coupon)
    return coupon


_COUPON_NULLABLE = frozenset({"discount_amount", "valid_until", "max_uses"})
_DISCOUNT_NULLABLE = frozenset({"discount_amount", "notes", "valid_until"})


def update_coupon(db: Session, coupon: Coupon, changes: Mapping[str, Any]) -> Coupon:
    for field, value in changes.items():
        if value is None and field not in _COUPON_NULLABLE:
            continue
        if field in ("valid_from", "valid_until"):
            value = to_utc_or_none(value)
        setattr(coupon, field, value)
    _check_window(to_utc_or_none(coupon.valid_from), to_utc_or_none(coupon.valid_until))
    db.add(coupon)
    db.commit()
    db.refresh(coupon)
    return coupon


def check_coupon(
    coupon: Optional[Coupon], now: Optional[datetime] = None
) -> Tuple[bool, Optional[str]]:
    """Return ``(valid, reason)`` for redeeming ``coupon`` at ``now``."""

    if coupon is None:
        return False, "Coupon not found."
    now = to_utc(now) if now is not None else utc_now()
    if not coupon.is_active:
        return False, "Coupon is no longer active."
    if coupon.valid_from is not None and now < to_utc(coupon.valid_from):
        return False, "Coupon is not valid yet."
    if coupon.valid_until is not None and now > to_utc(coupon.valid_until):
        return False, "Coupon has expired."
    if coupon.max_uses is not None and coupon.uses_count >= coupon.max_uses:
        return False, "Coupon usage limit reached."
    return True, None


def redeem_coupon(db: Session, coupon: Coupon) -> Coupon:
    valid, reason = check_coupon(coupon)
    if not valid:
        raise ValueError(reason)
    coupon.uses_count += 1
    db.add(coupon)
    db.commit()
    db.refresh(coupon)
    return coupon


def list_discounts(db: Session, user_id: Optional[int] = None) -> List[Discount]:
    query = db.query(Discount)
    if user_id is not None:
        query = query.filter(Discount.user_id == user_id)
    return query.order_by(Discount.created_at.desc(), Discount.id.desc()).all()


def active_discounts(
    db: Session, user_id: int, now: Optional[datetime] = None
) -> List[Discount]:
    now = to_utc(now) if now is not None else utc_now()
    return [
        discount
        for discount in list_discounts(db, user_id)
        if discount.is_active
        and to_utc(discount.valid_from) <= now
        and (discount.valid_until is None or now <= to_utc(discount.valid_until))
    ]


def create_discount(db: Session, values: Mapping[str, Any]) -> Discount:
    data = dict(values)
    if db.get(User, int(data["user_id"])) is None:
        raise LookupError("User not found.")
    data["valid_from"] = to_utc_or_none(data.get("valid_from")) or utc_now()
    data["valid_until"] = to_utc_or_none(data.get("valid_until"))
    _check_window(data["valid_from"], data["valid_until"])

    discount = Discount(**data)
    db.add(discount)
    db.commit()
    db.refresh(discount)
    return discount


def update_discount(db: Session, discount: Discount, changes: Mapping[str, Any]) -> Discount:
    for field, value in changes.items():
        if value is None and field not in _DISCOUNT_NULLABLE:
            continue
        if field == "valid_until":
            value = to_utc_or_none(value)
        setattr(discount, field, value)
    _check_window(to_utc(discount.valid_from), to_utc_or_none(discount.valid_until))
    db.add(discount)
    db.commit()
    db.refresh(discount)
    return discount


__all__ = [
    "active_discounts",
    "check_coupon",
    "create_coupon",
    "create_discount",
    "get_coupon_by_code",
    "list_coupons",
    "list_discounts",
    "normalize_code",
    "redeem_coupon",
    "update_coupon",
    "update_discount",
]
