from __future__ import annotations

from typing import List

from sqlalchemy.orm import Session

from portfolio_consultant.core.time_utils import to_utc, utc_now
from portfolio_consultant.models import PortfolioItem, StockAlert, SuccessCard

SHARE_PLATFORMS = ("twitter", "facebook", "linkedin", "instagram", "email", "other")


def generate_success_card(
    db: Session, user_id: int, stock_alert_id: int, target_hit: int
) -> SuccessCard:
    """Build a card from the user's most recent sold position in an alert."""

    if target_hit not in (1, 2, 3):
        raise ValueError("target_hit must be 1, 2 or 3.")

    alert = db.get(StockAlert, stock_alert_id)
    if alert is None:
        raise LookupError("Stock alert not found.")

    item = (
        db.query(PortfolioItem)
        .filter(
            PortfolioItem.user_id == user_id,
            PortfolioItem.stock_alert_id == stock_alert_id,
            PortfolioItem.sold.is_(True),
        )
        .order_by(PortfolioItem.sold_at.desc(), PortfolioItem.id.desc())
        .first()
    )
    if item is None:
        raise LookupError("No sold position found for this stock alert.")

    sold_price = item.sold_price or 0.0
    percent_gained = (sold_price - item.bought_price) / item.bought_price * 100.0
    sold_at = to_utc(item.sold_at) if item.sold_at else utc_now()
    days_held = max((sold_at - to_utc(item.created_at)).days, 0)

    card = SuccessCard(
        user_id=user_id,
        stock_alert_id=stock_alert_id,
        percent_gained=percent_gained,
        days_to_target=days_held,
        target_hit=target_hit,
        image_url=alert.chart_image_url or "",
    )
    db.add(card)
    db.commit()
    db.refresh(card)
    return card


def list_success_cards(db: Session, user_id: int) -> List[SuccessCard]:
    return (
        db.query(SuccessCard)
        .filter(SuccessCard.user_id == user_id)
        .order_by(SuccessCard.created_at.desc(), SuccessCard.id.desc())
        .all()
    )


def share_success_card(db: Session, card: SuccessCard, platform: str) -> SuccessCard:
    normalized = platform.strip().lower()
    if normalized not in SHARE_PLATFORMS:
        raise ValueError(f"Unsupported platform: {platform}")
    card.shared = True
    card.shared_platform = normalized
    db.add(card)
    db.commit()
    db.refresh(card)
    return card


__all__ = [
    "SHARE_PLATFORMS",
    "generate_success_card",
    "list_success_cards",
    "share_success_card",
]
